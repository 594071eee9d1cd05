import logging
from decimal import Decimal
from typing import Dict, Any, Optional

import httpx
from app.core.config import get_settings
from app.core.exceptions import PaymentSessionFailed

settings = get_settings()
logger = logging.getLogger(__name__)


class PaymentGatewayService:
    """Client for the SISP payment gateway"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport
        self.base_url = settings.PAYMENT_GATEWAY_URL.rstrip("/")
        self.token = settings.PAYMENT_GATEWAY_TOKEN
        self.timeout = settings.EXTERNAL_TIMEOUT_SECONDS
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json"
        }

    @staticmethod
    def build_request(
        amount: Decimal,
        reference: str,
        description: str,
        return_url: str,
        cancel_url: str
    ) -> Dict[str, Any]:
        """Payload accepted by the gateway's initiate endpoint"""
        return {
            "amount": str(amount),
            "currency": settings.PAYMENT_CURRENCY,
            "reference": reference,
            "description": description,
            "returnUrl": return_url,
            "cancelUrl": cancel_url
        }

    async def create_session(
        self,
        amount: Decimal,
        reference: str,
        description: str,
        return_url: str,
        cancel_url: str
    ) -> str:
        """
        Open a hosted payment session

        Args:
            amount: Total to charge
            reference: Application reference number
            description: Localized description shown by the gateway
            return_url: Where the gateway sends the payer afterwards
            cancel_url: Where the gateway sends the payer on cancel

        Returns:
            Redirect URL of the payment page

        Raises:
            PaymentSessionFailed: If the gateway rejects or cannot be reached
        """
        payload = self.build_request(amount, reference, description, return_url, cancel_url)

        # In development mode, send the payer straight to the result page
        if settings.ENVIRONMENT == "dev" and not self.token:
            logger.info("Development mode: simulated payment session for %s", reference)
            return return_url

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/api/payment/initiate",
                    headers=self.headers,
                    json=payload
                )
            except httpx.TimeoutException:
                raise PaymentSessionFailed("Payment gateway timeout", reference=reference)
            except httpx.RequestError as e:
                raise PaymentSessionFailed(f"Network error: {str(e)}", reference=reference)

        if response.status_code != 200:
            raise PaymentSessionFailed(
                f"Payment gateway error: HTTP {response.status_code}",
                reference=reference
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        payment_url = body.get("paymentUrl") if isinstance(body, dict) else None
        if not payment_url or not isinstance(payment_url, str):
            raise PaymentSessionFailed(
                "Payment gateway response has no paymentUrl",
                reference=reference
            )
        return payment_url


def get_payment_gateway() -> PaymentGatewayService:
    """FastAPI dependency"""
    return PaymentGatewayService()
