"""Status tracking and payment-result views, looked up by reference number.

Always reads the current row; status changes are made elsewhere (payment
callbacks, back-office review).
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.core.config import get_settings
from app.core.exceptions import ApplicationNotFound
from app.core.i18n import Language, status_label, translate
from app.core.utils import build_public_url
from app.models import Application, ApplicationType, CompletionState, PaymentStatus
from app.schemas.application import (
    AgencyDetails, ApplicationStatusResponse, PaymentResultResponse
)

settings = get_settings()
logger = logging.getLogger(__name__)


def get_application_by_reference(db: Session, reference: str) -> Application:
    """
    Fetch an application and its agency record

    Raises:
        ApplicationNotFound: If no application has this reference
    """
    reference = (reference or "").strip().upper()
    application = db.execute(
        select(Application)
        .options(selectinload(Application.agency))
        .where(Application.reference_number == reference)
    ).scalars().first()

    if application is None:
        logger.info("Status lookup for unknown reference %s", reference)
        raise ApplicationNotFound(reference)
    return application


def build_status_view(application: Application, language: Language) -> ApplicationStatusResponse:
    agency = None
    if application.type == ApplicationType.AGENCY and application.agency is not None:
        agency = AgencyDetails.model_validate(application.agency, from_attributes=True)

    return ApplicationStatusResponse(
        reference_number=application.reference_number,
        type=application.type,
        status=application.status,
        status_label=status_label(application.status.value, language),
        payment_status=application.payment_status,
        payment_status_label=status_label(application.payment_status.value, language),
        payment_amount=application.payment_amount,
        applicant_name=application.applicant_name,
        is_complete=application.completion_state == CompletionState.COMPLETE,
        created_at=application.created_at,
        updated_at=application.updated_at,
        agency=agency
    )


def build_payment_result(application: Application, language: Language) -> PaymentResultResponse:
    """Outcome shown when the payer comes back from the gateway"""
    paid = application.payment_status == PaymentStatus.PAID
    prefix = "payment_success" if paid else "payment_failed"
    reference = application.reference_number

    return PaymentResultResponse(
        reference=reference,
        success=paid,
        title=translate(f"{prefix}_title", language),
        message=translate(f"{prefix}_message", language),
        tracking_url=build_public_url(
            settings.PUBLIC_BASE_URL, "/status", reference=reference
        )
    )
