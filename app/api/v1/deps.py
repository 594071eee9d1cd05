import secrets
from typing import Optional

import redis
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.i18n import DEFAULT_LANGUAGE, parse_language, translate
from app.core.redis import RedisService, get_redis_client
from app.db.session import get_db
from app.services.notifications import NotificationService, get_notification_service
from app.services.payment_gateway import PaymentGatewayService, get_payment_gateway
from app.services.storage import StorageService, get_storage_service
from app.services.submission import SubmissionService

bearer = HTTPBearer(auto_error=False)


def get_submission_service(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    payments: PaymentGatewayService = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notification_service)
) -> SubmissionService:
    return SubmissionService(db, storage, payments, notifier)


def submission_rate_limit(
    request: Request,
    redis_client: redis.Redis = Depends(get_redis_client)
) -> None:
    """Limit submissions per client IP"""
    settings = get_settings()
    host = request.client.host if request.client else "unknown"
    allowed = RedisService.check_rate_limit(
        redis_client,
        f"submit:{host}",
        limit=settings.SUBMISSION_RATE_LIMIT,
        window=settings.SUBMISSION_RATE_WINDOW_SECONDS
    )
    if not allowed:
        language = parse_language(request.query_params.get("lang", DEFAULT_LANGUAGE.value))
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=translate("rate_limited", language)
        )


def _check_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    expected: Optional[str]
) -> None:
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Endpoint is not configured"
        )
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid token"
        )


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)
) -> None:
    _check_token(credentials, get_settings().ADMIN_API_TOKEN)


def require_payment_gateway(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)
) -> None:
    _check_token(credentials, get_settings().PAYMENT_CALLBACK_SECRET)
