from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import require_payment_gateway
from app.core.i18n import Language, DEFAULT_LANGUAGE
from app.db.session import get_db
from app.schemas.application import (
    ApplicationStatusResponse, ErrorResponse, PaymentCallbackRequest,
    PaymentResultResponse
)
from app.services.lifecycle import record_payment
from app.services.status import (
    build_payment_result, build_status_view, get_application_by_reference
)

router = APIRouter()


@router.get(
    "/result",
    response_model=PaymentResultResponse,
    responses={404: {"model": ErrorResponse}}
)
def get_payment_result(
    reference: str = Query(..., min_length=1),
    lang: Language = Query(DEFAULT_LANGUAGE),
    db: Session = Depends(get_db)
) -> PaymentResultResponse:
    """
    Payment outcome for the page the gateway returns to

    The reference comes from the return URL query string
    """
    application = get_application_by_reference(db, reference)
    return build_payment_result(application, lang)


@router.post(
    "/callback",
    response_model=ApplicationStatusResponse,
    responses={404: {"model": ErrorResponse}},
    dependencies=[Depends(require_payment_gateway)]
)
def payment_callback(
    request_data: PaymentCallbackRequest,
    db: Session = Depends(get_db)
) -> ApplicationStatusResponse:
    """
    Payment confirmation sent by the gateway

    Idempotent: repeated notifications leave a paid application unchanged
    """
    application = get_application_by_reference(db, request_data.reference)
    application = record_payment(db, application, request_data.outcome)
    return build_status_view(application, Language.EN)
