from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.v1.deps import (
    get_submission_service, require_admin, submission_rate_limit
)
from app.core.config import get_settings
from app.core.i18n import Language, DEFAULT_LANGUAGE
from app.db.session import get_db
from app.models.application import ApplicationType
from app.schemas.application import (
    FORMS, ApplicationStatusResponse, ErrorResponse, StatusUpdateRequest,
    SubmissionResponse, check_document, validate_form
)
from app.services.lifecycle import advance_status
from app.services.status import build_status_view, get_application_by_reference
from app.services.storage import StorageService
from app.services.submission import DocumentUpload, SubmissionService

router = APIRouter()

SUBMISSION_ERRORS = {
    422: {"model": ErrorResponse, "description": "Invalid form fields"},
    502: {"model": ErrorResponse, "description": "External service failed"},
    503: {"model": ErrorResponse, "description": "Application could not be saved"},
}


async def _read_document(upload: Optional[UploadFile]) -> Optional[DocumentUpload]:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    check_document(upload.filename, len(content), get_settings().MAX_DOCUMENT_SIZE_MB)
    return DocumentUpload(
        filename=upload.filename,
        content=content,
        content_type=upload.content_type or StorageService.guess_content_type(upload.filename)
    )


async def _submit(
    application_type: ApplicationType,
    data: str,
    passport_copy: Optional[UploadFile],
    lang: Language,
    service: SubmissionService
) -> SubmissionResponse:
    # Everything is validated before the first side effect
    form = validate_form(FORMS[application_type], data)
    document = await _read_document(passport_copy)
    return await service.submit(form, application_type, lang, document)


@router.post(
    "/tourist",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=SUBMISSION_ERRORS,
    dependencies=[Depends(submission_rate_limit)]
)
async def submit_tourist_application(
    data: str = Form(..., description="Tourist form as JSON"),
    passport_copy: Optional[UploadFile] = File(None),
    lang: Language = Query(DEFAULT_LANGUAGE),
    service: SubmissionService = Depends(get_submission_service)
) -> SubmissionResponse:
    """
    Submit an EASE pre-registration

    Returns the reference number and the payment page to redirect to
    """
    return await _submit(ApplicationType.TOURIST, data, passport_copy, lang, service)


@router.post(
    "/agency",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=SUBMISSION_ERRORS,
    dependencies=[Depends(submission_rate_limit)]
)
async def submit_agency_application(
    data: str = Form(..., description="Agency form as JSON"),
    passport_copy: Optional[UploadFile] = File(None),
    lang: Language = Query(DEFAULT_LANGUAGE),
    service: SubmissionService = Depends(get_submission_service)
) -> SubmissionResponse:
    """
    Submit a visa assistance request on behalf of a traveler

    Returns the reference number and the payment page to redirect to
    """
    return await _submit(ApplicationType.AGENCY, data, passport_copy, lang, service)


@router.get(
    "/status/{reference}",
    response_model=ApplicationStatusResponse,
    responses={404: {"model": ErrorResponse}}
)
def get_application_status(
    reference: str,
    lang: Language = Query(DEFAULT_LANGUAGE),
    db: Session = Depends(get_db)
) -> ApplicationStatusResponse:
    """Current state of an application by reference number"""
    application = get_application_by_reference(db, reference)
    return build_status_view(application, lang)


@router.patch(
    "/{reference}/status",
    response_model=ApplicationStatusResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    dependencies=[Depends(require_admin)]
)
def update_application_status(
    reference: str,
    request_data: StatusUpdateRequest,
    lang: Language = Query(DEFAULT_LANGUAGE),
    db: Session = Depends(get_db)
) -> ApplicationStatusResponse:
    """
    Record a review step (processing, approved, rejected)

    Requires the back-office token
    """
    application = get_application_by_reference(db, reference)
    application = advance_status(db, application, request_data.status)
    return build_status_view(application, lang)
