import asyncio
import logging
import uuid
from decimal import Decimal
from typing import NamedTuple, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    PersistenceFailed, UploadFailed, PaymentSessionFailed, NotificationFailed
)
from app.core.i18n import Language, translate
from app.core.utils import build_public_url, mask_email
from app.models import (
    Application, AgencyApplication, ApplicationType, CompletionState
)
from app.schemas.application import (
    TravelerForm, AgencyForm, SubmissionResponse
)
from app.services.fees import fees_for_service
from app.services.notifications import NotificationService, build_confirmation_email
from app.services.payment_gateway import PaymentGatewayService
from app.services.storage import StorageService

logger = logging.getLogger(__name__)

AGENCY_FIELDS = {
    "agency_name", "agency_contact", "agency_email", "agency_phone", "agency_address"
}


class DocumentUpload(NamedTuple):
    filename: str
    content: bytes
    content_type: str


class StoredApplication(NamedTuple):
    """Values read from the row right after insert"""
    id: uuid.UUID
    reference: str
    type: ApplicationType
    amount: Decimal
    contact_email: Optional[str]
    applicant_name: str


class SubmissionService:
    """
    Turns a validated form into a stored application with a payment session

    Steps run strictly in order: persist (application and agency record in
    one transaction), upload the passport copy, open the payment session,
    send the confirmation email. Once the application row exists it is
    never deleted; a later failure marks it incomplete and is raised with
    the reference attached.

    Database work runs in the threadpool; the session is only ever used by
    one step at a time.
    """

    def __init__(
        self,
        db: Session,
        storage: StorageService,
        payments: PaymentGatewayService,
        notifier: NotificationService,
        settings: Optional[Settings] = None
    ):
        self.db = db
        self.storage = storage
        self.payments = payments
        self.notifier = notifier
        self.settings = settings or get_settings()

    async def submit(
        self,
        form: TravelerForm,
        application_type: ApplicationType,
        language: Language = Language.PT,
        document: Optional[DocumentUpload] = None
    ) -> SubmissionResponse:
        """
        Run the submission workflow

        Args:
            form: Validated TouristForm or AgencyForm
            application_type: tourist or agency
            language: Language used for the description and the email
            document: Passport copy, if attached

        Returns:
            Reference number and payment redirect URL

        Raises:
            PersistenceFailed: Nothing was stored
            UploadFailed: Application stored, document not
            PaymentSessionFailed: Application stored, no payment session
        """
        application_type = ApplicationType(application_type)
        language = Language(language)

        fees = fees_for_service(application_type)
        application, stored = await run_in_threadpool(
            self._persist, form, application_type, language, fees["total"]
        )
        logger.info(
            "Application %s created (type=%s, amount=%s)",
            stored.reference, application_type.value, stored.amount
        )

        if document is not None:
            await self._upload_document(application, stored, document)

        payment_url = await self._create_payment_session(application, stored, language)
        await self._send_confirmation(stored, language)

        return SubmissionResponse(reference=stored.reference, payment_url=payment_url)

    def _persist(
        self,
        form: TravelerForm,
        application_type: ApplicationType,
        language: Language,
        total: Decimal
    ) -> Tuple[Application, StoredApplication]:
        traveler = form.model_dump(exclude=AGENCY_FIELDS | {"accepted_terms"})
        application = Application(
            type=application_type,
            language=language.value,
            payment_amount=total,
            **traveler
        )
        if isinstance(form, AgencyForm):
            application.agency = AgencyApplication(
                **form.model_dump(include=AGENCY_FIELDS)
            )

        try:
            self.db.add(application)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Persistence failed for %s application: %s", application_type.value, e
            )
            raise PersistenceFailed("Could not save application") from e

        self.db.refresh(application)
        stored = StoredApplication(
            id=application.id,
            reference=application.reference_number,
            type=application.type,
            amount=application.payment_amount,
            contact_email=application.contact_email,
            applicant_name=application.applicant_name
        )
        return application, stored

    async def _upload_document(
        self,
        application: Application,
        stored: StoredApplication,
        document: DocumentUpload
    ) -> None:
        reference = stored.reference
        key = self.storage.build_document_key(stored.id, document.filename)

        try:
            await asyncio.wait_for(
                self.storage.upload_file(document.content, key, document.content_type),
                timeout=self.settings.EXTERNAL_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError as e:
            await run_in_threadpool(self._mark_failed, application, UploadFailed.step)
            logger.error("Document upload timed out for %s", reference)
            raise UploadFailed("Document upload timed out", reference=reference) from e
        except Exception as e:  # boto3 raises unrelated error types
            await run_in_threadpool(self._mark_failed, application, UploadFailed.step)
            logger.error("Document upload failed for %s: %s", reference, e)
            raise UploadFailed("Document upload failed", reference=reference) from e

        await run_in_threadpool(self._record_document, application, key)
        logger.info("Document stored for %s at %s", reference, key)

    async def _create_payment_session(
        self,
        application: Application,
        stored: StoredApplication,
        language: Language
    ) -> str:
        reference = stored.reference
        base_url = self.settings.PUBLIC_BASE_URL
        description = translate(
            f"payment_description_{stored.type.value}", language, reference=reference
        )

        try:
            payment_url = await asyncio.wait_for(
                self.payments.create_session(
                    amount=stored.amount,
                    reference=reference,
                    description=description,
                    return_url=build_public_url(
                        base_url, "/payment/result", reference=reference, lang=language.value
                    ),
                    cancel_url=build_public_url(
                        base_url, "/status", reference=reference, lang=language.value
                    )
                ),
                timeout=self.settings.EXTERNAL_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError as e:
            await run_in_threadpool(self._mark_failed, application, PaymentSessionFailed.step)
            logger.error("Payment session timed out for %s", reference)
            raise PaymentSessionFailed("Payment gateway timeout", reference=reference) from e
        except PaymentSessionFailed as e:
            await run_in_threadpool(self._mark_failed, application, PaymentSessionFailed.step)
            logger.error("Payment session failed for %s: %s", reference, e)
            e.reference = reference
            raise
        except Exception as e:
            await run_in_threadpool(self._mark_failed, application, PaymentSessionFailed.step)
            logger.error("Unexpected payment gateway error for %s: %r", reference, e)
            raise PaymentSessionFailed("Payment gateway error", reference=reference) from e

        await run_in_threadpool(self._record_payment_session, application, payment_url)
        logger.info("Payment session created for %s", reference)
        return payment_url

    async def _send_confirmation(self, stored: StoredApplication, language: Language) -> None:
        reference = stored.reference
        recipient = stored.contact_email
        if not recipient:
            logger.warning("No contact email for %s, confirmation not sent", reference)
            return

        email = build_confirmation_email(
            to=recipient,
            reference=reference,
            name=stored.applicant_name,
            amount=stored.amount,
            application_type=stored.type,
            language=language
        )
        # The application and payment session already exist
        try:
            await asyncio.wait_for(
                self.notifier.send_email(email),
                timeout=self.settings.EXTERNAL_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.warning("Confirmation email for %s timed out", reference)
        except NotificationFailed as e:
            logger.warning(
                "Confirmation email for %s to %s failed: %s",
                reference, mask_email(recipient), e
            )
        except Exception as e:
            logger.warning(
                "Unexpected email service error for %s to %s: %r",
                reference, mask_email(recipient), e
            )
        else:
            logger.info("Confirmation email queued for %s", reference)

    def _record_document(self, application: Application, key: str) -> None:
        application.document_path = key
        self._save(application)

    def _record_payment_session(self, application: Application, payment_url: str) -> None:
        application.payment_url = payment_url
        application.completion_state = CompletionState.COMPLETE
        application.failed_step = None
        self._save(application)

    def _mark_failed(self, application: Application, step: str) -> None:
        application.failed_step = step
        application.completion_state = CompletionState.INCOMPLETE
        try:
            self._save(application)
        except PersistenceFailed:
            logger.error(
                "Could not record failed step %s for %s", step, application.reference_number
            )

    def _save(self, application: Application) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Could not update %s: %s", application.reference_number, e)
            raise PersistenceFailed(
                "Could not update application", reference=application.reference_number
            ) from e
