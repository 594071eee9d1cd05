import threading

import pytest
from decimal import Decimal
from sqlalchemy import event, func, select
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    PersistenceFailed, UploadFailed, PaymentSessionFailed
)
from app.core.i18n import Language
from app.models import (
    Application, AgencyApplication, ApplicationType, ApplicationStatus,
    PaymentStatus, CompletionState
)
from app.schemas.application import TouristForm, AgencyForm, validate_form
from app.services.status import get_application_by_reference
from app.services.submission import DocumentUpload


def _count(db, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture
def tourist_form(tourist_payload):
    return validate_form(TouristForm, tourist_payload)


@pytest.fixture
def agency_form(agency_payload):
    return validate_form(AgencyForm, agency_payload)


@pytest.fixture
def passport_copy():
    return DocumentUpload("Passport Scan.PDF", b"%PDF-1.4 passport", "application/pdf")


class TestTouristSubmission:

    @pytest.mark.asyncio
    async def test_creates_application_and_payment_session(
        self, db, submission_service, payments, tourist_form
    ):
        """Tourist submission stores one row and returns the checkout URL"""
        result = await submission_service.submit(tourist_form, ApplicationType.TOURIST)

        assert result.success is True
        assert result.reference.startswith("CV-")
        assert result.reference in result.payment_url
        assert _count(db, Application) == 1
        assert _count(db, AgencyApplication) == 0

        application = get_application_by_reference(db, result.reference)
        assert application.type == ApplicationType.TOURIST
        assert application.payment_amount == Decimal("36.70")
        assert application.status == ApplicationStatus.PENDING_PAYMENT
        assert application.payment_status == PaymentStatus.UNPAID
        assert application.completion_state == CompletionState.COMPLETE
        assert application.failed_step is None
        assert application.payment_url == result.payment_url

        assert len(payments.requests) == 1
        request = payments.requests[0]
        assert request["amount"] == Decimal("36.70")
        assert request["reference"] == result.reference
        assert f"reference={result.reference}" in request["return_url"]

    @pytest.mark.asyncio
    async def test_sends_confirmation_in_request_language(
        self, submission_service, notifier, tourist_form
    ):
        result = await submission_service.submit(
            tourist_form, ApplicationType.TOURIST, language=Language.EN
        )

        assert len(notifier.sent) == 1
        email = notifier.sent[0]
        assert email["to"] == "maria.silva@correio.pt"
        assert email["template"] == "confirmation-en"
        assert email["data"]["reference"] == result.reference
        assert email["data"]["name"] == "Maria Fernanda Silva Costa"

    @pytest.mark.asyncio
    async def test_references_are_unique(self, submission_service, tourist_form):
        first = await submission_service.submit(tourist_form, ApplicationType.TOURIST)
        second = await submission_service.submit(tourist_form, ApplicationType.TOURIST)

        assert first.reference != second.reference

    @pytest.mark.asyncio
    async def test_stores_document_under_application_id(
        self, db, submission_service, storage, tourist_form, passport_copy
    ):
        result = await submission_service.submit(
            tourist_form, ApplicationType.TOURIST, document=passport_copy
        )

        application = get_application_by_reference(db, result.reference)
        expected_key = f"{application.id}/passport.pdf"
        assert application.document_path == expected_key
        assert storage.objects[expected_key] == b"%PDF-1.4 passport"


class TestAgencySubmission:

    @pytest.mark.asyncio
    async def test_creates_linked_agency_record(self, db, submission_service, agency_form):
        """Agency record shares the application id"""
        result = await submission_service.submit(agency_form, ApplicationType.AGENCY)

        application = get_application_by_reference(db, result.reference)
        assert application.type == ApplicationType.AGENCY
        assert application.payment_amount == Decimal("63.55")
        assert application.email is None

        agency = db.get(AgencyApplication, application.id)
        assert agency is not None
        assert agency.agency_name == "Morabeza Viagens"
        assert agency.agency_email == "reservas@morabeza-viagens.cv"

    @pytest.mark.asyncio
    async def test_confirmation_goes_to_agency(self, submission_service, notifier, agency_form):
        await submission_service.submit(agency_form, ApplicationType.AGENCY)

        assert notifier.sent[0]["to"] == "reservas@morabeza-viagens.cv"
        assert notifier.sent[0]["template"] == "confirmation-pt"

    @pytest.mark.asyncio
    async def test_agency_insert_failure_stores_nothing(
        self, db, submission_service, payments, agency_form
    ):
        """Application and agency record are written together or not at all"""
        def fail_insert(mapper, connection, target):
            raise SQLAlchemyError("agency insert rejected")

        event.listen(AgencyApplication, "before_insert", fail_insert)
        try:
            with pytest.raises(PersistenceFailed) as exc_info:
                await submission_service.submit(agency_form, ApplicationType.AGENCY)
        finally:
            event.remove(AgencyApplication, "before_insert", fail_insert)

        assert exc_info.value.reference is None
        assert _count(db, Application) == 0
        assert _count(db, AgencyApplication) == 0
        assert payments.requests == []


class TestPartialFailures:

    @pytest.mark.asyncio
    async def test_upload_failure_keeps_application(
        self, db, submission_service, storage, payments, tourist_form, passport_copy
    ):
        storage.fail = True

        with pytest.raises(UploadFailed) as exc_info:
            await submission_service.submit(
                tourist_form, ApplicationType.TOURIST, document=passport_copy
            )

        reference = exc_info.value.reference
        assert reference is not None
        application = get_application_by_reference(db, reference)
        assert application.failed_step == "upload"
        assert application.completion_state == CompletionState.INCOMPLETE
        assert application.document_path is None
        assert payments.requests == []

    @pytest.mark.asyncio
    async def test_payment_failure_keeps_queryable_application(
        self, db, submission_service, payments, notifier, tourist_form
    ):
        payments.fail = True

        with pytest.raises(PaymentSessionFailed) as exc_info:
            await submission_service.submit(tourist_form, ApplicationType.TOURIST)

        application = get_application_by_reference(db, exc_info.value.reference)
        assert application.status == ApplicationStatus.PENDING_PAYMENT
        assert application.failed_step == "payment_session"
        assert application.completion_state == CompletionState.INCOMPLETE
        assert application.payment_url is None
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_notification_failure_still_succeeds(
        self, db, submission_service, notifier, tourist_form
    ):
        notifier.fail = True

        result = await submission_service.submit(tourist_form, ApplicationType.TOURIST)

        assert result.success is True
        application = get_application_by_reference(db, result.reference)
        assert application.completion_state == CompletionState.COMPLETE


class TestImmutableFields:

    @pytest.mark.asyncio
    async def test_amount_and_reference_cannot_change(self, db, submission_service, tourist_form):
        result = await submission_service.submit(tourist_form, ApplicationType.TOURIST)
        application = get_application_by_reference(db, result.reference)

        with pytest.raises(ValueError):
            application.payment_amount = Decimal("1.00")
        with pytest.raises(ValueError):
            application.reference_number = "CV-AAAAAAAA"


class TestUnexpectedCollaboratorErrors:

    @pytest.mark.asyncio
    async def test_unexpected_gateway_error_is_payment_failure(
        self, db, submission_service, payments, tourist_form
    ):
        async def broken_session(**kwargs):
            raise AttributeError("'str' object has no attribute 'get'")

        payments.create_session = broken_session

        with pytest.raises(PaymentSessionFailed) as exc_info:
            await submission_service.submit(tourist_form, ApplicationType.TOURIST)

        application = get_application_by_reference(db, exc_info.value.reference)
        assert application.failed_step == "payment_session"
        assert application.completion_state == CompletionState.INCOMPLETE

    @pytest.mark.asyncio
    async def test_unexpected_email_error_still_succeeds(
        self, db, submission_service, notifier, tourist_form
    ):
        async def broken_send(email):
            raise RuntimeError("mailer crashed")

        notifier.send_email = broken_send

        result = await submission_service.submit(tourist_form, ApplicationType.TOURIST)

        assert result.success is True
        application = get_application_by_reference(db, result.reference)
        assert application.completion_state == CompletionState.COMPLETE


class TestDatabaseOffEventLoop:

    @pytest.mark.asyncio
    async def test_commits_run_in_worker_threads(
        self, db, submission_service, tourist_form, passport_copy
    ):
        """The event loop thread never waits on the database"""
        loop_thread = threading.get_ident()
        commit_threads = []

        def record_commit(session):
            commit_threads.append(threading.get_ident())

        event.listen(db, "after_commit", record_commit)
        try:
            await submission_service.submit(
                tourist_form, ApplicationType.TOURIST, document=passport_copy
            )
        finally:
            event.remove(db, "after_commit", record_commit)

        # insert, document path, payment session
        assert len(commit_threads) == 3
        assert loop_thread not in commit_threads
