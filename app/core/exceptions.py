from typing import Optional, List, Dict


class SubmissionError(Exception):
    """
    Base error for the submission workflow

    Attributes:
        step: Workflow step that failed (validation, persistence, upload,
            payment_session, notification)
        reference: Reference number, once an application row exists
    """
    step = "submission"

    def __init__(self, message: str, reference: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reference = reference


class ValidationFailed(SubmissionError):
    step = "validation"

    def __init__(self, errors: List[Dict[str, str]]):
        fields = ", ".join(error["field"] for error in errors)
        super().__init__(f"Invalid fields: {fields}")
        self.errors = errors


class PersistenceFailed(SubmissionError):
    step = "persistence"


class UploadFailed(SubmissionError):
    step = "upload"


class PaymentSessionFailed(SubmissionError):
    step = "payment_session"


class NotificationFailed(SubmissionError):
    step = "notification"


class ApplicationNotFound(Exception):
    def __init__(self, reference: str):
        super().__init__(f"Application {reference} not found")
        self.reference = reference


class InvalidStatusTransition(Exception):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move application from {current} to {requested}")
        self.current = current
        self.requested = requested
