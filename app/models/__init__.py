from app.models.application import (
    Application, ApplicationType, ApplicationStatus, PaymentStatus,
    CompletionState, Sex
)
from app.models.agency_application import AgencyApplication

__all__ = [
    "Application",
    "ApplicationType",
    "ApplicationStatus",
    "PaymentStatus",
    "CompletionState",
    "Sex",
    "AgencyApplication",
]
