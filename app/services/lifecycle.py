import logging
from typing import Dict, FrozenSet

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidStatusTransition
from app.models import Application, ApplicationStatus, PaymentStatus

logger = logging.getLogger(__name__)

# Forward-only; approved and rejected are terminal
ALLOWED_TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.PENDING_PAYMENT: frozenset({ApplicationStatus.PAYMENT_RECEIVED}),
    ApplicationStatus.PAYMENT_RECEIVED: frozenset({ApplicationStatus.PROCESSING}),
    ApplicationStatus.PROCESSING: frozenset({
        ApplicationStatus.APPROVED, ApplicationStatus.REJECTED
    }),
    ApplicationStatus.APPROVED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
}


def can_transition(current: ApplicationStatus, new: ApplicationStatus) -> bool:
    return ApplicationStatus(new) in ALLOWED_TRANSITIONS[ApplicationStatus(current)]


def advance_status(
    db: Session,
    application: Application,
    new_status: ApplicationStatus
) -> Application:
    """
    Move an application along its lifecycle

    Args:
        db: Database session
        application: Application to update
        new_status: Requested status

    Returns:
        Updated application (unchanged if already in new_status)

    Raises:
        InvalidStatusTransition: If the move is not a forward step
    """
    new_status = ApplicationStatus(new_status)
    current = application.status

    if current == new_status:
        return application
    if not can_transition(current, new_status):
        raise InvalidStatusTransition(current.value, new_status.value)

    application.status = new_status
    db.commit()
    db.refresh(application)
    logger.info(
        "Application %s moved %s -> %s",
        application.reference_number, current.value, new_status.value
    )
    return application


def record_payment(db: Session, application: Application, outcome: str) -> Application:
    """
    Apply a payment gateway outcome

    "paid" is sticky: later "failed" notifications are ignored. A paid
    application waiting for payment moves to payment_received.
    """
    outcome = PaymentStatus(outcome)
    reference = application.reference_number

    if application.payment_status == PaymentStatus.PAID:
        if outcome != PaymentStatus.PAID:
            logger.warning("Ignoring %s notification for paid application %s", outcome.value, reference)
        return application

    if outcome == PaymentStatus.PAID:
        application.payment_status = PaymentStatus.PAID
        if application.status == ApplicationStatus.PENDING_PAYMENT:
            application.status = ApplicationStatus.PAYMENT_RECEIVED
    elif outcome == PaymentStatus.FAILED:
        application.payment_status = PaymentStatus.FAILED
    else:
        raise ValueError(f"Unsupported payment outcome: {outcome.value}")

    db.commit()
    db.refresh(application)
    logger.info("Payment %s recorded for %s", outcome.value, reference)
    return application
