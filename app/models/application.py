import uuid
import enum
from datetime import date, datetime, timezone
from typing import Optional
from decimal import Decimal
from sqlalchemy import (
    String, Boolean, Date, DateTime, Enum, Numeric, Uuid, CheckConstraint
)
from sqlalchemy.orm import relationship, Mapped, mapped_column, validates

from app.db.base import Base
from app.core.utils import generate_reference_number


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ApplicationType(str, enum.Enum):
    TOURIST = "tourist"
    AGENCY = "agency"


class Sex(str, enum.Enum):
    MALE = "M"
    FEMALE = "F"


class ApplicationStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_RECEIVED = "payment_received"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"


class CompletionState(str, enum.Enum):
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"


class Application(Base):
    __tablename__ = "applications"

    # Primary key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    # Shareable reference, issued once on insert
    reference_number: Mapped[str] = mapped_column(
        String(16),
        unique=True,
        index=True,
        default=generate_reference_number,
        nullable=False
    )

    type: Mapped[ApplicationType] = mapped_column(
        Enum(ApplicationType, name="application_type", values_callable=_enum_values),
        nullable=False
    )
    language: Mapped[str] = mapped_column(String(2), default="pt", nullable=False)

    # Traveler
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    given_names: Mapped[str] = mapped_column(String(255), nullable=False)
    last_names: Mapped[str] = mapped_column(String(255), nullable=False)
    sex: Mapped[Sex] = mapped_column(
        Enum(Sex, name="sex", values_callable=_enum_values),
        nullable=False
    )
    birth_date: Mapped[date] = mapped_column(Date, nullable=False)
    birth_place: Mapped[str] = mapped_column(String(255), nullable=False)
    residence_country: Mapped[str] = mapped_column(String(100), nullable=False)
    nationality: Mapped[str] = mapped_column(String(100), nullable=False)

    # Passport
    passport_number: Mapped[str] = mapped_column(String(50), nullable=False)
    passport_validity: Mapped[date] = mapped_column(Date, nullable=False)
    passport_issuer: Mapped[str] = mapped_column(String(255), nullable=False)

    # Trip
    flight_number: Mapped[str] = mapped_column(String(20), nullable=False)
    arrival_date: Mapped[date] = mapped_column(Date, nullable=False)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    arrival_city: Mapped[str] = mapped_column(String(100), nullable=False)
    has_existing_visa: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Accommodation
    accommodation_name: Mapped[str] = mapped_column(String(255), nullable=False)
    accommodation_address: Mapped[str] = mapped_column(String(500), nullable=False)
    accommodation_city: Mapped[str] = mapped_column(String(100), nullable=False)

    # Total fee charged, fixed at submission
    payment_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Lifecycle
    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status", values_callable=_enum_values),
        default=ApplicationStatus.PENDING_PAYMENT,
        nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        default=PaymentStatus.UNPAID,
        nullable=False
    )
    completion_state: Mapped[CompletionState] = mapped_column(
        Enum(CompletionState, name="completion_state", values_callable=_enum_values),
        default=CompletionState.INCOMPLETE,
        nullable=False
    )
    failed_step: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Side effects
    document_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    # Relationships
    agency: Mapped[Optional["AgencyApplication"]] = relationship(
        "AgencyApplication",
        back_populates="application",
        uselist=False,
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint('payment_amount > 0', name='check_positive_payment_amount'),
    )

    def __repr__(self) -> str:
        return f"<Application(reference={self.reference_number}, type={self.type}, status={self.status})>"

    @validates('reference_number', 'payment_amount')
    def validate_immutable(self, key, value):
        """Reference and amount are written once"""
        current = getattr(self, key)
        if current is not None and current != value:
            raise ValueError(f"{key} cannot be changed once set")
        return value

    @property
    def applicant_name(self) -> str:
        return f"{self.given_names} {self.last_names}"

    @property
    def contact_email(self) -> Optional[str]:
        """Where confirmation notices go"""
        if self.type == ApplicationType.AGENCY and self.agency is not None:
            return self.agency.agency_email
        return self.email
