import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base
from app.models.application import utcnow


class AgencyApplication(Base):
    __tablename__ = "agency_applications"

    # Shares the parent application's identity
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        primary_key=True
    )

    agency_name: Mapped[str] = mapped_column(String(255), nullable=False)
    agency_contact: Mapped[str] = mapped_column(String(255), nullable=False)
    agency_email: Mapped[str] = mapped_column(String(255), nullable=False)
    agency_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    agency_address: Mapped[str] = mapped_column(String(500), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False
    )

    application: Mapped["Application"] = relationship(
        "Application",
        back_populates="agency"
    )

    def __repr__(self) -> str:
        return f"<AgencyApplication(id={self.id}, agency={self.agency_name})>"
