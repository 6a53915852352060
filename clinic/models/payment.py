# clinic/models/payment.py
import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    String,
    Numeric,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.models.base import Base
from clinic.models.treatment import Treatment
from clinic.utils.datetime_utils import utc_now


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"
    INSURANCE = "insurance"
    OTHER = "other"


class PaymentRecordStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


class Payment(Base):
    """
    Money received against one treatment. Append-only.

    `amount` is what was applied to the treatment, so the completed payments
    of a treatment always sum to its amount_paid.
    """

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    treatment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("treatments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(PaymentMethod, name="payment_method_enum"),
        nullable=False,
        default=PaymentMethod.CASH,
    )
    status: Mapped[PaymentRecordStatus] = mapped_column(
        SAEnum(PaymentRecordStatus, name="payment_record_status_enum"),
        nullable=False,
        default=PaymentRecordStatus.COMPLETED,
    )
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        default=utc_now,
    )

    treatment: Mapped["Treatment"] = relationship("Treatment", back_populates="payments")
