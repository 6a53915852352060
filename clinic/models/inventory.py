# clinic/models/inventory.py
import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.models.base import Base
from clinic.utils.datetime_utils import utc_now


class InventoryCategory(str, Enum):
    MEDICATION = "medication"
    SUPPLY = "supply"
    EQUIPMENT = "equipment"


class TransactionType(str, Enum):
    ADDITION = "addition"
    DEDUCTION = "deduction"
    ADJUSTMENT = "adjustment"


class ReferenceType(str, Enum):
    MANUAL = "manual"
    TREATMENT = "treatment"
    PURCHASE = "purchase"


# Stock counts live in 32-bit Integer columns
MAX_STOCK_QUANTITY = 2**31 - 1


class InventoryItem(Base):
    """
    A medication, consumable supply or piece of equipment held by the clinic.

    current_stock is a cache of the latest ledger balance; it is only ever
    written together with a new InventoryTransaction.
    """

    __tablename__ = "inventory_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[InventoryCategory] = mapped_column(
        SAEnum(InventoryCategory, name="inventory_category_enum"),
        nullable=False,
    )

    current_stock: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
        default=0,
    )
    unit: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="e.g., tablet, ml, box, bottle, piece",
    )
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reorder_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        default=utc_now,
        onupdate=utc_now,
    )

    transactions: Mapped[list["InventoryTransaction"]] = relationship(
        "InventoryTransaction",
        back_populates="item",
        cascade="all, delete-orphan",
    )


class InventoryTransaction(Base):
    """
    One immutable ledger row. `balance` is the item's stock level right
    after this transaction was applied.
    """

    __tablename__ = "inventory_transactions"
    __table_args__ = (
        Index("ix_inventory_transactions_item_created", "inventory_item_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    inventory_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="inventory_transaction_type_enum"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    balance: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    reference_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference_type: Mapped[ReferenceType] = mapped_column(
        SAEnum(ReferenceType, name="inventory_reference_type_enum"),
        nullable=False,
        default=ReferenceType.MANUAL,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        default=utc_now,
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    item: Mapped["InventoryItem"] = relationship("InventoryItem", back_populates="transactions")
