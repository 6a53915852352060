# clinic/schemas/inventory.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Any
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)

from clinic.models.inventory import (
    MAX_STOCK_QUANTITY,
    InventoryCategory,
    ReferenceType,
    TransactionType,
)
from clinic.schemas.common import UTCDateTime

NameStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=255),
]

UnitStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=50),
]

OptStr255 = (
    Annotated[
        str,
        StringConstraints(strip_whitespace=True, max_length=255),
    ]
    | None
)

OptStr1000 = (
    Annotated[
        str,
        StringConstraints(strip_whitespace=True, max_length=1000),
    ]
    | None
)


class InventoryItemBase(BaseModel):
    """
    Shared fields for create/response.

    - Optional strings accept None and are limited in length when present.
    - Empty strings from UI are normalized to None.
    """

    name: NameStr
    category: InventoryCategory
    unit: UnitStr
    unit_cost: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    reorder_level: int = Field(default=0, ge=0, le=MAX_STOCK_QUANTITY)
    reorder_quantity: int = Field(default=0, ge=0, le=MAX_STOCK_QUANTITY)

    supplier: OptStr255 = None
    notes: OptStr1000 = None
    expiry_date: date | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("supplier", "notes", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class InventoryItemCreate(InventoryItemBase):
    """
    Used when creating a new item.
    A non-zero current_stock is booked as the opening ledger entry.
    """

    current_stock: int = Field(default=0, ge=0, le=MAX_STOCK_QUANTITY)


class InventoryItemUpdate(BaseModel):
    """
    Used when updating an item (PATCH). All fields optional.

    current_stock is deliberately absent: stock only moves through transactions.
    """

    name: NameStr | None = None
    category: InventoryCategory | None = None
    unit: UnitStr | None = None
    unit_cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    reorder_level: int | None = Field(default=None, ge=0, le=MAX_STOCK_QUANTITY)
    reorder_quantity: int | None = Field(default=None, ge=0, le=MAX_STOCK_QUANTITY)

    supplier: OptStr255 = None
    notes: OptStr1000 = None
    expiry_date: date | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("supplier", "notes", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class InventoryItemRead(InventoryItemBase):
    id: UUID
    current_stock: int
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class InventoryItemResponse(InventoryItemRead):
    is_low_stock: bool = False


class InventoryTransactionCreate(BaseModel):
    """
    Input for recording one stock movement.

    quantity is range-checked by the ledger so that non-positive values
    surface as a domain ValidationError rather than a schema error. Values
    too large for the stock columns are rejected here.
    """

    type: TransactionType
    quantity: int = Field(le=MAX_STOCK_QUANTITY)
    reason: Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)] = ""
    reference_id: Annotated[str, StringConstraints(strip_whitespace=True, max_length=100)] | None = None
    reference_type: ReferenceType = ReferenceType.MANUAL

    model_config = ConfigDict(extra="forbid")

    @field_validator("reference_id", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class InventoryTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    inventory_item_id: UUID
    type: TransactionType
    quantity: int
    balance: int
    reason: str
    reference_id: str | None = None
    reference_type: ReferenceType = ReferenceType.MANUAL
    created_at: UTCDateTime
    created_by: str
