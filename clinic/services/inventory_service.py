# clinic/services/inventory_service.py
from __future__ import annotations

import logging
from uuid import UUID

from clinic.core.exceptions import InsufficientStockError, ValidationError
from clinic.models.inventory import (
    MAX_STOCK_QUANTITY,
    InventoryCategory,
    ReferenceType,
    TransactionType,
)
from clinic.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemRead,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryTransactionCreate,
    InventoryTransactionRead,
)
from clinic.services.clinic_state import ClinicState
from clinic.services.clinic_store import ClinicStore

logger = logging.getLogger(__name__)

OPENING_STOCK_REASON = "Opening stock"


def validate_quantity(quantity: object) -> int:
    """
    Ledger quantities are strictly positive integers.
    bool is an int subclass in Python, so it is rejected explicitly.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number.")
    if quantity <= 0:
        raise ValidationError("Quantity must be greater than zero.")
    if quantity > MAX_STOCK_QUANTITY:
        raise ValidationError(f"Quantity cannot exceed {MAX_STOCK_QUANTITY}.")
    return quantity


def compute_balance(previous: int, txn_type: TransactionType, quantity: int) -> int:
    """
    Stock level after applying one transaction.

    - addition:   previous + quantity, at most MAX_STOCK_QUANTITY
    - deduction:  previous - quantity, never below zero
    - adjustment: quantity is the counted stock level (absolute set)
    """
    if txn_type == TransactionType.ADDITION:
        if previous + quantity > MAX_STOCK_QUANTITY:
            raise ValidationError(
                f"Adding {quantity} to {previous} would exceed the maximum stock of {MAX_STOCK_QUANTITY}."
            )
        return previous + quantity
    if txn_type == TransactionType.DEDUCTION:
        if quantity > previous:
            raise InsufficientStockError(
                f"Cannot deduct {quantity}; only {previous} in stock.",
                available=previous,
                requested=quantity,
            )
        return previous - quantity
    if txn_type == TransactionType.ADJUSTMENT:
        return quantity
    raise ValidationError(f"Unknown transaction type: {txn_type}")


def is_low_stock(item: InventoryItemRead) -> bool:
    return item.current_stock <= item.reorder_level


def to_response(item: InventoryItemRead) -> InventoryItemResponse:
    return InventoryItemResponse(**item.model_dump(), is_low_stock=is_low_stock(item))


class InventoryLedger:
    """
    Stock control for inventory items.

    Every stock change is an appended InventoryTransaction whose balance
    becomes the item's current_stock, written in the same database
    transaction.
    """

    def __init__(self, state: ClinicState, store: ClinicStore):
        self.state = state
        self.store = store

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def record_transaction(
        self,
        item_id: UUID,
        payload: InventoryTransactionCreate,
        *,
        created_by: str,
    ) -> InventoryTransactionRead:
        """
        Record one stock movement and update the item's stock.

        Raises ValidationError (bad quantity), NotFoundError (unknown item),
        InsufficientStockError (deduction below zero) or BackendError.
        Nothing changes on failure.
        """
        quantity = validate_quantity(payload.quantity)
        item = self.state.get_item(item_id)
        new_balance = compute_balance(item.current_stock, payload.type, quantity)

        with self.store.transaction():
            txn = self.write_transaction(
                item,
                txn_type=payload.type,
                quantity=quantity,
                balance=new_balance,
                reason=payload.reason,
                reference_id=payload.reference_id,
                reference_type=payload.reference_type,
                created_by=created_by,
            )

        self.state.apply_transaction(txn)
        logger.info(
            "Recorded %s of %d for item_id=%s balance %d -> %d",
            txn.type.value,
            quantity,
            item.id,
            item.current_stock,
            new_balance,
        )
        self.warn_if_crossed_reorder_level(item, new_balance)
        return txn

    def write_transaction(
        self,
        item: InventoryItemRead,
        *,
        txn_type: TransactionType,
        quantity: int,
        balance: int,
        reason: str,
        created_by: str,
        reference_id: str | None = None,
        reference_type: ReferenceType = ReferenceType.MANUAL,
    ) -> InventoryTransactionRead:
        """
        Append a ledger row and move the item's stock to `balance`.

        Checks are the caller's job, and so is the surrounding
        store.transaction(); the state is not touched.
        """
        txn = self.store.create_transaction(
            inventory_item_id=item.id,
            type=txn_type,
            quantity=quantity,
            balance=balance,
            reason=reason,
            reference_id=reference_id,
            reference_type=reference_type,
            created_by=created_by,
        )
        self.store.update_item_stock(item.id, balance)
        return txn

    def warn_if_crossed_reorder_level(self, item: InventoryItemRead, new_balance: int) -> None:
        if item.current_stock > item.reorder_level >= new_balance:
            logger.warning(
                "Item %s (%s) dropped to reorder level: %d / %d %s",
                item.name,
                item.id,
                new_balance,
                item.reorder_level,
                item.unit,
            )

    def get_history(self, item_id: UUID) -> list[InventoryTransactionRead]:
        """Transactions for one item, newest first."""
        self.state.get_item(item_id)
        return list(reversed(self.state.ledger_for(item_id)))

    def low_stock_items(self) -> list[InventoryItemRead]:
        return [item for item in self.state.items if is_low_stock(item)]

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def search_items(
        self,
        search: str | None = None,
        category: InventoryCategory | None = None,
        *,
        low_stock_only: bool = False,
    ) -> list[InventoryItemRead]:
        items = self.state.items
        if category is not None:
            items = [i for i in items if i.category == category]
        if search and search.strip():
            term = search.strip().lower()
            items = [
                i
                for i in items
                if term in i.name.lower()
                or term in i.category.value
                or term in (i.supplier or "").lower()
            ]
        if low_stock_only:
            items = [i for i in items if is_low_stock(i)]
        return items

    def create_item(self, payload: InventoryItemCreate, *, created_by: str) -> InventoryItemRead:
        """
        Create an item. A non-zero opening stock is booked as an adjustment
        so the ledger explains the item's stock from the first row on.
        """
        fields = payload.model_dump(exclude={"current_stock"})
        opening = payload.current_stock
        if opening:
            validate_quantity(opening)

        with self.store.transaction():
            item = self.store.create_item(**fields, current_stock=0)
            txn = None
            if opening > 0:
                txn = self.write_transaction(
                    item,
                    txn_type=TransactionType.ADJUSTMENT,
                    quantity=opening,
                    balance=opening,
                    reason=OPENING_STOCK_REASON,
                    created_by=created_by,
                )

        self.state.apply_item(item)
        if txn is not None:
            self.state.apply_transaction(txn)
        logger.info("Created inventory item %s (%s) opening stock %d", item.name, item.id, opening)
        return self.state.get_item(item.id)

    def update_item(self, item_id: UUID, payload: InventoryItemUpdate) -> InventoryItemRead:
        self.state.get_item(item_id)
        changes = payload.model_dump(exclude_unset=True)
        # name/category/unit/unit_cost cannot be nulled out
        for required in ("name", "category", "unit", "unit_cost", "reorder_level", "reorder_quantity"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be empty.")
        if not changes:
            return self.state.get_item(item_id)

        item = self.store.update_item(item_id, **changes)
        self.state.apply_item(item)
        return item

    def delete_item(self, item_id: UUID) -> None:
        item = self.state.get_item(item_id)
        self.store.delete_item(item_id)
        self.state.remove_item(item_id)
        logger.info("Deleted inventory item %s (%s)", item.name, item_id)
