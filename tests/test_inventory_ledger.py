import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import OperationalError

from clinic.core.exceptions import BackendError, InsufficientStockError, NotFoundError, ValidationError
from clinic.models import InventoryCategory, ReferenceType, TransactionType
from clinic.models.inventory import MAX_STOCK_QUANTITY
from clinic.schemas.inventory import InventoryItemCreate, InventoryItemUpdate, InventoryTransactionCreate
from clinic.services.clinic_state import ClinicState
from clinic.services.inventory_service import (
    OPENING_STOCK_REASON,
    compute_balance,
    is_low_stock,
    validate_quantity,
)


def txn(type_, quantity, reason="test"):
    return InventoryTransactionCreate(type=type_, quantity=quantity, reason=reason)


class TestComputeBalance:
    def test_addition_adds(self):
        assert compute_balance(10, TransactionType.ADDITION, 5) == 15

    def test_deduction_subtracts(self):
        assert compute_balance(10, TransactionType.DEDUCTION, 4) == 6

    def test_deduction_to_exactly_zero_is_allowed(self):
        assert compute_balance(10, TransactionType.DEDUCTION, 10) == 0

    def test_deduction_below_zero_raises(self):
        with pytest.raises(InsufficientStockError) as exc_info:
            compute_balance(3, TransactionType.DEDUCTION, 4)
        assert exc_info.value.available == 3
        assert exc_info.value.requested == 4

    def test_adjustment_sets_absolute_level(self):
        assert compute_balance(40, TransactionType.ADJUSTMENT, 25) == 25
        assert compute_balance(5, TransactionType.ADJUSTMENT, 25) == 25

    def test_addition_beyond_integer_column_raises(self):
        assert compute_balance(MAX_STOCK_QUANTITY - 5, TransactionType.ADDITION, 5) == MAX_STOCK_QUANTITY
        with pytest.raises(ValidationError):
            compute_balance(MAX_STOCK_QUANTITY - 5, TransactionType.ADDITION, 6)


class TestValidateQuantity:
    @pytest.mark.parametrize("bad", [0, -1, -50, True, 2.5, "3", None])
    def test_rejects_non_positive_and_non_integers(self, bad):
        with pytest.raises(ValidationError):
            validate_quantity(bad)

    def test_accepts_positive_int(self):
        assert validate_quantity(7) == 7

    def test_upper_bound_is_the_integer_column_limit(self):
        assert validate_quantity(MAX_STOCK_QUANTITY) == MAX_STOCK_QUANTITY
        with pytest.raises(ValidationError):
            validate_quantity(MAX_STOCK_QUANTITY + 1)
        with pytest.raises(ValidationError):
            validate_quantity(10**20)

    def test_schemas_reject_oversized_quantities(self):
        with pytest.raises(SchemaError):
            InventoryTransactionCreate(type=TransactionType.ADDITION, quantity=10**20)
        with pytest.raises(SchemaError):
            InventoryItemCreate(
                name="Gloves",
                category=InventoryCategory.SUPPLY,
                unit="box",
                unit_cost=Decimal("3.00"),
                current_stock=10**20,
            )


class TestRecordTransaction:
    def test_deduction_from_item_without_history(self, ledger, make_bare_item, store):
        """Stock 100, deduct 20: stock is 80 and history holds exactly one entry with balance 80."""
        item = make_bare_item(current_stock=100)

        result = ledger.record_transaction(
            item.id, txn(TransactionType.DEDUCTION, 20, "Dispensed"), created_by="nurse-1"
        )

        assert result.balance == 80
        assert result.created_by == "nurse-1"
        assert ledger.state.get_item(item.id).current_stock == 80

        history = ledger.get_history(item.id)
        assert len(history) == 1
        assert history[0].balance == 80
        assert history[0].type == TransactionType.DEDUCTION

        # Persisted, not just cached
        reloaded = ClinicState.load(store)
        assert reloaded.get_item(item.id).current_stock == 80
        assert [t.balance for t in store.read_transactions(item.id)] == [80]

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_non_positive_quantity_leaves_stock_unchanged(self, ledger, make_bare_item, store, quantity):
        item = make_bare_item(current_stock=100)

        with pytest.raises(ValidationError):
            ledger.record_transaction(item.id, txn(TransactionType.DEDUCTION, quantity), created_by="x")

        assert ledger.state.get_item(item.id).current_stock == 100
        assert ledger.get_history(item.id) == []
        assert store.read_transactions(item.id) == []

    def test_insufficient_stock_is_rejected_and_nothing_written(self, ledger, make_bare_item, store):
        item = make_bare_item(current_stock=5)

        with pytest.raises(InsufficientStockError):
            ledger.record_transaction(item.id, txn(TransactionType.DEDUCTION, 6), created_by="x")

        assert ledger.state.get_item(item.id).current_stock == 5
        assert store.read_transactions(item.id) == []

    def test_unknown_item_raises_not_found(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.record_transaction(uuid.uuid4(), txn(TransactionType.ADDITION, 1), created_by="x")

    def test_current_stock_tracks_latest_balance(self, ledger, make_item, store):
        """After N transactions the item's stock equals the Nth transaction's balance."""
        item = make_item(current_stock=50)
        moves = [
            (TransactionType.ADDITION, 30),
            (TransactionType.DEDUCTION, 45),
            (TransactionType.ADJUSTMENT, 12),
            (TransactionType.DEDUCTION, 2),
            (TransactionType.ADDITION, 100),
        ]

        last = None
        for type_, qty in moves:
            last = ledger.record_transaction(item.id, txn(type_, qty), created_by="x")
            assert ledger.state.get_item(item.id).current_stock == last.balance

        assert last.balance == 110
        assert ClinicState.load(store).get_item(item.id).current_stock == 110

    def test_history_is_newest_first(self, ledger, make_item):
        item = make_item(current_stock=10)
        ledger.record_transaction(item.id, txn(TransactionType.ADDITION, 5), created_by="x")
        ledger.record_transaction(item.id, txn(TransactionType.DEDUCTION, 3), created_by="x")

        balances = [t.balance for t in ledger.get_history(item.id)]
        assert balances == [12, 15, 10]

    def test_reference_is_recorded(self, ledger, make_item):
        item = make_item(current_stock=10)
        result = ledger.record_transaction(
            item.id,
            InventoryTransactionCreate(
                type=TransactionType.ADDITION,
                quantity=20,
                reason="Delivery",
                reference_id="PO-1042",
                reference_type=ReferenceType.PURCHASE,
            ),
            created_by="storekeeper",
        )
        assert result.reference_id == "PO-1042"
        assert result.reference_type == ReferenceType.PURCHASE


class TestItems:
    def test_opening_stock_is_booked_as_adjustment(self, ledger, make_item):
        item = make_item(current_stock=75)

        assert item.current_stock == 75
        history = ledger.get_history(item.id)
        assert len(history) == 1
        assert history[0].type == TransactionType.ADJUSTMENT
        assert history[0].balance == 75
        assert history[0].reason == OPENING_STOCK_REASON

    def test_zero_opening_stock_writes_no_transaction(self, ledger, make_item):
        item = make_item(current_stock=0)
        assert item.current_stock == 0
        assert ledger.get_history(item.id) == []

    def test_update_cannot_touch_stock(self, ledger, make_item):
        item = make_item(current_stock=20)
        with pytest.raises(SchemaError):
            InventoryItemUpdate(current_stock=999)

        updated = ledger.update_item(item.id, InventoryItemUpdate(unit_cost=Decimal("0.75"), supplier="Medipharm"))
        assert updated.unit_cost == Decimal("0.75")
        assert updated.supplier == "Medipharm"
        assert updated.current_stock == 20

    def test_update_rejects_clearing_required_field(self, ledger, make_item):
        item = make_item()
        with pytest.raises(ValidationError):
            ledger.update_item(item.id, InventoryItemUpdate(name=None))

    def test_delete_removes_item_and_ledger(self, ledger, make_item, store):
        item = make_item(current_stock=10)
        ledger.delete_item(item.id)

        with pytest.raises(NotFoundError):
            ledger.state.get_item(item.id)
        assert store.read_transactions(item.id) == []

    def test_search_matches_name_category_and_supplier(self, ledger, make_item):
        make_item(name="Amoxicillin 250mg", supplier="Medipharm")
        make_item(name="Syringe 5ml", category=InventoryCategory.SUPPLY, supplier="SurgiCare")
        make_item(name="Thermometer", category=InventoryCategory.EQUIPMENT, supplier="MedEquip")

        assert [i.name for i in ledger.search_items("amox")] == ["Amoxicillin 250mg"]
        assert [i.name for i in ledger.search_items("surgi")] == ["Syringe 5ml"]
        assert [i.name for i in ledger.search_items("equip")] == ["Thermometer"]
        assert [i.name for i in ledger.search_items(category=InventoryCategory.SUPPLY)] == ["Syringe 5ml"]
        assert len(ledger.search_items("  ")) == 3


class TestLowStock:
    def test_low_stock_is_inclusive_of_reorder_level(self, ledger, make_item):
        at_level = make_item(name="At level", current_stock=10, reorder_level=10)
        above = make_item(name="Above", current_stock=11, reorder_level=10)
        empty = make_item(name="Empty", current_stock=0, reorder_level=0)

        assert is_low_stock(at_level)
        assert not is_low_stock(above)
        assert is_low_stock(empty)
        assert {i.name for i in ledger.low_stock_items()} == {"At level", "Empty"}

    def test_low_stock_follows_transactions(self, ledger, make_item):
        item = make_item(current_stock=12, reorder_level=10)
        assert not is_low_stock(ledger.state.get_item(item.id))

        ledger.record_transaction(item.id, txn(TransactionType.DEDUCTION, 2), created_by="x")
        assert is_low_stock(ledger.state.get_item(item.id))

        ledger.record_transaction(item.id, txn(TransactionType.ADDITION, 50), created_by="x")
        assert not is_low_stock(ledger.state.get_item(item.id))


def broken_write(**fields):
    raise OperationalError("INSERT INTO inventory_transactions", {}, Exception("disk I/O error"))


class TestFailedWrites:
    def test_addition_past_column_limit_leaves_stock_unchanged(self, ledger, make_bare_item, store):
        item = make_bare_item(current_stock=MAX_STOCK_QUANTITY - 5)

        with pytest.raises(ValidationError):
            ledger.record_transaction(item.id, txn(TransactionType.ADDITION, 10), created_by="x")

        assert ledger.state.get_item(item.id).current_stock == MAX_STOCK_QUANTITY - 5
        assert store.read_transactions(item.id) == []

    def test_failed_transaction_write_rolls_back(self, ledger, make_item, store, monkeypatch):
        item = make_item(current_stock=40)
        monkeypatch.setattr(store, "create_transaction", broken_write)

        with pytest.raises(BackendError):
            ledger.record_transaction(item.id, txn(TransactionType.DEDUCTION, 15), created_by="x")

        assert ledger.state.get_item(item.id).current_stock == 40
        assert len(ledger.get_history(item.id)) == 1

        monkeypatch.undo()
        reloaded = ClinicState.load(store)
        assert reloaded.get_item(item.id).current_stock == 40
        assert len(store.read_transactions(item.id)) == 1

    def test_failed_opening_entry_drops_the_new_item(self, ledger, store, monkeypatch):
        monkeypatch.setattr(store, "create_transaction", broken_write)

        with pytest.raises(BackendError):
            ledger.create_item(
                InventoryItemCreate(
                    name="Gloves",
                    category=InventoryCategory.SUPPLY,
                    unit="box",
                    unit_cost=Decimal("3.00"),
                    current_stock=25,
                ),
                created_by="x",
            )

        assert ledger.state.items == []
        monkeypatch.undo()
        reloaded = ClinicState.load(store)
        assert reloaded.items == []
        assert reloaded.transactions == []
