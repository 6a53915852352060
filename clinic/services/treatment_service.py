# clinic/services/treatment_service.py
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from clinic.core.exceptions import InsufficientStockError, ValidationError
from clinic.models.inventory import ReferenceType, TransactionType
from clinic.models.treatment import PaymentStatus
from clinic.schemas.inventory import InventoryItemRead, InventoryTransactionRead
from clinic.schemas.treatment import (
    MedicationLineCreate,
    ServiceLineCreate,
    TreatmentCreate,
    TreatmentRead,
    TreatmentResponse,
)
from clinic.services.clinic_state import ClinicState
from clinic.services.clinic_store import ClinicStore
from clinic.services.inventory_service import InventoryLedger, compute_balance, validate_quantity
from clinic.utils.datetime_utils import utc_today
from clinic.utils.money import ZERO, money_sum, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MedicationLine:
    """A prescribed medication priced at the item's unit cost of the day."""

    inventory_item_id: UUID
    name: str
    quantity: int
    dosage: str
    instructions: str | None
    unit_cost: Decimal
    total_cost: Decimal

    def as_row(self) -> dict:
        return {
            "inventory_item_id": self.inventory_item_id,
            "name": self.name,
            "quantity": self.quantity,
            "dosage": self.dosage,
            "instructions": self.instructions,
            "unit_cost": self.unit_cost,
            "total_cost": self.total_cost,
        }


@dataclass(frozen=True)
class ServiceLine:
    name: str
    description: str | None
    cost: Decimal

    def as_row(self) -> dict:
        return {"name": self.name, "description": self.description, "cost": self.cost}


def prescribe(
    item: InventoryItemRead,
    quantity: int,
    dosage: str,
    instructions: str | None = None,
) -> MedicationLine:
    """
    Snapshot the item's name and unit cost into a medication line.
    Later price changes on the item do not touch this line.
    """
    quantity = validate_quantity(quantity)
    unit_cost = to_money(item.unit_cost)
    return MedicationLine(
        inventory_item_id=item.id,
        name=item.name,
        quantity=quantity,
        dosage=dosage,
        instructions=instructions,
        unit_cost=unit_cost,
        total_cost=to_money(unit_cost * quantity),
    )


def bill_service(line: ServiceLineCreate) -> ServiceLine:
    if line.cost < 0:
        raise ValidationError("Service cost cannot be negative.")
    return ServiceLine(name=line.name, description=line.description, cost=to_money(line.cost))


def compute_total_cost(
    medications: Iterable[MedicationLine],
    services: Iterable[ServiceLine],
) -> Decimal:
    """Σ medication.total_cost + Σ service.cost, in cents."""
    return to_money(
        money_sum(m.total_cost for m in medications) + money_sum(s.cost for s in services)
    )


def to_response(treatment: TreatmentRead, patient_name: str | None = None) -> TreatmentResponse:
    return TreatmentResponse(
        **treatment.model_dump(),
        outstanding_balance=to_money(treatment.total_cost - treatment.amount_paid),
        patient_name=patient_name,
    )


class TreatmentManager:
    def __init__(
        self,
        state: ClinicState,
        store: ClinicStore,
        *,
        deduct_stock: bool = True,
    ):
        self.state = state
        self.store = store
        self.deduct_stock = deduct_stock
        self.ledger = InventoryLedger(state, store)

    def create_treatment(
        self,
        patient_id: UUID,
        payload: TreatmentCreate,
        *,
        created_by: str,
    ) -> TreatmentRead:
        """
        Price the line items, persist the treatment and, when enabled,
        deduct prescribed quantities from stock.

        All checks run before the first write; the treatment and its stock
        deductions commit together or not at all.
        """
        self.state.get_patient(patient_id)

        if not payload.medications and not payload.services:
            raise ValidationError("A treatment needs at least one medication or service.")

        medications = [self._price_medication(line) for line in payload.medications]
        services = [bill_service(line) for line in payload.services]
        total_cost = compute_total_cost(medications, services)

        planned = self._plan_deductions(medications) if self.deduct_stock else {}
        stocked = {item_id: self.state.get_item(item_id) for item_id in planned}

        with self.store.transaction():
            treatment = self.store.create_treatment(
                patient_id=patient_id,
                diagnosis=payload.diagnosis,
                notes=payload.notes,
                treatment_date=payload.treatment_date or utc_today(),
                due_date=payload.due_date,
                total_cost=total_cost,
                amount_paid=ZERO,
                payment_status=PaymentStatus.PENDING,
                created_by=created_by,
                medications=[m.as_row() for m in medications],
                services=[s.as_row() for s in services],
            )
            txns: list[InventoryTransactionRead] = []
            for item_id, (quantity, new_balance) in planned.items():
                txns.append(
                    self.ledger.write_transaction(
                        stocked[item_id],
                        txn_type=TransactionType.DEDUCTION,
                        quantity=quantity,
                        balance=new_balance,
                        reason=f"Dispensed for treatment: {payload.diagnosis}",
                        reference_id=str(treatment.id),
                        reference_type=ReferenceType.TREATMENT,
                        created_by=created_by,
                    )
                )

        self.state.apply_treatment(treatment)
        for txn in txns:
            self.state.apply_transaction(txn)
        for item_id, (_, new_balance) in planned.items():
            self.ledger.warn_if_crossed_reorder_level(stocked[item_id], new_balance)

        logger.info(
            "Created treatment %s for patient_id=%s total=%s medications=%d services=%d",
            treatment.id,
            patient_id,
            total_cost,
            len(medications),
            len(services),
        )
        return treatment

    def _price_medication(self, line: MedicationLineCreate) -> MedicationLine:
        item = self.state.get_item(line.inventory_item_id)
        return prescribe(item, line.quantity, line.dosage, line.instructions)

    def _plan_deductions(self, medications: list[MedicationLine]) -> dict[UUID, tuple[int, int]]:
        """
        Aggregate quantities per item and check each against stock.
        Returns {item_id: (quantity, new_balance)}.
        """
        wanted: Counter[UUID] = Counter()
        for med in medications:
            wanted[med.inventory_item_id] += med.quantity

        plan: dict[UUID, tuple[int, int]] = {}
        for item_id, quantity in wanted.items():
            item = self.state.get_item(item_id)
            try:
                new_balance = compute_balance(item.current_stock, TransactionType.DEDUCTION, quantity)
            except InsufficientStockError as exc:
                raise InsufficientStockError(
                    f"Not enough {item.name} in stock: {item.current_stock} {item.unit} available, "
                    f"{quantity} prescribed.",
                    available=exc.available,
                    requested=exc.requested,
                ) from exc
            plan[item_id] = (quantity, new_balance)
        return plan

    def list_treatments(self, patient_id: UUID | None = None) -> list[TreatmentRead]:
        if patient_id is not None:
            self.state.get_patient(patient_id)
            return self.state.treatments_for(patient_id)
        return self.state.treatments
