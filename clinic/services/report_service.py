# clinic/services/report_service.py
"""
Dashboard and report aggregations.

Every function here is a pure read over a loaded ClinicState. Date ranges
are inclusive on both ends; treatments are bucketed by treatment_date,
payments by payment_date and inventory transactions by the UTC day of
created_at.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from clinic.core.exceptions import ValidationError
from clinic.models.inventory import TransactionType
from clinic.models.patient import Gender
from clinic.schemas.report import (
    ChartRange,
    DashboardSummary,
    FinancialReport,
    FinancialTotals,
    InventoryReport,
    PatientReport,
    ProductUsage,
    RecentTransaction,
    RevenueChart,
    RevenuePoint,
    ServiceRevenue,
    StockMovementPoint,
    VisitPoint,
)
from clinic.schemas.treatment import TreatmentRead
from clinic.services import inventory_service, treatment_service
from clinic.services.clinic_state import ClinicState
from clinic.utils.datetime_utils import iter_days, to_date, trailing_range
from clinic.utils.money import ZERO, money_sum, to_money

logger = logging.getLogger(__name__)

CHART_RANGE_DAYS: dict[str, int] = {"week": 7, "month": 30, "year": 365}

AGE_BUCKETS: list[tuple[str, int, Optional[int]]] = [
    ("0-18", 0, 18),
    ("19-35", 19, 35),
    ("36-50", 36, 50),
    ("51-65", 51, 65),
    ("65+", 66, None),
]

RECENT_TREATMENTS_LIMIT = 5
TOP_SERVICES_LIMIT = 5
TOP_PRODUCTS_LIMIT = 5
RECENT_TRANSACTIONS_LIMIT = 10


def resolve_range(
    start_date: Optional[date],
    end_date: Optional[date],
    *,
    default_days: int = 30,
) -> tuple[date, date]:
    """
    Fill in missing bounds: end defaults to today, start to `default_days`
    days back from end.
    """
    default_start, default_end = trailing_range(default_days, end_date)
    start = start_date or default_start
    end = end_date or default_end
    if start > end:
        raise ValidationError("start_date must not be after end_date.")
    return start, end


def _in_range(day: date, start: date, end: date) -> bool:
    return start <= day <= end


def _medication_cost(treatment: TreatmentRead) -> Decimal:
    return money_sum(m.total_cost for m in treatment.medications)


def _service_cost(treatment: TreatmentRead) -> Decimal:
    return money_sum(s.cost for s in treatment.services)


def _treatments_in(state: ClinicState, start: date, end: date) -> list[TreatmentRead]:
    return [t for t in state.treatments if _in_range(t.treatment_date, start, end)]


# ----------------------------------------------------------------------
# Dashboard
# ----------------------------------------------------------------------


def dashboard_summary(state: ClinicState) -> DashboardSummary:
    low_stock = [inventory_service.to_response(i) for i in state.items if inventory_service.is_low_stock(i)]
    recent = state.treatments[:RECENT_TREATMENTS_LIMIT]
    patient_names = {p.id: p.name for p in state.patients}

    return DashboardSummary(
        total_patients=len(state.patients),
        total_treatments=len(state.treatments),
        low_stock_count=len(low_stock),
        total_revenue=money_sum(t.total_cost for t in state.treatments),
        low_stock_items=low_stock,
        recent_treatments=[
            treatment_service.to_response(t, patient_names.get(t.patient_id)) for t in recent
        ],
    )


def revenue_series(state: ClinicState, start: date, end: date) -> list[RevenuePoint]:
    """One point per day from start to end, zero-filled."""
    revenue: dict[date, Decimal] = defaultdict(lambda: ZERO)
    medication: dict[date, Decimal] = defaultdict(lambda: ZERO)
    services: dict[date, Decimal] = defaultdict(lambda: ZERO)

    for payment in state.payments:
        if _in_range(payment.payment_date, start, end):
            revenue[payment.payment_date] += payment.amount

    for treatment in _treatments_in(state, start, end):
        medication[treatment.treatment_date] += _medication_cost(treatment)
        services[treatment.treatment_date] += _service_cost(treatment)

    return [
        RevenuePoint(
            day=day,
            revenue=to_money(revenue[day]),
            medication=to_money(medication[day]),
            services=to_money(services[day]),
        )
        for day in iter_days(start, end)
    ]


def revenue_chart(state: ClinicState, chart_range: ChartRange = "week", *, today: Optional[date] = None) -> RevenueChart:
    days = CHART_RANGE_DAYS.get(chart_range)
    if days is None:
        raise ValidationError(f"Unknown chart range: {chart_range}")
    start, end = trailing_range(days, today)
    return RevenueChart(
        range=chart_range,
        start_date=start,
        end_date=end,
        points=revenue_series(state, start, end),
    )


# ----------------------------------------------------------------------
# Reports
# ----------------------------------------------------------------------


def financial_report(state: ClinicState, start: date, end: date) -> FinancialReport:
    daily = revenue_series(state, start, end)
    treatments = _treatments_in(state, start, end)

    total_revenue = money_sum(p.revenue for p in daily)
    day_count = len(daily) or 1
    active_patients = {t.patient_id for t in treatments}

    service_revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
    service_count: Counter[str] = Counter()
    for treatment in treatments:
        for line in treatment.services:
            service_revenue[line.name] += line.cost
            service_count[line.name] += 1

    top_services = sorted(
        (
            ServiceRevenue(name=name, revenue=to_money(value), count=service_count[name])
            for name, value in service_revenue.items()
        ),
        key=lambda s: (-s.revenue, s.name),
    )[:TOP_SERVICES_LIMIT]

    totals = FinancialTotals(
        total_revenue=total_revenue,
        medication_revenue=money_sum(p.medication for p in daily),
        service_revenue=money_sum(p.services for p in daily),
        average_daily_revenue=to_money(total_revenue / day_count),
        treatment_count=len(treatments),
        patient_count=len(active_patients),
        average_per_patient=to_money(total_revenue / len(active_patients)) if active_patients else ZERO,
    )
    return FinancialReport(
        start_date=start,
        end_date=end,
        totals=totals,
        daily=daily,
        top_services=top_services,
    )


def inventory_report(state: ClinicState, start: date, end: date) -> InventoryReport:
    items = state.items
    item_names = {i.id: i.name for i in items}

    value_by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for item in items:
        value_by_category[item.category.value] += item.unit_cost * item.current_stock

    # Usage by prescription snapshot name, valued at the snapshot cost
    usage_qty: Counter[str] = Counter()
    usage_value: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for treatment in _treatments_in(state, start, end):
        for med in treatment.medications:
            usage_qty[med.name] += med.quantity
            usage_value[med.name] += med.total_cost

    top_products = [
        ProductUsage(name=name, quantity=qty, value=to_money(usage_value[name]))
        for name, qty in sorted(usage_qty.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_PRODUCTS_LIMIT]
    ]

    additions: Counter[date] = Counter()
    deductions: Counter[date] = Counter()
    in_range = []
    for txn in state.transactions:
        day = to_date(txn.created_at)
        if not _in_range(day, start, end):
            continue
        in_range.append(txn)
        if txn.type == TransactionType.ADDITION:
            additions[day] += txn.quantity
        elif txn.type == TransactionType.DEDUCTION:
            deductions[day] += txn.quantity

    recent = sorted(in_range, key=lambda t: t.created_at, reverse=True)[:RECENT_TRANSACTIONS_LIMIT]

    return InventoryReport(
        start_date=start,
        end_date=end,
        total_items=len(items),
        low_stock_count=sum(1 for i in items if inventory_service.is_low_stock(i)),
        total_value=money_sum(value_by_category.values()),
        value_by_category={k: to_money(v) for k, v in sorted(value_by_category.items())},
        top_products=top_products,
        movements=[
            StockMovementPoint(day=day, additions=additions[day], deductions=deductions[day])
            for day in iter_days(start, end)
        ],
        recent_transactions=[
            RecentTransaction(
                id=txn.id,
                inventory_item_id=txn.inventory_item_id,
                item_name=item_names.get(txn.inventory_item_id, ""),
                type=txn.type,
                quantity=txn.quantity,
                balance=txn.balance,
                created_at=txn.created_at,
            )
            for txn in recent
        ],
    )


def age_bucket(age: int) -> str:
    for label, low, high in AGE_BUCKETS:
        if age >= low and (high is None or age <= high):
            return label
    return AGE_BUCKETS[-1][0]


def patient_report(state: ClinicState, start: date, end: date) -> PatientReport:
    patients = state.patients

    # First-ever visit per patient across all treatments, not just the range
    first_visit: dict = {}
    for treatment in state.treatments:
        current = first_visit.get(treatment.patient_id)
        if current is None or treatment.treatment_date < current:
            first_visit[treatment.patient_id] = treatment.treatment_date

    new_by_day: Counter[date] = Counter()
    return_by_day: Counter[date] = Counter()
    counted_new: set = set()
    treatments = sorted(_treatments_in(state, start, end), key=lambda t: (t.treatment_date, t.created_at))
    for treatment in treatments:
        day = treatment.treatment_date
        if first_visit.get(treatment.patient_id) == day and treatment.patient_id not in counted_new:
            counted_new.add(treatment.patient_id)
            new_by_day[day] += 1
        else:
            return_by_day[day] += 1

    gender_distribution = {g.value: 0 for g in Gender}
    for patient in patients:
        gender_distribution[patient.gender.value] += 1

    age_distribution = {label: 0 for label, _, _ in AGE_BUCKETS}
    for patient in patients:
        age_distribution[age_bucket(patient.age)] += 1

    return PatientReport(
        start_date=start,
        end_date=end,
        total_patients=len(patients),
        active_patients=len({t.patient_id for t in treatments}),
        new_patients=sum(new_by_day.values()),
        return_patients=sum(return_by_day.values()),
        gender_distribution=gender_distribution,
        age_distribution=age_distribution,
        visits=[
            VisitPoint(day=day, new_patients=new_by_day[day], return_patients=return_by_day[day])
            for day in iter_days(start, end)
        ],
    )


# ----------------------------------------------------------------------
# CSV
# ----------------------------------------------------------------------

REPORT_TYPES = ("financial", "inventory", "patients")


def csv_rows(state: ClinicState, report_type: str, start: date, end: date) -> list[list[str]]:
    """Header row followed by the report's daily series."""
    if report_type == "financial":
        report = financial_report(state, start, end)
        return [["Date", "Revenue", "Medication", "Services"]] + [
            [p.day.isoformat(), str(p.revenue), str(p.medication), str(p.services)] for p in report.daily
        ]
    if report_type == "inventory":
        report = inventory_report(state, start, end)
        return [["Date", "Additions", "Deductions"]] + [
            [p.day.isoformat(), str(p.additions), str(p.deductions)] for p in report.movements
        ]
    if report_type == "patients":
        report = patient_report(state, start, end)
        return [["Date", "New Patients", "Return Patients"]] + [
            [p.day.isoformat(), str(p.new_patients), str(p.return_patients)] for p in report.visits
        ]
    raise ValidationError(f"Unknown report type: {report_type}")
