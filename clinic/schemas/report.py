# clinic/schemas/report.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from clinic.models.inventory import TransactionType
from clinic.schemas.common import UTCDateTime
from clinic.schemas.inventory import InventoryItemResponse
from clinic.schemas.treatment import TreatmentResponse

ChartRange = Literal["week", "month", "year"]


class RevenuePoint(BaseModel):
    """
    One day of the revenue series.

    revenue is money received (payments dated that day); medication and
    services are the line costs of treatments given that day.
    """

    day: date
    revenue: Decimal
    medication: Decimal
    services: Decimal


class DashboardSummary(BaseModel):
    total_patients: int
    total_treatments: int
    low_stock_count: int
    total_revenue: Decimal
    low_stock_items: list[InventoryItemResponse]
    recent_treatments: list[TreatmentResponse]


class RevenueChart(BaseModel):
    range: ChartRange
    start_date: date
    end_date: date
    points: list[RevenuePoint]


class FinancialTotals(BaseModel):
    total_revenue: Decimal
    medication_revenue: Decimal
    service_revenue: Decimal
    average_daily_revenue: Decimal
    treatment_count: int
    patient_count: int
    average_per_patient: Decimal


class ServiceRevenue(BaseModel):
    name: str
    revenue: Decimal
    count: int


class FinancialReport(BaseModel):
    start_date: date
    end_date: date
    totals: FinancialTotals
    daily: list[RevenuePoint]
    top_services: list[ServiceRevenue]


class ProductUsage(BaseModel):
    name: str
    quantity: int
    value: Decimal


class StockMovementPoint(BaseModel):
    day: date
    additions: int
    deductions: int


class RecentTransaction(BaseModel):
    id: UUID
    inventory_item_id: UUID
    item_name: str
    type: TransactionType
    quantity: int
    balance: int
    created_at: UTCDateTime


class InventoryReport(BaseModel):
    start_date: date
    end_date: date
    total_items: int
    low_stock_count: int
    total_value: Decimal
    value_by_category: dict[str, Decimal]
    top_products: list[ProductUsage]
    movements: list[StockMovementPoint]
    recent_transactions: list[RecentTransaction]


class VisitPoint(BaseModel):
    day: date
    new_patients: int
    return_patients: int


class PatientReport(BaseModel):
    start_date: date
    end_date: date
    total_patients: int
    active_patients: int
    new_patients: int
    return_patients: int
    gender_distribution: dict[str, int]
    age_distribution: dict[str, int]
    visits: list[VisitPoint]
