# clinic/api/v1/router.py
from fastapi import APIRouter

from clinic.api.v1.endpoints import (
    dashboard,
    inventory_items,
    patients,
    payments,
    reports,
    treatments,
)

api_router = APIRouter()

api_router.include_router(patients.router, prefix="/patients", tags=["patients"])
api_router.include_router(treatments.router, prefix="/treatments", tags=["treatments"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(inventory_items.router, prefix="/inventory-items")
api_router.include_router(dashboard.router, prefix="/dashboard")
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])


@api_router.get("/health", tags=["health"])
def api_health() -> dict:
    return {"status": "ok"}
