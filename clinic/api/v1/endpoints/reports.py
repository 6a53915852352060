# clinic/api/v1/endpoints/reports.py
import csv
from datetime import date
from io import StringIO
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from clinic.core.clinic_context import ClinicContext, get_clinic_context
from clinic.schemas.report import FinancialReport, InventoryReport, PatientReport
from clinic.services import report_service

router = APIRouter()


def _range(ctx: ClinicContext, start_date: Optional[date], end_date: Optional[date]) -> tuple[date, date]:
    return report_service.resolve_range(
        start_date, end_date, default_days=ctx.settings.default_report_days
    )


@router.get("/financial", response_model=FinancialReport)
def get_financial_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> FinancialReport:
    """
    Daily revenue with medication/service split, totals and top services.
    """
    start, end = _range(ctx, start_date, end_date)
    return report_service.financial_report(ctx.state, start, end)


@router.get("/inventory", response_model=InventoryReport)
def get_inventory_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> InventoryReport:
    """
    Stock value, most prescribed products and stock movements.
    """
    start, end = _range(ctx, start_date, end_date)
    return report_service.inventory_report(ctx.state, start, end)


@router.get("/patients", response_model=PatientReport)
def get_patient_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> PatientReport:
    """
    Demographics and new vs return visits.
    """
    start, end = _range(ctx, start_date, end_date)
    return report_service.patient_report(ctx.state, start, end)


@router.get("/{report_type}/export/csv")
def export_report_csv(
    report_type: str,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    ctx: ClinicContext = Depends(get_clinic_context),
):
    """
    Export a report's daily series to CSV.
    """
    start, end = _range(ctx, start_date, end_date)
    rows = report_service.csv_rows(ctx.state, report_type, start, end)

    output = StringIO()
    writer = csv.writer(output)
    writer.writerows(rows)
    output.seek(0)

    filename = f"{report_type}_report_{start.isoformat()}_{end.isoformat()}.csv"
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
