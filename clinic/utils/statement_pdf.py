# clinic/utils/statement_pdf.py
"""
Patient billing statement rendered with reportlab.
"""

from io import BytesIO
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from clinic.schemas.patient import PatientBalance, PatientRead
from clinic.schemas.payment import PaymentRead
from clinic.schemas.treatment import TreatmentRead
from clinic.utils.datetime_utils import utc_today
from clinic.utils.money import format_money

GRID_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("ALIGN", (-3, 1), (-1, -1), "RIGHT"),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 10),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
        ("TEXTCOLOR", (0, 1), (-1, -1), colors.black),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 1), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 1, colors.black),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 1), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 1), (-1, -1), 4),
    ]
)


def generate_statement_pdf(
    patient: PatientRead,
    treatments: list[TreatmentRead],
    payments: list[PaymentRead],
    balance: PatientBalance,
    *,
    currency_symbol: str = "",
    clinic_name: str = "Clinic",
    clinic_address: Optional[str] = None,
    clinic_phone: Optional[str] = None,
    clinic_email: Optional[str] = None,
) -> BytesIO:
    """
    Build the statement PDF and return it as a rewound BytesIO buffer.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=15 * mm,
        bottomMargin=10 * mm,
        title=f"Statement - {patient.name}",
    )

    def money(value) -> str:
        return format_money(value, currency_symbol)

    elements = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "StatementTitle",
        parent=styles["Heading1"],
        fontSize=22,
        textColor=colors.black,
        spaceAfter=12,
        fontName="Helvetica-Bold",
    )
    heading_style = ParagraphStyle(
        "StatementHeading",
        parent=styles["Heading2"],
        fontSize=14,
        textColor=colors.black,
        spaceAfter=6,
        fontName="Helvetica-Bold",
    )
    normal_style = ParagraphStyle(
        "StatementNormal",
        parent=styles["Normal"],
        fontSize=10,
        textColor=colors.black,
        spaceAfter=6,
    )
    small_style = ParagraphStyle(
        "StatementSmall",
        parent=styles["Normal"],
        fontSize=8,
        textColor=colors.black,
        spaceAfter=4,
    )

    # Header
    elements.append(Paragraph(escape(clinic_name), title_style))
    contact = [part for part in (clinic_address, clinic_phone, clinic_email) if part]
    if contact:
        elements.append(Paragraph(escape(" • ".join(contact)), small_style))
    elements.append(Spacer(1, 5 * mm))
    elements.append(Paragraph("Patient Statement", heading_style))
    elements.append(Paragraph(f"Date: {utc_today().strftime('%d/%m/%Y')}", normal_style))
    elements.append(Spacer(1, 3 * mm))

    # Patient
    patient_data = [
        ["Patient Name:", patient.name],
        ["Age:", f"{patient.age} years"],
        ["Gender:", patient.gender.value.capitalize()],
        ["Residence:", patient.residence],
    ]
    if patient.phone:
        patient_data.append(["Phone:", patient.phone])
    if patient.email:
        patient_data.append(["Email:", patient.email])

    patient_table = Table(patient_data, colWidths=[50 * mm, 120 * mm])
    patient_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    elements.append(patient_table)
    elements.append(Spacer(1, 5 * mm))

    # Treatments
    elements.append(Paragraph("Treatments:", heading_style))
    if treatments:
        treatment_data = [["Date", "Diagnosis", "Status", "Cost", "Paid", "Outstanding"]]
        for t in sorted(treatments, key=lambda t: t.treatment_date):
            treatment_data.append(
                [
                    t.treatment_date.strftime("%d/%m/%Y"),
                    Paragraph(escape(t.diagnosis), small_style),
                    t.payment_status.value.capitalize(),
                    money(t.total_cost),
                    money(t.amount_paid),
                    money(t.outstanding),
                ]
            )
        treatment_table = Table(
            treatment_data,
            colWidths=[22 * mm, 52 * mm, 20 * mm, 25 * mm, 25 * mm, 26 * mm],
        )
        treatment_table.setStyle(GRID_TABLE_STYLE)
        elements.append(treatment_table)
    else:
        elements.append(Paragraph("No treatments on record.", normal_style))
    elements.append(Spacer(1, 5 * mm))

    # Payments
    elements.append(Paragraph("Payments:", heading_style))
    if payments:
        payment_data = [["Date", "Method", "Notes", "Amount"]]
        for p in sorted(payments, key=lambda p: p.payment_date):
            payment_data.append(
                [
                    p.payment_date.strftime("%d/%m/%Y"),
                    p.method.value.capitalize(),
                    Paragraph(escape(p.notes or "-"), small_style),
                    money(p.amount),
                ]
            )
        payment_table = Table(payment_data, colWidths=[25 * mm, 30 * mm, 85 * mm, 30 * mm])
        payment_table.setStyle(GRID_TABLE_STYLE)
        elements.append(payment_table)
    else:
        elements.append(Paragraph("No payments received.", normal_style))
    elements.append(Spacer(1, 5 * mm))

    # Totals
    totals = Table(
        [
            ["Total billed:", money(balance.total_cost)],
            ["Total paid:", money(balance.total_paid)],
            ["Balance due:", money(balance.total_owed)],
        ],
        colWidths=[130 * mm, 40 * mm],
    )
    totals.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
                ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
            ]
        )
    )
    elements.append(totals)

    doc.build(elements)
    buffer.seek(0)
    return buffer
