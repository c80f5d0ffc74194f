# apps/prescriptions/pdf.py
from __future__ import annotations

import io
from datetime import date

from django.utils.html import escape
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from . import rules
from .models import Prescription


def _p(text) -> str:
    return escape(str(text or "-")).replace("\n", "<br/>")


def _asset_images(doctor) -> list:
    """Signature and seal flowables for whichever images the doctor has uploaded."""
    assets = getattr(doctor, "assets", None)
    if assets is None:
        return []
    images = []
    for field in (assets.signature, assets.seal):
        if field and field.storage.exists(field.name):
            with field.open("rb") as fh:
                images.append(Image(io.BytesIO(fh.read()), width=45 * mm, height=22 * mm, kind="proportional"))
    return images


def prescription_pdf_bytes(rx: Prescription, *, viewer_role: str, today: date, clinic_name: str = "Clinic") -> bytes:
    """
    Return an A4 PDF for one prescription: header, patient/doctor grid,
    medication box, refill schedule when continuous, and the signature footer.
    """
    view = rules.project(rx, viewer_role, today=today)
    doctor = rx.doctor
    patient = rx.patient

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=16 * mm, rightMargin=16 * mm,
        topMargin=18 * mm, bottomMargin=16 * mm,
        title=f"Prescription {rx.digital_signature}",
    )

    styles = getSampleStyleSheet()
    H1 = ParagraphStyle("H1", parent=styles["Heading1"], fontSize=16, leading=20, spaceAfter=8)
    Meta = ParagraphStyle("Meta", parent=styles["Normal"], fontSize=9.5, textColor=colors.HexColor("#475569"))
    Body = ParagraphStyle("Body", parent=styles["BodyText"], fontSize=11.5, leading=16)
    Label = ParagraphStyle("Label", parent=styles["Normal"], fontSize=10.5, textColor=colors.HexColor("#0f172a"))

    story = []

    story.append(Paragraph(f"{_p(clinic_name)} · Prescription", H1))
    story.append(Paragraph(f"Issued {rx.issue_date.isoformat()} · valid until {rx.expiration_date.isoformat()}", Meta))
    story.append(Spacer(1, 6))

    grid = [
        [Paragraph("<b>Patient:</b> " + _p(patient.full_name), Label),
         Paragraph("<b>Doctor:</b> Dr. " + _p(doctor.full_name), Label)],
        [Paragraph("<b>Document:</b> " + _p(patient.document_id), Label),
         Paragraph("<b>License:</b> " + _p(doctor.license_number), Label)],
        [Paragraph("<b>Status:</b> " + _p(view["status"]), Label),
         Paragraph("<b>Specialty:</b> " + _p(doctor.specialty.name), Label)],
    ]
    table = Table(grid, colWidths=[None, None])
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    story.append(table)
    story.append(Spacer(1, 10))

    story.append(Paragraph("<b>Medication</b>", Label))
    story.append(Spacer(1, 3))
    lines = [
        f"<b>{_p(rx.medication_name)}</b>",
        f"Dosage: {_p(rx.dosage)}",
        f"Frequency: {_p(rx.frequency)}",
        f"Duration: {_p(rx.duration)}",
    ]
    if rx.instructions:
        lines.append(f"Instructions: {_p(rx.instructions)}")
    story.append(Table(
        [[Paragraph("<br/>".join(lines), Body)]],
        style=TableStyle([
            ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f8fafc")),
            ("BOX", (0, 0), (-1, -1), 0.6, colors.HexColor("#e5e7eb")),
            ("LEFTPADDING", (0, 0), (-1, -1), 8),
            ("RIGHTPADDING", (0, 0), (-1, -1), 8),
            ("TOPPADDING", (0, 0), (-1, -1), 8),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
        ]),
    ))
    story.append(Spacer(1, 10))

    fills = f"Dispensations: {rx.current_dispensations} of {rx.max_dispensations}"
    if rx.is_continuous:
        nxt = rx.next_refill_date.isoformat() if rx.next_refill_date else "-"
        fills += (
            f" · refill every {rx.refill_every_days} day(s) until {rx.treatment_end_date.isoformat()}"
            f" · next refill {nxt} ({view['continuous_state']})"
        )
    story.append(Paragraph(fills, Label))
    story.append(Spacer(1, 14))

    images = _asset_images(doctor)
    if images:
        story.append(Table([images], hAlign="LEFT"))
        story.append(Spacer(1, 6))

    story.append(Paragraph(f"Digital signature: {_p(rx.digital_signature)}", Meta))
    story.append(Paragraph("This document was generated electronically.", Meta))

    doc.build(story)
    return buf.getvalue()
