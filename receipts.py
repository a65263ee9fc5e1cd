"""
receipts.py
PDF documents: renewal authorization slip, payment receipt, monthly catch report.
All functions return the PDF as bytes; saving is up to the caller.

Names, boats and operators are mostly Arabic, so every document is drawn with a
TrueType font that has Arabic glyphs, and Arabic values are shaped and put in
visual order before drawing.
"""

from __future__ import annotations

import re
from io import BytesIO
from pathlib import Path

import arabic_reshaper
import matplotlib
from bidi.algorithm import get_display
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from config import Config
from models import RenewalRecord, SummaryRow

HEADER_BLUE = HexColor("#1F618D")
GRID_GREY = HexColor("#B3B6B7")

FONT = "PortSans"
FONT_BOLD = "PortSans-Bold"

ARABIC_RE = re.compile(r"[\u0600-\u06FF\u0750-\u077F]")


def _bundled_font(filename: str) -> str:
    return (Path(matplotlib.get_data_path()) / "fonts" / "ttf" / filename).as_posix()


def register_fonts(config=Config) -> None:
    if FONT in pdfmetrics.getRegisteredFontNames():
        return
    regular = config.PDF_FONT or _bundled_font("DejaVuSans.ttf")
    bold = config.PDF_FONT_BOLD or config.PDF_FONT or _bundled_font("DejaVuSans-Bold.ttf")
    pdfmetrics.registerFont(TTFont(FONT, regular))
    pdfmetrics.registerFont(TTFont(FONT_BOLD, bold))


def rtl(text) -> str:
    """Shape Arabic letters and reorder for left-to-right drawing. Other text is unchanged."""
    text = str(text)
    if not ARABIC_RE.search(text):
        return text
    return get_display(arabic_reshaper.reshape(text))


def _heading(text: str) -> Paragraph:
    style = ParagraphStyle("PortHeading", parent=getSampleStyleSheet()["Heading2"], fontName=FONT_BOLD)
    return Paragraph(rtl(text), style)


def _doc(buffer):
    register_fonts()
    return SimpleDocTemplate(buffer, pagesize=A4, rightMargin=20, leftMargin=20, topMargin=20, bottomMargin=20)


def _label_value_table(rows, table_width):
    rows = [[label, rtl(value)] for label, value in rows]
    t = Table(rows, colWidths=[table_width * 0.35, table_width * 0.65], hAlign="LEFT")
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (0, -1), HEADER_BLUE),
        ("TEXTCOLOR", (0, 0), (0, -1), colors.white),
        ("BACKGROUND", (1, 0), (1, -1), colors.white),
        ("TEXTCOLOR", (1, 0), (1, -1), colors.black),
        ("FONTNAME", (0, 0), (-1, -1), FONT),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("GRID", (0, 0), (-1, -1), 0.3, GRID_GREY),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    return t


def _render(title: str, rows) -> bytes:
    buffer = BytesIO()
    doc = _doc(buffer)
    table_width = A4[0] - doc.leftMargin - doc.rightMargin

    elements = [_heading(title), Spacer(1, 10), _label_value_table(rows, table_width)]
    doc.build(elements)
    return buffer.getvalue()


def build_authorization_pdf(record: RenewalRecord) -> bytes:
    rows = [
        ["Transaction", record.transaction_id],
        ["Fisher ID", record.fisher_id],
        ["Name", record.fisher_name],
        ["Boat", record.boat],
        ["Social security no.", record.social_security_number],
        ["Date", record.renewal_date],
        ["Operator", record.operator_name],
    ]
    return _render("Insurance renewal authorization", rows)


def build_receipt_pdf(record: RenewalRecord) -> bytes:
    rows = [
        ["Transaction", record.transaction_id],
        ["Fisher ID", record.fisher_id],
        ["Name", record.fisher_name],
        ["Boat", record.boat],
        ["Amount", f"{float(record.amount):,.2f} DA"],
        ["Renewal date", record.renewal_date],
        ["New expiry date", record.new_expiry_date],
        ["Operator", record.operator_name],
    ]
    return _render("Insurance renewal receipt", rows)


def build_monthly_report_pdf(month: str, rows: list[SummaryRow], generated_by: str = "") -> bytes:
    buffer = BytesIO()
    doc = _doc(buffer)
    table_width = A4[0] - doc.leftMargin - doc.rightMargin

    elements = [
        _heading(f"Monthly catch report {month}"),
        _label_value_table([["Month", month], ["Generated by", generated_by or "-"]], table_width),
        Spacer(1, 15),
    ]

    data = [["Fish type", "Unit", "Total"]]
    for r in rows:
        data.append([rtl(r.fish_type), r.unit, f"{r.total:,.2f}"])

    num_cols = len(data[0])
    t = Table(data, colWidths=[table_width / num_cols] * num_cols, hAlign="CENTER")
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, -1), FONT),
        ("FONTNAME", (0, 0), (-1, 0), FONT_BOLD),
        ("GRID", (0, 0), (-1, -1), 0.3, GRID_GREY),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [HexColor("#F8F9F9"), HexColor("#EBF5FB")]),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]))
    elements.append(t)

    doc.build(elements)
    return buffer.getvalue()
