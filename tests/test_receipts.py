import unicodedata
from io import BytesIO

import pytest
from pypdf import PdfReader

import receipts
from errors import DeviceError, PortError, TransportFailure, ValidationFailure
from messages import MESSAGES, t
from models import RenewalRecord, SummaryRow
from reader import SimulatedReader

RECORD = RenewalRecord(
    transaction_id="TRX-20240601103000-ABC123",
    fisher_id="F1002",
    fisher_name="ياسر",
    boat="الخيرات",
    social_security_number="SSN-1",
    amount=500.0,
    renewal_date="2024-06-01",
    new_expiry_date="2025-06-01",
    operator_name="موظف التأمين",
    authorization_pdf_path="auth_TRX.pdf",
    receipt_pdf_path="rec_TRX.pdf",
    timestamp="2024-06-01T10:30:00",
)


def test_documents_are_pdfs():
    assert receipts.build_receipt_pdf(RECORD).startswith(b"%PDF")
    assert receipts.build_authorization_pdf(RECORD).startswith(b"%PDF")
    pdf = receipts.build_monthly_report_pdf("2024-06", [SummaryRow("Sardine", "kg", 80.0)], "admin@port.com")
    assert pdf.startswith(b"%PDF")
    assert receipts.build_monthly_report_pdf("2024-06", []).startswith(b"%PDF")


def _pdf_text(data: bytes) -> str:
    return "\n".join(page.extract_text() for page in PdfReader(BytesIO(data)).pages)


def _shows(text: str, value: str) -> bool:
    # glyphs are drawn shaped and in visual order
    folded = unicodedata.normalize("NFKC", text)
    return value in folded or value[::-1] in folded


def test_receipt_shows_arabic_name_and_boat():
    text = _pdf_text(receipts.build_receipt_pdf(RECORD))
    assert _shows(text, "ياسر")
    assert _shows(text, "الخيرات")
    assert "TRX-20240601103000-ABC123" in text


def test_authorization_and_report_show_arabic_text():
    assert _shows(_pdf_text(receipts.build_authorization_pdf(RECORD)), "ياسر")
    text = _pdf_text(receipts.build_monthly_report_pdf("2024-06", [SummaryRow("سردين", "kg", 80.0)]))
    assert _shows(text, "سردين")
    assert "80.00" in text


def test_rtl_leaves_latin_text_alone():
    assert receipts.rtl("Sardine 12.50 DA") == "Sardine 12.50 DA"
    assert receipts.rtl("ياسر") != "ياسر"


def test_both_languages_define_the_same_keys():
    assert set(MESSAGES["ar"]) == set(MESSAGES["fr"])


def test_error_codes_have_messages():
    for exc in (PortError(), TransportFailure(), ValidationFailure("x"), DeviceError(),
                ValidationFailure("x", code="invalid_amount")):
        assert exc.code in MESSAGES["fr"]


def test_t_falls_back():
    assert t("status_active", "fr") == "Actif"
    assert t("status_active", "de") == "مفعل"
    assert t("no_such_key", "fr") == "no_such_key"


def test_simulated_reader():
    r = SimulatedReader("04:aa")
    assert r.read_uid() == "04:aa"
    r.write_card("04:aa", {"insurance_expiry": "2025-06-01"})
    assert r.written == {"04:aa": {"insurance_expiry": "2025-06-01"}}

    with pytest.raises(DeviceError):
        SimulatedReader("").read_uid()
    with pytest.raises(DeviceError):
        SimulatedReader("04:aa", fail=True).write_card("04:aa", {})
