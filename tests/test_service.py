from pathlib import Path

import pytest

from errors import AuthFailure, Forbidden, NotFound, ValidationFailure
from models import Fisher, SummaryRow
from service import PortService


def test_authenticate_through_service(service):
    assert service.authenticate("csns@port.com", "123456").role == "CSNS_OPERATOR"
    with pytest.raises(AuthFailure):
        service.authenticate("csns@port.com", "nope")


# ---------- Fishers ----------

def test_add_fisher(service, csns_op):
    added = service.add_fisher(Fisher(" F3000 ", "04:aa", "Karim ", "Nour", "2025-03-01"), csns_op)
    assert added.fisher_id == "F3000"
    assert added.name == "Karim"
    assert service.get_fisher("F3000") == added
    assert [f.fisher_id for f in service.list_fishers()] == ["F1001", "F1002", "F3000"]


def test_add_duplicate_fisher_rejected(service, admin):
    with pytest.raises(ValidationFailure) as info:
        service.add_fisher(Fisher("F1001", "04:zz", "Other", "Boat", "2025-01-01"), admin)
    assert info.value.code == "duplicate_fisher"


def test_add_fisher_validation(service, admin):
    with pytest.raises(ValidationFailure) as info:
        service.add_fisher(Fisher("F9", "", "", "Boat", "soon"), admin)
    assert len(info.value.errors) == 3
    assert info.value.code == "save_error"


def test_update_fisher_replaces_mutable_fields(service, csns_op):
    service.update_fisher(Fisher("F1002", "04:99", "ياسر ب.", "الخيرات 2", "2024-12-31"), csns_op)
    assert service.get_fisher("F1002") == Fisher("F1002", "04:99", "ياسر ب.", "الخيرات 2", "2024-12-31")


def test_update_missing_fisher(service, csns_op):
    with pytest.raises(NotFound):
        service.update_fisher(Fisher("F404", "04:99", "X", "Y", "2024-12-31"), csns_op)


def test_nfc_operator_cannot_edit_fishers(service, nfc_op):
    with pytest.raises(Forbidden):
        service.add_fisher(Fisher("F5", "04:01", "A", "B", "2025-01-01"), nfc_op)
    with pytest.raises(Forbidden):
        service.delete_fisher("F1001", nfc_op)
    assert len(service.list_fishers()) == 2


def test_delete_fisher_keeps_history(service, csns_op):
    service.manual_search("F1002", csns_op)
    record = service.complete_renewal("F1002", 500, csns_op, "SSN-1")
    logs_before = [log.to_row() for log in service.list_nfc_logs()]

    assert service.delete_fisher("F1002", csns_op) is True
    assert service.delete_fisher("F1002", csns_op) is False

    with pytest.raises(NotFound):
        service.get_fisher("F1002")
    assert [log.to_row() for log in service.list_nfc_logs()] == logs_before
    assert service.list_renewals() == [record]


# ---------- Catches ----------

def test_save_catch_assigns_id_and_timestamp(service, admin):
    first = service.save_catch(admin, "2024-06-05", " Sardine ", "محمد أمين", "لؤلؤة البحر", "50", "kg")
    second = service.save_catch(admin, "2024-06-06", "Sole", "", "", 3, "piece")
    assert (first.id, second.id) == (1, 2)
    assert first.fish_type == "Sardine"
    assert first.quantity == 50.0
    assert first.created_by == "admin@port.com"
    assert first.timestamp == "2024-06-01T10:30:00"
    assert [c.id for c in service.list_catches()] == [2, 1]


def test_save_catch_requires_fish_type(service, admin):
    with pytest.raises(ValidationFailure) as info:
        service.save_catch(admin, "2024-06-05", "", "", "", 5, "kg")
    assert info.value.errors == ["Fish type is required."]
    assert service.list_catches() == []


def test_update_catch(service, admin):
    c = service.save_catch(admin, "2024-06-05", "Sardine", "A", "B", 50, "kg")
    updated = service.update_catch(c.id, admin, "2024-06-07", "Merlu", "A", "B", 1.2, "ton")
    assert updated.id == c.id
    assert service.list_catches() == [updated]
    assert updated.unit == "ton"


def test_update_missing_catch(service, admin):
    with pytest.raises(NotFound):
        service.update_catch(77, admin, "2024-06-07", "Merlu", "A", "B", 1, "kg")


def test_only_admin_records_catches(service, csns_op):
    with pytest.raises(Forbidden):
        service.save_catch(csns_op, "2024-06-05", "Sardine", "", "", 1, "kg")


def test_fish_types_include_recorded(service, admin):
    service.save_catch(admin, "2024-06-05", "Espadon", "", "", 1, "piece")
    types = service.fish_types()
    assert types[0] == "Sardine"
    assert types[-1] == "Espadon"


# ---------- Reports ----------

def test_monthly_summary(service, admin):
    service.save_catch(admin, "2024-06-05", "Sardine", "", "", 50, "kg")
    service.save_catch(admin, "2024-06-20", "Sardine", "", "", 30, "kg")
    service.save_catch(admin, "2024-06-21", "Sardine", "", "", 2, "ton")
    service.save_catch(admin, "2024-05-21", "Anchoïs", "", "", 9, "kg")

    summary = service.monthly_summary("2024-06")
    assert summary == [SummaryRow("Sardine", "kg", 80.0), SummaryRow("Sardine", "ton", 2.0)]
    assert service.monthly_summary("2024-06") == summary


def test_monthly_summary_rejects_bad_month(service):
    with pytest.raises(ValidationFailure) as info:
        service.monthly_summary("June")
    assert info.value.code == "invalid_month"


def test_monthly_report_exports(service, admin):
    service.save_catch(admin, "2024-06-05", "Sardine", "", "", 50, "kg")
    assert service.monthly_report_csv("2024-06").startswith(b"fish_type,unit,total")
    assert service.monthly_report_pdf("2024-06", admin).startswith(b"%PDF")


def test_export_report_saves_under_export_dir(service, tmp_path):
    saved = service.export_report("../../Report_2024-06.csv", b"a,b\n")
    assert saved == (tmp_path / "exports" / "Report_2024-06.csv").as_posix()
    assert Path(saved).read_bytes() == b"a,b\n"


def test_export_report_blank_name_is_cancel(service):
    assert service.export_report("", b"x") is None
    assert service.export_report("   ", b"x") is None


def test_sqlite_backed_service(sqlite_storage, admin, nfc_op):
    svc = PortService(sqlite_storage)
    svc.save_catch(admin, "2024-06-05", "Sardine", "", "", 50, "kg")
    svc.manual_search("F1001", nfc_op)
    assert len(svc.list_catches()) == 1
    assert svc.list_nfc_logs()[0].fisher_id == "F1001"
    assert svc.monthly_summary("2024-06") == [SummaryRow("Sardine", "kg", 50.0)]
