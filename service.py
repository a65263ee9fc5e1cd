"""
service.py
Application operations used by the UI: login, fisher/catch CRUD, card lookup,
insurance renewal (with the three-step wizard) and monthly reports.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import replace
from datetime import datetime
from enum import Enum
from pathlib import Path

import auth
import receipts
import utils
from errors import DeviceError, Forbidden, NotFound, TransportFailure, ValidationFailure
from models import (
    MANUAL_UID,
    UNKNOWN_FISHER_ID,
    CatchRecord,
    Fisher,
    NFCLog,
    RenewalRecord,
    Role,
    ScanResult,
    SummaryRow,
    User,
)

logger = logging.getLogger(__name__)

LOOKUP_ROLES = (Role.NFC_OPERATOR, Role.CSNS_OPERATOR)
RENEWAL_ROLES = (Role.CSNS_OPERATOR,)
FISHER_EDIT_ROLES = (Role.CSNS_OPERATOR, Role.ADMIN)
CATCH_ROLES = (Role.ADMIN,)

NFC_LOG_LIMIT = 100


class PortService:
    def __init__(self, storage, reader=None, clock=None, export_dir=None, receipt_dir=None):
        self.storage = storage
        self.reader = reader
        self.clock = clock or datetime.now
        self.export_dir = Path(export_dir) if export_dir else None
        self.receipt_dir = Path(receipt_dir) if receipt_dir else None

    # ---------- Helpers ----------

    def now_iso(self) -> str:
        return self.clock().isoformat(timespec="seconds")

    def today(self) -> str:
        return self.clock().date().isoformat()

    def _next_id(self, table: str, key: str) -> int:
        ids = [int(r[key]) for r in self.storage.all(table) if str(r.get(key, "")).isdigit()]
        return max(ids, default=0) + 1

    # ---------- Auth ----------

    def authenticate(self, email: str, password: str) -> User:
        return auth.authenticate(self.storage, email, password)

    # ---------- Fishers ----------

    def list_fishers(self) -> list[Fisher]:
        return [Fisher.from_row(r) for r in self.storage.all("fishers")]

    def get_fisher(self, fisher_id: str) -> Fisher:
        row = self.storage.get("fishers", fisher_id)
        if row is None:
            raise NotFound(f"fisher {fisher_id} not found")
        return Fisher.from_row(row)

    def _clean_fisher(self, fisher: Fisher) -> Fisher:
        errors = utils.validate_fisher_inputs(
            fisher.fisher_id, fisher.name, fisher.boat, fisher.card_uid, fisher.insurance_expiry
        )
        if errors:
            raise ValidationFailure(errors[0], errors=errors)
        return Fisher(
            fisher_id=fisher.fisher_id.strip(),
            card_uid=fisher.card_uid.strip(),
            name=fisher.name.strip(),
            boat=fisher.boat.strip(),
            insurance_expiry=fisher.insurance_expiry,
        )

    def add_fisher(self, fisher: Fisher, operator: User) -> Fisher:
        auth.require_role(operator, *FISHER_EDIT_ROLES)
        fisher = self._clean_fisher(fisher)
        if self.storage.get("fishers", fisher.fisher_id) is not None:
            raise ValidationFailure(f"fisher {fisher.fisher_id} already exists", code="duplicate_fisher")
        self.storage.put("fishers", fisher.fisher_id, fisher.to_row())
        logger.info("Fisher %s added by %s", fisher.fisher_id, operator.email)
        return fisher

    def update_fisher(self, fisher: Fisher, operator: User) -> Fisher:
        """Replace every mutable field; fisher_id itself never changes."""
        auth.require_role(operator, *FISHER_EDIT_ROLES)
        fisher = self._clean_fisher(fisher)
        self.get_fisher(fisher.fisher_id)
        self.storage.put("fishers", fisher.fisher_id, fisher.to_row())
        logger.info("Fisher %s updated by %s", fisher.fisher_id, operator.email)
        return fisher

    def delete_fisher(self, fisher_id: str, operator: User) -> bool:
        # no referential check: logs and renewals keep their own copies
        auth.require_role(operator, *FISHER_EDIT_ROLES)
        deleted = self.storage.delete("fishers", fisher_id)
        logger.info("Fisher %s delete by %s (existed=%s)", fisher_id, operator.email, deleted)
        return deleted

    # ---------- Catches ----------

    def list_catches(self) -> list[CatchRecord]:
        rows = sorted(self.storage.all("catches"), key=lambda r: int(r["id"]), reverse=True)
        return [CatchRecord.from_row(r) for r in rows]

    def fish_types(self) -> list[str]:
        return utils.fish_type_options(self.storage.all("catches"))

    def _validate_catch(self, catch_date, fish_type, quantity, unit) -> None:
        errors = utils.validate_catch_inputs(catch_date, fish_type, quantity, unit)
        if errors:
            raise ValidationFailure(errors[0], errors=errors)

    def save_catch(self, operator: User, date: str, fish_type: str, fisher_name: str, boat: str,
                   quantity, unit: str) -> CatchRecord:
        auth.require_role(operator, *CATCH_ROLES)
        self._validate_catch(date, fish_type, quantity, unit)
        record = CatchRecord(
            id=self._next_id("catches", "id"),
            date=date,
            fish_type=fish_type.strip(),
            fisher_name=(fisher_name or "").strip(),
            boat=(boat or "").strip(),
            quantity=float(quantity),
            unit=unit,
            created_by=operator.email,
            timestamp=self.now_iso(),
        )
        self.storage.put("catches", str(record.id), record.to_row())
        logger.info("Catch %s saved by %s", record.id, operator.email)
        return record

    def update_catch(self, catch_id: int, operator: User, date: str, fish_type: str, fisher_name: str,
                     boat: str, quantity, unit: str) -> CatchRecord:
        auth.require_role(operator, *CATCH_ROLES)
        if self.storage.get("catches", str(catch_id)) is None:
            raise NotFound(f"catch {catch_id} not found")
        self._validate_catch(date, fish_type, quantity, unit)
        record = CatchRecord(
            id=int(catch_id),
            date=date,
            fish_type=fish_type.strip(),
            fisher_name=(fisher_name or "").strip(),
            boat=(boat or "").strip(),
            quantity=float(quantity),
            unit=unit,
            created_by=operator.email,
            timestamp=self.now_iso(),
        )
        self.storage.put("catches", str(record.id), record.to_row())
        logger.info("Catch %s updated by %s", record.id, operator.email)
        return record

    # ---------- Card lookup ----------

    def _require_lookup_role(self, operator: User, uid: str) -> None:
        # refused attempts are audited too
        try:
            auth.require_role(operator, *LOOKUP_ROLES)
        except Forbidden:
            logger.warning("Lookup refused for %s", operator.email if operator else None)
            if operator is not None:
                self._record_lookup(None, uid, operator, error="forbidden")
            raise

    def scan_card(self, operator: User) -> ScanResult:
        self._require_lookup_role(operator, "")
        try:
            if self.reader is None:
                raise DeviceError("no card reader configured")
            uid = self.reader.read_uid()
        except DeviceError as exc:
            logger.warning("Card reader error: %s", exc)
            return self._record_lookup(None, "", operator, error="device_error")

        fisher = next((f for f in self.list_fishers() if f.card_uid == uid), None)
        return self._record_lookup(fisher, uid, operator)

    def manual_search(self, query: str, operator: User) -> ScanResult:
        self._require_lookup_role(operator, MANUAL_UID)
        query = (query or "").strip()
        if not query:
            return self._record_lookup(None, MANUAL_UID, operator, error="empty_query")

        fisher = next(
            (f for f in self.list_fishers()
             if utils.text_contains(f.fisher_id, query) or utils.text_contains(f.name, query)),
            None,
        )
        return self._record_lookup(fisher, MANUAL_UID, operator)

    def _record_lookup(self, fisher: Fisher | None, uid: str, operator: User, error: str | None = None) -> ScanResult:
        """Classify the lookup and append its audit log entry (always exactly one)."""
        if fisher is None:
            activation = "not_found"
            if error:
                result = ScanResult("error", error, Fisher.unknown(uid))
            else:
                result = ScanResult("not_found", "status_not_found", Fisher.unknown(uid))
        else:
            activation = utils.activation_status(fisher.insurance_expiry, self.today())
            result = ScanResult(activation, f"status_{activation}", fisher)

        log = NFCLog(
            log_id=self._next_id("nfc_logs", "log_id"),
            fisher_id=fisher.fisher_id if fisher else UNKNOWN_FISHER_ID,
            name_from_card=fisher.name if fisher else "Unknown Card",
            boat_from_card=fisher.boat if fisher else "-",
            insurance_expiry_from_card=fisher.insurance_expiry if fisher else "-",
            match_status="found" if fisher else "not_found",
            activation_status=activation,
            timestamp=self.now_iso(),
            operator_email=operator.email,
        )
        self.storage.put("nfc_logs", str(log.log_id), log.to_row())
        logger.info("Lookup by %s: %s (%s)", operator.email, result.status, log.fisher_id)
        return result

    def list_nfc_logs(self, limit: int = NFC_LOG_LIMIT) -> list[NFCLog]:
        rows = sorted(self.storage.all("nfc_logs"), key=lambda r: int(r["log_id"]), reverse=True)
        return [NFCLog.from_row(r) for r in rows[:limit]]

    # ---------- Renewals ----------

    def list_renewals(self) -> list[RenewalRecord]:
        # storage returns insertion order; it breaks ties within the same second
        rows = sorted(enumerate(self.storage.all("renewals")), key=lambda p: (p[1]["timestamp"], p[0]), reverse=True)
        return [RenewalRecord.from_row(r) for _, r in rows]

    def begin_authorization(self, fisher_id: str, operator: User) -> str:
        """Authorization marker for the wizard; nothing is persisted."""
        auth.require_role(operator, *RENEWAL_ROLES)
        fisher = self.get_fisher(fisher_id)
        code = f"AUTH-{fisher.fisher_id}-{self.clock():%Y%m%d%H%M%S}"
        logger.info("Authorization %s generated by %s", code, operator.email)
        return code

    def _new_transaction_id(self) -> str:
        while True:
            tid = f"TRX-{self.clock():%Y%m%d%H%M%S}-{secrets.token_hex(3).upper()}"
            if self.storage.get("renewals", tid) is None:
                return tid

    def _receipt_path(self, name: str) -> str:
        if self.receipt_dir is None:
            return name
        return (self.receipt_dir / name).as_posix()

    def complete_renewal(self, fisher_id: str, amount, operator: User, ssn: str) -> RenewalRecord:
        """
        Extend the fisher's insurance by one year from today.
        The renewal row and the new expiry are written in one transaction;
        card write and PDF files happen after commit and never undo it.
        """
        auth.require_role(operator, *RENEWAL_ROLES)
        ssn = (ssn or "").strip()
        if not ssn:
            raise ValidationFailure("social security number is required", code="ssn_required")
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationFailure("amount must be numeric", code="invalid_amount")
        if not amount > 0:
            raise ValidationFailure("amount must be > 0", code="invalid_amount")

        fisher = self.get_fisher(fisher_id)
        renewal_date = self.today()
        new_expiry = utils.add_one_year(renewal_date)
        tid = self._new_transaction_id()

        record = RenewalRecord(
            transaction_id=tid,
            fisher_id=fisher.fisher_id,
            fisher_name=fisher.name,
            boat=fisher.boat,
            social_security_number=ssn,
            amount=amount,
            renewal_date=renewal_date,
            new_expiry_date=new_expiry,
            operator_name=operator.name,
            authorization_pdf_path=self._receipt_path(f"auth_{tid}.pdf"),
            receipt_pdf_path=self._receipt_path(f"rec_{tid}.pdf"),
            timestamp=self.now_iso(),
        )
        documents = {
            record.authorization_pdf_path: receipts.build_authorization_pdf(record),
            record.receipt_pdf_path: receipts.build_receipt_pdf(record),
        }

        with self.storage.transaction():
            self.storage.put("renewals", tid, record.to_row())
            self.storage.put("fishers", fisher.fisher_id, replace(fisher, insurance_expiry=new_expiry).to_row())
        logger.info("Renewal %s committed for %s until %s", tid, fisher.fisher_id, new_expiry)

        self._write_card(fisher.card_uid, record)
        if self.receipt_dir is not None:
            self._write_documents(documents)
        return record

    def _write_card(self, uid: str, record: RenewalRecord) -> None:
        if self.reader is None:
            return
        try:
            self.reader.write_card(uid, {"fisher_id": record.fisher_id, "insurance_expiry": record.new_expiry_date})
        except DeviceError as exc:
            logger.warning("Card write failed for %s after renewal %s: %s", uid, record.transaction_id, exc)

    def _write_documents(self, documents: dict[str, bytes]) -> None:
        for path, content in documents.items():
            try:
                Path(path).parent.mkdir(parents=True, exist_ok=True)
                Path(path).write_bytes(content)
            except OSError as exc:
                logger.warning("Could not write %s: %s", path, exc)

    # ---------- Reports ----------

    def monthly_summary(self, month: str) -> list[SummaryRow]:
        if not utils.is_valid_month(month):
            raise ValidationFailure(f"invalid month {month!r}", code="invalid_month")
        return utils.monthly_summary(self.storage.all("catches"), month)

    def monthly_report_csv(self, month: str) -> bytes:
        return utils.summary_to_csv_bytes(self.monthly_summary(month))

    def monthly_report_pdf(self, month: str, operator: User | None = None) -> bytes:
        return receipts.build_monthly_report_pdf(
            month, self.monthly_summary(month), operator.email if operator else ""
        )

    def export_report(self, filename: str, content: bytes) -> str | None:
        """Save bytes under the export directory; a blank filename means cancelled."""
        name = Path((filename or "").strip()).name
        if not name:
            return None
        target = (self.export_dir or Path.cwd()) / name
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            logger.error("Export to %s failed: %s", target, exc)
            raise TransportFailure(str(exc)) from exc
        logger.info("Report saved to %s", target)
        return target.as_posix()


class RenewalStep(str, Enum):
    AUTHORIZATION = "authorization"
    PAYMENT = "payment"
    RECEIPT = "receipt"
    CANCELLED = "cancelled"


class RenewalWizard:
    """
    Authorization -> Payment -> Receipt for one expired fisher.
    Nothing is persisted until confirm_payment succeeds.
    """

    def __init__(self, service: PortService, scan_result: ScanResult, operator: User):
        auth.require_role(operator, *RENEWAL_ROLES)
        if scan_result is None or scan_result.status != "expired" or scan_result.fisher is None:
            raise ValidationFailure("only an expired insurance can be renewed", code="renewal_not_allowed")
        self.service = service
        self.fisher = scan_result.fisher
        self.operator = operator
        self.step = RenewalStep.AUTHORIZATION
        self.ssn: str | None = None
        self.auth_code: str | None = None
        self.record: RenewalRecord | None = None

    def _expect(self, step: RenewalStep) -> None:
        if self.step != step:
            raise ValidationFailure(f"wizard is at {self.step.value}, not {step.value}", code="wizard_step")

    def authorize(self, ssn: str) -> str:
        self._expect(RenewalStep.AUTHORIZATION)
        ssn = (ssn or "").strip()
        if not ssn:
            raise ValidationFailure("social security number is required", code="ssn_required")
        self.auth_code = self.service.begin_authorization(self.fisher.fisher_id, self.operator)
        self.ssn = ssn
        self.step = RenewalStep.PAYMENT
        return self.auth_code

    def confirm_payment(self, amount) -> RenewalRecord:
        self._expect(RenewalStep.PAYMENT)
        self.record = self.service.complete_renewal(self.fisher.fisher_id, amount, self.operator, self.ssn)
        self.step = RenewalStep.RECEIPT
        return self.record

    def cancel(self) -> None:
        if self.step == RenewalStep.RECEIPT:
            raise ValidationFailure("renewal already completed", code="wizard_step")
        self.step = RenewalStep.CANCELLED

    @property
    def finished(self) -> bool:
        return self.step in (RenewalStep.RECEIPT, RenewalStep.CANCELLED)

    def receipt_pdf(self) -> bytes:
        self._expect(RenewalStep.RECEIPT)
        return receipts.build_receipt_pdf(self.record)
