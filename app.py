"""
app.py
Streamlit front office for the fishing port (catches, card lookup, insurance renewals).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date

import pandas as pd
import streamlit as st

import auth
import db
import utils
from config import Config, ensure_dirs
from errors import PortError
from messages import t
from models import UNITS, Fisher, Role
from reader import SimulatedReader
from service import PortService, RenewalStep, RenewalWizard

logging.basicConfig(level=Config.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("portmaster")

st.set_page_config(page_title="PortMaster", layout="wide")


@st.cache_resource
def get_service() -> PortService:
    ensure_dirs()
    storage = db.open_storage(Config)
    db.init_db(storage, auth.hash_password(Config.DEFAULT_PASSWORD, rounds=Config.BCRYPT_ROUNDS))
    return PortService(
        storage,
        reader=SimulatedReader(Config.READER_UID),
        export_dir=Config.EXPORT_DIR,
        receipt_dir=Config.RECEIPT_DIR,
    )


def lang() -> str:
    return st.session_state.get("lang", Config.LANG)


def show_error(exc: PortError):
    logger.debug("Action failed: %r", exc)
    st.error(t(exc.code, lang()))
    errors = getattr(exc, "errors", None)
    if errors and len(errors) > 1:
        for e in errors:
            st.caption(e)


def require_login():
    if "user" not in st.session_state:
        st.session_state.user = None
    if "lang" not in st.session_state:
        st.session_state.lang = Config.LANG


def logout():
    st.session_state.user = None
    st.session_state.scan_result = None
    st.session_state.wizard = None


def language_toggle():
    st.session_state.lang = st.sidebar.radio("Langue / اللغة", ["ar", "fr"], index=["ar", "fr"].index(lang()))


def login_screen(service: PortService):
    st.title("⚓ PortMaster")

    col1, col2 = st.columns([1, 1])
    with col1:
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            try:
                st.session_state.user = service.authenticate(email, password)
                st.rerun()
            except PortError as exc:
                show_error(exc)

    with col2:
        st.info(
            "Seed accounts:\n\n"
            "- **admin@port.com** (catches & reports)\n"
            "- **nfc@port.com** (card checks)\n"
            "- **csns@port.com** (insurance renewals)"
        )


# ---------- Card lookup ----------

def show_scan_result(result):
    f = result.fisher
    text = t(result.message, lang())
    if result.status == "active":
        st.success(text)
    elif result.status == "expired":
        st.error(text)
    elif result.status == "not_found":
        st.warning(text)
    else:
        st.error(text)
    if f is not None:
        st.write(f"**{f.name}** | {f.fisher_id} | {f.boat} | {f.insurance_expiry or '-'}")


def scan_page(service: PortService):
    st.header("📡 Card check")
    user = st.session_state.user

    c1, c2 = st.columns([1, 2])
    with c1:
        if st.button("Scan card", type="primary"):
            try:
                st.session_state.scan_result = service.scan_card(user)
                st.session_state.wizard = None
            except PortError as exc:
                show_error(exc)
    with c2:
        query = st.text_input("Fisher ID or name")
        if st.button("Search"):
            try:
                st.session_state.scan_result = service.manual_search(query, user)
                st.session_state.wizard = None
            except PortError as exc:
                show_error(exc)

    result = st.session_state.get("scan_result")
    if not result:
        return

    st.divider()
    show_scan_result(result)

    if result.status == "expired" and user.role_enum is Role.CSNS_OPERATOR:
        if st.session_state.get("wizard") is None and st.button("Renew insurance"):
            try:
                st.session_state.wizard = RenewalWizard(service, result, user)
            except PortError as exc:
                show_error(exc)
        if st.session_state.get("wizard") is not None:
            renewal_wizard(st.session_state.wizard)


def renewal_wizard(wizard: RenewalWizard):
    st.subheader("🔁 Insurance renewal")

    if wizard.step == RenewalStep.AUTHORIZATION:
        st.write(f"**{wizard.fisher.name}** ({wizard.fisher.fisher_id})")
        ssn = st.text_input("Social security number")
        c1, c2 = st.columns(2)
        if c1.button("Generate authorization", type="primary", disabled=not ssn.strip()):
            try:
                wizard.authorize(ssn)
                st.rerun()
            except PortError as exc:
                show_error(exc)
        if c2.button("Cancel"):
            wizard.cancel()
            st.session_state.wizard = None
            st.rerun()

    elif wizard.step == RenewalStep.PAYMENT:
        st.caption(f"Authorization: {wizard.auth_code}")
        amount = st.text_input("Amount (DA)")
        c1, c2 = st.columns(2)
        if c1.button("Confirm renewal", type="primary", disabled=not amount.strip()):
            try:
                wizard.confirm_payment(amount)
                st.success(t("renewal_success", lang()))
                st.rerun()
            except PortError as exc:
                show_error(exc)
        if c2.button("Cancel"):
            wizard.cancel()
            st.session_state.wizard = None
            st.rerun()

    elif wizard.step == RenewalStep.RECEIPT:
        r = wizard.record
        st.success(t("renewal_success", lang()))
        st.dataframe(pd.DataFrame([r.to_row()]).T.rename(columns={0: ""}), use_container_width=True)
        st.download_button(
            "Download receipt",
            data=wizard.receipt_pdf(),
            file_name=f"rec_{r.transaction_id}.pdf",
            mime="application/pdf",
        )
        if st.button("Close"):
            st.session_state.wizard = None
            st.session_state.scan_result = None
            st.rerun()


def history_page(service: PortService):
    user = st.session_state.user
    if user.role_enum is Role.CSNS_OPERATOR:
        st.header("🧾 Renewals history")
        search = st.text_input("Search (transaction / name)")
        rows = [
            r.to_row() for r in service.list_renewals()
            if not search.strip()
            or utils.text_contains(r.transaction_id, search.strip())
            or utils.text_contains(r.fisher_name, search.strip())
        ]
    else:
        st.header("📜 Scan log")
        rows = [log.to_row() for log in service.list_nfc_logs()]

    if rows:
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    else:
        st.caption("No entries yet.")


# ---------- Fishers ----------

def fisher_form(service: PortService, existing: Fisher | None = None):
    if existing:
        st.subheader(f"✏️ Edit fisher ({existing.fisher_id})")
    else:
        st.subheader("➕ Add fisher")

    col1, col2 = st.columns(2)
    with col1:
        fisher_id = st.text_input("Fisher ID", value=(existing.fisher_id if existing else ""), disabled=bool(existing))
        name = st.text_input("Name", value=(existing.name if existing else ""))
        boat = st.text_input("Boat", value=(existing.boat if existing else ""))
    with col2:
        card_uid = st.text_input("Card UID", value=(existing.card_uid if existing else ""), placeholder="04:a1:b2:c3")
        expiry_default = date.fromisoformat(existing.insurance_expiry) if existing and existing.insurance_expiry else date.today()
        insurance_expiry = st.date_input("Insurance expiry", value=expiry_default).isoformat()

    if st.button("Update" if existing else "Save", type="primary"):
        fisher = Fisher(fisher_id, card_uid, name, boat, insurance_expiry)
        try:
            if existing:
                service.update_fisher(fisher, st.session_state.user)
                st.session_state.edit_fisher_id = None
                st.success(t("update_success", lang()))
            else:
                service.add_fisher(fisher, st.session_state.user)
                st.success(t("save_success", lang()))
            st.rerun()
        except PortError as exc:
            show_error(exc)


def fishers_page(service: PortService):
    st.header("👥 Fishers")

    fishers = service.list_fishers()
    today = service.today()
    df = pd.DataFrame([
        {**f.to_row(), "status": t(f"status_{utils.activation_status(f.insurance_expiry, today)}", lang())}
        for f in fishers
    ]) if fishers else pd.DataFrame(columns=["fisher_id", "card_uid", "name", "boat", "insurance_expiry", "status"])
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    ids = [f.fisher_id for f in fishers]
    selected_id = st.selectbox("Fisher", options=["(none)"] + ids)
    if selected_id != "(none)":
        c1, c2 = st.columns(2)
        with c1:
            if st.button("Edit"):
                st.session_state.edit_fisher_id = selected_id
                st.rerun()
        with c2:
            delete_confirm = st.checkbox("Confirm delete", value=False, key="del_confirm")
            if st.button("Delete", type="secondary", disabled=not delete_confirm):
                try:
                    service.delete_fisher(selected_id, st.session_state.user)
                    st.success(t("delete_success", lang()))
                    st.rerun()
                except PortError as exc:
                    show_error(exc)

    st.divider()

    edit_id = st.session_state.get("edit_fisher_id")
    if edit_id:
        try:
            fisher_form(service, existing=service.get_fisher(edit_id))
        except PortError as exc:
            st.session_state.edit_fisher_id = None
            show_error(exc)
        if st.button("Cancel edit"):
            st.session_state.edit_fisher_id = None
            st.rerun()
    else:
        fisher_form(service)


# ---------- Catches & reports ----------

def catches_page(service: PortService):
    st.header("🐟 Daily catches")
    user = st.session_state.user

    catches = service.list_catches()
    editing = next((c for c in catches if c.id == st.session_state.get("edit_catch_id")), None)

    st.subheader(f"✏️ Edit catch #{editing.id}" if editing else "➕ New catch")
    col1, col2, col3 = st.columns(3)
    with col1:
        catch_date = st.date_input(
            "Date", value=(date.fromisoformat(editing.date) if editing else date.today())
        ).isoformat()
        options = service.fish_types()
        fish_type = st.selectbox(
            "Fish type", options=["(choose)"] + options,
            index=(options.index(editing.fish_type) + 1 if editing and editing.fish_type in options else 0),
        )
        new_fish_type = st.text_input("Other fish type")
    with col2:
        fisher_name = st.text_input("Fisher name", value=(editing.fisher_name if editing else ""))
        boat = st.text_input("Boat", value=(editing.boat if editing else ""))
    with col3:
        quantity = st.text_input("Quantity", value=(str(editing.quantity) if editing else ""))
        unit = st.selectbox("Unit", UNITS, index=(UNITS.index(editing.unit) if editing else 0))

    chosen_type = new_fish_type.strip() or ("" if fish_type == "(choose)" else fish_type)
    if st.button("Update" if editing else "Save", type="primary"):
        try:
            if editing:
                service.update_catch(editing.id, user, catch_date, chosen_type, fisher_name, boat, quantity, unit)
                st.session_state.edit_catch_id = None
                st.success(t("update_success", lang()))
            else:
                service.save_catch(user, catch_date, chosen_type, fisher_name, boat, quantity, unit)
                st.success(t("save_success", lang()))
            st.rerun()
        except PortError as exc:
            show_error(exc)
    if editing and st.button("Cancel edit"):
        st.session_state.edit_catch_id = None
        st.rerun()

    st.divider()

    if catches:
        rows = [c.to_row() for c in catches]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
        st.download_button(
            "Download catches.csv",
            data=utils.rows_to_csv_bytes(rows),
            file_name="catches.csv",
            mime="text/csv",
        )
        selected = st.selectbox("Edit catch #", options=["(none)"] + [str(c.id) for c in catches])
        if selected != "(none)" and st.button("Edit"):
            st.session_state.edit_catch_id = int(selected)
            st.rerun()
    else:
        st.caption("No catches recorded yet.")


def reports_page(service: PortService):
    st.header("📊 Monthly report")
    user = st.session_state.user

    month = st.text_input("Month (YYYY-MM)", value=date.today().strftime("%Y-%m"))
    try:
        rows = service.monthly_summary(month)
    except PortError as exc:
        show_error(exc)
        return

    if not rows:
        st.caption("No catches for this month.")
        return

    st.dataframe(
        pd.DataFrame([{"fish_type": r.fish_type, "unit": r.unit, "total": r.total} for r in rows]),
        use_container_width=True,
        hide_index=True,
    )

    csv_bytes = service.monthly_report_csv(month)
    pdf_bytes = service.monthly_report_pdf(month, user)

    c1, c2, c3 = st.columns(3)
    c1.download_button("Download CSV", data=csv_bytes, file_name=f"Report_{month}.csv", mime="text/csv")
    c2.download_button("Download PDF", data=pdf_bytes, file_name=f"PortMaster_Report_{month}.pdf", mime="application/pdf")
    with c3:
        filename = st.text_input("Save as", value=f"PortMaster_Report_{month}.pdf")
        if st.button("Save to reports folder"):
            try:
                saved = service.export_report(filename, pdf_bytes)
                if saved:
                    st.success(f"{t('export_saved', lang())}: {saved}")
                else:
                    st.info(t("export_cancelled", lang()))
            except PortError as exc:
                show_error(exc)


PAGES = {
    Role.ADMIN: {"Daily catches": catches_page, "Monthly report": reports_page, "Fishers": fishers_page},
    Role.NFC_OPERATOR: {"Card check": scan_page, "Scan log": history_page},
    Role.CSNS_OPERATOR: {"Card check": scan_page, "Renewals": history_page, "Fishers": fishers_page},
}


def main_app(service: PortService):
    user = st.session_state.user
    st.sidebar.title("⚓ PortMaster")
    st.sidebar.caption(f"Logged in as: {user.name} ({user.email})")
    language_toggle()

    pages = PAGES.get(user.role_enum)
    if not pages:
        st.error(t("forbidden", lang()))
        if st.sidebar.button("Logout"):
            logout()
            st.rerun()
        return

    names = list(pages)
    if st.session_state.get("page") not in names:
        st.session_state.page = names[0]
    st.session_state.page = st.sidebar.radio("Navigate", names, index=names.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    pages[st.session_state.page](service)


# --------- App entry ---------

def run():
    require_login()
    try:
        service = get_service()
    except PortError as exc:
        show_error(exc)
        return

    if not st.session_state.user:
        login_screen(service)
        return

    main_app(service)


if __name__ == "__main__":
    run()
