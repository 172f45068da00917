"""
Streamlit Frontend for Money Tracker

The page a signed-in user interacts with: log a transaction, see the
ledger and the net worth derived from it, and optionally pull in linked
bank balances.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before anything is wiped
3. Clear error messages in simple language
4. The UI reflects the optimistic local state even if a save failed

Sign-in uses Streamlit's built-in OIDC login when `[auth]` is configured
in secrets.toml; otherwise the tracker runs as the local device identity.
"""

import asyncio
from typing import Optional

import streamlit as st

from money_tracker.audit import configure_logging, create_correlation_id
from money_tracker.config import get_settings, validate_all_settings
from money_tracker.ledger import (
    IdentityRequiredError,
    ValidationError,
    category_totals,
    format_signed_amount,
)
from money_tracker.models.ledger import Identity, TransactionCategory
from money_tracker.orchestrator import TrackerSession, create_app_components
from money_tracker.services.banking import BankingError


st.set_page_config(
    page_title="Money Tracker",
    page_icon="💵",
    layout="centered",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_session() -> TrackerSession:
    """One TrackerSession per browser session, so ledgers never mix."""
    if "tracker" not in st.session_state:
        configure_logging(get_settings().app.log_level)
        session, _ = create_app_components()
        st.session_state.tracker = session
    return st.session_state.tracker


def auth_configured() -> bool:
    try:
        return "auth" in st.secrets
    except Exception:
        return False


def current_identity() -> Optional[Identity]:
    """Translate the sign-in provider's state into an Identity (or None)."""
    if not auth_configured():
        return Identity.local_device()
    if not st.user.is_logged_in:
        return None
    uid = st.user.get("sub") or st.user.get("email")
    if not uid:
        return None
    return Identity(
        uid=str(uid),
        email=st.user.get("email"),
        display_name=st.user.get("name"),
    )


def money(value, symbol: str) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def render_auth_bar(identity: Optional[Identity]) -> None:
    if not auth_configured():
        st.caption("Running without sign-in: entries are saved on this device.")
        return
    col1, col2 = st.columns([3, 1])
    with col1:
        if identity:
            st.markdown(f"Signed in as **{identity.contact}**")
        else:
            st.markdown("Not signed in")
    with col2:
        if identity:
            st.button("Log out", on_click=st.logout)
        else:
            st.button("Sign in with Google", on_click=st.login, type="primary")


def render_summary(session: TrackerSession, symbol: str) -> None:
    summary = session.summary()
    col1, col2, col3 = st.columns(3)
    col1.metric("Net worth", money(summary.net_worth, symbol))
    if summary.bank_total is not None:
        col2.metric("Bank total", money(summary.bank_total, symbol))
        col3.metric("Combined", money(summary.combined_total, symbol))

    if session.store.last_persist_ok is False:
        st.warning("Your last change could not be saved. It is shown here but may be lost.")

    with st.expander("By category"):
        for category, total in category_totals(session.ledger.transactions).items():
            st.markdown(f"- **{category.value.title()}**: {money(total, symbol)}")


def render_transaction_form(session: TrackerSession) -> None:
    st.subheader("Add a transaction")
    with st.form("tx-form", clear_on_submit=True):
        label = st.text_input("Label", placeholder="e.g. Paycheck, Rent, Savings account")
        amount = st.text_input("Amount", placeholder="0.00")
        category = st.selectbox(
            "Type",
            options=TransactionCategory.user_choices(),
            format_func=lambda c: c.value.title(),
        )
        submitted = st.form_submit_button("Add", type="primary")

    if submitted:
        try:
            run_async(
                session.add_transaction(
                    label, amount, category, correlation_id=create_correlation_id()
                )
            )
            st.rerun()
        except ValidationError as e:
            st.error(e.message)
        except IdentityRequiredError as e:
            st.error(str(e))


def render_ledger(session: TrackerSession) -> None:
    st.subheader("Transactions")
    transactions = session.ledger.transactions
    if not transactions:
        st.info("No transactions yet. Add your first one above.")
        return

    for record in reversed(transactions):
        col1, col2 = st.columns([2, 3])
        suffix = f" ({record.wallet})" if record.wallet else ""
        col1.markdown(f"`{format_signed_amount(record)}`{suffix}")
        col2.markdown(f"{record.label} · *{record.category.value}*")


def render_bank_section(session: TrackerSession, symbol: str) -> None:
    if not session.banking_enabled:
        return
    st.subheader("Bank accounts")

    if st.button("Refresh bank balances"):
        async def refresh():
            try:
                return await session.refresh_bank_balances()
            finally:
                await session.close()

        with st.spinner("Fetching balances..."):
            try:
                run_async(refresh())
            except (BankingError, IdentityRequiredError) as e:
                st.error(f"Could not fetch balances: {e}")

    balances = session.bank_balances
    if balances is None:
        st.caption("Balances of linked accounts appear here after a refresh.")
        return
    for account in balances.accounts:
        mask = f" ••{account.mask}" if account.mask else ""
        subtype = f" · {account.subtype}" if account.subtype else ""
        st.markdown(f"- **{account.name}**{mask}{subtype}: {money(account.balance, symbol)}")


def render_reset(session: TrackerSession) -> None:
    st.markdown("---")
    if not st.session_state.get("confirm_wipe"):
        if st.button("Wipe all data"):
            st.session_state.confirm_wipe = True
            st.rerun()
        return

    st.warning("Wipe all data? This cannot be undone.")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Yes, wipe everything", type="primary"):
            run_async(session.reset_ledger(confirmed=True))
            st.session_state.confirm_wipe = False
            st.rerun()
    with col2:
        if st.button("Cancel"):
            run_async(session.reset_ledger(confirmed=False))
            st.session_state.confirm_wipe = False
            st.rerun()


def render_tracker_page(session: TrackerSession) -> None:
    symbol = get_settings().app.currency_symbol
    identity = current_identity()

    st.title("💵 Money Tracker")
    render_auth_bar(identity)
    run_async(session.on_identity_changed(identity))

    if identity is None:
        st.info("Sign in to see your tracker.")
        return

    render_summary(session, symbol)
    render_transaction_form(session)
    render_ledger(session)
    render_bank_section(session, symbol)
    render_reset(session)


def render_settings_page() -> None:
    st.title("⚙️ Settings")
    st.caption(f"Environment: {get_settings().app.app_environment}")
    st.markdown("### Connection Status")

    status = validate_all_settings()
    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Bank balance lookup", "banking"),
        ("Application", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown(
        "Configure the application with a `.env` file. Set `STORAGE_BACKEND=google_sheets` "
        "plus the `GOOGLE_SHEETS_*` variables to store ledgers remotely, and "
        "`BANKING_BASE_URL` to enable bank balances."
    )


def main():
    """Main application entry point."""
    session = get_session()

    page = st.sidebar.radio("Navigate to:", ["Tracker", "Settings"], index=0)
    if page == "Settings":
        render_settings_page()
        return

    try:
        render_tracker_page(session)
    except Exception as e:
        run_async(session.report_error(e, context="tracker_page"))
        st.error("Something went wrong. Please reload the page and try again.")
        if get_settings().app.debug_mode:
            st.exception(e)


if __name__ == "__main__":
    main()
