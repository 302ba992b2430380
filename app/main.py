"""
Streamlit Frontend for BillSplit

This is the screen people use to record who paid for what and
see who owes whom.

DESIGN PRINCIPLES:
1. Balances shown are always recomputed from the expense history
2. Clear error messages in simple language
3. "You" instead of your own name everywhere
4. Each currency is shown on its own; nothing is converted

The UI never computes money itself; it only renders LedgerSnapshot.
"""

import asyncio
from datetime import date, datetime, time, timezone
from decimal import Decimal

import streamlit as st

from src.accounts import AuthenticationError, RegistrationError, password_strength
from src.config import get_settings, validate_all_settings
from src.ledger import LedgerError, debts_involving
from src.models.expense import ExpenseDraft, LedgerSnapshot
from src.orchestrator import AccountFlow, ExpenseFlow, create_app_components
from src.presentation import (
    CURRENCY_NAMES,
    balance_split,
    currency_symbol,
    debt_row_html,
    display_name,
    expense_share,
    expense_share_label,
    format_amount,
    is_settled,
    other_currency_lines,
    relative_date_label,
)
from src.services.storage import NotFoundError, StorageError
from src.validation import ExpenseRejectedError


# Page configuration
st.set_page_config(
    page_title="BillSplit",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .owe-box {
        padding: 14px 18px;
        background-color: #C67B5C14;
        border-radius: 10px;
        border-left: 5px solid #C67B5C;
        margin: 6px 0;
    }
    .owed-box {
        padding: 14px 18px;
        background-color: #7A9B7614;
        border-radius: 10px;
        border-left: 5px solid #7A9B76;
        margin: 6px 0;
    }
    .neutral-box {
        padding: 14px 18px;
        background-color: #F4EDE3;
        border-radius: 10px;
        border-left: 5px solid #2B231C33;
        margin: 6px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return create_app_components()


def main():
    """Main application entry point."""
    expense_flow, account_flow, _ = get_components()

    st.sidebar.title("🧾 BillSplit")
    st.sidebar.markdown("---")

    session = st.session_state.get("session")

    if session is None:
        page = st.sidebar.radio("Navigate to:", ["🔑 Log In", "✨ Sign Up"], index=0)
        if page == "🔑 Log In":
            render_login_page(account_flow)
        else:
            render_signup_page(account_flow)
        return

    st.sidebar.markdown(f"Logged in as **{session.username}**")
    page = st.sidebar.radio("Navigate to:", ["📊 Dashboard", "⚙️ Settings"], index=0)
    if st.sidebar.button("Log out"):
        run_async(account_flow.log_out(session))
        st.session_state.session = None
        st.rerun()

    if page == "📊 Dashboard":
        render_dashboard_page(expense_flow, session.username)
    else:
        render_settings_page()


def render_login_page(account_flow: AccountFlow):
    """Render the login form."""
    st.title("🔑 Welcome back")

    if st.session_state.pop("just_registered", False):
        st.success("Account created! Log in to get started.")

    with st.form("login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in", type="primary")

    if submitted:
        if not username.strip():
            st.error("Username is required")
        elif not password:
            st.error("Password is required")
        else:
            try:
                session = run_async(account_flow.log_in(username, password))
            except AuthenticationError as e:
                st.error(str(e))
            else:
                st.session_state.session = session
                st.rerun()


def render_signup_page(account_flow: AccountFlow):
    """Render the signup form."""
    st.title("✨ Create your account")

    username = st.text_input("Username")
    email = st.text_input("Email")
    password = st.text_input("Password", type="password")

    strength = password_strength(password)
    if password:
        labels = {1: "Weak - Add more characters", 2: "Good - Getting there", 3: "Strong - Nice!"}
        st.progress(strength / 3, text=labels[strength])

    if st.button("Create account", type="primary"):
        try:
            run_async(account_flow.sign_up(username, email, password))
        except RegistrationError as e:
            if e.result is not None:
                for message in e.result.errors_by_field().values():
                    st.error(message)
            else:
                st.error(str(e))
        else:
            st.session_state.just_registered = True
            st.rerun()


def render_dashboard_page(expense_flow: ExpenseFlow, username: str):
    """Render balances, the expense stream and the add-expense form."""
    st.title(f"Hey, {username}")

    try:
        snapshot = run_async(expense_flow.get_dashboard(username))
        expenses = run_async(expense_flow.list_expenses(username))
    except (LedgerError, StorageError):
        st.error(
            "Something went wrong while working out your balances. "
            "Your expenses are safe, but one of them looks damaged."
        )
        return

    if not expenses:
        st.markdown("Ready to add your first expense?")
    else:
        noun = "expense" if snapshot.active_count == 1 else "expenses"
        st.markdown(f"You have {snapshot.active_count} active {noun}")

    render_summary_cards(snapshot)

    left, right = st.columns([2, 1])

    with left:
        render_add_expense_form(expense_flow, username)
        render_expense_stream(expense_flow, username, expenses)

    with right:
        render_balance_overview(snapshot)
        render_who_owes_what(snapshot)


def render_summary_cards(snapshot: LedgerSnapshot):
    """Total / You owe / You're owed, one row per currency."""
    col1, col2, col3 = st.columns(3)

    if not snapshot.balances:
        col1.metric("Total Expenses", format_amount(0, snapshot.primary_currency))
        col2.metric("You Owe", format_amount(0, snapshot.primary_currency))
        col3.metric("You're Owed", format_amount(0, snapshot.primary_currency))
        return

    for currency, balance in snapshot.balances.items():
        col1.metric(f"Total Expenses ({currency})", format_amount(balance.total, currency))
        col2.metric(f"You Owe ({currency})", format_amount(balance.you_owe, currency))
        col3.metric(f"You're Owed ({currency})", format_amount(balance.you_are_owed, currency))


def render_balance_overview(snapshot: LedgerSnapshot):
    """Owed vs owe bars for the primary currency."""
    st.subheader("Balance Overview")
    currency = snapshot.primary_currency
    balance = snapshot.balances.get(currency)

    if len(snapshot.currencies) > 1:
        st.caption(f"Showing {currency} · {len(snapshot.currencies)} currencies total")

    owed_pct, owe_pct = balance_split(balance)
    you_are_owed = balance.you_are_owed if balance else Decimal("0")
    you_owe = balance.you_owe if balance else Decimal("0")

    st.markdown(f"You're owed **{format_amount(you_are_owed, currency, signed=True)}**")
    st.progress(owed_pct / 100)
    st.markdown(f"You owe **{format_amount(-you_owe, currency)}**")
    st.progress(owe_pct / 100)

    net = balance.net if balance else Decimal("0")
    if is_settled(net):
        st.info("You're all square 🤝")
    elif net > 0:
        st.success(f"Net: {format_amount(net, currency, signed=True)} 😊")
    else:
        st.warning(f"Net: {format_amount(net, currency, signed=True)}")

    others = other_currency_lines(snapshot.balances, currency)
    if others:
        st.markdown("**Other currencies:**")
        for line in others:
            st.caption(line)


def render_who_owes_what(snapshot: LedgerSnapshot):
    """Every net debt edge, with the current user's highlighted."""
    st.subheader("Who Owes What")
    user = snapshot.current_user

    if snapshot.is_settled:
        st.markdown("✌️ **All settled up!** Nobody owes anyone")
        return

    for currency, edges in snapshot.debts.items():
        if not edges:
            continue
        if len(snapshot.debts) > 1:
            st.caption(CURRENCY_NAMES.get(currency, currency))

        for edge in edges:
            st.markdown(debt_row_html(edge, user), unsafe_allow_html=True)

        mine = debts_involving(edges, user)
        owed = sum((e.amount for e in mine if e.creditor == user), Decimal("0"))
        owing = sum((e.amount for e in mine if e.debtor == user), Decimal("0"))
        st.markdown(
            f"Your net balance: **{format_amount(owed - owing, currency, signed=True)}**"
        )


def render_expense_stream(
    expense_flow: ExpenseFlow,
    username: str,
    expenses: list,
):
    """Expense history, newest first, with settle/delete actions."""
    st.subheader("Expenses")

    if not expenses:
        st.info("No expenses yet. Add one above.")
        return

    for expense in expenses:
        per_person = format_amount(expense.per_person, expense.currency)
        with st.container(border=True):
            top, actions = st.columns([4, 1])
            with top:
                status = "✅ Paid" if expense.is_paid else "⏳ Outstanding"
                st.markdown(
                    f"**{expense.description}** · "
                    f"{format_amount(expense.amount, expense.currency)} · {status}"
                )
                people = ", ".join(display_name(p, username) for p in expense.split_among)
                st.caption(
                    f"{display_name(expense.paid_by, username)} paid · "
                    f"split with {people} ({per_person} each) · "
                    f"{relative_date_label(expense.date)}"
                )
                share_label = expense_share_label(expense, username)
                if share_label:
                    you_owe, _ = expense_share(expense, username)
                    if you_owe > 0:
                        st.warning(share_label)
                    else:
                        st.success(share_label)
            with actions:
                if not expense.is_paid and st.button("Mark paid", key=f"paid-{expense.id}"):
                    try:
                        run_async(expense_flow.mark_paid(username, expense.id))
                    except NotFoundError:
                        st.warning("That expense no longer exists.")
                    st.rerun()
                if st.button("Delete", key=f"delete-{expense.id}"):
                    run_async(expense_flow.delete_expense(username, expense.id))
                    st.rerun()


def render_add_expense_form(expense_flow: ExpenseFlow, username: str):
    """The add-expense panel."""
    settings = get_settings().app
    currencies = settings.supported_currencies_list
    known = run_async(expense_flow.known_participants(username))

    with st.expander("➕ Add expense", expanded=False):
        description = st.text_input("Description", placeholder="Dinner at Luigi's")

        col1, col2 = st.columns(2)
        with col1:
            currency = st.selectbox(
                "Currency",
                options=currencies,
                index=currencies.index(settings.default_currency)
                if settings.default_currency in currencies else 0,
                format_func=lambda c: f"{currency_symbol(c)} {c} - {CURRENCY_NAMES.get(c, c)}",
            )
        with col2:
            amount = st.number_input(
                f"Amount ({currency_symbol(currency)})",
                min_value=0.0,
                step=0.01,
                format="%.2f",
            )

        expense_date = st.date_input("Date", value=date.today())

        participants = st.multiselect(
            "Split among",
            options=known,
            default=[username],
            format_func=lambda p: display_name(p, username),
            accept_new_options=True,
        )
        paid_by = st.selectbox(
            "Paid by",
            options=participants or [username],
            format_func=lambda p: display_name(p, username),
        )

        if st.button("Add expense", type="primary"):
            draft = ExpenseDraft(
                description=description,
                amount=Decimal(str(amount)),
                currency=currency,
                paid_by=paid_by,
                split_among=participants,
                date=datetime.combine(expense_date, time(12, 0), tzinfo=timezone.utc),
            )
            try:
                run_async(expense_flow.add_expense(username, draft))
            except ExpenseRejectedError as e:
                for message in e.result.errors_by_field().values():
                    st.error(message)
            except StorageError:
                st.error("Could not save the expense. Please try again.")
            else:
                st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()

    for name, key in [("Storage", "storage"), ("Application", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    storage = get_settings().storage
    st.markdown("---")
    st.markdown(f"**Backend:** {storage.backend}")
    if storage.backend == "json":
        st.markdown(f"**Data directory:** `{storage.data_dir}`")
    st.markdown(
        "To change these, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
