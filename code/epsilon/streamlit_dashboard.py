# streamlit_dashboard.py
import os
import sys
from datetime import date
from typing import Any, Dict, List

import streamlit as st

# Ensure the code/ root is on sys.path so `epsilon` and `finance` import when Streamlit runs this file directly.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from epsilon.ai.cfo_client import check_cfo_online  # noqa: E402
from epsilon.core.pipeline import answer_chat, build_chat_context, build_dashboard  # noqa: E402
from epsilon.core.prompts import format_currency, format_runway  # noqa: E402
from epsilon.core.storage import JsonFileStorage  # noqa: E402
from epsilon.core.store import AppStore  # noqa: E402
from finance.ledger import categories, filter_transactions, signed_amount, transaction_stats  # noqa: E402

STORE_PATH = os.getenv("EPSILON_STORE_PATH", ".epsilon_store.json")
GREETING = "I can help you interpret runway, risk, and your emergency buffer. Ask: \"What should I do next?\""


def get_store() -> AppStore:
    if "store" not in st.session_state:
        st.session_state.store = AppStore(JsonFileStorage(STORE_PATH))
    return st.session_state.store


def render_inputs(store: AppStore):
    col_cash, col_burn, col_reserve = st.columns(3)
    with col_cash:
        cash = st.number_input("Bank amount ($)", min_value=0.0, value=float(store.cash_balance), step=100.0)
        if cash != store.cash_balance:
            store.set_cash_balance(cash)
    with col_burn:
        burn = st.number_input("Monthly burn ($)", min_value=0.0, value=float(store.monthly_burn), step=100.0)
        if burn != store.monthly_burn:
            store.set_monthly_burn(burn)
    with col_reserve:
        reserve = st.number_input("Emergency reserve ($)", min_value=0.0, value=float(store.reserve_balance), step=100.0)
        if reserve != store.reserve_balance:
            store.set_reserve_balance(reserve)


def render_runway(store: AppStore):
    view = build_dashboard(store)
    cash = view.cash
    st.subheader("Burn rate & runway")
    col_runway, col_depletion, col_risk = st.columns(3)
    col_runway.metric("Estimated runway", format_runway(cash.runway_days))
    col_depletion.metric("Projected depletion", cash.depletion_date or "-")
    col_risk.metric("Risk", cash.risk)
    st.caption(cash.headline)


def render_autopilot(store: AppStore):
    st.subheader("Emergency Fund Autopilot")
    override = st.checkbox("Override autopilot percentage", value=store.autopilot_override)
    if override != store.autopilot_override:
        store.set_autopilot_override(override)

    view = build_dashboard(store)
    plan = view.autopilot
    if store.autopilot_override:
        pct = st.slider(
            "Autopilot %",
            min_value=plan.min_pct,
            max_value=plan.max_pct,
            value=int(min(max(store.autopilot_pct, plan.min_pct), plan.max_pct)),
        )
        if pct != store.autopilot_pct:
            store.set_autopilot_pct(pct)
            view = build_dashboard(store)
            plan = view.autopilot

    st.markdown(f"**{plan.mode_label}** ({plan.suggested_pct}% suggested): {plan.mode_blurb}")
    st.write(
        f"Goal: {format_currency(plan.emergency_goal)} | "
        f"Reserve: {format_currency(view.snapshot.reserve_balance)} | "
        f"Gap: {format_currency(plan.gap)}"
    )
    col_pct, col_reserve, col_months = st.columns(3)
    col_pct.metric("Autopilot", f"{plan.effective_pct:g}%")
    col_reserve.metric("Reserve this month", format_currency(plan.monthly_reserve))
    col_months.metric("Time to fund", "-" if plan.months_to_goal is None else f"~{plan.months_to_goal} months")
    reserve_months = "-" if plan.reserve_months is None else f"{plan.reserve_months:.1f}"
    st.caption(f"Reserve months: {reserve_months} | Risk meter: {plan.risk_label} ({plan.risk_score:.0f}%)")
    st.progress(int(plan.risk_score))


def render_transactions(store: AppStore):
    st.subheader("Transactions")
    known_categories = categories(store.txns)

    with st.form("add_txn", clear_on_submit=True):
        kind = st.radio("Type", ["expense", "income"], horizontal=True)
        col_date, col_name, col_cat, col_amount = st.columns(4)
        txn_date = col_date.date_input("Date", value=date.today())
        name = col_name.text_input("Name")
        category = col_cat.selectbox("Category", known_categories)
        amount_raw = col_amount.text_input("Amount")
        if st.form_submit_button("Add"):
            amount = signed_amount(amount_raw, kind)
            if amount is None or not name.strip():
                st.warning("Enter a name and a numeric amount.")
            else:
                store.add_transaction(name=name, amount=amount, txn_date=txn_date, category=category)

    if st.button("Add sample transactions"):
        store.add_sample_transactions()

    col_q, col_cat, col_window = st.columns(3)
    query = col_q.text_input("Search")
    cat_filter = col_cat.selectbox("Filter category", ["All"] + known_categories)
    window = col_window.selectbox("Range", ["30d", "7d", "all"])
    shown = filter_transactions(store.txns, query=query, category=cat_filter, window=window)

    stats = transaction_stats(shown)
    col_net, col_income, col_expense = st.columns(3)
    col_net.metric("Net", format_currency(stats["net"]))
    col_income.metric("Income", format_currency(stats["income"]))
    col_expense.metric("Expenses", format_currency(stats["expense"]))

    if not shown:
        st.caption("No transactions yet.")
    for txn in shown:
        col_row, col_delete = st.columns([5, 1])
        col_row.write(f"{txn.date.isoformat()}  {txn.name}  ({txn.category})  {format_currency(txn.amount)}")
        if col_delete.button("Delete", key=f"del_{txn.id}"):
            store.delete_transaction(txn.id)
            st.rerun()


def render_chat(store: AppStore):
    if "messages" not in st.session_state:
        st.session_state.messages: List[Dict[str, Any]] = [{"role": "assistant", "content": GREETING}]

    context = build_chat_context(store)
    with st.sidebar:
        st.header("Ask Epsilon (AI CFO)")
        if "cfo_online" not in st.session_state:
            st.session_state.cfo_online = check_cfo_online()
        if not st.session_state.cfo_online:
            st.caption("Chat model unreachable. Answers use your local figures.")
        st.caption(f"Runway: {format_runway(context.runway_days)} | Risk: {context.risk} | Autopilot: {context.autopilot_pct:g}%")
        for msg in st.session_state.messages:
            speaker = "You" if msg["role"] == "user" else "Epsilon"
            st.markdown(f"**{speaker}**: {msg['content']}")
        with st.form("chat", clear_on_submit=True):
            user_input = st.text_input("Message", placeholder="Try: \"How does autopilot work?\"")
            if st.form_submit_button("Send") and user_input.strip():
                st.session_state.messages.append({"role": "user", "content": user_input.strip()})
                reply = answer_chat(user_input.strip(), context, store.target_months)
                st.session_state.messages.append({"role": "assistant", "content": reply})
                st.rerun()


st.set_page_config(page_title="Epsilon Cash Dashboard", layout="wide")
st.title("Epsilon Cash Dashboard")

app_store = get_store()
render_inputs(app_store)
render_runway(app_store)
render_autopilot(app_store)
render_transactions(app_store)
render_chat(app_store)
