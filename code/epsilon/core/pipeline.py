import logging
from datetime import date
from typing import Optional

from finance.autopilot import DEFAULT_TARGET_MONTHS, build_autopilot_plan, emergency_goal, monthly_reserve, reserve_gap
from finance.cash import depletion_date, risk_headline, risk_label, runway_days
from finance.ledger import transaction_stats
from finance.utils import round_or_none

from .models import AutopilotView, CashMetrics, ChatContext, DashboardView, TransactionStats
from .prompts import build_chat_prompt, format_currency, format_runway
from .store import AppStore
from epsilon.ai.cfo_client import extract_text, query_cfo

logger = logging.getLogger(__name__)


def build_chat_context(store: AppStore, today: Optional[date] = None) -> ChatContext:
    runway = runway_days(store.cash_balance, store.monthly_burn)
    return ChatContext(
        cash_balance=store.cash_balance,
        monthly_burn=store.monthly_burn,
        runway_days=runway,
        risk=risk_label(runway),
        depletion_date=depletion_date(runway, today),
        autopilot_pct=store.autopilot_pct,
        reserve_balance=store.reserve_balance,
    )


def build_dashboard(store: AppStore, today: Optional[date] = None) -> DashboardView:
    store.sync_autopilot()
    runway = runway_days(store.cash_balance, store.monthly_burn)
    label = risk_label(runway)
    plan = build_autopilot_plan(
        reserve_balance=store.reserve_balance,
        monthly_burn=store.monthly_burn,
        runway_days=runway,
        stored_pct=store.autopilot_pct,
        override=store.autopilot_override,
        target_months=store.target_months,
    )
    rules = plan.rules
    return DashboardView(
        snapshot=store.snapshot(),
        cash=CashMetrics(
            runway_days=runway,
            depletion_date=depletion_date(runway, today),
            risk=label,
            headline=risk_headline(label),
        ),
        autopilot=AutopilotView(
            mode=rules.mode,
            mode_label=plan.mode_label,
            mode_blurb=plan.mode_blurb,
            suggested_pct=rules.suggested_pct,
            min_pct=rules.min_pct,
            max_pct=rules.max_pct,
            reserve_months=round_or_none(rules.reserve_months),
            target_months=plan.target_months,
            emergency_goal=plan.emergency_goal,
            gap=plan.gap,
            override=plan.override,
            effective_pct=plan.effective_pct,
            monthly_reserve=plan.monthly_reserve,
            months_to_goal=plan.months_to_goal,
            risk_score=round(plan.risk_score, 1),
            risk_label=plan.risk_label,
        ),
        stats=TransactionStats(**transaction_stats(store.txns)),
    )


def fallback_reply(context: ChatContext) -> str:
    return (
        f"Runway: {format_runway(context.runway_days)} ({context.risk}). "
        f"Depletion: {context.depletion_date or 'not set'}. "
        f"Autopilot: {context.autopilot_pct:g}%."
    )


def rule_based_reply(message: str, context: ChatContext, target_months: float = DEFAULT_TARGET_MONTHS) -> str:
    text = message.lower()

    if "autopilot" in text:
        per_month = monthly_reserve(context.monthly_burn, context.autopilot_pct)
        return (
            f"Autopilot sets aside {context.autopilot_pct:g}% of your monthly burn for your emergency reserve, "
            f"about {format_currency(per_month)} a month. It saves harder when the reserve is thin "
            "and eases off once you have a few months covered."
        )

    if any(word in text for word in ("reserve", "emergency", "buffer", "safety")):
        goal = emergency_goal(context.monthly_burn, target_months)
        gap = reserve_gap(context.reserve_balance, context.monthly_burn, target_months)
        if context.monthly_burn <= 0:
            return f"Enter your monthly burn so I can size a {target_months:g}-month emergency reserve for you."
        if gap <= 0:
            return (
                f"Your reserve of {format_currency(context.reserve_balance)} already covers "
                f"{target_months:g} months of burn "
                f"({format_currency(goal)}). Nice work."
            )
        return (
            f"Your reserve is {format_currency(context.reserve_balance)} against a {target_months:g}-month goal of "
            f"{format_currency(goal)}, so you are {format_currency(gap)} short."
        )

    if any(word in text for word in ("deplet", "run out", "zero", "broke")):
        if context.depletion_date is None:
            return "I can't project a depletion date until you enter a monthly burn above zero."
        return f"At your current burn, cash runs out around {context.depletion_date}."

    if "runway" in text or "how long" in text:
        if context.runway_days is None:
            return "Runway isn't calculated yet. Enter your monthly burn to estimate it."
        return (
            f"You have about {context.runway_days} days of runway. "
            f"{risk_headline(context.risk)} ({context.risk})."
        )

    if "risk" in text:
        return f"Your cash risk is {context.risk}: {risk_headline(context.risk).lower()}."

    if "burn" in text or "spend" in text:
        return f"You are burning {format_currency(context.monthly_burn)} a month."

    return fallback_reply(context)


def answer_chat(message: str, context: ChatContext, target_months: float = DEFAULT_TARGET_MONTHS) -> str:
    prompt = build_chat_prompt(message, context)
    reply = ""
    try:
        response = query_cfo(prompt)
        reply = extract_text(response).strip()
    except Exception as e:
        logger.warning("Chat model unavailable, answering locally: %s", e)
        reply = ""

    if not reply:
        reply = rule_based_reply(message, context, target_months)
    return reply
