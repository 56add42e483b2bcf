from datetime import date

from epsilon.core import pipeline
from epsilon.core.models import ChatContext
from epsilon.core.storage import MemoryStorage
from epsilon.core.store import AppStore


def make_store(cash=1500, burn=1000, reserve=0):
    store = AppStore(MemoryStorage())
    store.set_cash_balance(cash)
    store.set_monthly_burn(burn)
    store.set_reserve_balance(reserve)
    return store


def test_build_chat_context():
    ctx = pipeline.build_chat_context(make_store(), today=date(2026, 2, 1))
    assert ctx.runway_days == 45
    assert ctx.risk == "Act"
    assert ctx.depletion_date == "2026-03-18"
    assert ctx.autopilot_pct == 25
    assert ctx.model_dump(by_alias=True)["runwayDays"] == 45


def test_build_dashboard():
    view = pipeline.build_dashboard(make_store(reserve=2500, cash=20000), today=date(2026, 2, 1))
    assert view.cash.runway_days == 600
    assert view.cash.risk == "Stable"
    assert view.autopilot.mode == "boost"
    assert view.autopilot.suggested_pct == 16
    assert view.autopilot.reserve_months == 2.5
    assert view.autopilot.gap == 500
    assert view.autopilot.monthly_reserve == 160
    assert view.autopilot.months_to_goal == 4
    assert view.snapshot.autopilot_pct == 16


def test_build_dashboard_without_burn():
    view = pipeline.build_dashboard(make_store(burn=0))
    assert view.cash.runway_days is None
    assert view.cash.depletion_date is None
    assert view.cash.risk == "Unknown"
    assert view.autopilot.mode == "normal"
    assert view.autopilot.reserve_months is None
    assert view.autopilot.risk_score == 55
    assert view.autopilot.months_to_goal is None


def test_far_future_runway_caps_depletion_date():
    store = make_store(cash=1_000_000, burn=10)
    view = pipeline.build_dashboard(store, today=date(2026, 10, 18))
    assert view.cash.runway_days == 3_000_000
    assert view.cash.depletion_date == "9999-12-31"
    assert view.cash.risk == "Stable"
    ctx = pipeline.build_chat_context(store, today=date(2026, 10, 18))
    assert ctx.depletion_date == "9999-12-31"


def test_fallback_reply():
    ctx = ChatContext(runway_days=45, risk="Act", depletion_date="2026-03-18", autopilot_pct=25)
    assert pipeline.fallback_reply(ctx) == "Runway: 45 days (Act). Depletion: 2026-03-18. Autopilot: 25%."
    assert pipeline.fallback_reply(ChatContext()) == "Runway: not set (Unknown). Depletion: not set. Autopilot: 0%."


def test_rule_based_reply_topics():
    ctx = ChatContext(
        cash_balance=1500, monthly_burn=1000, runway_days=45, risk="Act",
        depletion_date="2026-03-18", autopilot_pct=25, reserve_balance=500,
    )
    assert "$250" in pipeline.rule_based_reply("How does autopilot work?", ctx)
    assert "$2,500 short" in pipeline.rule_based_reply("Is my emergency fund ok?", ctx)
    assert "2026-03-18" in pipeline.rule_based_reply("When do I run out?", ctx)
    assert "45 days" in pipeline.rule_based_reply("What's my runway?", ctx)
    assert pipeline.rule_based_reply("hello", ctx) == pipeline.fallback_reply(ctx)


def test_reserve_reply_uses_configured_target():
    ctx = ChatContext(monthly_burn=1000, reserve_balance=500)
    reply = pipeline.rule_based_reply("How big should my reserve be?", ctx, target_months=6)
    assert "6-month goal of $6,000" in reply
    assert "$5,500 short" in reply
    covered = ChatContext(monthly_burn=1000, reserve_balance=7000)
    assert "covers 6 months" in pipeline.rule_based_reply("reserve?", covered, target_months=6)
    assert "4.5-month" in pipeline.rule_based_reply("reserve?", ChatContext(), target_months=4.5)


def test_answer_chat_uses_model_reply(monkeypatch):
    prompts = []

    def fake_query(prompt):
        prompts.append(prompt)
        return {"choices": [{"message": {"content": "  Cut ad spend this month.  "}}]}

    monkeypatch.setattr(pipeline, "query_cfo", fake_query)
    ctx = ChatContext(runway_days=45, risk="Act")
    assert pipeline.answer_chat("What should I do next?", ctx) == "Cut ad spend this month."
    assert "What should I do next?" in prompts[0]
    assert '"runwayDays": 45' in prompts[0]


def test_answer_chat_falls_back_when_model_fails(monkeypatch):
    def broken(prompt):
        raise RuntimeError("Missing GEMINI_API_KEY")

    monkeypatch.setattr(pipeline, "query_cfo", broken)
    ctx = ChatContext(runway_days=45, risk="Act", depletion_date="2026-03-18", autopilot_pct=25)
    reply = pipeline.answer_chat("hi", ctx)
    assert reply == "Runway: 45 days (Act). Depletion: 2026-03-18. Autopilot: 25%."
    assert "GEMINI" not in reply


def test_answer_chat_falls_back_on_empty_reply(monkeypatch):
    monkeypatch.setattr(pipeline, "query_cfo", lambda prompt: {"choices": []})
    ctx = ChatContext(runway_days=None)
    assert "isn't calculated" in pipeline.answer_chat("runway?", ctx)


def test_answer_chat_passes_target_to_local_reply(monkeypatch):
    monkeypatch.setattr(pipeline, "query_cfo", lambda prompt: {"choices": []})
    ctx = ChatContext(monthly_burn=1000, reserve_balance=500)
    assert "$5,500 short" in pipeline.answer_chat("emergency fund?", ctx, target_months=6)
