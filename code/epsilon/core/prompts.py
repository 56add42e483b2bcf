import json
from typing import Optional

from .models import ChatContext


def format_currency(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def format_runway(runway_days: Optional[int]) -> str:
    return "not set" if runway_days is None else f"{runway_days} days"


def build_chat_prompt(message: str, context: ChatContext) -> str:
    context_json = json.dumps(context.model_dump(by_alias=True), indent=2)
    return f"""
You are Epsilon, an AI CFO designed for small creators, YouTubers, and solo business owners.

Your job is to:
1. Explain financial metrics in VERY simple language.
2. Avoid corporate jargon.
3. Always translate financial terms into real-life meaning.
4. Focus on practical, clear action steps.

Use this structure:

1) What This Means
2) Why It Matters
3) What You Should Do Next
4) Ask 1 Simple Question (if needed)

Financial context:
{context_json}

Reference figures:
- Cash balance: {format_currency(context.cash_balance)}
- Monthly burn: {format_currency(context.monthly_burn)}
- Runway: {format_runway(context.runway_days)} (risk: {context.risk})
- Projected depletion: {context.depletion_date or "not set"}
- Emergency reserve: {format_currency(context.reserve_balance)}
- Autopilot savings rate: {context.autopilot_pct:g}%

User question:
{message}
""".strip()
