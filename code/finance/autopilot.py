# finance/autopilot.py
import math
from typing import Optional

from .schemas import AutopilotInput, AutopilotPlan, AutopilotRules, SaveMode
from .utils import clamp, finite_or, non_negative

DEFAULT_TARGET_MONTHS = 3
TIGHT_RUNWAY_DAYS = 60
CRITICAL_RESERVE_MONTHS = 2
COAST_RESERVE_MONTHS = 6
NEUTRAL_RISK_SCORE = 55.0

MODE_LABELS = {
    "critical": "Critical Save Mode",
    "boost": "Boost Save Mode",
    "coast": "Coast Mode",
    "normal": "Normal Mode",
    "done": "Goal Met",
}


def _target(target_months: float) -> float:
    target = finite_or(target_months, DEFAULT_TARGET_MONTHS)
    return target if target > 0 else DEFAULT_TARGET_MONTHS


def emergency_goal(monthly_burn: float, target_months: float = DEFAULT_TARGET_MONTHS) -> float:
    return non_negative(monthly_burn) * _target(target_months)


def reserve_gap(reserve_balance: float, monthly_burn: float, target_months: float = DEFAULT_TARGET_MONTHS) -> float:
    return max(0.0, emergency_goal(monthly_burn, target_months) - non_negative(reserve_balance))


def get_mode_and_pct(params: AutopilotInput) -> AutopilotRules:
    """
    Decision table for the emergency-fund autopilot. Rows are checked in
    order and the first match wins:

      burn <= 0                 -> normal   10%  [0, 30]
      reserve covers the goal   -> done      0%  [0, 10]
      reserve < 2 months        -> critical 20%  [15, 30]  (25% when runway is tight)
      reserve < target months   -> boost    16%  [10, 25]  (18% when runway is tight)
      reserve < 6 months        -> coast     8%  [0, 15]
      otherwise                 -> normal   10%  [0, 30]   (12% when runway is tight)

    Runway is tight when it is known and strictly between 0 and 60 days.
    """
    monthly_burn = finite_or(params.monthly_burn)
    if monthly_burn <= 0:
        return AutopilotRules(mode="normal", suggested_pct=10, min_pct=0, max_pct=30, reserve_months=None)

    reserve_balance = non_negative(params.reserve_balance)
    target_months = _target(params.target_months)
    reserve_months = reserve_balance / monthly_burn
    gap = max(0.0, monthly_burn * target_months - reserve_balance)

    if gap <= 0:
        return AutopilotRules(mode="done", suggested_pct=0, min_pct=0, max_pct=10, reserve_months=reserve_months)

    runway = params.runway_days
    runway_tight = runway is not None and 0 < runway < TIGHT_RUNWAY_DAYS

    if reserve_months < CRITICAL_RESERVE_MONTHS:
        return AutopilotRules(
            mode="critical",
            suggested_pct=25 if runway_tight else 20,
            min_pct=15,
            max_pct=30,
            reserve_months=reserve_months,
        )
    if reserve_months < target_months:
        return AutopilotRules(
            mode="boost",
            suggested_pct=18 if runway_tight else 16,
            min_pct=10,
            max_pct=25,
            reserve_months=reserve_months,
        )
    if reserve_months < COAST_RESERVE_MONTHS:
        return AutopilotRules(mode="coast", suggested_pct=8, min_pct=0, max_pct=15, reserve_months=reserve_months)
    return AutopilotRules(
        mode="normal",
        suggested_pct=12 if runway_tight else 10,
        min_pct=0,
        max_pct=30,
        reserve_months=reserve_months,
    )


def compute_risk_score(
    reserve_months: Optional[float],
    runway_days: Optional[int],
    target_months: float = DEFAULT_TARGET_MONTHS,
) -> float:
    # 0 = safe, 100 = high risk
    if reserve_months is None:
        return NEUTRAL_RISK_SCORE

    target = _target(target_months)
    reserve_risk = clamp(((target - reserve_months) / target) * 100.0, 0.0, 100.0)

    runway_risk = 0.0
    if runway_days is not None and runway_days > 0:
        if runway_days < 30:
            runway_risk = 35.0
        elif runway_days < 60:
            runway_risk = 20.0
        elif runway_days < 120:
            runway_risk = 10.0

    return clamp(reserve_risk * 0.75 + runway_risk, 0.0, 100.0)


def risk_meter_label(score: float, mode: SaveMode) -> str:
    if mode == "done":
        return "Low"
    if score >= 75:
        return "High"
    if score >= 45:
        return "Medium"
    return "Low"


def monthly_reserve(monthly_burn: float, pct: float) -> int:
    burn = finite_or(monthly_burn)
    if burn <= 0:
        return 0
    # Half-up rounding, not banker's rounding.
    return math.floor(burn * finite_or(pct) / 100.0 + 0.5)


def months_to_goal(gap: float, reserve_per_month: float) -> Optional[int]:
    if reserve_per_month <= 0:
        return None
    if gap <= 0:
        return 0
    return math.ceil(gap / reserve_per_month)


def mode_label(mode: SaveMode) -> str:
    return MODE_LABELS.get(mode, "Normal Mode")


def mode_blurb(mode: SaveMode, target_months: float = DEFAULT_TARGET_MONTHS) -> str:
    if mode == "critical":
        return "Reserve is under 2 months. Autopilot saves aggressively."
    if mode == "boost":
        return f"Reserve is under {target_months:g} months. Autopilot saves faster to hit your goal."
    if mode == "coast":
        return "Reserve is healthy. Autopilot contributes lightly."
    if mode == "done":
        return "Emergency goal reached. Autopilot can pause."
    return "Steady saving based on your inputs."


def effective_pct(rules: AutopilotRules, stored_pct: float, override: bool) -> float:
    return finite_or(stored_pct) if override else float(rules.suggested_pct)


def build_autopilot_plan(
    reserve_balance: float,
    monthly_burn: float,
    runway_days: Optional[int],
    stored_pct: float,
    override: bool = False,
    target_months: float = DEFAULT_TARGET_MONTHS,
) -> AutopilotPlan:
    target = _target(target_months)
    rules = get_mode_and_pct(
        AutopilotInput(
            reserve_balance=reserve_balance,
            monthly_burn=monthly_burn,
            target_months=target,
            runway_days=runway_days,
        )
    )
    gap = reserve_gap(reserve_balance, monthly_burn, target)
    pct = effective_pct(rules, stored_pct, override)
    reserve_per_month = monthly_reserve(monthly_burn, pct)
    score = compute_risk_score(rules.reserve_months, runway_days, target)
    return AutopilotPlan(
        rules=rules,
        target_months=target,
        emergency_goal=emergency_goal(monthly_burn, target),
        gap=gap,
        override=override,
        effective_pct=pct,
        monthly_reserve=reserve_per_month,
        months_to_goal=months_to_goal(gap, reserve_per_month),
        risk_score=score,
        risk_label=risk_meter_label(score, rules.mode),
        mode_label=mode_label(rules.mode),
        mode_blurb=mode_blurb(rules.mode, target),
    )
