from dataclasses import dataclass
from typing import Literal, Optional

SaveMode = Literal["critical", "boost", "coast", "normal", "done"]


@dataclass
class AutopilotInput:
    reserve_balance: float
    monthly_burn: float
    target_months: float = 3
    runway_days: Optional[int] = None


@dataclass
class AutopilotRules:
    mode: SaveMode
    suggested_pct: int
    min_pct: int
    max_pct: int
    reserve_months: Optional[float]


@dataclass
class AutopilotPlan:
    rules: AutopilotRules
    target_months: float
    emergency_goal: float
    gap: float
    override: bool
    effective_pct: float
    monthly_reserve: int
    months_to_goal: Optional[int]
    risk_score: float
    risk_label: str
    mode_label: str
    mode_blurb: str
