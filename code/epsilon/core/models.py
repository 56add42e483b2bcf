import datetime as dt
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Transaction(BaseModel):
    id: str = Field(min_length=1)
    date: dt.date
    name: str
    category: str = "General"
    amount: float = Field(allow_inf_nan=False)


class FinancialSnapshot(CamelModel):
    cash_balance: float = Field(default=0.0, ge=0, alias="cashBalance")
    monthly_burn: float = Field(default=0.0, ge=0, alias="monthlyBurn")
    autopilot_pct: float = Field(default=16.0, ge=0, le=30, alias="autopilotPct")
    reserve_balance: float = Field(default=0.0, ge=0, alias="reserveBalance")
    txns: List[Transaction] = []


class SnapshotUpdate(CamelModel):
    cash_balance: Optional[float] = Field(default=None, alias="cashBalance")
    monthly_burn: Optional[float] = Field(default=None, alias="monthlyBurn")
    autopilot_pct: Optional[float] = Field(default=None, alias="autopilotPct")
    reserve_balance: Optional[float] = Field(default=None, alias="reserveBalance")


class NewTransaction(BaseModel):
    date: Optional[dt.date] = None
    name: str
    category: str = "General"
    amount: Union[str, float]
    kind: Literal["expense", "income"] = "expense"


class TransactionStats(BaseModel):
    income: float
    expense: float
    net: float


class TransactionList(BaseModel):
    txns: List[Transaction]
    stats: TransactionStats
    categories: List[str]


class ChatContext(CamelModel):
    cash_balance: float = Field(default=0.0, alias="cashBalance")
    monthly_burn: float = Field(default=0.0, alias="monthlyBurn")
    runway_days: Optional[int] = Field(default=None, alias="runwayDays")
    risk: str = "Unknown"
    depletion_date: Optional[str] = Field(default=None, alias="depletionDate")
    autopilot_pct: float = Field(default=0.0, alias="autopilotPct")
    reserve_balance: float = Field(default=0.0, alias="reserveBalance")


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    context: Optional[ChatContext] = None


class ChatResponse(BaseModel):
    reply: str


class OverrideRequest(BaseModel):
    enabled: bool


class CashMetrics(CamelModel):
    runway_days: Optional[int] = Field(alias="runwayDays")
    depletion_date: Optional[str] = Field(alias="depletionDate")
    risk: str
    headline: str


class AutopilotView(CamelModel):
    mode: Literal["critical", "boost", "coast", "normal", "done"]
    mode_label: str = Field(alias="modeLabel")
    mode_blurb: str = Field(alias="modeBlurb")
    suggested_pct: int = Field(alias="suggestedPct")
    min_pct: int = Field(alias="minPct")
    max_pct: int = Field(alias="maxPct")
    reserve_months: Optional[float] = Field(alias="reserveMonths")
    target_months: float = Field(alias="targetMonths")
    emergency_goal: float = Field(alias="emergencyGoal")
    gap: float
    override: bool
    effective_pct: float = Field(alias="effectivePct")
    monthly_reserve: int = Field(alias="monthlyReserve")
    months_to_goal: Optional[int] = Field(alias="monthsToGoal")
    risk_score: float = Field(alias="riskScore")
    risk_label: str = Field(alias="riskLabel")


class DashboardView(CamelModel):
    snapshot: FinancialSnapshot
    cash: CashMetrics
    autopilot: AutopilotView
    stats: TransactionStats
