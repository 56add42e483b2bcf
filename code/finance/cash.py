import math
import sys
from datetime import date, timedelta
from typing import Optional

from .utils import non_negative

DAYS_PER_MONTH = 30
ACT_BELOW_DAYS = 60
WATCH_BELOW_DAYS = 120


def runway_days(cash_balance: float, monthly_burn: float) -> Optional[int]:
    cash = non_negative(cash_balance)
    burn = non_negative(monthly_burn)
    # Runway is undefined without burn, not infinite.
    if burn == 0:
        return None
    ratio = cash / burn * DAYS_PER_MONTH
    if math.isinf(ratio):
        ratio = sys.float_info.max
    days = math.floor(ratio)
    return max(0, days)


def depletion_date(runway: Optional[int], today: Optional[date] = None) -> Optional[str]:
    if runway is None:
        return None
    start = today or date.today()
    # Dates stop at 9999-12-31.
    days = min(max(0, int(runway)), (date.max - start).days)
    return (start + timedelta(days=days)).isoformat()


def risk_label(runway: Optional[int]) -> str:
    if runway is None:
        return "Unknown"
    if runway < ACT_BELOW_DAYS:
        return "Act"
    if runway < WATCH_BELOW_DAYS:
        return "Watch"
    return "Stable"


def risk_headline(label: str) -> str:
    if label == "Act":
        return "Runway is low"
    if label == "Watch":
        return "Runway needs attention"
    if label == "Stable":
        return "Runway looks stable"
    return "Runway not calculated yet"
