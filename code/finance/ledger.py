import math
import re
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_CATEGORIES = ["General", "Sales", "Supplies", "Bills", "Marketing", "Travel", "Food"]
WINDOW_DAYS = {"7d": 7, "30d": 30}


def clean_text(value: Optional[str]) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def signed_amount(raw, kind: str = "expense") -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if math.isnan(raw) or math.isinf(raw):
            return None
        return -abs(float(raw)) if kind == "expense" else abs(float(raw))
    text = re.sub(r"[^\d.\-]", "", str(raw))
    if text in ("", "-", "."):
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return -abs(value) if kind == "expense" else abs(value)


def transaction_stats(txns: Iterable[Any]) -> Dict[str, float]:
    income = 0.0
    expense = 0.0
    for t in txns:
        if t.amount >= 0:
            income += t.amount
        else:
            expense += t.amount
    return {"income": income, "expense": expense, "net": income + expense}


def filter_transactions(
    txns: Iterable[Any],
    query: str = "",
    category: str = "All",
    window: str = "30d",
    today: Optional[date] = None,
) -> List[Any]:
    needle = clean_text(query).lower()
    min_date = None
    if window in WINDOW_DAYS:
        min_date = (today or date.today()) - timedelta(days=WINDOW_DAYS[window])

    out = []
    for t in txns:
        if min_date is not None and t.date < min_date:
            continue
        if category != "All" and t.category != category:
            continue
        if needle:
            haystack = f"{t.date.isoformat()} {t.name} {t.category} {t.amount:g}".lower()
            if needle not in haystack:
                continue
        out.append(t)
    return out


def categories(txns: Iterable[Any]) -> List[str]:
    seen = list(DEFAULT_CATEGORIES)
    for t in txns:
        if t.category not in seen:
            seen.append(t.category)
    return seen


def sample_transactions(today: Optional[date] = None) -> List[Dict[str, Any]]:
    day = today or date.today()
    rows = [
        (0, "Shopify payout", "Sales", 420.0),
        (1, "Packaging supplies", "Supplies", -48.0),
        (3, "Google Ads", "Marketing", -120.0),
        (8, "Client invoice", "Sales", 900.0),
    ]
    return [
        {
            "date": (day - timedelta(days=days_ago)).isoformat(),
            "name": name,
            "category": category,
            "amount": amount,
        }
        for days_ago, name, category, amount in rows
    ]
