import math


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def finite_or(value, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def non_negative(value) -> float:
    number = finite_or(value, 0.0)
    return number if number > 0 else 0.0


def round_or_none(v, ndigits=2):
    if v is None:
        return None
    return round(v, ndigits)
