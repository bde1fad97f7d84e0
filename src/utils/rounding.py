import math


def round_half_up(value: float, digits: int = 0) -> float:
    """四捨五入（Python の round は偶数丸めのため使わない）"""
    if not math.isfinite(value):
        return 0.0
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round2(value: float) -> float:
    return round_half_up(value, 2)


def finite_or_zero(value: float) -> float:
    """NaN/inf/負数を 0 に正規化"""
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value
