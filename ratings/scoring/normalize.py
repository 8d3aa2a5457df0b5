"""
Metric normalizers — map a raw measurement onto a 0-100 "goodness" scale.

Pure functions: no I/O, never raise. Degenerate bounds (floor <= 0, cap <= floor,
worst <= best) mean "no signal" and return 0 rather than an error.
"""
import math


def clamp01(v: float) -> float:
    if v < 0:
        return 0.0
    if v > 1:
        return 1.0
    return v


def normalize_higher_linear(v: float, floor: float, cap: float) -> float:
    """0 at or below floor, 100 at or above cap, linear in between."""
    if floor <= 0 or cap <= floor:
        return 0.0
    return clamp01((v - floor) / (cap - floor)) * 100


def normalize_higher_log(v: float, floor: float, cap: float) -> float:
    """Like normalize_higher_linear, but linear in log-space.

    Used for metrics spanning several orders of magnitude (lumens, candela,
    beam distance, runtimes).
    """
    if v <= 0 or floor <= 0 or cap <= floor:
        return 0.0
    return clamp01((math.log(v) - math.log(floor)) / (math.log(cap) - math.log(floor))) * 100


def normalize_lower_linear(v: float, best: float, worst: float) -> float:
    """Inverted scale: 100 at best, 0 at worst. Only price uses this."""
    if worst <= best:
        return 0.0
    return (1 - clamp01((v - best) / (worst - best))) * 100


NORMALIZERS = {
    'higher_linear': normalize_higher_linear,
    'higher_log': normalize_higher_log,
    'lower_linear': normalize_lower_linear,
}
