"""
Quadratic cost with unsigned 64-bit saturating arithmetic.

Values are clamped to [0, U64_MAX] instead of overflowing, so pricing a
vote can never fail.
"""

from typing import Iterable

U64_MAX = 2**64 - 1


def _clamp(value: int) -> int:
    if value < 0:
        return 0
    if value > U64_MAX:
        return U64_MAX
    return value


def saturating_add(a: int, b: int) -> int:
    return _clamp(a + b)


def saturating_sub(a: int, b: int) -> int:
    return _clamp(a - b)


def saturating_mul(a: int, b: int) -> int:
    return _clamp(a * b)


def quadratic_cost(weights: Iterable[int]) -> int:
    """
    Total credits needed for a batch: sum of weight**2 over all entries.
    """
    total = 0
    for w in weights:
        total = saturating_add(total, saturating_mul(w, w))
    return total
