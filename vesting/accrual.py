"""
accrual.py - Piecewise unlock computation

Pure function, integer-only. Given a locked amount, a validated Schedule and
a timestamp, returns how much of the amount is unlocked at that time:

    t < cliff                : 0
    cliff <= t < last end    : initial + fully elapsed periods
                               + pro-rata share of the current period
    t >= last end            : locked_amount

    initial   = floor(locked_amount * initial_unlock_percent / 100)
    remaining = locked_amount - initial

    elapsed period     : floor(remaining * portion / basis_points)
    current period     : floor(remaining * (t - period_start) * portion
                               / ((end_time - period_start) * basis_points))

The first period starts at the cliff; each later period starts at the
previous period's end. Python ints are unbounded, so the triple product
never overflows. Every term is floored, so the running total never exceeds
locked_amount; the floor dust of elapsed periods is released at the final
end time. The result is non-decreasing in t.
"""

from __future__ import annotations

from .core import MAX_INITIAL_UNLOCK_PERCENT, is_integer
from .schedule import Schedule


def compute_unlocked(locked_amount: int, schedule: Schedule, time: int) -> int:
    """
    Amount of locked_amount unlocked at `time` under `schedule`.

    Args:
        locked_amount: Total amount deposited (integer base units, >= 0).
        schedule: Validated schedule.
        time: Timestamp to evaluate at (Unix seconds).

    Returns:
        Unlocked amount, 0 <= result <= locked_amount.

    Raises:
        ValueError: If locked_amount or time is not a non-negative int / int.

    Example:
        >>> s = Schedule(0, 100, 10, (Period(200, 10_000),))
        >>> compute_unlocked(1000, s, 150)
        550
    """
    if not is_integer(locked_amount) or locked_amount < 0:
        raise ValueError(f"locked_amount must be a non-negative int, got {locked_amount!r}")
    if not is_integer(time):
        raise ValueError(f"time must be int, got {type(time)}")

    if time < schedule.cliff:
        return 0

    initial = locked_amount * schedule.initial_unlock_percent // MAX_INITIAL_UNLOCK_PERCENT
    remaining = locked_amount - initial

    accumulated = 0
    period_start = schedule.cliff
    for period in schedule.periods:
        if time < period.end_time:
            duration = period.end_time - period_start
            partial = (remaining * (time - period_start) * period.portion
                       // (duration * schedule.basis_points))
            return initial + accumulated + partial
        accumulated += remaining * period.portion // schedule.basis_points
        period_start = period.end_time

    return locked_amount


def compute_releasable(locked_amount: int, released: int, schedule: Schedule, time: int) -> int:
    """Unlocked amount not yet released; never negative."""
    return max(compute_unlocked(locked_amount, schedule, time) - released, 0)
