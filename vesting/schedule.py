"""
schedule.py - Vesting schedule record, validation and commit

This module provides:
1. Period / Schedule - immutable schedule records
2. validate_schedule() - pure validation, returns a Schedule or raises
   check_schedule() - the same rules for schedules read back from storage
3. ScheduleRegistry - versioned holder of the committed schedule

A schedule splits a deposit in two: an initial unlock released at the cliff
(a whole percent of the deposit) and a remainder distributed across ordered
periods. Period portions are expressed in basis points and must sum to
exactly `basis_points`, so the periods partition 100% of the remainder.

Validation order is fixed and reported failures are always the first
violated rule:

    StartTimeInPast -> CliffBeforeStart -> PercentOutOfRange
    -> (per period) PortionOutOfRange, PeriodOutOfOrder, PeriodBeforeCliff
    -> PortionMismatch
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union
import logging

from .core import (
    DEFAULT_BASIS_POINTS, MAX_INITIAL_UNLOCK_PERCENT,
    StartTimeInPast, CliffBeforeStart, PercentOutOfRange,
    PeriodOutOfOrder, PeriodBeforeCliff, PortionOutOfRange, PortionMismatch,
    is_integer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Period:
    """
    One slice of the post-cliff unlock.

    Attributes:
        end_time: Timestamp at which this period's portion is fully unlocked.
        portion: Share of the remainder unlocked over this period, in basis points.
    """
    end_time: int
    portion: int

    def __post_init__(self):
        if not is_integer(self.end_time):
            raise ValueError(f"Period end_time must be int, got {type(self.end_time)}")
        if not is_integer(self.portion):
            raise ValueError(f"Period portion must be int, got {type(self.portion)}")

    @classmethod
    def coerce(cls, value: Union['Period', Tuple[int, int], dict]) -> 'Period':
        """Accept a Period, an (end_time, portion) pair or a mapping."""
        if isinstance(value, Period):
            return value
        if isinstance(value, dict):
            return cls(end_time=value['end_time'], portion=value['portion'])
        end_time, portion = value
        return cls(end_time=end_time, portion=portion)

    def to_dict(self) -> dict:
        return {'end_time': self.end_time, 'portion': self.portion}


@dataclass(frozen=True, slots=True)
class Schedule:
    """
    Validated, immutable unlock schedule.

    Instances are produced by validate_schedule(), or by from_dict() for
    persisted state, which callers pass through check_schedule().
    """
    start_time: int
    cliff: int
    initial_unlock_percent: int
    periods: Tuple[Period, ...]
    basis_points: int = DEFAULT_BASIS_POINTS

    @property
    def end_time(self) -> int:
        """Timestamp from which the whole deposit is unlocked."""
        return self.periods[-1].end_time if self.periods else self.cliff

    def to_dict(self) -> dict:
        return {
            'start_time': self.start_time,
            'cliff': self.cliff,
            'initial_unlock_percent': self.initial_unlock_percent,
            'periods': [p.to_dict() for p in self.periods],
            'basis_points': self.basis_points,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Schedule':
        return cls(
            start_time=data['start_time'],
            cliff=data['cliff'],
            initial_unlock_percent=data['initial_unlock_percent'],
            periods=tuple(Period.coerce(p) for p in data['periods']),
            basis_points=data['basis_points'],
        )


def validate_schedule(
    start_time: int,
    cliff: int,
    initial_unlock_percent: int,
    periods: Iterable[Union[Period, Tuple[int, int], dict]],
    *,
    now: int,
    basis_points: int = DEFAULT_BASIS_POINTS,
) -> Schedule:
    """
    Validate a proposed schedule and return it as an immutable Schedule.

    Nothing is committed here; callers commit the returned value as a whole,
    so a failed validation leaves no partial state behind.

    Args:
        start_time: Vesting start, must not be before `now`.
        cliff: Lock-in end; nothing unlocks before it. Must be >= start_time.
        initial_unlock_percent: Whole percent released at the cliff, 0..100.
        periods: Ordered periods with strictly increasing end times, all
                 after the cliff, whose portions sum to exactly basis_points.
        now: Current logical time.
        basis_points: Precision denominator for period portions.

    Raises:
        StartTimeInPast, CliffBeforeStart, PercentOutOfRange, PortionOutOfRange,
        PeriodOutOfOrder, PeriodBeforeCliff, PortionMismatch
        ValueError: If a time, percent or portion is not an integer.
    """
    _check_types(start_time, cliff, initial_unlock_percent, basis_points)
    if start_time < now:
        raise StartTimeInPast(f"start_time {start_time} is before current time {now}")
    return _check_structure(start_time, cliff, initial_unlock_percent,
                            tuple(Period.coerce(p) for p in periods), basis_points)


def check_schedule(schedule: Schedule, basis_points: Optional[int] = None) -> Schedule:
    """
    Re-run every structural rule on an existing Schedule.

    Used for schedules that did not come straight from validate_schedule(),
    such as ones read back from persisted state. The start time is not
    compared with the clock: a restored schedule may have started long ago.

    Raises:
        ScheduleError subclasses as in validate_schedule(), except StartTimeInPast.
        ValueError: non-integer fields, or basis_points differs from the expected one.
    """
    _check_types(schedule.start_time, schedule.cliff,
                 schedule.initial_unlock_percent, schedule.basis_points)
    if basis_points is not None and schedule.basis_points != basis_points:
        raise ValueError(
            f"schedule uses basis_points {schedule.basis_points}, expected {basis_points}"
        )
    return _check_structure(schedule.start_time, schedule.cliff,
                            schedule.initial_unlock_percent,
                            tuple(Period.coerce(p) for p in schedule.periods),
                            schedule.basis_points)


def _check_types(start_time, cliff, initial_unlock_percent, basis_points) -> None:
    for label, value in (('start_time', start_time), ('cliff', cliff),
                         ('initial_unlock_percent', initial_unlock_percent),
                         ('basis_points', basis_points)):
        if not is_integer(value):
            raise ValueError(f"{label} must be int, got {type(value)}")
    if basis_points <= 0:
        raise ValueError(f"basis_points must be positive, got {basis_points}")


def _check_structure(
    start_time: int,
    cliff: int,
    initial_unlock_percent: int,
    periods: Tuple[Period, ...],
    basis_points: int,
) -> Schedule:
    if cliff < start_time:
        raise CliffBeforeStart(f"cliff {cliff} is before start_time {start_time}")
    if initial_unlock_percent < 0 or initial_unlock_percent > MAX_INITIAL_UNLOCK_PERCENT:
        raise PercentOutOfRange(
            f"initial_unlock_percent must be within 0..{MAX_INITIAL_UNLOCK_PERCENT}, "
            f"got {initial_unlock_percent}"
        )

    previous_end: Optional[int] = None
    total_portion = 0
    for index, period in enumerate(periods):
        if period.portion < 0 or period.portion > basis_points:
            raise PortionOutOfRange(
                f"period {index}: portion {period.portion} outside 0..{basis_points}"
            )
        if previous_end is not None and period.end_time <= previous_end:
            raise PeriodOutOfOrder(
                f"period {index}: end_time {period.end_time} <= previous end_time {previous_end}"
            )
        if period.end_time <= cliff:
            raise PeriodBeforeCliff(
                f"period {index}: end_time {period.end_time} <= cliff {cliff}"
            )
        previous_end = period.end_time
        total_portion += period.portion

    if total_portion != basis_points:
        raise PortionMismatch(
            f"period portions sum to {total_portion}, expected {basis_points}"
        )

    return Schedule(
        start_time=start_time,
        cliff=cliff,
        initial_unlock_percent=initial_unlock_percent,
        periods=periods,
        basis_points=basis_points,
    )


class ScheduleRegistry:
    """
    Versioned holder of the committed schedule.

    The committed Schedule is immutable, so readers that grab snapshot() at
    the start of an operation can never observe a half-written schedule.
    Each commit replaces the record wholesale and bumps the version.
    """

    def __init__(self, schedule: Optional[Schedule] = None, version: int = 0):
        self._schedule = schedule
        self._version = version

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_set(self) -> bool:
        return self._schedule is not None

    def snapshot(self) -> Optional[Schedule]:
        """The committed schedule, or None if nothing was committed yet."""
        return self._schedule

    def commit(self, schedule: Schedule) -> int:
        """Replace the committed schedule; returns the new version."""
        self._schedule = schedule
        self._version += 1
        logger.info(
            "Schedule v%d committed: start=%d cliff=%d initial=%d%% periods=%d",
            self._version, schedule.start_time, schedule.cliff,
            schedule.initial_unlock_percent, len(schedule.periods),
        )
        return self._version

    def restore(self, schedule: Optional[Schedule], version: int) -> None:
        self._schedule = schedule
        self._version = version
