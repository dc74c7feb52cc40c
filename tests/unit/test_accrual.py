"""
test_accrual.py - Unit tests for the piecewise unlock computation

Tests:
- Reference scenarios (single period, two periods)
- Cliff and end boundaries
- Floor rounding and dust release at the final end
- Large amounts
- Input validation
- compute_releasable
"""

import pytest

from vesting import Period, Schedule, compute_unlocked, compute_releasable

T = 1_000


@pytest.fixture
def single_period():
    """Cliff at T, 10% initial, one period ending at T+100."""
    return Schedule(T - 100, T, 10, (Period(T + 100, 10_000),))


@pytest.fixture
def two_periods():
    """Cliff at T, no initial unlock, halves ending at T+50 and T+150."""
    return Schedule(T - 100, T, 0, (Period(T + 50, 5_000), Period(T + 150, 5_000)))


class TestSinglePeriodScenario:

    def test_before_cliff(self, single_period):
        assert compute_unlocked(1_000, single_period, T - 1) == 0

    def test_at_cliff_initial_unlock(self, single_period):
        assert compute_unlocked(1_000, single_period, T) == 100

    def test_midway(self, single_period):
        # 100 + floor(900 * 50 * 10000 / (100 * 10000))
        assert compute_unlocked(1_000, single_period, T + 50) == 550

    @pytest.mark.parametrize("t", [T + 100, T + 101, T + 10**9])
    def test_at_and_after_end(self, single_period, t):
        assert compute_unlocked(1_000, single_period, t) == 1_000


class TestTwoPeriodScenario:

    def test_at_cliff_nothing(self, two_periods):
        assert compute_unlocked(1_000, two_periods, T) == 0

    def test_first_period_complete(self, two_periods):
        assert compute_unlocked(1_000, two_periods, T + 50) == 500

    def test_inside_second_period(self, two_periods):
        # 500 + floor(1000 * 50 * 5000 / (100 * 10000))
        assert compute_unlocked(1_000, two_periods, T + 100) == 750

    def test_inside_first_period(self, two_periods):
        assert compute_unlocked(1_000, two_periods, T + 25) == 250

    def test_end(self, two_periods):
        assert compute_unlocked(1_000, two_periods, T + 150) == 1_000


class TestRounding:

    def test_floor_dust_released_at_end(self):
        schedule = Schedule(0, 0, 0, (Period(10, 3_333), Period(20, 3_333), Period(30, 3_334)))
        assert compute_unlocked(7, schedule, 10) == 2
        assert compute_unlocked(7, schedule, 20) == 4
        assert compute_unlocked(7, schedule, 29) == 6
        assert compute_unlocked(7, schedule, 30) == 7

    def test_initial_unlock_floors(self, single_period):
        assert compute_unlocked(9, single_period, T) == 0
        assert compute_unlocked(19, single_period, T) == 1

    def test_full_initial_unlock(self):
        schedule = Schedule(0, 10, 100, (Period(20, 10_000),))
        assert compute_unlocked(1_234, schedule, 10) == 1_234
        assert compute_unlocked(1_234, schedule, 15) == 1_234

    def test_zero_portion_period_adds_nothing(self):
        schedule = Schedule(0, 0, 0, (Period(10, 0), Period(20, 10_000)))
        assert compute_unlocked(1_000, schedule, 5) == 0
        assert compute_unlocked(1_000, schedule, 15) == 500

    def test_zero_amount(self, single_period):
        assert compute_unlocked(0, single_period, T + 50) == 0


class TestLargeValues:

    def test_huge_amount_and_horizon(self):
        schedule = Schedule(0, 0, 0, (Period(10**12, 10_000),))
        amount = 10**40
        assert compute_unlocked(amount, schedule, 5 * 10**11) == amount // 2
        assert compute_unlocked(amount, schedule, 10**12) == amount


class TestValidation:

    def test_negative_amount(self, single_period):
        with pytest.raises(ValueError):
            compute_unlocked(-1, single_period, T)

    @pytest.mark.parametrize("t", [float(T), "1000", None])
    def test_non_integer_time(self, single_period, t):
        with pytest.raises(ValueError):
            compute_unlocked(1_000, single_period, t)

    def test_float_amount(self, single_period):
        with pytest.raises(ValueError):
            compute_unlocked(1_000.0, single_period, T)


class TestReleasable:

    def test_releasable_subtracts_released(self, single_period):
        assert compute_releasable(1_000, 100, single_period, T + 50) == 450

    def test_releasable_never_negative(self, single_period):
        assert compute_releasable(1_000, 600, single_period, T + 50) == 0

    def test_releasable_before_cliff(self, single_period):
        assert compute_releasable(1_000, 0, single_period, T - 1) == 0
