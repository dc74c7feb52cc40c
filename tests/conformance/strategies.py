"""
Hypothesis strategies shared by the conformance tests.
"""

from hypothesis import strategies as st

from vesting import DEFAULT_BASIS_POINTS, Period, Schedule


@st.composite
def portions(draw, count: int, basis_points: int = DEFAULT_BASIS_POINTS):
    """`count` non-negative ints summing to exactly basis_points."""
    cuts = sorted(draw(st.lists(st.integers(0, basis_points),
                                min_size=count - 1, max_size=count - 1)))
    bounds = [0] + cuts + [basis_points]
    return [hi - lo for lo, hi in zip(bounds, bounds[1:])]


@st.composite
def schedules(draw, start_time: int = 0, basis_points: int = DEFAULT_BASIS_POINTS):
    """Valid schedules starting at start_time."""
    cliff = start_time + draw(st.integers(0, 10_000))
    count = draw(st.integers(1, 6))
    gaps = draw(st.lists(st.integers(1, 100_000), min_size=count, max_size=count))
    split = draw(portions(count, basis_points))
    periods = []
    end = cliff
    for gap, portion in zip(gaps, split):
        end += gap
        periods.append(Period(end, portion))
    return Schedule(
        start_time=start_time,
        cliff=cliff,
        initial_unlock_percent=draw(st.integers(0, 100)),
        periods=tuple(periods),
        basis_points=basis_points,
    )


amounts = st.integers(min_value=0, max_value=10**30)
