"""
pricing_source.py - Read-only price feed adapter

Latest-price lookup for asset pairs such as "TKN/USD". The vault never
reads prices; this module exists for callers that want to value vested
positions (e.g. a dashboard showing unlocked amounts in USD).

Classes:
- PriceFeed: Protocol defining the lookup interface
- StaticPriceFeed: Time-independent prices
- TimeSeriesPriceFeed: Time-varying prices with historical data

Timestamps are integer Unix seconds; prices are Decimal.
"""

from __future__ import annotations
from bisect import bisect_right
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable


def _check_pair(pair: str) -> Tuple[str, str]:
    base, sep, quote = pair.partition("/")
    if not sep or not base or not quote:
        raise ValueError(f"pair must look like BASE/QUOTE, got {pair!r}")
    return base, quote


@runtime_checkable
class PriceFeed(Protocol):
    """A source of pair prices at a point in time."""

    def get_price(self, pair: str, timestamp: Optional[int] = None) -> Optional[Decimal]:
        """Price of `pair` at or before `timestamp` (latest if None)."""
        ...


class StaticPriceFeed:
    """
    Price feed with fixed prices (timestamp is ignored).

    A pair whose base equals its quote always prices at 1.
    """

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None):
        self.prices: Dict[str, Decimal] = {}
        for pair, price in (prices or {}).items():
            self.update_price(pair, price)

    def get_price(self, pair: str, timestamp: Optional[int] = None) -> Optional[Decimal]:
        base, quote = _check_pair(pair)
        if base == quote:
            return Decimal(1)
        return self.prices.get(pair)

    def update_price(self, pair: str, price: Decimal) -> None:
        _check_pair(pair)
        self.prices[pair] = Decimal(price)

    def __repr__(self):
        return f"StaticPriceFeed({len(self.prices)} pairs)"


class TimeSeriesPriceFeed:
    """
    Price feed backed by per-pair observation histories.

    Returns the most recent observation at or before the requested time.

    Example:
        feed = TimeSeriesPriceFeed({"TKN/USD": [(100, Decimal("1.5")), (200, Decimal("1.7"))]})
        feed.get_price("TKN/USD", 150)   # Decimal("1.5")
        feed.latest_price("TKN/USD")     # Decimal("1.7")
    """

    def __init__(self, histories: Optional[Dict[str, List[Tuple[int, Decimal]]]] = None):
        self.history: Dict[str, List[Tuple[int, Decimal]]] = {}
        for pair, path in (histories or {}).items():
            for timestamp, price in path:
                self.add_price(pair, timestamp, price)

    def add_price(self, pair: str, timestamp: int, price: Decimal) -> None:
        """Record an observation; histories stay sorted by timestamp."""
        _check_pair(pair)
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            raise ValueError(f"timestamp must be int, got {type(timestamp)}")
        series = self.history.setdefault(pair, [])
        series.append((timestamp, Decimal(price)))
        series.sort(key=lambda x: x[0])

    def get_price(self, pair: str, timestamp: Optional[int] = None) -> Optional[Decimal]:
        base, quote = _check_pair(pair)
        if base == quote:
            return Decimal(1)
        series = self.history.get(pair)
        if not series:
            return None
        if timestamp is None:
            return series[-1][1]
        # Rightmost observation with ts <= timestamp
        idx = bisect_right([ts for ts, _ in series], timestamp)
        if idx == 0:
            return None
        return series[idx - 1][1]

    def latest_price(self, pair: str) -> Optional[Decimal]:
        return self.get_price(pair)

    def timestamps(self, pair: str) -> List[int]:
        return [ts for ts, _ in self.history.get(pair, [])]

    def __repr__(self):
        observations = sum(len(s) for s in self.history.values())
        return f"TimeSeriesPriceFeed({len(self.history)} pairs, {observations} observations)"


def latest_price(feed: PriceFeed, pair: str) -> Decimal:
    """
    Latest price of `pair` from `feed`.

    Raises:
        LookupError: If the feed has no price for the pair.
    """
    price = feed.get_price(pair)
    if price is None:
        raise LookupError(f"no price for {pair}")
    return price
