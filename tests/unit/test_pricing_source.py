"""
test_pricing_source.py - Tests for the price feed adapter

Tests:
- StaticPriceFeed lookups and updates
- TimeSeriesPriceFeed point-in-time and latest lookups
- latest_price() helper
"""

import pytest
from decimal import Decimal

from vesting import PriceFeed, StaticPriceFeed, TimeSeriesPriceFeed, latest_price


class TestStaticPriceFeed:

    def test_lookup(self):
        feed = StaticPriceFeed({"TKN/USD": Decimal("1.25")})
        assert feed.get_price("TKN/USD") == Decimal("1.25")
        assert feed.get_price("TKN/USD", 12345) == Decimal("1.25")

    def test_missing_pair(self):
        assert StaticPriceFeed().get_price("TKN/USD") is None

    def test_identity_pair(self):
        assert StaticPriceFeed().get_price("USD/USD") == Decimal(1)

    def test_update(self):
        feed = StaticPriceFeed()
        feed.update_price("TKN/USD", Decimal("2"))
        assert feed.get_price("TKN/USD") == Decimal("2")

    @pytest.mark.parametrize("pair", ["TKNUSD", "/USD", "TKN/"])
    def test_malformed_pair(self, pair):
        with pytest.raises(ValueError):
            StaticPriceFeed().get_price(pair)

    def test_is_price_feed(self):
        assert isinstance(StaticPriceFeed(), PriceFeed)


class TestTimeSeriesPriceFeed:

    @pytest.fixture
    def feed(self):
        return TimeSeriesPriceFeed({
            "TKN/USD": [(200, Decimal("1.7")), (100, Decimal("1.5"))],
        })

    def test_point_in_time(self, feed):
        assert feed.get_price("TKN/USD", 99) is None
        assert feed.get_price("TKN/USD", 100) == Decimal("1.5")
        assert feed.get_price("TKN/USD", 199) == Decimal("1.5")
        assert feed.get_price("TKN/USD", 200) == Decimal("1.7")

    def test_latest(self, feed):
        assert feed.latest_price("TKN/USD") == Decimal("1.7")

    def test_add_price_keeps_order(self, feed):
        feed.add_price("TKN/USD", 150, Decimal("1.6"))
        assert feed.timestamps("TKN/USD") == [100, 150, 200]
        assert feed.get_price("TKN/USD", 175) == Decimal("1.6")

    def test_non_int_timestamp(self, feed):
        with pytest.raises(ValueError):
            feed.add_price("TKN/USD", 1.5, Decimal("1"))

    def test_unknown_pair(self, feed):
        assert feed.get_price("ETH/USD") is None
        assert feed.timestamps("ETH/USD") == []

    def test_repr(self, feed):
        assert repr(feed) == "TimeSeriesPriceFeed(1 pairs, 2 observations)"


class TestLatestPrice:

    def test_returns_price(self):
        assert latest_price(StaticPriceFeed({"TKN/USD": Decimal("3")}), "TKN/USD") == Decimal("3")

    def test_missing_raises(self):
        with pytest.raises(LookupError):
            latest_price(TimeSeriesPriceFeed(), "TKN/USD")
