"""Tests for field access, time and precision helpers."""

import pytest

from coinbridge.exchanges.helpers import (
    extract_params,
    filter_by,
    filter_by_since_limit,
    implode_params,
    iso8601,
    omit,
    parse8601,
    safe_bool,
    safe_float,
    safe_integer,
    safe_string,
    safe_string_2,
    safe_value,
    sort_by,
    urlencode,
)
from coinbridge.exchanges.precision import (
    PAD_WITH_ZERO,
    ROUND,
    TRUNCATE,
    DECIMAL_PLACES,
    decimal_to_precision,
    number_to_object,
    object_to_number,
    precision_from_string,
)
from coinbridge.exchanges.protocol import Trade


class TestSafeGetters:
    """Tests for the safe_* field getters."""

    def test_safe_float_parses_strings(self):
        assert safe_float({"price": "1.5"}, "price") == 1.5
        assert safe_float({"price": 2}, "price") == 2.0

    def test_safe_float_missing_or_malformed(self):
        assert safe_float({}, "price") is None
        assert safe_float({"price": ""}, "price") is None
        assert safe_float({"price": "abc"}, "price") is None
        assert safe_float({"price": None}, "price", 0.0) == 0.0
        assert safe_float(None, "price") is None

    def test_safe_integer(self):
        assert safe_integer({"ts": "12.7"}, "ts") == 12
        assert safe_integer({"ts": 5}, "ts") == 5
        assert safe_integer({"ts": "x"}, "ts") is None

    def test_safe_string(self):
        assert safe_string({"id": 5}, "id") == "5"
        assert safe_string({"flag": True}, "flag") == "true"
        assert safe_string({"nested": {"a": 1}}, "nested") is None
        assert safe_string({}, "id", "default") == "default"

    def test_safe_string_2_falls_back_to_second_key(self):
        assert safe_string_2({"OrderId": "7"}, "OrderUuid", "OrderId") == "7"
        assert safe_string_2({"OrderUuid": "u", "OrderId": "7"}, "OrderUuid", "OrderId") == "u"

    def test_safe_bool_accepts_strings(self):
        assert safe_bool({"ok": "true"}, "ok") is True
        assert safe_bool({"ok": "False"}, "ok") is False
        assert safe_bool({"ok": "maybe"}, "ok") is None
        assert safe_bool({"ok": 1}, "ok") is True

    def test_safe_value_on_lists(self):
        assert safe_value([1, 2, 3], 1) == 2
        assert safe_value([1, 2, 3], 5) is None
        assert safe_value([1, 2, 3], 5, "x") == "x"


class TestUrlHelpers:
    """Tests for path and query helpers."""

    def test_urlencode_drops_none_and_lowercases_bools(self):
        assert urlencode({"a": 1, "b": None, "c": True}) == "a=1&c=true"

    def test_implode_params(self):
        assert implode_params("book/{symbol}", {"symbol": "btcusd"}) == "book/btcusd"
        assert implode_params("book/{symbol}", {}) == "book/{symbol}"

    def test_extract_params_and_omit(self):
        assert extract_params("deposit/{currency}/newAddress") == ["currency"]
        assert omit({"currency": "btc", "amount": 1}, ["currency"]) == {"amount": 1}


class TestTimeHelpers:
    """Tests for ISO-8601 conversion."""

    def test_iso8601(self):
        assert iso8601(1540000000123) == "2018-10-20T01:46:40.123Z"
        assert iso8601(None) is None

    def test_parse8601(self):
        assert parse8601("2018-10-20T01:46:40.123Z") == 1540000000123
        assert parse8601("2018-10-20T01:46:40+00:00") == 1540000000000

    def test_parse8601_reads_naive_strings_as_utc(self):
        assert parse8601("2018-10-20 01:46:40") == 1540000000000

    def test_parse8601_invalid(self):
        assert parse8601("not a date") is None
        assert parse8601(None) is None


class TestCollections:
    """Tests for sorting and filtering of parsed records."""

    def _trades(self):
        return [
            Trade(id="b", symbol="ETH/BTC", timestamp=2000),
            Trade(id="a", symbol="BTC/USD", timestamp=1000),
            Trade(id="c", symbol="ETH/BTC", timestamp=3000),
        ]

    def test_sort_by(self):
        assert [t.id for t in sort_by(self._trades(), "timestamp")] == ["a", "b", "c"]
        assert [t.id for t in sort_by(self._trades(), "timestamp", descending=True)] == ["c", "b", "a"]

    def test_filter_by_since_limit(self):
        trades = sort_by(self._trades(), "timestamp")
        assert [t.id for t in filter_by_since_limit(trades, since=2000)] == ["b", "c"]
        assert [t.id for t in filter_by_since_limit(trades, limit=1)] == ["a"]

    def test_filter_by(self):
        assert [t.id for t in filter_by(self._trades(), "symbol", "ETH/BTC")] == ["b", "c"]


class TestDecimalToPrecision:
    """Tests for decimal_to_precision."""

    def test_truncate(self):
        assert decimal_to_precision(0.123456789, TRUNCATE, 4) == "0.1234"
        assert decimal_to_precision(1.99999, TRUNCATE, 2) == "1.99"

    def test_round_half_up(self):
        assert decimal_to_precision(0.12345, ROUND, 4) == "0.1235"
        assert decimal_to_precision(1.5, ROUND, 0) == "2"

    def test_no_padding_strips_zeros(self):
        assert decimal_to_precision(123.0, ROUND, 2) == "123"
        assert decimal_to_precision(0.1, ROUND, 8) == "0.1"

    def test_pad_with_zero(self):
        assert decimal_to_precision(1.5, ROUND, 3, DECIMAL_PLACES, PAD_WITH_ZERO) == "1.500"

    def test_negative_precision_rounds_to_tens(self):
        assert decimal_to_precision(1234, ROUND, -2) == "1200"

    def test_rejects_non_numbers(self):
        with pytest.raises(ValueError):
            decimal_to_precision("abc", ROUND, 2)

    def test_precision_from_string(self):
        assert precision_from_string("0.00100") == 3
        assert precision_from_string("1") == 0
        assert precision_from_string("1e-8") == 8


class TestNumberObjects:
    """Tests for the {value, decimals} number encoding."""

    def test_number_to_object(self):
        assert number_to_object(0.15) == {"value": 15, "decimals": 2}
        assert number_to_object(100) == {"value": 100, "decimals": 0}

    def test_number_to_object_rounds_to_ten_places(self):
        assert number_to_object(1.23456789012345) == {"value": 12345678901, "decimals": 10}

    def test_object_to_number(self):
        assert object_to_number({"value": 305, "decimals": 4}) == pytest.approx(0.0305)
        assert object_to_number({"value": 2, "decimals": 0}) == 2.0

    def test_object_to_number_malformed(self):
        assert object_to_number("bad") is None
        assert object_to_number({"value": 5}) is None
        assert object_to_number(None) is None

    @pytest.mark.parametrize("value", [0, -0.5, 0.1, 1.5, 123.456, 0.00000123, 98765.4321, 42])
    def test_round_trip(self, value):
        assert object_to_number(number_to_object(value)) == pytest.approx(value, abs=1e-10)
