import pytest

from storefront.config import DEFAULT_CURRENCY_RATES
from storefront.currency import CurrencyConverter, currency_symbol, render_money
from storefront.money import Money


def money(code, units, nanos=0):
    return Money(currency_code=code, units=units, nanos=nanos)


class TestConvert:
    @pytest.mark.parametrize("m", [
        money("USD", 12, 340_000_000),
        money("JPY", 1546, 999_999_999),
        money("TRY", -4, -100_000_000),
        money("XYZ", 1, 1),
    ])
    def test_same_currency_is_identity(self, m):
        converter = CurrencyConverter(DEFAULT_CURRENCY_RATES)
        assert converter.convert(m, m.currency_code) == m

    def test_through_base_currency(self, converter):
        assert converter.convert(money("USD", 10), "EUR") == money("EUR", 5)
        assert converter.convert(money("EUR", 1), "JPY") == money("JPY", 200)
        assert converter.convert(money("GBP", 1), "USD") == money("USD", 4)

    def test_unknown_code_uses_unit_rate(self, converter):
        assert converter.convert(money("USD", 12, 340_000_000), "XYZ") == money("XYZ", 12, 340_000_000)
        assert converter.convert(money("XYZ", 3), "EUR") == money("EUR", 1, 500_000_000)

    def test_truncates_toward_zero(self, converter):
        # 3 nanos at rate 0.5 is 1.5 nanos
        assert converter.convert(money("USD", 0, 3), "EUR") == money("EUR", 0, 1)
        assert converter.convert(money("USD", 0, -3), "EUR") == money("EUR", 0, -1)

    def test_deterministic(self):
        converter = CurrencyConverter(DEFAULT_CURRENCY_RATES)
        m = money("USD", 99, 990_000_000)
        assert converter.convert(m, "TRY") == converter.convert(m, "TRY")

    def test_result_is_normalized(self):
        converter = CurrencyConverter(DEFAULT_CURRENCY_RATES)
        result = converter.convert(money("USD", 10, 990_000_000), "JPY")
        assert result.currency_code == "JPY"
        assert 0 <= result.nanos <= 999_999_999
        assert result.units > 0

    @pytest.mark.parametrize("rate", [0, -1.0, float("nan")])
    def test_rejects_non_positive_rates(self, rate):
        with pytest.raises(ValueError):
            CurrencyConverter({"USD": 1.0, "EUR": rate})

    def test_rate_table_is_read_only(self, converter):
        with pytest.raises(TypeError):
            converter.rates["EUR"] = 2.0

    def test_supported_currencies(self, converter):
        assert converter.supported_currencies() == ["USD", "EUR", "JPY", "GBP"]
        assert converter.is_supported("EUR")
        assert not converter.is_supported("XYZ")
        assert converter.rate("XYZ") == 1.0


class TestRender:
    def test_usd(self):
        assert render_money(money("USD", 12, 300_000_000)) == "$12.30"

    def test_truncates_to_cents(self):
        assert render_money(money("EUR", 1, 999_999_999)) == "€1.99"

    def test_negative(self):
        assert render_money(money("USD", -1, -500_000_000)) == "-$1.50"

    def test_unknown_symbol_defaults_to_dollar(self):
        assert currency_symbol("XYZ") == "$"
        assert render_money(money("JPY", 154, 0)) == "¥154.00"
