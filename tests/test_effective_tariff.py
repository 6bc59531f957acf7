from datetime import datetime, timedelta, UTC

import pytest

from site_tariffs.effective_tariff import FallbackReason, blend_forecast, effective_forecast_tariff
from site_tariffs.rates import Rate, RateNotAvailable
from site_tariffs.tariffs import DynamicTariff, FixedTariff, TariffType, TariffUsage, now

T0 = datetime(2024, 6, 1, tzinfo=UTC)


def h(hours):
    return T0 + timedelta(hours=hours)


class BrokenFeedIn:
    type = TariffType.PRICE_STATIC

    def current(self, at=None):
        raise RateNotAvailable("meter offline")

    def forecast(self):
        return []


@pytest.fixture
def planner():
    return DynamicTariff([Rate(h(0), h(2), 0.22)], TariffType.PLANNER)


@pytest.fixture
def tariffs(planner):
    return {
        TariffUsage.GRID: DynamicTariff([Rate(h(0), h(1), 0.30), Rate(h(1), h(2), 0.20)]),
        TariffUsage.SOLAR: DynamicTariff([Rate(h(0), h(1), 5000.0), Rate(h(1), h(2), 1000.0)], TariffType.SOLAR),
        TariffUsage.FEED_IN: FixedTariff(0.10),
        TariffUsage.PLANNER: planner,
    }


@pytest.mark.parametrize("usage, reason", [
    (TariffUsage.SOLAR, FallbackReason.NO_SOLAR_FORECAST),
    (TariffUsage.GRID, FallbackReason.NO_GRID_TARIFF),
    (TariffUsage.FEED_IN, FallbackReason.NO_FEED_IN_TARIFF),
])
def test_missing_provider_returns_planner(tariffs, planner, usage, reason):
    del tariffs[usage]
    res = blend_forecast(tariffs, 11000)

    assert res.tariff is planner
    assert res.reason == reason
    assert not res.blended


def test_no_feed_in_scenario(planner):
    tariffs = {
        TariffUsage.GRID: DynamicTariff([Rate(h(0), h(1), 0.30), Rate(h(1), h(2), 0.25)]),
        TariffUsage.SOLAR: DynamicTariff([Rate(h(0), h(2), 500.0)], TariffType.SOLAR),
        TariffUsage.PLANNER: planner,
    }
    tariff = effective_forecast_tariff(tariffs, 11000)
    assert tariff.forecast() == planner.forecast()


def test_unreadable_static_feed_in(tariffs, planner):
    tariffs[TariffUsage.FEED_IN] = BrokenFeedIn()
    res = blend_forecast(tariffs, 11000)

    assert res.tariff is planner
    assert res.reason == FallbackReason.FEED_IN_UNAVAILABLE


def test_no_planner_fallback_is_none(tariffs):
    del tariffs[TariffUsage.PLANNER]
    del tariffs[TariffUsage.SOLAR]
    assert effective_forecast_tariff(tariffs, 11000) is None


def test_blend_with_static_feed_in(tariffs):
    res = blend_forecast(tariffs, 2000)
    rates = res.tariff.forecast()

    assert res.blended
    assert res.tariff.type == TariffType.PLANNER
    assert [(r.start, r.end) for r in rates] == [(h(0), h(1)), (h(1), h(2))]
    # 5000Wh cover the 2000Wh slot ceiling, 1000Wh cover half of it
    assert [r.value for r in rates] == pytest.approx([0.10, 0.15])
    assert now(res.tariff, h(1.5)) == pytest.approx(0.15)


def test_zero_load_power_uses_grid_price(tariffs):
    rates = effective_forecast_tariff(tariffs, 0).forecast()
    assert [r.value for r in rates] == pytest.approx([0.30, 0.20])


def test_no_solar_energy_uses_grid_price(tariffs):
    tariffs[TariffUsage.SOLAR] = DynamicTariff([Rate(h(0), h(2), 0.0)], TariffType.SOLAR)
    rates = effective_forecast_tariff(tariffs, 2000).forecast()
    assert [r.value for r in rates] == pytest.approx([0.30, 0.20])


def test_blend_on_mismatched_slots():
    tariffs = {
        TariffUsage.GRID: DynamicTariff([Rate(h(0), h(1), 0.30)]),
        TariffUsage.SOLAR: DynamicTariff([Rate(h(0), h(0.5), 500.0), Rate(h(0.5), h(1), 250.0)], TariffType.SOLAR),
        TariffUsage.FEED_IN: DynamicTariff([Rate(h(0), h(1), 0.10)]),
    }
    rates = effective_forecast_tariff(tariffs, 1000).forecast()

    assert [(r.start, r.end) for r in rates] == [(h(0), h(0.5)), (h(0.5), h(1))]
    # grid and feed-in quantities are split over the half-hour slots,
    # 500Wh fill the 500Wh ceiling, 250Wh half of it
    assert [r.value for r in rates] == pytest.approx([0.05, 0.15 * 0.5 + 0.05 * 0.5])


def test_dynamic_feed_in_adds_boundaries():
    tariffs = {
        TariffUsage.GRID: DynamicTariff([Rate(h(0), h(2), 0.40)]),
        TariffUsage.SOLAR: DynamicTariff([Rate(h(0), h(2), 0.0)], TariffType.SOLAR),
        TariffUsage.FEED_IN: DynamicTariff([Rate(h(0), h(1), 0.10), Rate(h(1), h(2), 0.06)]),
    }
    rates = effective_forecast_tariff(tariffs, 1000).forecast()

    assert [(r.start, r.end) for r in rates] == [(h(0), h(1)), (h(1), h(2))]
    assert [r.value for r in rates] == pytest.approx([0.20, 0.20])


def test_blend_does_not_modify_provider_series(tariffs):
    before = tariffs[TariffUsage.SOLAR].forecast()
    tariffs[TariffUsage.GRID] = DynamicTariff([Rate(h(0), h(2), 0.30)])

    effective_forecast_tariff(tariffs, 2000)

    assert tariffs[TariffUsage.SOLAR].forecast() == before


@pytest.mark.parametrize("tariff_type", [TariffType.SOLAR, TariffType.CO2, TariffType.PLANNER])
def test_feed_in_must_be_a_price(tariffs, planner, tariff_type):
    tariffs[TariffUsage.FEED_IN] = DynamicTariff([Rate(h(0), h(2), 500.0)], tariff_type)
    res = blend_forecast(tariffs, 2000)

    assert res.tariff is planner
    assert res.reason == FallbackReason.FEED_IN_NOT_A_PRICE


def test_forecast_feed_in_price_is_blended(tariffs):
    tariffs[TariffUsage.FEED_IN] = DynamicTariff([Rate(h(0), h(2), 0.20)], TariffType.PRICE_FORECAST)
    res = blend_forecast(tariffs, 2000)

    assert res.blended
    # feed-in price split over two hourly slots
    assert [r.value for r in res.tariff.forecast()] == pytest.approx([0.10, 0.15])
