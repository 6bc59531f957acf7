import logging
from dataclasses import dataclass
from enum import Enum

from site_tariffs import config
from site_tariffs.rates import Rate, RateNotAvailable, align_rates, rates_to_frame
from site_tariffs.tariffs import EffectiveTariff, TariffType, TariffUsage, forecast, now

logger = logging.getLogger(__name__)


class FallbackReason(Enum):
    NO_SOLAR_FORECAST = "no solar forecast"
    NO_GRID_TARIFF = "no grid tariff"
    NO_FEED_IN_TARIFF = "no feed-in tariff"
    FEED_IN_UNAVAILABLE = "feed-in price unavailable"
    FEED_IN_NOT_A_PRICE = "feed-in tariff is not a price"


@dataclass(frozen=True)
class BlendResult:
    """Blended tariff, or the planner tariff together with the reason for falling back."""
    tariff: object
    reason: FallbackReason | None = None

    @property
    def blended(self):
        return self.reason is None


def _fallback(tariffs, reason):
    logger.debug("effective tariff: using planner tariff, %s", reason.value)
    return BlendResult(tariffs.get(TariffUsage.PLANNER), reason)


def blend_forecast(tariffs, max_power, at=None):
    """
    Blend grid and feed-in forecasts by the forecast share of solar power.

    For every slot the load can take at most `max_power` (W) scaled to the
    slot duration. The part of that covered by forecast solar energy is
    priced at the feed-in rate, the rest at the grid rate.

    Parameters
    ----------
    tariffs : dict
        TariffUsage -> tariff provider, missing usages are absent or None.
    max_power : float
        Effective maximum power of the target load (W).
    at : datetime or None
        Time used to read a static feed-in price.

    Returns
    -------
    BlendResult
        Holds an `EffectiveTariff`, or the planner tariff unchanged and a
        `FallbackReason` when a blend cannot be computed.
    """
    solar_tariff = tariffs.get(TariffUsage.SOLAR)
    if solar_tariff is None:
        return _fallback(tariffs, FallbackReason.NO_SOLAR_FORECAST)

    grid_tariff = tariffs.get(TariffUsage.GRID)
    if grid_tariff is None:
        return _fallback(tariffs, FallbackReason.NO_GRID_TARIFF)

    solar = list(forecast(solar_tariff))
    grid = list(forecast(grid_tariff))

    feed_in_tariff = tariffs.get(TariffUsage.FEED_IN)
    if feed_in_tariff is None:
        return _fallback(tariffs, FallbackReason.NO_FEED_IN_TARIFF)

    if feed_in_tariff.type == TariffType.PRICE_STATIC:
        try:
            price = now(feed_in_tariff, at)
        except RateNotAvailable:
            return _fallback(tariffs, FallbackReason.FEED_IN_UNAVAILABLE)
        feed_in = [Rate(r.start, r.end, price) for r in grid]
    elif feed_in_tariff.type in (TariffType.PRICE_DYNAMIC, TariffType.PRICE_FORECAST):
        feed_in = list(forecast(feed_in_tariff))
    else:
        return _fallback(tariffs, FallbackReason.FEED_IN_NOT_A_PRICE)

    align_rates(grid, solar)
    align_rates(grid, feed_in)
    # feed-in may have split grid slots again
    align_rates(grid, solar)

    # mismatched lengths are truncated to the shortest series
    n = min(len(grid), len(solar), len(feed_in))
    grid = grid[:n]

    frame = rates_to_frame(grid).rename(columns={"value": "grid"})
    frame["solar"] = [r.value for r in solar[:n]]
    frame["feedin"] = [r.value for r in feed_in[:n]]

    slot_s = (frame["end"] - frame["start"]).dt.total_seconds()
    ceiling = max_power * (slot_s / config.REFERENCE_DURATION_S)
    green = (frame["solar"] / ceiling.where(ceiling > 0)).clip(lower=0, upper=1).fillna(0.0)
    frame["effective"] = frame["grid"] * (1 - green) + frame["feedin"] * green

    rates = [Rate(r.start, r.end, float(v)) for r, v in zip(grid, frame["effective"])]
    return BlendResult(EffectiveTariff(rates))


def effective_forecast_tariff(tariffs, max_power, at=None):
    return blend_forecast(tariffs, max_power, at).tariff
