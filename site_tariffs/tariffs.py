from datetime import datetime, UTC
from enum import Enum
from typing import Protocol

import pandas as pd

from site_tariffs import config
from site_tariffs.rates import Rate, RateNotAvailable, current_rate, rates_from_series


class TariffUsage(Enum):
    GRID = "grid"
    FEED_IN = "feedin"
    CO2 = "co2"
    SOLAR = "solar"
    PLANNER = "planner"


class TariffType(Enum):
    PRICE_STATIC = "price_static"
    PRICE_DYNAMIC = "price_dynamic"
    PRICE_FORECAST = "price_forecast"
    CO2 = "co2"
    SOLAR = "solar"
    PLANNER = "planner"


class Tariff(Protocol):
    """Read contract shared by every tariff provider."""

    @property
    def type(self) -> TariffType: ...

    def current(self, at: datetime) -> float:
        """Value of the slot containing `at`, raises RateNotAvailable."""
        ...

    def forecast(self) -> list[Rate]: ...


# ---------------------------
# BUILD HALF-HOURLY INDEX
# ---------------------------

def build_time_index(start=None, hours=config.FORECAST_HOURS,
                     slot_minutes=config.SLOT_MINUTES, tz=config.TIMEZONE):
    if start is None:
        start = datetime.now(UTC)
    start = pd.Timestamp(start)
    if start.tzinfo is None:
        start = start.tz_localize(tz)
    # Round down to the start of the current slot
    minute = start.minute - start.minute % slot_minutes
    start = start.replace(minute=minute, second=0, microsecond=0, nanosecond=0)
    periods = int(hours * 60 / slot_minutes)
    return pd.date_range(start=start.tz_convert(tz), periods=periods, freq=f"{slot_minutes}min")


# ---------------------------
# PRICE MODELS
# ---------------------------

class FixedTariff:
    """Single price valid at all times."""

    def __init__(self, price, hours=config.FORECAST_HOURS):
        self.price = price
        self.hours = hours

    @property
    def type(self):
        return TariffType.PRICE_STATIC

    def current(self, at=None):
        return self.price

    def forecast(self):
        index = build_time_index(hours=self.hours)
        return rates_from_series(pd.Series(self.price, index=index, dtype=float))


class DynamicTariff:
    """
    Time-varying tariff backed by an explicit rate series.

    Also serves CO2 intensity (`TariffType.CO2`) and solar forecasts
    (`TariffType.SOLAR`, values are mean power in W per slot).
    """

    def __init__(self, rates, tariff_type=TariffType.PRICE_DYNAMIC):
        self._rates = sorted(rates, key=lambda r: r.start)
        self._type = tariff_type

    @classmethod
    def from_tou_periods(cls, index, tou_periods, tariff_type=TariffType.PRICE_DYNAMIC):
        """
        Build a tariff from a time-of-use table.

        Parameters
        ----------
        index : pd.DatetimeIndex
            Slot starts, e.g. from `build_time_index`.
        tou_periods : sequence of tuples
            ((start_hour, end_hour, price), ...) covering every hour of the day.
        """
        prices = []
        for ts in index:
            hour = ts.hour
            for start, end, price in tou_periods:
                if start <= hour < end:
                    prices.append(price)
                    break
            else:
                raise ValueError(f"No time-of-use period covers hour {hour}")
        slot = index[1] - index[0] if len(index) > 1 else None
        return cls(rates_from_series(pd.Series(prices, index=index), slot), tariff_type)

    @property
    def type(self):
        return self._type

    def current(self, at=None):
        return current_rate(self._rates, at or datetime.now(UTC)).value

    def forecast(self):
        return list(self._rates)


class EffectiveTariff:
    """Immutable blended planner tariff, read like any other provider."""

    def __init__(self, rates):
        self._rates = tuple(rates)

    @property
    def type(self):
        return TariffType.PLANNER

    def current(self, at=None):
        return current_rate(self._rates, at or datetime.now(UTC)).value

    def forecast(self):
        return list(self._rates)


# ---------------------------
# HELPERS
# ---------------------------

def now(tariff, at=None):
    """Current value of an optional tariff, raises RateNotAvailable."""
    if tariff is None:
        raise RateNotAvailable("tariff not configured")
    return tariff.current(at or datetime.now(UTC))


def forecast(tariff):
    """Forecast rates of an optional tariff, empty when unavailable."""
    if tariff is None:
        return []
    try:
        return tariff.forecast()
    except RateNotAvailable:
        return []


def is_dynamic(tariff):
    return tariff is not None and tariff.type != TariffType.PRICE_STATIC
