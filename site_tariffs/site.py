import logging
from dataclasses import asdict
from datetime import datetime, UTC
from threading import Lock

from site_tariffs import config, keys
from site_tariffs import green_share as mix
from site_tariffs.effective_tariff import blend_forecast
from site_tariffs.energy import ForecastAccumulator, MemorySettings
from site_tariffs.rates import RateNotAvailable
from site_tariffs.solar_forecast import solar_details
from site_tariffs.tariffs import TariffUsage, forecast, is_dynamic, now

logger = logging.getLogger(__name__)


def _rates_payload(rates):
    return [asdict(r) for r in rates]


class Site:
    """
    Site-wide tariff state shared by one publish cycle.

    Parameters
    ----------
    tariffs : dict
        TariffUsage -> tariff provider.
    settings : SettingsStore or None
        Persists the accumulated solar forecast. Defaults to `MemorySettings`.
    publish : callable or None
        Sink called with (key, value) for every published field.
    pv_meters : dict or None
        Meter id -> object exposing `accumulated_energy()` (kWh).
    tz : str
        Timezone defining calendar days for the solar yields.
    """

    def __init__(self, tariffs=None, settings=None, publish=None, pv_meters=None,
                 tz=config.TIMEZONE):
        self.tariffs = dict(tariffs or {})
        self.settings = settings if settings is not None else MemorySettings()
        self.pv_meters = dict(pv_meters or {})
        self.tz = tz
        self._sink = publish
        self._lock = Lock()
        self._published = {}

        self.pv_power = 0.0       # W
        self.battery_power = 0.0  # W, positive when discharging

        self.forecast_energy = ForecastAccumulator()

    def restore_settings(self, at=None):
        """Re-hydrate the accumulated solar forecast after a restart."""
        accumulated = self.settings.get_float(config.SOLAR_ACC_FORECAST_KEY)
        if accumulated is not None:
            self.forecast_energy.restore(accumulated, at or datetime.now(UTC))

    def get_tariff(self, usage):
        return self.tariffs.get(usage)

    def is_dynamic_tariff(self, usage):
        return is_dynamic(self.get_tariff(usage))

    def publish(self, key, value):
        with self._lock:
            self._published[key] = value
        if self._sink is not None:
            self._sink(key, value)

    def published(self):
        with self._lock:
            return dict(self._published)

    def green_share(self, power_from, power_to):
        return mix.green_share(self.pv_power, self.battery_power, power_from, power_to)

    def effective_price(self, share, at=None):
        return mix.effective_price(
            self.get_tariff(TariffUsage.GRID), self.get_tariff(TariffUsage.FEED_IN), share, at)

    def effective_co2(self, share, at=None):
        return mix.effective_co2(self.get_tariff(TariffUsage.CO2), share, at)

    def effective_forecast_tariff(self, loadpoint, at=None):
        """Blended planner tariff for a load exposing `effective_max_power()`."""
        return blend_forecast(self.tariffs, loadpoint.effective_max_power(), at).tariff

    def solar_details(self, solar, at=None):
        return solar_details(solar, at or datetime.now(UTC), self.forecast_energy,
                             self.pv_meters, self.settings, self.tz)

    def publish_tariffs(self, green_share_home, green_share_loadpoints, at=None):
        at = at or datetime.now(UTC)

        self.publish(keys.GREEN_SHARE_HOME, green_share_home)
        self.publish(keys.GREEN_SHARE_LOADPOINTS, green_share_loadpoints)

        for key, usage in (
            (keys.TARIFF_GRID, TariffUsage.GRID),
            (keys.TARIFF_FEED_IN, TariffUsage.FEED_IN),
            (keys.TARIFF_CO2, TariffUsage.CO2),
            (keys.TARIFF_SOLAR, TariffUsage.SOLAR),
        ):
            try:
                self.publish(key, now(self.get_tariff(usage), at))
            except RateNotAvailable as exc:
                logger.debug("%s not published: %s", key, exc)

        for key, value in (
            (keys.TARIFF_PRICE_HOME, self.effective_price(green_share_home, at)),
            (keys.TARIFF_CO2_HOME, self.effective_co2(green_share_home, at)),
            (keys.TARIFF_PRICE_LOADPOINTS, self.effective_price(green_share_loadpoints, at)),
            (keys.TARIFF_CO2_LOADPOINTS, self.effective_co2(green_share_loadpoints, at)),
        ):
            if value is not None:
                self.publish(key, value)

        fc = {}
        for name, usage in (
            ("co2", TariffUsage.CO2),
            ("feedin", TariffUsage.FEED_IN),
            ("grid", TariffUsage.GRID),
            ("planner", TariffUsage.PLANNER),
        ):
            rates = forecast(self.get_tariff(usage))
            if rates:
                fc[name] = _rates_payload(rates)

        # calculate adjusted solar forecast
        if solar := forecast(self.get_tariff(TariffUsage.SOLAR)):
            fc["solar"] = self.solar_details(solar, at).as_dict()

        self.publish(keys.FORECAST, fc)
