import logging
from datetime import datetime, UTC

import numpy as np
import pandas as pd

from site_tariffs import config
from site_tariffs.energy import EnergyAccumulator
from site_tariffs.rates import rates_from_series, rates_to_frame
from site_tariffs.site import Site
from site_tariffs.tariffs import DynamicTariff, FixedTariff, TariffType, TariffUsage, build_time_index


class Loadpoint:
    def __init__(self, max_power):
        self.max_power = max_power

    def effective_max_power(self):
        return self.max_power


def mock_solar_forecast(index, peak_w=4000.0):
    """Bell-shaped PV power around noon."""
    hours = index.hour.to_numpy() + index.minute.to_numpy() / 60
    power = peak_w * np.clip(np.sin((hours - 6) / 12 * np.pi), 0, None)
    return DynamicTariff(rates_from_series(pd.Series(power, index=index)), TariffType.SOLAR)


def main():
    logging.basicConfig(level=logging.DEBUG)

    idx = build_time_index()
    grid = DynamicTariff.from_tou_periods(idx, config.TOU_PERIODS)
    site = Site(
        tariffs={
            TariffUsage.GRID: grid,
            TariffUsage.FEED_IN: FixedTariff(config.FLAT_FEEDIN_PRICE),
            TariffUsage.SOLAR: mock_solar_forecast(idx),
            TariffUsage.PLANNER: grid,
        },
        pv_meters={"pv1": EnergyAccumulator(accumulated=1.2)},
    )
    site.pv_power = 2500.0
    site.battery_power = -500.0

    now = datetime.now(UTC)
    site.publish_tariffs(site.green_share(0, 1500), site.green_share(1500, 11000), now)
    for key, value in site.published().items():
        if key != "forecast":
            print(f"{key}: {value}")

    tariff = site.effective_forecast_tariff(Loadpoint(11000), now)
    pd.set_option('display.max_columns', None)
    print(rates_to_frame(tariff.forecast()).head(10))


if __name__ == "__main__":
    main()
