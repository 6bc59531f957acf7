import logging
from dataclasses import dataclass, field

import pandas as pd

from site_tariffs import config
from site_tariffs.rates import rates_to_frame

logger = logging.getLogger(__name__)


@dataclass
class DailyYield:
    energy: float      # Wh
    complete: bool     # forecast covers the whole day

    def as_dict(self):
        return {"energy": self.energy, "complete": self.complete}


@dataclass
class SolarDetails:
    today: DailyYield
    tomorrow: DailyYield
    day_after_tomorrow: DailyYield
    timeseries: list = field(default_factory=list)
    scale: float | None = None  # produced / forecast energy

    def as_dict(self):
        res = {
            "today": self.today.as_dict(),
            "tomorrow": self.tomorrow.as_dict(),
            "dayAfterTomorrow": self.day_after_tomorrow.as_dict(),
            "timeseries": self.timeseries,
        }
        if self.scale is not None:
            res["scale"] = self.scale
        return res


def _timestamp(ts):
    ts = pd.Timestamp(ts)
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts


def solar_energy(rates, start, end):
    """
    Forecast solar energy (Wh) between `start` and `end`.

    Rate values are the mean power (W) of their slot; slots are clipped
    to the requested range.
    """
    frame = rates_to_frame(rates)
    if frame.empty:
        return 0.0

    start = _timestamp(start).tz_convert("UTC")
    end = _timestamp(end).tz_convert("UTC")
    lo = frame["start"].where(frame["start"] > start, start)
    hi = frame["end"].where(frame["end"] < end, end)
    hours = ((hi - lo).dt.total_seconds() / 3600).clip(lower=0)
    return float((frame["value"] * hours).sum())


def solar_timeseries(rates):
    return [{"ts": r.start, "val": r.value} for r in rates]


def solar_details(rates, now, accumulator, pv_meters, settings, tz=config.TIMEZONE):
    """
    Daily solar yields and the forecast correction scale.

    Accumulates the energy forecast since the previous call, persists the
    running total and compares it with the energy the PV meters produced.

    Parameters
    ----------
    rates : list of Rate
        Solar forecast, mean power (W) per slot. Must not be empty.
    now : datetime
        Current time, naive values are taken as UTC.
    accumulator : ForecastAccumulator
        Forecast energy since the calibration epoch (kWh).
    pv_meters : dict
        Meter id -> object exposing `accumulated_energy()` (kWh).
    settings : SettingsStore
        Receives the accumulated forecast energy.
    tz : str
        Timezone defining calendar days.

    Returns
    -------
    SolarDetails
    """
    if not rates:
        raise ValueError("Solar forecast is empty")

    now = _timestamp(now)
    bod = now.tz_convert(tz).normalize()
    eod = bod + pd.DateOffset(days=1)
    eot = eod + pd.DateOffset(days=1)
    eoa = eot + pd.DateOffset(days=1)

    last = _timestamp(rates[-1].start)

    res = SolarDetails(
        today=DailyYield(solar_energy(rates, now, eod), last >= eod),
        tomorrow=DailyYield(solar_energy(rates, eod, eot), last >= eot),
        day_after_tomorrow=DailyYield(solar_energy(rates, eot, eoa), last >= eoa),
        timeseries=solar_timeseries(rates),
    )

    # accumulate forecasted energy since last update
    with accumulator.update() as acc:
        since = now if acc.updated is None else _timestamp(acc.updated)
        energy = solar_energy(rates, since, now) / 1e3
        logger.debug("solar forecast: accumulated %.3fkWh from %s to %s", energy, since, now)

        acc.add_energy(energy, now.to_pydatetime())
        fcst = acc.accumulated
        settings.set_float(config.SOLAR_ACC_FORECAST_KEY, fcst)

    produced = sum(m.accumulated_energy() for m in pv_meters.values())
    logger.debug("solar forecast: produced %.3fkWh", produced)

    if fcst > 0:
        scale = produced / fcst
        logger.debug("solar forecast: accumulated %.3fkWh, produced %.3fkWh, scale %.3f",
                     fcst, produced, scale)
        if produced + fcst > config.MIN_SCALE_ENERGY_KWH:
            res.scale = scale

    return res
