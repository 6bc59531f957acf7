from dataclasses import dataclass
from datetime import datetime, UTC

import pandas as pd

from site_tariffs import config


class RateNotAvailable(LookupError):
    """No current value can be read from a tariff."""


@dataclass(frozen=True)
class Rate:
    start: datetime
    end: datetime
    value: float


def current_rate(rates, at):
    """Return the rate whose [start, end) slot contains `at`."""
    for r in rates:
        if r.start <= at < r.end:
            return r
    raise RateNotAvailable(f"no matching rate for {at}")


# ---------------------------
# PANDAS CONVERSIONS
# ---------------------------

def rates_to_frame(rates):
    """
    Convert a rate series into a DataFrame.

    Returns
    -------
    pd.DataFrame with columns:
        - start (UTC)
        - end (UTC)
        - value
    """
    return pd.DataFrame({
        "start": pd.to_datetime([r.start for r in rates], utc=True),
        "end": pd.to_datetime([r.end for r in rates], utc=True),
        "value": pd.Series([r.value for r in rates], dtype=float),
    })


def rates_from_series(series, slot=None):
    """
    Build contiguous rates from a Series indexed by slot start.

    Parameters
    ----------
    series : pd.Series
        Values indexed by a DatetimeIndex of slot starts.
    slot : pd.Timedelta or None
        Slot length. Defaults to `config.SLOT_MINUTES`.
    """
    if slot is None:
        slot = pd.Timedelta(minutes=config.SLOT_MINUTES)
    return [
        Rate(ts.to_pydatetime(), (ts + slot).to_pydatetime(), float(value))
        for ts, value in series.items()
    ]


# ---------------------------
# ALIGNMENT
# ---------------------------

def align_rates(a, b):
    """
    Re-slice two rate series onto one shared set of slot boundaries.

    Values are treated as a quantity per slot (energy, cost), so a source
    slot split into sub-slots hands each one a share proportional to its
    duration. Both lists are replaced in place. Nothing happens when either
    series is empty.

    Sub-slots falling in a gap between two source slots get the mean of the
    neighbouring values scaled by sub-slot/gap duration. This is an
    approximation: it does not conserve the series total across gaps.

    Naive timestamps are taken as UTC, so the aligned series are always
    timezone-aware.

    Parameters
    ----------
    a, b : list of Rate
        Series sorted by start.
    """
    if not a or not b:
        return

    a[:] = [_utc_rate(r) for r in a]
    b[:] = [_utc_rate(r) for r in b]

    boundaries = set()
    for r in (*a, *b):
        boundaries.add(r.start)
        boundaries.add(r.end)
    slots = sorted(boundaries)

    aligned_a = []
    aligned_b = []
    for start, end in zip(slots, slots[1:]):
        aligned_a.append(Rate(start, end, _slot_quantity(a, start, end)))
        aligned_b.append(Rate(start, end, _slot_quantity(b, start, end)))

    a[:] = aligned_a
    b[:] = aligned_b


def _slot_quantity(rates, start, end):
    length = (end - start).total_seconds()

    for r in rates:
        if r.start <= start and end <= r.end:
            duration = (r.end - r.start).total_seconds()
            if duration > 0:
                return r.value * (length / duration)
            return 0.0

    # linear interpolation across a gap between neighbouring slots
    for prev, nxt in zip(rates, rates[1:]):
        if start < nxt.start and end > prev.end:
            gap = (nxt.start - prev.end).total_seconds()
            if gap > 0:
                return (prev.value + nxt.value) / 2 * (length / gap)

    return 0.0


def _aware(ts):
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def _utc_rate(r):
    if r.start.tzinfo is not None and r.end.tzinfo is not None:
        return r
    return Rate(_aware(r.start), _aware(r.end), r.value)
