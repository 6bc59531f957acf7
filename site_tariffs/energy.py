from contextlib import contextmanager
from datetime import datetime, UTC
from threading import Lock
from typing import Protocol


class SettingsStore(Protocol):
    def set_float(self, key: str, value: float) -> None: ...

    def get_float(self, key: str, default: float | None = None) -> float | None: ...


class MemorySettings:
    """Dict-backed settings store."""

    def __init__(self, values=None):
        self._values = dict(values or {})

    def set_float(self, key, value):
        self._values[key] = float(value)

    def get_float(self, key, default=None):
        return self._values.get(key, default)


class EnergyAccumulator:
    """
    Running energy total in kWh.

    Fed either with energy amounts or with power readings, which are
    integrated over the time since the previous update.
    """

    def __init__(self, accumulated=0.0, updated=None):
        self.accumulated = accumulated
        self.updated = updated

    def add_energy(self, kwh, at=None):
        self.accumulated += kwh
        self.updated = at or datetime.now(UTC)

    def add_power(self, watts, at=None):
        at = at or datetime.now(UTC)
        # first reading only starts the clock
        if self.updated is not None:
            hours = (at - self.updated).total_seconds() / 3600
            self.accumulated += watts * hours / 1e3
        self.updated = at

    def accumulated_energy(self):
        return self.accumulated


class ForecastAccumulator:
    """
    Forecast solar energy accumulated since the calibration epoch.

    Readers always see `accumulated` and `updated` from the same update.
    """

    def __init__(self, accumulated=0.0, updated=None):
        self._energy = EnergyAccumulator(accumulated, updated)
        self._lock = Lock()

    @contextmanager
    def update(self):
        """Hold the lock for a read-modify-persist sequence."""
        with self._lock:
            yield self._energy

    def add_energy(self, kwh, at=None):
        with self._lock:
            self._energy.add_energy(kwh, at)
            return self._energy.accumulated

    def restore(self, accumulated, updated=None):
        with self._lock:
            self._energy = EnergyAccumulator(accumulated, updated)

    def snapshot(self):
        with self._lock:
            return {
                "accumulated": self._energy.accumulated,
                "updated": self._energy.updated,
            }

    def accumulated_energy(self):
        with self._lock:
            return self._energy.accumulated
