# window.py

from collections import deque
from decimal import ROUND_HALF_UP, Context, Decimal
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple

from errors import InvalidMetric
from models import RawReading, SmoothedVitals

DEFAULT_PATIENT = "default"


class Metric(str, Enum):
    HEART_RATE = "heartRate"
    SPO2 = "spo2"
    TEMPERATURE = "temperature"


def _metric(name) -> Metric:
    try:
        return Metric(name)
    except ValueError:
        raise InvalidMetric(f"Unknown metric: {name!r}") from None


def round_half_away(value: float, places: int = 1) -> float:
    """Round with ties going away from zero (2.25 -> 2.3, -2.25 -> -2.3)."""
    d = Decimal(str(value))
    quantum = Decimal(1).scaleb(-places)
    # enough digits for the integer part, so large values never overflow precision
    ctx = Context(prec=max(d.adjusted(), 0) + places + 2, rounding=ROUND_HALF_UP)
    return float(d.quantize(quantum, context=ctx))


class SlidingWindow:
    def __init__(self, max_size=5):
        self.max_size = max_size
        self.window: Deque[float] = deque(maxlen=max_size)

    def add(self, value):
        self.window.append(value)

    def avg(self):
        if len(self.window) == 0:
            return 0
        return sum(self.window) / len(self.window)

    def smoothed(self):
        return round_half_away(self.avg(), 1)

    def values(self) -> List[float]:
        return list(self.window)

    def size(self):
        return len(self.window)


class MetricHistories:
    """Rolling windows keyed by (patient_id, metric).

    Windows are created on the first sample for a key and live as long as this
    object. Nothing is shared between patients.
    """

    def __init__(self, max_size: int = 5):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.max_size = max_size
        self._windows: Dict[Tuple[str, Metric], SlidingWindow] = {}

    def smooth(self, metric, value, patient_id: str = DEFAULT_PATIENT) -> float:
        m = _metric(metric)
        key = (patient_id, m)
        w = self._windows.get(key)
        if w is None:
            w = self._windows[key] = SlidingWindow(max_size=self.max_size)
        w.add(value)
        return w.smoothed()

    def history(self, metric, patient_id: str = DEFAULT_PATIENT) -> List[float]:
        w = self._windows.get((patient_id, _metric(metric)))
        return w.values() if w is not None else []

    def patients(self) -> List[str]:
        return sorted({pid for pid, _ in self._windows})

    def reset(self, patient_id: Optional[str] = None) -> None:
        if patient_id is None:
            self._windows.clear()
            return
        for key in [k for k in self._windows if k[0] == patient_id]:
            del self._windows[key]


def smooth_vitals(histories: MetricHistories, reading: RawReading) -> SmoothedVitals:
    pid = reading.patient_id
    hr = histories.smooth(Metric.HEART_RATE, reading.heart_rate, pid)
    spo2 = histories.smooth(Metric.SPO2, reading.spo2, pid)
    temp = histories.smooth(Metric.TEMPERATURE, reading.temperature, pid)

    # Heart rate and SpO2 are reported as whole numbers.
    return SmoothedVitals(
        heart_rate=int(round_half_away(hr, 0)),
        spo2=int(round_half_away(spo2, 0)),
        temperature=temp,
    )
