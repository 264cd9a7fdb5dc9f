# processor.py

import os
from datetime import datetime, timezone
from typing import Callable, Optional

from classifier import classify
from models import EnrichedReading, RawReading
from rules import load_rules
from window import MetricHistories, smooth_vitals

WINDOW_SIZE = int(os.getenv("SMOOTHING_WINDOW_SIZE", "5"))


def _iso_utc_now() -> str:
    # millisecond precision with a Z suffix, the same shape as inbound timestamps
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class VitalsProcessor:
    """Smooth, classify and enrich raw readings.

    Holds the only mutable state of the pipeline: one MetricHistories shared by
    every patient the processor sees, keyed by patient id.
    """

    def __init__(self, window_size: int = WINDOW_SIZE, rules=None, now: Optional[Callable[[], str]] = None):
        self.histories = MetricHistories(max_size=window_size)
        self.rules = rules if rules is not None else load_rules()
        self._now = now or _iso_utc_now

    def process(self, raw: dict) -> dict:
        """Enrich one raw reading.

        Contract (minimum): patientId and numeric vitals.heartRate, vitals.spo2,
        vitals.temperature. Raises InvalidVitals before touching any history.
        """
        reading = RawReading.from_payload(raw)
        smoothed = smooth_vitals(self.histories, reading)
        result = classify(smoothed, self.rules)

        enriched = EnrichedReading(
            patient_id=reading.patient_id,
            patient_name=reading.patient_name,
            timestamp=reading.timestamp,
            processed_at=self._now(),
            vitals=smoothed,
            raw_vitals=reading.raw_vitals,
            status=result.status,
            alerts=result.alerts,
            location=reading.location,
        )
        return enriched.to_dict()
