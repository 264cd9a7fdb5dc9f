"""Records flowing through the vitals processor.

Wire payloads use camelCase keys (``patientId``, ``rawVitals``...). The
dataclasses below use snake_case and convert at the edges.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import InvalidVitals

NORMAL = "normal"
WARNING = "warning"
CRITICAL = "critical"

VITAL_FIELDS = ("heartRate", "spo2", "temperature")

# Inclusive bounds a sensor reading can physically take. Anything outside is a
# broken sample, not a patient state.
VITAL_RANGES = {
    "heartRate": (0, 400),
    "spo2": (0, 100),
    "temperature": (0.0, 50.0),
}


def require_number(name: str, value: Any) -> float:
    # bool is an int subclass; a True heart rate is still garbage
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidVitals(f"{name} must be numeric, got {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        raise InvalidVitals(f"{name} is too large to be a reading") from None
    if not finite:
        raise InvalidVitals(f"{name} must be finite, got {value!r}")
    return value


def require_in_range(name: str, value: Any) -> float:
    require_number(name, value)
    lo, hi = VITAL_RANGES[name]
    if not lo <= value <= hi:
        raise InvalidVitals(f"{name} out of range [{lo}, {hi}], got {value!r}")
    return value


@dataclass(frozen=True)
class RawReading:
    patient_id: str
    heart_rate: float
    spo2: float
    temperature: float
    patient_name: Optional[str] = None
    timestamp: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    raw_vitals: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RawReading":
        if not isinstance(payload, dict):
            raise InvalidVitals(f"reading must be an object, got {type(payload).__name__}")

        patient_id = payload.get("patientId")
        if patient_id is None or str(patient_id).strip() == "":
            raise InvalidVitals("patientId is required")

        vitals = payload.get("vitals")
        if not isinstance(vitals, dict):
            raise InvalidVitals("vitals is required")

        for name in VITAL_FIELDS:
            if name not in vitals:
                raise InvalidVitals(f"vitals.{name} is missing")
            require_in_range(name, vitals[name])

        return cls(
            patient_id=str(patient_id),
            heart_rate=vitals["heartRate"],
            spo2=vitals["spo2"],
            temperature=vitals["temperature"],
            patient_name=payload.get("patientName"),
            timestamp=payload.get("timestamp"),
            location=payload.get("location"),
            raw_vitals=dict(vitals),
        )


@dataclass(frozen=True)
class SmoothedVitals:
    heart_rate: int
    spo2: int
    temperature: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heartRate": self.heart_rate,
            "spo2": self.spo2,
            "temperature": self.temperature,
        }


@dataclass(frozen=True)
class StatusResult:
    status: str = NORMAL
    alerts: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EnrichedReading:
    patient_id: str
    patient_name: Optional[str]
    timestamp: Optional[str]
    processed_at: str
    vitals: SmoothedVitals
    raw_vitals: Dict[str, Any]
    status: str
    alerts: List[str]
    location: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patientId": self.patient_id,
            "patientName": self.patient_name,
            "timestamp": self.timestamp,
            "processedAt": self.processed_at,
            "vitals": self.vitals.to_dict(),
            "rawVitals": dict(self.raw_vitals),
            "status": self.status,
            "alerts": list(self.alerts),
            "location": self.location,
        }
