"""Scenario-driven vital signs simulator.

Vitals drift toward the targets of the active scenario and carry a little
natural jitter. Scenarios last a fixed number of ticks; afterwards the
simulator usually falls back to a calm scenario and occasionally picks any.
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

BASE_LAT = 28.6139
BASE_LNG = 77.2090

# interpolation speed per tick
LERP_SPEED = {"heartRate": 0.08, "spo2": 0.05, "temperature": 0.03}

LIMITS = {"heartRate": (40, 180), "spo2": (70, 100), "temperature": (35.0, 42.0)}


@dataclass(frozen=True)
class Scenario:
    name: str
    duration: int
    targets: Dict[str, float]
    variability: Dict[str, float]


def _vitals(hr, spo2, temp):
    return {"heartRate": hr, "spo2": spo2, "temperature": temp}


SCENARIOS = [
    Scenario("Normal/Stable", 30, _vitals(72, 98, 36.6), _vitals(3, 1, 0.1)),
    Scenario("Mild Anxiety/Stress", 20, _vitals(95, 97, 36.9), _vitals(5, 1, 0.1)),
    Scenario("Physical Exertion", 15, _vitals(110, 96, 37.2), _vitals(8, 2, 0.2)),
    Scenario("Mild Hypoxia", 20, _vitals(100, 92, 37.0), _vitals(6, 2, 0.1)),
    Scenario("Fever Episode", 25, _vitals(105, 96, 38.5), _vitals(5, 1, 0.3)),
    Scenario("Recovery Phase", 30, _vitals(80, 98, 37.0), _vitals(4, 1, 0.1)),
    Scenario("Critical - Tachycardia", 15, _vitals(135, 93, 37.5), _vitals(10, 2, 0.2)),
    Scenario("Critical - Hypoxemia", 15, _vitals(115, 88, 37.2), _vitals(8, 3, 0.2)),
]

CALM_SCENARIOS = (0, 5)


def lerp(current: float, target: float, speed: float = 0.1) -> float:
    return current + (target - current) * speed


def clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


def round_half_up(value: float, places: int = 0) -> float:
    """Round with ties going up, so 72.5 -> 73 and 36.85 -> 36.9."""
    return float(Decimal(str(value)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class VitalsSimulator:
    def __init__(
        self,
        patient_id: str,
        patient_name: str,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.patient_id = patient_id
        self.patient_name = patient_name
        self.rng = rng or random.Random()
        self.clock = clock

        self.scenario = SCENARIOS[0]
        self.ticks = 0
        self.current = _vitals(75.0, 98.0, 36.8)
        self.target = dict(self.scenario.targets)

    def _next_scenario(self) -> Scenario:
        # 70% back to something calm, otherwise anything goes
        if self.rng.random() < 0.7:
            idx = CALM_SCENARIOS[0] if self.rng.random() < 0.5 else CALM_SCENARIOS[1]
        else:
            idx = self.rng.randrange(len(SCENARIOS))
        return SCENARIOS[idx]

    def _jitter(self, value: float, spread: float, now: float) -> float:
        wave = math.sin(now * 0.5) * (spread * 0.3)
        noise = (self.rng.random() - 0.5) * spread * 0.7
        return value + wave + noise

    def advance(self) -> None:
        self.ticks += 1
        if self.ticks >= self.scenario.duration:
            self.ticks = 0
            self.scenario = self._next_scenario()
            self.target = dict(self.scenario.targets)
            logger.info("Scenario: %s", self.scenario.name)

        for name, speed in LERP_SPEED.items():
            self.current[name] = lerp(self.current[name], self.target[name], speed)

    def next_reading(self) -> dict:
        self.advance()
        now = self.clock()
        spread = self.scenario.variability

        hr = clamp(self._jitter(self.current["heartRate"], spread["heartRate"], now), *LIMITS["heartRate"])
        spo2 = clamp(self._jitter(self.current["spo2"], spread["spo2"], now), *LIMITS["spo2"])
        temp = clamp(self._jitter(self.current["temperature"], spread["temperature"], now), *LIMITS["temperature"])

        return {
            "patientId": self.patient_id,
            "patientName": self.patient_name,
            "timestamp": _iso(now),
            "vitals": _vitals(int(round_half_up(hr)), int(round_half_up(spo2)), round_half_up(temp, 1)),
            "location": {
                "lat": BASE_LAT + math.sin(now / 10) * 0.005,
                "lng": BASE_LNG + math.cos(now / 10) * 0.005,
            },
            "scenario": self.scenario.name,
        }
