"""Clinical threshold rules.

Rules are grouped per vital and evaluated in GROUP_ORDER. Inside a group the
first matching rule wins, so a group raises at most one alert. Thresholds are
exclusive: ``gt 120`` fires for 121 and up, ``lt 94`` for 93 and below.

The built-in table can be replaced with a YAML file pointed to by
VITAL_RULES_PATH:

    rules:
      - metric: heartRate
        op: gt
        threshold: 130
        severity: critical
        alert: "Tachycardia: Heart rate critically high"
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import yaml

from models import CRITICAL, NORMAL, WARNING

logger = logging.getLogger(__name__)

GROUP_ORDER = ("heartRate", "spo2", "temperature")

_SEVERITY_ORDER = {NORMAL: 0, WARNING: 1, CRITICAL: 2}

_OPS = {
    "gt": lambda value, threshold: value > threshold,
    "lt": lambda value, threshold: value < threshold,
}


@dataclass(frozen=True)
class Rule:
    metric: str
    op: str
    threshold: float
    severity: str
    alert: str

    def matches(self, value: float) -> bool:
        return _OPS[self.op](value, self.threshold)


DEFAULT_RULES: Tuple[Rule, ...] = (
    Rule("heartRate", "gt", 130, CRITICAL, "Tachycardia: Heart rate critically high"),
    Rule("heartRate", "gt", 120, WARNING, "Elevated heart rate"),
    Rule("heartRate", "lt", 50, CRITICAL, "Bradycardia: Heart rate critically low"),
    Rule("spo2", "lt", 90, CRITICAL, "Hypoxemia: Oxygen saturation critically low"),
    Rule("spo2", "lt", 94, WARNING, "Low oxygen saturation"),
    Rule("temperature", "gt", 39, CRITICAL, "High fever: Temperature critical"),
    Rule("temperature", "gt", 38.5, WARNING, "Fever detected"),
    Rule("temperature", "lt", 35, CRITICAL, "Hypothermia: Temperature critically low"),
)


def severity_rank(severity: str) -> int:
    return _SEVERITY_ORDER[severity]


def max_severity(levels) -> str:
    return max(levels, key=severity_rank, default=NORMAL)


def rules_for(metric: str, rules) -> List[Rule]:
    return [r for r in rules if r.metric == metric]


def first_match(metric: str, value: float, rules) -> Optional[Rule]:
    for rule in rules_for(metric, rules):
        if rule.matches(value):
            return rule
    return None


def _load_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Rules file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _parse_rules(cfg: Dict[str, Any]) -> Tuple[Rule, ...]:
    parsed: List[Rule] = []

    for i, r in enumerate(cfg.get("rules") or []):
        if not isinstance(r, dict):
            logger.warning("Skipping rule #%d: not a mapping", i)
            continue

        metric = str(r.get("metric", "")).strip()
        op = str(r.get("op", "")).strip().lower()
        severity = str(r.get("severity", "")).strip().lower()
        alert = str(r.get("alert", "")).strip()

        if metric not in GROUP_ORDER or op not in _OPS or severity not in _SEVERITY_ORDER:
            logger.warning("Skipping rule #%d: metric=%s op=%s severity=%s", i, metric, op, severity)
            continue

        try:
            threshold = float(r.get("threshold"))
        except (TypeError, ValueError):
            logger.warning("Skipping rule #%d: bad threshold %r", i, r.get("threshold"))
            continue

        parsed.append(Rule(metric=metric, op=op, threshold=threshold, severity=severity, alert=alert))

    return tuple(parsed)


def load_rules(path: Optional[str] = None) -> Tuple[Rule, ...]:
    """Rules from ``path`` (or VITAL_RULES_PATH); the built-in table when neither is set."""
    path = path or os.getenv("VITAL_RULES_PATH")
    if not path:
        return DEFAULT_RULES
    rules = _parse_rules(_load_yaml(path))
    logger.info("Loaded %d vital rules from %s", len(rules), path)
    return rules
