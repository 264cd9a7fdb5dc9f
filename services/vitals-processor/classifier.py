"""Status classifier.

Turns one set of smoothed vitals into a StatusResult:

  status: str (normal|warning|critical), the highest severity of any fired rule
  alerts: list[str], one per fired group, in heartRate, spo2, temperature order

A later warning never downgrades an earlier critical.
"""

from models import SmoothedVitals, StatusResult, require_number
from rules import DEFAULT_RULES, GROUP_ORDER, first_match, max_severity

_ATTRS = {"heartRate": "heart_rate", "spo2": "spo2", "temperature": "temperature"}


def classify(vitals: SmoothedVitals, rules=DEFAULT_RULES) -> StatusResult:
    values = {metric: require_number(metric, getattr(vitals, _ATTRS[metric], None)) for metric in GROUP_ORDER}

    alerts = []
    levels = []
    for metric in GROUP_ORDER:
        rule = first_match(metric, values[metric], rules)
        if rule is None:
            continue
        alerts.append(rule.alert)
        levels.append(rule.severity)

    return StatusResult(status=max_severity(levels), alerts=alerts)
