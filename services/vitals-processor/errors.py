"""Sample-level errors raised by the vitals pipeline.

Both are contract violations for a single sample. Callers drop the sample and
keep consuming.
"""


class InvalidMetric(ValueError):
    """Smoothing requested for a metric outside heartRate, spo2, temperature."""


class InvalidVitals(ValueError):
    """A vital value is missing, non-numeric or non-finite."""
