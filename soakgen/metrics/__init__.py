# soakgen/metrics/__init__.py
from .primitives import Counter, Rate, Trend, TrendSnapshot
from .aggregator import SoakMetrics, MetricsSnapshot
from .thresholds import (
    Threshold,
    ThresholdResult,
    default_thresholds,
    rate_threshold,
    evaluate_thresholds,
)
from .summary import SoakSummary, SoakResult, NOT_AVAILABLE

__all__ = [
    "Counter",
    "Rate",
    "Trend",
    "TrendSnapshot",
    "SoakMetrics",
    "MetricsSnapshot",
    "Threshold",
    "ThresholdResult",
    "default_thresholds",
    "rate_threshold",
    "evaluate_thresholds",
    "SoakSummary",
    "SoakResult",
    "NOT_AVAILABLE",
]
