"""
Growth chart calculations.
"""

from .analytics import (
    age_in_months,
    analyze_growth,
    calculate_bmi,
    classify_measurement,
    growth_series,
    interpret_bucket,
    percentile_bucket,
    relative_deviation,
    GrowthAnalysis,
    GrowthPoint,
)
from .reference import (
    DEFAULT_MODEL,
    LinearMedianModel,
    MeasurementKind,
    MedianModel,
)

__all__ = [
    "age_in_months",
    "analyze_growth",
    "calculate_bmi",
    "classify_measurement",
    "growth_series",
    "interpret_bucket",
    "percentile_bucket",
    "relative_deviation",
    "GrowthAnalysis",
    "GrowthPoint",
    "DEFAULT_MODEL",
    "LinearMedianModel",
    "MeasurementKind",
    "MedianModel",
]
