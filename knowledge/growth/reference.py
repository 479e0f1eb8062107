"""
Reference medians for growth classification.

The analytics engine only ever asks one question of a reference: "what is the
median of this measurement for a child of this age and sex?". Anything that
answers it (the linear approximation below, or a WHO/CDC table) can be passed
to `analyze_growth`.

The linear model is an illustrative placeholder, not a clinical growth curve:
    height median = base(sex) + age_months * 0.8   (cm)
    weight median = base(sex) + age_months * 0.25  (kg)
    BMI median    = 16
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from src.models import Sex


class MeasurementKind(str, Enum):
    WEIGHT = "weight"
    HEIGHT = "height"
    BMI = "bmi"


class MedianModel(Protocol):
    """Anything mapping (age in months, sex, kind) to a reference median."""

    def median(self, age_months: int, sex: Sex, kind: MeasurementKind) -> float:
        ...


# Birth values per sex for the linear model
HEIGHT_BASE_CM: dict[Sex, float] = {
    Sex.MALE: 50.0,
    Sex.FEMALE: 49.0,
}

WEIGHT_BASE_KG: dict[Sex, float] = {
    Sex.MALE: 3.4,
    Sex.FEMALE: 3.2,
}

HEIGHT_CM_PER_MONTH = 0.8
WEIGHT_KG_PER_MONTH = 0.25
BMI_MEDIAN = 16.0


class LinearMedianModel:
    """
    Deterministic, monotonic-in-age approximation of WHO medians.

    Constants can be overridden per instance, which keeps the model easy to
    calibrate in tests without touching the bucket logic.
    """

    def __init__(
        self,
        height_base: dict[Sex, float] | None = None,
        weight_base: dict[Sex, float] | None = None,
        height_slope: float = HEIGHT_CM_PER_MONTH,
        weight_slope: float = WEIGHT_KG_PER_MONTH,
        bmi_median: float = BMI_MEDIAN,
    ):
        self.height_base = height_base or HEIGHT_BASE_CM
        self.weight_base = weight_base or WEIGHT_BASE_KG
        self.height_slope = height_slope
        self.weight_slope = weight_slope
        self.bmi_median = bmi_median

    def median(self, age_months: int, sex: Sex, kind: MeasurementKind) -> float:
        sex = Sex(sex)
        if kind == MeasurementKind.HEIGHT:
            return self.height_base[sex] + age_months * self.height_slope
        if kind == MeasurementKind.WEIGHT:
            return self.weight_base[sex] + age_months * self.weight_slope
        return self.bmi_median


DEFAULT_MODEL = LinearMedianModel()
