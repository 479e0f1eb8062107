"""
Growth analytics: age, BMI and percentile-bucket classification.

Everything here is pure. The engine reads a patient's birth date, sex and
growth history and returns values for display; it never writes.

Percentile buckets are a five-band ordinal classification of the relative
deviation from the reference median, not a continuous percentile:

    deviation = (value - median) / median * 100

    deviation < -20        -> 3
    -20 <= deviation < -10 -> 15
    -10 <= deviation < 10  -> 50
    10 <= deviation < 20   -> 85
    deviation >= 20        -> 97
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from src.models import GrowthRecord, Patient, Sex

from .reference import DEFAULT_MODEL, MeasurementKind, MedianModel

# (exclusive upper bound of deviation, bucket); anything beyond the last bound is 97
BUCKET_BOUNDS: tuple[tuple[float, int], ...] = (
    (-20.0, 3),
    (-10.0, 15),
    (10.0, 50),
    (20.0, 85),
)
TOP_BUCKET = 97


@dataclass
class GrowthAnalysis:
    """Current growth status derived from the latest measurement."""
    measured_on: date
    age_months: int
    weight: float
    height: float
    bmi: float
    weight_percentile: int
    height_percentile: int
    bmi_percentile: int

    @property
    def status(self) -> str:
        """Overall label: `normal` when the BMI bucket is the median band."""
        return "normal" if self.bmi_percentile == 50 else "follow-up"

    def to_dict(self) -> dict:
        return {
            "measured_on": self.measured_on.isoformat(),
            "age_months": self.age_months,
            "weight": self.weight,
            "height": self.height,
            "bmi": round(self.bmi, 1),
            "weight_percentile": self.weight_percentile,
            "height_percentile": self.height_percentile,
            "bmi_percentile": self.bmi_percentile,
            "status": self.status,
        }


@dataclass
class GrowthPoint:
    """One point of a growth trend, for charting."""
    date: date
    age_months: int
    weight: float
    height: float
    head_circumference: float | None = None


def age_in_months(birth_date: date, on: date) -> int:
    """
    Calendar-month difference between two dates.

    Day of month is ignored: two dates in the same calendar month give the
    same age even when the target day precedes the birth day.
    """
    return (on.year - birth_date.year) * 12 + (on.month - birth_date.month)


def calculate_bmi(weight_kg: float, height_cm: float) -> float:
    """Calculate BMI from weight and height (unrounded)."""
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def relative_deviation(value: float, median: float) -> float:
    """Percent deviation of `value` from `median`."""
    return (value - median) / median * 100


def percentile_bucket(value: float, median: float) -> int:
    """Map an observed value to its 3/15/50/85/97 bucket."""
    deviation = relative_deviation(value, median)
    for upper, bucket in BUCKET_BOUNDS:
        if deviation < upper:
            return bucket
    return TOP_BUCKET


def interpret_bucket(bucket: int) -> str:
    """
    Coarse reading of a bucket.

    Returns `normal` for the median band, `watch` for the bands either side
    of it and `alert` for the extremes.
    """
    if bucket == 50:
        return "normal"
    if bucket in (15, 85):
        return "watch"
    return "alert"


def classify_measurement(
    record: GrowthRecord,
    birth_date: date,
    sex: Sex,
    model: MedianModel = DEFAULT_MODEL,
) -> GrowthAnalysis:
    """Classify a single growth record against the reference model."""
    age = age_in_months(birth_date, record.date)
    bmi = calculate_bmi(record.weight, record.height)

    return GrowthAnalysis(
        measured_on=record.date,
        age_months=age,
        weight=record.weight,
        height=record.height,
        bmi=bmi,
        weight_percentile=percentile_bucket(
            record.weight, model.median(age, sex, MeasurementKind.WEIGHT)
        ),
        height_percentile=percentile_bucket(
            record.height, model.median(age, sex, MeasurementKind.HEIGHT)
        ),
        bmi_percentile=percentile_bucket(
            bmi, model.median(age, sex, MeasurementKind.BMI)
        ),
    )


def analyze_growth(patient: Patient, model: MedianModel = DEFAULT_MODEL) -> GrowthAnalysis | None:
    """
    Current growth status of a patient.

    Only the latest record of the history is considered. Returns None when
    the patient has no measurements yet.
    """
    latest = patient.latest_growth
    if latest is None:
        return None
    return classify_measurement(latest, patient.birth_date, patient.sex, model)


def growth_series(patient: Patient) -> list[GrowthPoint]:
    """Full measurement history with age in months, oldest first."""
    return [
        GrowthPoint(
            date=record.date,
            age_months=age_in_months(patient.birth_date, record.date),
            weight=record.weight,
            height=record.height,
            head_circumference=record.head_circumference,
        )
        for record in sorted(patient.growth_history, key=lambda r: r.date)
    ]
