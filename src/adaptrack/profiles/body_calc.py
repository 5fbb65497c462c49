"""Body composition calculator for the formula-based TDEE baseline.

Calculates BMR with one of four published equations, scales it to TDEE with
an activity multiplier and derives daily calorie and macro targets.

The formula TDEE is what the adaptive estimator learns a correction for, so
it must be deterministic for a given profile and body weight.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from adaptrack import errors
from adaptrack.errors import ValidationError

KCAL_PER_KG = 7700.0


class Sex(Enum):
    """Biological sex for BMR calculation."""
    MALE = "male"
    FEMALE = "female"


class ActivityLevel(Enum):
    """Activity level multipliers for TDEE calculation."""
    SEDENTARY = "sedentary"          # Little or no exercise
    LIGHT = "light"                  # Light exercise 1-3 days/week
    MODERATE = "moderate"            # Moderate exercise 3-5 days/week
    ACTIVE = "active"                # Hard exercise 6-7 days/week
    VERY_ACTIVE = "very_active"      # Very hard exercise, physical job


class Goal(Enum):
    """Body weight goal."""
    LOSE_WEIGHT = "lose_weight"
    MAINTAIN = "maintain"
    GAIN_WEIGHT = "gain_weight"


class BMREquation(Enum):
    """Supported resting metabolic rate equations."""
    MIFFLIN_ST_JEOR = "mifflin_st_jeor"
    KATCH_MCARDLE = "katch_mcardle"      # Needs body fat %, else falls back
    OXFORD_HENRY = "oxford_henry"
    HARRIS_BENEDICT = "harris_benedict"


# Activity level multipliers (Harris-Benedict activity factors)
ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}

# Goal adjustment caps: (fraction of TDEE, absolute kcal/day)
MAX_DEFICIT = (0.20, 750.0)
MAX_SURPLUS = (0.10, 500.0)

# Protein g/kg by goal: (rest day, training day)
PROTEIN_G_PER_KG = {
    Goal.LOSE_WEIGHT: (2.2, 2.2),
    Goal.MAINTAIN: (1.6, 1.8),
    Goal.GAIN_WEIGHT: (1.8, 2.0),
}
AGGRESSIVE_CUT_PROTEIN_G_PER_KG = 2.4
AGGRESSIVE_CUT_SEVERITY = 0.25

FAT_MIN_G_PER_KG = 0.7
FAT_SHARE_OF_REMAINING = 0.35
WATER_L_PER_KG = 0.04

MIN_SAFE_CALORIES = {Sex.MALE: 1500, Sex.FEMALE: 1200}


def _parse_enum(enum_cls, value, code: str, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise ValidationError(code, f"{label} must be one of {valid}, got '{value}'") from None


@dataclass(frozen=True)
class UserProfile:
    """Body metrics and preferences the formula baseline is computed from."""

    age: int
    sex: Sex
    height_cm: float
    weight_kg: float
    activity_level: ActivityLevel = ActivityLevel.SEDENTARY
    goal: Goal = Goal.MAINTAIN
    bmr_equation: BMREquation = BMREquation.MIFFLIN_ST_JEOR
    body_fat_percent: Optional[float] = None
    tolerance_percent: float = 3.0
    profile_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "sex", _parse_enum(Sex, self.sex, errors.INVALID_PROFILE, "sex"))
        object.__setattr__(
            self,
            "activity_level",
            _parse_enum(ActivityLevel, self.activity_level, errors.INVALID_PROFILE, "activity_level"),
        )
        object.__setattr__(self, "goal", _parse_enum(Goal, self.goal, errors.INVALID_PROFILE, "goal"))
        object.__setattr__(
            self,
            "bmr_equation",
            _parse_enum(BMREquation, self.bmr_equation, errors.INVALID_PROFILE, "bmr_equation"),
        )
        if not 10 <= self.age <= 120:
            raise ValidationError(errors.INVALID_PROFILE, f"age must be 10-120, got {self.age}")
        if not 100 <= self.height_cm <= 250:
            raise ValidationError(
                errors.INVALID_PROFILE, f"height_cm must be 100-250, got {self.height_cm}"
            )
        if not 30 <= self.weight_kg <= 300:
            raise ValidationError(
                errors.INVALID_WEIGHT, f"weight_kg must be 30-300, got {self.weight_kg}"
            )
        if self.body_fat_percent is not None and not 3 <= self.body_fat_percent <= 70:
            raise ValidationError(
                errors.INVALID_BODY_FAT,
                f"body_fat_percent must be 3-70, got {self.body_fat_percent}",
            )
        if not 1 <= self.tolerance_percent <= 10:
            raise ValidationError(
                errors.INVALID_TOLERANCE,
                f"tolerance_percent must be 1-10, got {self.tolerance_percent}",
            )

    def with_weight(self, weight_kg: float) -> "UserProfile":
        return replace(self, weight_kg=weight_kg)

    def to_dict(self) -> dict:
        return {
            "profile_id": self.profile_id,
            "age": self.age,
            "sex": self.sex.value,
            "height_cm": self.height_cm,
            "weight_kg": self.weight_kg,
            "activity_level": self.activity_level.value,
            "goal": self.goal.value,
            "bmr_equation": self.bmr_equation.value,
            "body_fat_percent": self.body_fat_percent,
            "tolerance_percent": self.tolerance_percent,
        }


def mifflin_st_jeor(sex: Sex, weight_kg: float, height_cm: float, age: float) -> float:
    """Mifflin-St Jeor: 10w + 6.25h - 5a + 5 (male) or - 161 (female)."""
    base = (10 * weight_kg) + (6.25 * height_cm) - (5 * age)
    return base + 5 if sex == Sex.MALE else base - 161


def katch_mcardle(weight_kg: float, body_fat_percent: float) -> float:
    """Katch-McArdle: 370 + 21.6 * lean body mass (kg)."""
    lean_mass = weight_kg * (1 - body_fat_percent / 100)
    return 370 + 21.6 * lean_mass


def oxford_henry(sex: Sex, weight_kg: float, age: float) -> float:
    """Oxford/Henry (2005), weight-only age-banded equations."""
    if sex == Sex.MALE:
        if age < 30:
            return 14.4 * weight_kg + 313
        return 11.4 * weight_kg + 541
    if age < 30:
        return 10.4 * weight_kg + 615
    if age < 60:
        return 8.18 * weight_kg + 502
    return 8.52 * weight_kg + 421


def harris_benedict(sex: Sex, weight_kg: float, height_cm: float, age: float) -> float:
    """Revised Harris-Benedict (Roza & Shizgal 1984)."""
    if sex == Sex.MALE:
        return 88.362 + 13.397 * weight_kg + 4.799 * height_cm - 5.677 * age
    return 447.593 + 9.247 * weight_kg + 3.098 * height_cm - 4.330 * age


def calculate_bmr(profile: UserProfile, weight_kg: Optional[float] = None) -> float:
    """Calculate BMR with the profile's configured equation.

    Args:
        profile: User profile
        weight_kg: Body weight to use instead of the profile weight

    Returns:
        BMR in kcal/day
    """
    weight = profile.weight_kg if weight_kg is None else weight_kg
    equation = profile.bmr_equation

    if equation == BMREquation.KATCH_MCARDLE and profile.body_fat_percent is not None:
        return katch_mcardle(weight, profile.body_fat_percent)
    if equation == BMREquation.OXFORD_HENRY:
        return oxford_henry(profile.sex, weight, profile.age)
    if equation == BMREquation.HARRIS_BENEDICT:
        return harris_benedict(profile.sex, weight, profile.height_cm, profile.age)
    return mifflin_st_jeor(profile.sex, weight, profile.height_cm, profile.age)


def calculate_tdee(bmr: float, activity_level: ActivityLevel) -> float:
    """Calculate Total Daily Energy Expenditure.

    Args:
        bmr: Basal Metabolic Rate
        activity_level: Activity level

    Returns:
        TDEE in calories per day
    """
    multiplier = ACTIVITY_MULTIPLIERS[activity_level]
    return bmr * multiplier


def formula_tdee(profile: UserProfile, weight_kg: Optional[float] = None) -> float:
    """Formula TDEE baseline: BMR times the activity multiplier."""
    return calculate_tdee(calculate_bmr(profile, weight_kg), profile.activity_level)


def weekly_change_to_daily_kcal(weekly_change_kg: float) -> float:
    """Daily energy balance implied by a weekly weight change (7700 kcal/kg)."""
    return weekly_change_kg * KCAL_PER_KG / 7


@dataclass(frozen=True)
class DailyTargets:
    """Calorie and macro targets for one day."""

    calories: int
    protein_g: int
    carbs_g: int
    fat_g: int
    water_l: float
    tdee: int
    adjustment_kcal: int
    tdee_source: str
    is_training_day: bool

    def to_dict(self) -> dict:
        return {
            "calories": self.calories,
            "protein_g": self.protein_g,
            "carbs_g": self.carbs_g,
            "fat_g": self.fat_g,
            "water_l": self.water_l,
            "tdee": self.tdee,
            "adjustment_kcal": self.adjustment_kcal,
            "tdee_source": self.tdee_source,
            "is_training_day": self.is_training_day,
        }


def calculate_daily_targets(
    profile: UserProfile,
    weight_kg: float,
    tdee: float,
    is_training_day: bool = False,
    tdee_source: str = "formula",
    plan_daily_kcal: Optional[float] = None,
) -> DailyTargets:
    """Calculate calorie and macro targets for a day.

    Calories come from the day's TDEE adjusted for the goal (or for the active
    plan's daily deficit when one is given). Protein is set first, fat gets a
    share of what remains with a floor, carbs take the rest.

    Args:
        profile: User profile (goal, sex)
        weight_kg: Body weight that day
        tdee: Estimated TDEE for the day (adaptive or formula)
        is_training_day: Whether any non-rest session is planned or done
        tdee_source: "adaptive" or "formula", carried through for display
        plan_daily_kcal: Signed daily balance from an active plan
                         (negative = deficit); overrides the goal default

    Returns:
        DailyTargets
    """
    severity = 0.0
    if plan_daily_kcal is not None:
        adjustment = plan_daily_kcal
        if adjustment < 0 and tdee > 0:
            severity = -adjustment / tdee
    elif profile.goal == Goal.LOSE_WEIGHT:
        deficit = min(tdee * MAX_DEFICIT[0], MAX_DEFICIT[1])
        adjustment = -deficit
        severity = deficit / tdee if tdee > 0 else 0.0
    elif profile.goal == Goal.GAIN_WEIGHT:
        adjustment = min(tdee * MAX_SURPLUS[0], MAX_SURPLUS[1])
    else:
        adjustment = 0.0

    target_calories = max(tdee + adjustment, MIN_SAFE_CALORIES[profile.sex])

    rest_ratio, training_ratio = PROTEIN_G_PER_KG[profile.goal]
    protein_ratio = training_ratio if is_training_day else rest_ratio
    if profile.goal == Goal.LOSE_WEIGHT and severity > AGGRESSIVE_CUT_SEVERITY:
        protein_ratio = AGGRESSIVE_CUT_PROTEIN_G_PER_KG
    protein_g = weight_kg * protein_ratio

    fat_floor = weight_kg * FAT_MIN_G_PER_KG
    remaining = target_calories - protein_g * 4
    fat_g = max(remaining * FAT_SHARE_OF_REMAINING / 9, fat_floor)
    carbs_g = max((target_calories - protein_g * 4 - fat_g * 9) / 4, 0.0)

    total = carbs_g * 4 + protein_g * 4 + fat_g * 9

    return DailyTargets(
        calories=int(round(total)),
        protein_g=int(round(protein_g)),
        carbs_g=int(round(carbs_g)),
        fat_g=int(round(fat_g)),
        water_l=round(weight_kg * WATER_L_PER_KG, 1),
        tdee=int(round(tdee)),
        adjustment_kcal=int(round(adjustment)),
        tdee_source=tdee_source,
        is_training_day=is_training_day,
    )


def round_to_nearest(value: float, step: float) -> float:
    """Round half away from zero to the nearest multiple of ``step``."""
    scaled = abs(value) / step
    rounded = math.floor(scaled + 0.5) * step
    return math.copysign(rounded, value) if rounded else 0.0
