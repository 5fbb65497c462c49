"""Tests for BMR/TDEE formulas and daily targets."""

from __future__ import annotations

import pytest

from adaptrack import errors
from adaptrack.errors import ValidationError
from adaptrack.profiles.body_calc import (
    ActivityLevel,
    BMREquation,
    Goal,
    Sex,
    UserProfile,
    calculate_bmr,
    calculate_daily_targets,
    calculate_tdee,
    formula_tdee,
    round_to_nearest,
    weekly_change_to_daily_kcal,
)


def make_profile(**overrides) -> UserProfile:
    values = dict(
        age=35,
        sex="male",
        height_cm=178,
        weight_kg=80.0,
        activity_level="moderate",
        goal="lose_weight",
    )
    values.update(overrides)
    return UserProfile(**values)


class TestUserProfile:
    """Tests for profile parsing and validation."""

    def test_parses_enums_from_strings(self):
        profile = make_profile()
        assert profile.sex == Sex.MALE
        assert profile.activity_level == ActivityLevel.MODERATE
        assert profile.goal == Goal.LOSE_WEIGHT
        assert profile.bmr_equation == BMREquation.MIFFLIN_ST_JEOR

    def test_unknown_activity_level(self):
        with pytest.raises(ValidationError) as exc_info:
            make_profile(activity_level="couch")
        assert exc_info.value.code == errors.INVALID_PROFILE

    @pytest.mark.parametrize(
        "field,value,code",
        [
            ("age", 9, errors.INVALID_PROFILE),
            ("height_cm", 99, errors.INVALID_PROFILE),
            ("weight_kg", 29.9, errors.INVALID_WEIGHT),
            ("body_fat_percent", 80, errors.INVALID_BODY_FAT),
            ("tolerance_percent", 0.5, errors.INVALID_TOLERANCE),
        ],
    )
    def test_range_validation(self, field, value, code):
        with pytest.raises(ValidationError) as exc_info:
            make_profile(**{field: value})
        assert exc_info.value.code == code

    def test_to_dict(self):
        data = make_profile().to_dict()
        assert data["sex"] == "male"
        assert data["goal"] == "lose_weight"


class TestBMR:
    """Tests for the BMR equations."""

    def test_mifflin_male(self):
        assert calculate_bmr(make_profile()) == pytest.approx(1742.5)

    def test_mifflin_female(self):
        profile = make_profile(sex="female")
        assert calculate_bmr(profile) == pytest.approx(1742.5 - 166)

    def test_katch_mcardle(self):
        profile = make_profile(bmr_equation="katch_mcardle", body_fat_percent=20)
        assert calculate_bmr(profile) == pytest.approx(370 + 21.6 * 64)

    def test_katch_without_body_fat_falls_back(self):
        profile = make_profile(bmr_equation="katch_mcardle")
        assert calculate_bmr(profile) == pytest.approx(1742.5)

    def test_oxford_henry(self):
        profile = make_profile(bmr_equation="oxford_henry")
        assert calculate_bmr(profile) == pytest.approx(11.4 * 80 + 541)

    def test_harris_benedict(self):
        profile = make_profile(bmr_equation="harris_benedict")
        expected = 88.362 + 13.397 * 80 + 4.799 * 178 - 5.677 * 35
        assert calculate_bmr(profile) == pytest.approx(expected)

    def test_weight_override(self):
        assert calculate_bmr(make_profile(), weight_kg=70) == pytest.approx(1642.5)


class TestTDEE:
    """Tests for TDEE and energy conversions."""

    def test_activity_multiplier(self):
        assert calculate_tdee(1000, ActivityLevel.SEDENTARY) == pytest.approx(1200)
        assert calculate_tdee(1000, ActivityLevel.VERY_ACTIVE) == pytest.approx(1900)

    def test_formula_tdee(self):
        assert formula_tdee(make_profile()) == pytest.approx(1742.5 * 1.55)

    def test_conversions(self):
        assert weekly_change_to_daily_kcal(-0.7) == pytest.approx(-770)

    def test_round_to_nearest(self):
        assert round_to_nearest(1099.9, 50) == 1100
        assert round_to_nearest(1075, 50) == 1100
        assert round_to_nearest(-1075, 50) == -1100
        assert round_to_nearest(20, 50) == 0


class TestDailyTargets:
    """Tests for calculate_daily_targets."""

    def test_cut_targets(self):
        targets = calculate_daily_targets(make_profile(), 80.0, 2700.0)
        assert targets.adjustment_kcal == -540
        assert targets.calories == 2160
        assert targets.protein_g == 176
        assert targets.fat_g == 57
        assert targets.water_l == 3.2
        assert targets.tdee_source == "formula"

    def test_deficit_capped_at_750(self):
        targets = calculate_daily_targets(make_profile(), 80.0, 5000.0)
        assert targets.adjustment_kcal == -750

    def test_surplus_capped(self):
        profile = make_profile(goal="gain_weight")
        assert calculate_daily_targets(profile, 80.0, 3000.0).adjustment_kcal == 300
        assert calculate_daily_targets(profile, 80.0, 6000.0).adjustment_kcal == 500

    def test_maintain_training_day_protein(self):
        profile = make_profile(goal="maintain")
        rest = calculate_daily_targets(profile, 80.0, 2700.0)
        training = calculate_daily_targets(profile, 80.0, 2700.0, is_training_day=True)
        assert rest.protein_g == 128
        assert training.protein_g == 144
        assert rest.adjustment_kcal == 0

    def test_calorie_floor(self):
        profile = make_profile(sex="female", weight_kg=50.0, height_cm=155)
        targets = calculate_daily_targets(profile, 50.0, 1400.0)
        assert targets.calories == 1200

    def test_plan_balance_overrides_goal(self):
        targets = calculate_daily_targets(make_profile(), 80.0, 2700.0, plan_daily_kcal=-300)
        assert targets.adjustment_kcal == -300
        assert targets.calories == 2400

    def test_aggressive_cut_raises_protein(self):
        targets = calculate_daily_targets(make_profile(), 80.0, 2500.0, plan_daily_kcal=-750)
        assert targets.protein_g == 192

    def test_fat_floor(self):
        profile = make_profile(sex="female", weight_kg=100.0)
        targets = calculate_daily_targets(profile, 100.0, 1200.0)
        assert targets.fat_g >= 70
