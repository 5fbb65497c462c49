"""Scalar Kalman filter for the personal TDEE correction.

The state is one number: how far true TDEE sits from the formula baseline
(kcal/day). Each observation is an implied TDEE from a window of intake and
weight data, expressed relative to the formula value for that day:

    z = implied_tdee - formula_tdee

Process model is a random walk, so uncertainty grows between observations.
Missed days grow it faster than the plain random walk does, which is how
logging gaps reduce confidence.

A single observation can only move the estimate by a bounded amount: the
innovation is clipped to ``outlier_sigma`` standard deviations of its
predicted spread. A clipped observation is treated as partially trusted and
adds ``outlier_penalty`` to the variance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

INITIAL_VARIANCE = 62500.0  # 250 kcal/day std on the formula error
MAX_VARIANCE = INITIAL_VARIANCE
MAX_CONFIDENCE = 0.95


@dataclass
class FilterStep:
    """What one update did."""

    observation: float
    residual: float
    applied_residual: float
    clipped: bool


@dataclass
class TDEEFilter:
    """
    Scalar Kalman filter for TDEE bias estimation.

    Attributes:
        bias: Current bias estimate (kcal/day, positive = burns more than formula)
        variance: Current uncertainty (kcal²/day²)
        process_noise: Random walk variance per day (25 = 5² kcal/day)
        obs_noise: Observation noise variance (90000 = 300² kcal/day)
        gap_penalty: Extra variance per missed day beyond the first
        outlier_sigma: Innovation cap in standard deviations
        outlier_penalty: Variance added when an observation is clipped
    """

    bias: float = 0.0
    variance: float = INITIAL_VARIANCE
    process_noise: float = 25.0
    obs_noise: float = 90000.0
    gap_penalty: float = 400.0
    outlier_sigma: float = 2.5
    outlier_penalty: float = 2500.0
    observations: int = 0
    clipped_count: int = 0

    def predict(self, days: int = 1) -> None:
        """
        Grow uncertainty for ``days`` elapsed since the last observation.

        Args:
            days: Days since last update (1 for consecutive daily data)
        """
        days = max(days, 1)
        self.variance += self.process_noise * days + self.gap_penalty * (days - 1)
        self.variance = min(self.variance, MAX_VARIANCE)

    def update(self, observed_tdee: float, formula_tdee: float) -> FilterStep:
        """
        Incorporate one implied-TDEE observation.

        Args:
            observed_tdee: TDEE implied by intake and weight change
            formula_tdee: Formula baseline for the same day

        Returns:
            FilterStep with the raw and applied residuals
        """
        z = observed_tdee - formula_tdee
        residual = z - self.bias

        innovation_std = math.sqrt(self.variance + self.obs_noise)
        cap = self.outlier_sigma * innovation_std
        clipped = abs(residual) > cap
        applied = max(-cap, min(cap, residual))

        kalman_gain = self.variance / (self.variance + self.obs_noise)
        self.bias += kalman_gain * applied
        self.variance *= 1 - kalman_gain

        if clipped:
            self.variance = min(self.variance + self.outlier_penalty, MAX_VARIANCE)
            self.clipped_count += 1
        self.observations += 1

        return FilterStep(observation=z, residual=residual, applied_residual=applied, clipped=clipped)

    def predict_and_update(
        self,
        observed_tdee: float,
        formula_tdee: float,
        days: int = 1,
    ) -> FilterStep:
        """Combined predict + update for one observation ``days`` after the last."""
        self.predict(days)
        return self.update(observed_tdee, formula_tdee)

    def get_adjusted_tdee(self, formula_tdee: float) -> tuple[float, float]:
        """
        Adjusted TDEE with uncertainty.

        Returns:
            Tuple of (adjusted_tdee, uncertainty_95ci_half_width)
        """
        return formula_tdee + self.bias, 1.96 * math.sqrt(self.variance)

    @property
    def confidence(self) -> float:
        """Confidence in [0, 0.95]: share of the initial uncertainty removed."""
        if self.observations == 0:
            return 0.0
        value = 1.0 - self.variance / INITIAL_VARIANCE
        return max(0.0, min(MAX_CONFIDENCE, value))
