"""Gap-aware exponential smoothing of scale weight.

Each weigh-in pulls the trend toward it:

    T_n = T_{n-1} + a x (W_n - T_{n-1})

With a = 0.1 the trend behaves like a low-pass filter with a time constant of
roughly ten days. When weigh-ins are irregular the factor is rescaled for
the elapsed time, a_t = 1 - (1 - a)^t, which is what continuous exponential
decay gives for a t-day step.

The smoothed series feeds chart display; the adaptive estimator works from
robust windowed slopes instead (see :mod:`adaptrack.tracking.metabolic`).
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

DEFAULT_SMOOTHING = 0.1


def time_scaled_alpha(base_alpha: float, days_elapsed: int) -> float:
    """
    Rescale the smoothing factor for a multi-day gap.

    Args:
        base_alpha: Daily smoothing factor
        days_elapsed: Days since the previous weigh-in (values below 1 count as 1)

    Returns:
        Effective smoothing factor

    Example:
        >>> round(time_scaled_alpha(0.1, 3), 3)
        0.271
    """
    if days_elapsed <= 0:
        days_elapsed = 1
    return 1 - (1 - base_alpha) ** days_elapsed


def update_trend(
    prev_trend: float,
    weight_kg: float,
    smoothing: float = DEFAULT_SMOOTHING,
    days_elapsed: int = 1,
) -> float:
    """Advance the trend by one weigh-in."""
    alpha = time_scaled_alpha(smoothing, days_elapsed)
    return prev_trend + alpha * (weight_kg - prev_trend)


def calculate_trend(
    samples: Sequence[tuple[date, float]],
    smoothing: float = DEFAULT_SMOOTHING,
) -> list[float]:
    """
    Smooth a chronological series of (date, weight_kg) samples.

    The first weight seeds the trend. Returns one trend value per sample.
    """
    if not samples:
        return []

    trends = [samples[0][1]]
    for (prev_date, _), (curr_date, weight) in zip(samples, samples[1:]):
        days_elapsed = (curr_date - prev_date).days
        trends.append(update_trend(trends[-1], weight, smoothing, days_elapsed))
    return trends
