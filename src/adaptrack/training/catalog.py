"""Training type catalog: MET values, load scores and categories.

Load scores express systemic stress per hour of work at a moderate effort
(RPE 3 on the internal scale); MET values drive exercise calorie estimates.
Categories are assigned through a lookup table so new types only need a row.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping, Optional

from adaptrack import errors
from adaptrack.errors import ValidationError


class TrainingType(str, Enum):
    """Kinds of training sessions a day can contain."""
    REST = "rest"
    QIGONG = "qigong"
    WALKING = "walking"
    GMB = "gmb"
    RUN = "run"
    ROW = "row"
    CYCLE = "cycle"
    HIIT = "hiit"
    STRENGTH = "strength"
    CALISTHENICS = "calisthenics"
    MOBILITY = "mobility"
    MIXED = "mixed"


class TrainingCategory(str, Enum):
    """Coarse grouping used for summaries and display."""
    RECOVERY = "recovery"
    CARDIO = "cardio"
    CONDITIONING = "conditioning"
    STRENGTH = "strength"


@dataclass(frozen=True)
class TrainingTypeConfig:
    """Catalog entry for one training type."""

    type: TrainingType
    met: float
    load_score: float
    category: TrainingCategory

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "met": self.met,
            "load_score": self.load_score,
            "category": self.category.value,
        }


# type: (MET, load score)
TRAINING_VALUES: dict[TrainingType, tuple[float, float]] = {
    TrainingType.REST: (1.0, 0.0),
    TrainingType.QIGONG: (2.5, 0.5),
    TrainingType.WALKING: (3.5, 1.0),
    TrainingType.GMB: (4.0, 3.0),
    TrainingType.RUN: (9.8, 3.0),
    TrainingType.ROW: (7.0, 3.0),
    TrainingType.CYCLE: (6.8, 2.0),
    TrainingType.HIIT: (12.8, 5.0),
    TrainingType.STRENGTH: (5.0, 5.0),
    TrainingType.CALISTHENICS: (4.0, 3.0),
    TrainingType.MOBILITY: (2.5, 0.5),
    TrainingType.MIXED: (6.0, 4.0),
}

TRAINING_CATEGORIES: dict[TrainingType, TrainingCategory] = {
    TrainingType.REST: TrainingCategory.RECOVERY,
    TrainingType.QIGONG: TrainingCategory.RECOVERY,
    TrainingType.MOBILITY: TrainingCategory.RECOVERY,
    TrainingType.WALKING: TrainingCategory.CARDIO,
    TrainingType.RUN: TrainingCategory.CARDIO,
    TrainingType.ROW: TrainingCategory.CARDIO,
    TrainingType.CYCLE: TrainingCategory.CARDIO,
    TrainingType.HIIT: TrainingCategory.CONDITIONING,
    TrainingType.MIXED: TrainingCategory.CONDITIONING,
    TrainingType.STRENGTH: TrainingCategory.STRENGTH,
    TrainingType.CALISTHENICS: TrainingCategory.STRENGTH,
    TrainingType.GMB: TrainingCategory.STRENGTH,
}

TrainingCatalog = Mapping[TrainingType, TrainingTypeConfig]


def parse_training_type(value: object) -> TrainingType:
    """Parse a training type name, raising ValidationError when unknown."""
    if isinstance(value, TrainingType):
        return value
    try:
        return TrainingType(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in TrainingType)
        raise ValidationError(
            errors.INVALID_TRAINING_TYPE,
            f"training type must be one of {valid}, got '{value}'",
        ) from None


def build_catalog(
    overrides: Optional[Mapping[str, Mapping[str, float]]] = None,
) -> dict[TrainingType, TrainingTypeConfig]:
    """Build the training catalog, applying per-type MET/load score overrides.

    Args:
        overrides: Mapping of type name to {"met": ..., "load_score": ...}

    Returns:
        Dict keyed by TrainingType
    """
    catalog = {
        training_type: TrainingTypeConfig(
            type=training_type,
            met=met,
            load_score=load_score,
            category=TRAINING_CATEGORIES[training_type],
        )
        for training_type, (met, load_score) in TRAINING_VALUES.items()
    }

    for name, values in (overrides or {}).items():
        training_type = parse_training_type(name)
        entry = catalog[training_type]
        if "met" in values:
            entry = replace(entry, met=float(values["met"]))
        if "load_score" in values:
            entry = replace(entry, load_score=max(float(values["load_score"]), 0.0))
        catalog[training_type] = entry

    return catalog


DEFAULT_CATALOG = build_catalog()


def list_training_types(catalog: Optional[TrainingCatalog] = None) -> list[TrainingTypeConfig]:
    """Return catalog entries in declaration order."""
    catalog = catalog or DEFAULT_CATALOG
    return [catalog[t] for t in TrainingType]


def exercise_calories(
    training_type: TrainingType,
    weight_kg: float,
    duration_min: float,
    catalog: Optional[TrainingCatalog] = None,
) -> float:
    """Net exercise energy: (MET - 1) x kg x hours, never negative."""
    catalog = catalog or DEFAULT_CATALOG
    net_met = max(catalog[training_type].met - 1.0, 0.0)
    return net_met * weight_kg * (duration_min / 60)
