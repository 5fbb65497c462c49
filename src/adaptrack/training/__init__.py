"""Training catalog and load calculations."""

from __future__ import annotations

from adaptrack.training.catalog import TrainingCategory, TrainingType, build_catalog
from adaptrack.training.load import LoadZone, training_load_status

__all__ = [
    "LoadZone",
    "TrainingCategory",
    "TrainingType",
    "build_catalog",
    "training_load_status",
]
