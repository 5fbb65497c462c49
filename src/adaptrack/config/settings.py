"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".adaptrack"


def _default_db_path() -> Path:
    """Return the default database path."""
    return _default_config_dir() / "adaptrack.db"


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: Path = field(default_factory=_default_db_path)


@dataclass
class AnalysisConfig:
    """Plan analysis defaults."""

    tolerance_percent: float = 3.0
    trend_window_days: int = 30
    min_trend_days: int = 5


@dataclass
class MetabolicConfig:
    """Adaptive TDEE estimation and drift detection parameters."""

    min_days: int = 14
    window_days: int = 14
    min_window_weighins: int = 7
    outlier_sigma: float = 2.5
    drift_tolerance_kg: float = 0.25
    drift_window_weeks: int = 2
    drift_min_confidence: float = 0.3


@dataclass
class TrainingConfig:
    """Per-type overrides of the training catalog.

    Example YAML::

        training:
          overrides:
            run: {met: 10.5, load_score: 3.5}
    """

    overrides: dict[str, dict[str, float]] = field(default_factory=dict)


@dataclass
class Settings:
    """Main application settings."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    metabolic: MetabolicConfig = field(default_factory=MetabolicConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.adaptrack/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        if "database" in data:
            db_data = data["database"] or {}
            if "path" in db_data:
                settings.database.path = Path(db_data["path"]).expanduser()

        if "analysis" in data:
            an_data = data["analysis"] or {}
            if "tolerance_percent" in an_data:
                settings.analysis.tolerance_percent = float(an_data["tolerance_percent"])
            if "trend_window_days" in an_data:
                settings.analysis.trend_window_days = int(an_data["trend_window_days"])
            if "min_trend_days" in an_data:
                settings.analysis.min_trend_days = int(an_data["min_trend_days"])

        if "metabolic" in data:
            met_data = data["metabolic"] or {}
            for name in ("min_days", "window_days", "min_window_weighins", "drift_window_weeks"):
                if name in met_data:
                    setattr(settings.metabolic, name, int(met_data[name]))
            for name in ("outlier_sigma", "drift_tolerance_kg", "drift_min_confidence"):
                if name in met_data:
                    setattr(settings.metabolic, name, float(met_data[name]))

        if "training" in data:
            tr_data = data["training"] or {}
            overrides = tr_data.get("overrides") or {}
            settings.training.overrides = {
                str(name): {key: float(value) for key, value in (values or {}).items()}
                for name, values in overrides.items()
            }

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.adaptrack/config.yaml
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "database": {
                "path": str(self.database.path),
            },
            "analysis": {
                "tolerance_percent": self.analysis.tolerance_percent,
                "trend_window_days": self.analysis.trend_window_days,
                "min_trend_days": self.analysis.min_trend_days,
            },
            "metabolic": {
                "min_days": self.metabolic.min_days,
                "window_days": self.metabolic.window_days,
                "min_window_weighins": self.metabolic.min_window_weighins,
                "outlier_sigma": self.metabolic.outlier_sigma,
                "drift_tolerance_kg": self.metabolic.drift_tolerance_kg,
                "drift_window_weeks": self.metabolic.drift_window_weeks,
                "drift_min_confidence": self.metabolic.drift_min_confidence,
            },
            "training": {
                "overrides": self.training.overrides,
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load(config_path)
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the global settings instance (None forces a reload on next use)."""
    global _settings
    _settings = settings
