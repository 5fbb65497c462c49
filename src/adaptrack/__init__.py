"""Adaptive metabolic estimation, plan tracking and training load analytics."""

__version__ = "0.1.0"
