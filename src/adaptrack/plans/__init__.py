"""Nutrition plans: models, dual-track analysis and recalibration."""
