"""Error taxonomy shared by the analytics core and the service layer.

Every error carries a stable snake_case ``code`` so callers (the CLI JSON
envelope, tests) can branch on the failure kind without parsing messages.
Missing data is never an error: analyses return ``InsufficientData`` or
``Pending`` from :mod:`adaptrack.results` instead.
"""

from __future__ import annotations


class AdaptrackError(Exception):
    """Base class for all domain errors."""

    code: str = "error"

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {"error_code": self.code, "message": self.message}


class ValidationError(AdaptrackError, ValueError):
    """Input violates a domain rule (range, format, unknown enum value)."""


class ConflictError(AdaptrackError):
    """Operation clashes with existing state (duplicate log, second active plan)."""


class NotFoundError(AdaptrackError, LookupError):
    """Referenced record does not exist."""


# Validation codes
INVALID_DATE = "invalid_date"
INVALID_WEIGHT = "invalid_weight"
MISSING_WEIGHT = "missing_weight"
INVALID_BODY_FAT = "invalid_body_fat"
INVALID_HEART_RATE = "invalid_heart_rate"
INVALID_SLEEP_HOURS = "invalid_sleep_hours"
INVALID_INTAKE = "invalid_intake"
INVALID_STEPS = "invalid_steps"
INVALID_TRAINING_TYPE = "invalid_training_type"
INVALID_TRAINING_DURATION = "invalid_training_duration"
INVALID_RPE = "invalid_rpe"
INVALID_LOG_FIELD = "invalid_log_field"
INVALID_PROFILE = "invalid_profile"
INVALID_TOLERANCE = "invalid_tolerance"
INVALID_PLAN_DURATION = "invalid_plan_duration"
INVALID_PLAN_NAME = "invalid_plan_name"
PLAN_START_DATE_TOO_OLD = "plan_start_date_too_old"
DEFICIT_TOO_AGGRESSIVE = "deficit_too_aggressive"
SURPLUS_TOO_AGGRESSIVE = "surplus_too_aggressive"
ANALYSIS_BEFORE_PLAN_START = "analysis_before_plan_start"
INVALID_PLAN_TRANSITION = "invalid_plan_transition"
INVALID_RECALIBRATION_OPTION = "invalid_recalibration_option"
RECALIBRATION_NOT_AVAILABLE = "recalibration_not_available"

# Conflict codes
ACTIVE_PLAN_EXISTS = "active_plan_exists"
DUPLICATE_LOG = "duplicate_log"
PROFILE_EXISTS = "profile_exists"

# Not found codes
PLAN_NOT_FOUND = "plan_not_found"
LOG_NOT_FOUND = "log_not_found"
PROFILE_NOT_FOUND = "profile_not_found"
NO_ACTIVE_PLAN = "no_active_plan"
NOTIFICATION_NOT_FOUND = "notification_not_found"
