"""SQLite database schema definitions."""

SCHEMA_SQL = """
-- Single user profile used for the formula baseline
CREATE TABLE IF NOT EXISTS user_profiles (
    profile_id INTEGER PRIMARY KEY AUTOINCREMENT,
    age INTEGER NOT NULL,
    sex TEXT NOT NULL CHECK (sex IN ('male', 'female')),
    height_cm REAL NOT NULL,
    weight_kg REAL NOT NULL,
    activity_level TEXT NOT NULL DEFAULT 'sedentary',
    goal TEXT NOT NULL DEFAULT 'maintain',
    bmr_equation TEXT NOT NULL DEFAULT 'mifflin_st_jeor',
    body_fat_percent REAL,
    tolerance_percent REAL NOT NULL DEFAULT 3.0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- One row per calendar day
CREATE TABLE IF NOT EXISTS daily_logs (
    log_id INTEGER PRIMARY KEY AUTOINCREMENT,
    log_date DATE NOT NULL UNIQUE,
    weight_kg REAL NOT NULL,
    body_fat_percent REAL,
    resting_heart_rate INTEGER,
    sleep_hours REAL,
    intake_kcal REAL,
    steps INTEGER,
    active_calories REAL,
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_daily_logs_date ON daily_logs(log_date);

-- Planned and actual sessions, ordered within a log
CREATE TABLE IF NOT EXISTS training_sessions (
    session_id INTEGER PRIMARY KEY AUTOINCREMENT,
    log_id INTEGER NOT NULL,
    kind TEXT NOT NULL CHECK (kind IN ('planned', 'actual')),
    position INTEGER NOT NULL,
    training_type TEXT NOT NULL,
    duration_min INTEGER NOT NULL DEFAULT 0,
    perceived_intensity INTEGER,
    notes TEXT,
    FOREIGN KEY (log_id) REFERENCES daily_logs(log_id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_training_sessions_log ON training_sessions(log_id, kind, position);

-- Nutrition plans; at most one active at a time
CREATE TABLE IF NOT EXISTS nutrition_plans (
    plan_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    start_date DATE NOT NULL,
    start_weight_kg REAL NOT NULL,
    goal_weight_kg REAL NOT NULL,
    duration_weeks INTEGER NOT NULL CHECK (duration_weeks > 0),
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'paused', 'completed', 'abandoned')),
    kcal_factor_override REAL,
    tolerance_percent REAL NOT NULL DEFAULT 3.0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    last_recalibrated_at TIMESTAMP
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_nutrition_plans_one_active
    ON nutrition_plans(status) WHERE status = 'active';

CREATE TABLE IF NOT EXISTS weekly_targets (
    plan_id INTEGER NOT NULL,
    week_number INTEGER NOT NULL,
    start_date DATE NOT NULL,
    end_date DATE NOT NULL,
    projected_weight_kg REAL NOT NULL,
    projected_tdee INTEGER NOT NULL,
    target_intake_kcal INTEGER NOT NULL,
    daily_balance_kcal INTEGER NOT NULL,
    actual_weight_kg REAL,
    actual_intake_kcal REAL,
    days_logged INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (plan_id, week_number),
    FOREIGN KEY (plan_id) REFERENCES nutrition_plans(plan_id) ON DELETE CASCADE
);

-- Applied recalibrations (audit trail)
CREATE TABLE IF NOT EXISTS plan_recalibrations (
    recalibration_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plan_id INTEGER NOT NULL,
    option_type TEXT NOT NULL,
    feasibility TEXT NOT NULL,
    new_parameter TEXT NOT NULL,
    impact TEXT,
    previous_goal_weight_kg REAL NOT NULL,
    previous_duration_weeks INTEGER NOT NULL,
    applied_at TIMESTAMP NOT NULL,
    FOREIGN KEY (plan_id) REFERENCES nutrition_plans(plan_id) ON DELETE CASCADE
);

-- Drift notification dismissals
CREATE TABLE IF NOT EXISTS drift_dismissals (
    dismissal_id INTEGER PRIMARY KEY AUTOINCREMENT,
    episode_id TEXT NOT NULL,
    direction TEXT NOT NULL CHECK (direction IN ('higher', 'lower')),
    started_on DATE NOT NULL,
    band INTEGER NOT NULL,
    dismissed_at TIMESTAMP NOT NULL
);
"""


def get_schema_sql() -> str:
    """Return the complete schema SQL."""
    return SCHEMA_SQL


SCHEMA_VERSION = 1

TABLES = (
    "user_profiles",
    "daily_logs",
    "training_sessions",
    "nutrition_plans",
    "weekly_targets",
    "plan_recalibrations",
    "drift_dismissals",
)
