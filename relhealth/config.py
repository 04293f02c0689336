"""
Configuration module for RelHealth
Loads environment variables and provides default settings
"""

import os
from pathlib import Path
from typing import Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Storage
DB_PATH = os.getenv("RELHEALTH_DB_PATH", str(PROJECT_ROOT / "relhealth.db"))

# Windowing
WINDOWS = ("week", "month", "quarter", "year")
DEFAULT_WINDOW = os.getenv("DEFAULT_WINDOW", "month")

# Reporting limits
SYMPTOM_TOP_N = int(os.getenv("SYMPTOM_TOP_N", "8"))
STRATEGY_TOP_N = int(os.getenv("STRATEGY_TOP_N", "6"))

# Score difference (points) needed before a relationship counts as improving/declining
TREND_TOLERANCE = float(os.getenv("TREND_TOLERANCE", "2.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ============================================================================
# Health score formula
# ============================================================================

BASE_HEALTH_SCORE = 50.0
NEUTRAL_HEALTH_SCORE = 50

# Per-unit adjustments applied to the base score
HEALTH_SCORE_WEIGHTS: Dict[str, float] = {
    "energy_delta": 10.0,
    "anxiety_delta": -8.0,
    "self_worth_delta": 12.0,
    "recovery_hours": -5.0,
    "physical_symptom_rate": -0.8,
    "boundary_test_rate": -1.2,
    "support_engagement_rate": 0.3,
    "coping_effectiveness_rate": 0.4,
}

# Support engagement can add at most this many points
SUPPORT_CONTRIBUTION_CAP = 15.0

SCORE_RANGE = (0.0, 100.0)

# Lower bound (inclusive) of each tier, highest first
RISK_TIER_THRESHOLDS = (
    (70, "low"),
    (50, "medium"),
    (30, "high"),
)
RISK_TIER_FLOOR = "critical"
RISK_TIER_UNKNOWN = "unknown"

# ============================================================================
# Cross-relationship comparison
# ============================================================================

HEALTHY_SCORE_MIN = 70
CONCERNING_SCORE_MAX = 40  # exclusive
GROWTH_CONTRIBUTOR_MIN = 60  # exclusive

TREND_LABELS = ("improving", "stable", "declining")

# ============================================================================
# Time patterns
# ============================================================================

# Hour ranges [start, end); anything else is "night"
TIME_OF_DAY_HOURS = {
    "morning": (5, 12),
    "afternoon": (12, 17),
    "evening": (17, 21),
}
TIME_OF_DAY_LABELS = ("morning", "afternoon", "evening", "night")
LOCATION_TOP_N = 8

# ============================================================================
# Boundary goals
# ============================================================================

GOAL_TARGETS = {
    "non_negotiable": 95,
    "trigger": 80,
    "personal_space": 85,
}

# ============================================================================
# Health alerts (only raised for high/critical risk)
# ============================================================================

ALERT_THRESHOLDS = {
    "energy_drain": -2.0,          # energy_delta below
    "physical_symptom_rate": 50.0,  # percent above
    "self_worth_erosion": -1.5,     # self_worth_delta below
    "recovery_minutes": 180.0,      # avg_recovery_time above
}


def get_config_summary() -> Dict[str, Any]:
    """Return a summary of current configuration."""
    return {
        "storage": {
            "db_path": DB_PATH,
        },
        "windowing": {
            "default_window": DEFAULT_WINDOW,
            "windows": list(WINDOWS),
        },
        "reporting": {
            "symptom_top_n": SYMPTOM_TOP_N,
            "strategy_top_n": STRATEGY_TOP_N,
            "trend_tolerance": TREND_TOLERANCE,
            "location_top_n": LOCATION_TOP_N,
        },
        "scoring": {
            "base": BASE_HEALTH_SCORE,
            "weights": dict(HEALTH_SCORE_WEIGHTS),
            "support_cap": SUPPORT_CONTRIBUTION_CAP,
            "risk_tiers": {tier: floor for floor, tier in RISK_TIER_THRESHOLDS},
        },
        "goals": dict(GOAL_TARGETS),
    }


def validate_config() -> tuple[bool, str]:
    """Validate configuration. Returns (is_valid, message)."""
    if DEFAULT_WINDOW not in WINDOWS:
        return False, f"DEFAULT_WINDOW must be one of {', '.join(WINDOWS)} (got '{DEFAULT_WINDOW}')"

    if SYMPTOM_TOP_N < 1 or STRATEGY_TOP_N < 1:
        return False, "SYMPTOM_TOP_N and STRATEGY_TOP_N must be positive"

    if TREND_TOLERANCE < 0:
        return False, f"TREND_TOLERANCE must be >= 0 (got {TREND_TOLERANCE})"

    floors = [floor for floor, _ in RISK_TIER_THRESHOLDS]
    if floors != sorted(floors, reverse=True):
        return False, "RISK_TIER_THRESHOLDS must be ordered highest first"

    return True, "Configuration valid"


if __name__ == "__main__":
    # Print config summary for debugging
    import json
    print("RelHealth Configuration:")
    print(json.dumps(get_config_summary(), indent=2))
    print()
    valid, msg = validate_config()
    print(f"Validation: {msg}")
