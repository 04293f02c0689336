"""
RelHealth - Relationship Health Analytics Engine

Turns self-reported interaction logs into per-relationship health scores,
risk tiers, trends, cross-relationship comparisons and boundary goals.
"""

__version__ = "1.0.0"
__author__ = "RelHealth Team"

from . import config
from . import models
from . import aggregator
from . import scoring
from . import trend_engine
from . import goal_generator
from . import time_patterns

from .aggregator import aggregate
from .scoring import score
from .trend_engine import project_time_series, compare_relationships
from .goal_generator import generate_goals_from_baseline
from .time_patterns import analyze_time_patterns

__all__ = [
    "config",
    "models",
    "aggregator",
    "scoring",
    "trend_engine",
    "goal_generator",
    "time_patterns",
    "aggregate",
    "score",
    "project_time_series",
    "compare_relationships",
    "generate_goals_from_baseline",
    "analyze_time_patterns",
]
