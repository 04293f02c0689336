"""
Boundary goal generation for RelHealth
Derives tracking goals from a user's first baseline and measures progress
"""

import logging
from typing import Dict, Any, Iterable, List

from . import config
from .aggregator import boundary_checks, boundary_violation_rate, round_half_up
from .models import BaselinePreferences, BoundaryGoal, InteractionRecord

logger = logging.getLogger(__name__)


def _clean(entries) -> List[str]:
    return [e.strip() for e in entries if e and e.strip()]


def generate_goals_from_baseline(baseline: BaselinePreferences) -> List[BoundaryGoal]:
    """
    Build the starter goal set for a new baseline.

    - each non-negotiable boundary -> goal with target 95
    - each trigger -> "Avoid <trigger>" with target 80
    - personal space level, if set -> "<level> personal space" with target 85

    Callers run this once, when a user's first baseline is created. Later
    baseline versions do not regenerate goals.
    """
    targets = config.GOAL_TARGETS
    goals = []

    for boundary in _clean(baseline.non_negotiable_boundaries):
        goals.append(BoundaryGoal(
            user_id=baseline.user_id,
            boundary_name=boundary,
            description="Non-negotiable boundary from baseline assessment",
            target_respect_rate=targets["non_negotiable"],
            is_from_baseline=True,
            is_active=True,
        ))

    for trigger in _clean(baseline.triggers):
        goals.append(BoundaryGoal(
            user_id=baseline.user_id,
            boundary_name=f"Avoid {trigger}",
            description=f"Boundary to avoid personal trigger: {trigger}",
            target_respect_rate=targets["trigger"],
            is_from_baseline=True,
            is_active=True,
        ))

    space = (baseline.personal_space_needs or "").strip()
    if space:
        goals.append(BoundaryGoal(
            user_id=baseline.user_id,
            boundary_name=f"{space} personal space",
            description=f"Maintaining {space} level of personal space",
            target_respect_rate=targets["personal_space"],
            is_from_baseline=True,
            is_active=True,
        ))

    logger.info(f"Generated {len(goals)} boundary goals from baseline v{baseline.version} for {baseline.user_id}")
    return goals


def goal_progress(goal: BoundaryGoal, records: Iterable[InteractionRecord]) -> Dict[str, Any]:
    """
    Respect rate for a goal's boundary across interactions.

    An interaction counts when it lists the boundary as met or violated;
    a violation wins if it is listed as both.
    """
    records = list(records)
    observations, violations = boundary_checks(records, goal.boundary_name)

    if observations > 0:
        respect_rate = round_half_up((observations - violations) / observations * 100)
    else:
        respect_rate = None

    return {
        "boundary_name": goal.boundary_name,
        "target": goal.target_respect_rate,
        "respect_rate": respect_rate,
        "violation_rate": boundary_violation_rate(records, goal.boundary_name),
        "observations": observations,
        "on_track": respect_rate is not None and respect_rate >= goal.target_respect_rate,
    }
