"""
Unified analysis engine for RelHealth
Orchestrates store retrieval, aggregation, scoring, trends and goal setup
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple

from .aggregator import Aggregator, window_cutoff
from .goal_generator import generate_goals_from_baseline, goal_progress
from .insight_engine import generate_insights
from .models import (
    AggregateMetrics,
    BaselinePreferences,
    BoundaryGoal,
    ComparisonReport,
    HealthSnapshot,
    InteractionRecord,
    RelationshipSummary,
)
from .scoring import HealthScorer
from .store import InteractionStore
from .time_patterns import analyze_time_patterns
from .trend_engine import classify_trend, compare_relationships, project_time_series
from . import config

logger = logging.getLogger(__name__)


def _previous_window(records: List[InteractionRecord], window: str, now: datetime) -> List[InteractionRecord]:
    """Records in the window immediately before the current one."""
    cutoff = window_cutoff(window, now)
    previous_cutoff = window_cutoff(window, cutoff)
    return [r for r in records if previous_cutoff <= r.created_at < cutoff]


def evaluate_window(
    records: List[InteractionRecord],
    window: str,
    now: datetime,
    aggregator: Optional[Aggregator] = None,
    scorer: Optional[HealthScorer] = None,
) -> Tuple[AggregateMetrics, HealthSnapshot, AggregateMetrics, HealthSnapshot]:
    """
    Aggregate and score the current window and the one before it.

    Returns:
        (current_metrics, current_snapshot, previous_metrics, previous_snapshot)
    """
    aggregator = aggregator or Aggregator()
    scorer = scorer or HealthScorer()

    current_metrics = aggregator.compute_metrics(records, window=window, now=now)
    previous_metrics = aggregator.compute_metrics(_previous_window(records, window, now))

    return (
        current_metrics,
        scorer.score(current_metrics),
        previous_metrics,
        scorer.score(previous_metrics),
    )


def _boundary_growth(current: AggregateMetrics, previous: AggregateMetrics) -> float:
    if current.boundary_respect_rate is None or previous.boundary_respect_rate is None:
        return 0.0
    return current.boundary_respect_rate - previous.boundary_respect_rate


def analyze_relationship(
    store: InteractionStore,
    user_id: str,
    relationship_id: Any,
    window: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Full health report for one relationship.

    Args:
        store: Record store to read interactions from
        user_id: Owning user
        relationship_id: Relationship to analyse
        window: week | month | quarter | year (default from config)
        now: Evaluation instant; the caller owns the clock

    Returns:
        {
            "relationship_id": ...,
            "window": str,
            "snapshot": HealthSnapshot dict,
            "metrics": AggregateMetrics dict,
            "trend": "improving" | "stable" | "declining",
            "time_series": [TimeSeriesPoint dict, ...],
            "time_patterns": {...},
            "insights": {...},
        }
    """
    window = window or config.DEFAULT_WINDOW
    if now is None:
        raise ValueError("analyze_relationship requires an explicit evaluation instant ('now')")

    logger.info(f"Analyzing relationship {relationship_id} for {user_id} (window={window})")

    logger.info("Step 1/5: Loading interactions")
    records = store.get_interactions(relationship_id, user_id)
    logger.info(f"Loaded {len(records)} interactions")

    return build_relationship_report(records, relationship_id, window, now)


def build_relationship_report(
    records: List[InteractionRecord],
    relationship_id: Any,
    window: str,
    now: datetime,
) -> Dict[str, Any]:
    """Report for one relationship's already-loaded interactions (see analyze_relationship)."""
    logger.info("Step 2/5: Aggregating and scoring")
    metrics, snapshot, previous_metrics, previous_snapshot = evaluate_window(records, window, now)
    trend = classify_trend(snapshot, previous_snapshot)

    logger.info(
        f"Health score {snapshot.score}/100 ({snapshot.risk_tier}) "
        f"from {metrics.record_count} interactions, trend={trend}"
    )

    logger.info("Step 3/5: Projecting time series")
    cutoff = window_cutoff(window, now)
    in_window = [r for r in records if r.created_at >= cutoff]
    series = project_time_series(in_window)

    logger.info("Step 4/5: Analyzing time patterns")
    patterns = analyze_time_patterns(in_window)

    logger.info("Step 5/5: Generating insights")
    insights = generate_insights(snapshot, metrics)

    return {
        "relationship_id": relationship_id,
        "window": window,
        "snapshot": snapshot.to_dict(),
        "metrics": metrics.to_dict(),
        "trend": trend,
        "time_series": [p.to_dict() for p in series],
        "time_patterns": patterns,
        "insights": insights,
    }


def summarize_relationships(
    records: List[InteractionRecord],
    window: str,
    now: datetime,
) -> List[RelationshipSummary]:
    """Score every relationship present in a user's interactions, in first-seen order."""
    grouped: "OrderedDict[Any, List[InteractionRecord]]" = OrderedDict()
    for record in records:
        grouped.setdefault(record.relationship_id, []).append(record)

    aggregator = Aggregator()
    scorer = HealthScorer()
    summaries = []

    for relationship_id, rel_records in grouped.items():
        metrics, snapshot, previous_metrics, previous_snapshot = evaluate_window(
            rel_records, window, now, aggregator=aggregator, scorer=scorer
        )
        summaries.append(RelationshipSummary(
            relationship_id=relationship_id,
            snapshot=snapshot,
            metrics=metrics,
            trend=classify_trend(snapshot, previous_snapshot),
            boundary_growth=_boundary_growth(metrics, previous_metrics),
        ))

    return summaries


def compare_user_relationships(
    store: InteractionStore,
    user_id: str,
    window: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ComparisonReport:
    """Compare all of a user's relationships over one window."""
    window = window or config.DEFAULT_WINDOW
    if now is None:
        raise ValueError("compare_user_relationships requires an explicit evaluation instant ('now')")

    records = store.get_all_interactions(user_id)
    logger.info(f"Comparing relationships for {user_id}: {len(records)} interactions (window={window})")

    return compare_relationships(summarize_relationships(records, window, now))


def save_baseline(
    store: InteractionStore,
    baseline: BaselinePreferences,
) -> Tuple[BaselinePreferences, List[BoundaryGoal]]:
    """
    Persist a new baseline version.

    Boundary goals are generated only when this is the user's first
    baseline; edits to an existing baseline never regenerate goals. The
    baseline and its goals are committed together, so a failed save can be
    retried without losing the starter goals.

    Returns:
        (stored_baseline, generated_goals)
    """
    stored, goals = store.save_baseline_with_goals(baseline, generate_goals_from_baseline)

    if stored.version > 1:
        logger.info(
            f"Baseline updated to v{stored.version} for {stored.user_id}; "
            f"existing goals left unchanged"
        )
    return stored, goals


def goal_report(store: InteractionStore, user_id: str) -> List[Dict[str, Any]]:
    """Progress for each active goal across all of a user's interactions."""
    records = store.get_all_interactions(user_id)
    return [
        goal_progress(goal, records)
        for goal in store.get_goals(user_id)
        if goal.is_active
    ]
