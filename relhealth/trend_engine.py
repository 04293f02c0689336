"""
Trend and comparison engine for RelHealth
Per-interaction time series and cross-relationship ranking
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence, Union
import numpy as np

from . import config
from .models import (
    ComparisonReport,
    GrowthMetrics,
    HealthSnapshot,
    InteractionRecord,
    RelationshipSummary,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)


def _delta(before: Optional[float], after: Optional[float]) -> Optional[float]:
    if before is None or after is None:
        return None
    return float(after - before)


def project_time_series(records: Iterable[InteractionRecord]) -> List[TimeSeriesPoint]:
    """
    Map each interaction to a chart point, oldest first.

    Pure projection: no aggregation, and records with equal timestamps keep
    their input order.
    """
    ordered = sorted(records, key=lambda r: r.created_at)

    return [
        TimeSeriesPoint(
            index=i,
            timestamp=r.created_at,
            energy_delta=_delta(r.energy_before, r.energy_after),
            anxiety_delta=_delta(r.anxiety_before, r.anxiety_after),
            self_worth_delta=_delta(r.self_worth_before, r.self_worth_after),
            recovery_time=r.recovery_time_minutes,
            symptom_count=len(r.physical_symptoms) if r.physical_symptoms is not None else None,
        )
        for i, r in enumerate(ordered)
    ]


def classify_trend(
    current: HealthSnapshot,
    previous: HealthSnapshot,
    tolerance: Optional[float] = None,
) -> str:
    """
    Label a relationship by comparing this window's score with the last one.

    Returns "stable" when either window has no data.
    """
    tolerance = config.TREND_TOLERANCE if tolerance is None else tolerance

    if not current.has_data or not previous.has_data:
        return "stable"

    change = current.score - previous.score
    if change > tolerance:
        return "improving"
    if change < -tolerance:
        return "declining"
    return "stable"


def _as_summary(entry: Union[RelationshipSummary, Sequence[Any]]) -> RelationshipSummary:
    if isinstance(entry, RelationshipSummary):
        return entry
    relationship_id, snapshot, metrics, trend = entry
    return RelationshipSummary(
        relationship_id=relationship_id,
        snapshot=snapshot,
        metrics=metrics,
        trend=trend,
    )


def compare_relationships(
    entries: Iterable[Union[RelationshipSummary, Sequence[Any]]],
) -> ComparisonReport:
    """
    Rank and summarise a user's relationships.

    Args:
        entries: RelationshipSummary objects, or
            (relationship_id, HealthSnapshot, AggregateMetrics, trend_label) tuples

    Ties in every argmax/argmin go to the relationship that appears first in
    the input.

    Returns:
        ComparisonReport; ComparisonReport.empty() when there is nothing to compare
    """
    summaries = [_as_summary(e) for e in entries]

    if len(summaries) == 0:
        logger.info("No relationships to compare")
        return ComparisonReport.empty()

    for s in summaries:
        if s.trend not in config.TREND_LABELS:
            logger.warning(f"Relationship {s.relationship_id} has unrecognised trend '{s.trend}'")

    # max()/min() return the first extreme element, which gives input-order tie-breaks
    healthiest = max(summaries, key=lambda s: s.snapshot.score)
    most_problematic = min(summaries, key=lambda s: s.snapshot.score)
    most_energizing = max(summaries, key=lambda s: s.metrics.energy_delta)
    most_draining = min(summaries, key=lambda s: s.metrics.energy_delta)

    scores = [s.snapshot.score for s in summaries]
    respect_rates = [
        s.metrics.boundary_respect_rate
        for s in summaries
        if s.metrics.boundary_respect_rate is not None
    ]

    report = ComparisonReport(
        has_data=True,
        total_relationships=len(summaries),
        healthiest=healthiest.relationship_id,
        most_problematic=most_problematic.relationship_id,
        most_energizing=most_energizing.relationship_id,
        most_draining=most_draining.relationship_id,
        avg_health_score=float(np.mean(scores)),
        avg_energy_delta=float(np.mean([s.metrics.energy_delta for s in summaries])),
        avg_boundary_respect_rate=float(np.mean(respect_rates)) if respect_rates else None,
        healthy_count=sum(1 for v in scores if v >= config.HEALTHY_SCORE_MIN),
        concerning_count=sum(1 for v in scores if v < config.CONCERNING_SCORE_MAX),
        growth=compute_growth(summaries),
    )

    logger.info(
        f"Compared {report.total_relationships} relationships: "
        f"avg_health={report.avg_health_score:.1f}, healthy={report.healthy_count}, "
        f"concerning={report.concerning_count}"
    )
    return report


def compute_growth(summaries: List[RelationshipSummary]) -> GrowthMetrics:
    """
    Growth summary from externally supplied trend labels.

    growth_score = (mean boundary growth + percent of relationships improving) / 2
    """
    if len(summaries) == 0:
        return GrowthMetrics()

    improving = [s.relationship_id for s in summaries if s.trend == "improving"]
    declining = [s.relationship_id for s in summaries if s.trend == "declining"]
    contributors = [
        s.relationship_id
        for s in summaries
        if s.growth_contribution is not None and s.growth_contribution > config.GROWTH_CONTRIBUTOR_MIN
    ]

    boundary_growth_avg = float(np.mean([s.boundary_growth for s in summaries]))
    improving_pct = len(improving) / len(summaries) * 100

    return GrowthMetrics(
        improving=improving,
        declining=declining,
        growth_contributors=contributors,
        boundary_growth_avg=boundary_growth_avg,
        growth_score=(boundary_growth_avg + improving_pct) / 2,
    )
