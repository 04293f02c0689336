"""
Scoring module for RelHealth
Combines aggregate metrics into a composite health score and risk tier
"""

import logging
from typing import Dict, Optional

from . import config
from .aggregator import round_half_up
from .models import AggregateMetrics, HealthSnapshot

logger = logging.getLogger(__name__)


def classify_risk(score: float) -> str:
    """
    Map a clamped health score to a risk tier.

    >=70 low, [50, 70) medium, [30, 50) high, <30 critical.
    """
    for floor, tier in config.RISK_TIER_THRESHOLDS:
        if score >= floor:
            return tier
    return config.RISK_TIER_FLOOR


class HealthScorer:
    """Compute the composite health score for one relationship/window."""

    def __init__(
        self,
        weights: Optional[Dict[str, float]] = None,
        base_score: Optional[float] = None,
        support_cap: Optional[float] = None,
    ):
        """
        Initialize scorer with configurable weights.

        Args:
            weights: Per-factor multipliers (default from config)
            base_score: Starting score before adjustments
            support_cap: Maximum points support engagement can add
        """
        self.weights = dict(config.HEALTH_SCORE_WEIGHTS)
        if weights:
            self.weights.update(weights)
        self.base_score = config.BASE_HEALTH_SCORE if base_score is None else base_score
        self.support_cap = config.SUPPORT_CONTRIBUTION_CAP if support_cap is None else support_cap

    def compute_factors(self, metrics: AggregateMetrics) -> Dict[str, float]:
        """
        Per-factor contributions to the score.

        Formula: score = base
            + energy_delta * 10
            - anxiety_delta * 8
            + self_worth_delta * 12
            - (avg_recovery_time / 60) * 5
            - physical_symptom_rate * 0.8
            - boundary_test_rate * 1.2
            + min(support_engagement_rate * 0.3, 15)
            + coping_effectiveness_rate * 0.4
        """
        w = self.weights
        return {
            "energy_delta": metrics.energy_delta * w["energy_delta"],
            "anxiety_delta": metrics.anxiety_delta * w["anxiety_delta"],
            "self_worth_delta": metrics.self_worth_delta * w["self_worth_delta"],
            "recovery_hours": (metrics.avg_recovery_time / 60) * w["recovery_hours"],
            "physical_symptom_rate": metrics.physical_symptom_rate * w["physical_symptom_rate"],
            "boundary_test_rate": metrics.boundary_test_rate * w["boundary_test_rate"],
            "support_engagement_rate": min(
                metrics.support_engagement_rate * w["support_engagement_rate"],
                self.support_cap,
            ),
            "coping_effectiveness_rate": (
                metrics.coping_effectiveness_rate * w["coping_effectiveness_rate"]
            ),
        }

    def score(self, metrics: AggregateMetrics) -> HealthSnapshot:
        """
        Score aggregate metrics.

        A window with no interactions gets the neutral score and the
        ``unknown`` tier so that "no data" never reads as "stable".
        """
        if metrics.is_empty:
            return HealthSnapshot(
                score=config.NEUTRAL_HEALTH_SCORE,
                risk_tier=config.RISK_TIER_UNKNOWN,
                raw_score=float(config.NEUTRAL_HEALTH_SCORE),
                record_count=0,
            )

        factors = self.compute_factors(metrics)
        raw = self.base_score + sum(factors.values())

        low, high = config.SCORE_RANGE
        final = round_half_up(max(low, min(high, raw)))

        logger.debug(f"Health score raw={raw:.2f} clamped={final} from {metrics.record_count} interactions")

        return HealthSnapshot(
            score=final,
            risk_tier=classify_risk(final),
            factors={k: round(v, 4) for k, v in factors.items()},
            raw_score=round(float(raw), 4),
            record_count=metrics.record_count,
        )


def score(metrics: AggregateMetrics) -> HealthSnapshot:
    """Score metrics with the default weights."""
    return HealthScorer().score(metrics)


if __name__ == "__main__":
    example = AggregateMetrics(
        record_count=1,
        energy_delta=3.0,
        anxiety_delta=-3.0,
        avg_recovery_time=30.0,
        support_engagement_rate=100.0,
        coping_effectiveness_rate=100.0,
    )
    snapshot = score(example)
    print(f"Score: {snapshot.score}/100 ({snapshot.risk_tier}), raw={snapshot.raw_score}")
    for k, v in snapshot.factors.items():
        print(f"  {k}: {v:+.2f}")
