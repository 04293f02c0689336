"""
RelHealth Insight Engine
Turns a health snapshot and its metrics into plain-language findings

Style: supportive and direct, never diagnostic
Output is deterministic for a given snapshot/metrics pair
"""

from typing import Dict, Any, List

from . import config
from .models import AggregateMetrics, HealthSnapshot


TIER_SUMMARIES = {
    "low": "Time with this person generally leaves you in a good place.",
    "medium": "This relationship is mixed: some interactions lift you, others cost you.",
    "high": "Interactions here are taking a noticeable toll on you.",
    "critical": "This relationship is consistently draining your wellbeing.",
}


def generate_insights(snapshot: HealthSnapshot, metrics: AggregateMetrics) -> Dict[str, Any]:
    """
    Generate findings from a scored window.

    Returns:
        {
            "summary": str,
            "strengths": [str, ...],
            "concerns": [str, ...],
            "suggestions": [str, ...],
            "alerts": [{"type": str, "title": str, "message": str}, ...],
        }
    """
    if not snapshot.has_data:
        return {
            "summary": "Not enough interactions logged in this period to assess this relationship.",
            "strengths": [],
            "concerns": [],
            "suggestions": ["Log a few interactions to start seeing patterns."],
            "alerts": [],
        }

    concerns = _generate_concerns(metrics)

    return {
        "summary": _generate_summary(snapshot, metrics),
        "strengths": _generate_strengths(metrics),
        "concerns": concerns,
        "suggestions": _generate_suggestions(metrics, concerns),
        "alerts": detect_alerts(snapshot, metrics),
    }


def detect_alerts(snapshot: HealthSnapshot, metrics: AggregateMetrics) -> List[Dict[str, str]]:
    """Health alerts, raised only for high and critical risk tiers."""
    if snapshot.risk_tier not in ("high", "critical"):
        return []

    limits = config.ALERT_THRESHOLDS
    alerts = []

    if metrics.energy_delta < limits["energy_drain"]:
        alerts.append({
            "type": "energy_drain",
            "title": "Severe Energy Drain",
            "message": (
                f"This relationship consistently drains your energy by "
                f"{abs(metrics.energy_delta):.1f} points on average."
            ),
        })

    if metrics.physical_symptom_rate > limits["physical_symptom_rate"]:
        alerts.append({
            "type": "physical_impact",
            "title": "High Physical Impact",
            "message": (
                f"{metrics.physical_symptom_rate:.0f}% of interactions cause physical symptoms. "
                f"Consider consulting a healthcare provider."
            ),
        })

    if metrics.self_worth_delta < limits["self_worth_erosion"]:
        alerts.append({
            "type": "self_worth_erosion",
            "title": "Self-Worth Erosion",
            "message": (
                "This relationship is significantly impacting your self-worth. "
                "Consider professional support or limiting contact."
            ),
        })

    if metrics.avg_recovery_time > limits["recovery_minutes"]:
        alerts.append({
            "type": "extended_recovery",
            "title": "Extended Recovery Time",
            "message": (
                f"You need {metrics.avg_recovery_time / 60:.1f} hours on average to recover. "
                f"This is concerning for your wellbeing."
            ),
        })

    return alerts


def _generate_summary(snapshot: HealthSnapshot, metrics: AggregateMetrics) -> str:
    parts = [TIER_SUMMARIES.get(snapshot.risk_tier, "")]
    parts.append(f"Health score {snapshot.score}/100 across {metrics.record_count} logged interactions.")

    if metrics.energy_delta > 0:
        parts.append(f"Your energy rises by {metrics.energy_delta:.1f} points on average.")
    elif metrics.energy_delta < 0:
        parts.append(f"Your energy drops by {abs(metrics.energy_delta):.1f} points on average.")

    return " ".join(p for p in parts if p)


def _generate_strengths(metrics: AggregateMetrics) -> List[str]:
    strengths = []

    if metrics.energy_delta >= 1:
        strengths.append("You usually come away from these interactions with more energy.")
    if metrics.anxiety_delta <= -1:
        strengths.append("Anxiety tends to ease after you spend time together.")
    if metrics.self_worth_delta >= 1:
        strengths.append("These interactions tend to strengthen how you see yourself.")
    if metrics.boundary_respect_rate is not None and metrics.boundary_respect_rate >= 80:
        strengths.append("Your boundaries are mostly respected here.")
    if metrics.support_engagement_rate >= 50:
        strengths.append("You regularly lean on your support system after interactions.")
    if metrics.coping_effectiveness_rate >= 50:
        strengths.append("Your coping strategies are helping you recover quickly.")

    return strengths[:5]


def _generate_concerns(metrics: AggregateMetrics) -> List[str]:
    concerns = []

    if metrics.energy_delta <= -1:
        concerns.append("Interactions often leave you with less energy than before.")
    if metrics.anxiety_delta >= 1:
        concerns.append("Anxiety tends to rise after these interactions.")
    if metrics.self_worth_delta <= -1:
        concerns.append("Your sense of self-worth tends to dip afterwards.")
    if metrics.boundary_test_rate >= 30:
        concerns.append(f"Boundaries were tested in {metrics.boundary_test_rate:.0f}% of interactions.")
    if metrics.physical_symptom_rate >= 30:
        top = metrics.symptom_frequency[0]["symptom"] if metrics.symptom_frequency else "symptoms"
        concerns.append(
            f"Physical symptoms followed {metrics.physical_symptom_rate:.0f}% of interactions "
            f"(most often {top})."
        )
    if metrics.avg_recovery_time >= 120:
        concerns.append(f"Recovery takes about {metrics.avg_recovery_time / 60:.1f} hours on average.")

    return concerns[:5]


def _generate_suggestions(metrics: AggregateMetrics, concerns: List[str]) -> List[str]:
    suggestions = []

    if metrics.boundary_test_rate >= 30:
        suggestions.append("Decide ahead of time how you'll respond when a boundary is pushed.")
    if metrics.avg_recovery_time >= 120 and metrics.recovery_strategy_effectiveness:
        best = metrics.recovery_strategy_effectiveness[0]["strategy"]
        suggestions.append(f"'{best}' has been your fastest recovery strategy; plan it in after visits.")
    if metrics.support_engagement_rate < 50 and concerns:
        suggestions.append("Reaching out to someone you trust after hard interactions can shorten recovery.")

    if len(suggestions) == 0:
        suggestions.append("Nothing here calls for changes. Keep noticing how you feel after time together.")

    return suggestions[:4]
