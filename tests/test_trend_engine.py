"""
Tests for time series and cross-relationship comparison
"""

import pytest
from datetime import datetime, timedelta

from relhealth.models import (
    AggregateMetrics,
    HealthSnapshot,
    InteractionRecord,
    RelationshipSummary,
)
from relhealth.trend_engine import classify_trend, compare_relationships, project_time_series


def snap(score, tier="medium", count=3):
    return HealthSnapshot(score=score, risk_tier=tier, record_count=count)


def summary(rel_id, score, energy=0.0, trend="stable", respect=None, growth=0.0, contribution=None):
    return RelationshipSummary(
        relationship_id=rel_id,
        snapshot=snap(score),
        metrics=AggregateMetrics(record_count=3, energy_delta=energy, boundary_respect_rate=respect),
        trend=trend,
        boundary_growth=growth,
        growth_contribution=contribution,
    )


def test_time_series_sorted_and_projected():
    base = datetime(2024, 1, 10)
    records = [
        InteractionRecord(id="b", user_id="u1", relationship_id=1, created_at=base,
                          energy_before=4, energy_after=7, physical_symptoms=["headache"]),
        InteractionRecord(id="a", user_id="u1", relationship_id=1, created_at=base - timedelta(days=2),
                          anxiety_before=3, anxiety_after=6, recovery_time_minutes=15),
        InteractionRecord(id="c", user_id="u1", relationship_id=1, created_at=base),
    ]
    series = project_time_series(records)

    assert [p.index for p in series] == [0, 1, 2]
    assert [p.timestamp for p in series] == [base - timedelta(days=2), base, base]
    assert series[0].anxiety_delta == 3.0
    assert series[0].energy_delta is None
    assert series[0].recovery_time == 15
    assert series[1].energy_delta == 3.0
    assert series[1].symptom_count == 1
    # equal timestamps keep input order
    assert series[2].symptom_count is None


def test_time_series_empty():
    assert project_time_series([]) == []


def test_classify_trend():
    assert classify_trend(snap(60), snap(50)) == "improving"
    assert classify_trend(snap(50), snap(60)) == "declining"
    assert classify_trend(snap(51), snap(50)) == "stable"
    assert classify_trend(snap(60), snap(50, "unknown", count=0)) == "stable"


def test_compare_empty():
    report = compare_relationships([])
    assert report.has_data is False
    assert report.total_relationships == 0


def test_compare_single_relationship():
    report = compare_relationships([summary(1, 72, energy=1.5)])

    assert report.has_data
    assert report.total_relationships == 1
    assert report.healthiest == report.most_problematic == 1
    assert report.most_energizing == report.most_draining == 1
    assert report.avg_health_score == pytest.approx(72.0)
    assert report.healthy_count == 1
    assert report.concerning_count == 0


def test_compare_rankings_and_counts():
    report = compare_relationships([
        summary("mom", 80, energy=2.0, respect=90.0),
        summary("boss", 35, energy=-3.0, respect=40.0),
        summary("friend", 55, energy=0.5),
    ])

    assert report.healthiest == "mom"
    assert report.most_problematic == "boss"
    assert report.most_energizing == "mom"
    assert report.most_draining == "boss"
    assert report.avg_health_score == pytest.approx(170 / 3)
    assert report.avg_energy_delta == pytest.approx(-0.5 / 3)
    assert report.avg_boundary_respect_rate == pytest.approx(65.0)
    assert report.healthy_count == 1
    assert report.concerning_count == 1


def test_average_score_matches_total():
    scores = [91, 12, 57, 40]
    report = compare_relationships([summary(i, s) for i, s in enumerate(scores)])

    assert report.avg_health_score * report.total_relationships == pytest.approx(sum(scores))


def test_compare_ties_go_to_first():
    report = compare_relationships([
        summary("a", 60, energy=1.0),
        summary("b", 60, energy=1.0),
    ])

    assert report.healthiest == "a"
    assert report.most_problematic == "a"
    assert report.most_energizing == "a"
    assert report.most_draining == "a"


def test_compare_accepts_tuples():
    entries = [
        ("x", snap(45), AggregateMetrics(record_count=2, energy_delta=-1.0), "declining"),
        ("y", snap(65), AggregateMetrics(record_count=2, energy_delta=1.0), "improving"),
    ]
    report = compare_relationships(entries)

    assert report.healthiest == "y"
    assert report.growth.improving == ["y"]
    assert report.growth.declining == ["x"]


def test_growth_metrics():
    report = compare_relationships([
        summary(1, 70, trend="improving", growth=10.0, contribution=75),
        summary(2, 50, trend="stable", growth=-4.0, contribution=60),
    ])
    growth = report.growth

    assert growth.improving == [1]
    assert growth.declining == []
    assert growth.growth_contributors == [1]
    assert growth.boundary_growth_avg == pytest.approx(3.0)
    # (3.0 + 50% improving) / 2
    assert growth.growth_score == pytest.approx(26.5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
