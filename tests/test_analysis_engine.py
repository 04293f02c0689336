"""
Tests for the analysis engine
"""

import sqlite3
import pytest
from datetime import datetime, timedelta

from relhealth.analysis_engine import (
    analyze_relationship,
    compare_user_relationships,
    goal_report,
    save_baseline,
    summarize_relationships,
)
from relhealth.models import BaselinePreferences, InteractionRecord
from relhealth.store import InteractionStore


NOW = datetime(2024, 6, 15, 9, 0)


@pytest.fixture
def store(tmp_path):
    return InteractionStore(db_path=tmp_path / "analysis.db")


@pytest.fixture
def populated_store(store):
    records = []
    # relationship 1: a good month after a poor one
    for i in range(4):
        records.append(InteractionRecord(
            id=f"r1-now-{i}", user_id="u1", relationship_id=1,
            created_at=NOW - timedelta(days=3 + i),
            energy_before=5, energy_after=7, anxiety_before=5, anxiety_after=4,
            recovery_time_minutes=20, support_system_engaged=True,
            boundaries_met=["privacy"],
        ))
        records.append(InteractionRecord(
            id=f"r1-prev-{i}", user_id="u1", relationship_id=1,
            created_at=NOW - timedelta(days=40 + i),
            energy_before=6, energy_after=4, anxiety_before=4, anxiety_after=6,
            recovery_time_minutes=120, boundaries_violated=["privacy"],
        ))
    # relationship 2: draining, only recent data
    for i in range(3):
        records.append(InteractionRecord(
            id=f"r2-{i}", user_id="u1", relationship_id=2,
            created_at=NOW - timedelta(days=1 + i),
            energy_before=7, energy_after=3, self_worth_before=6, self_worth_after=3,
            recovery_time_minutes=240, physical_symptoms=["headache"],
            boundary_testing=True,
        ))
    store.add_interactions(records)
    return store


def test_analyze_relationship(populated_store):
    report = analyze_relationship(populated_store, "u1", 1, window="month", now=NOW)

    assert report["relationship_id"] == 1
    assert report["window"] == "month"
    assert report["metrics"]["record_count"] == 4
    assert report["metrics"]["energy_delta"] == pytest.approx(2.0)
    assert report["snapshot"]["risk_tier"] == "low"
    assert report["trend"] == "improving"
    assert len(report["time_series"]) == 4
    assert report["time_series"][0]["timestamp"] < report["time_series"][-1]["timestamp"]
    assert report["insights"]["alerts"] == []


def test_analyze_requires_now(populated_store):
    with pytest.raises(ValueError):
        analyze_relationship(populated_store, "u1", 1, window="month")


def test_analyze_unknown_relationship(populated_store):
    report = analyze_relationship(populated_store, "u1", 99, window="month", now=NOW)

    assert report["snapshot"]["score"] == 50
    assert report["snapshot"]["risk_tier"] == "unknown"
    assert report["trend"] == "stable"
    assert report["time_series"] == []


def test_summaries_track_boundary_growth(populated_store):
    records = populated_store.get_all_interactions("u1")
    summaries = summarize_relationships(records, "month", NOW)

    assert [s.relationship_id for s in summaries] == [1, 2]
    assert summaries[0].boundary_growth == pytest.approx(100.0)
    assert summaries[1].boundary_growth == 0.0
    assert summaries[1].trend == "stable"


def test_compare_user_relationships(populated_store):
    report = compare_user_relationships(populated_store, "u1", window="month", now=NOW)

    assert report.total_relationships == 2
    assert report.healthiest == 1
    assert report.most_draining == 2
    assert report.concerning_count == 1
    assert report.growth.improving == [1]


def test_first_baseline_generates_goals(store):
    stored, goals = save_baseline(store, BaselinePreferences(
        user_id="u1",
        non_negotiable_boundaries=["No yelling"],
        triggers=["criticism"],
        personal_space_needs="high",
    ))

    assert stored.version == 1
    assert len(goals) == 3
    assert len(store.get_goals("u1")) == 3


def test_later_baseline_keeps_goals(store):
    save_baseline(store, BaselinePreferences(user_id="u1", triggers=["criticism"]))
    stored, goals = save_baseline(store, BaselinePreferences(user_id="u1", triggers=["sarcasm", "lateness"]))

    assert stored.version == 2
    assert goals == []
    assert [g.boundary_name for g in store.get_goals("u1")] == ["Avoid criticism"]


def test_failed_goal_insert_rolls_back_baseline(store, monkeypatch):
    real_insert = store._insert_goals
    calls = []

    def flaky_insert(conn, goals):
        calls.append(len(goals))
        if len(calls) == 1:
            raise sqlite3.OperationalError("database is locked")
        return real_insert(conn, goals)

    monkeypatch.setattr(store, "_insert_goals", flaky_insert)
    baseline = BaselinePreferences(user_id="u1", non_negotiable_boundaries=["No yelling"])

    with pytest.raises(sqlite3.OperationalError):
        save_baseline(store, baseline)
    assert store.get_latest_baseline("u1") is None

    stored, goals = save_baseline(store, baseline)

    assert stored.version == 1
    assert [g.boundary_name for g in goals] == ["No yelling"]
    assert [g.boundary_name for g in store.get_goals("u1")] == ["No yelling"]


def test_report_includes_time_patterns(populated_store):
    report = analyze_relationship(populated_store, "u1", 2, window="month", now=NOW)
    patterns = report["time_patterns"]

    assert patterns["record_count"] == 3
    assert sum(b["total"] for b in patterns["time_of_day"]) == 3
    assert patterns["hourly"] == [{"hour": 9, "total": 3, "violation_rate": 0}]


def test_goal_report(populated_store):
    save_baseline(populated_store, BaselinePreferences(user_id="u1", non_negotiable_boundaries=["privacy"]))
    progress = goal_report(populated_store, "u1")

    assert len(progress) == 1
    assert progress[0]["observations"] == 8
    assert progress[0]["respect_rate"] == 50
    assert progress[0]["violation_rate"] == 50
    assert progress[0]["on_track"] is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
