"""
Tests for time pattern analysis
"""

import pytest
from datetime import datetime

from relhealth.models import InteractionRecord
from relhealth.time_patterns import TimePatternAnalyzer, analyze_time_patterns, time_of_day


def make_record(i, created_at, **kwargs):
    return InteractionRecord(id=i, user_id="u1", relationship_id=1, created_at=created_at, **kwargs)


@pytest.fixture
def week_records():
    """2024-03-04 is a Monday."""
    return [
        make_record(1, datetime(2024, 3, 4, 8, 30), location="home",
                    energy_before=5, energy_after=7, anxiety_after=3,
                    boundaries_met=["privacy"]),
        make_record(2, datetime(2024, 3, 4, 19, 0), location="work",
                    energy_before=7, energy_after=3, anxiety_after=8,
                    boundaries_violated=["privacy"]),
        make_record(3, datetime(2024, 3, 6, 19, 45), location="work",
                    energy_before=6, energy_after=4,
                    boundaries_violated=["time"]),
        make_record(4, datetime(2024, 3, 9, 23, 0), location=None),
    ]


def test_time_of_day_buckets():
    assert time_of_day(5) == "morning"
    assert time_of_day(11) == "morning"
    assert time_of_day(12) == "afternoon"
    assert time_of_day(17) == "evening"
    assert time_of_day(21) == "night"
    assert time_of_day(2) == "night"


def test_time_of_day_breakdown(week_records):
    patterns = analyze_time_patterns(week_records)
    buckets = {b["time"]: b for b in patterns["time_of_day"]}

    assert [b["time"] for b in patterns["time_of_day"]] == ["morning", "afternoon", "evening", "night"]
    assert buckets["morning"]["total"] == 1
    assert buckets["morning"]["avg_energy"] == 2.0
    assert buckets["evening"]["total"] == 2
    assert buckets["evening"]["violation_rate"] == 100
    assert buckets["evening"]["avg_energy"] == -3.0
    assert buckets["evening"]["avg_stress"] == 8
    assert buckets["afternoon"] == {
        "time": "afternoon",
        "total": 0,
        "violation_rate": 0,
        "avg_health": None,
        "avg_energy": None,
        "avg_stress": None,
    }
    assert buckets["night"]["avg_energy"] is None


def test_day_of_week_breakdown(week_records):
    days = analyze_time_patterns(week_records)["day_of_week"]

    assert [d["day"] for d in days][:2] == ["Monday", "Tuesday"]
    assert len(days) == 7
    assert days[0]["total"] == 2
    assert days[0]["violation_rate"] == 50
    assert days[2]["total"] == 1
    assert days[5]["total"] == 1
    assert days[6]["total"] == 0


def test_hourly_only_observed_hours(week_records):
    hourly = analyze_time_patterns(week_records)["hourly"]

    assert [h["hour"] for h in hourly] == [8, 19, 23]
    assert hourly[1] == {"hour": 19, "total": 2, "violation_rate": 100}


def test_locations_ranked_by_violation_rate(week_records):
    locations = analyze_time_patterns(week_records)["locations"]

    assert [loc["location"] for loc in locations] == ["work", "home", "Unknown"]
    assert locations[0]["violation_rate"] == 100
    assert locations[0]["total"] == 2


def test_location_limit():
    records = [
        make_record(i, datetime(2024, 3, 4, 10, 0), location=f"place-{i}")
        for i in range(10)
    ]
    patterns = TimePatternAnalyzer(location_top_n=3).analyze(records)

    assert [loc["location"] for loc in patterns["locations"]] == ["place-0", "place-1", "place-2"]


def test_bucket_health_matches_scoring(week_records):
    patterns = analyze_time_patterns(week_records)
    night = {b["time"]: b for b in patterns["time_of_day"]}["night"]

    # a record with no observations scores the neutral base
    assert night["avg_health"] == 50


def test_empty_records():
    patterns = analyze_time_patterns([])

    assert patterns["record_count"] == 0
    assert patterns["hourly"] == []
    assert patterns["locations"] == []
    assert all(b["total"] == 0 for b in patterns["time_of_day"])
    assert len(patterns["day_of_week"]) == 7


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
