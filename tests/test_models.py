"""
Tests for data models
"""

import pytest
from datetime import datetime

from relhealth.models import (
    BaselinePreferences,
    BoundaryGoal,
    ComparisonReport,
    InteractionRecord,
    InvalidRangeError,
)


def test_record_from_dict_parses_timestamp_and_sets():
    record = InteractionRecord.from_dict({
        "id": 1,
        "user_id": "u1",
        "relationship_id": 7,
        "created_at": "2024-03-01T10:00:00",
        "physical_symptoms": ["headache", "nausea"],
        "coping_skills_used": "breathing",
        "unknown_field": "ignored",
    })

    assert record.created_at == datetime(2024, 3, 1, 10, 0)
    assert record.physical_symptoms == ("headache", "nausea")
    assert record.coping_skills_used == ("breathing",)
    assert record.energy_before is None


def test_offset_timestamps_normalized_to_utc():
    zulu = InteractionRecord.from_dict({
        "id": 1, "user_id": "u1", "relationship_id": 1,
        "created_at": "2024-03-01T10:00:00Z",
    })
    offset = InteractionRecord.from_dict({
        "id": 2, "user_id": "u1", "relationship_id": 1,
        "created_at": "2024-03-01T12:00:00+02:00",
    })

    assert zulu.created_at == datetime(2024, 3, 1, 10, 0)
    assert zulu.created_at.tzinfo is None
    assert offset.created_at == zulu.created_at


def test_record_rejects_out_of_range_scale():
    with pytest.raises(InvalidRangeError):
        InteractionRecord(id=1, user_id="u1", relationship_id=1,
                          created_at=datetime(2024, 1, 1), energy_before=11)

    with pytest.raises(InvalidRangeError):
        InteractionRecord(id=1, user_id="u1", relationship_id=1,
                          created_at=datetime(2024, 1, 1), mood_before=6)


def test_record_rejects_negative_minutes():
    with pytest.raises(ValueError):
        InteractionRecord(id=1, user_id="u1", relationship_id=1,
                          created_at=datetime(2024, 1, 1), recovery_time_minutes=-5)


def test_record_requires_timestamp():
    with pytest.raises(ValueError):
        InteractionRecord(id=1, user_id="u1", relationship_id=1, created_at=None)


def test_record_to_dict_is_json_friendly():
    record = InteractionRecord(id=1, user_id="u1", relationship_id=1,
                               created_at=datetime(2024, 1, 1), physical_symptoms=["tension"])
    data = record.to_dict()

    assert data["created_at"] == "2024-01-01T00:00:00"
    assert data["physical_symptoms"] == ["tension"]
    assert InteractionRecord.from_dict(data) == record


def test_baseline_defaults_and_validation():
    baseline = BaselinePreferences(user_id="u1", triggers=["yelling"])

    assert baseline.version == 1
    assert baseline.triggers == ("yelling",)
    assert baseline.non_negotiable_boundaries == ()

    with pytest.raises(InvalidRangeError):
        BaselinePreferences(user_id="u1", version=0)


def test_goal_target_range():
    with pytest.raises(InvalidRangeError):
        BoundaryGoal(user_id="u1", boundary_name="x", target_respect_rate=101)


def test_empty_comparison_report():
    report = ComparisonReport.empty()

    assert report.has_data is False
    assert report.total_relationships == 0
    assert report.healthiest is None
    assert report.to_dict()["growth"]["improving"] == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
