"""
Time pattern analysis for RelHealth
Breaks one relationship's interactions down by time of day, weekday, hour and location
"""

import logging
import math
from typing import Dict, Any, Iterable, List, Optional
import pandas as pd

from . import config
from .aggregator import Aggregator, round_half_up
from .models import InteractionRecord
from .scoring import HealthScorer

logger = logging.getLogger(__name__)

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

UNKNOWN_LOCATION = "Unknown"


def time_of_day(hour: int) -> str:
    """Bucket an hour (0-23) into morning/afternoon/evening/night."""
    for label, (start, end) in config.TIME_OF_DAY_HOURS.items():
        if start <= hour < end:
            return label
    return "night"


def _missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _round_or_none(value) -> Optional[int]:
    return None if _missing(value) else round_half_up(float(value))


def _one_decimal(value) -> Optional[float]:
    return None if _missing(value) else round(float(value), 1)


class TimePatternAnalyzer:
    """When and where interactions with one person tend to go badly."""

    def __init__(
        self,
        aggregator: Optional[Aggregator] = None,
        scorer: Optional[HealthScorer] = None,
        location_top_n: Optional[int] = None,
    ):
        self.aggregator = aggregator or Aggregator()
        self.scorer = scorer or HealthScorer()
        self.location_top_n = config.LOCATION_TOP_N if location_top_n is None else location_top_n

    def interaction_frame(self, records: Iterable[InteractionRecord]) -> pd.DataFrame:
        """
        One row per interaction with its time buckets and outcome.

        ``health`` is the interaction scored on its own, so per-bucket health
        averages use the same formula as the relationship score.
        """
        rows = []
        for r in records:
            energy = None
            if r.energy_before is not None and r.energy_after is not None:
                energy = r.energy_after - r.energy_before
            location = (r.location or "").strip() or UNKNOWN_LOCATION

            rows.append({
                "created_at": r.created_at,
                "location": location,
                "violated": bool(r.boundaries_violated),
                "energy_delta": energy,
                "stress": r.anxiety_after,
                "health": self.scorer.score(self.aggregator.compute_metrics([r])).score,
            })

        frame = pd.DataFrame(
            rows,
            columns=["created_at", "location", "violated", "energy_delta", "stress", "health"],
        )
        timestamps = pd.to_datetime(frame["created_at"])
        frame["hour"] = timestamps.dt.hour
        frame["day_of_week"] = timestamps.dt.dayofweek
        frame["time_of_day"] = frame["hour"].map(time_of_day)
        for col in ("energy_delta", "stress", "health"):
            frame[col] = pd.to_numeric(frame[col], errors="coerce")
        frame["violated"] = frame["violated"].astype(bool)
        return frame

    def analyze(self, records: Iterable[InteractionRecord]) -> Dict[str, Any]:
        """
        Time-of-day, weekday, hourly and location breakdowns.

        Returns:
            {
                "record_count": int,
                "time_of_day": [bucket, ...],   # all four, fixed order
                "day_of_week": [bucket, ...],   # Monday..Sunday
                "hourly": [{"hour", "total", "violation_rate"}, ...],  # observed hours only
                "locations": [bucket, ...],     # worst violation rate first
            }

        Each bucket has total, violation_rate (percent), avg_health,
        avg_energy and avg_stress. Averages are None for empty buckets.
        """
        records = list(records)
        if len(records) == 0:
            return self._empty_patterns()

        frame = self.interaction_frame(records)

        by_time = self._bucket_stats(frame, "time_of_day")
        by_day = self._bucket_stats(frame, "day_of_week")
        by_hour = self._bucket_stats(frame, "hour")
        by_location = self._bucket_stats(frame, "location")

        locations = [self._bucket_row("location", name, by_location) for name in by_location.index]
        # sorted() is stable, so equal rates keep first-seen order
        locations = sorted(locations, key=lambda row: -row["violation_rate"])

        logger.debug(f"Time patterns over {len(frame)} interactions, {len(by_location)} locations")

        return {
            "record_count": len(frame),
            "time_of_day": [
                self._bucket_row("time", label, by_time) for label in config.TIME_OF_DAY_LABELS
            ],
            "day_of_week": [
                dict(self._bucket_row("day", i, by_day), day=name)
                for i, name in enumerate(DAY_NAMES)
            ],
            "hourly": [
                {
                    "hour": int(hour),
                    "total": int(row["total"]),
                    "violation_rate": round_half_up(row["violations"] / row["total"] * 100),
                }
                for hour, row in by_hour.iterrows()
            ],
            "locations": locations[: self.location_top_n],
        }

    def _empty_patterns(self) -> Dict[str, Any]:
        empty = pd.DataFrame()
        return {
            "record_count": 0,
            "time_of_day": [self._bucket_row("time", label, empty) for label in config.TIME_OF_DAY_LABELS],
            "day_of_week": [dict(self._bucket_row("day", i, empty), day=name) for i, name in enumerate(DAY_NAMES)],
            "hourly": [],
            "locations": [],
        }

    def _bucket_stats(self, frame: pd.DataFrame, key: str) -> pd.DataFrame:
        return frame.groupby(key, sort=(key != "location")).agg(
            total=("violated", "size"),
            violations=("violated", "sum"),
            avg_health=("health", "mean"),
            avg_energy=("energy_delta", "mean"),
            avg_stress=("stress", "mean"),
        )

    def _bucket_row(self, label_key: str, label: Any, stats: pd.DataFrame) -> Dict[str, Any]:
        if label not in stats.index:
            return {
                label_key: label,
                "total": 0,
                "violation_rate": 0,
                "avg_health": None,
                "avg_energy": None,
                "avg_stress": None,
            }

        row = stats.loc[label]
        total = int(row["total"])
        return {
            label_key: label,
            "total": total,
            "violation_rate": round_half_up(row["violations"] / total * 100),
            "avg_health": _round_or_none(row["avg_health"]),
            "avg_energy": _one_decimal(row["avg_energy"]),
            "avg_stress": _round_or_none(row["avg_stress"]),
        }


def analyze_time_patterns(records: Iterable[InteractionRecord]) -> Dict[str, Any]:
    """Time pattern breakdowns with default settings."""
    return TimePatternAnalyzer().analyze(records)
