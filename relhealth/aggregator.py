"""
Aggregator for RelHealth
Windowing and metric computation over interaction records
"""

import logging
import math
from datetime import datetime
from typing import Dict, Any, Iterable, List, Optional, Tuple
import pandas as pd

from . import config
from .models import AggregateMetrics, InteractionRecord, normalize_timestamp

logger = logging.getLogger(__name__)

WINDOW_OFFSETS = {
    "week": pd.Timedelta(days=7),
    "month": pd.DateOffset(months=1),
    "quarter": pd.DateOffset(months=3),
    "year": pd.DateOffset(years=1),
}

DELTA_PAIRS = {
    "energy_delta": ("energy_before", "energy_after"),
    "anxiety_delta": ("anxiety_before", "anxiety_after"),
    "self_worth_delta": ("self_worth_before", "self_worth_after"),
}

COMPATIBILITY_FIELDS = {
    "comm_quality_avg": "communication_quality",
    "emotional_needs_avg": "emotional_needs_met",
    "values_alignment_avg": "values_alignment",
}

FRAME_COLUMNS = [
    "id",
    "created_at",
    "energy_before",
    "energy_after",
    "anxiety_before",
    "anxiety_after",
    "self_worth_before",
    "self_worth_after",
    "recovery_time_minutes",
    "physical_symptoms",
    "boundary_testing",
    "support_system_engaged",
    "coping_skills_used",
    "recovery_strategies",
    "communication_quality",
    "emotional_needs_met",
    "values_alignment",
    "boundaries_met",
    "boundaries_violated",
]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def window_cutoff(window: str, now: datetime) -> datetime:
    """
    Compute the inclusive start of a relative window.

    Month, quarter and year use calendar arithmetic (pandas DateOffset), so
    "month" before March 31st is February 28th/29th rather than 30 days.
    An offset-aware 'now' is converted to naive UTC like record timestamps.
    """
    if window not in WINDOW_OFFSETS:
        raise ValueError(f"Unknown window '{window}' (expected one of {', '.join(config.WINDOWS)})")
    if now is None:
        raise ValueError("An evaluation instant ('now') is required to apply a window")

    return (pd.Timestamp(normalize_timestamp(now)) - WINDOW_OFFSETS[window]).to_pydatetime()


def filter_window(
    records: Iterable[InteractionRecord],
    window: str,
    now: datetime,
) -> List[InteractionRecord]:
    """Keep records created at or after the window cutoff, preserving order."""
    cutoff = window_cutoff(window, now)
    return [r for r in records if r.created_at >= cutoff]


def _has_items(value) -> bool:
    return isinstance(value, (list, tuple, set, frozenset)) and len(value) > 0


def _observed(value) -> bool:
    return value is not None and not (isinstance(value, float) and math.isnan(value))


def _unique(value):
    """Drop repeats within one record's set field, keeping first-seen order."""
    return tuple(dict.fromkeys(value)) if _has_items(value) else value


class Aggregator:
    """Aggregate interaction records into relationship metrics."""

    def __init__(self, symptom_top_n: Optional[int] = None, strategy_top_n: Optional[int] = None):
        self.symptom_top_n = config.SYMPTOM_TOP_N if symptom_top_n is None else symptom_top_n
        self.strategy_top_n = config.STRATEGY_TOP_N if strategy_top_n is None else strategy_top_n

    def records_to_frame(self, records: Iterable[InteractionRecord]) -> pd.DataFrame:
        """Project records onto the columns aggregation needs."""
        rows = [{col: getattr(r, col) for col in FRAME_COLUMNS} for r in records]
        # object dtype keeps None as None instead of coercing flags/lists
        return pd.DataFrame(rows, columns=FRAME_COLUMNS, dtype=object)

    def compute_metrics(
        self,
        records: Iterable[InteractionRecord],
        window: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AggregateMetrics:
        """
        Compute aggregate metrics, optionally over a time window.

        Each metric only counts records where its fields were observed.
        Zero matching records yields the neutral result (record_count=0).
        """
        records = list(records)
        cutoff = None
        if window is not None:
            cutoff = window_cutoff(window, now)
            records = [r for r in records if r.created_at >= cutoff]

        if len(records) == 0:
            logger.debug(f"No interactions in window={window}; returning neutral metrics")
            return self._empty_metrics(window, cutoff)

        df = self.records_to_frame(records)
        observations: Dict[str, int] = {}

        values: Dict[str, Any] = {}
        values.update(self._compute_deltas(df, observations))
        values.update(self._compute_recovery(df, observations))
        values.update(self._compute_rates(df, observations))
        values.update(self._compute_coping(df, values["avg_recovery_time"], observations))
        values.update(self._compute_compatibility(df, observations))
        values.update(self._compute_boundary_respect(df, observations))
        values["symptom_frequency"] = self._compute_symptom_frequency(df)
        values["recovery_strategy_effectiveness"] = self._compute_strategy_effectiveness(df)

        logger.debug(f"Aggregated {len(df)} interactions (window={window})")

        return AggregateMetrics(
            record_count=len(df),
            observations=observations,
            window=window,
            cutoff=cutoff,
            **values,
        )

    def _numeric(self, df: pd.DataFrame, col: str) -> pd.Series:
        return pd.to_numeric(df[col], errors="coerce")

    def _compute_deltas(self, df: pd.DataFrame, observations: Dict[str, int]) -> Dict[str, float]:
        """Mean post-minus-pre change for each scale."""
        result = {}
        for name, (before, after) in DELTA_PAIRS.items():
            deltas = (self._numeric(df, after) - self._numeric(df, before)).dropna()
            observations[name] = len(deltas)
            result[name] = float(deltas.mean()) if len(deltas) > 0 else 0.0
        return result

    def _compute_recovery(self, df: pd.DataFrame, observations: Dict[str, int]) -> Dict[str, float]:
        recovery = self._numeric(df, "recovery_time_minutes").dropna()
        observations["avg_recovery_time"] = len(recovery)
        return {
            "avg_recovery_time": float(recovery.mean()) if len(recovery) > 0 else 0.0,
        }

    def _compute_rates(self, df: pd.DataFrame, observations: Dict[str, int]) -> Dict[str, float]:
        """Percent of observed records with symptoms / boundary testing / support."""
        symptoms = df["physical_symptoms"][df["physical_symptoms"].map(_observed)]
        observations["physical_symptom_rate"] = len(symptoms)
        symptom_rate = (
            float(symptoms.map(_has_items).sum() / len(symptoms) * 100) if len(symptoms) > 0 else 0.0
        )

        result = {"physical_symptom_rate": symptom_rate}

        for name, col in (
            ("boundary_test_rate", "boundary_testing"),
            ("support_engagement_rate", "support_system_engaged"),
        ):
            flags = df[col][df[col].map(_observed)]
            observations[name] = len(flags)
            result[name] = float(flags.astype(bool).sum() / len(flags) * 100) if len(flags) > 0 else 0.0

        return result

    def _compute_coping(
        self,
        df: pd.DataFrame,
        avg_recovery_time: float,
        observations: Dict[str, int],
    ) -> Dict[str, float]:
        """
        Percent of records where coping was used and recovery took no longer
        than this window's average recovery time.

        Compares against the already-aggregated average, so a record that
        pulls the average up is never counted as effective.
        """
        recovery = self._numeric(df, "recovery_time_minutes")
        observed = recovery.notna()
        observations["coping_effectiveness_rate"] = int(observed.sum())

        if not observed.any():
            return {"coping_effectiveness_rate": 0.0}

        used = df["coping_skills_used"].map(_has_items) | df["recovery_strategies"].map(_has_items)
        effective = used[observed] & (recovery[observed] <= avg_recovery_time)

        return {
            "coping_effectiveness_rate": float(effective.sum() / observed.sum() * 100),
        }

    def _compute_compatibility(
        self,
        df: pd.DataFrame,
        observations: Dict[str, int],
    ) -> Dict[str, Optional[float]]:
        result = {}
        for name, col in COMPATIBILITY_FIELDS.items():
            values = self._numeric(df, col).dropna()
            observations[name] = len(values)
            result[name] = float(values.mean()) if len(values) > 0 else None
        return result

    def _compute_boundary_respect(
        self,
        df: pd.DataFrame,
        observations: Dict[str, int],
    ) -> Dict[str, Optional[float]]:
        met = df["boundaries_met"].map(lambda v: len(v) if _has_items(v) else 0).sum()
        violated = df["boundaries_violated"].map(lambda v: len(v) if _has_items(v) else 0).sum()
        total = int(met + violated)
        observations["boundary_respect_rate"] = total

        return {
            "boundary_respect_rate": float(met / total * 100) if total > 0 else None,
        }

    def _compute_symptom_frequency(self, df: pd.DataFrame) -> List[Dict[str, Any]]:
        """Top symptoms by occurrence, with share of observed records."""
        observed = df["physical_symptoms"][df["physical_symptoms"].map(_observed)]
        if len(observed) == 0:
            return []

        exploded = observed.map(_unique).explode().dropna()
        if len(exploded) == 0:
            return []

        counts = exploded.value_counts()
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))

        return [
            {
                "symptom": symptom,
                "count": int(count),
                "percentage": round_half_up(count / len(observed) * 100),
            }
            for symptom, count in ranked[: self.symptom_top_n]
        ]

    def _compute_strategy_effectiveness(self, df: pd.DataFrame) -> List[Dict[str, Any]]:
        """Recovery strategies ranked by the average recovery time when used."""
        frame = pd.DataFrame({
            "strategy": df["recovery_strategies"].map(_unique),
            "recovery": self._numeric(df, "recovery_time_minutes"),
        })
        frame = frame[frame["strategy"].map(_has_items) & frame["recovery"].notna()]
        if len(frame) == 0:
            return []

        exploded = frame.explode("strategy")
        stats = exploded.groupby("strategy")["recovery"].agg(["count", "mean"]).reset_index()
        stats = stats.sort_values(["mean", "strategy"])

        return [
            {
                "strategy": row["strategy"],
                "uses": int(row["count"]),
                "avg_recovery_time": round_half_up(float(row["mean"])),
            }
            for _, row in stats.head(self.strategy_top_n).iterrows()
        ]

    def _empty_metrics(self, window: Optional[str] = None, cutoff: Optional[datetime] = None) -> AggregateMetrics:
        """Neutral metrics for a window with no interactions."""
        return AggregateMetrics(record_count=0, window=window, cutoff=cutoff)


def aggregate(
    records: Iterable[InteractionRecord],
    window: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AggregateMetrics:
    """Aggregate records (optionally windowed) with default settings."""
    return Aggregator().compute_metrics(records, window=window, now=now)


def boundary_checks(records: Iterable[InteractionRecord], boundary_name: str) -> Tuple[int, int]:
    """
    Count interactions that recorded a boundary, and how many violated it.

    A boundary listed as both met and violated in one interaction counts
    as violated.

    Returns:
        (checks, violations)
    """
    checks = 0
    violations = 0
    for record in records:
        if record.boundaries_violated and boundary_name in record.boundaries_violated:
            violations += 1
            checks += 1
        elif record.boundaries_met and boundary_name in record.boundaries_met:
            checks += 1
    return checks, violations


def boundary_violation_rate(records: Iterable[InteractionRecord], boundary_name: str) -> int:
    """
    Percent of interactions mentioning a boundary in which it was violated.

    Returns 0 when the boundary was never recorded as met or violated.
    """
    checks, violations = boundary_checks(records, boundary_name)
    return round_half_up(violations / checks * 100) if checks > 0 else 0


if __name__ == "__main__":
    from datetime import timedelta

    now = datetime.now()
    sample = [
        InteractionRecord(
            id=i, user_id="demo", relationship_id=1,
            created_at=now - timedelta(days=i * 3),
            energy_before=6, energy_after=6 - i % 3,
            anxiety_before=4, anxiety_after=4 + i % 2,
            recovery_time_minutes=30 * (i % 4),
            physical_symptoms=["headache"] if i % 2 else [],
            boundary_testing=bool(i % 3 == 0),
            support_system_engaged=True,
            coping_skills_used=["walk"],
        )
        for i in range(10)
    ]

    metrics = aggregate(sample, window="month", now=now)
    print("Metrics:")
    for k, v in metrics.to_dict().items():
        print(f"  {k}: {v}")
