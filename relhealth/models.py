"""
Data models for RelHealth
Typed records for interactions, baselines, goals and derived analytics
"""

import logging
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple
import pandas as pd

logger = logging.getLogger(__name__)

# 1-10 self-report scales
SCALE_FIELDS = (
    "energy_before",
    "anxiety_before",
    "self_worth_before",
    "energy_after",
    "anxiety_after",
    "self_worth_after",
    "communication_quality",
    "emotional_needs_met",
    "values_alignment",
)

MINUTE_FIELDS = ("duration_minutes", "recovery_time_minutes")

SET_FIELDS = (
    "warning_signs",
    "physical_symptoms",
    "emotional_states",
    "recovery_strategies",
    "coping_skills_used",
    "what_helped",
    "what_made_worse",
    "communication_issues",
    "boundaries_met",
    "boundaries_violated",
)

BASELINE_SET_FIELDS = (
    "triggers",
    "non_negotiable_boundaries",
    "flexible_boundaries",
    "deal_breaker_behaviors",
    "relationship_goals",
)


class InvalidRangeError(ValueError):
    """Raised when an observation lies outside its allowed range."""
    pass


def _as_tuple(value) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def normalize_timestamp(value) -> Optional[datetime]:
    """
    Parse a timestamp into a naive UTC datetime.

    Offset-aware inputs ("...Z", "+02:00") are converted to UTC and their
    tzinfo dropped; naive inputs are taken to already be UTC.
    """
    if value is None:
        return None
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime()


def _known_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    unknown = set(data) - names
    if unknown:
        logger.debug(f"Ignoring unknown {cls.__name__} keys: {sorted(unknown)}")
    return {k: v for k, v in data.items() if k in names}


def _serialize(obj) -> Dict[str, Any]:
    out = {}
    for key, value in asdict(obj).items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, tuple):
            value = list(value)
        out[key] = value
    return out


@dataclass(frozen=True)
class InteractionRecord:
    """One logged encounter with a tracked relationship.

    Every observation is optional; ``None`` means "not observed" and is
    skipped by aggregation rather than treated as zero.
    """

    id: Any
    user_id: str
    relationship_id: Any
    created_at: datetime

    # Pre-interaction state
    energy_before: Optional[int] = None
    anxiety_before: Optional[int] = None
    self_worth_before: Optional[int] = None
    mood_before: Optional[int] = None
    warning_signs: Optional[Tuple[str, ...]] = None

    # Context
    interaction_type: Optional[str] = None
    duration_minutes: Optional[float] = None
    location: Optional[str] = None
    had_witnesses: Optional[bool] = None
    boundary_testing: Optional[bool] = None

    # Post-interaction state
    energy_after: Optional[int] = None
    anxiety_after: Optional[int] = None
    self_worth_after: Optional[int] = None
    physical_symptoms: Optional[Tuple[str, ...]] = None
    emotional_states: Optional[Tuple[str, ...]] = None

    # Recovery
    recovery_time_minutes: Optional[float] = None
    recovery_strategies: Optional[Tuple[str, ...]] = None
    coping_skills_used: Optional[Tuple[str, ...]] = None
    what_helped: Optional[Tuple[str, ...]] = None
    what_made_worse: Optional[Tuple[str, ...]] = None
    support_system_engaged: Optional[bool] = None

    # Compatibility (extended form)
    communication_quality: Optional[int] = None
    communication_issues: Optional[Tuple[str, ...]] = None
    boundaries_met: Optional[Tuple[str, ...]] = None
    boundaries_violated: Optional[Tuple[str, ...]] = None
    emotional_needs_met: Optional[int] = None
    values_alignment: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "created_at", normalize_timestamp(self.created_at))
        for name in SET_FIELDS:
            object.__setattr__(self, name, _as_tuple(getattr(self, name)))
        self._validate()

    def _validate(self):
        if self.created_at is None:
            raise ValueError(f"Interaction {self.id} has no created_at timestamp")

        for name in SCALE_FIELDS:
            value = getattr(self, name)
            if value is not None and not 1 <= value <= 10:
                raise InvalidRangeError(
                    f"Interaction {self.id}: {name}={value} outside 1-10"
                )

        if self.mood_before is not None and not 1 <= self.mood_before <= 5:
            raise InvalidRangeError(
                f"Interaction {self.id}: mood_before={self.mood_before} outside 1-5"
            )

        for name in MINUTE_FIELDS:
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidRangeError(f"Interaction {self.id}: {name}={value} is negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractionRecord":
        return cls(**_known_kwargs(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class BaselinePreferences:
    """A versioned snapshot of a user's communication and boundary profile."""

    user_id: str
    version: int = 1
    communication_style: Optional[str] = None
    conflict_resolution: Optional[str] = None
    emotional_support: Optional[str] = None
    personal_space_needs: Optional[str] = None
    response_time_expectation: Optional[int] = None  # hours
    triggers: Tuple[str, ...] = ()
    non_negotiable_boundaries: Tuple[str, ...] = ()
    flexible_boundaries: Tuple[str, ...] = ()
    deal_breaker_behaviors: Tuple[str, ...] = ()
    relationship_goals: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "created_at", normalize_timestamp(self.created_at))
        for name in BASELINE_SET_FIELDS:
            object.__setattr__(self, name, _as_tuple(getattr(self, name)) or ())

        if self.version < 1:
            raise InvalidRangeError(f"Baseline version must be >= 1 (got {self.version})")
        if self.response_time_expectation is not None and self.response_time_expectation < 0:
            raise InvalidRangeError(
                f"response_time_expectation={self.response_time_expectation} is negative"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaselinePreferences":
        return cls(**_known_kwargs(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class BoundaryGoal:
    """A tracked target respect rate for a named boundary."""

    user_id: str
    boundary_name: str
    description: str = ""
    target_respect_rate: int = 80
    is_from_baseline: bool = False
    is_active: bool = True

    def __post_init__(self):
        if not 0 <= self.target_respect_rate <= 100:
            raise InvalidRangeError(
                f"Goal '{self.boundary_name}': target_respect_rate="
                f"{self.target_respect_rate} outside 0-100"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoundaryGoal":
        return cls(**_known_kwargs(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class AggregateMetrics:
    """Summary statistics for one relationship over one window."""

    record_count: int = 0
    energy_delta: float = 0.0
    anxiety_delta: float = 0.0
    self_worth_delta: float = 0.0
    avg_recovery_time: float = 0.0
    physical_symptom_rate: float = 0.0
    boundary_test_rate: float = 0.0
    support_engagement_rate: float = 0.0
    coping_effectiveness_rate: float = 0.0
    comm_quality_avg: Optional[float] = None
    emotional_needs_avg: Optional[float] = None
    values_alignment_avg: Optional[float] = None
    boundary_respect_rate: Optional[float] = None
    symptom_frequency: List[Dict[str, Any]] = field(default_factory=list)
    recovery_strategy_effectiveness: List[Dict[str, Any]] = field(default_factory=list)
    observations: Dict[str, int] = field(default_factory=dict)
    window: Optional[str] = None
    cutoff: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.record_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class HealthSnapshot:
    """Composite health score and risk tier for one relationship/window."""

    score: int
    risk_tier: str
    factors: Dict[str, float] = field(default_factory=dict)
    raw_score: float = 50.0
    record_count: int = 0

    @property
    def has_data(self) -> bool:
        return self.record_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class TimeSeriesPoint:
    """Per-interaction chart point."""

    index: int
    timestamp: datetime
    energy_delta: Optional[float]
    anxiety_delta: Optional[float]
    self_worth_delta: Optional[float]
    recovery_time: Optional[float]
    symptom_count: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)


@dataclass(frozen=True)
class RelationshipSummary:
    """One relationship's inputs to a cross-relationship comparison."""

    relationship_id: Any
    snapshot: HealthSnapshot
    metrics: AggregateMetrics
    trend: str = "stable"
    boundary_growth: float = 0.0
    growth_contribution: Optional[float] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class GrowthMetrics:
    improving: List[Any] = field(default_factory=list)
    declining: List[Any] = field(default_factory=list)
    growth_contributors: List[Any] = field(default_factory=list)
    boundary_growth_avg: float = 0.0
    growth_score: float = 0.0


@dataclass(frozen=True)
class ComparisonReport:
    """Ranking and averages across a user's relationships."""

    has_data: bool
    total_relationships: int = 0
    healthiest: Any = None
    most_problematic: Any = None
    most_energizing: Any = None
    most_draining: Any = None
    avg_health_score: float = 0.0
    avg_energy_delta: float = 0.0
    avg_boundary_respect_rate: Optional[float] = None
    healthy_count: int = 0
    concerning_count: int = 0
    growth: GrowthMetrics = field(default_factory=GrowthMetrics)

    @classmethod
    def empty(cls) -> "ComparisonReport":
        """Report for an empty comparison set ("no data")."""
        return cls(has_data=False)

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)
