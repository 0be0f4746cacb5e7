"""
Trust Analysis Schema

The trust map is built empirically from session data:
- Steering = user interventions (messages mid-session)
- Outcome = completion quality (commits, rework, errors)
- Characteristics = task features (area, type, complexity)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Enums
# ============================================================================

class CategoryType(str, Enum):
    """Dimensions the trust map is grouped by"""
    AREA = "area"
    TICKET_TYPE = "ticketType"
    BRANCH_TYPE = "branchType"
    LABEL = "label"
    PROJECT = "project"


class TrustLevel(str, Enum):
    """Predicted trust bucket"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SuggestedApproach(str, Enum):
    """How closely a task should be supervised"""
    AUTONOMOUS = "autonomous"
    LIGHT_MONITORING = "light_monitoring"
    ACTIVE_STEERING = "active_steering"
    DETAILED_BREAKDOWN = "detailed_breakdown"


# ============================================================================
# Per-session metrics
# ============================================================================

class SteeringMetrics(BaseModel):
    """
    Steering signals. Every user message after the first is an intervention.
    """
    intervention_count: int = 0
    # 0 = start, 1 = end. Early intervention often indicates low trust.
    first_intervention_progress: Optional[float] = None
    intervention_density: float = 0.0  # per 10k tokens
    goal_shift_count: int = 0
    time_to_first_intervention: Optional[float] = None  # ms


class TaskCharacteristics(BaseModel):
    """Task features that predict trust requirements"""
    codebase_area: str = "unknown"  # e.g. "src/auth"
    project_path: str = ""
    branch_type: Optional[str] = None
    ticket_type: Optional[str] = None
    ticket_labels: List[str] = Field(default_factory=list)
    initial_prompt_tokens: int = 0
    subtask_count: int = 0
    tool_diversity: int = 0
    file_patterns: List[str] = Field(default_factory=list)


class OutcomeMetrics(BaseModel):
    """Success and friction signals"""
    has_commit: bool = False
    commit_count: int = 0
    has_push: bool = False
    blocker_count: int = 0
    rework_count: int = 0
    decision_count: int = 0
    error_count: int = 0
    error_density: float = 0.0  # per 10k tokens
    duration_ms: int = 0
    total_tokens: int = 0
    ended_with_error: bool = False


class SessionTrustAnalysis(BaseModel):
    """Complete trust analysis for a single session"""
    session_id: str
    analyzed_at: str = Field(default_factory=utc_now_iso)
    steering: SteeringMetrics
    characteristics: TaskCharacteristics
    outcome: OutcomeMetrics
    trust_score: float = Field(ge=0.0, le=1.0)
    autonomous: bool  # 0-1 interventions


# ============================================================================
# Aggregates
# ============================================================================

class TrustAggregate(BaseModel):
    """Aggregated trust statistics for one category value"""
    category: str
    category_type: CategoryType

    total_sessions: int
    autonomous_sessions: int

    autonomous_rate: float = Field(ge=0.0, le=1.0)
    avg_trust_score: float
    avg_intervention_count: float
    avg_intervention_density: float

    commit_rate: float = Field(ge=0.0, le=1.0)
    rework_rate: float = Field(ge=0.0, le=1.0)
    error_rate: float = Field(ge=0.0, le=1.0)

    avg_first_intervention_progress: float
    confidence: float = Field(ge=0.0, le=1.0)

    updated_at: str = Field(default_factory=utc_now_iso)


class GlobalTrust(BaseModel):
    """Baseline statistics over all sessions"""
    total_sessions: int = 0
    autonomous_rate: float = 0.0
    avg_trust_score: float = 0.0
    avg_intervention_count: float = 0.0


class TrustMap(BaseModel):
    """Aggregated trust data across all categories, computed as one snapshot"""
    by_area: List[TrustAggregate] = Field(default_factory=list)
    by_ticket_type: List[TrustAggregate] = Field(default_factory=list)
    by_branch_type: List[TrustAggregate] = Field(default_factory=list)
    by_label: List[TrustAggregate] = Field(default_factory=list)
    by_project: List[TrustAggregate] = Field(default_factory=list)
    global_stats: GlobalTrust = Field(default_factory=GlobalTrust, alias="global")
    computed_at: str = Field(default_factory=utc_now_iso)

    model_config = {"populate_by_name": True}


# ============================================================================
# Prediction
# ============================================================================

class TrustFactor(BaseModel):
    """One matched category contributing to a prediction"""
    source: str  # e.g. "area:src/auth", "type:bug"
    trust_level: float
    weight: float
    sample_size: int
    insight: str


class TaskQuery(BaseModel):
    """Characteristics of a task that has not run yet"""
    codebase_area: Optional[str] = None
    ticket_type: Optional[str] = None
    branch_type: Optional[str] = None
    labels: List[str] = Field(default_factory=list)
    project_path: Optional[str] = None


class TrustPrediction(BaseModel):
    """Trust prediction for a new task"""
    predicted_trust: TrustLevel
    confidence_score: float = Field(ge=0.0, le=1.0)
    factors: List[TrustFactor] = Field(default_factory=list)
    recommendation: str
    suggested_approach: SuggestedApproach
