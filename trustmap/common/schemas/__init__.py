"""
TrustMap Schemas

Session records (events, annotations, ticket outcomes) and trust analysis records.
"""

from .session import (
    LogEntry,
    EventType,
    AnnotationType,
    TicketRelationship,
    TicketSourceType,
    EventTag,
    CommitTag,
    PushTag,
    TicketCreatedTag,
    TicketUpdatedTag,
    TicketCompletedTag,
    TicketReadTag,
    TicketMentionedTag,
    Event,
    Annotation,
    TicketSource,
    TicketReference,
    CommitRecord,
    PushRecord,
    TicketStateChange,
    SessionOutcomes,
    TicketInfo,
    Session,
)
from .trust import (
    CategoryType,
    TrustLevel,
    SuggestedApproach,
    SteeringMetrics,
    TaskCharacteristics,
    OutcomeMetrics,
    SessionTrustAnalysis,
    TrustAggregate,
    GlobalTrust,
    TrustMap,
    TrustFactor,
    TaskQuery,
    TrustPrediction,
    utc_now_iso,
)
from .templates import format_decimal, format_percent, render_trust_report, render_prediction_text

__all__ = [
    "LogEntry",
    "EventType",
    "AnnotationType",
    "TicketRelationship",
    "TicketSourceType",
    "EventTag",
    "CommitTag",
    "PushTag",
    "TicketCreatedTag",
    "TicketUpdatedTag",
    "TicketCompletedTag",
    "TicketReadTag",
    "TicketMentionedTag",
    "Event",
    "Annotation",
    "TicketSource",
    "TicketReference",
    "CommitRecord",
    "PushRecord",
    "TicketStateChange",
    "SessionOutcomes",
    "TicketInfo",
    "Session",
    "CategoryType",
    "TrustLevel",
    "SuggestedApproach",
    "SteeringMetrics",
    "TaskCharacteristics",
    "OutcomeMetrics",
    "SessionTrustAnalysis",
    "TrustAggregate",
    "GlobalTrust",
    "TrustMap",
    "TrustFactor",
    "TaskQuery",
    "TrustPrediction",
    "utc_now_iso",
    "format_percent",
    "format_decimal",
    "render_trust_report",
    "render_prediction_text",
]
