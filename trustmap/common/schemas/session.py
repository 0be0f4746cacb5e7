"""
Session Schema

Typed events, annotations and ticket outcomes derived from raw transcript records.
Raw LogEntry records stay plain dicts: their shape varies between producers, so they
are only read through the accessors in ``trustmap.common.entry_access``.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

# One raw transcript record (a decoded JSONL line)
LogEntry = Dict[str, Any]


# ============================================================================
# Enums
# ============================================================================

class EventType(str, Enum):
    """Semantic event categories"""
    USER_MESSAGE = "user_message"
    ASSISTANT_MESSAGE = "assistant_message"
    TOOL_CALL = "tool_call"
    GIT_OP = "git_op"
    ERROR = "error"
    PLANNING_MODE = "planning_mode"


class AnnotationType(str, Enum):
    """Friction annotations produced by LLM analysis"""
    DECISION = "decision"
    BLOCKER = "blocker"
    REWORK = "rework"
    GOAL_SHIFT = "goal_shift"


class TicketRelationship(str, Enum):
    """How a session relates to a ticket"""
    WORKED = "worked"
    REFERENCED = "referenced"


class TicketSourceType(str, Enum):
    """Where a ticket reference was found"""
    BRANCH = "branch"
    COMMIT = "commit"
    MCP_CREATE = "mcp_create"
    MCP_UPDATE = "mcp_update"
    MCP_COMPLETE = "mcp_complete"
    MCP_COMMENT = "mcp_comment"
    MCP_READ = "mcp_read"
    MENTION = "mention"


# ============================================================================
# Event tags (discriminated on ``type``)
# ============================================================================

class CommitTag(BaseModel):
    type: Literal["commit"] = "commit"
    message: str
    ticket_ids: List[str] = Field(default_factory=list)


class PushTag(BaseModel):
    type: Literal["push"] = "push"
    branch: str
    remote: str


class TicketCreatedTag(BaseModel):
    type: Literal["ticket_created"] = "ticket_created"
    ticket_id: str
    title: Optional[str] = None


class TicketUpdatedTag(BaseModel):
    type: Literal["ticket_updated"] = "ticket_updated"
    ticket_id: str
    changes: Dict[str, str] = Field(default_factory=dict)


class TicketCompletedTag(BaseModel):
    type: Literal["ticket_completed"] = "ticket_completed"
    ticket_id: str


class TicketReadTag(BaseModel):
    type: Literal["ticket_read"] = "ticket_read"
    ticket_id: str


class TicketMentionedTag(BaseModel):
    type: Literal["ticket_mentioned"] = "ticket_mentioned"
    ticket_id: str
    context: str = ""


EventTag = Annotated[
    Union[
        CommitTag,
        PushTag,
        TicketCreatedTag,
        TicketUpdatedTag,
        TicketCompletedTag,
        TicketReadTag,
        TicketMentionedTag,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# Core records
# ============================================================================

class Event(BaseModel):
    """A classified transcript record"""
    type: EventType
    timestamp: str = Field(default="", description="Original timestamp, empty when absent")
    token_count: int = 0
    raw: LogEntry = Field(default_factory=dict)
    tags: Optional[List[EventTag]] = None
    source_session_id: Optional[str] = None


class Annotation(BaseModel):
    """Friction annotation attached to a session by an external analyzer"""
    type: AnnotationType
    summary: str = ""
    confidence: float = Field(ge=0.0, le=1.0, default=0.5)
    event_index: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class TicketSource(BaseModel):
    """One sighting of a ticket ID inside a session"""
    type: TicketSourceType
    event_index: Optional[int] = None
    timestamp: str = ""
    context: Optional[str] = None


class TicketReference(BaseModel):
    """All sightings of one ticket, with the derived relationship"""
    ticket_id: str
    relationship: TicketRelationship
    sources: List[TicketSource] = Field(default_factory=list)


class CommitRecord(BaseModel):
    message: str
    ticket_ids: List[str] = Field(default_factory=list)
    timestamp: str = ""
    event_index: int


class PushRecord(BaseModel):
    branch: str
    remote: str
    timestamp: str = ""
    event_index: int


class TicketStateChange(BaseModel):
    ticket_id: str
    new_state: str
    timestamp: str = ""
    event_index: int


class SessionOutcomes(BaseModel):
    """Ground-truth outcome signals found in a session"""
    commits: List[CommitRecord] = Field(default_factory=list)
    pushes: List[PushRecord] = Field(default_factory=list)
    ticket_state_changes: List[TicketStateChange] = Field(default_factory=list)


class TicketInfo(BaseModel):
    """Ticket metadata supplied by the ticket-sync collaborator"""
    ticket_id: Optional[str] = None
    type: Optional[str] = None
    labels: List[str] = Field(default_factory=list)


class Session(BaseModel):
    """
    One coding session as delivered by the ingestion pipeline.

    Events are ordered; annotations and ticket data are optional enrichments.
    """
    id: str
    parent_session_id: Optional[str] = None
    start_time: str = ""
    end_time: str = ""
    duration_ms: int = 0
    total_tokens: int = 0
    branch: Optional[str] = None
    folder: str = ""
    linear_ticket_id: Optional[str] = None
    analyzed: bool = False
    events: List[Event] = Field(default_factory=list)
    annotations: List[Annotation] = Field(default_factory=list)
    ticket_references: Optional[List[TicketReference]] = None
    outcomes: Optional[SessionOutcomes] = None
