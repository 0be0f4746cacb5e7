"""
Outcome Extractor

Extracts ground-truth outcomes and ticket references from session events.
Sources include: ticket tracker MCP tools, git commits and pushes, branch names,
and ticket mentions in messages.

Key Rules:
- Ticket IDs are uppercased and deduplicated in order of first appearance
- A ticket's relationship comes from its strongest source (see SOURCE_PRIORITY)
- "worked" references always sort before "referenced" ones
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..common.entry_access import (
    extract_command_text,
    extract_content,
    extract_tool_input,
    extract_tool_name,
)
from ..common.schemas import (
    CommitRecord,
    CommitTag,
    Event,
    EventTag,
    EventType,
    PushRecord,
    PushTag,
    Session,
    SessionOutcomes,
    TicketCompletedTag,
    TicketCreatedTag,
    TicketMentionedTag,
    TicketReadTag,
    TicketReference,
    TicketRelationship,
    TicketSource,
    TicketSourceType,
    TicketStateChange,
    TicketUpdatedTag,
)

logger = logging.getLogger("trustmap.parser.outcome_extractor")


# Ticket ID: 2-10 ASCII letters, hyphen, ASCII digits
TICKET_ID_PATTERN = re.compile(r"\b([A-Z]{2,10}-\d+)\b", re.IGNORECASE | re.ASCII)
TICKET_ID_EXACT = re.compile(r"^[A-Z]{2,10}-\d+$", re.IGNORECASE | re.ASCII)

# Linear MCP tools, registered as either mcp__linear__ or mcp__linear-server__
TICKET_TOOL_PATTERNS = {
    "create": re.compile(r"^mcp__linear(?:-server)?__create_issue$"),
    "update": re.compile(r"^mcp__linear(?:-server)?__update_issue$"),
    "comment": re.compile(r"^mcp__linear(?:-server)?__create_comment$"),
    "read": re.compile(r"^mcp__linear(?:-server)?__get_issue$"),
}

TICKET_ID_FIELDS = ("id", "issueId", "identifier")
TICKET_STATE_FIELDS = ("state", "stateId", "status")
COMPLETION_STATE = re.compile(r"^(done|completed|closed|finished|resolved)$", re.IGNORECASE)

GIT_COMMIT_PATTERN = re.compile(r'''git\s+commit\s+.*-m\s+["'](.+?)["']''', re.IGNORECASE)
GIT_COMMIT_HEREDOC_PATTERN = re.compile(
    r'''git\s+commit\s+.*-m\s+"\$\(cat\s+<<['"]?EOF['"]?\n([\s\S]*?)\nEOF\s*\)"''',
    re.IGNORECASE,
)
GIT_PUSH_PATTERN = re.compile(r"git\s+push\s+(?:-[a-z]+\s+)*([^\s]+)\s+([^\s]+)", re.IGNORECASE)
GIT_BARE_PUSH_PATTERN = re.compile(r"git\s+push\s*$")

MENTION_CONTEXT_CHARS = 50

# "worked" = actively modified/created, "referenced" = read or mentioned
SOURCE_TO_RELATIONSHIP: Dict[TicketSourceType, TicketRelationship] = {
    TicketSourceType.BRANCH: TicketRelationship.WORKED,
    TicketSourceType.COMMIT: TicketRelationship.WORKED,
    TicketSourceType.MCP_CREATE: TicketRelationship.WORKED,
    TicketSourceType.MCP_UPDATE: TicketRelationship.WORKED,
    TicketSourceType.MCP_COMPLETE: TicketRelationship.WORKED,
    TicketSourceType.MCP_COMMENT: TicketRelationship.WORKED,
    TicketSourceType.MCP_READ: TicketRelationship.REFERENCED,
    TicketSourceType.MENTION: TicketRelationship.REFERENCED,
}

# Higher = stronger signal of "worked"
SOURCE_PRIORITY: Dict[TicketSourceType, int] = {
    TicketSourceType.MCP_COMPLETE: 100,
    TicketSourceType.MCP_CREATE: 90,
    TicketSourceType.MCP_UPDATE: 80,
    TicketSourceType.COMMIT: 70,
    TicketSourceType.MCP_COMMENT: 60,
    TicketSourceType.BRANCH: 50,
    TicketSourceType.MCP_READ: 20,
    TicketSourceType.MENTION: 10,
}

_ACTION_TO_SOURCE = {
    "create": TicketSourceType.MCP_CREATE,
    "update": TicketSourceType.MCP_UPDATE,
    "comment": TicketSourceType.MCP_COMMENT,
    "read": TicketSourceType.MCP_READ,
}


@dataclass
class TicketToolExtraction:
    """Ticket information read from a ticket tool call"""
    ticket_id: str
    action: str  # create, update, comment, read
    is_completion: bool = False
    new_state: Optional[str] = None
    title: Optional[str] = None
    changes: Optional[Dict[str, str]] = None


@dataclass
class CommitOutcome:
    """Commit message and the tickets it names"""
    message: str
    ticket_ids: List[str] = field(default_factory=list)


@dataclass
class PushOutcome:
    branch: str
    remote: str


@dataclass
class TicketMention:
    ticket_id: str
    context: str


@dataclass
class OutcomeExtraction:
    """Everything the extractor derives from one session"""
    outcomes: SessionOutcomes
    ticket_references: List[TicketReference]
    primary_ticket_id: Optional[str] = None


# ============================================================================
# Ticket IDs and ticket tools
# ============================================================================

def extract_ticket_ids(text: Optional[str]) -> List[str]:
    """
    Extract all ticket IDs from text.

    Returns:
        Uppercased IDs, deduplicated, in order of first appearance
    """
    if not text:
        return []

    ids: List[str] = []
    for match in TICKET_ID_PATTERN.finditer(text):
        ticket_id = match.group(1).upper()
        if ticket_id not in ids:
            ids.append(ticket_id)
    return ids


def get_ticket_tool_type(tool_name: Optional[str]) -> Optional[str]:
    """Action of a ticket tool ("create", "update", "comment", "read"), or None"""
    if not tool_name:
        return None

    for action, pattern in TICKET_TOOL_PATTERNS.items():
        if pattern.match(tool_name):
            return action
    return None


def is_ticket_tool(tool_name: Optional[str]) -> bool:
    return get_ticket_tool_type(tool_name) is not None


def _ticket_id_from_input(tool_input: dict) -> Optional[str]:
    for key in TICKET_ID_FIELDS:
        value = tool_input.get(key)
        if not value or not isinstance(value, str):
            continue
        # Could be a UUID or a ticket identifier
        ticket_ids = extract_ticket_ids(value)
        if ticket_ids:
            return ticket_ids[0]
        if TICKET_ID_EXACT.match(value):
            return value.upper()
    return None


def extract_ticket_from_tool(event: Event) -> Optional[TicketToolExtraction]:
    """
    Extract ticket information from a ticket tool call.

    Returns:
        TicketToolExtraction, or None if the event is not a ticket tool call
        or names no ticket ID
    """
    action = get_ticket_tool_type(extract_tool_name(event.raw))
    if action is None:
        return None

    tool_input = extract_tool_input(event.raw)
    if not tool_input:
        return None

    ticket_id = _ticket_id_from_input(tool_input)
    if ticket_id is None:
        return None

    state = next(
        (tool_input[key] for key in TICKET_STATE_FIELDS if tool_input.get(key) is not None),
        None,
    )
    new_state = state if isinstance(state, str) else None
    is_completion = new_state is not None and bool(COMPLETION_STATE.match(new_state))

    title = tool_input.get("title")

    changes = None
    if action == "update":
        changes = {
            key: value
            for key, value in tool_input.items()
            if key not in ("id", "issueId") and isinstance(value, str)
        } or None

    return TicketToolExtraction(
        ticket_id=ticket_id,
        action=action,
        is_completion=is_completion,
        new_state=new_state,
        title=title if isinstance(title, str) else None,
        changes=changes,
    )


# ============================================================================
# Git outcomes
# ============================================================================

def extract_commit_outcome(event: Event) -> Optional[CommitOutcome]:
    """
    Extract the commit message from a git_op event.

    Heredoc-quoted messages are tried first, then the simple -m "..." form.
    """
    if event.type != EventType.GIT_OP:
        return None

    command = extract_command_text(event.raw)
    if not command or "git commit" not in command:
        return None

    match = GIT_COMMIT_HEREDOC_PATTERN.search(command) or GIT_COMMIT_PATTERN.search(command)
    if not match:
        return None

    message = match.group(1).strip()
    return CommitOutcome(message=message, ticket_ids=extract_ticket_ids(message))


def extract_push_outcome(event: Event) -> Optional[PushOutcome]:
    """
    Extract remote and branch from a git_op push event.

    A bare ``git push`` yields ("origin", "current").
    """
    if event.type != EventType.GIT_OP:
        return None

    command = extract_command_text(event.raw)
    if not command or "git push" not in command:
        return None

    match = GIT_PUSH_PATTERN.search(command)
    if match:
        return PushOutcome(remote=match.group(1), branch=match.group(2))

    if GIT_BARE_PUSH_PATTERN.search(command):
        return PushOutcome(remote="origin", branch="current")

    return None


# ============================================================================
# Message mentions
# ============================================================================

def extract_tickets_from_message(event: Event) -> List[TicketMention]:
    """
    Extract ticket mentions from user/assistant messages.

    IDs extracted before storage truncation (``_extractedTicketIds``) win over a
    rescan of the visible content. The context is the text within 50 characters
    of the mention, or the ticket ID itself when it was truncated away.
    """
    if event.type not in (EventType.USER_MESSAGE, EventType.ASSISTANT_MESSAGE):
        return []

    content = extract_content(event.raw)
    pre_extracted = event.raw.get("_extractedTicketIds")
    if isinstance(pre_extracted, list) and pre_extracted:
        ticket_ids = [t for t in pre_extracted if isinstance(t, str)]
    else:
        ticket_ids = extract_ticket_ids(content or "")

    mentions = []
    for ticket_id in ticket_ids:
        context = ticket_id
        if content:
            pattern = re.compile(
                r"(.{0,%d})\b%s\b(.{0,%d})" % (MENTION_CONTEXT_CHARS, re.escape(ticket_id), MENTION_CONTEXT_CHARS),
                re.IGNORECASE,
            )
            match = pattern.search(content)
            if match:
                context = f"{match.group(1)}{ticket_id}{match.group(2)}".strip()
        mentions.append(TicketMention(ticket_id=ticket_id, context=context))

    return mentions


# ============================================================================
# Session-level extraction
# ============================================================================

def extract_session_outcomes(events: List[Event]) -> SessionOutcomes:
    """Collect commits, pushes and ticket completions, indexed to their events"""
    outcomes = SessionOutcomes()

    for event_index, event in enumerate(events):
        commit = extract_commit_outcome(event)
        if commit:
            outcomes.commits.append(CommitRecord(
                message=commit.message,
                ticket_ids=commit.ticket_ids,
                timestamp=event.timestamp,
                event_index=event_index,
            ))

        push = extract_push_outcome(event)
        if push:
            outcomes.pushes.append(PushRecord(
                branch=push.branch,
                remote=push.remote,
                timestamp=event.timestamp,
                event_index=event_index,
            ))

        ticket_tool = extract_ticket_from_tool(event)
        if ticket_tool and ticket_tool.is_completion and ticket_tool.new_state:
            outcomes.ticket_state_changes.append(TicketStateChange(
                ticket_id=ticket_tool.ticket_id,
                new_state=ticket_tool.new_state,
                timestamp=event.timestamp,
                event_index=event_index,
            ))

    return outcomes


def _tool_source_type(ticket_tool: TicketToolExtraction) -> TicketSourceType:
    if ticket_tool.is_completion:
        return TicketSourceType.MCP_COMPLETE
    return _ACTION_TO_SOURCE[ticket_tool.action]


def _max_priority(sources: List[TicketSource]) -> int:
    return max((SOURCE_PRIORITY[s.type] for s in sources), default=0)


def build_ticket_references(
    branch: Optional[str],
    events: List[Event],
    outcomes: SessionOutcomes,
) -> List[TicketReference]:
    """
    Build ticket references from the branch name, commits, ticket tools and mentions.

    Sources within a reference are ordered by descending event index (sources
    without an index last). References are ordered worked-first, then by their
    strongest source.
    """
    ticket_sources: Dict[str, List[TicketSource]] = {}

    def add_source(ticket_id: str, source: TicketSource) -> None:
        ticket_sources.setdefault(ticket_id, []).append(source)

    if branch:
        first_timestamp = events[0].timestamp if events else ""
        for ticket_id in extract_ticket_ids(branch):
            add_source(ticket_id, TicketSource(type=TicketSourceType.BRANCH, timestamp=first_timestamp))

    for commit in outcomes.commits:
        for ticket_id in commit.ticket_ids:
            add_source(ticket_id, TicketSource(
                type=TicketSourceType.COMMIT,
                event_index=commit.event_index,
                timestamp=commit.timestamp,
                context=commit.message,
            ))

    for event_index, event in enumerate(events):
        ticket_tool = extract_ticket_from_tool(event)
        if ticket_tool:
            add_source(ticket_tool.ticket_id, TicketSource(
                type=_tool_source_type(ticket_tool),
                event_index=event_index,
                timestamp=event.timestamp,
                context=ticket_tool.title,
            ))

        for mention in extract_tickets_from_message(event):
            add_source(mention.ticket_id, TicketSource(
                type=TicketSourceType.MENTION,
                event_index=event_index,
                timestamp=event.timestamp,
                context=mention.context,
            ))

    references = []
    for ticket_id, sources in ticket_sources.items():
        max_priority = 0
        relationship = TicketRelationship.REFERENCED
        for source in sources:
            priority = SOURCE_PRIORITY[source.type]
            if priority > max_priority:
                max_priority = priority
                relationship = SOURCE_TO_RELATIONSHIP[source.type]

        ordered = sorted(
            sources,
            key=lambda s: s.event_index if s.event_index is not None else -1,
            reverse=True,
        )
        references.append(TicketReference(ticket_id=ticket_id, relationship=relationship, sources=ordered))

    references.sort(key=lambda r: (
        0 if r.relationship == TicketRelationship.WORKED else 1,
        -_max_priority(r.sources),
    ))
    return references


def get_primary_ticket_id(ticket_refs: List[TicketReference]) -> Optional[str]:
    """First "worked" ticket, or None"""
    for ref in ticket_refs:
        if ref.relationship == TicketRelationship.WORKED:
            return ref.ticket_id
    return None


def extract_event_tags(event: Event, event_index: int = 0) -> List[EventTag]:
    """
    Structured tags for a single event.

    ``event_index`` is accepted for callers that tag while streaming; tags
    themselves carry no index.
    """
    tags: List[EventTag] = []

    commit = extract_commit_outcome(event)
    if commit:
        tags.append(CommitTag(message=commit.message, ticket_ids=commit.ticket_ids))

    push = extract_push_outcome(event)
    if push:
        tags.append(PushTag(branch=push.branch, remote=push.remote))

    ticket_tool = extract_ticket_from_tool(event)
    if ticket_tool:
        if ticket_tool.action == "create":
            tags.append(TicketCreatedTag(ticket_id=ticket_tool.ticket_id, title=ticket_tool.title))
        elif ticket_tool.action == "read":
            tags.append(TicketReadTag(ticket_id=ticket_tool.ticket_id))
        elif ticket_tool.is_completion:
            tags.append(TicketCompletedTag(ticket_id=ticket_tool.ticket_id))
        elif ticket_tool.action == "update" and ticket_tool.changes:
            tags.append(TicketUpdatedTag(ticket_id=ticket_tool.ticket_id, changes=ticket_tool.changes))

    for mention in extract_tickets_from_message(event):
        tags.append(TicketMentionedTag(ticket_id=mention.ticket_id, context=mention.context))

    return tags


def process_session_outcomes(session: Session) -> OutcomeExtraction:
    """Extract outcomes, ticket references and the primary ticket for a session"""
    outcomes = extract_session_outcomes(session.events)
    ticket_references = build_ticket_references(session.branch, session.events, outcomes)
    primary_ticket_id = get_primary_ticket_id(ticket_references)

    logger.debug(
        "Session %s: %d commits, %d pushes, %d ticket references",
        session.id, len(outcomes.commits), len(outcomes.pushes), len(ticket_references),
    )

    return OutcomeExtraction(
        outcomes=outcomes,
        ticket_references=ticket_references,
        primary_ticket_id=primary_ticket_id,
    )
