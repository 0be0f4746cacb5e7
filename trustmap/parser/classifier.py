"""
Entry Classifier

Converts raw transcript records into typed Events.
First stage of the session pipeline: every later stage reads Events, never raw lines.

Priority (first match wins):
1. error marker or ``error`` field        -> error
2. tool_use / tool_result (top or nested)  -> git_op or tool_call
3. user role / user or human entry type   -> user_message
4. assistant role / assistant entry type  -> planning_mode or assistant_message
5. anything else                          -> dropped
"""

import logging
import re
from typing import Dict, List, Optional

from ..common.entry_access import (
    extract_bash_command,
    extract_command_text,
    extract_content,
    extract_tool_name,
    has_tool_content,
    message_role,
    message_usage,
)
from ..common.schemas import Event, EventTag, EventType, LogEntry
from .outcome_extractor import extract_event_tags

logger = logging.getLogger("trustmap.parser.classifier")


# Git command patterns to detect in bash tool calls
GIT_COMMAND_PATTERNS = [
    re.compile(r"\bgit\s+(push|pull|commit|checkout|merge|rebase|clone|fetch|add|reset|stash)", re.IGNORECASE),
    re.compile(r"\bgit\s+[a-z-]+", re.IGNORECASE),
]

PLANNING_INDICATORS = [
    re.compile(r"\bplan(ning)?\b.*:", re.IGNORECASE),
    re.compile(r"\bstep\s+\d+:", re.IGNORECASE),
    re.compile(r"\b(first|then|next|finally)\b.*\bI('ll| will)\b", re.IGNORECASE),
    re.compile(r"let me (think|plan|outline)", re.IGNORECASE),
]

USAGE_COUNTERS = (
    "input_tokens",
    "output_tokens",
    "cache_read_input_tokens",
    "cache_creation_input_tokens",
)

_GIT_OPERATION = re.compile(r"\bgit\s+([a-z-]+)", re.IGNORECASE)


def _matches_git(text: str) -> bool:
    return any(pattern.search(text) for pattern in GIT_COMMAND_PATTERNS)


def is_git_operation(entry: LogEntry) -> bool:
    """
    Check if a tool call entry is a git operation.

    Bash tool calls are judged by their command. Anything else (or a Bash call
    whose command cannot be found) falls back to scanning the free text.
    """
    tool_name = extract_tool_name(entry)

    if tool_name in ("Bash", "bash"):
        command = extract_bash_command(entry)
        if command:
            return _matches_git(command)

    content = extract_content(entry)
    if content:
        return _matches_git(content)

    return False


def is_planning_mode(entry: LogEntry) -> bool:
    """Check if an assistant entry is laying out a plan"""
    content = extract_content(entry)
    if not content:
        return False

    return any(pattern.search(content) for pattern in PLANNING_INDICATORS)


def _has_error_field(entry: LogEntry) -> bool:
    # Any object or list counts, even an empty one
    value = entry.get("error")
    if isinstance(value, (dict, list)):
        return True
    return bool(value)


def classify_entry(entry: LogEntry) -> Optional[EventType]:
    """
    Determine the event type of a log entry.

    Returns:
        EventType, or None when the entry carries nothing worth keeping
    """
    entry_type = entry.get("type")
    role = message_role(entry)

    if entry_type == "error" or _has_error_field(entry):
        return EventType.ERROR

    if entry_type in ("tool_use", "tool_result") or has_tool_content(entry):
        if is_git_operation(entry):
            return EventType.GIT_OP
        return EventType.TOOL_CALL

    if role == "user":
        return EventType.USER_MESSAGE

    if role == "assistant":
        if is_planning_mode(entry):
            return EventType.PLANNING_MODE
        return EventType.ASSISTANT_MESSAGE

    if entry_type in ("user", "human"):
        return EventType.USER_MESSAGE

    if entry_type == "assistant":
        if is_planning_mode(entry):
            return EventType.PLANNING_MODE
        return EventType.ASSISTANT_MESSAGE

    return None


def calculate_entry_tokens(entry: LogEntry) -> int:
    """Sum input, output, cache-read and cache-creation tokens (missing counts as 0)"""
    usage = message_usage(entry)
    total = 0
    for counter in USAGE_COUNTERS:
        value = usage.get(counter)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            total += int(value)
    return total


def entry_to_event(
    entry: LogEntry,
    extract_tags: bool = False,
    event_index: int = 0,
) -> Optional[Event]:
    """
    Convert a log entry to a typed Event.

    Args:
        entry: Raw transcript record
        extract_tags: Attach structured outcome tags (commit, push, tickets)
        event_index: Position of the event in its session, used for tags

    Returns:
        Event, or None if the entry is not classifiable
    """
    event_type = classify_entry(entry)
    if event_type is None:
        return None

    timestamp = entry.get("timestamp")
    event = Event(
        type=event_type,
        timestamp=timestamp if isinstance(timestamp, str) else "",
        token_count=calculate_entry_tokens(entry),
        raw=entry,
    )

    if extract_tags:
        tags = extract_event_tags(event, event_index)
        if tags:
            event.tags = tags

    return event


def extract_entry_tags(entry: LogEntry) -> List[EventTag]:
    """Tags for a single entry without building a session"""
    event = entry_to_event(entry)
    if event is None:
        return []
    return extract_event_tags(event, 0)


def extract_events(entries: List[LogEntry], extract_tags: bool = False) -> List[Event]:
    """
    Classify all entries, dropping the ones with no event type.

    With ``extract_tags`` the event index used for tags is the position among
    kept events.
    """
    events = []
    dropped = 0
    for entry in entries:
        event = entry_to_event(entry, extract_tags=extract_tags, event_index=len(events))
        if event is None:
            dropped += 1
            continue
        events.append(event)

    if dropped:
        logger.debug("Dropped %d unclassifiable entries of %d", dropped, len(entries))
    return events


def extract_git_details(event: Event) -> Optional[Dict[str, str]]:
    """
    Extract the git command and its operation name from a git_op event.

    Returns:
        {"command": ..., "operation": ...} or None
    """
    if event.type != EventType.GIT_OP:
        return None

    command = extract_command_text(event.raw)
    if not command:
        return None

    match = _GIT_OPERATION.search(command)
    operation = match.group(1) if match else "unknown"

    return {"command": command, "operation": operation}
