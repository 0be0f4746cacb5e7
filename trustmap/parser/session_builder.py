"""
Session Builder

Assembles a Session from the text of one JSONL transcript.
Pure: callers read the file, this module only parses the content.

Pipeline:
1. Decode JSONL lines (malformed lines are skipped)
2. Collect metadata (id, parent, time range, folder, branch, tokens)
3. Classify entries into Events, pre-extracting ticket IDs before the
   stored content is truncated
4. Tag events and derive outcomes and ticket references
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, List, Optional

from ..common.entry_access import extract_content
from ..common.schemas import Annotation, LogEntry, Session
from ..common.time_utils import parse_timestamp_ms
from .classifier import calculate_entry_tokens, entry_to_event
from .outcome_extractor import (
    build_ticket_references,
    extract_event_tags,
    extract_session_outcomes,
    extract_ticket_ids,
    get_primary_ticket_id,
)

logger = logging.getLogger("trustmap.parser.session_builder")

# Maximum stored content length per event
MAX_CONTENT_LENGTH = 500


@dataclass
class ParsedSession:
    """Decoded transcript with its metadata, before classification"""
    id: str
    parent_session_id: Optional[str]
    start_time: str
    end_time: str
    folder: str
    branch: Optional[str]
    total_tokens: int
    entries: List[LogEntry] = field(default_factory=list)


def parse_jsonl_content(content: str) -> List[LogEntry]:
    """Decode JSONL text, skipping blank and malformed lines"""
    if not content or not content.strip():
        return []

    entries = []
    skipped = 0
    for line in content.split("\n"):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            skipped += 1
            continue
        if isinstance(entry, dict):
            entries.append(entry)
        else:
            skipped += 1

    if skipped:
        logger.debug("Skipped %d malformed JSONL lines", skipped)
    return entries


def _session_id_from_path(file_path: str) -> str:
    name = PurePath(file_path).name
    return name[:-len(".jsonl")] if name.endswith(".jsonl") else name


def extract_session_metadata(entries: List[LogEntry], file_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Collect session metadata from decoded entries.

    The file name is the session ID; an embedded ``sessionId`` that differs from
    it becomes the parent (compaction chains share the embedded ID).
    """
    timestamps = sorted(
        e["timestamp"] for e in entries if isinstance(e.get("timestamp"), str)
    )

    embedded_id = next((e["sessionId"] for e in entries if e.get("sessionId")), None)
    if file_path:
        session_id = _session_id_from_path(file_path)
    else:
        session_id = embedded_id or "unknown"

    folder = next((e["cwd"] for e in entries if e.get("cwd")), "")
    branch = next((e["gitBranch"] for e in entries if e.get("gitBranch")), None)

    return {
        "id": session_id,
        "parent_session_id": embedded_id if embedded_id != session_id else None,
        "start_time": timestamps[0] if timestamps else "",
        "end_time": timestamps[-1] if timestamps else "",
        "folder": folder,
        "branch": branch,
    }


def calculate_tokens(entries: List[LogEntry]) -> int:
    """Total token usage across entries"""
    return sum(calculate_entry_tokens(entry) for entry in entries)


def parse_session_from_content(content: str, file_path: Optional[str] = None) -> Optional[ParsedSession]:
    """
    Parse transcript text into a ParsedSession.

    Returns:
        ParsedSession, or None when the content holds no entries
    """
    entries = parse_jsonl_content(content)
    if not entries:
        return None

    metadata = extract_session_metadata(entries, file_path)
    return ParsedSession(
        total_tokens=calculate_tokens(entries),
        entries=entries,
        **metadata,
    )


def truncate_content(content: Any, max_length: int = MAX_CONTENT_LENGTH) -> Any:
    """Shorten string content and the text of content items, keeping structure"""
    if isinstance(content, str):
        return content[:max_length] + "..." if len(content) > max_length else content

    if isinstance(content, list):
        truncated = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                item = {**item, "text": truncate_content(item["text"], max_length)}
            truncated.append(item)
        return truncated

    return content


def compact_entry(entry: LogEntry, max_length: int = MAX_CONTENT_LENGTH) -> LogEntry:
    """
    Copy of an entry with its content truncated for storage.

    Ticket IDs found in the full text are kept in ``_extractedTicketIds`` so
    mentions past the cut are not lost.
    """
    compacted = dict(entry)

    full_text = extract_content(entry)
    ticket_ids = extract_ticket_ids(full_text)
    if ticket_ids:
        compacted["_extractedTicketIds"] = ticket_ids

    message = entry.get("message")
    if isinstance(message, dict):
        compacted["message"] = {**message, "content": truncate_content(message.get("content"), max_length)}
    if "content" in entry:
        compacted["content"] = truncate_content(entry["content"], max_length)

    return compacted


def build_session(
    parsed: ParsedSession,
    annotations: Optional[List[Annotation]] = None,
    max_content_length: int = MAX_CONTENT_LENGTH,
) -> Session:
    """
    Build a Session from a ParsedSession.

    Events carry compacted raw entries and their tags. The linked ticket is the
    primary "worked" ticket, if any.
    """
    events = []
    for entry in parsed.entries:
        event = entry_to_event(entry)
        if event is not None:
            event.raw = compact_entry(entry, max_content_length)
            events.append(event)

    for index, event in enumerate(events):
        tags = extract_event_tags(event, index)
        if tags:
            event.tags = tags

    outcomes = extract_session_outcomes(events)
    ticket_references = build_ticket_references(parsed.branch, events, outcomes)

    start_ms = parse_timestamp_ms(parsed.start_time)
    end_ms = parse_timestamp_ms(parsed.end_time)
    duration_ms = int(end_ms - start_ms) if start_ms is not None and end_ms is not None else 0

    logger.debug(
        "Built session %s: %d entries, %d events", parsed.id, len(parsed.entries), len(events)
    )

    return Session(
        id=parsed.id,
        parent_session_id=parsed.parent_session_id,
        start_time=parsed.start_time,
        end_time=parsed.end_time,
        duration_ms=duration_ms,
        total_tokens=parsed.total_tokens,
        branch=parsed.branch,
        folder=parsed.folder,
        linear_ticket_id=get_primary_ticket_id(ticket_references),
        events=events,
        annotations=list(annotations or []),
        ticket_references=ticket_references,
        outcomes=outcomes,
    )


def build_session_from_content(
    content: str,
    file_path: Optional[str] = None,
    annotations: Optional[List[Annotation]] = None,
) -> Optional[Session]:
    """Parse transcript text and build its Session in one step"""
    parsed = parse_session_from_content(content, file_path)
    if parsed is None:
        return None
    return build_session(parsed, annotations)
