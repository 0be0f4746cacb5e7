"""
TrustMap Parser - Transcript Classification and Outcome Extraction

Turns raw Claude Code transcript records into typed Events and derives the
ground-truth outcome signals that trust analysis is built on.

Key Components:
- classify_entry / entry_to_event: Entry Classifier
- extract_session_outcomes / build_ticket_references: Outcome & Reference Extractor
- build_session_from_content: pure JSONL-to-Session assembly
"""

from .classifier import (
    classify_entry,
    entry_to_event,
    extract_events,
    extract_entry_tags,
    extract_git_details,
    is_git_operation,
    is_planning_mode,
    calculate_entry_tokens,
)
from .outcome_extractor import (
    extract_ticket_ids,
    extract_ticket_from_tool,
    extract_commit_outcome,
    extract_push_outcome,
    extract_tickets_from_message,
    extract_session_outcomes,
    build_ticket_references,
    get_primary_ticket_id,
    extract_event_tags,
    process_session_outcomes,
)
from .session_builder import (
    parse_jsonl_content,
    parse_session_from_content,
    build_session,
    build_session_from_content,
)

__all__ = [
    "classify_entry",
    "entry_to_event",
    "extract_events",
    "extract_entry_tags",
    "extract_git_details",
    "is_git_operation",
    "is_planning_mode",
    "calculate_entry_tokens",
    "extract_ticket_ids",
    "extract_ticket_from_tool",
    "extract_commit_outcome",
    "extract_push_outcome",
    "extract_tickets_from_message",
    "extract_session_outcomes",
    "build_ticket_references",
    "get_primary_ticket_id",
    "extract_event_tags",
    "process_session_outcomes",
    "parse_jsonl_content",
    "parse_session_from_content",
    "build_session",
    "build_session_from_content",
]
