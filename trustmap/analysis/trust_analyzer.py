"""
Trust Analyzer

Extracts steering signals, task characteristics and outcomes from a session,
then folds them into a single trust score.

Every user message after the initial prompt is an intervention: the steering
log is the ground truth for how much supervision a task needed.
"""

import logging
import re
from collections import Counter
from typing import Iterable, List, Mapping, Optional

from ..common.config import DEFAULT_CONFIG, TrustMapConfig
from ..common.entry_access import extract_content, extract_tool_inputs, extract_tool_names
from ..common.schemas import (
    AnnotationType,
    Event,
    EventType,
    OutcomeMetrics,
    Session,
    SessionTrustAnalysis,
    SteeringMetrics,
    TaskCharacteristics,
    TicketInfo,
    TicketRelationship,
    utc_now_iso,
)
from ..common.time_utils import parse_timestamp_ms
from ..parser.outcome_extractor import (
    extract_commit_outcome,
    extract_push_outcome,
    get_primary_ticket_id,
)

logger = logging.getLogger("trustmap.analysis.trust_analyzer")


FILE_PATH_FIELDS = ("file_path", "path", "filePath", "filename")

BRANCH_TYPE_PATTERNS = [
    (re.compile(r"^feature[/-]", re.IGNORECASE), "feature"),
    (re.compile(r"^fix[/-]", re.IGNORECASE), "fix"),
    (re.compile(r"^bug[/-]", re.IGNORECASE), "bugfix"),
    (re.compile(r"^hotfix[/-]", re.IGNORECASE), "hotfix"),
    (re.compile(r"^release[/-]", re.IGNORECASE), "release"),
    (re.compile(r"^refactor[/-]", re.IGNORECASE), "refactor"),
    (re.compile(r"^test[/-]", re.IGNORECASE), "test"),
    (re.compile(r"^docs?[/-]", re.IGNORECASE), "docs"),
    (re.compile(r"^chore[/-]", re.IGNORECASE), "chore"),
    (re.compile(r"^claude[/-]", re.IGNORECASE), "claude"),  # agent-created branches
    (re.compile(r"^(main|master|develop)$", re.IGNORECASE), "main"),
]

SUBTASK_PATTERNS = [
    re.compile(r"^\s*\d+\.", re.MULTILINE),  # "1. First step"
    re.compile(r"^\s*[-*]\s+", re.MULTILINE),  # "- Do this"
    re.compile(r"\bstep\s+\d+", re.IGNORECASE),  # "Step 1:"
]

WORKED_TICKET_LABEL = "has_worked_ticket"
REFERENCED_TICKET_LABEL = "has_referenced_ticket"
MULTI_TICKET_LABEL = "multi_ticket"


def _count_annotations(session: Session, annotation_type: AnnotationType) -> int:
    return sum(1 for a in session.annotations if a.type == annotation_type)


def _per_scale(count: int, total_tokens: int, scale: float) -> float:
    if total_tokens <= 0:
        return 0.0
    return count / total_tokens * scale


# ============================================================================
# Steering
# ============================================================================

def extract_steering_metrics(session: Session, config: Optional[TrustMapConfig] = None) -> SteeringMetrics:
    """
    Extract steering metrics from session events.

    The first user message is the initiating prompt; every later one is an
    intervention. Progress of the first intervention is None when the session
    has no measurable duration.
    """
    config = config or DEFAULT_CONFIG
    user_messages = [e for e in session.events if e.type == EventType.USER_MESSAGE]
    intervention_count = max(0, len(user_messages) - 1)

    first_intervention_progress = None
    time_to_first_intervention = None

    if intervention_count > 0:
        session_start = parse_timestamp_ms(session.start_time)
        session_end = parse_timestamp_ms(session.end_time)
        intervention_time = parse_timestamp_ms(user_messages[1].timestamp)

        if session_start is not None and intervention_time is not None:
            time_to_first_intervention = intervention_time - session_start

            if session_end is not None:
                session_duration = session_end - session_start
                if session_duration > 0:
                    first_intervention_progress = time_to_first_intervention / session_duration

    return SteeringMetrics(
        intervention_count=intervention_count,
        first_intervention_progress=first_intervention_progress,
        intervention_density=_per_scale(
            intervention_count, session.total_tokens, config.analysis.density_scale
        ),
        goal_shift_count=_count_annotations(session, AnnotationType.GOAL_SHIFT),
        time_to_first_intervention=time_to_first_intervention,
    )


# ============================================================================
# Task characteristics
# ============================================================================

def normalize_to_area(path: str, project_root: str) -> str:
    """
    Normalize a file path to a codebase area.

    e.g. "/home/user/project/src/auth/login.ts" -> "src/auth"
    """
    relative_path = path
    if path.startswith(project_root):
        relative_path = path[len(project_root):]
        if relative_path.startswith("/"):
            relative_path = relative_path[1:]

    segments = [s for s in relative_path.split("/") if s]
    if not segments:
        return "root"
    if len(segments) == 1:
        return segments[0]
    return f"{segments[0]}/{segments[1]}"


def extract_file_paths(events: Iterable[Event]) -> List[str]:
    """Distinct file paths touched by tool calls, in order of first use"""
    paths = {}

    for event in events:
        if event.type != EventType.TOOL_CALL:
            continue

        for tool_input in extract_tool_inputs(event.raw):
            for key in FILE_PATH_FIELDS:
                value = tool_input.get(key)
                if value and isinstance(value, str):
                    paths[value] = None

            pattern = tool_input.get("pattern")
            if pattern and isinstance(pattern, str):
                # Directory part of a glob
                directory = pattern.split("*")[0]
                if directory.endswith("/"):
                    directory = directory[:-1]
                if directory:
                    paths[directory] = None

    return list(paths)


def extract_unique_tools(events: Iterable[Event]) -> List[str]:
    """Distinct tool names across tool calls and git operations"""
    tools = {}

    for event in events:
        if event.type not in (EventType.TOOL_CALL, EventType.GIT_OP):
            continue
        names = extract_tool_names(event.raw) or ["unknown"]
        for name in names:
            tools[name] = None

    return list(tools)


def classify_branch_type(branch: Optional[str]) -> Optional[str]:
    """Classify a branch name by its prefix; None when there is no branch"""
    if not branch:
        return None

    for pattern, branch_type in BRANCH_TYPE_PATTERNS:
        if pattern.search(branch):
            return branch_type

    return "other"


def count_subtasks(events: Iterable[Event]) -> int:
    """Count numbered steps, bullets and "step N" phrases in planning events"""
    count = 0

    for event in events:
        if event.type != EventType.PLANNING_MODE:
            continue

        content = extract_content(event.raw)
        if not content:
            continue

        for pattern in SUBTASK_PATTERNS:
            count += len(pattern.findall(content))

    return count


def enrich_ticket_labels(session: Session, ticket_labels: Optional[List[str]]) -> List[str]:
    """
    Copy of the caller's labels plus markers derived from ticket references.

    The caller's list is never modified.
    """
    labels = list(ticket_labels or [])
    references = session.ticket_references
    if not references:
        return labels

    markers = []
    if any(r.relationship == TicketRelationship.WORKED for r in references):
        markers.append(WORKED_TICKET_LABEL)
    if any(r.relationship == TicketRelationship.REFERENCED for r in references):
        markers.append(REFERENCED_TICKET_LABEL)
    if len(references) > 1:
        markers.append(MULTI_TICKET_LABEL)

    for marker in markers:
        if marker not in labels:
            labels.append(marker)
    return labels


def extract_task_characteristics(
    session: Session,
    ticket_type: Optional[str] = None,
    ticket_labels: Optional[List[str]] = None,
    config: Optional[TrustMapConfig] = None,
) -> TaskCharacteristics:
    """Extract task characteristics from a session"""
    config = config or DEFAULT_CONFIG
    events = session.events

    first_user_message = next((e for e in events if e.type == EventType.USER_MESSAGE), None)
    initial_prompt_tokens = first_user_message.token_count if first_user_message else 0

    areas = [normalize_to_area(p, session.folder) for p in extract_file_paths(events)]
    # Counter keeps first-seen order, so ties go to the earliest area
    area_counts = Counter(areas)
    codebase_area = max(area_counts, key=area_counts.get) if area_counts else "unknown"

    unique_areas = list(dict.fromkeys(areas))

    return TaskCharacteristics(
        codebase_area=codebase_area,
        project_path=session.folder,
        branch_type=classify_branch_type(session.branch),
        ticket_type=ticket_type,
        ticket_labels=enrich_ticket_labels(session, ticket_labels),
        initial_prompt_tokens=initial_prompt_tokens,
        subtask_count=count_subtasks(events),
        tool_diversity=len(extract_unique_tools(events)),
        file_patterns=unique_areas[:config.analysis.max_file_patterns],
    )


# ============================================================================
# Outcomes
# ============================================================================

def extract_outcome_metrics(session: Session, config: Optional[TrustMapConfig] = None) -> OutcomeMetrics:
    """
    Extract outcome metrics from a session.

    Pre-computed session outcomes are used when present; otherwise git_op
    events are scanned for commits and pushes.
    """
    config = config or DEFAULT_CONFIG
    events = session.events

    if session.outcomes is not None:
        commit_count = len(session.outcomes.commits)
        has_push = len(session.outcomes.pushes) > 0
    else:
        git_ops = [e for e in events if e.type == EventType.GIT_OP]
        commit_count = sum(1 for e in git_ops if extract_commit_outcome(e) is not None)
        has_push = any(extract_push_outcome(e) is not None for e in git_ops)

    error_count = sum(1 for e in events if e.type == EventType.ERROR)

    window = config.analysis.end_error_window
    last_events = events[-window:] if window > 0 else []
    ended_with_error = any(e.type == EventType.ERROR for e in last_events)

    return OutcomeMetrics(
        has_commit=commit_count > 0,
        commit_count=commit_count,
        has_push=has_push,
        blocker_count=_count_annotations(session, AnnotationType.BLOCKER),
        rework_count=_count_annotations(session, AnnotationType.REWORK),
        decision_count=_count_annotations(session, AnnotationType.DECISION),
        error_count=error_count,
        error_density=_per_scale(error_count, session.total_tokens, config.analysis.density_scale),
        duration_ms=session.duration_ms,
        total_tokens=session.total_tokens,
        ended_with_error=ended_with_error,
    )


# ============================================================================
# Trust score
# ============================================================================

def compute_trust_score(steering: SteeringMetrics, outcome: OutcomeMetrics) -> float:
    """
    Compute trust score from steering and outcome metrics.

    High trust = low steering + good outcomes. Starts neutral at 0.5 and is
    clamped to [0, 1].
    """
    score = 0.5

    score -= min(steering.intervention_count * 0.1, 0.3)

    if steering.goal_shift_count == 0:
        score += 0.1
    else:
        score -= min(steering.goal_shift_count * 0.05, 0.15)

    if outcome.has_commit:
        score += 0.15

    if outcome.has_push:
        score += 0.1

    if outcome.rework_count == 0:
        score += 0.1
    else:
        score -= min(outcome.rework_count * 0.1, 0.2)

    score -= min(outcome.blocker_count * 0.05, 0.15)

    if not outcome.ended_with_error:
        score += 0.05
    else:
        score -= 0.1

    return max(0.0, min(1.0, score))


def is_autonomous(steering: SteeringMetrics) -> bool:
    """A session is autonomous with at most one intervention"""
    return steering.intervention_count <= 1


def analyze_session_trust(
    session: Session,
    ticket_type: Optional[str] = None,
    ticket_labels: Optional[List[str]] = None,
    config: Optional[TrustMapConfig] = None,
    analyzed_at: Optional[str] = None,
) -> SessionTrustAnalysis:
    """Analyze a session and produce its complete trust record"""
    steering = extract_steering_metrics(session, config)
    characteristics = extract_task_characteristics(session, ticket_type, ticket_labels, config)
    outcome = extract_outcome_metrics(session, config)

    return SessionTrustAnalysis(
        session_id=session.id,
        analyzed_at=analyzed_at or utc_now_iso(),
        steering=steering,
        characteristics=characteristics,
        outcome=outcome,
        trust_score=compute_trust_score(steering, outcome),
        autonomous=is_autonomous(steering),
    )


def _ticket_for_session(session: Session, ticket_map: Mapping[str, TicketInfo]) -> Optional[TicketInfo]:
    ticket_id = session.linear_ticket_id
    if not ticket_id and session.ticket_references:
        ticket_id = get_primary_ticket_id(session.ticket_references)
    if not ticket_id:
        return None
    return ticket_map.get(ticket_id)


def analyze_sessions_trust(
    sessions: Iterable[Session],
    ticket_map: Optional[Mapping[str, TicketInfo]] = None,
    config: Optional[TrustMapConfig] = None,
) -> List[SessionTrustAnalysis]:
    """
    Analyze many sessions.

    Ticket metadata is looked up by the session's linked ticket, falling back to
    its primary worked ticket. Sessions are independent of each other.
    """
    ticket_map = ticket_map or {}
    analyses = []

    for session in sessions:
        ticket = _ticket_for_session(session, ticket_map)
        analyses.append(analyze_session_trust(
            session,
            ticket_type=ticket.type if ticket else None,
            ticket_labels=ticket.labels if ticket else None,
            config=config,
        ))

    logger.info("Analyzed %d sessions", len(analyses))
    return analyses
