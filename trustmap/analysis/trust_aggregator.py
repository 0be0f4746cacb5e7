"""
Trust Aggregator

Groups per-session trust analyses into category aggregates with a
sample-size confidence, plus a global baseline.

Key Rules:
- A map is always recomputed in full from one snapshot of analyses
- Labels fan out: a session counts toward every label it carries
- Empty input gives an all-zero map, never an error
"""

import logging
import math
from typing import Callable, Dict, Iterable, List, Optional, Union

from ..common.config import DEFAULT_CONFIG, TrustMapConfig
from ..common.schemas import (
    CategoryType,
    GlobalTrust,
    SessionTrustAnalysis,
    TrustAggregate,
    TrustMap,
    utc_now_iso,
)

logger = logging.getLogger("trustmap.analysis.trust_aggregator")

# Returns one category key, several, or None to skip the session
KeyExtractor = Callable[[SessionTrustAnalysis], Union[Optional[str], List[str]]]


def compute_confidence(
    sample_size: int,
    k: float = 0.2,
    midpoint: float = 5.0,
) -> float:
    """
    Confidence from sample size, a sigmoid centered on ``midpoint``.

    Roughly 0.27 at 0 sessions, 0.5 at 5, 0.73 at 10 and 0.95 at 20.
    """
    return 1 / (1 + math.exp(-k * (sample_size - midpoint)))


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _rate(analyses: List[SessionTrustAnalysis], predicate) -> float:
    if not analyses:
        return 0.0
    return sum(1 for a in analyses if predicate(a)) / len(analyses)


def _group_by(
    analyses: Iterable[SessionTrustAnalysis],
    key_extractor: KeyExtractor,
) -> Dict[str, List[SessionTrustAnalysis]]:
    """Group analyses by key, skipping empty keys; first-seen order is kept"""
    groups: Dict[str, List[SessionTrustAnalysis]] = {}

    for analysis in analyses:
        keys = key_extractor(analysis)
        if keys is None:
            continue
        if isinstance(keys, str):
            keys = [keys]

        for key in keys:
            if not key:
                continue
            groups.setdefault(key, []).append(analysis)

    return groups


def compute_aggregate(
    category: str,
    category_type: CategoryType,
    analyses: List[SessionTrustAnalysis],
    config: Optional[TrustMapConfig] = None,
    updated_at: Optional[str] = None,
) -> TrustAggregate:
    """Compute the aggregate statistics of one category group"""
    config = config or DEFAULT_CONFIG
    aggregation = config.aggregation
    total = len(analyses)
    autonomous = sum(1 for a in analyses if a.autonomous)

    progress_samples = [
        a.steering.first_intervention_progress
        for a in analyses
        if a.steering.intervention_count > 0 and a.steering.first_intervention_progress is not None
    ]
    avg_progress = (
        _mean(progress_samples) if progress_samples else aggregation.default_intervention_progress
    )

    return TrustAggregate(
        category=category,
        category_type=category_type,
        total_sessions=total,
        autonomous_sessions=autonomous,
        autonomous_rate=autonomous / total if total else 0.0,
        avg_trust_score=_mean([a.trust_score for a in analyses]),
        avg_intervention_count=_mean([a.steering.intervention_count for a in analyses]),
        avg_intervention_density=_mean([a.steering.intervention_density for a in analyses]),
        commit_rate=_rate(analyses, lambda a: a.outcome.has_commit),
        rework_rate=_rate(analyses, lambda a: a.outcome.rework_count > 0),
        error_rate=_rate(analyses, lambda a: a.outcome.ended_with_error),
        avg_first_intervention_progress=avg_progress,
        confidence=compute_confidence(total, aggregation.confidence_k, aggregation.confidence_midpoint),
        updated_at=updated_at or utc_now_iso(),
    )


def aggregate_by(
    analyses: List[SessionTrustAnalysis],
    category_type: CategoryType,
    key_extractor: KeyExtractor,
    config: Optional[TrustMapConfig] = None,
    updated_at: Optional[str] = None,
) -> List[TrustAggregate]:
    """
    Aggregate analyses by the key(s) each one yields.

    Args:
        analyses: Per-session trust analyses
        category_type: Dimension the aggregates belong to
        key_extractor: Returns a key, a list of keys (fan-out), or None
        config: Tunable constants
        updated_at: Timestamp stamped on every aggregate

    Returns:
        Aggregates sorted by descending session count
    """
    groups = _group_by(analyses, key_extractor)

    aggregates = [
        compute_aggregate(category, category_type, group, config, updated_at)
        for category, group in groups.items()
    ]
    aggregates.sort(key=lambda agg: agg.total_sessions, reverse=True)
    return aggregates


def compute_global_trust(analyses: List[SessionTrustAnalysis]) -> GlobalTrust:
    """Baseline statistics over all analyses, unfiltered"""
    if not analyses:
        return GlobalTrust()

    return GlobalTrust(
        total_sessions=len(analyses),
        autonomous_rate=_rate(analyses, lambda a: a.autonomous),
        avg_trust_score=_mean([a.trust_score for a in analyses]),
        avg_intervention_count=_mean([a.steering.intervention_count for a in analyses]),
    )


def build_trust_map(
    analyses: Iterable[SessionTrustAnalysis],
    config: Optional[TrustMapConfig] = None,
    computed_at: Optional[str] = None,
) -> TrustMap:
    """
    Build the complete trust map from session analyses.

    ``computed_at`` defaults to now; pass it explicitly for reproducible output.
    """
    analyses = list(analyses)
    computed_at = computed_at or utc_now_iso()

    if not analyses:
        return TrustMap(computed_at=computed_at)

    def by(category_type: CategoryType, key_extractor: KeyExtractor) -> List[TrustAggregate]:
        return aggregate_by(analyses, category_type, key_extractor, config, computed_at)

    trust_map = TrustMap(
        by_area=by(CategoryType.AREA, lambda a: a.characteristics.codebase_area),
        by_ticket_type=by(CategoryType.TICKET_TYPE, lambda a: a.characteristics.ticket_type),
        by_branch_type=by(CategoryType.BRANCH_TYPE, lambda a: a.characteristics.branch_type),
        by_label=by(CategoryType.LABEL, lambda a: a.characteristics.ticket_labels),
        by_project=by(CategoryType.PROJECT, lambda a: a.characteristics.project_path),
        global_stats=compute_global_trust(analyses),
        computed_at=computed_at,
    )

    logger.info(
        "Built trust map from %d sessions: %d areas, %d ticket types, %d branch types, %d labels",
        len(analyses),
        len(trust_map.by_area),
        len(trust_map.by_ticket_type),
        len(trust_map.by_branch_type),
        len(trust_map.by_label),
    )
    return trust_map
