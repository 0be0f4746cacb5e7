"""
TrustMap Analysis - Trust Scoring, Aggregation and Prediction

Key Components:
- analyze_session_trust: steering, characteristics and outcomes of one session, plus its trust score
- build_trust_map: category aggregates with sample-size confidence and a global baseline
- predict_trust: weighted factor fusion over the trust map for a new task
- generate_comparative_insights: categories that stand out from the baseline

Rules:
1. A session is autonomous with at most one intervention
2. Trust scores are always within [0, 1]
3. Categories with fewer than 3 sessions never drive a prediction
4. No match means the global baseline at low confidence, not an error
"""

from .trust_analyzer import (
    analyze_session_trust,
    analyze_sessions_trust,
    classify_branch_type,
    compute_trust_score,
    count_subtasks,
    extract_file_paths,
    extract_outcome_metrics,
    extract_steering_metrics,
    extract_task_characteristics,
    extract_unique_tools,
    normalize_to_area,
)
from .trust_aggregator import (
    aggregate_by,
    build_trust_map,
    compute_aggregate,
    compute_confidence,
    compute_global_trust,
)
from .trust_predictor import (
    find_aggregate,
    generate_comparative_insights,
    generate_insight,
    generate_recommendation,
    predict_trust,
)

__all__ = [
    "analyze_session_trust",
    "analyze_sessions_trust",
    "classify_branch_type",
    "compute_trust_score",
    "count_subtasks",
    "extract_file_paths",
    "extract_outcome_metrics",
    "extract_steering_metrics",
    "extract_task_characteristics",
    "extract_unique_tools",
    "normalize_to_area",
    "aggregate_by",
    "build_trust_map",
    "compute_aggregate",
    "compute_confidence",
    "compute_global_trust",
    "find_aggregate",
    "generate_comparative_insights",
    "generate_insight",
    "generate_recommendation",
    "predict_trust",
]
