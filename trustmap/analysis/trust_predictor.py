"""
Trust Predictor

Predicts how much supervision a new task will need by matching its
characteristics against a trust map.

Pipeline:
1. Look up the aggregate for each characteristic (area, ticket type, branch type, labels)
2. Skip aggregates with too few sessions to be meaningful
3. Fuse the matches into a weighted score (weight = confidence x dimension multiplier)
4. Fall back to the global baseline, at low confidence, when nothing matches
"""

import logging
from typing import List, Optional, Tuple

from ..common.config import DEFAULT_CONFIG, TrustMapConfig
from ..common.schemas import (
    CategoryType,
    GlobalTrust,
    SuggestedApproach,
    TaskQuery,
    TrustAggregate,
    TrustFactor,
    TrustLevel,
    TrustMap,
    TrustPrediction,
    format_decimal,
    format_percent,
)

logger = logging.getLogger("trustmap.analysis.trust_predictor")


INSIGHT_PREFIXES = {
    CategoryType.AREA: "This area",
    CategoryType.TICKET_TYPE: "This ticket type",
    CategoryType.BRANCH_TYPE: "This branch type",
    CategoryType.LABEL: "This label",
    CategoryType.PROJECT: "This project",
}

FACTOR_SOURCE_PREFIXES = {
    CategoryType.AREA: "area",
    CategoryType.TICKET_TYPE: "type",
    CategoryType.BRANCH_TYPE: "branch",
    CategoryType.LABEL: "label",
}

# Dimension names used in comparative insights, in report order
COMPARATIVE_DIMENSIONS = [
    ("by_area", "Area"),
    ("by_ticket_type", "Ticket type"),
    ("by_branch_type", "Branch type"),
    ("by_label", "Label"),
]


def find_aggregate(aggregates: List[TrustAggregate], value: Optional[str]) -> Optional[TrustAggregate]:
    """Find the aggregate whose category equals value exactly"""
    if not value:
        return None
    return next((agg for agg in aggregates if agg.category == value), None)


def generate_insight(agg: TrustAggregate, category_type: Optional[CategoryType] = None) -> str:
    """
    One-line human-readable summary of an aggregate.

    Autonomous rate decides first (>= 0.8 good, <= 0.3 needs attention), then a
    high rework rate, else a neutral autonomy/commit summary.
    """
    prefix = INSIGHT_PREFIXES.get(category_type or agg.category_type, "This category")

    if agg.autonomous_rate >= 0.8:
        return (
            f"{prefix}: {format_percent(agg.autonomous_rate)} unsteered completion rate "
            f"across {agg.total_sessions} sessions"
        )
    if agg.autonomous_rate <= 0.3:
        return (
            f"{prefix}: needs attention. Only {format_percent(agg.autonomous_rate)} autonomous, "
            f"avg {format_decimal(agg.avg_intervention_count)} interventions"
        )
    if agg.rework_rate > 0.3:
        return f"{prefix}: {format_percent(agg.rework_rate)} rework rate. Extra review recommended"
    return f"{prefix}: {format_percent(agg.autonomous_rate)} autonomous, {format_percent(agg.commit_rate)} commit rate"


def classify_trust_level(score: float, config: Optional[TrustMapConfig] = None) -> TrustLevel:
    prediction = (config or DEFAULT_CONFIG).prediction
    if score >= prediction.high_threshold:
        return TrustLevel.HIGH
    if score >= prediction.medium_threshold:
        return TrustLevel.MEDIUM
    return TrustLevel.LOW


def generate_recommendation(
    trust_level: TrustLevel,
    factors: List[TrustFactor],
    global_stats: GlobalTrust,
    config: Optional[TrustMapConfig] = None,
) -> Tuple[str, SuggestedApproach]:
    """
    Recommendation text and approach for a trust level.

    ``factors`` are expected strongest first; the first high-trust (or low-trust)
    factor is the one cited.
    """
    prediction = (config or DEFAULT_CONFIG).prediction

    if trust_level == TrustLevel.HIGH:
        high_factors = [f for f in factors if f.trust_level >= prediction.high_threshold]
        if high_factors:
            recommendation = f"High confidence. {high_factors[0].insight}"
        else:
            recommendation = "Based on similar tasks, this should run smoothly with minimal oversight."
        return recommendation, SuggestedApproach.AUTONOMOUS

    if trust_level == TrustLevel.LOW:
        low_factors = [f for f in factors if f.trust_level < prediction.medium_threshold]
        if low_factors:
            warning = low_factors[0].insight
        else:
            warning = (
                f"Historical average: {format_decimal(global_stats.avg_intervention_count)} "
                f"interventions per session"
            )
        return (
            f"Proceed with caution. {warning}. Consider breaking into smaller subtasks.",
            SuggestedApproach.DETAILED_BREAKDOWN,
        )

    return "Moderate confidence. Light monitoring recommended.", SuggestedApproach.LIGHT_MONITORING


def _match_factor(
    aggregates: List[TrustAggregate],
    value: Optional[str],
    category_type: CategoryType,
    multiplier: float,
    min_samples: int,
) -> Optional[TrustFactor]:
    agg = find_aggregate(aggregates, value)
    if agg is None:
        return None

    if agg.total_sessions < min_samples:
        logger.debug(
            "Skipping %s %r: %d sessions < %d",
            category_type.value, value, agg.total_sessions, min_samples,
        )
        return None

    return TrustFactor(
        source=f"{FACTOR_SOURCE_PREFIXES[category_type]}:{agg.category}",
        trust_level=agg.avg_trust_score,
        weight=agg.confidence * multiplier,
        sample_size=agg.total_sessions,
        insight=generate_insight(agg, category_type),
    )


def predict_trust(
    trust_map: TrustMap,
    query: Optional[TaskQuery] = None,
    config: Optional[TrustMapConfig] = None,
    **characteristics,
) -> TrustPrediction:
    """
    Predict the trust level of a new task.

    Args:
        trust_map: Aggregates built from past sessions
        query: Task characteristics; keyword arguments with the same field
            names (codebase_area, ticket_type, branch_type, labels) work too
        config: Tunable constants

    Returns:
        TrustPrediction with factors sorted by descending weight
    """
    config = config or DEFAULT_CONFIG
    settings = config.prediction
    if query is None:
        query = TaskQuery(**characteristics)

    candidates = [
        _match_factor(trust_map.by_area, query.codebase_area, CategoryType.AREA,
                      settings.area_weight, settings.min_samples),
        _match_factor(trust_map.by_ticket_type, query.ticket_type, CategoryType.TICKET_TYPE,
                      settings.ticket_type_weight, settings.min_samples),
        _match_factor(trust_map.by_branch_type, query.branch_type, CategoryType.BRANCH_TYPE,
                      settings.branch_type_weight, settings.min_samples),
    ]
    for label in query.labels:
        candidates.append(_match_factor(
            trust_map.by_label, label, CategoryType.LABEL, settings.label_weight, settings.min_samples,
        ))

    factors = [f for f in candidates if f is not None]
    total_weight = sum(f.weight for f in factors)

    if total_weight > 0:
        weighted_sum = sum(f.trust_level * f.weight for f in factors)
        predicted_score = weighted_sum / total_weight
        confidence_score = min(total_weight / settings.confidence_weight_divisor, 1.0)
    else:
        predicted_score = trust_map.global_stats.avg_trust_score
        confidence_score = settings.fallback_confidence
        logger.debug("No matching aggregates, using global baseline %.2f", predicted_score)

    # Stable sort keeps match order among equal weights
    factors.sort(key=lambda f: f.weight, reverse=True)

    trust_level = classify_trust_level(predicted_score, config)
    recommendation, approach = generate_recommendation(
        trust_level, factors, trust_map.global_stats, config
    )

    return TrustPrediction(
        predicted_trust=trust_level,
        confidence_score=confidence_score,
        factors=factors,
        recommendation=recommendation,
        suggested_approach=approach,
    )


def generate_comparative_insights(
    trust_map: TrustMap,
    config: Optional[TrustMapConfig] = None,
) -> List[str]:
    """
    Insights comparing categories against the global baseline.

    Only aggregates with enough sessions are considered. One aggregate can yield
    several insights (low autonomy and high rework, for instance).
    """
    settings = (config or DEFAULT_CONFIG).prediction
    global_stats = trust_map.global_stats
    insights = []

    for attribute, dimension in COMPARATIVE_DIMENSIONS:
        for agg in getattr(trust_map, attribute):
            if agg.total_sessions < settings.insight_min_samples:
                continue

            if agg.autonomous_rate < global_stats.autonomous_rate - settings.insight_deviation:
                if global_stats.avg_intervention_count > 0:
                    multiplier = format_decimal(
                        agg.avg_intervention_count / global_stats.avg_intervention_count
                    )
                else:
                    multiplier = "?"
                insights.append(
                    f'{dimension} "{agg.category}" needs {multiplier}x more steering than average'
                )

            if agg.autonomous_rate > global_stats.autonomous_rate + settings.insight_deviation:
                insights.append(
                    f'{dimension} "{agg.category}": {format_percent(agg.autonomous_rate)} autonomous completion'
                )

            if (
                agg.rework_rate > settings.insight_rework_threshold
                and agg.rework_rate > global_stats.autonomous_rate * 0.5
            ):
                insights.append(
                    f'{dimension} "{agg.category}" has {format_percent(agg.rework_rate)} rework rate'
                )

    return insights
