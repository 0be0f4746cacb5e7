"""
Report Templates

Renders a TrustMap or TrustPrediction to Markdown for reporting consumers.
"""

import math
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .trust import TrustAggregate, TrustMap, TrustPrediction


REPORT_TEMPLATE = """# Trust Map
Computed: {computed_at}
Sessions: {total_sessions} | Autonomous: {autonomous_rate} | Avg trust: {avg_trust_score}
Avg interventions per session: {avg_intervention_count}

## By Area
{by_area}

## By Ticket Type
{by_ticket_type}

## By Branch Type
{by_branch_type}

## By Label
{by_label}

## By Project
{by_project}

## Insights
{insights}
"""

PREDICTION_TEMPLATE = """Predicted trust: {level} (confidence {confidence})
Approach: {approach}

{recommendation}

Factors:
{factors}
"""


def format_percent(value: float) -> str:
    """Rate as a whole percentage, rounding halves up (0.125 -> "13%")"""
    return f"{math.floor(value * 100 + 0.5)}%"


def format_decimal(value: float, places: int = 1) -> str:
    """Fixed decimal places, rounding halves up (1.25 -> "1.3")"""
    scale = 10 ** places
    return f"{math.floor(value * scale + 0.5) / scale:.{places}f}"


def _format_aggregates(aggregates: List["TrustAggregate"], limit: int) -> str:
    """Format aggregate rows as a bullet list"""
    if not aggregates:
        return "- (no data)"

    lines = []
    for agg in aggregates[:limit]:
        lines.append(
            f"- {agg.category}: {agg.total_sessions} sessions, "
            f"{format_percent(agg.autonomous_rate)} autonomous, "
            f"trust {format_decimal(agg.avg_trust_score, 2)}, "
            f"rework {format_percent(agg.rework_rate)} "
            f"(confidence {format_decimal(agg.confidence, 2)})"
        )
    if len(aggregates) > limit:
        lines.append(f"- ... +{len(aggregates) - limit} more")
    return "\n".join(lines)


def render_trust_report(trust_map: "TrustMap", insights: Optional[List[str]] = None, limit: int = 10) -> str:
    """
    Render a TrustMap to a Markdown report.

    Each dimension lists at most ``limit`` categories, most data first.
    """
    stats = trust_map.global_stats
    text = REPORT_TEMPLATE.format(
        computed_at=trust_map.computed_at,
        total_sessions=stats.total_sessions,
        autonomous_rate=format_percent(stats.autonomous_rate),
        avg_trust_score=format_decimal(stats.avg_trust_score, 2),
        avg_intervention_count=format_decimal(stats.avg_intervention_count),
        by_area=_format_aggregates(trust_map.by_area, limit),
        by_ticket_type=_format_aggregates(trust_map.by_ticket_type, limit),
        by_branch_type=_format_aggregates(trust_map.by_branch_type, limit),
        by_label=_format_aggregates(trust_map.by_label, limit),
        by_project=_format_aggregates(trust_map.by_project, limit),
        insights="\n".join(f"- {i}" for i in insights) if insights else "- (none)",
    )
    return text.strip()


def render_prediction_text(prediction: "TrustPrediction") -> str:
    """Render a TrustPrediction as plain text"""
    if prediction.factors:
        factors = "\n".join(
            f"- {f.source}: trust {format_decimal(f.trust_level, 2)}, "
            f"weight {format_decimal(f.weight, 2)}, "
            f"{f.sample_size} sessions. {f.insight}"
            for f in prediction.factors
        )
    else:
        factors = "- (no matching history, using global baseline)"

    text = PREDICTION_TEMPLATE.format(
        level=prediction.predicted_trust.value,
        confidence=format_decimal(prediction.confidence_score, 2),
        approach=prediction.suggested_approach.value,
        recommendation=prediction.recommendation,
        factors=factors,
    )
    return text.strip()
