"""
Tests for Trust Predictor

Tests weighted factor prediction, global fallback, recommendations,
per-aggregate insights and comparative insights.
"""

import pytest


def make_aggregate(category, category_type="area", total=10, autonomous_rate=0.5,
                   avg_trust_score=0.5, avg_interventions=1.0, commit_rate=0.5,
                   rework_rate=0.0, confidence=None):
    from trustmap.analysis.trust_aggregator import compute_confidence
    from trustmap.common.schemas import CategoryType, TrustAggregate

    return TrustAggregate(
        category=category,
        category_type=CategoryType(category_type),
        total_sessions=total,
        autonomous_sessions=round(total * autonomous_rate),
        autonomous_rate=autonomous_rate,
        avg_trust_score=avg_trust_score,
        avg_intervention_count=avg_interventions,
        avg_intervention_density=0.0,
        commit_rate=commit_rate,
        rework_rate=rework_rate,
        error_rate=0.0,
        avg_first_intervention_progress=0.5,
        confidence=compute_confidence(total) if confidence is None else confidence,
        updated_at="now",
    )


def make_trust_map(by_area=(), by_ticket_type=(), by_branch_type=(), by_label=(),
                   autonomous_rate=0.5, avg_trust_score=0.5, avg_interventions=2.0, total=40):
    from trustmap.common.schemas import GlobalTrust, TrustMap

    return TrustMap(
        by_area=list(by_area),
        by_ticket_type=list(by_ticket_type),
        by_branch_type=list(by_branch_type),
        by_label=list(by_label),
        global_stats=GlobalTrust(
            total_sessions=total,
            autonomous_rate=autonomous_rate,
            avg_trust_score=avg_trust_score,
            avg_intervention_count=avg_interventions,
        ),
        computed_at="now",
    )


class TestFindAggregate:
    def test_exact_match(self):
        from trustmap.analysis.trust_predictor import find_aggregate

        aggregates = [make_aggregate("src/auth"), make_aggregate("src/api")]

        assert find_aggregate(aggregates, "src/api").category == "src/api"
        assert find_aggregate(aggregates, "src") is None
        assert find_aggregate(aggregates, None) is None


class TestPredictTrust:
    """Tests for predict_trust"""

    def test_low_sample_area_falls_back(self):
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.schemas import TaskQuery, TrustLevel

        trust_map = make_trust_map(
            by_area=[make_aggregate("src/auth", total=2, avg_trust_score=0.95)],
            avg_trust_score=0.5,
        )
        prediction = predict_trust(trust_map, TaskQuery(codebase_area="src/auth"))

        assert prediction.factors == []
        assert prediction.confidence_score == pytest.approx(0.3)
        assert prediction.predicted_trust == TrustLevel.MEDIUM

    def test_no_characteristics_uses_global_baseline(self):
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.schemas import SuggestedApproach, TrustLevel

        prediction = predict_trust(make_trust_map(avg_trust_score=0.2, avg_interventions=3.0))

        assert prediction.predicted_trust == TrustLevel.LOW
        assert prediction.suggested_approach == SuggestedApproach.DETAILED_BREAKDOWN
        assert prediction.recommendation == (
            "Proceed with caution. Historical average: 3.0 interventions per session. "
            "Consider breaking into smaller subtasks."
        )

    def test_baseline_interventions_round_half_up(self):
        from trustmap.analysis.trust_predictor import predict_trust

        prediction = predict_trust(make_trust_map(avg_trust_score=0.2, avg_interventions=1.25))

        assert "Historical average: 1.3 interventions per session" in prediction.recommendation

    def test_weighted_fusion(self):
        from trustmap.analysis.trust_predictor import predict_trust

        trust_map = make_trust_map(
            by_area=[make_aggregate("src/auth", avg_trust_score=0.9, confidence=0.8)],
            by_ticket_type=[make_aggregate("bug", "ticketType", avg_trust_score=0.1, confidence=0.5)],
        )
        prediction = predict_trust(trust_map, codebase_area="src/auth", ticket_type="bug")

        # weights 0.8 * 1.0 and 0.5 * 0.8, score (0.72 + 0.04) / 1.2
        assert [f.source for f in prediction.factors] == ["area:src/auth", "type:bug"]
        assert prediction.factors[0].weight == pytest.approx(0.8)
        assert prediction.factors[1].weight == pytest.approx(0.4)
        assert prediction.confidence_score == pytest.approx(0.6)
        assert prediction.predicted_trust.value == "medium"

    def test_factor_sources_and_order(self):
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.schemas import TaskQuery

        trust_map = make_trust_map(
            by_area=[make_aggregate("src/ui", confidence=0.2)],
            by_branch_type=[make_aggregate("feature", "branchType", confidence=0.9)],
            by_label=[
                make_aggregate("frontend", "label", confidence=0.9),
                make_aggregate("rare", "label", total=1),
            ],
        )
        query = TaskQuery(codebase_area="src/ui", branch_type="feature", labels=["frontend", "rare", "missing"])
        prediction = predict_trust(trust_map, query)

        assert [f.source for f in prediction.factors] == ["branch:feature", "label:frontend", "area:src/ui"]
        weights = [f.weight for f in prediction.factors]
        assert weights == sorted(weights, reverse=True)

    def test_confidence_capped_at_one(self):
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.schemas import TaskQuery

        trust_map = make_trust_map(
            by_area=[make_aggregate("a", confidence=1.0)],
            by_ticket_type=[make_aggregate("t", "ticketType", confidence=1.0)],
            by_branch_type=[make_aggregate("b", "branchType", confidence=1.0)],
            by_label=[make_aggregate("l", "label", confidence=1.0)],
        )
        query = TaskQuery(codebase_area="a", ticket_type="t", branch_type="b", labels=["l"])

        assert predict_trust(trust_map, query).confidence_score == 1.0

    def test_high_trust_recommendation(self):
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.schemas import SuggestedApproach, TrustLevel

        trust_map = make_trust_map(by_area=[
            make_aggregate("src/auth", total=12, autonomous_rate=0.9, avg_trust_score=0.85),
        ])
        prediction = predict_trust(trust_map, codebase_area="src/auth")

        assert prediction.predicted_trust == TrustLevel.HIGH
        assert prediction.suggested_approach == SuggestedApproach.AUTONOMOUS
        assert prediction.recommendation == (
            "High confidence. This area: 90% unsteered completion rate across 12 sessions"
        )

    def test_medium_trust_recommendation(self):
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.schemas import SuggestedApproach

        trust_map = make_trust_map(by_area=[make_aggregate("src/auth", avg_trust_score=0.55)])
        prediction = predict_trust(trust_map, codebase_area="src/auth")

        assert prediction.suggested_approach == SuggestedApproach.LIGHT_MONITORING
        assert prediction.recommendation == "Moderate confidence. Light monitoring recommended."

    def test_low_trust_cites_factor(self):
        from trustmap.analysis.trust_predictor import predict_trust

        trust_map = make_trust_map(by_ticket_type=[
            make_aggregate("migration", "ticketType", autonomous_rate=0.2,
                           avg_trust_score=0.25, avg_interventions=4.0),
        ])
        prediction = predict_trust(trust_map, ticket_type="migration")

        assert prediction.recommendation == (
            "Proceed with caution. This ticket type: needs attention. Only 20% autonomous, "
            "avg 4.0 interventions. Consider breaking into smaller subtasks."
        )

    def test_min_samples_configurable(self):
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.config import TrustMapConfig

        config = TrustMapConfig()
        config.prediction.min_samples = 1
        trust_map = make_trust_map(by_area=[make_aggregate("src/auth", total=2)])

        prediction = predict_trust(trust_map, codebase_area="src/auth", config=config)
        assert len(prediction.factors) == 1


class TestGenerateInsight:
    """Tests for generate_insight"""

    def test_high_autonomy(self):
        from trustmap.analysis.trust_predictor import generate_insight

        agg = make_aggregate("src/auth", total=8, autonomous_rate=0.875)
        assert generate_insight(agg) == "This area: 88% unsteered completion rate across 8 sessions"

    def test_low_autonomy(self):
        from trustmap.analysis.trust_predictor import generate_insight

        agg = make_aggregate("bug", "ticketType", autonomous_rate=0.3, avg_interventions=3.0)
        assert generate_insight(agg) == "This ticket type: needs attention. Only 30% autonomous, avg 3.0 interventions"

    def test_interventions_round_half_up(self):
        from trustmap.analysis.trust_predictor import generate_insight

        agg = make_aggregate("src/auth", autonomous_rate=0.25, avg_interventions=1.25)
        assert generate_insight(agg) == "This area: needs attention. Only 25% autonomous, avg 1.3 interventions"

    def test_percent_rounds_half_up(self):
        from trustmap.analysis.trust_predictor import generate_insight

        agg = make_aggregate("fix", "branchType", autonomous_rate=0.5, rework_rate=0.125 * 3)
        assert generate_insight(agg) == "This branch type: 38% rework rate. Extra review recommended"

    def test_high_rework(self):
        from trustmap.analysis.trust_predictor import generate_insight

        agg = make_aggregate("fix", "branchType", autonomous_rate=0.5, rework_rate=0.4)
        assert generate_insight(agg) == "This branch type: 40% rework rate. Extra review recommended"

    def test_neutral(self):
        from trustmap.analysis.trust_predictor import generate_insight

        agg = make_aggregate("/p", "project", autonomous_rate=0.6, commit_rate=0.75)
        assert generate_insight(agg) == "This project: 60% autonomous, 75% commit rate"


class TestComparativeInsights:
    """Tests for generate_comparative_insights"""

    def test_outliers(self):
        from trustmap.analysis.trust_predictor import generate_comparative_insights

        trust_map = make_trust_map(
            by_area=[
                make_aggregate("src/auth", autonomous_rate=0.2, avg_interventions=6.0),
                make_aggregate("src/ui", autonomous_rate=0.9),
                make_aggregate("src/api", autonomous_rate=0.5),
                make_aggregate("src/tiny", total=4, autonomous_rate=0.0),
            ],
            by_label=[make_aggregate("legacy", "label", autonomous_rate=0.5, rework_rate=0.4)],
            autonomous_rate=0.5,
            avg_interventions=2.0,
        )
        insights = generate_comparative_insights(trust_map)

        assert insights == [
            'Area "src/auth" needs 3.0x more steering than average',
            'Area "src/ui": 90% autonomous completion',
            'Label "legacy" has 40% rework rate',
        ]

    def test_multiplier_rounds_half_up(self):
        from trustmap.analysis.trust_predictor import generate_comparative_insights

        trust_map = make_trust_map(
            by_area=[make_aggregate("src/auth", autonomous_rate=0.2, avg_interventions=2.5)],
            autonomous_rate=0.5,
            avg_interventions=2.0,
        )

        assert generate_comparative_insights(trust_map) == [
            'Area "src/auth" needs 1.3x more steering than average',
        ]

    def test_unknown_multiplier_without_global_interventions(self):
        from trustmap.analysis.trust_predictor import generate_comparative_insights

        trust_map = make_trust_map(
            by_ticket_type=[make_aggregate("epic", "ticketType", autonomous_rate=0.1)],
            autonomous_rate=0.9,
            avg_interventions=0.0,
        )

        assert generate_comparative_insights(trust_map) == [
            'Ticket type "epic" needs ?x more steering than average',
        ]

    def test_low_autonomy_and_rework_both_reported(self):
        from trustmap.analysis.trust_predictor import generate_comparative_insights

        trust_map = make_trust_map(
            by_branch_type=[make_aggregate("hotfix", "branchType", autonomous_rate=0.1,
                                           avg_interventions=4.0, rework_rate=0.6)],
            autonomous_rate=0.8,
            avg_interventions=1.0,
        )

        assert generate_comparative_insights(trust_map) == [
            'Branch type "hotfix" needs 4.0x more steering than average',
            'Branch type "hotfix" has 60% rework rate',
        ]

    def test_empty_map(self):
        from trustmap.analysis.trust_aggregator import build_trust_map
        from trustmap.analysis.trust_predictor import generate_comparative_insights

        assert generate_comparative_insights(build_trust_map([])) == []
