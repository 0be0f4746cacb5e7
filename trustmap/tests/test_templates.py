"""
Tests for report rendering

Tests half-up number formatting and Markdown rendering of trust maps
and predictions.
"""

import pytest


def build_map():
    from trustmap.common.schemas import (
        CategoryType,
        GlobalTrust,
        TrustAggregate,
        TrustMap,
    )

    aggregates = [
        TrustAggregate(
            category=f"src/mod{i}",
            category_type=CategoryType.AREA,
            total_sessions=10 - i,
            autonomous_sessions=5,
            autonomous_rate=0.5,
            avg_trust_score=0.625,
            avg_intervention_count=1.0,
            avg_intervention_density=0.1,
            commit_rate=0.5,
            rework_rate=0.25,
            error_rate=0.0,
            avg_first_intervention_progress=0.5,
            confidence=0.5,
            updated_at="now",
        )
        for i in range(3)
    ]
    return TrustMap(
        by_area=aggregates,
        global_stats=GlobalTrust(
            total_sessions=27, autonomous_rate=0.5, avg_trust_score=0.6, avg_intervention_count=1.25,
        ),
        computed_at="2025-01-01T00:00:00+00:00",
    )


class TestNumberFormatting:
    @pytest.mark.parametrize("value,expected", [
        (0.125, "13%"),
        (0.875, "88%"),
        (0.5, "50%"),
        (0.0, "0%"),
        (1.0, "100%"),
    ])
    def test_percent_rounds_half_up(self, value, expected):
        from trustmap.common.schemas import format_percent

        assert format_percent(value) == expected

    @pytest.mark.parametrize("value,places,expected", [
        (1.25, 1, "1.3"),
        (3.0, 1, "3.0"),
        (0.625, 2, "0.63"),
        (0.3, 2, "0.30"),
    ])
    def test_decimal_rounds_half_up(self, value, places, expected):
        from trustmap.common.schemas import format_decimal

        assert format_decimal(value, places) == expected


class TestTrustReport:
    def test_rates_match_insight_rounding(self):
        from trustmap.analysis.trust_predictor import generate_insight
        from trustmap.common.schemas import render_trust_report

        trust_map = build_map()
        area = trust_map.by_area[0].model_copy(update={"autonomous_rate": 0.125})
        trust_map = trust_map.model_copy(update={"by_area": [area]})

        text = render_trust_report(trust_map)

        assert "- src/mod0: 10 sessions, 13% autonomous, trust 0.63" in text
        assert "Avg interventions per session: 1.3" in text
        assert generate_insight(area) == "This area: needs attention. Only 13% autonomous, avg 1.0 interventions"

    def test_render_sections(self):
        from trustmap.common.schemas import render_trust_report

        text = render_trust_report(build_map(), insights=['Area "src/mod0": 90% autonomous completion'])

        assert text.startswith("# Trust Map")
        assert "Computed: 2025-01-01T00:00:00+00:00" in text
        assert "Sessions: 27 | Autonomous: 50% | Avg trust: 0.60" in text
        assert "- src/mod0: 10 sessions, 50% autonomous, trust 0.63, rework 25% (confidence 0.50)" in text
        assert "## By Ticket Type\n- (no data)" in text
        assert '- Area "src/mod0": 90% autonomous completion' in text

    def test_limit(self):
        from trustmap.common.schemas import render_trust_report

        text = render_trust_report(build_map(), limit=2)

        assert "src/mod1" in text
        assert "src/mod2" not in text
        assert "- ... +1 more" in text
        assert "## Insights\n- (none)" in text


class TestPredictionText:
    def test_with_factors(self):
        from trustmap.common.schemas import (
            SuggestedApproach,
            TrustFactor,
            TrustLevel,
            TrustPrediction,
            render_prediction_text,
        )

        prediction = TrustPrediction(
            predicted_trust=TrustLevel.HIGH,
            confidence_score=0.75,
            factors=[TrustFactor(
                source="area:src/auth", trust_level=0.8, weight=0.73, sample_size=10,
                insight="This area: 90% unsteered completion rate across 10 sessions",
            )],
            recommendation="High confidence.",
            suggested_approach=SuggestedApproach.AUTONOMOUS,
        )
        text = render_prediction_text(prediction)

        assert text.startswith("Predicted trust: high (confidence 0.75)")
        assert "Approach: autonomous" in text
        assert "- area:src/auth: trust 0.80, weight 0.73, 10 sessions." in text

    def test_fallback_prediction(self):
        from trustmap.analysis.trust_aggregator import build_trust_map
        from trustmap.analysis.trust_predictor import predict_trust
        from trustmap.common.schemas import render_prediction_text

        text = render_prediction_text(predict_trust(build_trust_map([])))

        assert "Predicted trust: low (confidence 0.30)" in text
        assert "- (no matching history, using global baseline)" in text
