"""
Tests for intervention recommendations and outcome tracking.
"""

import pytest

from churnguard import InterventionRecommender, RecommenderConfig


@pytest.fixture
def recommender(scorer):
    recommender = InterventionRecommender()
    recommender.register_labels(scorer.labels)
    return recommender


class TestRecommendation:
    """Dominant factor -> intervention type, success and revenue."""

    @pytest.mark.parametrize("overrides,expected_type,component", [
        (dict(health_score=10, nps_score=9, support_tickets=0, login_days_ago=0, usage=(30, 0, 0)),
         "Executive Check-in", "health"),
        (dict(health_score=95, nps_score=0, support_tickets=0, login_days_ago=0, usage=(30, 0, 0)),
         "Account Review", "nps"),
        (dict(health_score=95, nps_score=10, support_tickets=9, login_days_ago=0, usage=(30, 0, 0)),
         "Support Training", "support"),
        (dict(health_score=95, nps_score=10, support_tickets=0, login_days_ago=40, usage=(30, 0, 0)),
         "Engagement Boost", "login"),
        (dict(health_score=95, nps_score=10, support_tickets=0, login_days_ago=0, usage=(2, 0, 0)),
         "Feature Adoption", "usage"),
    ])
    def test_dominant_factor_selects_type(
        self, scorer, recommender, customer_factory, as_of, overrides, expected_type, component
    ):
        customer = customer_factory(**overrides)
        prediction = scorer.score_customer(customer, as_of)
        recommendation = recommender.recommend(customer, prediction)

        assert recommendation.type == expected_type
        assert recommendation.dominant_factor == component

    def test_success_scaled_by_mrr_band(self, recommender):
        assert recommender.estimate_success("health", 500) == pytest.approx(0.558)
        assert recommender.estimate_success("health", 2500) == pytest.approx(0.62)
        assert recommender.estimate_success("health", 9000) == pytest.approx(0.682)

    def test_mrr_band_boundaries(self):
        config = RecommenderConfig()

        assert config.get_mrr_band(999.99) == "small"
        assert config.get_mrr_band(1000) == "mid"
        assert config.get_mrr_band(4999) == "mid"
        assert config.get_mrr_band(5000) == "large"

    def test_success_capped(self):
        config = RecommenderConfig(base_success_rates={"support": 0.9})
        recommender = InterventionRecommender(config)

        assert recommender.estimate_success("support", 20000) == config.max_success_rate

    def test_unknown_factor_uses_default_rate(self, recommender):
        assert recommender.estimate_success(None, 2500) == 0.5

    def test_revenue_saved(self, recommender):
        """MRR x horizon x probability x success."""
        # mid band: 12 months
        assert recommender.estimate_revenue_saved(2000, 50.0, 0.6) == 7200

    def test_priority_follows_risk_level(self, scorer, recommender, edge_cases, as_of):
        high = scorer.score_customer(edge_cases[0], as_of)
        low = scorer.score_customer(edge_cases[1], as_of)

        assert recommender.recommend(edge_cases[0], high).priority == "high"
        assert recommender.recommend(edge_cases[1], low).priority == "low"

    def test_no_factors_defaults_to_account_review(self, scorer, recommender, edge_cases, as_of):
        prediction = scorer.score_customer(edge_cases[1], as_of)
        recommendation = recommender.recommend(edge_cases[1], prediction)

        assert recommendation.type == "Account Review"
        assert recommendation.dominant_factor is None
        assert "routine review" in recommendation.reasoning

    def test_reasoning_names_dominant_factor(self, scorer, recommender, edge_cases, as_of):
        prediction = scorer.score_customer(edge_cases[0], as_of)
        recommendation = recommender.recommend(edge_cases[0], prediction)

        assert prediction.dominant_factor.feature in recommendation.reasoning


class TestPlaybooks:
    def test_known_playbooks(self, recommender):
        assert recommender.playbook_type(1) == "Executive Check-in"
        assert recommender.playbook_type(2) == "Payment Recovery"

    def test_unknown_playbook(self, recommender):
        assert recommender.playbook_type(99) == "General Intervention"


class TestOutcomes:
    def test_record_and_summarize(self, recommender):
        recommender.record_outcome(1, "Account Review", True, revenue_impact=1200.0)
        recommender.record_outcome(2, "Account Review", False)
        recommender.record_outcome(3, "Engagement Boost", True)

        stats = recommender.outcome_stats()

        assert len(recommender.outcomes) == 3
        assert stats["Account Review"]["total"] == 2
        assert stats["Account Review"]["success_rate"] == 0.5
        assert stats["Account Review"]["revenue_impact"] == 1200.0
        assert stats["Engagement Boost"]["successes"] == 1

    def test_outcomes_do_not_change_estimates(self, recommender):
        before = recommender.estimate_success("nps", 2500)
        for _ in range(5):
            recommender.record_outcome(1, "Account Review", False)

        assert recommender.estimate_success("nps", 2500) == before
