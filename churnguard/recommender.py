"""
Intervention recommender.

Picks a retention playbook from a fixed catalog by matching the
customer's dominant risk factor, then estimates the chance of success
and the revenue it would save from static lookup tables keyed by
factor and MRR band.
"""

from collections import defaultdict
from datetime import datetime
from typing import Optional

from .config import RecommenderConfig, DEFAULT_RECOMMENDER_CONFIG
from .models import (
    Customer,
    InterventionOutcome,
    InterventionRecommendation,
    Prediction,
)
from .scorer import utcnow

PRIORITY_BY_RISK = {"high": "high", "medium": "medium", "low": "low"}


class InterventionRecommender:
    """
    Rule-based intervention selection.

    Usage:
        recommender = InterventionRecommender()
        rec = recommender.recommend(customer, prediction)
        print(rec.type, rec.estimated_success, rec.estimated_revenue_saved)
    """

    def __init__(self, config: Optional[RecommenderConfig] = None):
        self.config = config or DEFAULT_RECOMMENDER_CONFIG
        self._outcomes: list[InterventionOutcome] = []
        self._label_to_component: dict[str, str] = {}

    def register_labels(self, labels: dict[str, str]) -> None:
        """Map factor display labels back to component names."""
        self._label_to_component = {label: name for name, label in labels.items()}

    def dominant_component(self, prediction: Prediction) -> Optional[str]:
        factor = prediction.dominant_factor
        if factor is None:
            return None
        return self._label_to_component.get(factor.feature, factor.feature)

    def estimate_success(self, component: Optional[str], mrr: float) -> float:
        """Base success rate for the factor, scaled by MRR band."""
        base = self.config.base_success_rates.get(
            component, self.config.default_success_rate
        )
        band = self.config.get_mrr_band(mrr)
        rate = base * self.config.band_multipliers.get(band, 1.0)
        return round(min(rate, self.config.max_success_rate), 4)

    def estimate_revenue_saved(
        self, mrr: float, churn_probability: float, success: float
    ) -> float:
        """Expected revenue retained over the band's horizon."""
        band = self.config.get_mrr_band(mrr)
        horizon = self.config.band_horizon_months.get(band, 12)
        return float(round(mrr * horizon * (churn_probability / 100) * success))

    def recommend(
        self, customer: Customer, prediction: Prediction
    ) -> InterventionRecommendation:
        """
        Recommend an intervention for a scored customer.

        Args:
            customer: Customer record (for MRR)
            prediction: The customer's Prediction

        Returns:
            InterventionRecommendation with estimated success and revenue
        """
        component = self.dominant_component(prediction)
        intervention_type = self.config.factor_interventions.get(
            component, self.config.default_intervention
        )
        success = self.estimate_success(component, customer.mrr)
        revenue = self.estimate_revenue_saved(
            customer.mrr, prediction.churn_probability, success
        )

        if prediction.dominant_factor is not None:
            factor = prediction.dominant_factor
            reasoning = (
                f"{factor.feature} is the largest risk driver "
                f"({factor.importance:.0%} of score; {factor.value}). "
                f"Churn probability {prediction.churn_probability:.1f}% "
                f"({prediction.risk_level} risk)."
            )
        else:
            reasoning = (
                f"No active risk drivers. Churn probability "
                f"{prediction.churn_probability:.1f}%; routine review recommended."
            )

        return InterventionRecommendation(
            customer_id=customer.id,
            type=intervention_type,
            priority=PRIORITY_BY_RISK[prediction.risk_level],
            estimated_success=success,
            estimated_revenue_saved=revenue,
            description=self.config.intervention_descriptions.get(intervention_type, ""),
            reasoning=reasoning,
            dominant_factor=component,
        )

    def playbook_type(self, playbook_id: int) -> str:
        return self.config.playbooks.get(playbook_id, self.config.unknown_playbook)

    def record_outcome(
        self,
        customer_id: int,
        intervention: str,
        success: bool,
        revenue_impact: Optional[float] = None,
        when: Optional[datetime] = None,
    ) -> InterventionOutcome:
        """Append an intervention outcome to the history."""
        outcome = InterventionOutcome(
            customer_id=customer_id,
            intervention=intervention,
            success=success,
            revenue_impact=revenue_impact,
            recorded_at=when or utcnow(),
        )
        self._outcomes.append(outcome)
        return outcome

    @property
    def outcomes(self) -> list[InterventionOutcome]:
        return list(self._outcomes)

    def outcome_stats(self) -> dict[str, dict]:
        """Observed success rate and revenue per intervention type."""
        grouped: dict[str, list[InterventionOutcome]] = defaultdict(list)
        for outcome in self._outcomes:
            grouped[outcome.intervention].append(outcome)

        stats = {}
        for intervention, outcomes in grouped.items():
            successes = sum(1 for o in outcomes if o.success)
            stats[intervention] = {
                "total": len(outcomes),
                "successes": successes,
                "success_rate": round(successes / len(outcomes), 4),
                "revenue_impact": sum(o.revenue_impact or 0.0 for o in outcomes),
            }
        return stats
