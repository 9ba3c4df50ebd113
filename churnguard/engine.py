"""
ChurnEngine - connects the repository to scoring, recommendation and
analytics.

Usage:
    from churnguard import ChurnEngine, InMemoryRepository

    engine = ChurnEngine(InMemoryRepository.from_file())
    prediction = engine.predict(customer_id=3)
    recommendation = engine.recommend(customer_id=3)
    summary = engine.analytics()
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from loguru import logger

from . import analytics as stats
from .config import ScoringConfig
from .dataset import parse_dataset
from .exceptions import AlertNotFoundError, CustomerNotFoundError
from .models import (
    Customer,
    Integration,
    Intervention,
    InterventionOutcome,
    InterventionRecommendation,
    NewIntervention,
    Prediction,
)
from .recommender import InterventionRecommender
from .repository import CustomerRepository
from .schemas import SchemaError
from .scorer import ChurnScorer, ScoringResult, utcnow

SCORING_ERRORS = (ValueError, TypeError, SchemaError)
PLAYBOOK_DUE_DAYS = 7


@dataclass
class BatchPrediction:
    """One entry of a batch prediction; error is set for unknown IDs."""

    customer_id: int
    prediction: Optional[Prediction] = None
    error: Optional[str] = None


@dataclass
class RetrainStatus:
    version: str
    trained_at: datetime
    customers: int


class ChurnEngine:
    """
    Request-level operations over an injected repository.

    Args:
        repository: Source of customer and intervention records
        scorer: ChurnScorer (default config if None)
        recommender: InterventionRecommender (default tables if None)
        scoring_config_path: YAML file re-read by retrain()
    """

    def __init__(
        self,
        repository: CustomerRepository,
        scorer: Optional[ChurnScorer] = None,
        recommender: Optional[InterventionRecommender] = None,
        scoring_config_path: Optional[Path | str] = None,
    ):
        self.repository = repository
        self.scoring_config_path = scoring_config_path
        if scorer is None:
            config = ScoringConfig.from_yaml(scoring_config_path) if scoring_config_path else None
            scorer = ChurnScorer(config)
        self.scorer = scorer
        self.recommender = recommender or InterventionRecommender()
        self.recommender.register_labels(self.scorer.labels)
        self.trained_at = utcnow()

    # --- Scoring -------------------------------------------------------

    def score_customer(self, customer: Customer, as_of: Optional[datetime] = None) -> Prediction:
        """Score one customer, falling back to the static risk on failure."""
        try:
            return self.scorer.score_customer(customer, as_of)
        except SCORING_ERRORS as e:
            logger.warning(
                f"Scoring failed for customer {customer.id}, using static risk: {e}"
            )
            return self.scorer.fallback(customer)

    def predict(self, customer_id: int, as_of: Optional[datetime] = None) -> Prediction:
        """
        Churn prediction for one customer.

        Raises:
            CustomerNotFoundError: If the customer does not exist
        """
        customer = self.repository.get_customer(customer_id)
        return self.score_customer(customer, as_of)

    def batch_predict(
        self, customer_ids: list[int], as_of: Optional[datetime] = None
    ) -> list[BatchPrediction]:
        """Predict each ID in order; unknown IDs carry an error message."""
        results = []
        for customer_id in customer_ids:
            try:
                results.append(BatchPrediction(customer_id, self.predict(customer_id, as_of)))
            except CustomerNotFoundError as e:
                results.append(BatchPrediction(customer_id, error=str(e)))
        return results

    def score_all(
        self, as_of: Optional[datetime] = None
    ) -> tuple[list[Customer], ScoringResult, list[Prediction]]:
        """
        Score the full customer set.

        Tries one vectorized pass; if any record breaks it, scores
        customers one by one so only the bad records fall back.
        """
        customers = self.repository.get_customers()
        try:
            result = self.scorer.score_customers(customers, as_of)
            return customers, result, result.to_predictions()
        except SCORING_ERRORS as e:
            logger.warning(f"Batch scoring failed, scoring customers individually: {e}")

        scorable, predictions = [], []
        for customer in customers:
            prediction = self.score_customer(customer, as_of)
            predictions.append(prediction)
            if prediction.source == "model":
                scorable.append(customer)
        result = self.scorer.score_customers(scorable, as_of)
        return customers, result, predictions

    # --- Recommendations and outcomes ----------------------------------

    def recommend(
        self, customer_id: int, as_of: Optional[datetime] = None
    ) -> InterventionRecommendation:
        customer = self.repository.get_customer(customer_id)
        prediction = self.score_customer(customer, as_of)
        return self.recommender.recommend(customer, prediction)

    def update_outcome(
        self,
        customer_id: int,
        intervention: str,
        success: bool,
        revenue_impact: Optional[float] = None,
    ) -> InterventionOutcome:
        self.repository.get_customer(customer_id)
        outcome = self.recommender.record_outcome(
            customer_id, intervention, success, revenue_impact
        )
        logger.info(
            f"Recorded {'successful' if success else 'failed'} {intervention} "
            f"for customer {customer_id}"
        )
        return outcome

    def retrain(self) -> RetrainStatus:
        """
        Re-initialize the scorer.

        Re-reads the scoring config file when one is configured. The
        heuristics are fixed, so this never fits anything.

        Raises:
            ConfigError: If the config file is invalid; the current
                scorer stays in place
        """
        if self.scoring_config_path:
            self.scorer = ChurnScorer(ScoringConfig.from_yaml(self.scoring_config_path))
        else:
            self.scorer = ChurnScorer(self.scorer.config)
        self.recommender.register_labels(self.scorer.labels)
        self.trained_at = utcnow()
        logger.info(f"Scoring engine re-initialized (config v{self.scorer.config.version})")
        return RetrainStatus(
            version=self.scorer.config.version,
            trained_at=self.trained_at,
            customers=len(self.repository.get_customers()),
        )

    # --- Interventions -------------------------------------------------

    def create_intervention(
        self, data: NewIntervention
    ) -> tuple[Intervention, Optional[InterventionRecommendation]]:
        """
        Create an intervention and attach the engine's recommendation.

        The recommendation is advisory: if it cannot be produced the
        intervention is still created.
        """
        customer = self.repository.get_customer(data.customer_id)
        recommendation = None
        try:
            prediction = self.score_customer(customer)
            recommendation = self.recommender.recommend(customer, prediction)
        except (KeyError, ValueError) as e:
            logger.warning(f"Recommendation failed for customer {customer.id}: {e}")
        intervention = self.repository.create_intervention(data)
        return intervention, recommendation

    def trigger_playbook(
        self,
        playbook_id: int,
        customer_id: int,
        priority: str = "medium",
        assigned_csm: Optional[str] = None,
        description: Optional[str] = None,
        next_action: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> tuple[Intervention, Optional[InterventionRecommendation]]:
        """
        Start a catalog playbook for a customer.

        Unknown playbook IDs map to the general intervention type. The
        due date defaults to PLAYBOOK_DUE_DAYS from now.
        """
        playbook = self.recommender.playbook_type(playbook_id)
        data = NewIntervention(
            customer_id=customer_id,
            type=playbook,
            priority=priority,
            assigned_csm=assigned_csm or "AI Assistant",
            description=description or f"Automated {playbook} playbook execution",
            next_action=next_action or "Initial outreach and assessment",
            due_date=due_date or utcnow() + timedelta(days=PLAYBOOK_DUE_DAYS),
            status="active",
        )
        logger.info(f"Triggering playbook {playbook_id} ({playbook}) for customer {customer_id}")
        return self.create_intervention(data)

    def complete_intervention(self, intervention_id: int) -> Intervention:
        return self.repository.complete_intervention(intervention_id)

    # --- Analytics -----------------------------------------------------

    def feature_importances(self, as_of: Optional[datetime] = None):
        customers, result, _ = self.score_all(as_of)
        return stats.feature_importances(result, customers)

    def feature_analysis(self, as_of: Optional[datetime] = None):
        as_of = as_of or utcnow()
        customers, result, predictions = self.score_all(as_of)
        importances = stats.feature_importances(result, customers)
        return stats.feature_analysis(customers, predictions, importances, as_of)

    def analytics(self, as_of: Optional[datetime] = None) -> stats.AnalyticsSummary:
        customers, result, predictions = self.score_all(as_of)
        return stats.summarize(
            customers,
            predictions,
            self.repository.get_interventions(),
            stats.feature_importances(result, customers),
        )

    def segmentation(self, as_of: Optional[datetime] = None) -> stats.RiskDistribution:
        _, _, predictions = self.score_all(as_of)
        return stats.risk_distribution(predictions)

    def dashboard_metrics(self, as_of: Optional[datetime] = None) -> stats.DashboardMetrics:
        _, _, predictions = self.score_all(as_of)
        return stats.dashboard_metrics(
            predictions,
            self.repository.get_interventions(),
            self.repository.get_settings(),
        )

    def alerts(self, as_of: Optional[datetime] = None) -> list[stats.RiskAlert]:
        as_of = as_of or utcnow()
        customers, _, predictions = self.score_all(as_of)
        return stats.risk_alerts(
            customers, predictions, as_of, read_ids=self.repository.read_alert_ids()
        )

    def mark_alert_read(self, alert_id: int, as_of: Optional[datetime] = None) -> stats.RiskAlert:
        """
        Mark one alert of the current feed as read.

        Raises:
            AlertNotFoundError: If the alert is not in the current feed
        """
        for alert in self.alerts(as_of):
            if alert.id == alert_id:
                self.repository.mark_alert_read(alert_id)
                return replace(alert, is_read=True)
        raise AlertNotFoundError(alert_id)

    def chart_data(self, as_of: Optional[datetime] = None) -> stats.ChartData:
        _, _, predictions = self.score_all(as_of)
        return stats.chart_data(predictions, self.repository.get_settings())

    def integrations(self) -> list[Integration]:
        return self.repository.get_integrations()

    # --- Data administration -------------------------------------------

    def reload_data(self) -> None:
        self.repository.reload()

    def upload_data(self, document: dict) -> None:
        """
        Replace the dataset.

        Raises:
            DatasetError: If the document fails validation
        """
        self.repository.replace_dataset(parse_dataset(document))

    def current_data(self) -> dict:
        return self.repository.snapshot()
