"""
Domain records for the churn dashboard.

Plain dataclasses: the repository stores them, the scorer reads them,
and the API layer converts them to pydantic response models.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Literal, Optional

RiskLevel = Literal["low", "medium", "high"]
Priority = Literal["low", "medium", "high"]
InterventionStatus = Literal["active", "completed"]
Tag = Literal["high", "medium", "low"]
IntegrationStatus = Literal["connected", "syncing", "error", "disconnected"]


@dataclass(frozen=True)
class FeatureUsage:
    """Usage counters for a customer account."""

    login: int = 0
    features: int = 0
    api_calls: int = 0

    def total(self, api_call_divisor: float = 100.0) -> float:
        """Aggregate usage: logins + features + scaled API calls."""
        return self.login + self.features + self.api_calls / api_call_divisor


@dataclass(frozen=True)
class Customer:
    """
    A SaaS customer account.

    Attributes:
        health_score: Composite 0-100 engagement metric
        nps_score: Latest NPS response (0-10), None if never surveyed
        last_login: Most recent login, None if never logged in
        feature_usage: Usage counters, None if not tracked
        churn_risk: Static 0-1 risk estimate, used only as a fallback
    """

    id: int
    name: str
    plan: str
    health_score: int
    support_tickets: int
    mrr: float
    email: Optional[str] = None
    nps_score: Optional[int] = None
    last_login: Optional[datetime] = None
    signup_date: Optional[datetime] = None
    feature_usage: Optional[FeatureUsage] = None
    churn_risk: float = 0.0


@dataclass(frozen=True)
class ChurnCause:
    """Static reference data describing a known churn driver."""

    id: int
    name: str
    description: str
    impact: float
    category: str
    icon: str


@dataclass(frozen=True)
class Intervention:
    """A tracked retention action taken on a customer."""

    id: int
    customer_id: int
    type: str
    status: InterventionStatus
    priority: Priority
    assigned_csm: str
    description: str
    next_action: str
    due_date: Optional[datetime]
    created_at: datetime
    completed_at: Optional[datetime] = None

    def complete(self, when: datetime) -> "Intervention":
        """Return the completed version of this intervention (idempotent)."""
        if self.status == "completed":
            return self
        return replace(self, status="completed", completed_at=when)


@dataclass
class NewIntervention:
    """Fields required to create an intervention."""

    customer_id: int
    type: str
    priority: Priority = "medium"
    assigned_csm: str = "AI Assistant"
    description: str = ""
    next_action: str = "Initial outreach and assessment"
    due_date: Optional[datetime] = None
    status: InterventionStatus = "active"


@dataclass(frozen=True)
class DashboardSettings:
    """Display constants for the dashboard header metrics."""

    churn_change: float = 0.0
    risk_change: float = 0.0
    revenue_increase: float = 0.0
    revenue_per_completed_intervention: float = 5000.0
    chart_labels: list[str] = field(
        default_factory=lambda: ["May", "Jun", "Jul", "Aug", "Sep", "Oct"]
    )


@dataclass(frozen=True)
class Integration:
    """A connected data source and its sync state."""

    id: int
    name: str
    type: str
    status: IntegrationStatus
    last_sync_at: Optional[datetime] = None


@dataclass
class RiskFactor:
    """One component's contribution to a customer's churn score."""

    feature: str
    importance: float
    value: str
    description: str
    points: float = 0.0


@dataclass
class Prediction:
    """Scored churn risk for one customer."""

    customer_id: int
    churn_probability: float
    risk_level: RiskLevel
    confidence: float
    top_factors: list[RiskFactor] = field(default_factory=list)
    recommended_actions: list[str] = field(default_factory=list)
    source: Literal["model", "fallback"] = "model"

    @property
    def dominant_factor(self) -> Optional[RiskFactor]:
        return self.top_factors[0] if self.top_factors else None


@dataclass
class FeatureImportance:
    """Dataset-wide weight of one scoring component."""

    feature: str
    importance: float
    direction: Literal["positive", "negative"]
    description: str
    raw_importance: float
    confidence_level: Tag
    actionability: Tag


@dataclass
class InterventionRecommendation:
    """Suggested retention action for a scored customer."""

    customer_id: int
    type: str
    priority: Priority
    estimated_success: float
    estimated_revenue_saved: float
    description: str
    reasoning: str
    dominant_factor: Optional[str] = None


@dataclass(frozen=True)
class InterventionOutcome:
    """Recorded result of an intervention."""

    customer_id: int
    intervention: str
    success: bool
    recorded_at: datetime
    revenue_impact: Optional[float] = None
