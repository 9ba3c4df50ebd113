"""
API Schemas (Pydantic Models)
=============================

Request and response bodies for the REST API. Fields are snake_case in
Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model: camelCase aliases, built from domain dataclasses."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RequestModel(ApiModel):
    model_config = ConfigDict(extra="forbid")


# --- Customers and causes ---------------------------------------------


class FeatureUsageOut(ApiModel):
    login: int
    features: int
    api_calls: int


class CustomerOut(ApiModel):
    id: int
    name: str
    email: Optional[str]
    plan: str
    health_score: int
    nps_score: Optional[int]
    support_tickets: int
    last_login: Optional[datetime]
    signup_date: Optional[datetime]
    feature_usage: Optional[FeatureUsageOut]
    mrr: float
    churn_risk: float


class ChurnCauseOut(ApiModel):
    id: int
    name: str
    description: str
    impact: float
    category: str
    icon: str


class CausesResponse(ApiModel):
    causes: List[ChurnCauseOut]


# --- Interventions ----------------------------------------------------


class InterventionOut(ApiModel):
    id: int
    customer_id: int
    type: str
    status: Literal["active", "completed"]
    priority: Literal["low", "medium", "high"]
    assigned_csm: str
    description: str
    next_action: str
    due_date: Optional[datetime]
    created_at: datetime
    completed_at: Optional[datetime]


class InterventionCreate(RequestModel):
    customer_id: int
    type: str = Field(..., min_length=1)
    status: Literal["active", "completed"] = "active"
    priority: Literal["low", "medium", "high"] = "medium"
    assigned_csm: str = "AI Assistant"
    description: str = ""
    next_action: str = "Initial outreach and assessment"
    due_date: Optional[datetime] = None


class InterventionUpdate(RequestModel):
    """Only the completion transition is accepted."""

    status: Literal["completed"]


class PlaybookTrigger(RequestModel):
    kind: Literal["playbook"]
    playbook_id: int
    customer_id: int
    priority: Literal["low", "medium", "high"] = "medium"
    assigned_csm: Optional[str] = None
    description: Optional[str] = None
    next_action: Optional[str] = None
    due_date: Optional[datetime] = None


class InterventionTrigger(InterventionCreate):
    kind: Literal["intervention"]


class TriggerRequest(RootModel[Annotated[
    Union[PlaybookTrigger, InterventionTrigger],
    Field(discriminator="kind"),
]]):
    """Playbook shortcut or full intervention data, tagged by ``kind``."""


class AiRecommendationOut(ApiModel):
    recommended_type: str
    priority: str
    estimated_success: float
    reasoning: str


class TriggerResponse(ApiModel):
    intervention_id: int
    status: Literal["triggered"] = "triggered"
    estimated_completion: datetime
    playbook_type: str
    ai_recommendation: Optional[AiRecommendationOut]


# --- Predictions ------------------------------------------------------


class PredictRequest(RequestModel):
    customer_id: int


class BatchPredictRequest(RequestModel):
    customer_ids: List[int] = Field(..., max_length=1000)


class RiskFactorOut(ApiModel):
    feature: str
    importance: float
    value: str
    description: str
    points: float


class PredictionOut(ApiModel):
    customer_id: int
    churn_probability: float = Field(..., ge=0, le=100)
    risk_level: Literal["low", "medium", "high"]
    confidence: float = Field(..., ge=0, le=1)
    top_factors: List[RiskFactorOut]
    recommended_actions: List[str]
    source: Literal["model", "fallback"]


class BatchPredictionOut(ApiModel):
    customer_id: int
    churn_probability: float = 0.0
    risk_level: Literal["low", "medium", "high"] = "low"
    confidence: float = 0.0
    top_factors: List[RiskFactorOut] = Field(default_factory=list)
    recommended_actions: List[str] = Field(default_factory=list)
    source: Optional[Literal["model", "fallback"]] = None
    error: Optional[str] = None


class BatchPredictResponse(ApiModel):
    predictions: List[BatchPredictionOut]


class CauseOut(ApiModel):
    factor: str
    impact: float
    value: str


class ChurnPredictionResponse(ApiModel):
    """Dashboard-facing prediction with percentage strings."""

    customer_id: int
    churn_probability: str
    risk_level: Literal["low", "medium", "high"]
    top_causes: List[CauseOut]
    confidence: str
    recommended_actions: List[str]
    source: Literal["model", "fallback"]


class RecommendationOut(ApiModel):
    customer_id: int
    type: str
    priority: Literal["low", "medium", "high"]
    estimated_success: float
    estimated_revenue_saved: float
    description: str
    reasoning: str
    dominant_factor: Optional[str]


class OutcomeRequest(RequestModel):
    customer_id: int
    intervention: str = Field(..., min_length=1)
    success: bool
    revenue_impact: Optional[float] = None


class StatusResponse(ApiModel):
    success: bool = True
    message: str


class RetrainResponse(StatusResponse):
    version: str
    trained_at: datetime
    customers: int


# --- Analytics --------------------------------------------------------


class FeatureImportanceOut(ApiModel):
    feature: str
    importance: float
    direction: Literal["positive", "negative"]
    description: str
    raw_importance: float
    confidence_level: Literal["high", "medium", "low"]
    actionability: Literal["high", "medium", "low"]


class FeatureImportanceResponse(ApiModel):
    features: List[FeatureImportanceOut]


class FeatureAnalysisOut(FeatureImportanceOut):
    correlations: Dict[str, Optional[float]]
    distribution: Dict[str, Optional[float]]
    trends: Dict[str, Union[float, str]]
    benchmarks: Dict[str, float]
    action_plan: List[Dict[str, str]]


class FeatureAnalysisSummary(ApiModel):
    total_features: int
    high_impact_features: int
    actionable_features: int
    avg_importance: float


class FeatureAnalysisResponse(ApiModel):
    analysis: List[FeatureAnalysisOut]
    summary: FeatureAnalysisSummary


class RiskBucketOut(ApiModel):
    count: int
    percentage: float


class SegmentationResponse(ApiModel):
    high_risk: RiskBucketOut
    medium_risk: RiskBucketOut
    low_risk: RiskBucketOut


class DistributionOut(ApiModel):
    average: float
    distribution: Dict[str, int]
    percentages: Dict[str, float]


class TopRiskFactorOut(ApiModel):
    factor: str
    impact: float
    actionable: bool
    recommendation: str


class InterventionStatsOut(ApiModel):
    total_executions: int
    active: int
    completed: int
    success_rate: float


class AnalyticsResponse(ApiModel):
    total_customers: int
    churn_risk_analytics: DistributionOut
    health_score_analytics: DistributionOut
    risk_distribution: Dict[str, int]
    intervention_stats: InterventionStatsOut
    feature_importances: List[FeatureImportanceOut]
    top_risk_factors: List[TopRiskFactorOut]
    fallback_predictions: int


class DashboardMetricsOut(ApiModel):
    churn_risk: str
    churn_change: float
    customers_at_risk: int
    risk_change: float
    active_interventions: int
    success_rate: int
    revenue_saved: int
    revenue_increase: float


class RiskAlertOut(ApiModel):
    id: int
    customer_id: int
    title: str
    description: str
    severity: Literal["critical", "high", "medium"]
    created_at: datetime
    is_read: bool


class ChartSeriesOut(ApiModel):
    label: str
    data: List[float]


class ChartDataResponse(ApiModel):
    labels: List[str]
    datasets: List[ChartSeriesOut]


class IntegrationOut(ApiModel):
    id: int
    name: str
    type: str
    status: Literal["connected", "syncing", "error", "disconnected"]
    last_sync_at: Optional[datetime]


class HealthResponse(ApiModel):
    status: str
    customers: int
    config_version: str
    trained_at: datetime
