"""
FastAPI Application
===================

REST API for the churn dashboard. All handlers delegate to a
ChurnEngine held on ``app.state``; the app owns no records itself.

Usage:
    uvicorn churnguard.api.app:create_app --factory
"""

from dataclasses import asdict
from datetime import timedelta
from typing import List, Optional

import numpy as np
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from ..engine import ChurnEngine
from ..exceptions import ConfigError, DatasetError, NotFoundError
from ..models import NewIntervention, Prediction
from ..repository import InMemoryRepository
from ..scorer import utcnow
from .schemas import (
    AiRecommendationOut,
    AnalyticsResponse,
    BatchPredictionOut,
    BatchPredictRequest,
    BatchPredictResponse,
    CausesResponse,
    ChartDataResponse,
    CauseOut,
    ChurnCauseOut,
    ChurnPredictionResponse,
    CustomerOut,
    DashboardMetricsOut,
    DistributionOut,
    FeatureAnalysisOut,
    FeatureAnalysisResponse,
    FeatureAnalysisSummary,
    FeatureImportanceOut,
    FeatureImportanceResponse,
    HealthResponse,
    IntegrationOut,
    InterventionCreate,
    InterventionOut,
    InterventionStatsOut,
    InterventionUpdate,
    OutcomeRequest,
    PlaybookTrigger,
    PredictionOut,
    PredictRequest,
    RecommendationOut,
    RetrainResponse,
    RiskAlertOut,
    RiskBucketOut,
    SegmentationResponse,
    StatusResponse,
    TopRiskFactorOut,
    TriggerRequest,
    TriggerResponse,
)

TRIGGER_COMPLETION_HOURS = 24


def get_engine(request: Request) -> ChurnEngine:
    return request.app.state.engine


def _prediction_out(prediction: Prediction) -> PredictionOut:
    return PredictionOut.model_validate(prediction)


def create_app(engine: Optional[ChurnEngine] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        engine: ChurnEngine to serve. If None, one is built over the
            bundled mock dataset.
    """
    app = FastAPI(
        title="ChurnGuard API",
        description="Churn risk scoring and retention dashboard backend",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.engine = engine or ChurnEngine(InMemoryRepository.from_file())

    @app.exception_handler(NotFoundError)
    def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": str(exc)})

    @app.exception_handler(DatasetError)
    def dataset_error_handler(request: Request, exc: DatasetError):
        logger.warning(f"Rejected dataset: {exc}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})

    @app.exception_handler(ConfigError)
    def config_error_handler(request: Request, exc: ConfigError):
        logger.warning(f"Rejected scoring config: {exc}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})

    # --- Health --------------------------------------------------------

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health(engine: ChurnEngine = Depends(get_engine)):
        return HealthResponse(
            status="healthy",
            customers=len(engine.repository.get_customers()),
            config_version=engine.scorer.config.version,
            trained_at=engine.trained_at,
        )

    # --- Customers and causes -----------------------------------------

    @app.get("/api/customers", response_model=List[CustomerOut], tags=["Customers"])
    def list_customers(engine: ChurnEngine = Depends(get_engine)):
        return [CustomerOut.model_validate(c) for c in engine.repository.get_customers()]

    @app.get("/api/customers/{customer_id}", response_model=CustomerOut, tags=["Customers"])
    def get_customer(customer_id: int, engine: ChurnEngine = Depends(get_engine)):
        return CustomerOut.model_validate(engine.repository.get_customer(customer_id))

    @app.get("/api/v1/causes/explain", response_model=CausesResponse, tags=["Customers"])
    def explain_causes(engine: ChurnEngine = Depends(get_engine)):
        causes = engine.repository.get_churn_causes()
        return CausesResponse(causes=[ChurnCauseOut.model_validate(c) for c in causes])

    # --- Interventions -------------------------------------------------

    @app.get("/api/interventions", response_model=List[InterventionOut], tags=["Interventions"])
    def list_interventions(engine: ChurnEngine = Depends(get_engine)):
        return [InterventionOut.model_validate(i) for i in engine.repository.get_interventions()]

    @app.post(
        "/api/interventions",
        response_model=InterventionOut,
        status_code=status.HTTP_201_CREATED,
        tags=["Interventions"],
    )
    def create_intervention(body: InterventionCreate, engine: ChurnEngine = Depends(get_engine)):
        intervention, _ = engine.create_intervention(NewIntervention(**body.model_dump()))
        return InterventionOut.model_validate(intervention)

    @app.patch(
        "/api/interventions/{intervention_id}",
        response_model=InterventionOut,
        tags=["Interventions"],
    )
    def update_intervention(
        intervention_id: int,
        body: InterventionUpdate,
        engine: ChurnEngine = Depends(get_engine),
    ):
        return InterventionOut.model_validate(engine.complete_intervention(intervention_id))

    @app.post("/api/v1/playbooks/trigger", response_model=TriggerResponse, tags=["Interventions"])
    def trigger_playbook(body: TriggerRequest, engine: ChurnEngine = Depends(get_engine)):
        request = body.root
        if isinstance(request, PlaybookTrigger):
            intervention, recommendation = engine.trigger_playbook(
                playbook_id=request.playbook_id,
                customer_id=request.customer_id,
                priority=request.priority,
                assigned_csm=request.assigned_csm,
                description=request.description,
                next_action=request.next_action,
                due_date=request.due_date,
            )
        else:
            values = request.model_dump(exclude={"kind"})
            intervention, recommendation = engine.create_intervention(NewIntervention(**values))

        ai_recommendation = None
        if recommendation is not None:
            ai_recommendation = AiRecommendationOut(
                recommended_type=recommendation.type,
                priority=recommendation.priority,
                estimated_success=recommendation.estimated_success,
                reasoning=recommendation.reasoning,
            )
        return TriggerResponse(
            intervention_id=intervention.id,
            estimated_completion=utcnow() + timedelta(hours=TRIGGER_COMPLETION_HOURS),
            playbook_type=intervention.type,
            ai_recommendation=ai_recommendation,
        )

    # --- Dashboard -----------------------------------------------------

    @app.post("/api/v1/churn/predict", response_model=ChurnPredictionResponse, tags=["Dashboard"])
    def churn_predict(body: PredictRequest, engine: ChurnEngine = Depends(get_engine)):
        prediction = engine.predict(body.customer_id)
        return ChurnPredictionResponse(
            customer_id=prediction.customer_id,
            churn_probability=f"{prediction.churn_probability:.2f}",
            risk_level=prediction.risk_level,
            top_causes=[
                CauseOut(factor=f.feature, impact=round(f.importance * 100, 1), value=f.value)
                for f in prediction.top_factors
            ],
            confidence=f"{prediction.confidence * 100:.2f}",
            recommended_actions=prediction.recommended_actions,
            source=prediction.source,
        )

    @app.get("/api/dashboard/metrics", response_model=DashboardMetricsOut, tags=["Dashboard"])
    def dashboard_metrics(engine: ChurnEngine = Depends(get_engine)):
        metrics = engine.dashboard_metrics()
        values = asdict(metrics)
        values["churn_risk"] = f"{metrics.churn_risk:.1f}"
        return DashboardMetricsOut(**values)

    @app.get(
        "/api/dashboard/segmentation",
        response_model=SegmentationResponse,
        tags=["Dashboard"],
    )
    def segmentation(engine: ChurnEngine = Depends(get_engine)):
        dist = engine.segmentation()
        buckets = {
            f"{level}_risk": RiskBucketOut(
                count=dist.counts[level], percentage=dist.percentages[level]
            )
            for level in ("high", "medium", "low")
        }
        return SegmentationResponse(**buckets)

    @app.get("/api/alerts", response_model=List[RiskAlertOut], tags=["Dashboard"])
    def alerts(engine: ChurnEngine = Depends(get_engine)):
        return [RiskAlertOut.model_validate(a) for a in engine.alerts()]

    @app.patch("/api/alerts/{alert_id}/read", response_model=RiskAlertOut, tags=["Dashboard"])
    def mark_alert_read(alert_id: int, engine: ChurnEngine = Depends(get_engine)):
        return RiskAlertOut.model_validate(engine.mark_alert_read(alert_id))

    @app.get(
        "/api/dashboard/chart-data",
        response_model=ChartDataResponse,
        tags=["Dashboard"],
    )
    def chart_data(engine: ChurnEngine = Depends(get_engine)):
        return ChartDataResponse.model_validate(engine.chart_data())

    @app.get("/api/integrations", response_model=List[IntegrationOut], tags=["Dashboard"])
    def integrations(engine: ChurnEngine = Depends(get_engine)):
        return [IntegrationOut.model_validate(i) for i in engine.integrations()]

    # --- Scoring engine ------------------------------------------------

    @app.post("/api/ml/predict", response_model=PredictionOut, tags=["Scoring"])
    def predict(body: PredictRequest, engine: ChurnEngine = Depends(get_engine)):
        return _prediction_out(engine.predict(body.customer_id))

    @app.post("/api/ml/batch-predict", response_model=BatchPredictResponse, tags=["Scoring"])
    def batch_predict(body: BatchPredictRequest, engine: ChurnEngine = Depends(get_engine)):
        items = []
        for entry in engine.batch_predict(body.customer_ids):
            if entry.prediction is not None:
                items.append(BatchPredictionOut.model_validate(entry.prediction))
            else:
                items.append(BatchPredictionOut(customer_id=entry.customer_id, error=entry.error))
        return BatchPredictResponse(predictions=items)

    @app.post(
        "/api/ml/recommend-intervention",
        response_model=RecommendationOut,
        tags=["Scoring"],
    )
    def recommend_intervention(body: PredictRequest, engine: ChurnEngine = Depends(get_engine)):
        return RecommendationOut.model_validate(engine.recommend(body.customer_id))

    @app.get(
        "/api/ml/feature-importance",
        response_model=FeatureImportanceResponse,
        tags=["Scoring"],
    )
    def feature_importance(engine: ChurnEngine = Depends(get_engine)):
        features = engine.feature_importances()
        return FeatureImportanceResponse(
            features=[FeatureImportanceOut.model_validate(f) for f in features]
        )

    @app.get(
        "/api/ml/feature-analysis",
        response_model=FeatureAnalysisResponse,
        tags=["Scoring"],
    )
    def feature_analysis(engine: ChurnEngine = Depends(get_engine)):
        analyses = engine.feature_analysis()
        rows = [
            FeatureAnalysisOut.model_validate({
                **asdict(a.importance),
                "correlations": a.correlations,
                "distribution": a.distribution,
                "trends": a.trends,
                "benchmarks": a.benchmarks,
                "action_plan": a.action_plan,
            })
            for a in analyses
        ]
        importances = [a.importance for a in analyses]
        summary = FeatureAnalysisSummary(
            total_features=len(importances),
            high_impact_features=sum(1 for f in importances if f.importance > 20),
            actionable_features=sum(1 for f in importances if f.actionability == "high"),
            avg_importance=(
                round(float(np.mean([f.importance for f in importances])), 2)
                if importances else 0.0
            ),
        )
        return FeatureAnalysisResponse(analysis=rows, summary=summary)

    @app.get("/api/ml/analytics", response_model=AnalyticsResponse, tags=["Scoring"])
    def analytics(engine: ChurnEngine = Depends(get_engine)):
        summary = engine.analytics()
        return AnalyticsResponse(
            total_customers=summary.total_customers,
            churn_risk_analytics=DistributionOut(
                average=summary.average_churn_risk,
                distribution=summary.risk_distribution.counts,
                percentages=summary.risk_distribution.percentages,
            ),
            health_score_analytics=DistributionOut(
                average=summary.average_health_score,
                distribution=summary.health_distribution,
                percentages=summary.health_percentages,
            ),
            risk_distribution=summary.risk_distribution.counts,
            intervention_stats=InterventionStatsOut(**summary.intervention_stats),
            feature_importances=[
                FeatureImportanceOut.model_validate(f) for f in summary.feature_importances
            ],
            top_risk_factors=[TopRiskFactorOut(**f) for f in summary.top_risk_factors],
            fallback_predictions=summary.fallback_count,
        )

    @app.post("/api/ml/update-outcome", response_model=StatusResponse, tags=["Scoring"])
    def update_outcome(body: OutcomeRequest, engine: ChurnEngine = Depends(get_engine)):
        engine.update_outcome(
            body.customer_id, body.intervention, body.success, body.revenue_impact
        )
        return StatusResponse(message="Intervention outcome recorded")

    @app.post("/api/ml/retrain", response_model=RetrainResponse, tags=["Scoring"])
    def retrain(engine: ChurnEngine = Depends(get_engine)):
        result = engine.retrain()
        return RetrainResponse(
            message="Scoring engine re-initialized",
            version=result.version,
            trained_at=result.trained_at,
            customers=result.customers,
        )

    # --- Data administration -------------------------------------------

    @app.post("/api/admin/reload-data", response_model=StatusResponse, tags=["Admin"])
    def reload_data(engine: ChurnEngine = Depends(get_engine)):
        engine.reload_data()
        return StatusResponse(message="Data reloaded")

    @app.post("/api/admin/upload-data", response_model=StatusResponse, tags=["Admin"])
    def upload_data(document: dict, engine: ChurnEngine = Depends(get_engine)):
        engine.upload_data(document)
        return StatusResponse(message="Data uploaded")

    @app.get("/api/admin/current-data", tags=["Admin"])
    def current_data(engine: ChurnEngine = Depends(get_engine)):
        return engine.current_data()

    return app
