"""
Aggregate analytics over scored customers.

Every function here is a pure reduction: it takes customers,
predictions and interventions and returns plain data. Nothing is
cached; callers recompute on every request.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Collection, Optional

import numpy as np
import pandas as pd

from .models import (
    Customer,
    DashboardSettings,
    FeatureImportance,
    Intervention,
    Prediction,
)
from .components import HealthScorer, NpsScorer, SupportScorer, LoginScorer, UsageScorer
from .scorer import ScoringResult, as_utc, days_since

# Static per-component metadata
FEATURE_DIRECTIONS = {
    "health": "negative",   # higher health -> lower risk
    "nps": "negative",
    "support": "positive",  # more tickets -> higher risk
    "login": "positive",    # more idle days -> higher risk
    "usage": "negative",
}

FEATURE_ACTIONABILITY = {
    "health": "medium",
    "nps": "medium",
    "support": "high",
    "login": "high",
    "usage": "high",
}

FEATURE_DESCRIPTIONS = {
    "health": "Composite engagement health below 100",
    "nps": "Detractor or passive NPS responses",
    "support": "Volume of open support tickets",
    "login": "Days since the customer last logged in",
    "usage": "Shortfall against the feature usage target",
}

FEATURE_RECOMMENDATIONS = {
    "health": "Focus on improving product adoption and customer success touchpoints.",
    "nps": "Address feedback systematically and close the loop with customers.",
    "support": "Optimize support processes and resolution times.",
    "login": "Implement re-engagement campaigns for inactive users.",
    "usage": "Increase product engagement through guided onboarding.",
}

INDUSTRY_BENCHMARKS = {
    "health": {"excellent": 90, "good": 75, "industry": 68},
    "nps": {"excellent": 8, "good": 6, "industry": 4},
    "support": {"excellent": 2, "good": 5, "industry": 8},
    "login": {"excellent": 1, "good": 7, "industry": 14},
    "usage": {"excellent": 85, "good": 65, "industry": 45},
}

LABEL_TO_COMPONENT = {
    cls.label: cls.name
    for cls in (HealthScorer, NpsScorer, SupportScorer, LoginScorer, UsageScorer)
}

HIGH_IMPACT_IMPORTANCE = 20.0
AT_RISK_PROBABILITY = 70.0
ALERT_LIMIT = 20
TREND_AMPLITUDE = 2.0
TREND_STEP = 0.5
CHART_SERIES_LABEL = "Churn Risk %"


def _pct(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total else 0.0


def _mean(values: list[float]) -> float:
    return round(float(np.mean(values)), 1) if values else 0.0


@dataclass
class RiskDistribution:
    """High/medium/low bucket counts and percentages."""

    total: int
    counts: dict[str, int]
    percentages: dict[str, float]


@dataclass
class AnalyticsSummary:
    """Dataset-wide churn analytics."""

    total_customers: int
    average_churn_risk: float
    average_health_score: float
    risk_distribution: RiskDistribution
    health_distribution: dict[str, int]
    health_percentages: dict[str, float]
    intervention_stats: dict[str, float]
    feature_importances: list[FeatureImportance]
    top_risk_factors: list[dict]
    fallback_count: int = 0


@dataclass
class DashboardMetrics:
    churn_risk: float
    churn_change: float
    customers_at_risk: int
    risk_change: float
    active_interventions: int
    success_rate: int
    revenue_saved: int
    revenue_increase: float


@dataclass
class ChartSeries:
    label: str
    data: list[float]


@dataclass
class ChartData:
    labels: list[str]
    datasets: list[ChartSeries]


@dataclass
class RiskAlert:
    id: int
    customer_id: int
    title: str
    description: str
    severity: str
    created_at: datetime
    is_read: bool = False


@dataclass
class FeatureAnalysis:
    importance: FeatureImportance
    correlations: dict[str, Optional[float]]
    distribution: dict[str, Optional[float]]
    trends: dict[str, float | str]
    benchmarks: dict[str, float]
    action_plan: list[dict] = field(default_factory=list)


def risk_distribution(predictions: list[Prediction]) -> RiskDistribution:
    """Bucket predictions by risk level. Counts always sum to the total."""
    total = len(predictions)
    counts = {"high": 0, "medium": 0, "low": 0}
    for prediction in predictions:
        counts[prediction.risk_level] += 1
    return RiskDistribution(
        total=total,
        counts=counts,
        percentages={level: _pct(n, total) for level, n in counts.items()},
    )


def health_distribution(customers: list[Customer]) -> dict[str, int]:
    """excellent >= 90, good 70-89, fair 50-69, poor < 50."""
    buckets = {"excellent": 0, "good": 0, "fair": 0, "poor": 0}
    for customer in customers:
        score = customer.health_score
        if score >= 90:
            buckets["excellent"] += 1
        elif score >= 70:
            buckets["good"] += 1
        elif score >= 50:
            buckets["fair"] += 1
        else:
            buckets["poor"] += 1
    return buckets


def intervention_stats(interventions: list[Intervention]) -> dict[str, float]:
    total = len(interventions)
    completed = sum(1 for i in interventions if i.status == "completed")
    return {
        "total_executions": total,
        "active": total - completed,
        "completed": completed,
        "success_rate": round(completed / total * 100, 1) if total else 0.0,
    }


def _signal_coverage(customers: list[Customer]) -> dict[str, float]:
    """Share of customers that carry each component's raw signal."""
    total = len(customers)
    if not total:
        return {name: 0.0 for name in FEATURE_DIRECTIONS}
    return {
        "health": 1.0,
        "support": 1.0,
        "nps": sum(c.nps_score is not None for c in customers) / total,
        "login": sum(c.last_login is not None for c in customers) / total,
        "usage": sum(c.feature_usage is not None for c in customers) / total,
    }


def _confidence_tag(coverage: float) -> str:
    if coverage >= 0.9:
        return "high"
    if coverage >= 0.6:
        return "medium"
    return "low"


def feature_importances(
    result: ScoringResult, customers: list[Customer]
) -> list[FeatureImportance]:
    """
    Dataset-wide importance of each scoring component.

    Importance is the component's mean points normalized so all
    components sum to 100. Sorted by importance, descending.
    """
    coverage = _signal_coverage(customers)
    means = {
        col.replace("_points", ""): float(result.df[col].mean()) if len(result.df) else 0.0
        for col in result.component_columns
    }
    total = sum(means.values())

    importances = []
    for name, mean_points in means.items():
        importances.append(FeatureImportance(
            feature=result.labels[name],
            importance=round(mean_points / total * 100, 2) if total else 0.0,
            direction=FEATURE_DIRECTIONS[name],
            description=FEATURE_DESCRIPTIONS[name],
            raw_importance=round(mean_points, 4),
            confidence_level=_confidence_tag(coverage[name]),
            actionability=FEATURE_ACTIONABILITY[name],
        ))
    return sorted(importances, key=lambda f: -f.importance)


def top_risk_factors(importances: list[FeatureImportance], n: int = 3) -> list[dict]:
    factors = []
    for f in importances[:n]:
        name = LABEL_TO_COMPONENT.get(f.feature)
        factors.append({
            "factor": f.feature,
            "impact": f.importance,
            "actionable": f.actionability == "high",
            "recommendation": (
                f"{f.feature} shows {f.importance:.1f}% impact on churn prediction. "
                f"{FEATURE_RECOMMENDATIONS.get(name, 'Monitor this metric closely.')}"
            ),
        })
    return factors


def summarize(
    customers: list[Customer],
    predictions: list[Prediction],
    interventions: list[Intervention],
    importances: list[FeatureImportance],
) -> AnalyticsSummary:
    """Full analytics summary for the dashboard."""
    total = len(customers)
    health = health_distribution(customers)
    return AnalyticsSummary(
        total_customers=total,
        average_churn_risk=_mean([p.churn_probability for p in predictions]),
        average_health_score=_mean([c.health_score for c in customers]),
        risk_distribution=risk_distribution(predictions),
        health_distribution=health,
        health_percentages={k: _pct(v, total) for k, v in health.items()},
        intervention_stats=intervention_stats(interventions),
        feature_importances=importances,
        top_risk_factors=top_risk_factors(importances),
        fallback_count=sum(1 for p in predictions if p.source == "fallback"),
    )


def dashboard_metrics(
    predictions: list[Prediction],
    interventions: list[Intervention],
    settings: DashboardSettings,
) -> DashboardMetrics:
    """Header metrics: average risk, at-risk count, intervention results."""
    active = sum(1 for i in interventions if i.status == "active")
    completed = sum(1 for i in interventions if i.status == "completed")
    saved = completed * settings.revenue_per_completed_intervention
    return DashboardMetrics(
        churn_risk=_mean([p.churn_probability for p in predictions]),
        churn_change=settings.churn_change,
        customers_at_risk=sum(
            1 for p in predictions if p.churn_probability > AT_RISK_PROBABILITY
        ),
        risk_change=settings.risk_change,
        active_interventions=active,
        success_rate=round(completed / (completed + active) * 100) if completed else 0,
        revenue_saved=round(saved / 1000),
        revenue_increase=settings.revenue_increase,
    )


def chart_data(predictions: list[Prediction], settings: DashboardSettings) -> ChartData:
    """
    Churn risk trend for the retention chart.

    One point per configured label. Points swing around the current
    average risk on a fixed sine pattern and the last point is the
    current average itself.
    """
    labels = list(settings.chart_labels)
    average = _mean([p.churn_probability for p in predictions])
    steps = np.arange(len(labels) - 1, -1, -1) * TREND_STEP
    trend = np.clip(average + TREND_AMPLITUDE * np.sin(steps), 0.0, 100.0)
    return ChartData(
        labels=labels,
        datasets=[ChartSeries(
            label=CHART_SERIES_LABEL,
            data=[round(float(v), 1) for v in trend],
        )],
    )


def risk_alerts(
    customers: list[Customer],
    predictions: list[Prediction],
    now: datetime,
    limit: int = ALERT_LIMIT,
    read_ids: Collection[int] = frozenset(),
) -> list[RiskAlert]:
    """
    Alerts for risky customers, newest first.

    Alert ages are fixed offsets by severity so the feed is
    deterministic for a given dataset. Alerts whose IDs are in
    read_ids come back with is_read set.
    """
    by_id = {p.customer_id: p for p in predictions}
    alerts: list[RiskAlert] = []

    def _add(customer: Customer, title: str, description: str, severity: str, hours: int):
        alert_id = len(alerts) + 1
        alerts.append(RiskAlert(
            id=alert_id,
            customer_id=customer.id,
            title=f"{title}: {customer.name}",
            description=description,
            severity=severity,
            created_at=now - timedelta(hours=hours),
            is_read=alert_id in read_ids,
        ))

    for customer in customers:
        prediction = by_id.get(customer.id)
        if prediction is not None:
            risk = prediction.churn_probability
            if risk >= 80:
                _add(customer, "High Churn Risk Detected",
                     f"Customer has {risk:.1f}% churn probability. "
                     f"Risk level: {prediction.risk_level}", "critical", 1)
            elif risk >= 60:
                _add(customer, "Medium Churn Risk",
                     f"Customer has {risk:.1f}% churn probability. Monitor closely.",
                     "high", 6)
        if customer.health_score < 30:
            _add(customer, "Low Health Score Alert",
                 f"Health score dropped to {customer.health_score}. "
                 "Immediate attention required.", "high", 2)
        if customer.support_tickets > 5:
            _add(customer, "High Support Activity",
                 f"Customer has {customer.support_tickets} support tickets. "
                 "Potential satisfaction issue.", "medium", 3)

    alerts.sort(key=lambda a: (a.created_at, -a.id), reverse=True)
    return alerts[:limit]


def _feature_values(customers: list[Customer], name: str, as_of: datetime) -> list[Optional[float]]:
    values: list[Optional[float]] = []
    for c in customers:
        if name == "health":
            values.append(float(c.health_score))
        elif name == "nps":
            values.append(None if c.nps_score is None else float(c.nps_score))
        elif name == "support":
            values.append(float(c.support_tickets))
        elif name == "login":
            values.append(days_since(c.last_login, as_of))
        elif name == "usage":
            values.append(None if c.feature_usage is None else c.feature_usage.total())
    return values


def _round_or_none(value) -> Optional[float]:
    return None if value is None or pd.isna(value) else round(float(value), 2)


def _action_plan(f: FeatureImportance) -> list[dict]:
    actions = []
    if f.importance > HIGH_IMPACT_IMPORTANCE:
        actions.append({
            "priority": "high",
            "action": f"Monitor {f.feature} closely as it has high impact ({f.importance:.1f}%)",
            "timeframe": "immediate",
        })
    if f.actionability == "high":
        actions.append({
            "priority": "high",
            "action": f"Implement improvement strategies for {f.feature}",
            "timeframe": "1-2 weeks",
        })
    if f.confidence_level == "low":
        actions.append({
            "priority": "medium",
            "action": f"Collect more data for {f.feature} to improve prediction confidence",
            "timeframe": "1 month",
        })
    return actions


def feature_analysis(
    customers: list[Customer],
    predictions: list[Prediction],
    importances: list[FeatureImportance],
    as_of: datetime,
) -> list[FeatureAnalysis]:
    """
    Per-feature drill-down: correlation with churn risk, value
    distribution, recent-vs-historical trend, benchmarks and actions.
    """
    label_to_name = LABEL_TO_COMPONENT
    risk_by_id = {p.customer_id: p.churn_probability for p in predictions}
    recent_cutoff = as_utc(as_of) - timedelta(days=90)
    is_recent = [
        c.signup_date is not None and as_utc(c.signup_date) > recent_cutoff
        for c in customers
    ]

    analyses = []
    for f in importances:
        name = label_to_name[f.feature]
        frame = pd.DataFrame({
            "value": pd.Series(_feature_values(customers, name, as_of), dtype=float),
            "risk": pd.Series([risk_by_id.get(c.id) for c in customers], dtype=float),
            "health": pd.Series([c.health_score for c in customers], dtype=float),
            "recent": pd.Series(is_recent, dtype=bool),
        })
        values = frame["value"].dropna()

        if len(values):
            distribution = {
                "min": _round_or_none(values.min()),
                "max": _round_or_none(values.max()),
                "median": _round_or_none(values.median()),
                "mean": _round_or_none(values.mean()),
                "q25": _round_or_none(values.quantile(0.25)),
                "q75": _round_or_none(values.quantile(0.75)),
            }
        else:
            distribution = dict.fromkeys(["min", "max", "median", "mean", "q25", "q75"])

        recent_avg = frame.loc[frame["recent"], "value"].mean()
        older_avg = frame.loc[~frame["recent"], "value"].mean()
        recent_avg = 0.0 if pd.isna(recent_avg) else float(recent_avg)
        older_avg = 0.0 if pd.isna(older_avg) else float(older_avg)
        change = (recent_avg - older_avg) / older_avg * 100 if older_avg > 0 else 0.0

        analyses.append(FeatureAnalysis(
            importance=f,
            correlations={
                "churn_risk": _round_or_none(frame["value"].corr(frame["risk"])),
                "health_score": _round_or_none(frame["value"].corr(frame["health"])),
            },
            distribution=distribution,
            trends={
                "direction": "improving" if change > 5 else "declining" if change < -5 else "stable",
                "percentage": round(abs(change), 2),
                "recent_average": round(recent_avg, 2),
                "historical_average": round(older_avg, 2),
            },
            benchmarks=INDUSTRY_BENCHMARKS[name],
            action_plan=_action_plan(f),
        ))
    return analyses
