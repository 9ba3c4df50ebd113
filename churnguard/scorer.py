"""
Main ChurnScorer class - orchestrates scoring components.

Usage:
    from churnguard import ChurnScorer, ScoringConfig

    # With default config
    scorer = ChurnScorer()
    result = scorer.score_customers(customers)

    # With custom config
    config = ScoringConfig(health_weight=0.5)
    scorer = ChurnScorer(config)
    prediction = scorer.score_customer(customer)

    # Access results
    print(result.df[["CUSTOMER_ID", "CHURN_PROBABILITY", "RISK_LEVEL"]])
    print(result.distribution())
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .config import ScoringConfig, DEFAULT_CONFIG
from .components import (
    HealthScorer,
    NpsScorer,
    SupportScorer,
    LoginScorer,
    UsageScorer,
)
from .models import Customer, FeatureUsage, Prediction, RiskFactor
from .schemas import SCORING_INPUT_SCHEMA, SCORING_OUTPUT_SCHEMA

RISK_LEVELS = ["low", "medium", "high"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_since(moment: Optional[datetime], as_of: datetime) -> Optional[float]:
    """Whole days between moment and as_of, never negative."""
    if moment is None:
        return None
    delta = as_utc(as_of) - as_utc(moment)
    return float(max(delta.days, 0))


def customers_to_frame(
    customers: Iterable[Customer],
    as_of: Optional[datetime] = None,
    config: Optional[ScoringConfig] = None,
) -> pd.DataFrame:
    """
    Flatten customer records into the scoring input frame.

    Optional signals stay NaN so the components can apply their
    defaults (neutral NPS, stale login, partial usage).
    """
    config = config or DEFAULT_CONFIG
    as_of = as_of or utcnow()
    rows = []
    for customer in customers:
        usage = customer.feature_usage
        rows.append({
            "CUSTOMER_ID": customer.id,
            "NAME": customer.name,
            "PLAN": customer.plan,
            "HEALTH_SCORE": customer.health_score,
            "NPS_SCORE": np.nan if customer.nps_score is None else customer.nps_score,
            "SUPPORT_TICKETS": customer.support_tickets,
            "DAYS_SINCE_LOGIN": np.nan if customer.last_login is None
            else days_since(customer.last_login, as_of),
            "USAGE_TOTAL": np.nan if usage is None
            else usage.total(config.api_call_divisor),
            "MRR": customer.mrr,
            "CHURN_RISK": customer.churn_risk,
        })
    columns = [
        "CUSTOMER_ID", "NAME", "PLAN", "HEALTH_SCORE", "NPS_SCORE",
        "SUPPORT_TICKETS", "DAYS_SINCE_LOGIN", "USAGE_TOTAL", "MRR", "CHURN_RISK",
    ]
    return pd.DataFrame(rows, columns=columns)


def _describe(component: str, row: pd.Series) -> str:
    """Human-readable value for a component's raw signal."""
    if component == "health":
        return f"Health score {row['HEALTH_SCORE']:.0f}/100"
    if component == "nps":
        if pd.isna(row["NPS_SCORE"]):
            return "No NPS response"
        return f"NPS {row['NPS_SCORE']:.0f}/10"
    if component == "support":
        return f"{row['SUPPORT_TICKETS']:.0f} open support tickets"
    if component == "login":
        if pd.isna(row["DAYS_SINCE_LOGIN"]):
            return "No recorded login"
        return f"{row['DAYS_SINCE_LOGIN']:.0f} days since last login"
    if component == "usage":
        if pd.isna(row["USAGE_TOTAL"]):
            return "Usage not tracked"
        return f"Usage {row['USAGE_TOTAL']:.1f} of target"
    return ""


@dataclass
class ScoringResult:
    """
    Container for scoring results with component breakdown.

    Attributes:
        df: Input DataFrame with component points and scores added
        component_columns: Component point column names, in scoring order
        labels: Component name -> display label
        config: ScoringConfig used to score
    """

    df: pd.DataFrame
    component_columns: list[str]
    labels: dict[str, str]
    config: ScoringConfig

    def get_at_risk(self, min_level: str = "high") -> pd.DataFrame:
        """
        Get customers at or above a risk level.

        Args:
            min_level: Minimum risk level ("low", "medium", "high")

        Returns:
            DataFrame filtered to customers at or above the specified level
        """
        min_idx = RISK_LEVELS.index(min_level)
        return self.df[self.df["RISK_LEVEL"].isin(RISK_LEVELS[min_idx:])]

    def distribution(self) -> dict[str, int]:
        """Count customers per risk level."""
        counts = self.df["RISK_LEVEL"].value_counts()
        return {level: int(counts.get(level, 0)) for level in reversed(RISK_LEVELS)}

    def component_breakdown(self) -> pd.DataFrame:
        """
        Show average contribution of each component.

        Returns:
            DataFrame with component statistics
        """
        stats = {}
        for col in self.component_columns:
            component_name = col.replace("_points", "")
            stats[component_name] = {
                "mean": self.df[col].mean(),
                "max": self.df[col].max(),
                "min": self.df[col].min(),
            }
        return pd.DataFrame(stats).T.round(2)

    def factors_for(self, row: pd.Series) -> list[RiskFactor]:
        """Contributing factors for one scored row, strongest first."""
        points = [
            (col.replace("_points", ""), float(row[col]))
            for col in self.component_columns
        ]
        total = sum(p for _, p in points)
        if total <= 0:
            return []

        factors = []
        for name, value in sorted(points, key=lambda item: -item[1]):
            if value <= 0:
                continue
            factors.append(RiskFactor(
                feature=self.labels[name],
                importance=round(value / total, 4),
                value=_describe(name, row),
                description=self.config.component_actions.get(name, ""),
                points=round(value, 2),
            ))
        return factors

    def actions_for(self, factors: list[RiskFactor]) -> list[str]:
        """Recommended actions for the top factors."""
        if not factors:
            return [self.config.monitor_action]
        return [f.description for f in factors[: self.config.max_actions] if f.description]

    def to_predictions(self) -> list[Prediction]:
        """Convert every scored row to a Prediction."""
        predictions = []
        for _, row in self.df.iterrows():
            factors = self.factors_for(row)
            predictions.append(Prediction(
                customer_id=int(row["CUSTOMER_ID"]),
                churn_probability=float(row["CHURN_PROBABILITY"]),
                risk_level=row["RISK_LEVEL"],
                confidence=float(row["CONFIDENCE"]),
                top_factors=factors,
                recommended_actions=self.actions_for(factors),
            ))
        return predictions


class ChurnScorer:
    """
    Vectorized churn risk scoring engine.

    Calculates component points independently using pandas operations,
    then sums them into a 0-100 churn probability.

    Components:
    - Health deficit (0-40): Based on health score
    - NPS deficit (0-30): Based on NPS response
    - Support load (0-20): Based on open ticket count
    - Login recency (0-25): Based on days since last login
    - Usage deficit (0-30): Based on aggregate feature usage
    """

    REQUIRED_COLUMNS = [
        "CUSTOMER_ID",
        "HEALTH_SCORE",
        "NPS_SCORE",
        "SUPPORT_TICKETS",
        "DAYS_SINCE_LOGIN",
        "USAGE_TOTAL",
        "MRR",
        "CHURN_RISK",
    ]

    OPTIONAL_SIGNALS = {
        "nps": "NPS_SCORE",
        "login": "DAYS_SINCE_LOGIN",
        "usage": "USAGE_TOTAL",
    }

    def __init__(self, config: Optional[ScoringConfig] = None):
        """
        Initialize scorer with configuration.

        Args:
            config: ScoringConfig instance. Uses DEFAULT_CONFIG if None.
        """
        self.config = config or DEFAULT_CONFIG
        self._init_components()

    def _init_components(self) -> None:
        """Initialize all scoring components."""
        self.components = {
            "health": HealthScorer(self.config),
            "nps": NpsScorer(self.config),
            "support": SupportScorer(self.config),
            "login": LoginScorer(self.config),
            "usage": UsageScorer(self.config),
        }

    @property
    def labels(self) -> dict[str, str]:
        return {name: component.label for name, component in self.components.items()}

    def validate_input(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Validate required columns and value ranges.

        Args:
            df: Input DataFrame

        Returns:
            Validated (type-coerced) DataFrame

        Raises:
            ValueError: If required columns are missing
            SchemaError: If values violate SCORING_INPUT_SCHEMA
        """
        missing = set(self.REQUIRED_COLUMNS) - set(df.columns)
        if missing:
            raise ValueError(f"Missing required columns: {missing}")
        return SCORING_INPUT_SCHEMA.validate(df)

    def confidence(self, df: pd.DataFrame) -> pd.Series:
        """Confidence drops for every optional signal that is missing."""
        penalty = pd.Series(0.0, index=df.index)
        for name, column in self.OPTIONAL_SIGNALS.items():
            weight = self.config.missing_field_penalties.get(name, 0.0)
            penalty += df[column].isna().astype(float) * weight
        return (self.config.base_confidence - penalty).clip(
            lower=self.config.min_confidence
        ).round(4)

    def score(self, df: pd.DataFrame) -> ScoringResult:
        """
        Calculate churn probability for all customers.

        Args:
            df: DataFrame with required columns (see customers_to_frame)

        Returns:
            ScoringResult with probabilities and component breakdown

        Example:
            >>> scorer = ChurnScorer()
            >>> result = scorer.score(customers_to_frame(customers))
            >>> at_risk = result.get_at_risk("medium")
        """
        result = self.validate_input(df.copy())

        # Calculate all component points (vectorized)
        component_cols = []
        for name, component in self.components.items():
            col_name = f"{name}_points"
            result[col_name] = component.score(result)
            component_cols.append(col_name)

        # Sum, clamp to [0, 100] and round before tiering so the
        # displayed value and the tier always agree
        total = result[component_cols].sum(axis=1)
        result["CHURN_PROBABILITY"] = total.clip(
            lower=0.0, upper=self.config.max_probability
        ).round(2)

        result["RISK_LEVEL"] = result["CHURN_PROBABILITY"].apply(
            self.config.get_risk_level
        ).astype(object)
        result["CONFIDENCE"] = self.confidence(result)

        SCORING_OUTPUT_SCHEMA.validate(result)
        return ScoringResult(
            df=result,
            component_columns=component_cols,
            labels=self.labels,
            config=self.config,
        )

    def score_customers(
        self,
        customers: Iterable[Customer],
        as_of: Optional[datetime] = None,
    ) -> ScoringResult:
        """Score a batch of customer records."""
        return self.score(customers_to_frame(customers, as_of, self.config))

    def score_customer(
        self,
        customer: Customer,
        as_of: Optional[datetime] = None,
    ) -> Prediction:
        """
        Score a single customer (convenience method).

        Args:
            customer: Customer record
            as_of: Reference time for login recency (default: now, UTC)

        Returns:
            Prediction with probability, tier, factors and actions
        """
        return self.score_customers([customer], as_of).to_predictions()[0]

    def fallback(self, customer: Customer) -> Prediction:
        """
        Static-risk prediction used when scoring fails.

        Uses the customer's stored churn_risk (0-1) instead of the
        weighted components.
        """
        probability = round(min(max(customer.churn_risk, 0.0), 1.0) * 100, 2)
        return Prediction(
            customer_id=customer.id,
            churn_probability=probability,
            risk_level=self.config.get_risk_level(probability),
            confidence=self.config.fallback_confidence,
            top_factors=[],
            recommended_actions=[self.config.monitor_action],
            source="fallback",
        )


def generate_sample_customers(
    n_customers: int = 100,
    seed: int = 42,
    as_of: Optional[datetime] = None,
) -> list[Customer]:
    """
    Generate realistic sample customers for testing.

    Distributions:
    - Plans: Starter 45%, Professional 35%, Enterprise 20%
    - ~15% never answered NPS, ~5% never logged in
    - Health scores centered around 65
    """
    rng = np.random.default_rng(seed)
    as_of = as_of or utcnow()

    plans = rng.choice(
        ["Starter", "Professional", "Enterprise"],
        size=n_customers,
        p=[0.45, 0.35, 0.20],
    )
    plan_mrr = {"Starter": 250.0, "Professional": 1500.0, "Enterprise": 8000.0}

    health = np.clip(rng.normal(loc=65, scale=20, size=n_customers), 0, 100).astype(int)
    nps = rng.integers(0, 11, size=n_customers)
    no_nps = rng.random(n_customers) < 0.15
    tickets = rng.poisson(lam=2.5, size=n_customers)
    idle_days = rng.exponential(scale=10, size=n_customers).astype(int)
    never_logged_in = rng.random(n_customers) < 0.05
    logins = rng.integers(0, 40, size=n_customers)
    features = rng.integers(0, 15, size=n_customers)
    api_calls = rng.integers(0, 2000, size=n_customers)

    customers = []
    for i in range(n_customers):
        plan = str(plans[i])
        customers.append(Customer(
            id=i + 1,
            name=f"Customer {i + 1:04d}",
            email=f"customer{i + 1:04d}@example.com",
            plan=plan,
            health_score=int(health[i]),
            nps_score=None if no_nps[i] else int(nps[i]),
            support_tickets=int(tickets[i]),
            last_login=None if never_logged_in[i]
            else as_of - timedelta(days=int(idle_days[i])),
            signup_date=as_of - timedelta(days=int(30 + 10 * idle_days[i] + i)),
            feature_usage=FeatureUsage(
                login=int(logins[i]),
                features=int(features[i]),
                api_calls=int(api_calls[i]),
            ),
            mrr=plan_mrr[plan] * float(rng.uniform(0.8, 1.2)),
            churn_risk=round(float(1 - health[i] / 100), 2),
        ))
    return customers
