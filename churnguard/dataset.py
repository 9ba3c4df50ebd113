"""
Static dataset loading.

The mock dataset is a JSON document with five sections:

    {
        "customers": [...],
        "churn_causes": [...],
        "interventions": [...],
        "integrations": [...],
        "dashboard_settings": {...}
    }

Records are validated with pydantic before they become domain
dataclasses. Customer timestamps may be absolute (``last_login``) or
relative to load time (``last_login_days_ago``) so the bundled demo
data never goes stale.
"""

import json
from collections import Counter
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from importlib import resources
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from .exceptions import DatasetError
from .models import (
    ChurnCause,
    Customer,
    DashboardSettings,
    FeatureUsage,
    Integration,
    Intervention,
)
from .scorer import utcnow


class FeatureUsageRecord(BaseModel):
    login: int = Field(0, ge=0)
    features: int = Field(0, ge=0)
    api_calls: int = Field(0, ge=0)


class CustomerRecord(BaseModel):
    id: int
    name: str
    plan: str
    health_score: int = Field(..., ge=0, le=100)
    support_tickets: int = Field(0, ge=0)
    mrr: float = Field(..., ge=0)
    email: Optional[str] = None
    nps_score: Optional[int] = Field(None, ge=0, le=10)
    last_login: Optional[datetime] = None
    last_login_days_ago: Optional[int] = Field(None, ge=0)
    signup_date: Optional[datetime] = None
    signup_days_ago: Optional[int] = Field(None, ge=0)
    feature_usage: Optional[FeatureUsageRecord] = None
    churn_risk: float = Field(0.0, ge=0, le=1)

    def to_customer(self, now: datetime) -> Customer:
        last_login = self.last_login
        if last_login is None and self.last_login_days_ago is not None:
            last_login = now - timedelta(days=self.last_login_days_ago)
        signup_date = self.signup_date
        if signup_date is None and self.signup_days_ago is not None:
            signup_date = now - timedelta(days=self.signup_days_ago)
        usage = self.feature_usage
        return Customer(
            id=self.id,
            name=self.name,
            email=self.email,
            plan=self.plan,
            health_score=self.health_score,
            nps_score=self.nps_score,
            support_tickets=self.support_tickets,
            last_login=last_login,
            signup_date=signup_date,
            feature_usage=FeatureUsage(**usage.model_dump()) if usage else None,
            mrr=self.mrr,
            churn_risk=self.churn_risk,
        )


class ChurnCauseRecord(BaseModel):
    id: int
    name: str
    description: str
    impact: float
    category: str
    icon: str = ""


class InterventionRecord(BaseModel):
    id: int
    customer_id: int
    type: str
    status: Literal["active", "completed"] = "active"
    priority: Literal["low", "medium", "high"] = "medium"
    assigned_csm: str = "AI Assistant"
    description: str = ""
    next_action: str = ""
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class IntegrationRecord(BaseModel):
    id: int
    name: str
    type: str
    status: Literal["connected", "syncing", "error", "disconnected"] = "disconnected"
    last_sync_at: Optional[datetime] = None
    last_sync_minutes_ago: Optional[int] = Field(None, ge=0)

    def to_integration(self, now: datetime) -> Integration:
        last_sync_at = self.last_sync_at
        if last_sync_at is None and self.last_sync_minutes_ago is not None:
            last_sync_at = now - timedelta(minutes=self.last_sync_minutes_ago)
        return Integration(
            id=self.id,
            name=self.name,
            type=self.type,
            status=self.status,
            last_sync_at=last_sync_at,
        )


class DashboardSettingsRecord(BaseModel):
    churn_change: float = 0.0
    risk_change: float = 0.0
    revenue_increase: float = 0.0
    revenue_per_completed_intervention: float = 5000.0
    chart_labels: list[str] = Field(
        default_factory=lambda: list(DashboardSettings().chart_labels)
    )


class DatasetRecord(BaseModel):
    customers: list[CustomerRecord] = Field(default_factory=list)
    churn_causes: list[ChurnCauseRecord] = Field(default_factory=list)
    interventions: list[InterventionRecord] = Field(default_factory=list)
    integrations: list[IntegrationRecord] = Field(default_factory=list)
    dashboard_settings: DashboardSettingsRecord = Field(
        default_factory=DashboardSettingsRecord
    )


@dataclass
class Dataset:
    """In-memory contents of the mock data store."""

    customers: list[Customer] = field(default_factory=list)
    churn_causes: list[ChurnCause] = field(default_factory=list)
    interventions: list[Intervention] = field(default_factory=list)
    integrations: list[Integration] = field(default_factory=list)
    settings: DashboardSettings = field(default_factory=DashboardSettings)


def _check_unique(section: str, ids: list[int]) -> None:
    duplicates = sorted(i for i, n in Counter(ids).items() if n > 1)
    if duplicates:
        raise DatasetError(f"Invalid dataset: duplicate {section} IDs {duplicates}")


def parse_dataset(data: dict, now: Optional[datetime] = None) -> Dataset:
    """
    Validate a raw dataset document and build domain records.

    Raises:
        DatasetError: If the document fails validation or has duplicate IDs
    """
    now = now or utcnow()
    try:
        record = DatasetRecord.model_validate(data)
    except ValidationError as e:
        raise DatasetError(f"Invalid dataset: {e}") from e

    _check_unique("customer", [c.id for c in record.customers])
    _check_unique("churn cause", [c.id for c in record.churn_causes])
    _check_unique("intervention", [i.id for i in record.interventions])
    _check_unique("integration", [i.id for i in record.integrations])

    known = {c.id for c in record.customers}
    orphans = [i.id for i in record.interventions if i.customer_id not in known]
    if orphans:
        raise DatasetError(f"Invalid dataset: interventions {orphans} reference unknown customers")

    interventions = []
    for item in record.interventions:
        values = item.model_dump()
        values["created_at"] = values["created_at"] or now
        if values["status"] == "completed" and values["completed_at"] is None:
            values["completed_at"] = values["created_at"]
        if values["status"] == "active":
            values["completed_at"] = None
        interventions.append(Intervention(**values))

    return Dataset(
        customers=[c.to_customer(now) for c in record.customers],
        churn_causes=[ChurnCause(**c.model_dump()) for c in record.churn_causes],
        interventions=interventions,
        integrations=[i.to_integration(now) for i in record.integrations],
        settings=DashboardSettings(**record.dashboard_settings.model_dump()),
    )


def load_dataset(path: Optional[Path | str] = None) -> Dataset:
    """
    Load a dataset from a JSON file.

    Args:
        path: JSON file path. Uses the bundled mock data if None.
    """
    if path is None:
        source = resources.files("churnguard").joinpath("data/mock_data.json")
        text = source.read_text(encoding="utf-8")
        label = "bundled mock data"
    else:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise DatasetError(f"Cannot read dataset {path}: {e}") from e
        label = str(path)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DatasetError(f"Dataset {label} is not valid JSON: {e}") from e

    dataset = parse_dataset(data)
    logger.info(
        f"Loaded {len(dataset.customers)} customers, "
        f"{len(dataset.interventions)} interventions from {label}"
    )
    return dataset


def dump_dataset(dataset: Dataset) -> dict:
    """Serialize a dataset back to its JSON document shape."""
    record = DatasetRecord.model_validate({
        "customers": [asdict(c) for c in dataset.customers],
        "churn_causes": [asdict(c) for c in dataset.churn_causes],
        "interventions": [asdict(i) for i in dataset.interventions],
        "integrations": [asdict(i) for i in dataset.integrations],
        "dashboard_settings": asdict(dataset.settings),
    })
    return record.model_dump(
        mode="json",
        exclude={
            "customers": {"__all__": {"last_login_days_ago", "signup_days_ago"}},
            "integrations": {"__all__": {"last_sync_minutes_ago"}},
        },
    )
