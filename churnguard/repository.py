"""
Repository interface for customer, cause, intervention and integration records.

The engine receives a repository by reference instead of reaching for
a module-level store, so a database-backed implementation can replace
InMemoryRepository without touching the scoring logic.
"""

import copy
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from loguru import logger

from .dataset import Dataset, dump_dataset, load_dataset
from .exceptions import CustomerNotFoundError, InterventionNotFoundError
from .models import (
    ChurnCause,
    Customer,
    DashboardSettings,
    Integration,
    Intervention,
    NewIntervention,
)
from .scorer import utcnow


class CustomerRepository(ABC):
    """Read/write access to the dashboard's records."""

    @abstractmethod
    def get_customers(self) -> list[Customer]:
        pass

    @abstractmethod
    def get_customer(self, customer_id: int) -> Customer:
        """Raises CustomerNotFoundError for unknown IDs."""
        pass

    @abstractmethod
    def get_churn_causes(self) -> list[ChurnCause]:
        pass

    @abstractmethod
    def get_interventions(self) -> list[Intervention]:
        pass

    @abstractmethod
    def get_intervention(self, intervention_id: int) -> Intervention:
        """Raises InterventionNotFoundError for unknown IDs."""
        pass

    @abstractmethod
    def create_intervention(self, data: NewIntervention) -> Intervention:
        pass

    @abstractmethod
    def complete_intervention(self, intervention_id: int) -> Intervention:
        """Mark an intervention completed. Repeated calls are no-ops."""
        pass

    @abstractmethod
    def get_integrations(self) -> list[Integration]:
        pass

    @abstractmethod
    def mark_alert_read(self, alert_id: int) -> None:
        pass

    @abstractmethod
    def read_alert_ids(self) -> set[int]:
        """IDs of alerts marked read since the last load."""
        pass

    @abstractmethod
    def get_settings(self) -> DashboardSettings:
        pass

    @abstractmethod
    def reload(self) -> None:
        """Reload records from the repository's source."""
        pass

    @abstractmethod
    def replace_dataset(self, dataset: Dataset) -> None:
        pass

    @abstractmethod
    def snapshot(self) -> dict:
        """Current records as a JSON-ready document."""
        pass

    def has_customer(self, customer_id: int) -> bool:
        try:
            self.get_customer(customer_id)
        except CustomerNotFoundError:
            return False
        return True


class InMemoryRepository(CustomerRepository):
    """
    Repository backed by an injected Dataset.

    Args:
        dataset: Initial records
        source: JSON file to re-read on reload(). If None, reload()
            restores the initial dataset.
    """

    def __init__(self, dataset: Dataset, source: Optional[Path | str] = None):
        self._lock = threading.Lock()
        self._source = Path(source) if source is not None else None
        self._initial = copy.deepcopy(dataset)
        self._load(dataset)

    @classmethod
    def from_file(cls, path: Optional[Path | str] = None) -> "InMemoryRepository":
        """Build a repository from a JSON dataset (bundled data if None)."""
        return cls(load_dataset(path), source=path)

    def _load(self, dataset: Dataset) -> None:
        self._customers = {c.id: c for c in dataset.customers}
        self._causes = list(dataset.churn_causes)
        self._interventions = {i.id: i for i in dataset.interventions}
        self._integrations = list(dataset.integrations)
        self._read_alerts: set[int] = set()
        self._settings = dataset.settings
        self._next_intervention_id = max(self._interventions, default=0) + 1

    def get_customers(self) -> list[Customer]:
        return list(self._customers.values())

    def get_customer(self, customer_id: int) -> Customer:
        try:
            return self._customers[customer_id]
        except KeyError:
            raise CustomerNotFoundError(customer_id) from None

    def get_churn_causes(self) -> list[ChurnCause]:
        return list(self._causes)

    def get_interventions(self) -> list[Intervention]:
        return list(self._interventions.values())

    def get_intervention(self, intervention_id: int) -> Intervention:
        try:
            return self._interventions[intervention_id]
        except KeyError:
            raise InterventionNotFoundError(intervention_id) from None

    def create_intervention(self, data: NewIntervention) -> Intervention:
        self.get_customer(data.customer_id)
        now = utcnow()
        with self._lock:
            intervention = Intervention(
                id=self._next_intervention_id,
                customer_id=data.customer_id,
                type=data.type,
                status=data.status,
                priority=data.priority,
                assigned_csm=data.assigned_csm,
                description=data.description,
                next_action=data.next_action,
                due_date=data.due_date,
                created_at=now,
                completed_at=now if data.status == "completed" else None,
            )
            self._interventions[intervention.id] = intervention
            self._next_intervention_id += 1
        logger.debug(f"Created intervention {intervention.id} ({intervention.type})")
        return intervention

    def complete_intervention(self, intervention_id: int) -> Intervention:
        with self._lock:
            current = self.get_intervention(intervention_id)
            completed = current.complete(utcnow())
            if completed is not current:
                self._interventions[intervention_id] = completed
                logger.info(f"Intervention {intervention_id} completed")
        return completed

    def get_integrations(self) -> list[Integration]:
        return list(self._integrations)

    def mark_alert_read(self, alert_id: int) -> None:
        with self._lock:
            self._read_alerts.add(alert_id)

    def read_alert_ids(self) -> set[int]:
        return set(self._read_alerts)

    def get_settings(self) -> DashboardSettings:
        return self._settings

    def reload(self) -> None:
        dataset = load_dataset(self._source) if self._source else copy.deepcopy(self._initial)
        with self._lock:
            self._load(dataset)
        logger.info("Repository reloaded")

    def replace_dataset(self, dataset: Dataset) -> None:
        with self._lock:
            self._load(dataset)
            # Uploaded data becomes the reload baseline
            self._initial = copy.deepcopy(dataset)
            self._source = None
        logger.info(f"Repository replaced with {len(dataset.customers)} customers")

    def snapshot(self) -> dict:
        return dump_dataset(Dataset(
            customers=self.get_customers(),
            churn_causes=self.get_churn_causes(),
            interventions=self.get_interventions(),
            integrations=self.get_integrations(),
            settings=self._settings,
        ))
