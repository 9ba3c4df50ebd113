"""Exceptions raised by the churn engine and repository."""


class ChurnGuardError(Exception):
    """Base class for all ChurnGuard errors."""


class NotFoundError(ChurnGuardError, LookupError):
    """A requested record does not exist."""

    kind = "Record"

    def __init__(self, record_id: int):
        self.record_id = record_id
        super().__init__(f"{self.kind} {record_id} not found")


class CustomerNotFoundError(NotFoundError):
    kind = "Customer"


class InterventionNotFoundError(NotFoundError):
    kind = "Intervention"


class DatasetError(ChurnGuardError, ValueError):
    """A dataset could not be parsed or failed validation."""


class AlertNotFoundError(NotFoundError):
    kind = "Alert"


class ConfigError(ChurnGuardError, ValueError):
    """A scoring config file could not be loaded."""
