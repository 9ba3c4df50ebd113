"""Scoring components for churn risk."""

from .base import BaseScorer
from .health import HealthScorer
from .nps import NpsScorer
from .support import SupportScorer
from .login import LoginScorer
from .usage import UsageScorer

__all__ = [
    "BaseScorer",
    "HealthScorer",
    "NpsScorer",
    "SupportScorer",
    "LoginScorer",
    "UsageScorer",
]
