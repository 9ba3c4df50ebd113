"""
ChurnGuard

Rule-based churn risk scoring and retention tracking for SaaS
customer accounts.
"""

__version__ = "1.0.0"

from .scorer import ChurnScorer, ScoringResult
from .config import ScoringConfig, RecommenderConfig
from .recommender import InterventionRecommender
from .repository import CustomerRepository, InMemoryRepository
from .engine import ChurnEngine

__all__ = [
    "ChurnScorer",
    "ScoringResult",
    "ScoringConfig",
    "RecommenderConfig",
    "InterventionRecommender",
    "CustomerRepository",
    "InMemoryRepository",
    "ChurnEngine",
]
