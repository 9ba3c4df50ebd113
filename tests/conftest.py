"""
Pytest fixtures for ChurnGuard tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from churnguard import ChurnEngine, ChurnScorer, InMemoryRepository, ScoringConfig
from churnguard.dataset import load_dataset
from churnguard.models import Customer, FeatureUsage
from churnguard.scorer import generate_sample_customers

AS_OF = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def make_customer(
    customer_id: int = 1,
    health_score: int = 70,
    nps_score=7,
    support_tickets: int = 1,
    login_days_ago=2,
    usage=(20, 8, 500),
    mrr: float = 1500.0,
    churn_risk: float = 0.3,
    plan: str = "Professional",
    signup_days_ago=200,
) -> Customer:
    """Customer with every signal set relative to AS_OF unless overridden."""
    return Customer(
        id=customer_id,
        name=f"Test Customer {customer_id}",
        email=f"test{customer_id}@example.com",
        plan=plan,
        health_score=health_score,
        nps_score=nps_score,
        support_tickets=support_tickets,
        last_login=None if login_days_ago is None else AS_OF - timedelta(days=login_days_ago),
        signup_date=None if signup_days_ago is None else AS_OF - timedelta(days=signup_days_ago),
        feature_usage=None if usage is None else FeatureUsage(*usage),
        mrr=mrr,
        churn_risk=churn_risk,
    )


@pytest.fixture
def customer_factory():
    """Build customers with signals relative to the fixed reference time."""
    return make_customer


@pytest.fixture
def as_of():
    """Fixed reference time for login recency."""
    return AS_OF


@pytest.fixture
def default_config():
    """Default scoring configuration."""
    return ScoringConfig()


@pytest.fixture
def scorer(default_config):
    """ChurnScorer with default config."""
    return ChurnScorer(default_config)


@pytest.fixture
def sample_customers():
    """100 sample customers with realistic distributions."""
    return generate_sample_customers(n_customers=100, seed=42, as_of=AS_OF)


@pytest.fixture
def edge_cases():
    """Specific edge cases for testing boundary conditions."""
    return [
        # Every signal at its worst: clamps to 100
        make_customer(1, health_score=0, nps_score=0, support_tickets=15,
                      login_days_ago=90, usage=(0, 0, 0)),
        # Every signal at its best: 0 points
        make_customer(2, health_score=100, nps_score=10, support_tickets=0,
                      login_days_ago=0, usage=(30, 10, 1000)),
        # One usage unit short of the high tier: 79.99
        make_customer(3, health_score=0, nps_score=0, support_tickets=0,
                      login_days_ago=0, usage=(20, 0, 1)),
        # Exactly on the high tier boundary: 80.00
        make_customer(4, health_score=0, nps_score=0, support_tickets=0,
                      login_days_ago=0, usage=(20, 0, 0)),
        # All optional signals missing
        make_customer(5, health_score=50, nps_score=None, support_tickets=2,
                      login_days_ago=None, usage=None),
    ]


@pytest.fixture
def single_customer():
    """Single customer for simple tests."""
    return make_customer()


@pytest.fixture
def dataset():
    """Bundled mock dataset."""
    return load_dataset()


@pytest.fixture
def repository(dataset):
    """In-memory repository over the bundled mock dataset."""
    return InMemoryRepository(dataset)


@pytest.fixture
def engine(repository):
    """ChurnEngine over the bundled mock dataset."""
    return ChurnEngine(repository)


@pytest.fixture
def client(engine):
    """API test client."""
    from fastapi.testclient import TestClient

    from churnguard.api import create_app

    return TestClient(create_app(engine))
