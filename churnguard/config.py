"""
Scoring configuration for the churn risk engine.

All weights, caps, defaults and thresholds are defined here for easy tuning.
Each component turns one customer signal into risk points:

- Health deficit:   (100 - health_score) * 0.4   capped at 40
- NPS deficit:      (10 - nps_score) * 3.0       capped at 30
- Support load:     support_tickets * 2.0        capped at 20
- Login recency:    days_since_login * 1.5       capped at 25
- Usage deficit:    (30 - usage_total) * 1.0     capped at 30

The summed points are clamped to a 0-100 churn probability.
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from .exceptions import ConfigError

RISK_LEVEL_NAMES = ("high", "medium", "low")


@dataclass
class ScoringConfig:
    """
    Configuration for all scoring components.

    Load from YAML:
        config = ScoringConfig.from_yaml("config/scoring.yaml")

    Override programmatically:
        config = ScoringConfig(health_weight=0.5, login_cap=30)
    """

    # === Health deficit (0-40 points) ===
    health_weight: float = 0.4
    health_cap: float = 40.0

    # === NPS deficit (0-30 points) ===
    nps_weight: float = 3.0
    nps_cap: float = 30.0
    nps_max: float = 10.0
    nps_neutral: float = 5.0  # Missing NPS scores as a passive respondent

    # === Support load (0-20 points) ===
    support_ticket_weight: float = 2.0
    support_ticket_cap: float = 20.0

    # === Login recency (0-25 points) ===
    login_weight: float = 1.5
    login_cap: float = 25.0
    missing_login_days: int = 365  # Never logged in counts as stale

    # === Usage deficit (0-30 points) ===
    usage_target: float = 30.0
    usage_weight: float = 1.0
    usage_cap: float = 30.0
    api_call_divisor: float = 100.0
    missing_usage_total: float = 15.0  # Half the target when counters are absent

    # === Risk tiers (churn probability, inclusive lower bounds) ===
    risk_levels: List[Tuple[str, float]] = field(default_factory=lambda: [
        ("high", 80.0),
        ("medium", 50.0),
        ("low", 0.0),
    ])

    # === Confidence ===
    base_confidence: float = 0.95
    min_confidence: float = 0.5
    missing_field_penalties: Dict[str, float] = field(default_factory=lambda: {
        "nps": 0.10,
        "login": 0.10,
        "usage": 0.05,
    })
    fallback_confidence: float = 0.75

    # === Recommended actions per component ===
    component_actions: Dict[str, str] = field(default_factory=lambda: {
        "health": "Schedule a customer success review to lift product adoption",
        "nps": "Follow up on NPS feedback and close the loop with the customer",
        "support": "Escalate open support tickets and review resolution times",
        "login": "Launch a re-engagement campaign for inactive users",
        "usage": "Run guided onboarding for under-used features",
    })
    monitor_action: str = "Monitor customer engagement closely"
    max_actions: int = 3

    # === Metadata ===
    max_probability: float = 100.0
    version: str = "1.0.0"

    def __post_init__(self):
        names = [level for level, _ in self.risk_levels]
        if sorted(names) != sorted(RISK_LEVEL_NAMES):
            raise ValueError(
                f"risk_levels must name exactly {', '.join(RISK_LEVEL_NAMES)}; got {names}"
            )

    def get_risk_level(self, probability: float) -> str:
        """Map a 0-100 churn probability to a risk tier."""
        for level, lower in self.risk_levels:
            if probability >= lower:
                return level
        return self.risk_levels[-1][0]

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ScoringConfig":
        """
        Load configuration from YAML file.

        Raises:
            ConfigError: If the file is unreadable or holds invalid settings
        """
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            if "risk_levels" in data:
                data["risk_levels"] = [tuple(item) for item in data["risk_levels"]]
            return cls(**data)
        except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid scoring config {path}: {e}") from e

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(self)
        data["risk_levels"] = [list(item) for item in self.risk_levels]
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class RecommenderConfig:
    """
    Lookup tables for the intervention recommender.

    Success probability is the factor's base rate times the MRR band
    multiplier. Revenue saved projects MRR over the band's horizon.
    """

    # Dominant risk component -> intervention type
    factor_interventions: Dict[str, str] = field(default_factory=lambda: {
        "health": "Executive Check-in",
        "nps": "Account Review",
        "support": "Support Training",
        "login": "Engagement Boost",
        "usage": "Feature Adoption",
    })
    default_intervention: str = "Account Review"

    # Playbook IDs accepted by the trigger endpoint
    playbooks: Dict[int, str] = field(default_factory=lambda: {
        1: "Executive Check-in",
        2: "Payment Recovery",
        3: "Support Training",
        4: "Feature Adoption",
        5: "Account Review",
        6: "Engagement Boost",
    })
    unknown_playbook: str = "General Intervention"

    intervention_descriptions: Dict[str, str] = field(default_factory=lambda: {
        "Executive Check-in": "Executive sponsor call to realign on goals and value",
        "Payment Recovery": "Reach out about failed payments and offer billing options",
        "Support Training": "Dedicated training session to reduce support dependency",
        "Feature Adoption": "Guided walkthrough of features the account is not using",
        "Account Review": "Structured account review to surface open concerns",
        "Engagement Boost": "Targeted re-engagement sequence for inactive users",
    })

    base_success_rates: Dict[str, float] = field(default_factory=lambda: {
        "health": 0.62,
        "nps": 0.55,
        "support": 0.71,
        "login": 0.58,
        "usage": 0.66,
    })
    default_success_rate: float = 0.5
    max_success_rate: float = 0.95

    # MRR bands: (name, exclusive upper bound); last band is open-ended
    mrr_bands: List[Tuple[str, Optional[float]]] = field(default_factory=lambda: [
        ("small", 1000.0),
        ("mid", 5000.0),
        ("large", None),
    ])
    band_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "small": 0.9,
        "mid": 1.0,
        "large": 1.1,
    })
    band_horizon_months: Dict[str, int] = field(default_factory=lambda: {
        "small": 6,
        "mid": 12,
        "large": 18,
    })

    def get_mrr_band(self, mrr: float) -> str:
        """Map monthly recurring revenue to its band name."""
        for name, upper in self.mrr_bands:
            if upper is None or mrr < upper:
                return name
        return self.mrr_bands[-1][0]


# Default configuration instances
DEFAULT_CONFIG = ScoringConfig()
DEFAULT_RECOMMENDER_CONFIG = RecommenderConfig()
