"""Feature usage deficit component."""

import pandas as pd

from .base import BaseScorer


class UsageScorer(BaseScorer):
    """
    Score based on aggregate feature usage.

    USAGE_TOTAL is login count + features used + api_calls / 100.
    Accounts below the usage target accumulate risk for every
    missing unit of usage.

    Points:
    - (usage_target - usage_total) * usage_weight, capped at usage_cap
    - usage at or above target: 0 points
    - no usage counters: scored at missing_usage_total
    """

    name = "usage"
    label = "Feature Usage"

    @property
    def required_columns(self) -> list[str]:
        return ["USAGE_TOTAL"]

    @property
    def cap(self) -> float:
        return self.config.usage_cap

    def score(self, df: pd.DataFrame) -> pd.Series:
        """Calculate usage deficit points."""
        self.validate(df)
        usage = df["USAGE_TOTAL"].astype(float).fillna(self.config.missing_usage_total)
        deficit = (self.config.usage_target - usage) * self.config.usage_weight
        return self._clip(deficit, df.index)
