"""Health score deficit component."""

import pandas as pd

from .base import BaseScorer


class HealthScorer(BaseScorer):
    """
    Score based on the composite health score (0-100).

    Health is the strongest single engagement signal: every point
    below 100 adds risk at a fixed rate.

    Points:
    - (100 - health_score) * health_weight, capped at health_cap
    - health 100: 0 points
    - health 0: 40 points (default config)
    """

    name = "health"
    label = "Health Score"

    @property
    def required_columns(self) -> list[str]:
        return ["HEALTH_SCORE"]

    @property
    def cap(self) -> float:
        return self.config.health_cap

    def score(self, df: pd.DataFrame) -> pd.Series:
        """Calculate health deficit points."""
        self.validate(df)
        health = df["HEALTH_SCORE"].astype(float).clip(0, 100)
        return self._clip((100 - health) * self.config.health_weight, df.index)
