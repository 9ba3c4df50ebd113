"""NPS deficit component."""

import pandas as pd

from .base import BaseScorer


class NpsScorer(BaseScorer):
    """
    Score based on Net Promoter Score response (0-10).

    Detractors carry the most risk. Customers who never answered the
    survey are scored as passives (the neutral midpoint) rather than
    being treated as promoters or detractors.

    Points:
    - (10 - nps_score) * nps_weight, capped at nps_cap
    - missing NPS: scored at nps_neutral (15 points by default)
    """

    name = "nps"
    label = "NPS Score"

    @property
    def required_columns(self) -> list[str]:
        return ["NPS_SCORE"]

    @property
    def cap(self) -> float:
        return self.config.nps_cap

    def score(self, df: pd.DataFrame) -> pd.Series:
        """Calculate NPS deficit points."""
        self.validate(df)
        nps = (
            df["NPS_SCORE"]
            .astype(float)
            .fillna(self.config.nps_neutral)
            .clip(0, self.config.nps_max)
        )
        return self._clip((self.config.nps_max - nps) * self.config.nps_weight, df.index)
