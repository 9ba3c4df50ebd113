"""Login recency component."""

import pandas as pd

from .base import BaseScorer


class LoginScorer(BaseScorer):
    """
    Score based on days since the customer's last login.

    Recency is an early warning: usage usually stops before the
    cancellation arrives. Customers with no recorded login are
    treated as stale.

    Points:
    - days_since_login * login_weight, capped at login_cap
    - ~17+ days idle: 25 points (default config)
    - never logged in: missing_login_days, i.e. the full cap
    """

    name = "login"
    label = "Last Login"

    @property
    def required_columns(self) -> list[str]:
        return ["DAYS_SINCE_LOGIN"]

    @property
    def cap(self) -> float:
        return self.config.login_cap

    def score(self, df: pd.DataFrame) -> pd.Series:
        """Calculate login recency points."""
        self.validate(df)
        days = (
            df["DAYS_SINCE_LOGIN"]
            .astype(float)
            .fillna(self.config.missing_login_days)
        )
        return self._clip(days * self.config.login_weight, df.index)
