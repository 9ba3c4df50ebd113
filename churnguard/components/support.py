"""Support ticket load component."""

import pandas as pd

from .base import BaseScorer


class SupportScorer(BaseScorer):
    """
    Score based on open support ticket count.

    Each ticket signals friction, but the contribution is capped so a
    noisy account cannot max out the score on tickets alone.

    Points:
    - support_tickets * support_ticket_weight, capped at support_ticket_cap
    - 10+ tickets: 20 points (default config)
    """

    name = "support"
    label = "Support Tickets"

    @property
    def required_columns(self) -> list[str]:
        return ["SUPPORT_TICKETS"]

    @property
    def cap(self) -> float:
        return self.config.support_ticket_cap

    def score(self, df: pd.DataFrame) -> pd.Series:
        """Calculate support load points."""
        self.validate(df)
        tickets = df["SUPPORT_TICKETS"].astype(float).fillna(0)
        return self._clip(tickets * self.config.support_ticket_weight, df.index)
