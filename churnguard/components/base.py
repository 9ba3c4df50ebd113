"""Base class for scoring components."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from ..config import ScoringConfig


class BaseScorer(ABC):
    """
    Abstract base class for scoring components.

    Each component turns a single customer signal into risk points
    using vectorized pandas operations. Points are clipped to
    [0, cap] so one signal can never dominate the total.
    """

    name: str = "base"
    label: str = "Base"

    def __init__(self, config: "ScoringConfig"):
        """
        Initialize scorer with configuration.

        Args:
            config: ScoringConfig instance with weights and caps
        """
        self.config = config

    @abstractmethod
    def score(self, df: pd.DataFrame) -> pd.Series:
        """
        Calculate component points for all rows.

        Must be implemented by subclasses using vectorized operations.

        Args:
            df: DataFrame with required columns

        Returns:
            Series of float points in [0, cap]
        """
        pass

    @property
    @abstractmethod
    def required_columns(self) -> list[str]:
        """List of columns required by this scorer."""
        pass

    @property
    @abstractmethod
    def cap(self) -> float:
        """Maximum points this component can contribute."""
        pass

    def validate(self, df: pd.DataFrame) -> None:
        """Validate required columns exist."""
        missing = set(self.required_columns) - set(df.columns)
        if missing:
            raise ValueError(
                f"{self.__class__.__name__} requires columns: {missing}"
            )

    def _clip(self, raw: pd.Series, index: pd.Index) -> pd.Series:
        return pd.Series(
            np.clip(raw.astype(float).to_numpy(), 0.0, self.cap),
            index=index,
            dtype=float,
        )
