"""Base transformer class for page transformations."""

from abc import ABC, abstractmethod

import pandas as pd


class BaseTransformer(ABC):
    """Abstract base class for transformers."""

    @abstractmethod
    def transform(self, df: pd.DataFrame, **kwargs) -> pd.DataFrame:
        """
        Transform a DataFrame of raw records.

        Args:
            df: Input DataFrame
            **kwargs: Additional transformation parameters

        Returns:
            Transformed DataFrame
        """
        pass
