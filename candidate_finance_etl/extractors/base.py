"""Base extractor class for FEC data sources."""

from abc import ABC, abstractmethod

import pandas as pd


class BaseExtractor(ABC):
    """Abstract base class for extractors."""

    @abstractmethod
    def extract(self, **kwargs) -> pd.DataFrame:
        """
        Extract data from source.

        Returns:
            DataFrame containing extracted data.
        """
        pass

    def get_source_name(self) -> str:
        """Source system identifier."""
        return "FEC"
