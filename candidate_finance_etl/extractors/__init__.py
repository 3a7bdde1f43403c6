"""Extractors for FEC data."""

from candidate_finance_etl.extractors.fec import (
    FECCandidateExtractor,
    FECCommitteeExtractor,
    FECScheduleAExtractor,
)

__all__ = [
    "FECScheduleAExtractor",
    "FECCommitteeExtractor",
    "FECCandidateExtractor",
]
