"""FEC extractors for campaign finance data."""

from candidate_finance_etl.extractors.fec.candidates import FECCandidateExtractor
from candidate_finance_etl.extractors.fec.committees import FECCommitteeExtractor
from candidate_finance_etl.extractors.fec.schedule_a import FECScheduleAExtractor

__all__ = [
    "FECScheduleAExtractor",
    "FECCommitteeExtractor",
    "FECCandidateExtractor",
]
