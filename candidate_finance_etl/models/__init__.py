"""Models package."""

from candidate_finance_etl.database import Base
from candidate_finance_etl.models.candidate import Candidate
from candidate_finance_etl.models.committee import CandidateCommittee, CommitteeRole
from candidate_finance_etl.models.donor import Donor, DonorType, ReceiptClass
from candidate_finance_etl.models.finance_reconciliation import FinanceReconciliation

__all__ = [
    "Base",
    "Candidate",
    "CandidateCommittee",
    "CommitteeRole",
    "Donor",
    "DonorType",
    "ReceiptClass",
    "FinanceReconciliation",
]
