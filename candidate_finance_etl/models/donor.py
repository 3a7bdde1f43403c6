"""Donor model"""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from candidate_finance_etl.database import Base


class DonorType(str, Enum):
    INDIVIDUAL = "Individual"
    PAC = "PAC"
    ORGANIZATION = "Organization"
    UNKNOWN = "Unknown"


class ReceiptClass(str, Enum):
    """Schedule A line-number classification."""

    CONTRIBUTION = "contribution"
    TRANSFER = "transfer"
    OTHER = "other"


class Donor(Base):
    """
    Aggregated contributor for one candidate + cycle + recipient committee.

    donor_key is derived from the normalized identity fields, so the same
    contributor always folds into the same row across syncs.
    """

    __tablename__ = "donors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    donor_key: Mapped[str] = mapped_column(String(64), nullable=False)
    candidate_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False
    )
    cycle: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    donor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    transaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_receipt_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_receipt_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    recipient_committee_id: Mapped[str] = mapped_column(String(9), nullable=False)
    recipient_committee_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    contributor_city: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contributor_state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    contributor_zip: Mapped[str | None] = mapped_column(String(9), nullable=True)
    employer: Mapped[str | None] = mapped_column(String(200), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    line_number: Mapped[str | None] = mapped_column(String(10), nullable=True)

    receipt_class: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReceiptClass.CONTRIBUTION.value
    )
    is_conduit_org: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("candidate_id", "donor_key", name="uq_donor_candidate_key"),
        Index("ix_donors_candidate_cycle", "candidate_id", "cycle"),
    )

    @property
    def amount(self) -> float:
        return self.amount_cents / 100

    def __repr__(self) -> str:
        return (
            f"<Donor(key={self.donor_key[:8]}..., name='{self.name}', "
            f"amount_cents={self.amount_cents}, count={self.transaction_count})>"
        )
