"""Candidate committee model with per-committee sync cursor."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from candidate_finance_etl.database import Base


class CommitteeRole(str, Enum):
    """How a committee became linked to a candidate."""

    PRINCIPAL = "principal"
    AUTHORIZED = "authorized"
    MANUAL = "manual"
    STORED = "stored"


# Lower value wins when the same committee arrives from several sources
ROLE_PRECEDENCE = {
    CommitteeRole.PRINCIPAL: 0,
    CommitteeRole.AUTHORIZED: 1,
    CommitteeRole.MANUAL: 2,
    CommitteeRole.STORED: 3,
}


class CandidateCommittee(Base):
    """
    A fundraising committee linked to a candidate.

    Also carries the resumption cursor for the Schedule A fetch:
    last_index + last_contribution_receipt_date are the FEC's opaque
    pagination keys for the last page processed in last_cycle.
    """

    __tablename__ = "candidate_committees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fec_committee_id: Mapped[str] = mapped_column(String(9), nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    designation: Mapped[str | None] = mapped_column(String(1), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=CommitteeRole.STORED.value)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    source_fec_candidate_id: Mapped[str | None] = mapped_column(String(9), nullable=True)

    # Resumption cursor
    last_index: Mapped[str | None] = mapped_column(String(32), nullable=True)
    last_contribution_receipt_date: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )
    last_cycle: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sync_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sync_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("candidate_id", "fec_committee_id", name="uq_candidate_committee"),
    )

    @property
    def has_cursor(self) -> bool:
        return self.last_index is not None

    def __repr__(self) -> str:
        return (
            f"<CandidateCommittee(candidate_id={self.candidate_id}, "
            f"fec_committee_id='{self.fec_committee_id}', role={self.role}, "
            f"last_index={self.last_index})>"
        )
