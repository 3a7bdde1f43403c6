"""Candidate model (external-reference view)."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from candidate_finance_etl.database import Base


class Candidate(Base):
    """
    Local candidate record as seen by the finance pipeline.

    Only the columns the pipeline reads or writes are mapped here; the rest of
    the candidates table belongs to the application.
    """

    __tablename__ = "candidates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True, index=True)
    office: Mapped[str | None] = mapped_column(String(50), nullable=True)
    district: Mapped[str | None] = mapped_column(String(5), nullable=True)
    bioguide_id: Mapped[str | None] = mapped_column(
        String(10), nullable=True, index=True, comment="Congress bioguide id (crosswalk key)"
    )
    fec_candidate_id: Mapped[str | None] = mapped_column(String(9), nullable=True, index=True)
    fec_committee_id: Mapped[str | None] = mapped_column(
        String(9), nullable=True, comment="Primary (principal) committee"
    )
    last_donor_sync: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_updated: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, name='{self.name}', fec_id='{self.fec_candidate_id}')>"
