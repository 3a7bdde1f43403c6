"""Finance reconciliation model: local aggregates vs FEC-reported totals."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from candidate_finance_etl.database import Base


class FinanceReconciliation(Base):
    __tablename__ = "finance_reconciliation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    candidate_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cycle: Mapped[int] = mapped_column(Integer, nullable=False)

    local_itemized_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    local_transfers_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fec_itemized_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fec_unitemized_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    fec_total_receipts_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    delta_cents: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    delta_pct: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(String(10), nullable=False, comment="ok, warning, error")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("candidate_id", "cycle", name="uq_reconciliation_candidate_cycle"),
    )

    def __repr__(self) -> str:
        return (
            f"<FinanceReconciliation(candidate_id={self.candidate_id}, cycle={self.cycle}, "
            f"status={self.status}, delta_pct={self.delta_pct})>"
        )
