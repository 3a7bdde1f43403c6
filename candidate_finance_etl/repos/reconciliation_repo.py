"""Repository for finance reconciliation results."""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from candidate_finance_etl.models.finance_reconciliation import FinanceReconciliation


# noinspection PyMethodMayBeStatic
class ReconciliationRepo:
    """Repository for per (candidate, cycle) reconciliation rows."""

    def get(self, session: Session, candidate_id: str, cycle: int) -> FinanceReconciliation | None:
        stmt = select(FinanceReconciliation).where(
            FinanceReconciliation.candidate_id == candidate_id,
            FinanceReconciliation.cycle == cycle,
        )
        return session.execute(stmt).scalar_one_or_none()

    def upsert(self, session: Session, candidate_id: str, cycle: int, **values) -> FinanceReconciliation:
        """
        Create or update the reconciliation row for a candidate and cycle.

        Args:
            session: Database session
            candidate_id: Local candidate id
            cycle: Two-year transaction period
            **values: Column values (local_itemized_cents, delta_pct, status, ...)

        Returns:
            The stored row
        """
        record = self.get(session, candidate_id, cycle)
        if record is None:
            record = FinanceReconciliation(candidate_id=candidate_id, cycle=cycle, **values)
            session.add(record)
        else:
            for key, value in values.items():
                setattr(record, key, value)
        record.checked_at = datetime.now(UTC)
        session.flush()
        return record
