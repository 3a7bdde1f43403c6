"""Repository for aggregated donor rows."""

from collections.abc import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from candidate_finance_etl.models.donor import Donor, ReceiptClass


# noinspection PyMethodMayBeStatic
class DonorRepo:
    """Repository for donor aggregates, replaced wholesale per (candidate, cycle)."""

    def list_for_candidate(self, session: Session, candidate_id: str, cycle: int) -> list[Donor]:
        stmt = (
            select(Donor)
            .where(Donor.candidate_id == candidate_id, Donor.cycle == cycle)
            .order_by(Donor.id)
        )
        return list(session.execute(stmt).scalars())

    def replace_donors(
        self, session: Session, candidate_id: str, cycle: int, donors: Iterable[Donor]
    ) -> int:
        """
        Delete every donor row for (candidate, cycle) and insert the given set.

        Both statements run in the caller's transaction, so a failure rolls
        back to the previous set.

        Returns:
            Number of rows inserted
        """
        session.execute(
            delete(Donor).where(Donor.candidate_id == candidate_id, Donor.cycle == cycle)
        )
        rows = list(donors)
        session.add_all(rows)
        session.flush()
        return len(rows)

    def count(self, session: Session, candidate_id: str, cycle: int) -> int:
        stmt = select(func.count(Donor.id)).where(
            Donor.candidate_id == candidate_id, Donor.cycle == cycle
        )
        return session.execute(stmt).scalar_one()

    def sum_cents(
        self,
        session: Session,
        candidate_id: str,
        cycle: int,
        receipt_class: ReceiptClass,
        exclude_conduits: bool = False,
    ) -> int:
        """Total amount for one receipt class, optionally leaving out conduit platforms."""
        stmt = select(func.coalesce(func.sum(Donor.amount_cents), 0)).where(
            Donor.candidate_id == candidate_id,
            Donor.cycle == cycle,
            Donor.receipt_class == receipt_class.value,
        )
        if exclude_conduits:
            stmt = stmt.where(Donor.is_conduit_org.is_(False))
        return int(session.execute(stmt).scalar_one())
