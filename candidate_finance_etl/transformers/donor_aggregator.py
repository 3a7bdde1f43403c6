"""In-memory donor aggregation across Schedule A pages."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

import pandas as pd

from candidate_finance_etl.models.donor import Donor, ReceiptClass


def _none_if_missing(value):
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _as_date(value) -> date | None:
    value = _none_if_missing(value)
    if isinstance(value, pd.Timestamp):
        return value.date()
    return value


@dataclass
class DonorAggregate:
    """Running totals for one donor key."""

    donor_key: str
    name: str
    donor_type: str
    recipient_committee_id: str
    cycle: int
    amount_cents: int = 0
    transaction_count: int = 0
    first_receipt_date: date | None = None
    last_receipt_date: date | None = None
    recipient_committee_name: str | None = None
    contributor_city: str | None = None
    contributor_state: str | None = None
    contributor_zip: str | None = None
    employer: str | None = None
    occupation: str | None = None
    line_number: str | None = None
    receipt_class: str = ReceiptClass.CONTRIBUTION.value
    is_conduit_org: bool = False

    def add(
        self,
        amount_cents: int,
        count: int,
        first_date: date | None,
        last_date: date | None,
    ) -> None:
        self.amount_cents += amount_cents
        self.transaction_count += count
        if first_date is not None and (
            self.first_receipt_date is None or first_date < self.first_receipt_date
        ):
            self.first_receipt_date = first_date
        if last_date is not None and (
            self.last_receipt_date is None or last_date > self.last_receipt_date
        ):
            self.last_receipt_date = last_date

    @property
    def amount(self) -> float:
        return self.amount_cents / 100

    def to_model(self, candidate_id: str) -> Donor:
        return Donor(
            donor_key=self.donor_key,
            candidate_id=candidate_id,
            cycle=self.cycle,
            name=self.name,
            donor_type=self.donor_type,
            amount_cents=self.amount_cents,
            transaction_count=self.transaction_count,
            first_receipt_date=self.first_receipt_date,
            last_receipt_date=self.last_receipt_date,
            recipient_committee_id=self.recipient_committee_id,
            recipient_committee_name=self.recipient_committee_name,
            contributor_city=self.contributor_city,
            contributor_state=self.contributor_state,
            contributor_zip=self.contributor_zip,
            employer=self.employer,
            occupation=self.occupation,
            line_number=self.line_number,
            receipt_class=self.receipt_class,
            is_conduit_org=self.is_conduit_org,
        )

    @classmethod
    def from_model(cls, donor: Donor) -> "DonorAggregate":
        return cls(
            donor_key=donor.donor_key,
            name=donor.name,
            donor_type=donor.donor_type,
            recipient_committee_id=donor.recipient_committee_id,
            cycle=donor.cycle,
            amount_cents=donor.amount_cents,
            transaction_count=donor.transaction_count,
            first_receipt_date=donor.first_receipt_date,
            last_receipt_date=donor.last_receipt_date,
            recipient_committee_name=donor.recipient_committee_name,
            contributor_city=donor.contributor_city,
            contributor_state=donor.contributor_state,
            contributor_zip=donor.contributor_zip,
            employer=donor.employer,
            occupation=donor.occupation,
            line_number=donor.line_number,
            receipt_class=donor.receipt_class,
            is_conduit_org=donor.is_conduit_org,
        )


@dataclass
class DonorAggregator:
    """
    Folds transformed Schedule A pages into one aggregate per donor key.

    A repeated key adds to the amount and count and widens the receipt date
    range; a new key creates the aggregate from the first row seen.
    """

    donors: dict[str, DonorAggregate] = field(default_factory=dict)

    def seed(self, donors: Iterable[Donor | DonorAggregate]) -> int:
        """Start from previously persisted aggregates (resumed pass)."""
        count = 0
        for donor in donors:
            aggregate = donor if isinstance(donor, DonorAggregate) else DonorAggregate.from_model(donor)
            self.donors[aggregate.donor_key] = aggregate
            count += 1
        return count

    def fold(self, page: pd.DataFrame) -> int:
        """
        Fold one transformed page.

        Returns:
            Number of receipts folded
        """
        if page.empty:
            return 0

        grouped = page.groupby("donor_key", sort=False).agg(
            amount_cents=("amount_cents", "sum"),
            count=("amount_cents", "size"),
            first_date=("receipt_date", "min"),
            last_date=("receipt_date", "max"),
        )
        firsts = page.drop_duplicates("donor_key", keep="first").set_index("donor_key")

        for donor_key, totals in grouped.iterrows():
            aggregate = self.donors.get(donor_key)
            if aggregate is None:
                row = firsts.loc[donor_key]
                aggregate = DonorAggregate(
                    donor_key=donor_key,
                    name=row["name"],
                    donor_type=row["donor_type"],
                    recipient_committee_id=row["recipient_committee_id"],
                    cycle=int(row["cycle"]),
                    recipient_committee_name=_none_if_missing(row["recipient_committee_name"]),
                    contributor_city=_none_if_missing(row["contributor_city"]),
                    contributor_state=_none_if_missing(row["contributor_state"]),
                    contributor_zip=_none_if_missing(row["contributor_zip"]),
                    employer=_none_if_missing(row["employer"]),
                    occupation=_none_if_missing(row["occupation"]),
                    line_number=_none_if_missing(row["line_number"]),
                    receipt_class=row["receipt_class"],
                    is_conduit_org=bool(row["is_conduit_org"]),
                )
                self.donors[donor_key] = aggregate

            aggregate.add(
                int(totals["amount_cents"]),
                int(totals["count"]),
                _as_date(totals["first_date"]),
                _as_date(totals["last_date"]),
            )

        return len(page)

    def aggregates(self) -> list[DonorAggregate]:
        return list(self.donors.values())

    @property
    def total_cents(self) -> int:
        return sum(d.amount_cents for d in self.donors.values())

    def __len__(self) -> int:
        return len(self.donors)
