"""Transformer for raw Schedule A pages: classification, normalization, donor keys."""

import hashlib
import logging

import pandas as pd
from prefect import get_run_logger
from prefect.exceptions import MissingContextError

from candidate_finance_etl.models.donor import DonorType, ReceiptClass
from candidate_finance_etl.transformers.base import BaseTransformer
from candidate_finance_etl.utils.text import normalize_text, normalize_zip

# Entity type code -> donor type
ENTITY_TYPE_MAP = {
    "IND": DonorType.INDIVIDUAL.value,
    "COM": DonorType.PAC.value,
    "PAC": DonorType.PAC.value,
    "PTY": DonorType.PAC.value,
    "ORG": DonorType.ORGANIZATION.value,
    "CCM": DonorType.ORGANIZATION.value,
    "CAN": DonorType.ORGANIZATION.value,
}

# Platforms that forward earmarked individual gifts
KNOWN_CONDUITS = ("ACTBLUE", "WINRED", "DEMOCRACY ENGINE")

TRANSFORMED_COLUMNS = [
    "donor_key",
    "name",
    "donor_type",
    "amount_cents",
    "receipt_date",
    "recipient_committee_id",
    "recipient_committee_name",
    "contributor_city",
    "contributor_state",
    "contributor_zip",
    "employer",
    "occupation",
    "line_number",
    "receipt_class",
    "is_conduit_org",
    "cycle",
]


def get_logger():
    """Get logger - Prefect if available, otherwise standard logging."""
    try:
        return get_run_logger()
    except MissingContextError:
        return logging.getLogger(__name__)


def classify_line_number(line_number: object) -> ReceiptClass:
    """11* = contribution, 12* = transfer, anything else = other receipt."""
    code = "" if line_number is None or line_number != line_number else str(line_number).strip()
    if code.startswith("11"):
        return ReceiptClass.CONTRIBUTION
    if code.startswith("12"):
        return ReceiptClass.TRANSFER
    return ReceiptClass.OTHER


def map_entity_type(entity_type: object) -> str:
    if entity_type is None or entity_type != entity_type:
        return DonorType.UNKNOWN.value
    return ENTITY_TYPE_MAP.get(str(entity_type).strip().upper(), DonorType.UNKNOWN.value)


def is_conduit_name(name: object) -> bool:
    normalized = normalize_text(name)
    return any(conduit in normalized for conduit in KNOWN_CONDUITS)


def build_donor_key(
    name: object,
    donor_type: str,
    city: object,
    state: object,
    zip_code: object,
    committee_id: str,
    cycle: int,
) -> str:
    """
    Deterministic donor identity key.

    Individuals: name + city + state + ZIP5 + committee + cycle.
    Everyone else: name + state + committee + cycle.
    Distinct donors that normalize identically share a key and are merged.
    """
    if donor_type == DonorType.INDIVIDUAL.value:
        parts = [
            normalize_text(name),
            normalize_text(city),
            normalize_text(state),
            normalize_zip(zip_code),
            committee_id.upper(),
            str(cycle),
        ]
    else:
        parts = [normalize_text(name), normalize_text(state), committee_id.upper(), str(cycle)]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def _text_column(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series([None] * len(df), index=df.index, dtype=object)
    series = df[column].astype(object).where(df[column].notna(), None)
    return series.map(lambda v: str(v).strip() or None if v is not None else None)


class ScheduleATransformer(BaseTransformer):
    """Turn one raw Schedule A page into classified, keyed receipt rows."""

    def __init__(self, include_other_receipts: bool = False):
        """
        Args:
            include_other_receipts: Keep rows whose line number is neither 11* nor 12*
        """
        self.include_other_receipts = include_other_receipts

    def transform(
        self,
        df: pd.DataFrame,
        committee_id: str = "",
        committee_name: str | None = None,
        cycle: int = 0,
        **kwargs,
    ) -> pd.DataFrame:
        """
        Classify and normalize a Schedule A page.

        Args:
            df: Raw page as returned by the extractor
            committee_id: Recipient committee
            committee_name: Recipient committee display name
            cycle: Two-year transaction period

        Returns:
            DataFrame with TRANSFORMED_COLUMNS; other receipts dropped unless enabled,
            rows without an amount dropped
        """
        logger = get_logger()

        if df.empty:
            return pd.DataFrame(columns=TRANSFORMED_COLUMNS)

        out = pd.DataFrame(index=df.index)
        out["receipt_class"] = (
            _text_column(df, "line_number").map(classify_line_number).map(lambda c: c.value)
        )
        out["line_number"] = _text_column(df, "line_number")

        amounts = pd.to_numeric(
            df.get("contribution_receipt_amount", pd.Series(index=df.index, dtype=float)),
            errors="coerce",
        )
        out["amount_cents"] = (amounts * 100).round()

        names = _text_column(df, "contributor_name")
        if "contributor_first_name" in df.columns and "contributor_last_name" in df.columns:
            fallback = (
                _text_column(df, "contributor_first_name").fillna("")
                + " "
                + _text_column(df, "contributor_last_name").fillna("")
            ).str.strip()
            names = names.where(names.notna(), fallback.where(fallback != "", None))
        out["name"] = names.fillna("UNKNOWN")

        out["donor_type"] = _text_column(df, "entity_type").map(map_entity_type)
        out["contributor_city"] = _text_column(df, "contributor_city")
        out["contributor_state"] = _text_column(df, "contributor_state").map(
            lambda v: v.upper() if v else None
        )
        out["contributor_zip"] = _text_column(df, "contributor_zip").map(
            lambda v: normalize_zip(v, length=9) or None
        )
        out["employer"] = _text_column(df, "contributor_employer")
        out["occupation"] = _text_column(df, "contributor_occupation")

        if "contribution_receipt_date" in df.columns:
            out["receipt_date"] = pd.to_datetime(
                df["contribution_receipt_date"], errors="coerce"
            ).dt.normalize()
        else:
            out["receipt_date"] = pd.NaT

        out["recipient_committee_id"] = committee_id
        out["recipient_committee_name"] = committee_name
        out["cycle"] = cycle
        out["is_conduit_org"] = out["name"].map(is_conduit_name)

        dropped_amount = int(out["amount_cents"].isna().sum())
        out = out[out["amount_cents"].notna()]

        if not self.include_other_receipts:
            other_mask = out["receipt_class"] == ReceiptClass.OTHER.value
            if other_mask.any():
                logger.debug(f"Skipping {int(other_mask.sum())} other receipts for {committee_id}")
            out = out[~other_mask]

        if dropped_amount:
            logger.warning(f"Dropped {dropped_amount} receipts without an amount for {committee_id}")

        out = out.copy()
        out["amount_cents"] = out["amount_cents"].astype("int64")
        out["donor_key"] = [
            build_donor_key(
                row.name, row.donor_type, row.contributor_city, row.contributor_state,
                row.contributor_zip, committee_id, cycle,
            )
            for row in out.itertuples(index=False)
        ]
        return out[TRANSFORMED_COLUMNS].reset_index(drop=True)
