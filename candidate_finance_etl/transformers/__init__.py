"""Transformers for Schedule A pages and donor aggregation."""

from candidate_finance_etl.transformers.donor_aggregator import DonorAggregate, DonorAggregator
from candidate_finance_etl.transformers.schedule_a import (
    ScheduleATransformer,
    build_donor_key,
    classify_line_number,
    map_entity_type,
)

__all__ = [
    "DonorAggregate",
    "DonorAggregator",
    "ScheduleATransformer",
    "build_donor_key",
    "classify_line_number",
    "map_entity_type",
]
