"""
Rank & Filter
Heat threshold filter and recency ordering for enriched records
"""
from numbers import Real
from typing import Iterable, List

from ..models.detail_record import DetailRecord


def has_heat_above(record: DetailRecord, threshold: float) -> bool:
    heat = record.heat
    if isinstance(heat, bool) or not isinstance(heat, Real):
        return False
    return heat > threshold


def rank_records(records: Iterable[DetailRecord], heat_threshold: float) -> List[DetailRecord]:
    """
    Keep records hotter than ``heat_threshold`` and order them newest first.

    Records without a recorded-at timestamp are kept but placed after every
    dated record. Both groups keep their input order on ties.
    """
    survivors = [r for r in records if has_heat_above(r, heat_threshold)]
    dated = [r for r in survivors if r.recorded_at is not None]
    undated = [r for r in survivors if r.recorded_at is None]
    dated.sort(key=lambda r: r.recorded_at, reverse=True)
    return dated + undated
