"""
Join raw (position, distance) search results back to bundle records.
"""

from typing import Iterable, List, Sequence, Tuple

from .types import Record, SearchHit
from ..core.errors import RecordVectorMismatch


def compose_results(engine_results: Iterable[Tuple[int, float]], records: Sequence[Record]) -> List[SearchHit]:
    """
    Map each (position, distance) to (records[position], distance).

    Order is preserved. A position outside the records list means the bundle's
    index and memories were built inconsistently, which is raised rather than
    skipped.
    """
    hits = []
    for position, distance in engine_results:
        if not 0 <= position < len(records):
            raise RecordVectorMismatch(
                f"Index returned row {position} but the bundle has {len(records)} records"
            )
        hits.append(SearchHit(record=records[position], distance=float(distance), position=int(position)))
    return hits
