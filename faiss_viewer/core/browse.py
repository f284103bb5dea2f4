"""
Record browsing helpers: filtering, paging and facet listing over a connection's records.

Filtering returns new lists and never reorders or mutates the connection's
records, whose positions must keep matching the index rows.
"""

from typing import List, Optional, Sequence, Tuple

from ..vector.types import Record


def filter_records(
    records: Sequence[Record],
    role: Optional[str] = None,
    thread_id: Optional[str] = None,
    query: Optional[str] = None,
) -> List[Record]:
    """Filter by exact role / thread id and a case-insensitive term over id, role and thread id."""
    term = query.strip().lower() if query else ""
    result = []
    for record in records:
        meta = record.metadata
        if role and (meta.role is None or str(meta.role) != role):
            continue
        if thread_id and (meta.thread_id is None or str(meta.thread_id) != thread_id):
            continue
        if term:
            haystack = [record.id, meta.role or "", meta.thread_id or ""]
            if not any(term in str(value).lower() for value in haystack):
                continue
        result.append(record)
    return result


def paginate(records: Sequence[Record], offset: int = 0, limit: int = 10) -> List[Record]:
    offset = max(offset, 0)
    if limit < 1:
        return []
    return list(records[offset:offset + limit])


def page_count(total: int, limit: int) -> int:
    if limit < 1:
        return 0
    return max(1, -(-total // limit))


def facets(records: Sequence[Record]) -> Tuple[List[str], List[str]]:
    """Unique roles and thread ids in first-seen order."""
    roles: List[str] = []
    thread_ids: List[str] = []
    for record in records:
        role = record.metadata.role
        if role is not None and str(role) not in roles:
            roles.append(str(role))
        thread_id = record.metadata.thread_id
        if thread_id is not None and str(thread_id) not in thread_ids:
            thread_ids.append(str(thread_id))
    return roles, thread_ids
