"""
Record browsing helper tests.
"""

from faiss_viewer.core.browse import facets, filter_records, page_count, paginate
from tests.conftest import make_record


def _records():
    return [
        make_record("alpha", [1.0], role="user", threadId="thread-1"),
        make_record("beta", [2.0], role="assistant", threadId="thread-1"),
        make_record("gamma", [3.0], role="user", threadId="thread-2"),
        make_record("delta", [4.0]),
    ]


def test_filter_without_criteria_keeps_everything_in_order():
    records = _records()

    result = filter_records(records)

    assert [r.id for r in result] == ["alpha", "beta", "gamma", "delta"]
    assert result is not records


def test_filter_by_role_skips_records_without_metadata():
    assert [r.id for r in filter_records(_records(), role="user")] == ["alpha", "gamma"]


def test_filter_by_thread_and_term():
    records = _records()

    assert [r.id for r in filter_records(records, thread_id="thread-1")] == ["alpha", "beta"]
    assert [r.id for r in filter_records(records, query="  GAM ")] == ["gamma"]
    assert [r.id for r in filter_records(records, query="assist")] == ["beta"]


def test_filter_does_not_mutate_source():
    records = _records()

    filter_records(records, role="assistant")

    assert len(records) == 4


def test_paginate_and_page_count():
    records = _records()

    assert [r.id for r in paginate(records, 0, 3)] == ["alpha", "beta", "gamma"]
    assert [r.id for r in paginate(records, 3, 3)] == ["delta"]
    assert paginate(records, 10, 3) == []
    assert paginate(records, 0, 0) == []
    assert page_count(4, 3) == 2
    assert page_count(0, 10) == 1


def test_facets_first_seen_order():
    roles, thread_ids = facets(_records())

    assert roles == ["user", "assistant"]
    assert thread_ids == ["thread-1", "thread-2"]
