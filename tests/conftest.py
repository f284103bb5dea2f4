"""
Shared fixtures: bundle factories, an isolated staging directory, a connection
manager wired to in-memory state, and a scriptable fake index engine.
"""

import os
import tempfile
from pathlib import Path
from typing import Any, List, Optional

# Keep persisted viewer state out of the working tree
TEST_STATE_DB_PATH = os.path.join(tempfile.mkdtemp(), "viewer_state.db")
os.environ["FAISS_VIEWER_STATE_DB"] = TEST_STATE_DB_PATH
os.environ["FAISS_VIEWER_AUTO_RESTORE"] = "false"

import numpy as np
import pytest

from faiss_viewer.core.connection import ConnectionManager
from faiss_viewer.core.errors import EngineSearchFailed
from faiss_viewer.core.state_store import InMemoryStateStore
from faiss_viewer.vector.bundle import write_bundle
from faiss_viewer.vector.faiss_store import FaissIndexEngine
from faiss_viewer.vector.index import IIndexEngine
from faiss_viewer.vector.types import Record, RecordMetadata


def make_record(record_id: str, vector, **metadata) -> Record:
    return Record(
        id=record_id,
        vector=np.asarray(vector, dtype=np.float32),
        metadata=RecordMetadata.from_dict(metadata),
    )


class FakeHandle:
    def __init__(self, d: int, ntotal: int):
        self.d = d
        self.ntotal = ntotal
        self.closed = False


class FakeIndexEngine(IIndexEngine):
    """Index engine double that records calls and can be told to fail."""

    def __init__(self, d: int = 2, ntotal: int = 2):
        self.d = d
        self.ntotal = ntotal
        self.open_error: Optional[Exception] = None
        self.search_error: Optional[Exception] = None
        self.search_results: List = []
        self.opened_paths: List[Path] = []
        self.staged_existed: List[bool] = []
        self.handles: List[FakeHandle] = []

    def open(self, path) -> Any:
        path = Path(path)
        self.opened_paths.append(path)
        self.staged_existed.append(path.exists() and path.stat().st_size > 0)
        if self.open_error is not None:
            raise self.open_error
        handle = FakeHandle(self.d, self.ntotal)
        self.handles.append(handle)
        return handle

    def dimension(self, handle) -> int:
        return handle.d

    def count(self, handle) -> int:
        return handle.ntotal

    def search(self, handle, vector, k):
        if handle.closed:
            raise EngineSearchFailed("search on a closed handle")
        if self.search_error is not None:
            raise self.search_error
        return list(self.search_results)[:k]

    def close(self, handle) -> None:
        handle.closed = True


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def faiss_engine():
    return FaissIndexEngine()


@pytest.fixture
def bundle_factory(tmp_path, faiss_engine):
    """Write a real FAISS bundle for the given records and return its path."""
    counter = {"n": 0}

    def _make(records: List[Record], name: Optional[str] = None, index_records: Optional[List[Record]] = None) -> Path:
        counter["n"] += 1
        source = index_records if index_records is not None else records
        vectors = np.vstack([r.vector for r in source])
        index = faiss_engine.build_flat_index(vectors)
        path = tmp_path / (name or f"bundle_{counter['n']}.json")
        return write_bundle(path, faiss_engine.serialize(index), records)

    return _make


@pytest.fixture
def two_record_bundle(bundle_factory):
    records = [
        make_record("a", [1.0, 0.0], role="user", threadId="t1", content="first memory"),
        make_record("b", [0.0, 1.0], role="assistant", threadId="t1", content="second memory"),
    ]
    return bundle_factory(records)


@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def manager(faiss_engine, state_store, staging_dir):
    return ConnectionManager(engine=faiss_engine, state_store=state_store, staging_dir=staging_dir)


@pytest.fixture
def fake_engine():
    return FakeIndexEngine()


@pytest.fixture
def fake_manager(fake_engine, state_store, staging_dir):
    return ConnectionManager(engine=fake_engine, state_store=state_store, staging_dir=staging_dir)