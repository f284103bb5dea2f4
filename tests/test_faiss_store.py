"""
Test cases for FaissIndexEngine implementation.
"""

import pytest
import numpy as np

from faiss_viewer.core.errors import EngineOpenFailed, EngineSearchFailed
from faiss_viewer.vector import FaissIndexEngine
from faiss_viewer.vector.staging import staged_index


def _open_flat(engine, vectors, staging_dir):
    index = engine.build_flat_index(np.asarray(vectors, dtype=np.float32))
    with staged_index(engine.serialize(index), staging_dir) as path:
        return engine.open(path)


def test_faiss_engine_initialization():
    """Test that FaissIndexEngine can be initialized correctly."""
    engine = FaissIndexEngine()

    assert engine is not None
    assert hasattr(engine, 'faiss')


def test_open_reports_dimension_and_count(staging_dir):
    """Opened index reports the dimension and count it was built with."""
    engine = FaissIndexEngine()
    handle = _open_flat(engine, [[0.5] * 384, [0.25] * 384, [1.0] * 384], staging_dir)

    assert engine.dimension(handle) == 384
    assert engine.count(handle) == 3


def test_search_orders_by_ascending_distance(staging_dir):
    engine = FaissIndexEngine()
    handle = _open_flat(engine, [[0.0, 1.0], [1.0, 0.0], [0.9, 0.1]], staging_dir)

    results = engine.search(handle, np.array([1.0, 0.0]), 3)

    assert [position for position, _ in results] == [1, 2, 0]
    distances = [distance for _, distance in results]
    assert distances == sorted(distances)
    assert distances[0] == pytest.approx(0.0)


def test_search_k_larger_than_index(staging_dir):
    """k is an upper bound; padding rows are never returned."""
    engine = FaissIndexEngine()
    handle = _open_flat(engine, [[1.0, 0.0], [0.0, 1.0]], staging_dir)

    results = engine.search(handle, np.array([1.0, 0.0]), 10)

    assert len(results) == 2
    assert all(position >= 0 for position, _ in results)


def test_search_empty_index_and_zero_k(staging_dir):
    engine = FaissIndexEngine()
    empty = engine.build_flat_index(np.zeros((0, 4), dtype=np.float32))
    full = _open_flat(engine, [[1.0, 0.0]], staging_dir)

    assert engine.search(empty, np.zeros(4), 5) == []
    assert engine.search(full, np.array([1.0, 0.0]), 0) == []


def test_search_dimension_mismatch_raises(staging_dir):
    engine = FaissIndexEngine()
    handle = _open_flat(engine, [[1.0, 0.0]], staging_dir)

    with pytest.raises(EngineSearchFailed):
        engine.search(handle, np.array([1.0, 0.0, 0.0]), 1)


def test_open_garbage_raises_engine_open_failed(staging_dir):
    engine = FaissIndexEngine()

    with staged_index(b"this is not a faiss index", staging_dir) as path:
        with pytest.raises(EngineOpenFailed) as exc_info:
            engine.open(path)

    assert exc_info.value.step == "engine.open"


def test_close_releases_vectors(staging_dir):
    engine = FaissIndexEngine()
    handle = _open_flat(engine, [[1.0, 0.0], [0.0, 1.0]], staging_dir)

    engine.close(handle)

    assert engine.count(handle) == 0
    engine.close(None)


def test_build_flat_index_rejects_1d_input():
    engine = FaissIndexEngine()

    with pytest.raises(ValueError):
        engine.build_flat_index(np.array([1.0, 2.0]))
