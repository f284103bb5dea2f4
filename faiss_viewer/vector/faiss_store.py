"""
FAISS-backed implementation of IIndexEngine.
"""

from pathlib import Path
from typing import Any, List, Tuple, Union
import numpy as np

from .index import IIndexEngine
from ..core.errors import EngineOpenFailed, EngineSearchFailed


class FaissIndexEngine(IIndexEngine):
    """Opens serialized FAISS indexes and runs k-NN queries against them."""

    def __init__(self):
        try:
            import faiss
            self.faiss = faiss
        except ImportError:
            raise ImportError("FAISS not installed. Please install faiss-cpu package.")

    def open(self, path: Union[str, Path]) -> Any:
        """Read a FAISS index from a staged file."""
        try:
            return self.faiss.read_index(str(path))
        except Exception as e:
            # FAISS surfaces format errors as RuntimeError from the C++ layer
            raise EngineOpenFailed(f"Failed to read FAISS index from {path}", cause=e)

    def dimension(self, handle: Any) -> int:
        return int(handle.d)

    def count(self, handle: Any) -> int:
        return int(handle.ntotal)

    def search(self, handle: Any, vector: np.ndarray, k: int) -> List[Tuple[int, float]]:
        """
        Search the index for the k nearest vectors.

        Args:
            handle: Index returned by open()
            vector: Query vector, must match the index dimension
            k: Upper bound on the number of results

        Returns:
            List of (position, distance) tuples in ascending distance order
        """
        if k < 1 or not handle.ntotal:
            return []

        query_array = np.asarray(vector, dtype=np.float32).reshape(1, -1)
        if query_array.shape[1] != handle.d:
            raise EngineSearchFailed(
                f"Query dimension {query_array.shape[1]} does not match index dimension {handle.d}"
            )

        try:
            distances, indices = handle.search(query_array, min(k, handle.ntotal))
        except Exception as e:
            raise EngineSearchFailed("FAISS search failed", cause=e)

        results = []
        for position, distance in zip(indices[0], distances[0]):
            # FAISS pads with -1 when fewer than k neighbours exist
            if position < 0:
                continue
            results.append((int(position), float(distance)))
        return results

    def close(self, handle: Any) -> None:
        """Release the index memory."""
        if handle is not None:
            handle.reset()

    def serialize(self, handle: Any) -> bytes:
        """Serialize an index to the bytes stored in a bundle."""
        return self.faiss.serialize_index(handle).tobytes()

    def build_flat_index(self, vectors: np.ndarray) -> Any:
        """Build an exact L2 index over vectors, row i = vectors[i]."""
        vectors = np.ascontiguousarray(vectors, dtype=np.float32)
        if vectors.ndim != 2:
            raise ValueError(f"Expected a 2-D array of vectors, got shape {vectors.shape}")
        index = self.faiss.IndexFlatL2(vectors.shape[1])
        if len(vectors):
            index.add(vectors)
        return index
