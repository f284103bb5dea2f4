"""
Index engine interface used by the connection manager.
The concrete engine (FAISS) lives in faiss_store.py.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Tuple, Union
import numpy as np


class IIndexEngine(ABC):
    """Abstract interface for a similarity-search engine opened from a file."""

    @abstractmethod
    def open(self, path: Union[str, Path]) -> Any:
        """Open an index from a staged file and return an engine handle."""
        pass

    @abstractmethod
    def dimension(self, handle: Any) -> int:
        """Vector dimension of the open index."""
        pass

    @abstractmethod
    def count(self, handle: Any) -> int:
        """Number of vectors stored in the open index."""
        pass

    @abstractmethod
    def search(self, handle: Any, vector: np.ndarray, k: int) -> List[Tuple[int, float]]:
        """Return at most k (position, distance) pairs, nearest first."""
        pass

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Release the engine handle."""
        pass
