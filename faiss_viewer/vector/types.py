"""
Record and search result types shared by the parser, composer and connection manager.
"""

from typing import Any, Dict, List, Optional
import numpy as np
from dataclasses import dataclass, field


# Wire name -> attribute name for the metadata keys the viewer understands
KNOWN_METADATA_KEYS = {
    "role": "role",
    "threadId": "thread_id",
    "timestamp": "timestamp",
    "content": "content",
}


@dataclass
class RecordMetadata:
    """Metadata with the known optional fields plus an open remainder."""

    role: Optional[str] = None
    thread_id: Optional[str] = None
    timestamp: Optional[Any] = None
    content: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    """Unknown keys, preserved as found in the bundle"""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RecordMetadata":
        if not data:
            return cls()

        known = {}
        extra = {}
        for key, value in data.items():
            if key in KNOWN_METADATA_KEYS:
                known[KNOWN_METADATA_KEYS[key]] = value
            else:
                extra[key] = value
        return cls(extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        for wire_name, attr in KNOWN_METADATA_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[wire_name] = value
        return data


@dataclass
class Record:
    """One memory in a bundle. Its list position is its index row."""

    id: str
    """Identifier, assumed unique within a bundle"""

    vector: np.ndarray
    """Canonical float32 vector (legacy 'embedding' is normalized here)"""

    metadata: RecordMetadata = field(default_factory=RecordMetadata)

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vector": [float(v) for v in self.vector],
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class Bundle:
    """A parsed bundle: the raw index payload and its ordered records."""

    index_payload: bytes
    records: List[Record]


@dataclass
class SearchHit:
    """One nearest-neighbour result joined back to its record."""

    record: Record
    distance: float
    position: int
