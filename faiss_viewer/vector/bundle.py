"""
Bundle file codec.

A bundle is a JSON document with two top-level fields:

    {"index": "<base64 FAISS index>",
     "memories": [{"id": "...", "vector": [...], "metadata": {...}}, ...]}

Older bundles name the vector field ``embedding``; both are accepted and
normalized to ``Record.vector`` here so nothing downstream sees the legacy name.
"""

import base64
import binascii
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from ..core.errors import Malformed, MissingIndexPayload, NotFound
from .types import Bundle, Record, RecordMetadata
from util.logging import logger


class MemoryEntry(BaseModel):
    """One entry of the ``memories`` array as it appears on disk."""

    model_config = ConfigDict(extra="allow")

    id: str
    vector: Optional[List[float]] = None
    embedding: Optional[List[float]] = None
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def vector_must_be_present(self):
        if self.vector is None and self.embedding is None:
            raise ValueError("memory must have a 'vector' or 'embedding' field")
        return self

    def to_record(self) -> Record:
        values = self.vector if self.vector is not None else self.embedding
        return Record(
            id=self.id,
            vector=np.asarray(values, dtype=np.float32),
            metadata=RecordMetadata.from_dict(self.metadata),
        )


class BundleDocument(BaseModel):
    index: str
    memories: List[MemoryEntry]


def _decode_payload(encoded: str) -> bytes:
    try:
        return base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise Malformed("index field is not valid base64", cause=e)


def parse_bundle(path: Union[str, Path]) -> Bundle:
    """
    Parse a bundle file into its index payload and ordered records.

    Args:
        path: Path to the bundle JSON file

    Returns:
        Bundle with decoded payload and records in file order

    Raises:
        NotFound: path does not exist or is not a regular file
        Malformed: file is unreadable or not the expected structure
        MissingIndexPayload: the index field is absent or empty
    """
    path = Path(path)
    if not path.is_file():
        raise NotFound(f"File not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise Malformed(f"Cannot read bundle {path}", cause=e)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise Malformed(f"Bundle {path} is not valid JSON", cause=e)

    if not isinstance(data, dict):
        raise Malformed(f"Bundle {path} must be a JSON object, got {type(data).__name__}")

    if not data.get("index"):
        raise MissingIndexPayload(f"No index data found in bundle {path}")

    try:
        document = BundleDocument.model_validate(data)
    except ValidationError as e:
        raise Malformed(f"Bundle {path} does not match the expected structure", cause=e)

    payload = _decode_payload(document.index)
    if not payload:
        raise MissingIndexPayload(f"Index data in bundle {path} decodes to zero bytes")

    records = [entry.to_record() for entry in document.memories]
    logger.log_bundle_parsed(str(path), len(records), len(payload))
    return Bundle(index_payload=payload, records=records)


def serialize_records(records: List[Record]) -> List[Dict[str, Any]]:
    """Render records back to their on-disk dict form."""
    return [record.to_dict() for record in records]


def write_bundle(path: Union[str, Path], index_payload: bytes, records: List[Record]) -> Path:
    """Write a bundle file. Record order must match the index row order."""
    path = Path(path)
    document = {
        "index": base64.b64encode(index_payload).decode("ascii"),
        "memories": serialize_records(records),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path
