"""
Bundle codec, index staging and FAISS engine access.
"""

# Package initialization for vector module
from .index import IIndexEngine
from .faiss_store import FaissIndexEngine
from .types import Record, RecordMetadata, Bundle, SearchHit
from .bundle import parse_bundle, write_bundle, serialize_records
from .staging import staged_index, list_staged_files
from .compose import compose_results

__all__ = [
    'IIndexEngine',
    'FaissIndexEngine',
    'Record',
    'RecordMetadata',
    'Bundle',
    'SearchHit',
    'parse_bundle',
    'write_bundle',
    'serialize_records',
    'staged_index',
    'list_staged_files',
    'compose_results'
]
