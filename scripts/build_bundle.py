#!/usr/bin/env python3
"""
Bundle Build Utility
Builds a viewer bundle (base64 FAISS index + memories) from a JSON list of memories.
Row i of the generated exact L2 index is memory i, so file order is preserved.
"""

import argparse
import json
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
from pydantic import ValidationError

from faiss_viewer.vector.bundle import MemoryEntry, write_bundle
from faiss_viewer.vector.faiss_store import FaissIndexEngine


def load_memories(source: Path):
    """Load memories from a JSON list or an object with a 'memories' list."""
    data = json.loads(source.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("memories")
    if not isinstance(data, list):
        raise ValueError("expected a JSON list of memories or an object with a 'memories' list")
    return [MemoryEntry.model_validate(item).to_record() for item in data]


def build_bundle(source: Path, output: Path, engine: FaissIndexEngine = None) -> int:
    """Build a bundle at output from the memories in source. Returns the record count."""
    engine = engine or FaissIndexEngine()
    records = load_memories(source)
    if not records:
        raise ValueError("no memories to index")

    dimensions = {r.dimension for r in records}
    if len(dimensions) != 1:
        raise ValueError(f"memories have mixed vector dimensions: {sorted(dimensions)}")

    index = engine.build_flat_index(np.vstack([r.vector for r in records]))
    write_bundle(output, engine.serialize(index), records)
    return len(records)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build a FAISS viewer bundle from a JSON list of memories")
    parser.add_argument("source", type=Path, help="JSON file with memories (id, vector|embedding, metadata)")
    parser.add_argument("output", type=Path, help="Bundle file to write")
    args = parser.parse_args(argv)

    print(f"Building bundle from {args.source}...")
    try:
        count = build_bundle(args.source, args.output)
    except (OSError, ValueError, ValidationError) as e:
        print(f"ERROR: Failed to build bundle: {e}")
        sys.exit(1)

    print(f"✓ Wrote bundle with {count} vectors to {args.output}")


if __name__ == "__main__":
    main()
