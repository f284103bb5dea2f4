#!/usr/bin/env python3
"""
Bundle Inspect Utility
Connects to a bundle, prints its index summary, optionally runs one query, and disconnects.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from faiss_viewer.core.connection import ConnectionManager
from faiss_viewer.core.errors import ViewerError
from faiss_viewer.core.state_store import InMemoryStateStore


async def inspect(path: str, query=None, k: int = 5, manager: ConnectionManager = None) -> int:
    # Inspecting must not overwrite the viewer's persisted last bundle
    manager = manager or ConnectionManager(state_store=InMemoryStateStore())
    try:
        await manager.connect(path)
    except ViewerError as e:
        print(f"ERROR: {e}")
        return 1

    try:
        print(f"Bundle: {path}")
        print(f"Dimension: {manager.get_dimension()}")
        print(f"Total Vectors: {manager.get_count()}")
        print(f"Records: {len(manager.list_all_records())}")

        if query is not None:
            try:
                hits = await manager.search(query, k)
            except ViewerError as e:
                print(f"ERROR: {e}")
                return 1
            print(f"Top {k} results:")
            for rank, hit in enumerate(hits or [], start=1):
                print(f"  {rank}. {hit.record.id} (distance {hit.distance:.6f})")
        return 0
    finally:
        await manager.disconnect()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Inspect a FAISS viewer bundle")
    parser.add_argument("bundle", help="Path to the bundle JSON file")
    parser.add_argument("--query", help="Comma separated query vector, e.g. 1,0,0")
    parser.add_argument("-k", type=int, default=5, help="Number of neighbours to return")
    args = parser.parse_args(argv)

    query = None
    if args.query:
        try:
            query = [float(v) for v in args.query.split(",")]
        except ValueError:
            print(f"ERROR: Invalid query vector: {args.query}")
            sys.exit(2)

    sys.exit(asyncio.run(inspect(args.bundle, query, args.k)))


if __name__ == "__main__":
    main()
