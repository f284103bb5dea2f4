"""
Text rendering for the terminal viewer. Pure functions, no widgets.
"""

from typing import List, Optional, Sequence

from faiss_viewer.core.connection import ConnectionManager, ConnectionState
from faiss_viewer.vector.types import Record, SearchHit

CONTENT_PREVIEW_CHARS = 100

STATE_ICONS = {
    ConnectionState.DISCONNECTED: "○",
    ConnectionState.CONNECTING: "◌",
    ConnectionState.CONNECTED: "●",
    ConnectionState.ERROR: "✖",
}


def summary_lines(manager: ConnectionManager) -> List[str]:
    """Summary panel text for the current connection."""
    state = manager.get_connection_state()
    lines = [f"{STATE_ICONS[state]} State: {state.value}"]

    if state == ConnectionState.CONNECTED:
        lines.append(f"Bundle: {manager.source_path}")
        lines.append(f"Dimension: {manager.get_dimension()}")
        lines.append(f"Total Vectors: {manager.get_count()}")
    elif state == ConnectionState.ERROR and manager.last_error is not None:
        lines.append(f"Error: {manager.last_error}")
    elif state == ConnectionState.DISCONNECTED:
        lines.append("Connect to a FAISS index bundle")

    return lines


def preview(text: Optional[str], limit: int = CONTENT_PREVIEW_CHARS) -> str:
    if not text:
        return "No content"
    text = str(text)
    return text[:limit] + "..." if len(text) > limit else text


def record_row(record: Record) -> List[str]:
    """Table cells for one record: id, role, thread, vector length, content preview."""
    meta = record.metadata
    return [
        record.id,
        str(meta.role) if meta.role is not None else "N/A",
        str(meta.thread_id) if meta.thread_id is not None else "N/A",
        str(record.dimension),
        preview(meta.content),
    ]


def record_detail(record: Record, max_components: Optional[int] = None) -> str:
    """Full detail view for one record."""
    meta = record.metadata
    lines = [
        f"ID: {record.id}",
        f"Role: {meta.role if meta.role is not None else 'N/A'}",
        f"Thread ID: {meta.thread_id if meta.thread_id is not None else 'N/A'}",
        f"Timestamp: {meta.timestamp if meta.timestamp is not None else 'N/A'}",
    ]
    for key, value in meta.extra.items():
        lines.append(f"{key}: {value}")

    lines.append("")
    lines.append("Content:")
    lines.append(str(meta.content) if meta.content else "No content available")

    lines.append("")
    lines.append("Vector Values:")
    values = record.vector if max_components is None else record.vector[:max_components]
    lines.extend(f"[{i}]: {float(v):.6f}" for i, v in enumerate(values))
    if max_components is not None and record.dimension > max_components:
        lines.append(f"... {record.dimension - max_components} more")

    return "\n".join(lines)


def search_results_text(hits: Sequence[SearchHit]) -> str:
    if not hits:
        return "No results"
    return "\n".join(
        f"{rank}. {hit.record.id}  distance={hit.distance:.6f}  {preview(hit.record.metadata.content, 60)}"
        for rank, hit in enumerate(hits, start=1)
    )


def parse_vector(text: str) -> List[float]:
    """Parse a query vector typed as comma or space separated numbers."""
    parts = text.replace(",", " ").split()
    if not parts:
        raise ValueError("query vector is empty")
    return [float(p) for p in parts]
