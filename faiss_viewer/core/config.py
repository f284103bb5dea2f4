"""
FAISS bundle viewer configuration.
All settings come from environment variables with safe defaults.
"""

import os
import tempfile
from pathlib import Path

# Debug flag
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# Staging directory for decoded index payloads (system temp dir by default)
STAGING_DIR = os.getenv("FAISS_VIEWER_STAGING_DIR", tempfile.gettempdir())

# Persisted viewer state (last connected bundle path)
STATE_DB_PATH = os.getenv("FAISS_VIEWER_STATE_DB", "./data/viewer_state.db")
AUTO_RESTORE = os.getenv("FAISS_VIEWER_AUTO_RESTORE", "true").lower() == "true"

# Query configuration
DEFAULT_TOP_K = int(os.getenv("FAISS_VIEWER_DEFAULT_TOP_K", "5"))
MAX_TOP_K = int(os.getenv("FAISS_VIEWER_MAX_TOP_K", "100"))

# Fail connect when the bundle's record count differs from the index count
STRICT_RECORD_COUNT = os.getenv("FAISS_VIEWER_STRICT_RECORD_COUNT", "true").lower() == "true"

# Engine provider (faiss only for now)
INDEX_ENGINE = os.getenv("FAISS_VIEWER_ENGINE", "faiss")

# HTTP API
API_HOST = os.getenv("FAISS_VIEWER_API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("FAISS_VIEWER_API_PORT", "8765"))

# Version string
VERSION = "0.1.0"


def get_index_engine():
    """Get the configured index engine implementation."""
    from faiss_viewer.vector.faiss_store import FaissIndexEngine
    return FaissIndexEngine()


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_staging_dir() -> Path:
    """Get the staging directory, creating it if needed."""
    path = Path(os.getenv("FAISS_VIEWER_STAGING_DIR", STAGING_DIR))
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_state_db_path() -> Path:
    """Get the viewer state database path."""
    return Path(os.getenv("FAISS_VIEWER_STATE_DB", STATE_DB_PATH))


def ensure_state_directory():
    """Ensure the state database directory exists."""
    get_state_db_path().parent.mkdir(parents=True, exist_ok=True)


def is_strict_record_count():
    """Check if record/index count mismatches fail a connect."""
    return os.getenv("FAISS_VIEWER_STRICT_RECORD_COUNT", "true").lower() == "true"


def is_auto_restore_enabled():
    """Check if the last connected bundle is restored at start-up."""
    return os.getenv("FAISS_VIEWER_AUTO_RESTORE", "true").lower() == "true"


def get_default_top_k():
    """Get default number of neighbours returned by a search."""
    return DEFAULT_TOP_K


def validate_config():
    """Validate viewer configuration and return any issues."""
    issues = []

    if DEFAULT_TOP_K < 1:
        issues.append("FAISS_VIEWER_DEFAULT_TOP_K must be >= 1")

    if MAX_TOP_K < DEFAULT_TOP_K:
        issues.append("FAISS_VIEWER_MAX_TOP_K must be >= FAISS_VIEWER_DEFAULT_TOP_K")

    if INDEX_ENGINE not in ["faiss"]:
        issues.append(f"Invalid FAISS_VIEWER_ENGINE: {INDEX_ENGINE}")

    if not (0 < API_PORT < 65536):
        issues.append(f"Invalid FAISS_VIEWER_API_PORT: {API_PORT}")

    return issues
