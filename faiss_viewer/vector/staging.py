"""
Staging area for decoded index payloads.

FAISS only opens indexes from a file, so the payload is written to a uniquely
named transient file for the duration of the open and removed afterwards.
"""

import itertools
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional, Union

from ..core.config import get_staging_dir
from ..core.errors import StagingVerificationFailed, StagingWriteFailed
from util.logging import logger

STAGING_PREFIX = "faiss_viewer_"
STAGING_SUFFIX = ".index"

_counter = itertools.count()


def _staging_name() -> str:
    # time_ns alone can repeat on coarse clocks; counter and pid break ties
    return f"{STAGING_PREFIX}{time.time_ns()}_{next(_counter)}_{os.getpid()}{STAGING_SUFFIX}"


def _remove_staged(path: Path) -> None:
    try:
        path.unlink()
        logger.log_staging_event("cleanup", str(path))
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.log_staging_event("cleanup", str(path), {"error": str(e)}, status="failed")


@contextmanager
def staged_index(payload: bytes, directory: Optional[Union[str, Path]] = None) -> Generator[Path, None, None]:
    """
    Write payload to a transient file and yield its path.

    The file is deleted on every exit path, including exceptions raised by the
    caller inside the ``with`` block. Deletion failures are logged only.

    Raises:
        StagingWriteFailed: the payload could not be written
        StagingVerificationFailed: the file is missing or empty after the write
    """
    staging_dir = Path(directory) if directory is not None else get_staging_dir()
    path = staging_dir / _staging_name()
    created = False

    try:
        try:
            with open(path, "xb") as f:
                created = True
                f.write(payload)
        except OSError as e:
            raise StagingWriteFailed(f"Failed to write staging file {path}", cause=e)

        if not path.is_file() or path.stat().st_size == 0:
            raise StagingVerificationFailed(f"Failed to create valid staging file {path}")

        logger.log_staging_event("write", str(path), {"bytes": len(payload)})
        yield path
    finally:
        if created:
            _remove_staged(path)


def list_staged_files(directory: Optional[Union[str, Path]] = None) -> List[Path]:
    """List staging files left in the staging directory."""
    staging_dir = Path(directory) if directory is not None else get_staging_dir()
    if not staging_dir.is_dir():
        return []
    return sorted(staging_dir.glob(f"{STAGING_PREFIX}*{STAGING_SUFFIX}"))
