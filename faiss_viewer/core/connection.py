"""
Connection manager: owns the single live connection to a bundle's index.

A connect runs parse -> stage -> engine open. Success moves the manager to
CONNECTED; any failure moves it to ERROR, re-raises the originating error and
leaves no engine handle and no staging file behind. Connecting always tears
down the previous connection first, so at most one connection is ever live.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from . import config
from .errors import EngineOpenFailed, EngineSearchFailed, RecordVectorMismatch, ViewerError
from .notifier import ChangeNotifier
from .state_store import IStateStore, SqliteStateStore
from ..vector.bundle import parse_bundle
from ..vector.compose import compose_results
from ..vector.index import IIndexEngine
from ..vector.staging import staged_index
from ..vector.types import Record, SearchHit
from util.logging import logger, sanitize_details


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class _ReadWriteLock:
    """Many concurrent readers or one writer. A queued writer blocks new readers."""

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def read(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and self._writers_waiting == 0)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def write(self):
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class ConnectionManager:
    """
    Manages the connection to one bundle at a time.

    Lifecycle operations (connect, disconnect, refresh) are serialized. Searches
    share the engine handle with each other but never overlap a lifecycle
    change that would close it.
    """

    def __init__(
        self,
        engine: Optional[IIndexEngine] = None,
        state_store: Optional[IStateStore] = None,
        notifier: Optional[ChangeNotifier] = None,
        staging_dir: Optional[Union[str, Path]] = None,
        strict_count: Optional[bool] = None,
    ):
        self.engine = engine if engine is not None else config.get_index_engine()
        self.state_store = state_store if state_store is not None else SqliteStateStore()
        self.notifier = notifier if notifier is not None else ChangeNotifier()
        self.staging_dir = staging_dir
        self.strict_count = config.is_strict_record_count() if strict_count is None else strict_count

        self._state = ConnectionState.DISCONNECTED
        self._handle: Any = None
        self._records: List[Record] = []
        self._by_id: Dict[str, Record] = {}
        self._source_path: Optional[str] = None
        self._dimension: Optional[int] = None
        self._count: Optional[int] = None
        self._last_error: Optional[ViewerError] = None

        self._lifecycle_lock = asyncio.Lock()
        self._handle_lock = _ReadWriteLock()

    # Read-only state

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def source_path(self) -> Optional[str]:
        return self._source_path

    @property
    def last_error(self) -> Optional[ViewerError]:
        return self._last_error

    def get_connection_state(self) -> ConnectionState:
        return self._state

    def get_dimension(self) -> Optional[int]:
        return self._dimension

    def get_count(self) -> Optional[int]:
        return self._count

    def list_all_records(self) -> List[Record]:
        return list(self._records)

    def lookup_record(self, record_id: str) -> Optional[Record]:
        """First record with this id, or None."""
        return self._by_id.get(record_id)

    def on_state_changed(self, observer: Callable[[], object]) -> Callable[[], None]:
        """Subscribe to state changes. Returns an unsubscribe function."""
        return self.notifier.subscribe(observer)

    # Lifecycle

    async def connect(self, path: Union[str, Path]) -> None:
        """
        Connect to the bundle at path, replacing any current connection.

        Raises:
            ViewerError: the parse, staging or engine step that failed. The
                manager is left in ERROR state with nothing held open.
        """
        async with self._lifecycle_lock:
            await self._connect_locked(str(path))

    async def disconnect(self) -> None:
        """Close the connection. A no-op when already disconnected."""
        async with self._lifecycle_lock:
            if self._state == ConnectionState.DISCONNECTED:
                return

            async with self._handle_lock.write():
                self._teardown()
            self._source_path = None
            self._last_error = None
            await self._forget_path()

            self._set_state(ConnectionState.DISCONNECTED)
            logger.log_connection_event("disconnect", self._state.value)

    async def refresh(self) -> None:
        """Reconnect to the current bundle; otherwise just re-notify observers."""
        async with self._lifecycle_lock:
            if self._state == ConnectionState.CONNECTED and self._source_path:
                logger.log_connection_event("refresh", self._state.value, {"path": self._source_path})
                await self._connect_locked(self._source_path)
            else:
                self.notifier.notify()

    async def restore(self) -> bool:
        """Reconnect to the persisted bundle path, if any. Never raises."""
        path = await asyncio.to_thread(self.state_store.get_last_path)
        if not path:
            return False

        try:
            await self.connect(path)
        except ViewerError as e:
            logger.log_connection_event("restore", self._state.value, {"path": path, "error": str(e)}, status="failed")
            return False
        logger.log_connection_event("restore", self._state.value, {"path": path})
        return True

    async def close(self) -> None:
        """
        Release the index on shutdown.

        Unlike disconnect, the persisted bundle path is kept so the next start
        can restore it.
        """
        async with self._lifecycle_lock:
            if self._state == ConnectionState.DISCONNECTED:
                return

            async with self._handle_lock.write():
                self._teardown()
            self._source_path = None
            self._last_error = None

            self._set_state(ConnectionState.DISCONNECTED)
            logger.log_connection_event("close", self._state.value)

    async def _connect_locked(self, path: str) -> None:
        async with self._handle_lock.write():
            self._teardown()
        self._source_path = None
        self._last_error = None
        self._set_state(ConnectionState.CONNECTING)
        logger.log_connection_event("connect", self._state.value, {"path": path}, status="started")

        handle = None
        try:
            bundle = await asyncio.to_thread(parse_bundle, path)
            handle = await asyncio.to_thread(self._open_staged, bundle.index_payload)
            dimension = self.engine.dimension(handle)
            count = self.engine.count(handle)

            if self.strict_count and count != len(bundle.records):
                raise RecordVectorMismatch(
                    f"Bundle has {len(bundle.records)} records but the index holds {count} vectors"
                )
        except ViewerError as e:
            self._close_handle(handle)
            await self._fail(path, e)
            raise
        except Exception as e:
            self._close_handle(handle)
            error = EngineOpenFailed(f"Unexpected failure while connecting to {path}", cause=e)
            await self._fail(path, error)
            raise error from e

        async with self._handle_lock.write():
            self._handle = handle
            self._records = bundle.records
            self._by_id = {}
            for record in self._records:
                self._by_id.setdefault(record.id, record)
            self._dimension = dimension
            self._count = count
            self._source_path = path

        await self._remember_path(path)
        self._set_state(ConnectionState.CONNECTED)
        logger.log_connection_event("connect", self._state.value, {
            "path": path,
            "dimension": dimension,
            "count": count,
            "records": len(self._records)
        })

    def _open_staged(self, payload: bytes) -> Any:
        # The staging file is gone by the time this returns, success or not
        with staged_index(payload, self.staging_dir) as staged_path:
            return self.engine.open(staged_path)

    async def _fail(self, path: str, error: ViewerError) -> None:
        self._records = []
        self._by_id = {}
        self._source_path = None
        self._dimension = None
        self._count = None
        self._last_error = error
        await self._forget_path()

        self._set_state(ConnectionState.ERROR)
        logger.log_connection_event(
            "connect",
            self._state.value,
            sanitize_details({"path": path, "error_type": type(error).__name__, "error": str(error)}),
            status="failed"
        )

    def _teardown(self) -> None:
        self._close_handle(self._handle)
        self._handle = None
        self._records = []
        self._by_id = {}
        self._dimension = None
        self._count = None

    def _close_handle(self, handle: Any) -> None:
        if handle is None:
            return
        try:
            self.engine.close(handle)
        except Exception as e:
            logger.warning(f"Failed to close index handle: {e}")

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        self.notifier.notify()

    async def _remember_path(self, path: str) -> None:
        try:
            await asyncio.to_thread(self.state_store.save_last_path, path)
        except Exception as e:
            logger.warning(f"Failed to persist bundle path {path}: {e}")

    async def _forget_path(self) -> None:
        try:
            await asyncio.to_thread(self.state_store.clear_last_path)
        except Exception as e:
            logger.warning(f"Failed to clear persisted bundle path: {e}")

    # Queries

    async def search(self, vector: Sequence[float], k: Optional[int] = None) -> Optional[List[SearchHit]]:
        """
        Find the k records nearest to vector.

        Returns None when not connected. Engine failures raise
        EngineSearchFailed and leave the connection untouched.
        """
        if k is None:
            k = config.get_default_top_k()

        if self._state != ConnectionState.CONNECTED:
            return None

        async with self._handle_lock.read():
            if self._handle is None:
                return None
            handle = self._handle
            records = self._records

            start = time.perf_counter()
            try:
                query = np.asarray(vector, dtype=np.float32)
                raw = await asyncio.to_thread(self.engine.search, handle, query, k)
                hits = compose_results(raw, records)
            except ViewerError as e:
                logger.log_search(k, 0, (time.perf_counter() - start) * 1000, status="failed", details={"error": str(e)})
                raise
            except Exception as e:
                logger.log_search(k, 0, (time.perf_counter() - start) * 1000, status="failed", details={"error": str(e)})
                raise EngineSearchFailed("Search failed", cause=e) from e

        logger.log_search(k, len(hits), (time.perf_counter() - start) * 1000)
        return hits
