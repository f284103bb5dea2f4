"""
HTTP API over the connection manager: connect, inspect, browse and search a bundle.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.responses import JSONResponse

from .schemas import (
    ConnectRequest,
    ConnectionResponse,
    HealthResponse,
    RecordResponse,
    RecordListResponse,
    FacetsResponse,
    SearchRequest,
    SearchHitResponse,
    SearchResponse,
    ErrorResponse,
)
from ..core import config
from ..core.browse import facets, filter_records, paginate
from ..core.connection import ConnectionManager, ConnectionState
from ..core.errors import (
    EngineSearchFailed,
    MissingIndexPayload,
    Malformed,
    NotFound,
    RecordVectorMismatch,
    ViewerError,
)
from ..vector.staging import list_staged_files
from ..vector.types import Record
from util.logging import logger

_manager: Optional[ConnectionManager] = None


def get_manager() -> ConnectionManager:
    """Process-wide connection manager, created on first use."""
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    manager = app.dependency_overrides.get(get_manager, get_manager)()
    if config.is_auto_restore_enabled():
        restored = await manager.restore()
        if restored:
            logger.info(f"Restored connection to {manager.source_path}")
    yield
    await manager.close()


# Documented bodies for ViewerError responses
VIEWER_ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Bundle file not found"},
    409: {"model": ErrorResponse, "description": "Records and index rows do not line up"},
    422: {"model": ErrorResponse, "description": "Bundle is malformed or has no index payload"},
    500: {"model": ErrorResponse, "description": "Staging or index engine failure"},
}

SEARCH_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Query rejected by the index engine"},
    409: {"model": ErrorResponse, "description": "Records and index rows do not line up"},
}


# Initialize the FastAPI application
app = FastAPI(
    title="FAISS Bundle Viewer API",
    version=config.VERSION,
    description="Connect to FAISS index bundles, browse their memories and run nearest-neighbour queries",
    docs_url="/docs" if config.debug_enabled() else None,
    redoc_url="/redoc" if config.debug_enabled() else None,
    lifespan=lifespan
)


def _status_for(error: ViewerError) -> int:
    if isinstance(error, NotFound):
        return 404
    if isinstance(error, (Malformed, MissingIndexPayload)):
        return 422
    if isinstance(error, RecordVectorMismatch):
        return 409
    if isinstance(error, EngineSearchFailed):
        return 400
    return 500


@app.exception_handler(ViewerError)
async def viewer_error_handler(request: Request, exc: ViewerError):
    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=_status_for(exc), content=body.model_dump())


def _record_response(record: Record, include_vector: bool = False) -> RecordResponse:
    return RecordResponse(
        id=record.id,
        vector_length=record.dimension,
        metadata=record.metadata.to_dict(),
        vector=[float(v) for v in record.vector] if include_vector else None
    )


def _connection_response(manager: ConnectionManager) -> ConnectionResponse:
    return ConnectionResponse(
        state=manager.get_connection_state().value,
        source_path=manager.source_path,
        dimension=manager.get_dimension(),
        count=manager.get_count(),
        record_count=len(manager.list_all_records()),
        last_error=str(manager.last_error) if manager.last_error else None
    )


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(manager: ConnectionManager = Depends(get_manager)):
    """Check viewer health."""
    issues = config.validate_config()
    state = manager.get_connection_state()
    return HealthResponse(
        status="unhealthy" if issues or state == ConnectionState.ERROR else "healthy",
        version=config.VERSION,
        state=state.value,
        staged_files=len(list_staged_files(manager.staging_dir)),
        config_issues=issues
    )


@app.get("/connection", response_model=ConnectionResponse)
def get_connection(manager: ConnectionManager = Depends(get_manager)):
    return _connection_response(manager)


@app.post("/connection", response_model=ConnectionResponse, responses=VIEWER_ERROR_RESPONSES)
async def connect(req: ConnectRequest, manager: ConnectionManager = Depends(get_manager)):
    """Connect to a bundle, replacing any current connection."""
    await manager.connect(req.path)
    return _connection_response(manager)


@app.delete("/connection", response_model=ConnectionResponse)
async def disconnect(manager: ConnectionManager = Depends(get_manager)):
    await manager.disconnect()
    return _connection_response(manager)


@app.post("/connection/refresh", response_model=ConnectionResponse, responses=VIEWER_ERROR_RESPONSES)
async def refresh(manager: ConnectionManager = Depends(get_manager)):
    await manager.refresh()
    return _connection_response(manager)


# Define /records/facets BEFORE /records/{record_id} to avoid path parameter conflict
@app.get("/records/facets", response_model=FacetsResponse)
def record_facets(manager: ConnectionManager = Depends(get_manager)):
    roles, thread_ids = facets(manager.list_all_records())
    return FacetsResponse(roles=roles, thread_ids=thread_ids)


@app.get("/records", response_model=RecordListResponse)
def list_records(
    offset: int = 0,
    limit: int = 10,
    role: Optional[str] = None,
    thread_id: Optional[str] = None,
    q: Optional[str] = None,
    manager: ConnectionManager = Depends(get_manager)
):
    """List records with optional role / thread filters and a search term."""
    if offset < 0 or limit < 1 or limit > 1000:
        raise HTTPException(status_code=400, detail="offset must be >= 0 and limit between 1 and 1000")

    matching = filter_records(manager.list_all_records(), role=role, thread_id=thread_id, query=q)
    page = paginate(matching, offset, limit)
    return RecordListResponse(
        items=[_record_response(r) for r in page],
        total=len(matching),
        offset=offset,
        limit=limit
    )


@app.get("/records/{record_id}", response_model=RecordResponse)
def get_record(record_id: str, manager: ConnectionManager = Depends(get_manager)):
    record = manager.lookup_record(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Record not found: {record_id}")
    return _record_response(record, include_vector=True)


@app.post("/search", response_model=SearchResponse, responses=SEARCH_ERROR_RESPONSES)
async def search(req: SearchRequest, manager: ConnectionManager = Depends(get_manager)):
    """Run a k-nearest-neighbour query against the connected index."""
    hits = await manager.search(req.vector, req.k)
    if hits is None:
        raise HTTPException(status_code=409, detail="Not connected to an index")

    return SearchResponse(
        results=[
            SearchHitResponse(position=h.position, distance=h.distance, record=_record_response(h.record))
            for h in hits
        ],
        k=req.k
    )
