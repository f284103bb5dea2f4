"""
Request and response models for the viewer HTTP API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any

from ..core import config


class ConnectRequest(BaseModel):
    path: str

    @field_validator('path')
    @classmethod
    def path_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('path cannot be empty')
        return v


class ConnectionResponse(BaseModel):
    state: str
    source_path: Optional[str] = None
    dimension: Optional[int] = None
    count: Optional[int] = None
    record_count: int = 0
    last_error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    state: str
    staged_files: int
    config_issues: List[str] = []


class RecordResponse(BaseModel):
    id: str
    vector_length: int
    metadata: Dict[str, Any]
    vector: Optional[List[float]] = None


class RecordListResponse(BaseModel):
    items: List[RecordResponse]
    total: int
    offset: int
    limit: int


class FacetsResponse(BaseModel):
    roles: List[str]
    thread_ids: List[str]


class SearchRequest(BaseModel):
    vector: List[float]
    k: int = config.DEFAULT_TOP_K

    @field_validator('vector')
    @classmethod
    def vector_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('vector cannot be empty')
        return v

    @field_validator('k')
    @classmethod
    def k_must_be_in_range(cls, v):
        if v < 1 or v > config.MAX_TOP_K:
            raise ValueError(f'k must be between 1 and {config.MAX_TOP_K}')
        return v


class SearchHitResponse(BaseModel):
    position: int
    distance: float
    record: RecordResponse


class SearchResponse(BaseModel):
    results: List[SearchHitResponse]
    k: int


class ErrorResponse(BaseModel):
    error: str
    step: str
    message: str
