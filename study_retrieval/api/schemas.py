"""
Request and response models for the study materials API.
Field names follow the camelCase used by the web client.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from ..vector.types import MATERIAL_TYPES


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    vector_enabled: bool
    vector_provider: str
    collection: str


class MaterialSearchRequest(BaseModel):
    # Missing or blank queries are rejected by the search service with a 400
    query: Optional[str] = None
    classId: Optional[str] = None
    subjectId: Optional[str] = None
    type: Optional[str] = None
    limit: int = 10

    @field_validator('type')
    @classmethod
    def type_must_be_known(cls, v):
        if v is not None and v not in MATERIAL_TYPES:
            raise ValueError(f'type must be one of: {list(MATERIAL_TYPES)}')
        return v


class MaterialSearchResponse(BaseModel):
    query: str
    results: List[Dict[str, Any]]
    count: int


class ChatRequest(BaseModel):
    message: Optional[str] = None


class ChatResponse(BaseModel):
    response: str
    timestamp: datetime


class MaterialCreateRequest(BaseModel):
    title: str
    description: str = ""
    content: str = ""
    type: str
    classId: str
    subjectId: str
    url: Optional[str] = None

    @field_validator('title')
    @classmethod
    def title_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('title cannot be empty')
        return v

    @field_validator('type')
    @classmethod
    def type_must_be_known(cls, v):
        if v not in MATERIAL_TYPES:
            raise ValueError(f'type must be one of: {list(MATERIAL_TYPES)}')
        return v


class MaterialResponse(BaseModel):
    id: str
    title: str
    description: str
    type: str
    url: Optional[str] = None
    classId: str
    subjectId: str
    uploadedBy: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime
