"""
HTTP surface for semantic material search and study-assistant chat.
Caller identity comes from the X-User-Id header; authentication happens upstream.
"""

from fastapi import FastAPI, HTTPException, Depends, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Optional

from .schemas import (
    HealthResponse,
    MaterialSearchRequest,
    MaterialSearchResponse,
    ChatRequest,
    ChatResponse,
    MaterialCreateRequest,
    MaterialResponse
)
from ..core.dao import get_user, get_material, create_material, delete_material
from ..core.db import health_check
from ..core.config import (
    VERSION,
    VECTOR_PROVIDER,
    VECTOR_COLLECTION,
    CHAT_API_ENABLED,
    OLLAMA_MODEL,
    debug_enabled,
    are_vector_features_enabled,
    get_retrieval_service,
    get_chat_options
)
from ..core.chat_service import ChatService
from ..core.exceptions import CompletionServiceError
from ..core.schema import UserRecord
from ..core.search_service import semantic_material_search
from ..util.logging import logger

# Initialize the FastAPI application
app = FastAPI(
    title="Study Materials Retrieval API",
    version=VERSION,
    description="Semantic search and retrieval-augmented chat over class study materials",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)


def get_current_user(x_user_id: Optional[str] = Header(None)) -> UserRecord:
    """Resolve the calling user from the X-User-Id header."""
    user = get_user(x_user_id or "")
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


_chat_service = None

def get_chat_service() -> ChatService:
    """Lazy initialization of the chat service."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService(get_retrieval_service(), OLLAMA_MODEL, get_chat_options())
    return _chat_service


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors."""
    return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())})


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()

    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        vector_enabled=are_vector_features_enabled(),
        vector_provider=VECTOR_PROVIDER,
        collection=VECTOR_COLLECTION
    )


@app.post("/materials/search", response_model=MaterialSearchResponse)
def search_materials_endpoint(request: MaterialSearchRequest, user: UserRecord = Depends(get_current_user)):
    """
    Semantic search over study materials.

    Students only ever see materials from their own class, whatever classId
    the request carries.
    """
    if not are_vector_features_enabled():
        raise HTTPException(status_code=503, detail="Semantic search is disabled")

    try:
        results = semantic_material_search(
            request.query,
            user=user,
            class_id=request.classId,
            subject_id=request.subjectId,
            type=request.type,
            limit=request.limit
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="Search query is required")

    return MaterialSearchResponse(query=request.query, results=results, count=len(results))


@app.post("/chat", response_model=ChatResponse)
def chat_endpoint(request: ChatRequest, user: UserRecord = Depends(get_current_user)):
    """Answer a study question using relevant materials as context."""
    if not CHAT_API_ENABLED:
        raise HTTPException(status_code=503, detail="Chat is disabled")

    try:
        return get_chat_service().reply(request.message, user)
    except ValueError:
        raise HTTPException(status_code=400, detail="Message is required")
    except CompletionServiceError as e:
        raise HTTPException(status_code=503, detail=str(e))


@app.post("/materials", response_model=MaterialResponse, status_code=201)
def create_material_endpoint(request: MaterialCreateRequest, user: UserRecord = Depends(get_current_user)):
    """Upload a material. Indexing failures do not fail the upload."""
    if user.is_student:
        raise HTTPException(status_code=403, detail="Only teachers can upload materials")

    try:
        material = create_material(
            title=request.title,
            description=request.description,
            content=request.content,
            type=request.type,
            class_id=request.classId,
            subject_id=request.subjectId,
            uploaded_by=user.id,
            url=request.url
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return MaterialResponse(
        id=material.id,
        title=material.title,
        description=material.description,
        type=material.type,
        url=material.url,
        classId=material.class_id,
        subjectId=material.subject_id,
        uploadedBy=material.uploaded_by,
        createdAt=material.created_at,
        updatedAt=material.updated_at
    )


@app.delete("/materials/{material_id}")
def delete_material_endpoint(material_id: str, user: UserRecord = Depends(get_current_user)):
    """Delete a material and its search index entry."""
    if user.is_student:
        raise HTTPException(status_code=403, detail="Only teachers can delete materials")

    if get_material(material_id) is None:
        raise HTTPException(status_code=404, detail="Material not found")

    delete_material(material_id)
    return {"deleted": True, "id": material_id}


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}")
    content = {"detail": "Internal server error"}
    if debug_enabled():
        content["debug"] = str(exc)
    return JSONResponse(status_code=500, content=content)
