"""
Retrieval service for study materials.
Indexes materials into the vector store and answers similarity searches and
chatbot context lookups. Returns candidate ids and scores; full material
records are joined by the search service.

Access control is the caller's job: for students, ``class_id`` must come from
the authenticated user's own class assignment, never from request input,
otherwise one class can read another class's materials.
"""

from typing import Any, Dict, List, Optional

from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider, build_embed_text
from ..vector.index import IVectorStore
from ..vector.types import CandidateResult, IndexedRecord, SearchFilter

CONTENT_SNIPPET_LIMIT = 1000
MIN_TOP_K = 1
MAX_TOP_K = 20
CONTEXT_TOP_K = 3


def clamp_top_k(top_k: int) -> int:
    """Clamp a requested result count into [MIN_TOP_K, MAX_TOP_K]."""
    return max(MIN_TOP_K, min(int(top_k), MAX_TOP_K))


def validate_query_text(query_text: Any) -> str:
    """Reject missing or non-string queries before any backend call."""
    if not isinstance(query_text, str):
        raise ValueError("Search query is required and must be a string")
    if not query_text.strip():
        raise ValueError("Search query is required")
    return query_text


def format_context(matches: List[CandidateResult]) -> str:
    """Render matches as numbered material blocks separated by blank lines."""
    blocks = []
    for position, match in enumerate(matches, start=1):
        metadata = match.metadata or {}
        blocks.append(
            f"[Material {position}: {metadata.get('title', '')}]\n"
            f"{metadata.get('description', '')}\n"
            f"{metadata.get('content', '')}"
        )
    return "\n\n".join(blocks)


class RetrievalService:
    """Composes an embedding provider and a vector store; the store's only writer."""

    def __init__(self, vector_store: IVectorStore, embedding_provider: IEmbeddingProvider):
        self.vector_store = vector_store
        self.embedding_provider = embedding_provider

    def index_material(
        self,
        material_id: str,
        title: str,
        description: str,
        content: str,
        metadata: Dict[str, Any],
    ) -> bool:
        """
        Embed a material and upsert it into the collection.

        Args:
            material_id: System-of-record id, reused as the vector id
            title, description, content: Material text
            metadata: classId, subjectId, type and optional url

        Returns:
            True if the record was stored, False otherwise (never raises)
        """
        try:
            title = title or ""
            description = description or ""
            content = content or ""

            vector = self.embedding_provider.embed_text(build_embed_text(title, description, content))

            record_metadata = {
                "title": title,
                "description": description,
                "content": content[:CONTENT_SNIPPET_LIMIT],
                "classId": str(metadata.get("classId") or ""),
                "subjectId": str(metadata.get("subjectId") or ""),
                "type": metadata.get("type", ""),
            }
            if metadata.get("url"):
                record_metadata["url"] = metadata["url"]

            stored = self.vector_store.upsert(IndexedRecord(
                id=str(material_id),
                values=vector,
                metadata=record_metadata
            ))
        except Exception as e:
            logger.log_vector_operation("index_material", str(material_id), {"error": str(e)}, status="failed")
            return False

        if stored:
            logger.info(f"Material {material_id} stored in vector index")
        return stored

    def remove_material(self, material_id: str) -> bool:
        """Delete a material's vector. Missing ids succeed; False on backend failure."""
        return self.vector_store.delete_by_id(str(material_id))

    def search(
        self,
        query_text: str,
        search_filter: Optional[SearchFilter] = None,
        top_k: int = 5,
    ) -> List[CandidateResult]:
        """
        Similarity search over indexed materials.

        ``top_k`` is clamped to [1, 20]. Backend failures degrade to an empty list.

        Raises:
            ValueError: query_text missing or not a string
        """
        validate_query_text(query_text)
        limit = clamp_top_k(top_k)

        try:
            query_vector = self.embedding_provider.embed_text(query_text)
        except Exception as e:
            logger.log_retrieval("search", query_text, 0, {"error": str(e)}, status="degraded")
            return []

        if search_filter is not None and search_filter.is_empty():
            search_filter = None

        results = self.vector_store.query(query_vector, limit, search_filter)
        logger.log_retrieval("search", query_text, len(results), {
            "top_k": limit,
            "filter": search_filter.to_dict() if search_filter else {}
        })
        return results

    def get_context_for_ai(
        self,
        query_text: str,
        class_id: Optional[str] = None,
        subject_id: Optional[str] = None,
    ) -> str:
        """
        Build the study-material context block for the chatbot.

        Returns:
            Formatted blocks for the top 3 matches, or "" when nothing matched

        Raises:
            ValueError: query_text missing or not a string
        """
        search_filter = SearchFilter.from_optional(class_id=class_id, subject_id=subject_id)
        matches = self.search(query_text, search_filter, CONTEXT_TOP_K)

        if not matches:
            return ""
        return format_context(matches)
