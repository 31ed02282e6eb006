"""
Semantic material search: vector candidates joined back to the system-of-record.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

from ..util.logging import logger
from ..vector.types import CandidateResult, SearchFilter
from .config import get_retrieval_service
from .retrieval_service import validate_query_text
from .schema import UserRecord

EntityFetcher = Callable[[Iterable[str]], List[Dict[str, Any]]]


def fuse_and_rank(candidates: List[CandidateResult], fetch_entities: EntityFetcher) -> List[Dict[str, Any]]:
    """
    Attach similarity scores to full records and order them by relevance.

    ``fetch_entities`` is called once with every candidate id and may return
    entities in any order, so results are sorted again by ``relevanceScore``.
    Entities without a matching candidate get a score of 0.

    Args:
        candidates: (id, score) matches from the vector store
        fetch_entities: Batch lookup returning entity dicts with an "id" key

    Returns:
        Entity dicts with ``relevanceScore``, highest first
    """
    if not candidates:
        return []

    scores = {}
    for candidate in candidates:
        # Keep the first (best ranked) score if an id repeats
        scores.setdefault(str(candidate.id), candidate.score)

    entities = fetch_entities(list(scores))

    fused = []
    for entity in entities:
        enriched = dict(entity)
        enriched["relevanceScore"] = scores.get(str(entity.get("id")), 0) or 0
        fused.append(enriched)

    fused.sort(key=lambda item: item["relevanceScore"], reverse=True)
    return fused


def build_search_filter(user: Optional[UserRecord], class_id: Optional[str] = None,
                        subject_id: Optional[str] = None, type: Optional[str] = None) -> Optional[SearchFilter]:
    """Filter for a search request. Students are always scoped to their own class."""
    if user is not None and user.is_student:
        class_id = user.class_id
    return SearchFilter.from_optional(class_id=class_id, subject_id=subject_id, type=type)


def semantic_material_search(
    query: str,
    user: Optional[UserRecord] = None,
    class_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    type: Optional[str] = None,
    limit: int = 10,
    _retrieval_service=None,
    _fetch_entities: Optional[EntityFetcher] = None,
) -> List[Dict[str, Any]]:
    """
    Search study materials and return full records ordered by relevance.

    Args:
        query: Search text
        user: Authenticated caller; a student's class replaces ``class_id``
        class_id, subject_id, type: Optional filters from the request
        limit: Requested result count, clamped to [1, 20]
        _retrieval_service: Optional retrieval service for testing
        _fetch_entities: Optional batch lookup for testing

    Raises:
        ValueError: query missing or not a string
    """
    validate_query_text(query)
    retrieval_service = _retrieval_service if _retrieval_service is not None else get_retrieval_service()
    if _fetch_entities is None:
        from .dao import get_materials_by_ids
        _fetch_entities = get_materials_by_ids

    if retrieval_service is None:
        return []

    if user is not None and user.is_student and not user.class_id:
        # A student without a class assignment has no materials in scope
        logger.log_retrieval("material_search", query, 0, {"user_id": user.id, "reason": "no class"}, status="skipped")
        return []

    search_filter = build_search_filter(user, class_id, subject_id, type)
    candidates = retrieval_service.search(query, search_filter, min(limit, 20))
    results = fuse_and_rank(candidates, _fetch_entities)

    logger.log_retrieval("material_search", query, len(results), {"candidates": len(candidates)})
    return results
