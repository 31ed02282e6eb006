"""
Vector store interface and the in-memory implementation.

Backends implement the raw ``_``-prefixed operations and may raise; the public
methods turn failures into the contract callers rely on: writes return False,
queries return an empty list, collection provisioning propagates.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import numpy as np

from ..core.exceptions import VectorStoreError
from ..util.logging import logger
from .types import CandidateResult, IndexedRecord, SearchFilter


class IVectorStore(ABC):
    """Access contract for one named collection on a similarity-search backend."""

    def __init__(self, collection_name: str = "study-materials", dimension: int = 384, metric: str = "cosine"):
        self.collection_name = collection_name
        self.dimension = dimension
        self.metric = metric

    # Backend operations

    @abstractmethod
    def list_collections(self) -> List[str]:
        """Names of the collections that exist on the backend."""
        pass

    @abstractmethod
    def _create_collection(self, name: str, dimension: int, metric: str) -> None:
        pass

    @abstractmethod
    def _upsert(self, record: IndexedRecord) -> None:
        pass

    @abstractmethod
    def _query(self, vector: List[float], top_k: int, search_filter: Optional[SearchFilter]) -> List[CandidateResult]:
        pass

    @abstractmethod
    def _delete(self, record_id: str) -> None:
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of records in the collection."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every record from the collection."""
        pass

    # Contract

    def ensure_collection(self, name: Optional[str] = None, dimension: Optional[int] = None,
                          metric: Optional[str] = None) -> bool:
        """Create the collection if it does not exist yet.

        Returns True when the collection was created, False when it already existed.
        Backend and configuration errors propagate.
        """
        if name:
            self.collection_name = name
        if dimension:
            self.dimension = dimension
        if metric:
            self.metric = metric

        if self.collection_name in self.list_collections():
            logger.log_vector_operation("ensure_collection", self.collection_name, {"created": False})
            return False

        logger.info(f"Creating vector collection '{self.collection_name}'")
        self._create_collection(self.collection_name, self.dimension, self.metric)
        logger.log_vector_operation("ensure_collection", self.collection_name,
                                    {"created": True, "dimension": self.dimension, "metric": self.metric})
        return True

    def upsert(self, record: IndexedRecord) -> bool:
        """Write or replace the record with ``record.id``. Returns False on backend failure."""
        if len(record.values) != self.dimension:
            logger.log_vector_operation("upsert", record.id,
                                        {"error": f"dimension {len(record.values)} != {self.dimension}"}, status="failed")
            return False
        try:
            self._upsert(record)
        except Exception as e:
            logger.log_vector_operation("upsert", record.id, {"error": str(VectorStoreError("upsert", e))}, status="failed")
            return False
        logger.log_vector_operation("upsert", record.id)
        return True

    def query(self, vector: List[float], top_k: int, search_filter: Optional[SearchFilter] = None) -> List[CandidateResult]:
        """Return at most ``top_k`` matches ordered by descending score; [] on backend failure."""
        if top_k < 1:
            return []
        try:
            return self._query(vector, top_k, search_filter)
        except Exception as e:
            logger.log_vector_operation("query", self.collection_name,
                                        {"error": str(VectorStoreError("query", e))}, status="degraded")
            return []

    def delete_by_id(self, record_id: str) -> bool:
        """Delete a record. Deleting a missing id succeeds; returns False on backend failure."""
        try:
            self._delete(record_id)
        except Exception as e:
            logger.log_vector_operation("delete", record_id, {"error": str(VectorStoreError("delete", e))}, status="failed")
            return False
        logger.log_vector_operation("delete", record_id)
        return True


def rank_by_cosine(query_vector: List[float], vectors: Dict[str, np.ndarray], top_k: int) -> List[tuple]:
    """(id, score) pairs for the ``top_k`` vectors most similar to ``query_vector``."""
    query = np.asarray(query_vector, dtype=np.float64)
    norm = np.linalg.norm(query)
    if norm == 0 or not vectors:
        return []
    query = query / norm

    similarities = {}
    for record_id, stored_vector in vectors.items():
        stored_norm = np.linalg.norm(stored_vector)
        similarities[record_id] = 0.0 if stored_norm == 0 else float(np.dot(query, stored_vector) / stored_norm)

    # Stable sort keeps insertion order among equal scores
    sorted_results = sorted(similarities.items(), key=lambda x: x[1], reverse=True)
    return sorted_results[:top_k]


class SimpleInMemoryVectorStore(IVectorStore):
    """In-process implementation using cosine similarity. Not persisted."""

    def __init__(self, collection_name: str = "study-materials", dimension: int = 384, metric: str = "cosine"):
        super().__init__(collection_name, dimension, metric)
        self._collections: Dict[str, Dict[str, IndexedRecord]] = {}
        self._lock = threading.RLock()

    @property
    def _records(self) -> Dict[str, IndexedRecord]:
        # Writes before provisioning create the collection implicitly
        return self._collections.setdefault(self.collection_name, {})

    def list_collections(self) -> List[str]:
        with self._lock:
            return list(self._collections)

    def _create_collection(self, name: str, dimension: int, metric: str) -> None:
        with self._lock:
            self._collections.setdefault(name, {})

    def _upsert(self, record: IndexedRecord) -> None:
        with self._lock:
            self._records[record.id] = IndexedRecord(
                id=record.id,
                values=list(record.values),
                metadata=dict(record.metadata)
            )

    def _query(self, vector: List[float], top_k: int, search_filter: Optional[SearchFilter]) -> List[CandidateResult]:
        with self._lock:
            candidates = {
                record_id: np.asarray(record.values, dtype=np.float64)
                for record_id, record in self._records.items()
                if search_filter is None or search_filter.matches(record.metadata)
            }
            ranked = rank_by_cosine(vector, candidates, top_k)
            return [
                CandidateResult(id=record_id, score=score, metadata=dict(self._records[record_id].metadata))
                for record_id, score in ranked
            ]

    def _delete(self, record_id: str) -> None:
        with self._lock:
            self._records.pop(record_id, None)

    def get(self, record_id: str) -> Optional[IndexedRecord]:
        """Fetch a record by id."""
        with self._lock:
            return self._records.get(record_id)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
