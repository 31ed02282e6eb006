"""
FAISS-backed vector store persisted on local disk.

Each collection is a directory under ``index_dir`` holding the FAISS index and a
pickled sidecar with record ids and metadata, rewritten after every mutation so
the collection survives process restarts.
"""

import os
import pickle
import threading
from typing import Any, Dict, List, Optional

import numpy as np

from .index import IVectorStore
from .types import CandidateResult, IndexedRecord, SearchFilter

INDEX_FILE = "index.faiss"
METADATA_FILE = "metadata.pkl"


class FaissVectorStore(IVectorStore):
    """FAISS implementation of IVectorStore (inner product over normalized vectors)."""

    def __init__(self, index_dir: str = "./data/vector_index", collection_name: str = "study-materials",
                 dimension: int = 384, metric: str = "cosine"):
        """
        Initialize FAISS vector store.

        Args:
            index_dir: Directory holding one sub-directory per collection
            collection_name: Collection used by upsert/query/delete
            dimension: Dimension of the vectors (default: 384 for hash embeddings)
            metric: Only "cosine" is supported
        """
        try:
            import faiss
            self.faiss = faiss
        except ImportError:
            raise ImportError("FAISS not installed. Please install faiss-cpu package.")

        super().__init__(collection_name, dimension, metric)
        self.index_dir = index_dir
        self._lock = threading.RLock()
        self._loaded_name = None
        self.index = None
        # record id -> FAISS int64 id, and back
        self.id_to_vector_index: Dict[str, int] = {}
        self.vector_id_map: Dict[int, str] = {}
        self.id_to_metadata: Dict[str, Dict[str, Any]] = {}
        self.next_vector_index = 0

    def _collection_dir(self, name: str) -> str:
        return os.path.join(self.index_dir, name)

    def _new_index(self, dimension: int):
        return self.faiss.IndexIDMap2(self.faiss.IndexFlatIP(dimension))

    def _load(self) -> None:
        """Load the active collection from disk, creating it empty if missing."""
        if self._loaded_name == self.collection_name and self.index is not None:
            return

        collection_dir = self._collection_dir(self.collection_name)
        index_path = os.path.join(collection_dir, INDEX_FILE)
        metadata_path = os.path.join(collection_dir, METADATA_FILE)

        if os.path.exists(index_path):
            self.index = self.faiss.read_index(index_path)
            with open(metadata_path, 'rb') as f:
                state = pickle.load(f)
            self.id_to_vector_index = state["id_to_vector_index"]
            self.id_to_metadata = state["id_to_metadata"]
            self.next_vector_index = state["next_vector_index"]
            self.vector_id_map = {v: k for k, v in self.id_to_vector_index.items()}
        else:
            self.index = self._new_index(self.dimension)
            self.id_to_vector_index = {}
            self.vector_id_map = {}
            self.id_to_metadata = {}
            self.next_vector_index = 0

        self._loaded_name = self.collection_name

    def _save(self) -> None:
        collection_dir = self._collection_dir(self.collection_name)
        os.makedirs(collection_dir, exist_ok=True)
        self.faiss.write_index(self.index, os.path.join(collection_dir, INDEX_FILE))
        with open(os.path.join(collection_dir, METADATA_FILE), 'wb') as f:
            pickle.dump({
                "id_to_vector_index": self.id_to_vector_index,
                "id_to_metadata": self.id_to_metadata,
                "next_vector_index": self.next_vector_index,
                "dimension": self.dimension,
                "metric": self.metric,
            }, f)

    def list_collections(self) -> List[str]:
        if not os.path.isdir(self.index_dir):
            return []
        return sorted(
            name for name in os.listdir(self.index_dir)
            if os.path.exists(os.path.join(self._collection_dir(name), INDEX_FILE))
        )

    def _create_collection(self, name: str, dimension: int, metric: str) -> None:
        if metric != "cosine":
            raise ValueError(f"FAISS store supports only cosine metric, got {metric}")
        with self._lock:
            self.collection_name = name
            self.index = self._new_index(dimension)
            self.id_to_vector_index = {}
            self.vector_id_map = {}
            self.id_to_metadata = {}
            self.next_vector_index = 0
            self._loaded_name = name
            self._save()

    @staticmethod
    def _normalize(values: List[float]) -> np.ndarray:
        vector = np.asarray(values, dtype=np.float32)
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.reshape(1, -1)

    def _upsert(self, record: IndexedRecord) -> None:
        with self._lock:
            self._load()

            vector_index = self.id_to_vector_index.get(record.id)
            if vector_index is None:
                vector_index = self.next_vector_index
                self.next_vector_index += 1
            else:
                self.index.remove_ids(np.array([vector_index], dtype=np.int64))

            self.index.add_with_ids(self._normalize(record.values), np.array([vector_index], dtype=np.int64))
            self.id_to_vector_index[record.id] = vector_index
            self.vector_id_map[vector_index] = record.id
            self.id_to_metadata[record.id] = dict(record.metadata)
            self._save()

    def _query(self, vector: List[float], top_k: int, search_filter: Optional[SearchFilter]) -> List[CandidateResult]:
        with self._lock:
            self._load()
            if not self.index.ntotal:
                return []

            query = np.asarray(vector, dtype=np.float32)
            norm = np.linalg.norm(query)
            if norm == 0:
                return []
            query = (query / norm).reshape(1, -1)

            params = None
            population = self.index.ntotal
            if search_filter is not None and not search_filter.is_empty():
                allowed = np.array([
                    vector_index for record_id, vector_index in self.id_to_vector_index.items()
                    if search_filter.matches(self.id_to_metadata.get(record_id, {}))
                ], dtype=np.int64)
                if not len(allowed):
                    return []
                # The selector restricts the search itself so top_k counts only matching records
                params = self.faiss.SearchParameters(sel=self.faiss.IDSelectorBatch(allowed))
                population = len(allowed)

            scores, indices = self.index.search(query, min(top_k, population), params=params)

            query_results = []
            for score, vector_index in zip(scores[0], indices[0]):
                record_id = self.vector_id_map.get(int(vector_index))
                if record_id is None:
                    continue
                query_results.append(CandidateResult(
                    id=record_id,
                    score=float(score),
                    metadata=dict(self.id_to_metadata.get(record_id, {}))
                ))
            return query_results

    def _delete(self, record_id: str) -> None:
        with self._lock:
            self._load()
            vector_index = self.id_to_vector_index.pop(record_id, None)
            if vector_index is None:
                return
            self.index.remove_ids(np.array([vector_index], dtype=np.int64))
            self.vector_id_map.pop(vector_index, None)
            self.id_to_metadata.pop(record_id, None)
            self._save()

    def count(self) -> int:
        with self._lock:
            self._load()
            return int(self.index.ntotal)

    def clear(self) -> None:
        """Clear all records from the FAISS store."""
        with self._lock:
            self._load()
            self.index = self._new_index(self.dimension)
            self.id_to_vector_index.clear()
            self.vector_id_map.clear()
            self.id_to_metadata.clear()
            self.next_vector_index = 0
            self._save()
