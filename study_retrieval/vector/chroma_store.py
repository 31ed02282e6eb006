"""ChromaDB vector store for a remote (or local) Chroma server."""

from typing import Any, Dict, List, Optional

from .index import IVectorStore
from .types import CandidateResult, IndexedRecord, SearchFilter


class ChromaVectorStore(IVectorStore):
    """Chroma wrapper; the server persists collections across restarts."""

    def __init__(
        self,
        api_key: str,
        host: str = "localhost",
        port: int = 8000,
        collection_name: str = "study-materials",
        dimension: int = 384,
        metric: str = "cosine",
        cloud: str = "aws",
        region: str = "us-east-1",
        client=None,
    ):
        super().__init__(collection_name, dimension, metric)
        self.cloud = cloud
        self.region = region
        if client is None:
            import chromadb
            client = chromadb.HttpClient(
                host=host,
                port=port,
                headers={"x-chroma-token": api_key},
            )
        self._client = client
        self._collection = None

    def _get_collection(self):
        if self._collection is None or self._collection.name != self.collection_name:
            self._collection = self._client.get_collection(name=self.collection_name)
        return self._collection

    def list_collections(self) -> List[str]:
        # Older clients return Collection objects, newer ones return names
        return [getattr(collection, "name", collection) for collection in self._client.list_collections()]

    def _create_collection(self, name: str, dimension: int, metric: str) -> None:
        self._collection = self._client.create_collection(
            name=name,
            metadata={
                "hnsw:space": metric,
                "dimension": dimension,
                "cloud": self.cloud,
                "region": self.region,
            },
        )

    def _upsert(self, record: IndexedRecord) -> None:
        # Chroma rejects None metadata values
        metadata = {k: v for k, v in record.metadata.items() if v is not None}
        self._get_collection().upsert(
            ids=[record.id],
            embeddings=[list(record.values)],
            metadatas=[metadata],
        )

    def _query(self, vector: List[float], top_k: int, search_filter: Optional[SearchFilter]) -> List[CandidateResult]:
        results = self._get_collection().query(
            query_embeddings=[list(vector)],
            n_results=top_k,
            where=search_filter.to_chroma_where() if search_filter else None,
            include=["metadatas", "distances"],
        )

        parsed: List[CandidateResult] = []
        if not results or not results["ids"] or not results["ids"][0]:
            return parsed

        ids = results["ids"][0]
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)

        for record_id, metadata, distance in zip(ids, metadatas, distances):
            # Chroma cosine distance is 1 - cosine similarity
            parsed.append(CandidateResult(
                id=record_id,
                score=1.0 - float(distance),
                metadata=dict(metadata or {}),
            ))
        return parsed

    def _delete(self, record_id: str) -> None:
        self._get_collection().delete(ids=[record_id])

    def get_metadata(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Fetch stored metadata for one id, or None."""
        result = self._get_collection().get(ids=[record_id], include=["metadatas"])
        if not result or not result["ids"]:
            return None
        return dict(result["metadatas"][0] or {})

    def count(self) -> int:
        return self._get_collection().count()

    def clear(self) -> None:
        """Delete and recreate the collection."""
        self._client.delete_collection(self.collection_name)
        self._collection = None
        self._create_collection(self.collection_name, self.dimension, self.metric)
