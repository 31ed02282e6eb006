#!/usr/bin/env python3
"""
Index Rebuild Utility
Rebuilds the study-materials vector index from the SQLite system of record,
for example after switching vector backends or losing the index.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from study_retrieval.core.config import are_vector_features_enabled, initialize_vector_store, get_retrieval_service
from study_retrieval.core.dao import list_materials
from study_retrieval.core.exceptions import ConfigurationError


def rebuild(retrieval_service) -> int:
    """Clear the collection and re-index every material. Returns the number indexed."""
    try:
        retrieval_service.vector_store.clear()
        print("✓ Cleared existing vector index")
    except Exception as e:
        print(f"WARNING: Failed to clear existing index: {e}")

    materials = list_materials()
    print(f"Found {len(materials)} materials in the system of record")

    indexed_count = 0
    for material in materials:
        if retrieval_service.index_material(
            material.id,
            material.title,
            material.description,
            material.content,
            material.index_metadata()
        ):
            indexed_count += 1
        else:
            print(f"ERROR: Failed to index material {material.id}")

        if indexed_count and indexed_count % 10 == 0:
            print(f"  ... indexed {indexed_count}/{len(materials)} materials")

    return indexed_count


def main():
    """Rebuild vector index from SQLite materials."""
    if not are_vector_features_enabled():
        print("ERROR: Vector features disabled. Set VECTOR_ENABLED=true")
        sys.exit(1)

    print("Starting vector index rebuild...")

    try:
        initialize_vector_store()
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    indexed_count = rebuild(get_retrieval_service())
    print(f"✓ Successfully rebuilt index with {indexed_count} vectors")
    print("Index rebuild complete!")


if __name__ == "__main__":
    main()
