#!/usr/bin/env python3
"""
Provision the study-materials vector collection.
Run once per deployment before the API starts accepting uploads.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from study_retrieval.core.config import (
    VECTOR_PROVIDER,
    VECTOR_COLLECTION,
    VECTOR_DIMENSION,
    VECTOR_METRIC,
    initialize_vector_store,
    get_provisioning_location
)
from study_retrieval.core.exceptions import ConfigurationError


def main() -> int:
    print(f"Initializing {VECTOR_PROVIDER} vector collection...")

    try:
        store = initialize_vector_store()
    except (ConfigurationError, ImportError) as e:
        print(f"ERROR: {e}")
        print("\nTroubleshooting:")
        print("  1. Check VECTOR_API_KEY is set when VECTOR_PROVIDER=chroma")
        print("  2. Check VECTOR_HOST and VECTOR_PORT point at a running server")
        print("  3. Install the backend package (faiss-cpu or chromadb)")
        return 1
    except Exception as e:
        print(f"ERROR: Failed to provision collection: {e}")
        print("\nTroubleshooting:")
        print("  1. Check the vector backend is reachable")
        print("  2. Check the credential has permission to create collections")
        return 1

    print("✓ Collection ready")
    print(f"  Name: {VECTOR_COLLECTION}")
    print(f"  Dimension: {VECTOR_DIMENSION}")
    print(f"  Metric: {VECTOR_METRIC}")
    print(f"  Region: {get_provisioning_location()}")
    print(f"  Records: {store.count()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
