#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Reference Ingestion CLI - embed reference corpora into the vector store

Usage:
    python scripts/ingest_references.py
    python scripts/ingest_references.py --references-dir data/references --provider ollama
    python scripts/ingest_references.py --store data/vector-store.json --no-sample
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from editorial.retrieval.ingestion import main


if __name__ == "__main__":
    sys.exit(main())
