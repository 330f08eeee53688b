"""
Name: Content Hash

Responsibilities:
  - Normalize text for deterministic hashing
  - Compute SHA-256 over the normalized text, scoped by collection

Collaborators:
  - application.use_cases.ingest_documents: detects unchanged documents

Notes:
  - NFC unicode only: no lowercase, no whitespace collapse, because the
    embedding is computed from the raw text and any visible change must
    trigger a re-embed
  - Same text in two collections gives two different hashes
"""

from __future__ import annotations

import hashlib
import unicodedata


def normalize_text(text: str) -> str:
    return unicodedata.normalize("NFC", text)


def compute_content_hash(collection: str, text: str) -> str:
    """R: Hex SHA-256 of "{collection}:{normalized text}"."""
    payload = f"{collection}:{normalize_text(text)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
