"""
Document Processing Package
════════════════════════════

Everything that turns an uploaded file into searchable text.

Modules
───────
  extractor.py  Tika client: PUT /tika → plain text, bounded by a timeout

Extraction is best effort. A failed or skipped extraction stores the
document with empty text; it never fails the upload.
"""

from app.processing.extractor import ExtractionError, ExtractionResult, TikaTextExtractor

__all__ = [
    "ExtractionError",
    "ExtractionResult",
    "TikaTextExtractor",
]
