"""Rough processing-cost heuristics for uploaded documents.

Estimates are derived from file size and type only. They drive the "this may
take a while" hint returned on upload and the log line emitted before a large
document is processed; they are not billing figures.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

KIB = 1024
MIB = 1024 * KIB

SAFE_THRESHOLD_BYTES = 50 * MIB

_BYTES_PER_PAGE = {
    ".pdf": 50 * KIB,
    ".doc": 30 * KIB,
    ".docx": 30 * KIB,
}
_DEFAULT_BYTES_PER_PAGE = 20 * KIB


@dataclass(frozen=True)
class CostEstimate:
    complexity: str
    estimated_pages: int
    is_large_document: bool
    processing_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def estimate_processing_cost(file_size: int, filename: str) -> CostEstimate:
    extension = os.path.splitext(filename or "")[1].lower()
    bytes_per_page = _BYTES_PER_PAGE.get(extension, _DEFAULT_BYTES_PER_PAGE)
    pages = max(1, -(-max(file_size, 0) // bytes_per_page))

    if pages < 10:
        return CostEstimate("small", pages, False)
    if pages < 50:
        return CostEstimate("medium", pages, False)
    if pages < 100:
        return CostEstimate("large", pages, True, "This document may take longer to process.")
    return CostEstimate("very_large", pages, True, "This is a large document and may take longer to process.")


def exceeds_safe_threshold(file_size: int) -> bool:
    return file_size > SAFE_THRESHOLD_BYTES
