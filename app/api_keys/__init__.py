"""
Gemini API key detection, validation and storage.
"""

from .service import KeyValidationService
from .extractor import KeyPattern, extract_candidate_keys
from .schemas import (
    KeyAction,
    KeyStatus,
    KeyValidationResult,
    KeyRecordInfo,
    ValidateAndSaveRequest,
    FetchAllRequest,
    ClearInvalidRequest,
)

__all__ = [
    "KeyValidationService",
    "KeyPattern",
    "extract_candidate_keys",
    "KeyAction",
    "KeyStatus",
    "KeyValidationResult",
    "KeyRecordInfo",
    "ValidateAndSaveRequest",
    "FetchAllRequest",
    "ClearInvalidRequest",
]
