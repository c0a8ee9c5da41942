"""
Exceptions for the key validation pipeline.
"""

from typing import Any, Dict, List, Optional


class KeyValidatorError(Exception):
    """Base exception for key validator errors."""
    pass


class InvalidKeyRequestError(KeyValidatorError):
    """Raised when an inbound validate-keys body cannot be parsed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {"error": self.message}


class BatchTransportError(KeyValidatorError):
    """
    Raised by the batch client when posting a chunk fails.

    Remaining chunks are not sent; ``partial_results`` holds what was merged
    before the failing chunk.
    """

    def __init__(
        self,
        message: str,
        batch_index: int,
        partial_results: Optional[List[Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.batch_index = batch_index
        self.partial_results = list(partial_results or [])
        self.status_code = status_code

    def __str__(self) -> str:
        return f"Batch {self.batch_index + 1} failed: {self.message}"
