"""
Service layer for batch key validation.
Handles validate-and-save for one chunk plus the fetch-all / clear-invalid /
export operations.
"""

import threading
from typing import List, Optional, Sequence

from app.api_keys.repository import APIKeyRepository
from app.api_keys.schemas import (
    PRUNABLE_STATUSES,
    KeyRecordInfo,
    KeyStatus,
    KeyValidationResult,
)
from app.api_keys.validator import GeminiKeyValidator
from app.core.logging_config import get_logger
from app.db.session import DatabaseSessionManager, get_database_manager
from app.utils.masking import mask_api_key

logger = get_logger(__name__)


class KeyValidationService:
    """Validates keys one at a time and records each outcome."""

    def __init__(
        self,
        db_manager: Optional[DatabaseSessionManager] = None,
        validator: Optional[GeminiKeyValidator] = None,
    ):
        self.db_manager = db_manager or get_database_manager()
        self.validator = validator or GeminiKeyValidator()

    async def validate_and_save(
        self, keys: Sequence[str], total_count: Optional[int] = None
    ) -> List[KeyValidationResult]:
        """
        Validate one chunk of keys sequentially and upsert each outcome.

        Per-key failures (network, HTTP, database) are recorded in the result list
        and never abort the chunk. Results follow the input order.
        """
        log = logger.bind(batch_size=len(keys), total_count=total_count)
        log.info("batch_validation_started")

        results: List[KeyValidationResult] = []
        async with self.validator.open_client() as client:
            for key in keys:
                attempted = await self.validator.validate(key, client)
                results.append(self.save_result(attempted))

        log.info(
            "batch_validation_finished",
            valid=sum(1 for r in results if r.status == KeyStatus.VALID),
            db_errors=sum(1 for r in results if r.status == KeyStatus.DB_ERROR),
        )
        return results

    def save_result(self, result: KeyValidationResult) -> KeyValidationResult:
        """
        Upsert *result* in its own session scope.

        A persistence failure wraps the attempted outcome in a ``db_error`` result.
        """
        try:
            with self.db_manager.session_scope() as session:
                APIKeyRepository(session).upsert(
                    result.key_string, result.status, result.error_message
                )
        except Exception as e:
            logger.error(
                "key_record_save_failed",
                key=mask_api_key(result.key_string),
                error=str(e),
            )
            return KeyValidationResult(
                key_string=result.key_string,
                status=KeyStatus.DB_ERROR,
                error_message=f"Database save failed: {e}",
                attempted_status=result.status,
                attempted_error_message=result.error_message,
            )
        return result

    def get_all_keys(self) -> List[KeyRecordInfo]:
        """Every stored record, newest first."""
        with self.db_manager.session_scope() as session:
            records = APIKeyRepository(session).list_all()
            return [KeyRecordInfo.model_validate(r) for r in records]

    def clear_invalid_keys(self) -> int:
        """Delete records whose status is invalid or error; returns the count."""
        with self.db_manager.session_scope() as session:
            deleted = APIKeyRepository(session).delete_by_statuses(PRUNABLE_STATUSES)
        logger.info("invalid_keys_cleared", count=deleted)
        return deleted

    def export_valid_keys(self) -> List[str]:
        with self.db_manager.session_scope() as session:
            return APIKeyRepository(session).list_key_strings_by_status(KeyStatus.VALID)


# Thread-safe singleton
_key_validation_service: Optional[KeyValidationService] = None
_service_lock = threading.Lock()


def get_key_validation_service() -> KeyValidationService:
    """Get thread-safe singleton key validation service instance."""
    global _key_validation_service
    if _key_validation_service is None:
        with _service_lock:
            # Double-check locking pattern
            if _key_validation_service is None:
                _key_validation_service = KeyValidationService()
    return _key_validation_service


def reset_key_validation_service() -> None:
    """Drop the singleton so the next call rebuilds it (used on shutdown)."""
    global _key_validation_service
    with _service_lock:
        _key_validation_service = None
