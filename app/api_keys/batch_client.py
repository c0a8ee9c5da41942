"""HTTP client that drives the validate-keys endpoint one chunk at a time.

The server validates a chunk and returns only that chunk's results; this client
merges them into a running view keyed by ``keyString`` and reports progress
after every chunk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import httpx

from app.api_keys.exceptions import BatchTransportError
from app.api_keys.schemas import (
    ClearInvalidResponse,
    KeyAction,
    KeyRecordInfo,
    KeyValidationResult,
)
from app.core.logging_config import get_logger
from app.core.settings import settings

VALIDATE_PATH = "/api/v1/validate-keys"
EXPORT_PATH = "/api/v1/keys/export"


def chunk_keys(keys: Sequence[str], size: int) -> Iterator[List[str]]:
    """Yield consecutive chunks of at most *size* keys."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for start in range(0, len(keys), size):
        yield list(keys[start:start + size])


def merge_results(
    current: Sequence[KeyValidationResult], chunk_results: Sequence[KeyValidationResult]
) -> List[KeyValidationResult]:
    """Replace entries sharing a keyString with the chunk's, then append the rest."""
    incoming = {r.key_string for r in chunk_results}
    merged = [r for r in current if r.key_string not in incoming]
    merged.extend(chunk_results)
    return merged


@dataclass
class BatchProgress:
    batch_index: int
    processed: int
    total: int
    batch_results: List[KeyValidationResult] = field(default_factory=list)

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return round(self.processed / self.total * 100)


ProgressCallback = Callable[[BatchProgress], None]


class KeyValidationClient:
    """Async client for the key validator API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        batch_size: Optional[int] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.batch_size = batch_size or settings.batch_size
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("key_validation_client", base_url=self.base_url)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            detail = data.get("error") or data.get("detail") or data.get("message")
            if detail:
                return str(detail)
        return f"{response.status_code} {response.reason_phrase}".strip()

    @staticmethod
    def _parse_batch_results(response: httpx.Response) -> List[KeyValidationResult]:
        # json decode errors and pydantic's ValidationError are both ValueErrors
        data = response.json()
        if not isinstance(data, list):
            raise ValueError(f"expected a list of results, got {type(data).__name__}")
        return [KeyValidationResult.model_validate(item) for item in data]

    async def _post_action(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> Any:
        response = await client.post(VALIDATE_PATH, json=payload)
        response.raise_for_status()
        return response.json()

    async def validate_all(
        self, keys: Sequence[str], on_progress: Optional[ProgressCallback] = None
    ) -> List[KeyValidationResult]:
        """
        Validate *keys* chunk by chunk and return the merged results.

        Raises ``BatchTransportError`` when a chunk request fails; later chunks are
        not sent.
        """
        total = len(keys)
        merged: List[KeyValidationResult] = []
        processed = 0

        async with self._client() as client:
            for index, batch in enumerate(chunk_keys(keys, self.batch_size)):
                payload = {
                    "keys": batch,
                    "action": KeyAction.VALIDATE_AND_SAVE.value,
                    "count": total,
                }
                try:
                    response = await client.post(VALIDATE_PATH, json=payload)
                except httpx.HTTPError as exc:
                    self.logger.error("batch_request_failed", batch_index=index, error=str(exc))
                    raise BatchTransportError(str(exc), index, merged) from exc

                if not response.is_success:
                    detail = self._error_detail(response)
                    self.logger.error(
                        "batch_request_rejected", batch_index=index, status_code=response.status_code, detail=detail
                    )
                    raise BatchTransportError(detail, index, merged, status_code=response.status_code)

                try:
                    batch_results = self._parse_batch_results(response)
                except ValueError as exc:
                    self.logger.error(
                        "batch_response_unreadable", batch_index=index, status_code=response.status_code, error=str(exc)
                    )
                    raise BatchTransportError(
                        f"Unexpected response body: {exc}", index, merged, status_code=response.status_code
                    ) from exc

                merged = merge_results(merged, batch_results)
                processed += len(batch)

                if on_progress is not None:
                    on_progress(BatchProgress(index, processed, total, batch_results))

        return merged

    async def fetch_all(self) -> List[KeyRecordInfo]:
        async with self._client() as client:
            data = await self._post_action(client, {"keys": [], "action": KeyAction.FETCH_ALL.value})
        return [KeyRecordInfo.model_validate(item) for item in data]

    async def clear_invalid(self) -> ClearInvalidResponse:
        async with self._client() as client:
            data = await self._post_action(client, {"keys": [], "action": KeyAction.CLEAR_INVALID.value})
        return ClearInvalidResponse.model_validate(data)

    async def export_valid(self) -> List[str]:
        """Valid keys as stored on the server; empty when there are none."""
        async with self._client() as client:
            response = await client.get(EXPORT_PATH)
        if response.status_code == 404:
            return []
        response.raise_for_status()
        return [line for line in response.text.splitlines() if line.strip()]
