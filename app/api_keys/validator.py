"""Checks a single Gemini API key against the models listing endpoint."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from app.api_keys.schemas import KeyStatus, KeyValidationResult
from app.core.logging_config import get_logger
from app.core.settings import settings
from app.utils.masking import mask_api_key

MISSING_MODELS_MESSAGE = "API response did not include a model list."


class GeminiKeyValidator:
    """Issues one GET per key and classifies the response.

    Never raises for a bad key or a network failure: every outcome becomes a
    ``KeyValidationResult`` with status ``valid``, ``invalid`` or ``error``.
    """

    def __init__(
        self,
        *,
        models_url: Optional[str] = None,
        api_client: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.logger = get_logger("gemini_key_validator")
        self.models_url = models_url or settings.gemini_models_url
        self.api_client = api_client or settings.gemini_api_client
        self.timeout = timeout or settings.gemini_request_timeout_sec
        self._transport = transport

    def open_client(self) -> httpx.AsyncClient:
        """Client shared by the keys of one chunk."""
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _headers(self, key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": key,
            "X-Goog-Api-Client": self.api_client,
        }

    async def validate(self, key: str, client: Optional[httpx.AsyncClient] = None) -> KeyValidationResult:
        if client is None:
            async with self.open_client() as owned:
                return await self.validate(key, owned)

        try:
            response = await client.get(self.models_url, headers=self._headers(key))
        except httpx.HTTPError as exc:
            self.logger.warning("key_validation_transport_error", key=mask_api_key(key), error=str(exc))
            return KeyValidationResult(
                key_string=key,
                status=KeyStatus.ERROR,
                error_message=f"Network or server error: {exc}",
            )

        result = self.classify_response(key, response)
        self.logger.debug(
            "key_validated",
            key=mask_api_key(key),
            status=result.status.value,
            http_status=response.status_code,
        )
        return result

    @staticmethod
    def _parse_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _error_message(data: Dict[str, Any]) -> Optional[str]:
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return None

    @classmethod
    def classify_response(cls, key: str, response: httpx.Response) -> KeyValidationResult:
        data = cls._parse_body(response)

        if response.is_success:
            if isinstance(data.get("models"), list):
                return KeyValidationResult(key_string=key, status=KeyStatus.VALID)
            return KeyValidationResult(
                key_string=key,
                status=KeyStatus.INVALID,
                error_message=cls._error_message(data) or MISSING_MODELS_MESSAGE,
            )

        message = cls._error_message(data)
        if not message:
            message = f"HTTP error: {response.status_code} {response.reason_phrase}".strip()
        return KeyValidationResult(key_string=key, status=KeyStatus.INVALID, error_message=message)
