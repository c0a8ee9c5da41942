"""
API endpoints for detecting, validating and managing stored Gemini API keys.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Union

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ValidationError
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.api_keys.exceptions import InvalidKeyRequestError
from app.api_keys.extractor import extract_keys_with_summary
from app.api_keys.schemas import (
    ClearInvalidRequest,
    ClearInvalidResponse,
    ExtractionResult,
    ExtractKeysRequest,
    FetchAllRequest,
    KeyRecordInfo,
    ValidateAndSaveRequest,
    parse_key_action_request,
)
from app.api_keys.service import KeyValidationService, get_key_validation_service
from app.core.settings import settings

logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

router = APIRouter()


def _dump(models: Union[BaseModel, List[BaseModel]]) -> Any:
    if isinstance(models, list):
        return [m.model_dump(mode="json", by_alias=True) for m in models]
    return models.model_dump(mode="json", by_alias=True)


def _describe_validation_error(exc: ValidationError) -> str:
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if "keys" in loc:
            return "Provide a non-empty array of API keys to validate."
        if "action" in loc or error.get("type") == "union_tag_invalid":
            return "Unknown action. Expected one of: validateAndSave, fetchAll, clearInvalid."
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"Invalid request at {location}: {first.get('msg', 'malformed body')}"


def _clear_invalid(service: KeyValidationService) -> ClearInvalidResponse:
    deleted = service.clear_invalid_keys()
    return ClearInvalidResponse(
        message=f"Deleted {deleted} invalid key(s).",
        count=deleted,
    )


@router.post("/validate-keys")
@limiter.limit(settings.validate_rate_limit)
async def validate_keys(
    request: Request,
    service: KeyValidationService = Depends(get_key_validation_service),
):
    """
    Single entry point used by the browser client.

    Body: ``{"keys": [...], "action": "validateAndSave" | "fetchAll" | "clearInvalid", "count": N}``.
    A missing action validates the given chunk and returns only its results.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise InvalidKeyRequestError("Request body must be valid JSON.")

    try:
        action_request = parse_key_action_request(payload)
    except ValidationError as e:
        raise InvalidKeyRequestError(_describe_validation_error(e))
    except TypeError as e:
        raise InvalidKeyRequestError(str(e))

    if isinstance(action_request, FetchAllRequest):
        return JSONResponse(content=_dump(service.get_all_keys()))

    if isinstance(action_request, ClearInvalidRequest):
        return JSONResponse(content=_dump(_clear_invalid(service)))

    if isinstance(action_request, ValidateAndSaveRequest):
        results = await service.validate_and_save(action_request.keys, total_count=action_request.count)
        return JSONResponse(content=_dump(results))

    raise InvalidKeyRequestError(f"Unsupported action: {action_request.action}")


@router.post("/keys/extract", response_model=ExtractionResult)
@limiter.limit(settings.read_rate_limit)
async def extract_keys(request: Request, extract_request: ExtractKeysRequest):
    """Detect candidate keys in pasted text. Nothing is stored."""
    return extract_keys_with_summary(extract_request.text)


@router.get("/keys", response_model=List[KeyRecordInfo], response_model_by_alias=True)
@limiter.limit(settings.read_rate_limit)
async def list_keys(
    request: Request,
    service: KeyValidationService = Depends(get_key_validation_service),
):
    """All stored keys, newest first."""
    return service.get_all_keys()


@router.delete("/keys/invalid", response_model=ClearInvalidResponse)
@limiter.limit(settings.validate_rate_limit)
async def clear_invalid_keys(
    request: Request,
    service: KeyValidationService = Depends(get_key_validation_service),
):
    """Irreversibly delete every key whose status is invalid or error."""
    return _clear_invalid(service)


@router.get("/keys/export", response_class=PlainTextResponse)
@limiter.limit(settings.read_rate_limit)
async def export_valid_keys(
    request: Request,
    service: KeyValidationService = Depends(get_key_validation_service),
):
    """Download every valid key, one per line."""
    valid_keys = service.export_valid_keys()
    if not valid_keys:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No valid keys to export."
        )

    filename = f"gemini_valid_keys_{datetime.now(timezone.utc).date().isoformat()}.txt"
    logger.info("Exporting %d valid keys", len(valid_keys))
    return PlainTextResponse(
        "\n".join(valid_keys),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
