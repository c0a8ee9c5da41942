"""
Pydantic schemas for key extraction, validation and storage.

JSON field names are camelCase (``keyString``, ``errorMessage``...) to match the
browser client; Python code uses the snake_case attribute names.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class KeyStatus(str, Enum):
    """Stored validation outcome of a key."""
    VALID = "valid"
    INVALID = "invalid"
    ERROR = "error"
    DB_ERROR = "db_error"
    UNKNOWN = "unknown"
    DELETED = "deleted"
    INFO = "info"


# Statuses removed by the "clear invalid" bulk delete
PRUNABLE_STATUSES = (KeyStatus.INVALID, KeyStatus.ERROR)


class KeyAction(str, Enum):
    """Operations accepted by the validate-keys endpoint."""
    VALIDATE_AND_SAVE = "validateAndSave"
    FETCH_ALL = "fetchAll"
    CLEAR_INVALID = "clearInvalid"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Request schemas
class ValidateAndSaveRequest(CamelModel):
    """Validate a chunk of keys and upsert the outcomes."""
    action: Literal["validateAndSave"] = "validateAndSave"
    keys: List[str] = Field(..., min_length=1, description="Candidate keys in this chunk")
    count: Optional[int] = Field(None, ge=0, description="Total number of keys in the whole run")

    @field_validator('keys')
    @classmethod
    def validate_keys(cls, v: List[str]) -> List[str]:
        cleaned = [k.strip() for k in v]
        if any(not k for k in cleaned):
            raise ValueError("API keys cannot be empty")
        return cleaned


class FetchAllRequest(CamelModel):
    """Return every stored record."""
    action: Literal["fetchAll"]
    keys: List[str] = Field(default_factory=list)
    count: Optional[int] = None


class ClearInvalidRequest(CamelModel):
    """Delete every record whose status is invalid or error."""
    action: Literal["clearInvalid"]
    keys: List[str] = Field(default_factory=list)
    count: Optional[int] = None


KeyActionRequest = Annotated[
    Union[ValidateAndSaveRequest, FetchAllRequest, ClearInvalidRequest],
    Field(discriminator="action"),
]

_key_action_adapter: TypeAdapter = TypeAdapter(KeyActionRequest)


def parse_key_action_request(payload: Any) -> Union[ValidateAndSaveRequest, FetchAllRequest, ClearInvalidRequest]:
    """Parse a raw request body into its tagged variant.

    A missing ``action`` means validate-and-save. Raises ``pydantic.ValidationError``
    (or ``TypeError`` for non-object bodies).
    """
    if not isinstance(payload, dict):
        raise TypeError("Request body must be a JSON object")
    data: Dict[str, Any] = dict(payload)
    if data.get("action") is None:
        data["action"] = KeyAction.VALIDATE_AND_SAVE.value
    return _key_action_adapter.validate_python(data)


class ExtractKeysRequest(BaseModel):
    """Free-form text to scan for candidate keys."""
    text: str = Field("", description="Pasted text")


# Response schemas
class ExtractionResult(BaseModel):
    keys: List[str]
    count: int
    message: str


class KeyValidationResult(CamelModel):
    """Outcome of validating (and saving) one key."""
    key_string: str
    status: KeyStatus
    error_message: Optional[str] = None
    # Populated only for db_error: the outcome that could not be saved
    attempted_status: Optional[KeyStatus] = None
    attempted_error_message: Optional[str] = None


class KeyRecordInfo(CamelModel):
    """Stored key record."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    key_string: str
    status: KeyStatus
    error_message: Optional[str] = None
    created_at: datetime
    last_validated_at: datetime


class ClearInvalidResponse(BaseModel):
    message: str
    count: int
