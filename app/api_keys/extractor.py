"""Detection of candidate Gemini API keys in pasted text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from app.api_keys.schemas import ExtractionResult
from app.core.settings import Settings, get_settings

# Runs of these characters separate one key from the next
SEGMENT_SEPARATORS = re.compile(r"[;,:\n]+")
_WHITESPACE = re.compile(r"\s+")
KEY_BODY_CHARS = "[0-9A-Za-z_-]"


@dataclass(frozen=True)
class KeyPattern:
    """Fixed prefix followed by a bounded run of key characters.

    ``max_length=None`` accepts ``min_length`` or more trailing characters.
    """

    prefix: str = "AIzaSy"
    min_length: int = 33
    max_length: Optional[int] = 33

    def __post_init__(self) -> None:
        if not self.prefix:
            raise ValueError("prefix must not be empty")
        if self.min_length < 1:
            raise ValueError("min_length must be at least 1")
        if self.max_length is not None and self.max_length < self.min_length:
            raise ValueError("max_length must be >= min_length")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "KeyPattern":
        settings = settings or get_settings()
        return cls(
            prefix=settings.key_prefix,
            min_length=settings.key_min_length,
            max_length=settings.key_max_length,
        )

    def compile(self) -> Pattern[str]:
        upper = "" if self.max_length is None else str(self.max_length)
        if upper == str(self.min_length):
            quantifier = f"{{{self.min_length}}}"
        else:
            quantifier = f"{{{self.min_length},{upper}}}"
        return re.compile(re.escape(self.prefix) + KEY_BODY_CHARS + quantifier)


def extract_candidate_keys(text: Optional[str], pattern: Optional[KeyPattern] = None) -> List[str]:
    """Return the distinct keys found in *text*, in order of first appearance.

    Whitespace inside a segment is dropped, so a key wrapped across spaces or
    tabs is still found. Newlines, ``;``, ``,`` and ``:`` end a segment.
    """
    if not text:
        return []

    regex = (pattern or KeyPattern.from_settings()).compile()
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")

    found: dict[str, None] = {}
    for segment in SEGMENT_SEPARATORS.split(normalized):
        cleaned = _WHITESPACE.sub("", segment)
        if not cleaned:
            continue
        for match in regex.finditer(cleaned):
            found.setdefault(match.group(0), None)
    return list(found)


def extract_keys_with_summary(text: Optional[str], pattern: Optional[KeyPattern] = None) -> ExtractionResult:
    keys = extract_candidate_keys(text, pattern)
    if keys:
        message = f"Found {len(keys)} Gemini API key(s)."
    else:
        message = "No Gemini API keys found. Check the input format."
    return ExtractionResult(keys=keys, count=len(keys), message=message)
