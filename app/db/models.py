"""
Database models for the Gemini key validator.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, DateTime, CheckConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

KEY_STATUSES = ("valid", "invalid", "error", "db_error", "unknown", "deleted", "info")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class APIKeyRecord(Base):
    """
    Latest validation outcome for one API key string.
    Re-validation updates the row in place; key_string is unique.
    """
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    key_string = Column(String(255), nullable=False, unique=True, index=True)
    status = Column(String(20), nullable=False, default="unknown", index=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    last_validated_at = Column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "status IN ({})".format(", ".join(f"'{s}'" for s in KEY_STATUSES)),
            name="valid_key_status"
        ),
        CheckConstraint(
            "LENGTH(key_string) > 0",
            name="non_empty_key_string"
        ),
    )

    def __repr__(self) -> str:
        return f"<APIKeyRecord id={self.id} status={self.status}>"
