"""
Persistence operations for stored key records.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.orm import Session

from app.api_keys.schemas import KeyStatus
from app.db.models import APIKeyRecord

logger = logging.getLogger(__name__)


class APIKeyRepository:
    """Thin data-access layer over the ``api_keys`` table.

    Callers own the session and its transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_key_string(self, key_string: str) -> Optional[APIKeyRecord]:
        return self.db.execute(
            select(APIKeyRecord).where(APIKeyRecord.key_string == key_string)
        ).scalar_one_or_none()

    def upsert(self, key_string: str, status: KeyStatus, error_message: Optional[str]) -> APIKeyRecord:
        """Update the record for *key_string* in place, or insert it."""
        now = datetime.now(timezone.utc)
        record = self.get_by_key_string(key_string)
        if record is not None:
            record.status = status.value
            record.error_message = error_message
            record.last_validated_at = now
        else:
            record = APIKeyRecord(
                key_string=key_string,
                status=status.value,
                error_message=error_message,
                created_at=now,
                last_validated_at=now,
            )
            self.db.add(record)
        self.db.flush()
        return record

    def list_all(self) -> List[APIKeyRecord]:
        """Every record, newest first."""
        return list(
            self.db.execute(
                select(APIKeyRecord).order_by(APIKeyRecord.created_at.desc(), APIKeyRecord.id.desc())
            ).scalars().all()
        )

    def list_key_strings_by_status(self, status: KeyStatus) -> List[str]:
        return list(
            self.db.execute(
                select(APIKeyRecord.key_string)
                .where(APIKeyRecord.status == status.value)
                .order_by(APIKeyRecord.created_at.desc(), APIKeyRecord.id.desc())
            ).scalars().all()
        )

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(APIKeyRecord)).scalar_one()

    def delete_by_statuses(self, statuses: Iterable[KeyStatus]) -> int:
        values = [s.value for s in statuses]
        result = self.db.execute(
            delete(APIKeyRecord).where(APIKeyRecord.status.in_(values))
        )
        deleted = result.rowcount or 0
        logger.info("Deleted %d key records with status in %s", deleted, values)
        return deleted
