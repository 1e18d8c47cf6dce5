"""
Store classification persistence.

Thin key-value facade over the store_classifications table. Session work is
synchronous SQLAlchemy, pushed onto a worker thread so the event loop never
blocks on the database.
"""
import asyncio
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from store_intelligence.models.base import SessionLocal
from store_intelligence.models.store_classification import StoreClassificationRecord
from store_intelligence.utils.logger import log


class ClassificationRepository:
    """readClassification / writeClassification over SQLAlchemy"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    async def read_classification(self, store_id: str) -> Optional[Dict[str, str]]:
        """
        Returns:
            {"type": ..., "sub_type": ...} or None when the store has no row
        """
        return await asyncio.to_thread(self._read, store_id)

    async def write_classification(self, store_id: str, classification: Dict[str, str]) -> None:
        await asyncio.to_thread(self._write, store_id, classification)

    def _read(self, store_id: str) -> Optional[Dict[str, str]]:
        db = self.session_factory()
        try:
            row = db.get(StoreClassificationRecord, store_id)
            if not row:
                return None
            return {"type": row.store_type, "sub_type": row.sub_type or "standard"}
        finally:
            db.close()

    def _write(self, store_id: str, classification: Dict[str, str]) -> None:
        db = self.session_factory()
        try:
            row = db.get(StoreClassificationRecord, store_id)
            if not row:
                row = StoreClassificationRecord(store_id=store_id)
                db.add(row)
            row.store_type = classification["type"]
            row.sub_type = classification.get("sub_type")
            row.updated_at = datetime.utcnow()
            db.commit()
            log.debug(f"Stored classification for store {store_id}: {classification['type']}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
