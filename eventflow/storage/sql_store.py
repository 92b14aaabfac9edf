import json
import logging
from typing import List
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from .base import Record, RecordStore
from .models import RecordCollection

logger = logging.getLogger(__name__)


class SqlRecordStore(RecordStore):
    """
    Record store backed by a SQL database.

    Each collection is one row of `record_collections`; the whole
    collection is replaced on every write, inside one transaction.
    """

    def __init__(self, db_session_factory: sessionmaker) -> None:
        self._db_session_factory = db_session_factory

    def read_collection(self, name: str) -> List[Record]:
        db: Session = self._db_session_factory()
        try:
            row = db.get(RecordCollection, name)
            if row is None:
                logger.debug(f"Collection not found, reading as empty: name={name}")
                return []
            return json.loads(row.payload)
        except SQLAlchemyError as e:
            logger.error(
                f"Database error reading collection: name={name}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True,
            )
            raise
        finally:
            db.close()

    def write_collection(self, name: str, records: List[Record]) -> None:
        payload = json.dumps(list(records), ensure_ascii=False)
        db: Session = self._db_session_factory()
        try:
            row = db.get(RecordCollection, name)
            if row is None:
                db.add(RecordCollection(name=name, payload=payload))
            else:
                row.payload = payload
            db.commit()
            logger.debug(f"Collection persisted: name={name}, records={len(records)}")
        except SQLAlchemyError as e:
            logger.error(
                f"Database error writing collection: name={name}, "
                f"error={type(e).__name__}: {e}",
                exc_info=True,
            )
            db.rollback()
            raise
        finally:
            db.close()

    def ping(self) -> bool:
        db: Session = self._db_session_factory()
        try:
            db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database health check failed: {e}")
            return False
        finally:
            db.close()
