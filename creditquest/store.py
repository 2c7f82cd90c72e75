"""Persistence gateway: one JSON document, read and replaced wholesale."""

import json
import logging
from datetime import datetime, timezone
from fastapi import Depends
from sqlalchemy.orm import Session
from creditquest.database import get_db
from creditquest.models import Document

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "data"


class DocumentStore:
    def __init__(self, db: Session, name: str = DOCUMENT_NAME):
        self.db = db
        self.name = name

    def _row(self):
        return self.db.query(Document).filter(Document.name == self.name).first()

    def load(self) -> dict:
        """Return the stored document, or {} if nothing usable is stored."""
        row = self._row()
        if not row:
            return {}
        try:
            data = json.loads(row.payload)
        except json.JSONDecodeError:
            logger.error(f"Stored document {self.name!r} is not valid JSON", exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.error(f"Stored document {self.name!r} is not a JSON object")
            return {}
        return data

    def save(self, document: dict) -> None:
        payload = json.dumps(document)
        row = self._row()
        if row:
            row.payload = payload
            row.updated_at = datetime.now(timezone.utc).isoformat()
        else:
            self.db.add(Document(name=self.name, payload=payload))
        self.db.commit()

    def clear(self) -> None:
        self.save({})


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)
