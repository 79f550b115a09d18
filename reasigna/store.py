from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from sqlalchemy.orm import sessionmaker

import reasigna.db as app_db
from reasigna.config import Settings, get_settings
from reasigna.models import DOCUMENT_ID, StateDocument, utcnow

logger = logging.getLogger(__name__)


def seed_document() -> dict[str, Any]:
    return {
        "users": [
            {"id": 1, "username": "admin", "password": "admin", "role": "admin", "name": "Administrador"},
            {"id": 2, "username": "user1", "password": "pass1", "role": "employee", "name": "Operador 1"},
            {"id": 3, "username": "user2", "password": "pass2", "role": "employee", "name": "Operador 2"},
        ],
        "turns": [
            {
                "id": 1,
                "name": "Turno Mañana",
                "start": "06:00",
                "end": "14:00",
                "days": ["L", "M", "X", "J", "V"],
                "area": "Ruta A",
                "assignedTo": 2,
                "status": "active",
            }
        ],
        "requests": [],
    }


class StateStore(Protocol):
    def read(self) -> dict[str, Any]:
        ...

    def write(self, state: dict[str, Any]) -> None:
        ...


class JsonFileStore:
    """Keeps the whole document in one JSON file, rewritten on every write."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def read(self) -> dict[str, Any]:
        if not self.path.exists():
            logger.info("Seeding state file %s", self.path)
            self.write(seed_document())
        with self.path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def write(self, state: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Readers only ever see a complete document: write aside, then swap it in.
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(state, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class SqlDocumentStore:
    """Keeps the whole document in a single row of ``state_documents``."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def read(self) -> dict[str, Any]:
        with self.session_factory() as db:
            document = db.get(StateDocument, DOCUMENT_ID)
            if document is None:
                logger.info("Seeding state document in database")
                document = StateDocument(id=DOCUMENT_ID, payload_json=seed_document(), updated_at=utcnow())
                db.add(document)
                db.commit()
            return copy.deepcopy(document.payload_json)

    def write(self, state: dict[str, Any]) -> None:
        with self.session_factory() as db:
            document = db.get(StateDocument, DOCUMENT_ID)
            if document is None:
                document = StateDocument(id=DOCUMENT_ID)
                db.add(document)
            document.payload_json = copy.deepcopy(state)
            document.updated_at = utcnow()
            db.commit()


class MemoryStore:
    def __init__(self, initial: dict[str, Any] | None = None):
        self._state = copy.deepcopy(initial) if initial is not None else None

    def read(self) -> dict[str, Any]:
        if self._state is None:
            self._state = seed_document()
        return copy.deepcopy(self._state)

    def write(self, state: dict[str, Any]) -> None:
        self._state = copy.deepcopy(state)


def build_store(settings: Settings | None = None) -> StateStore:
    settings = settings or get_settings()
    if settings.store_backend == "sql":
        return SqlDocumentStore(app_db.SessionLocal)
    if settings.store_backend != "json":
        raise ValueError(f"Unknown store backend: {settings.store_backend}")
    return JsonFileStore(settings.data_file)
