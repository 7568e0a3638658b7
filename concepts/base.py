"""
concepts/base.py
----------------
Shared plumbing for concepts persisted with SQLAlchemy.

Each concept owns its own tables and opens one short-lived session per
operation. Nothing here lets one concept reach another's rows.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session, sessionmaker

from core.concepts import Concept


def new_id() -> str:
    return uuid.uuid4().hex


class SqlConcept(Concept):
    """Concept backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        with self._session_factory() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
