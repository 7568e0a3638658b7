"""
concepts/registry.py
--------------------
Builds the concept registry of the store directory.
"""

from __future__ import annotations

from sqlalchemy.orm import sessionmaker

from concepts.rating import Rating
from concepts.requesting import Requesting
from concepts.review import Review
from concepts.store import Store
from concepts.tagging import Tagging
from concepts.user import User
from core.concepts import ConceptRegistry


def build_registry(session_factory: sessionmaker) -> ConceptRegistry:
    """One instance of every concept, sharing a session factory."""
    return ConceptRegistry(
        [
            Requesting(),
            Store(session_factory),
            User(session_factory),
            Review(session_factory),
            Rating(session_factory),
            Tagging(session_factory),
        ]
    )
