"""
concepts/user.py
----------------
Account registry: registration, authentication and profile lookups.

Passwords are stored as Argon2id hashes (salt embedded in the hash); they
never leave this concept.
"""

from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from sqlalchemy import or_, select

from concepts.base import SqlConcept, new_id
from core.concepts import EMPTY, Failure, Success, command, query
from database.models import UserRow

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    try:
        return _hasher.verify(stored_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


class User(SqlConcept):
    """Registers and authenticates user accounts."""

    @command
    def register(self, username: str, email: str, password: str):
        username = (username or "").strip()
        email = (email or "").strip().lower()
        if not username or not email:
            return Failure.of("Username and email are required")
        if "@" not in email:
            return Failure.of("Invalid email address")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            return Failure.of(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        with self.session() as s:
            clash = s.scalars(
                select(UserRow).where(or_(UserRow.username == username, UserRow.email == email))
            ).first()
            if clash is not None:
                return Failure.of("Username or email already registered")
            user_id = new_id()
            s.add(
                UserRow(
                    user_id=user_id,
                    username=username,
                    email=email,
                    password_hash=hash_password(password),
                )
            )
        logger.info("[User] Registered %s", username)
        return Success({"userId": user_id})

    @command
    def authenticate(self, usernameOrEmail: str, password: str):
        key = (usernameOrEmail or "").strip()
        with self.session() as s:
            row = s.scalars(
                select(UserRow).where(or_(UserRow.username == key, UserRow.email == key.lower()))
            ).first()
            if row is None or not verify_password(password or "", row.password_hash):
                return Failure.of("Invalid credentials")
            return Success({"userId": row.user_id})

    @command
    def update_email(self, userId: str, newEmail: str):
        email = (newEmail or "").strip().lower()
        if "@" not in email:
            return Failure.of("Invalid email address")
        with self.session() as s:
            row = s.get(UserRow, userId)
            if row is None:
                return Failure.of("User not found", userId=userId)
            taken = s.scalars(
                select(UserRow).where(UserRow.email == email, UserRow.user_id != userId)
            ).first()
            if taken is not None:
                return Failure.of("Email already registered")
            row.email = email
        return Success({"userId": userId, "email": email})

    @command
    def delete(self, userId: str):
        with self.session() as s:
            row = s.get(UserRow, userId)
            if row is None:
                return Failure.of("User not found", userId=userId)
            s.delete(row)
        logger.info("[User] Deleted %s", userId)
        return Success({"userId": userId})

    @query
    def _get(self, userId: str):
        with self.session() as s:
            row = s.get(UserRow, userId)
            if row is None:
                return EMPTY
            return {
                "userId": row.user_id,
                "username": row.username,
                "email": row.email,
                "creationDate": row.created_at.isoformat() if row.created_at else None,
            }
