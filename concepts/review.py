"""
concepts/review.py
------------------
Review store: free-text reviews with a 1–5 star rating.

Deletion returns the removed review's store and rating so rating deltas can
be derived from the outcome alone. Bulk deletions by store or user are
idempotent: deleting nothing is still a success.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import delete as sql_delete, select

from concepts.base import SqlConcept, new_id
from core.concepts import EMPTY, Failure, Success, command, query
from database.models import ReviewRow

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def _as_dict(row: ReviewRow) -> Dict[str, Any]:
    return {
        "reviewId": row.review_id,
        "storeId": row.store_id,
        "userId": row.user_id,
        "text": row.text,
        "rating": row.rating,
    }


def _valid_rating(rating: Any) -> bool:
    if isinstance(rating, bool) or not isinstance(rating, int):
        return False
    return MIN_RATING <= rating <= MAX_RATING


class Review(SqlConcept):
    """Stores user reviews of stores."""

    @command
    def create(self, userId: str, storeId: str, text: str, rating: int):
        if not _valid_rating(rating):
            return Failure.of(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")
        review_id = new_id()
        with self.session() as s:
            s.add(ReviewRow(review_id=review_id, store_id=storeId, user_id=userId, text=text or "", rating=rating))
        logger.info("[Review] %s reviewed %s (%d★)", userId, storeId, rating)
        return Success({"reviewId": review_id, "storeId": storeId, "userId": userId, "rating": rating})

    @command
    def delete(self, reviewId: str):
        with self.session() as s:
            row = s.get(ReviewRow, reviewId)
            if row is None:
                return Failure.of("Review not found", reviewId=reviewId)
            removed = _as_dict(row)
            s.delete(row)
        removed.pop("text")
        return Success(removed)

    @command
    def delete_for_store(self, storeId: str):
        with self.session() as s:
            res = s.execute(sql_delete(ReviewRow).where(ReviewRow.store_id == storeId))
            deleted = res.rowcount or 0
        logger.info("[Review] Removed %d reviews of store %s", deleted, storeId)
        return Success({"storeId": storeId, "deleted": deleted})

    @command
    def delete_for_user(self, userId: str):
        with self.session() as s:
            res = s.execute(sql_delete(ReviewRow).where(ReviewRow.user_id == userId))
            deleted = res.rowcount or 0
        return Success({"userId": userId, "deleted": deleted})

    @query
    def _get(self, reviewId: str):
        with self.session() as s:
            row = s.get(ReviewRow, reviewId)
            return _as_dict(row) if row is not None else EMPTY

    @query
    def _for_store(self, storeId: str) -> List[Dict[str, str]]:
        return [{"reviewId": r["reviewId"]} for r in self._list_for_store(storeId)]

    @query
    def _by_user(self, userId: str) -> List[Dict[str, str]]:
        with self.session() as s:
            rows = s.scalars(
                select(ReviewRow).where(ReviewRow.user_id == userId).order_by(ReviewRow.created_at, ReviewRow.review_id)
            )
            return [{"reviewId": r.review_id} for r in rows]

    @query
    def _list_for_store(self, storeId: str) -> List[Dict[str, Any]]:
        with self.session() as s:
            rows = s.scalars(
                select(ReviewRow).where(ReviewRow.store_id == storeId).order_by(ReviewRow.created_at, ReviewRow.review_id)
            )
            return [_as_dict(r) for r in rows]
