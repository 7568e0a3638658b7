"""
concepts/rating.py
------------------
Rating aggregator: running average rating per store.

`update` applies a signed contribution:
    total += contribution.rating
    count += contribution.weight
so a new 5★ review contributes {rating: 5, weight: 1} and removing it
contributes {rating: -5, weight: -1}.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Mapping

from concepts.base import SqlConcept
from core.concepts import EMPTY, Failure, Success, command, query
from database.models import RatingRow


def _summary(row: RatingRow) -> Dict[str, Any]:
    count = row.review_count or 0
    average = (row.rating_total / count) if count > 0 else 0.0
    return {"storeId": row.store_id, "aggregatedRating": round(average, 4), "reviewCount": count}


def _number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Rating(SqlConcept):
    """Keeps the aggregated rating and review count of each store."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        # read-modify-write of one row must not interleave
        self._lock = threading.Lock()

    @command
    def update(self, storeId: str, contribution: Mapping[str, Any]):
        if not isinstance(contribution, Mapping):
            return Failure.of("Contribution must be an object with rating and weight")
        rating = contribution.get("rating")
        weight = contribution.get("weight")
        if not _number(rating) or not _number(weight):
            return Failure.of("Contribution rating and weight must be numbers")

        with self._lock, self.session() as s:
            row = s.get(RatingRow, storeId)
            current = row.review_count if row is not None else 0
            new_count = current + int(weight)
            if new_count < 0:
                return Failure.of("Review count cannot become negative", storeId=storeId)
            if row is None:
                row = RatingRow(store_id=storeId, rating_total=0.0, review_count=0)
                s.add(row)
            row.rating_total = (row.rating_total or 0.0) + float(rating)
            row.review_count = new_count
            if new_count == 0:
                row.rating_total = 0.0
            s.flush()
            summary = _summary(row)
        return Success(summary)

    @command
    def delete_for_store(self, storeId: str):
        with self._lock, self.session() as s:
            row = s.get(RatingRow, storeId)
            deleted = 0
            if row is not None:
                s.delete(row)
                deleted = 1
        return Success({"storeId": storeId, "deleted": deleted})

    @query
    def _get(self, storeId: str):
        with self.session() as s:
            row = s.get(RatingRow, storeId)
            return _summary(row) if row is not None else EMPTY
