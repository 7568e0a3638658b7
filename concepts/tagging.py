"""
concepts/tagging.py
-------------------
Tag index: free-form tags attached to stores, searchable both ways.
"""

from __future__ import annotations

from typing import Dict, List

from sqlalchemy import delete as sql_delete, select

from concepts.base import SqlConcept
from core.concepts import Failure, Success, command, query
from database.models import TagRow


def _normalize(tag: str) -> str:
    return (tag or "").strip().lower()


class Tagging(SqlConcept):
    """Associates tags with stores."""

    @command
    def add_tag(self, storeId: str, tag: str):
        tag = _normalize(tag)
        if not tag:
            return Failure.of("Tag must not be empty")
        with self.session() as s:
            existing = s.scalars(
                select(TagRow).where(TagRow.store_id == storeId, TagRow.tag == tag)
            ).first()
            if existing is None:
                s.add(TagRow(store_id=storeId, tag=tag))
        return Success({"storeId": storeId, "tag": tag})

    @command
    def remove_tag(self, storeId: str, tag: str):
        tag = _normalize(tag)
        with self.session() as s:
            res = s.execute(sql_delete(TagRow).where(TagRow.store_id == storeId, TagRow.tag == tag))
            if not res.rowcount:
                return Failure.of("Tag not found on store", storeId=storeId, tag=tag)
        return Success({"storeId": storeId, "tag": tag})

    @command
    def delete_for_store(self, storeId: str):
        with self.session() as s:
            res = s.execute(sql_delete(TagRow).where(TagRow.store_id == storeId))
            deleted = res.rowcount or 0
        return Success({"storeId": storeId, "deleted": deleted})

    @query
    def _tags_for_store(self, storeId: str) -> List[Dict[str, str]]:
        with self.session() as s:
            rows = s.scalars(select(TagRow).where(TagRow.store_id == storeId).order_by(TagRow.tag))
            return [{"tag": r.tag} for r in rows]

    @query
    def _stores_by_tag(self, tag: str) -> List[Dict[str, str]]:
        with self.session() as s:
            rows = s.scalars(select(TagRow).where(TagRow.tag == _normalize(tag)).order_by(TagRow.id))
            return [{"storeId": r.store_id} for r in rows]
