"""
concepts/store.py
-----------------
Store registry: names and addresses of the stores in the directory.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import select

from concepts.base import SqlConcept, new_id
from core.concepts import EMPTY, Failure, Success, command, query
from database.models import StoreRow

logger = logging.getLogger(__name__)


def _as_dict(row: StoreRow) -> Dict[str, Any]:
    return {"storeId": row.store_id, "name": row.name, "address": row.address}


class Store(SqlConcept):
    """Registers stores and looks them up by id, name or address."""

    @command
    def create(self, name: str, address: str):
        name = (name or "").strip()
        address = (address or "").strip()
        if not name:
            return Failure.of("Store name is required")
        if not address:
            return Failure.of("Store address is required")
        store_id = new_id()
        with self.session() as s:
            s.add(StoreRow(store_id=store_id, name=name, address=address))
        logger.info("[Store] Created %s (%s)", store_id, name)
        return Success({"storeId": store_id})

    @command
    def delete(self, storeId: str):
        with self.session() as s:
            row = s.get(StoreRow, storeId)
            if row is None:
                return Failure.of("Store not found", storeId=storeId)
            s.delete(row)
        logger.info("[Store] Deleted %s", storeId)
        return Success({"storeId": storeId})

    @query
    def _get(self, storeId: str):
        with self.session() as s:
            row = s.get(StoreRow, storeId)
            return _as_dict(row) if row is not None else EMPTY

    @query
    def _by_name(self, name: str) -> List[Dict[str, str]]:
        with self.session() as s:
            rows = s.scalars(select(StoreRow).where(StoreRow.name == name).order_by(StoreRow.store_id))
            return [{"storeId": r.store_id} for r in rows]

    @query
    def _by_address(self, address: str) -> List[Dict[str, str]]:
        with self.session() as s:
            rows = s.scalars(select(StoreRow).where(StoreRow.address == address).order_by(StoreRow.store_id))
            return [{"storeId": r.store_id} for r in rows]

    @query
    def _list(self) -> List[Dict[str, Any]]:
        with self.session() as s:
            rows = s.scalars(select(StoreRow).order_by(StoreRow.name, StoreRow.store_id))
            return [_as_dict(r) for r in rows]
