"""
syncs/catalog.py
----------------
Canonical synchronization map of StoreDirectory.

Registration order is firing order for rules sharing a trigger, so request
routing comes first, then aggregation, then cleanup cascades.
"""

from __future__ import annotations

from typing import List

from core.sync_rules import SyncRule
from syncs.cascades import build_cascade_rules
from syncs.requests import build_request_rules
from syncs.reviews import build_review_rules


def build_sync_rules() -> List[SyncRule]:
    return build_request_rules() + build_review_rules() + build_cascade_rules()
