"""
syncs/cascades.py
-----------------
Cascading cleanup when a store or an account disappears.

The bulk deletes they invoke succeed even when nothing is left to delete, so
a cascade can be re-run safely after a partial completion.
"""

from __future__ import annotations

from typing import List

from core.binder import Query
from core.frames import Var
from core.matcher import When
from core.sync_rules import SyncRule, Then

STORE = Var("storeId")
USER = Var("userId")
REVIEW = Var("reviewId")


def build_cascade_rules() -> List[SyncRule]:
    return [
        SyncRule(
            id="CascadeStoreDeletion",
            when=[When("Store", "delete", output={"storeId": STORE})],
            then=[
                Then("Tagging", "delete_for_store", {"storeId": STORE}),
                Then("Review", "delete_for_store", {"storeId": STORE}),
                Then("Rating", "delete_for_store", {"storeId": STORE}),
            ],
            purpose="Drop tags, reviews and rating of a deleted store",
        ),
        SyncRule(
            id="CascadeUserDeletion",
            when=[When("User", "delete", output={"userId": USER})],
            where=[Query("Review", "_by_user", {"userId": USER}, output={"reviewId": REVIEW})],
            then=[Then("Review", "delete", {"reviewId": REVIEW})],
            purpose="Delete every review written by a deleted account",
        ),
    ]
