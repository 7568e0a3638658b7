"""
syncs/reviews.py
----------------
Delta aggregation: keep each store's rating in step with its reviews.

Both triggers read the contribution straight from the command's success
payload (Review.create and Review.delete return storeId and rating).
"""

from __future__ import annotations

from typing import List

from core.binder import Call
from core.frames import Var
from core.matcher import When
from core.sync_rules import SyncRule, Then

STORE = Var("storeId")
RATING = Var("rating")
REMOVED = Var("removed")


def negate(value):
    return -value


def build_review_rules() -> List[SyncRule]:
    return [
        SyncRule(
            id="AddRatingOnReviewCreated",
            when=[When("Review", "create", output={"storeId": STORE, "rating": RATING})],
            then=[
                Then("Rating", "update", {"storeId": STORE, "contribution": {"rating": RATING, "weight": 1}}),
            ],
            purpose="Count a new review in the store's aggregated rating",
        ),
        SyncRule(
            id="RemoveRatingOnReviewDeleted",
            when=[When("Review", "delete", output={"storeId": STORE, "rating": RATING})],
            where=[Call(negate, {"value": RATING}, into=REMOVED)],
            then=[
                Then("Rating", "update", {"storeId": STORE, "contribution": {"rating": REMOVED, "weight": -1}}),
            ],
            purpose="Withdraw a deleted review from the store's aggregated rating",
        ),
    ]
