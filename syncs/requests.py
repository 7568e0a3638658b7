"""
syncs/requests.py
-----------------
Request/Response synchronizations for the HTTP API.

Every API call arrives as `Requesting.request(path="/<Concept>/<action>",
body={...})`. For a command route four kinds of rules are generated:

    <route>/request           request            -> target command(body)
    <route>/reject-...        request, checks    -> respond {error}
    <route>/response          request & success  -> respond payload
    <route>/error             request & failure  -> respond {error}

Query routes run the query in the `where` step and respond with its result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from core.binder import Call, Filter, Query
from core.frames import Var
from core.matcher import When
from core.sync_rules import SyncRule, Then

REQUEST = Var("request")
BODY = Var("body")
OUTPUT = Var("output")
ERROR = Var("error")
RESULT = Var("result")


@dataclass(frozen=True)
class Requires:
    """A body field that must reference an existing record of another concept."""

    field: str
    concept: str
    query: str
    message: str
    key: Optional[str] = None

    @property
    def query_key(self) -> str:
        return self.key or self.field


def pluck(key: str) -> Callable[..., Any]:
    def fn(body: Mapping[str, Any]) -> Any:
        value = body.get(key)
        return None if value == "" else value

    fn.__name__ = f"body.{key}"
    return fn


def route_path(concept: str, action: str) -> str:
    return f"/{concept}/{action}"


def request_pattern(path: str):
    return When("Requesting", "request", {"path": path, "body": BODY}, {"request": REQUEST})


def respond(body: Any) -> Then:
    return Then("Requesting", "respond", {"request": REQUEST, "body": body})


def _existence_steps(requires: Sequence[Requires], negate_last: bool = False) -> List[Any]:
    steps: List[Any] = []
    for i, req in enumerate(requires):
        ref = Var(f"ref_{req.field}")
        steps.append(Call(pluck(req.field), {"body": BODY}, into=ref))
        negate = negate_last and i == len(requires) - 1
        steps.append(Query(req.concept, req.query, {req.query_key: ref}, negate=negate))
    return steps


def command_route(
    concept: str,
    action: str,
    *,
    requires: Sequence[Requires] = (),
    path: Optional[str] = None,
) -> List[SyncRule]:
    """Rules exposing one command over HTTP, with optional existence checks."""
    path = path or route_path(concept, action)
    trigger = request_pattern(path)
    rules: List[SyncRule] = []

    if requires:
        fields = tuple(r.field for r in requires)

        def missing_reference(frame) -> bool:
            body = frame[BODY]
            return any(body.get(f) in (None, "") for f in fields)

        missing_reference.__name__ = f"missing {'/'.join(fields)}"
        rules.append(
            SyncRule(
                id=f"{path}/reject-missing",
                when=[trigger],
                where=[Filter(missing_reference, uses=(BODY,))],
                then=[respond({"error": f"Missing input: {', '.join(fields)}"})],
                purpose=f"Reject {path} without {', '.join(fields)}",
            )
        )
        for i, req in enumerate(requires):
            rules.append(
                SyncRule(
                    id=f"{path}/reject-unknown-{req.field}",
                    when=[trigger],
                    where=_existence_steps(requires[: i + 1], negate_last=True),
                    then=[respond({"error": req.message})],
                    purpose=f"Reject {path} when {req.field} does not exist",
                )
            )

    rules.append(
        SyncRule(
            id=f"{path}/request",
            when=[trigger],
            where=_existence_steps(requires),
            then=[Then(concept, action, BODY)],
            purpose=f"Route {path} to {concept}.{action}",
        )
    )
    rules.append(
        SyncRule(
            id=f"{path}/response",
            when=[trigger, When(concept, action, BODY, OUTPUT)],
            then=[respond(OUTPUT)],
            purpose=f"Respond to {path} with the result",
        )
    )
    rules.append(
        SyncRule(
            id=f"{path}/error",
            when=[trigger, When(concept, action, BODY, {"error": ERROR}, failure=True)],
            then=[respond({"error": ERROR})],
            purpose=f"Respond to {path} with the error",
        )
    )
    return rules


def query_route(
    concept: str,
    query_name: str,
    params: Sequence[str],
    *,
    collect: bool = False,
    not_found: Optional[Any] = None,
) -> List[SyncRule]:
    """
    Rules exposing one query over HTTP.

    Single-record queries respond with the record, or with `not_found` (a
    literal body, e.g. {"error": ...}) when the query returns EMPTY. List
    queries (`collect=True`) always respond, possibly with [].
    """
    path = route_path(concept, query_name)
    shape: Dict[str, Any] = {p: Var(p) for p in params}
    trigger = When("Requesting", "request", {"path": path, "body": shape}, {"request": REQUEST})
    rules = [
        SyncRule(
            id=f"{path}/query",
            when=[trigger],
            where=[Query(concept, query_name, shape, output=RESULT, collect=collect)],
            then=[respond(RESULT)],
            purpose=f"Answer {path} from {concept}.{query_name}",
        )
    ]
    if not collect and not_found is not None:
        rules.append(
            SyncRule(
                id=f"{path}/not-found",
                when=[trigger],
                where=[Query(concept, query_name, shape, negate=True)],
                then=[respond(not_found)],
                purpose=f"Answer {path} when nothing matches",
            )
        )
    return rules


def build_request_rules() -> List[SyncRule]:
    """Routes of the store directory API."""
    store_exists = Requires("storeId", "Store", "_get", "Store not found")
    user_exists = Requires("userId", "User", "_get", "User not found")

    rules: List[SyncRule] = []

    # Store registry
    rules += command_route("Store", "create")
    rules += command_route("Store", "delete")
    rules += query_route("Store", "_get", ["storeId"], not_found={"error": "Store not found"})
    rules += query_route("Store", "_by_name", ["name"], collect=True)
    rules += query_route("Store", "_by_address", ["address"], collect=True)
    rules += query_route("Store", "_list", [], collect=True)

    # Accounts
    rules += command_route("User", "register")
    rules += command_route("User", "authenticate")
    rules += command_route("User", "update_email")
    rules += command_route("User", "delete")
    rules += query_route("User", "_get", ["userId"], not_found={"error": "User not found"})

    # Reviews
    rules += command_route("Review", "create", requires=[store_exists, user_exists])
    rules += command_route("Review", "delete")
    rules += query_route("Review", "_get", ["reviewId"], not_found={"error": "Review not found"})
    rules += query_route("Review", "_for_store", ["storeId"], collect=True)
    rules += query_route("Review", "_by_user", ["userId"], collect=True)
    rules += query_route("Review", "_list_for_store", ["storeId"], collect=True)

    # Ratings
    rules += command_route("Rating", "update", requires=[store_exists])
    rules += query_route(
        "Rating", "_get", ["storeId"],
        not_found={"storeId": Var("storeId"), "aggregatedRating": 0, "reviewCount": 0},
    )

    # Tags
    rules += command_route("Tagging", "add_tag", requires=[store_exists])
    rules += command_route("Tagging", "remove_tag")
    rules += query_route("Tagging", "_tags_for_store", ["storeId"], collect=True)
    rules += query_route("Tagging", "_stores_by_tag", ["tag"], collect=True)

    return rules
