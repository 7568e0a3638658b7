# tests/test_matcher.py
from core.concepts import Failure, Success
from core.frames import Frame, Relation, Var
from core.matcher import When, match
from core.records import InvocationRecord

STORE = Var("storeId")
RATING = Var("rating")
ERROR = Var("error")


def _record(concept, action, input, outcome, seq=1):
    return InvocationRecord.create(concept, action, input, outcome, seq=seq, flow="f1")


def test_match_binds_input_and_output():
    rec = _record("Review", "create", {"storeId": "s1", "text": "ok"}, Success({"reviewId": "r1", "rating": 4}))
    rel = match(When("Review", "create", {"storeId": STORE}, {"rating": RATING}), rec)
    assert [f.as_dict() for f in rel] == [{"storeId": "s1", "rating": 4}]


def test_other_action_leaves_base_unchanged():
    rec = _record("Store", "delete", {"storeId": "s1"}, Success({"storeId": "s1"}))
    pattern = When("Review", "create")
    base = Relation([Frame({STORE: "s9"})])
    assert match(pattern, rec, base) is base
    assert not match(pattern, rec)


def test_outcome_kind_selects_branch():
    failed = _record("Review", "create", {}, Failure.of("Rating must be an integer between 1 and 5"))
    assert not match(When("Review", "create"), failed)
    rel = match(When("Review", "create", output={"error": ERROR}, failure=True), failed)
    assert [f.value("error") for f in rel] == ["Rating must be an integer between 1 and 5"]


def test_literal_and_shared_variable_constraints():
    rec = _record("Requesting", "request", {"path": "/Store/create", "body": {}}, Success({"request": "q1"}))
    assert not match(When("Requesting", "request", {"path": "/Store/delete"}), rec)

    crossed = _record("Thing", "copy", {"value": 1}, Success({"value": 2}))
    x = Var("x")
    assert not match(When("Thing", "copy", {"value": x}, {"value": x}), crossed)


def test_match_extends_every_base_frame():
    rec = _record("Review", "create", {"storeId": "s1"}, Success({"rating": 5}))
    base = Relation([Frame({STORE: "s1"}), Frame({STORE: "s2"})])
    rel = match(When("Review", "create", {"storeId": STORE}, {"rating": RATING}), rec, base)
    assert [f.as_dict() for f in rel] == [{"storeId": "s1", "rating": 5}]


def test_pattern_string_marks_failure():
    assert str(When("User", "register")) == "User.register"
    assert str(When("User", "register", failure=True)) == "User.register !failure"


def test_empty_base_stays_empty():
    made = _record("Store", "create", {"name": "Deli"}, Success({"storeId": "s1"}), seq=1)
    first = match(When("Store", "create", output={"storeId": STORE}, failure=True), made)
    assert not first

    tagged = _record("Tagging", "add_tag", {"storeId": "s2", "tag": "x"}, Success({"storeId": "s2"}), seq=2)
    second = match(When("Tagging", "add_tag", {"storeId": STORE}), tagged, first)
    assert len(second) == 0
