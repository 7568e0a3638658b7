# tests/test_binder.py
import pytest

from core.binder import Call, Filter, Query, refine
from core.concepts import EMPTY, Concept, ConceptRegistry, Success, command, query
from core.frames import Frame, Relation, Var

STORE = Var("storeId")
TAG = Var("tag")
TAGS = Var("tags")


class Directory(Concept):
    """In-memory tag directory."""

    def __init__(self):
        self.tags = {"s1": [{"tag": "coffee"}, {"tag": "wifi"}], "s2": []}
        self.names = {"s1": {"name": "Corner Cafe"}}

    @command
    def noop(self):
        return Success()

    @query
    def _tags(self, storeId):
        return self.tags.get(storeId, EMPTY)

    @query
    def _get(self, storeId):
        return self.names.get(storeId)

    @query
    def _broken(self, storeId):
        raise RuntimeError("database is down")


@pytest.fixture
def directory():
    return ConceptRegistry([Directory()])


def _stores(*ids):
    return Relation(Frame({STORE: i}) for i in ids)


def test_empty_result_drops_frame(directory):
    step = Query("Directory", "_get", {"storeId": STORE}, output={"name": Var("name")})
    rel = step.apply(_stores("s1", "missing"), directory)
    assert [f.as_dict() for f in rel] == [{"storeId": "s1", "name": "Corner Cafe"}]


def test_list_result_fans_out(directory):
    step = Query("Directory", "_tags", {"storeId": STORE}, output={"tag": TAG})
    rel = step.apply(_stores("s1"), directory)
    assert [f.value("tag") for f in rel] == ["coffee", "wifi"]


def test_empty_list_drops_frame(directory):
    step = Query("Directory", "_tags", {"storeId": STORE}, output={"tag": TAG})
    assert not step.apply(_stores("s2"), directory)


def test_negated_query_keeps_only_absent(directory):
    step = Query("Directory", "_get", {"storeId": STORE}, negate=True)
    rel = step.apply(_stores("s1", "missing"), directory)
    assert [f.value("storeId") for f in rel] == ["missing"]


def test_collect_binds_whole_list(directory):
    step = Query("Directory", "_tags", {"storeId": STORE}, output=TAGS, collect=True)
    rel = step.apply(_stores("s1", "missing"), directory)
    assert [f.as_dict() for f in rel] == [
        {"storeId": "s1", "tags": [{"tag": "coffee"}, {"tag": "wifi"}]},
        {"storeId": "missing", "tags": []},
    ]


def test_collect_needs_single_var():
    with pytest.raises(ValueError):
        Query("Directory", "_tags", {"storeId": STORE}, output={"tag": TAG}, collect=True)


def test_faulting_query_degrades_to_empty(directory):
    step = Query("Directory", "_broken", {"storeId": STORE}, output=Var("x"))
    assert not step.apply(_stores("s1"), directory)


def test_call_and_filter():
    double = Call(lambda value: value * 2 if value > 0 else None, {"value": Var("n")}, into=Var("m"))
    rel = double.apply(Relation(Frame({Var("n"): n}) for n in (1, -1, 3)), None)
    assert [f.value("m") for f in rel] == [2, 6]

    big = Filter(lambda f: f[Var("m")] > 2, uses=(Var("m"),))
    assert [f.value("m") for f in big.apply(rel, None)] == [6]


def test_refine_is_identity_without_steps(directory):
    rel = _stores("s1", "s2")
    assert refine([], rel, directory) is rel


def test_refine_applies_steps_in_order(directory):
    steps = [
        Query("Directory", "_tags", {"storeId": STORE}, output={"tag": TAG}),
        Filter(lambda f: f[TAG] != "wifi", uses=(TAG,)),
    ]
    rel = refine(steps, _stores("s1", "s2"), directory)
    assert [f.as_dict() for f in rel] == [{"storeId": "s1", "tag": "coffee"}]
