# tests/test_frames.py
import pytest

from core.errors import UnboundVariableError
from core.frames import Frame, Relation, Var, freeze, substitute, thaw, unify, variables_in

X = Var("x")
Y = Var("y")


def test_var_binds_on_first_sight():
    frame = unify({"a": X}, {"a": 1, "b": 2}, Frame())
    assert frame == Frame({X: 1})


def test_repeated_var_must_agree():
    assert unify({"a": X, "b": X}, {"a": 1, "b": 1}, Frame()) == Frame({X: 1})
    assert unify({"a": X, "b": X}, {"a": 1, "b": 2}, Frame()) is None


def test_bound_var_conflict_fails():
    assert unify(X, 2, Frame({X: 1})) is None
    assert unify(X, 1, Frame({X: 1})) == Frame({X: 1})


def test_missing_key_and_literal_mismatch():
    assert unify({"a": X}, {"b": 1}, Frame()) is None
    assert unify({"kind": "store"}, {"kind": "user"}, Frame()) is None
    assert unify({"a": X}, "not a mapping", Frame()) is None


def test_lists_match_elementwise():
    assert unify([X, 2], [1, 2], Frame()) == Frame({X: 1})
    assert unify([X, 2], [1, 2, 3], Frame()) is None


def test_nested_values_bind_and_compare():
    frame = unify(X, {"rating": 5, "tags": ["a"]}, Frame())
    assert frame.value("x") == {"rating": 5, "tags": ["a"]}
    assert unify(X, {"rating": 5, "tags": ["a"]}, frame) is frame


def test_frame_is_immutable_and_hashable():
    a = Frame({X: {"k": [1, 2]}})
    b = Frame({X: {"k": [1, 2]}})
    assert a == b
    assert hash(a) == hash(b)
    with pytest.raises(ValueError):
        a.bind(X, 3)
    assert a.bind(Y, 3).as_dict() == {"x": {"k": [1, 2]}, "y": 3}


def test_relation_dedups_in_order():
    rel = Relation([Frame({X: 2}), Frame({X: 1}), Frame({X: 2})])
    assert [f.value("x") for f in rel] == [2, 1]
    assert len(Relation.unit()) == 1
    assert not Relation()


def test_substitute_resolves_nested_templates():
    frame = Frame({X: "s1", Y: 5})
    assert substitute({"storeId": X, "contribution": {"rating": Y, "weight": 1}}, frame) == {
        "storeId": "s1",
        "contribution": {"rating": 5, "weight": 1},
    }


def test_substitute_unbound_raises():
    with pytest.raises(UnboundVariableError) as exc:
        substitute({"a": Y}, Frame({X: 1}), context="rule r")
    assert exc.value.variable == "y"
    assert "rule r" in str(exc.value)


def test_freeze_thaw_and_variables_in():
    frozen = freeze({"a": [1, {"b": 2}]})
    assert thaw(frozen) == {"a": [1, {"b": 2}]}
    with pytest.raises(TypeError):
        frozen["c"] = 1
    assert variables_in({"a": [X, {"b": Y}], "c": 3}) == {X, Y}
