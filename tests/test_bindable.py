# tests/test_bindable.py
"""
Tests for the two-phase build/bind protocol and indexed dictionaries.
"""

import pytest

from canalysis.bindable import Bindable, BindState, Domain, arg, token
from canalysis.ctype import TYPES, CTypePtr
from canalysis.dictionary import IndexedDictionary
from canalysis.errors import (
    AlreadyBoundError,
    ErrorsBundle,
    MalformedRecordError,
    MissingReferenceError,
)
from canalysis.records import make_record
from tests.conftest import DictContext


def _types(*rows):
    d = IndexedDictionary(Domain.TYPE)
    for ix, tags, args in rows:
        d.add(TYPES.build(make_record(ix, tags, args)))
    return d


class _TypesContext:
    def __init__(self, dictionary):
        self.dictionary = dictionary

    def lookup(self, domain, index):
        return self.dictionary.get(index)


class TestAccessors:

    def test_arg_in_range(self):
        assert arg((4, 5), 1) == 5

    def test_arg_out_of_range(self):
        with pytest.raises(MalformedRecordError, match="pointee"):
            arg((), 0, "pointee")

    def test_token_out_of_range(self):
        with pytest.raises(MalformedRecordError):
            token(("tint",), 1, "integer kind")


class TestBindStateMachine:

    def test_new_instance_is_unbound(self):
        t = TYPES.build(make_record(1, ["tvoid"]))
        assert t.state is BindState.UNBOUND
        assert not t.is_bound

    def test_bind_once(self):
        t = TYPES.build(make_record(1, ["tvoid"]))
        t.bind(DictContext())
        assert t.state is BindState.BOUND
        assert str(t) == "void"

    def test_second_bind_rejected(self):
        t = TYPES.build(make_record(1, ["tvoid"]))
        t.bind(DictContext())
        with pytest.raises(AlreadyBoundError):
            t.bind(DictContext())

    def test_unbound_renders_placeholder(self):
        t = TYPES.build(make_record(3, ["tptr"], [1]))
        assert str(t) == "<unbound tptr#3>"

    def test_failed_bind(self):
        t = TYPES.build(make_record(3, ["tptr"], [99]))
        with pytest.raises(MissingReferenceError) as info:
            t.bind(DictContext())
        assert info.value.domain is Domain.TYPE
        assert info.value.key == 99
        assert t.state is BindState.FAILED
        assert str(t) == "<failed tptr#3>"
        with pytest.raises(AlreadyBoundError):
            t.bind(DictContext())

    def test_record_released_after_bind(self):
        t = TYPES.build(make_record(1, ["tvoid"]))
        t.bind(DictContext())
        assert t._record is None

    def test_reference_is_identity(self):
        target = TYPES.build(make_record(1, ["tint", "iint"]))
        ptr = TYPES.build(make_record(2, ["tptr"], [1]))
        ptr.bind(DictContext({(Domain.TYPE, 1): target}))
        assert ptr.ref is target
        # the referent may still be unbound
        assert not target.is_bound

    def test_abstract_base(self):
        class Plain(Bindable):
            domain = Domain.TYPE

        with pytest.raises(NotImplementedError):
            Plain(make_record(1, ["x"])).bind(DictContext())


class TestIndexedDictionary:

    def test_strict_get(self):
        d = _types((1, ["tvoid"], []))
        with pytest.raises(MissingReferenceError):
            d.get(2)
        assert d.find(2) is None
        assert 1 in d and 2 not in d

    def test_lookup_is_identity_stable(self):
        d = _types((1, ["tvoid"], []))
        assert d.get(1) is d.get(1)

    def test_duplicate_id_rejected(self):
        d = _types((1, ["tvoid"], []))
        with pytest.raises(MalformedRecordError):
            d.add(TYPES.build(make_record(1, ["tvoid"])))

    def test_iteration_is_sorted(self):
        d = _types((3, ["tvoid"], []), (1, ["tvoid"], []), (2, ["tvoid"], []))
        assert d.ids() == [1, 2, 3]
        assert [t.index for t in d] == [1, 2, 3]

    def test_populate_isolates_failures(self):
        d = IndexedDictionary(Domain.TYPE)
        errors = ErrorsBundle()
        records = [make_record(1, ["tvoid"]), make_record(1, ["tvoid"]), make_record(2, ["tvoid"])]
        assert d.populate(records, TYPES.build, errors, "x_cdict.xml") == 2
        assert len(errors) == 1
        assert errors.errors[0].origin == "x_cdict.xml"
        assert "type #1" in errors.errors[0].message

    def test_bind_all_counts_and_prunes(self):
        d = _types((1, ["tint", "iint"], []), (2, ["tptr"], [1]), (3, ["tptr"], [42]))
        errors = ErrorsBundle()
        assert d.bind_all(_TypesContext(d), errors, "x_cdict.xml") == 2
        assert d.constructed == 3
        assert d.bound == 2
        assert d.ids() == [1, 2]
        assert errors.for_origin("x_cdict.xml") == ["type #3: missing type reference: 42"]
        assert d.unbound == []

    def test_failed_neighbour_does_not_depend_on_order(self):
        rows = ((1, ["tptr"], [2]), (2, ["tptr"], [42]))
        forward = _types(*rows)
        backward = _types(*rows)
        forward.bind_all(_TypesContext(forward), ErrorsBundle(), "f")
        backward.bind_all(_TypesContext(backward), ErrorsBundle(), "b", order=[2, 1])
        assert forward.ids() == backward.ids() == [1]
        assert str(forward.get(1)) == str(backward.get(1)) == "(<failed tptr#2> *)"

    def test_bind_all_skips_bound_instances(self):
        d = _types((1, ["tvoid"], []))
        d.bind_all(_TypesContext(d), ErrorsBundle(), "x")
        errors = ErrorsBundle()
        assert d.bind_all(_TypesContext(d), errors, "x") == 0
        assert errors.is_empty

    def test_values_are_variant_instances(self):
        d = _types((2, ["tptr"], [1]))
        assert isinstance(d.get(2), CTypePtr)
