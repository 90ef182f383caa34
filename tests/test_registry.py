# tests/test_registry.py
"""
Tests for tag-driven variant dispatch.
"""

import pytest

from canalysis.ctype import TYPES, CTypeInt, CTypePtr, CTypeUnknown
from canalysis.errors import DuplicateTagError, MalformedRecordError, UnknownTagError
from canalysis.predicates import PREDICATES, CPOSimpleExpression
from canalysis.records import TaggedRecord, make_record
from canalysis.registry import VariantRegistry


class _Thing:
    def __init__(self, record):
        self.record = record


class _Other(_Thing):
    pass


class TestVariantRegistry:

    def test_build_dispatches_on_leading_tag(self):
        reg = VariantRegistry("thing")
        reg.register("a", _Thing)
        reg.register("b", _Other)
        assert type(reg.build(make_record(1, ["b", "x"]))) is _Other

    def test_duplicate_registration_rejected(self):
        reg = VariantRegistry("thing")
        reg.register("a", _Thing)
        with pytest.raises(DuplicateTagError):
            reg.register("a", _Other)

    def test_empty_tag_rejected(self):
        reg = VariantRegistry("thing")
        with pytest.raises(ValueError):
            reg.register("", _Thing)

    def test_record_without_tag_is_malformed(self):
        reg = VariantRegistry("thing", unknown=_Other)
        reg.register("a", _Thing)
        with pytest.raises(MalformedRecordError, match="empty tag"):
            reg.build(TaggedRecord.from_wire(1, "", ""))

    def test_unknown_tag_without_fallback(self):
        reg = VariantRegistry("thing")
        with pytest.raises(UnknownTagError) as info:
            reg.build(make_record(1, ["zz"]))
        assert info.value.tag == "zz"

    def test_unknown_tag_uses_fallback(self):
        reg = VariantRegistry("thing", unknown=_Other)
        built = reg.build(make_record(1, ["zz"]))
        assert isinstance(built, _Other)
        assert built.record.tag == "zz"

    def test_set_unknown(self):
        reg = VariantRegistry("thing")
        reg.set_unknown(_Thing)
        assert isinstance(reg.build(make_record(1, ["q"])), _Thing)

    def test_variant_decorator_registers_every_tag(self):
        reg = VariantRegistry("thing")

        @reg.variant("x", "y")
        class Both(_Thing):
            pass

        assert reg.lookup("x") is Both
        assert reg.lookup("y") is Both
        assert reg.tags == ["x", "y"]
        assert "x" in reg and "z" not in reg
        assert len(reg) == 2


class TestBuiltinRegistries:

    def test_type_registry(self):
        assert TYPES.lookup("tptr") is CTypePtr
        assert TYPES.lookup("tint") is CTypeInt
        assert isinstance(TYPES.build(make_record(1, ["xyz"])), CTypeUnknown)

    def test_opaque_type_kinds(self):
        for tag in ("tarray", "tenum", "tbuiltin-va-list"):
            assert TYPES.lookup(tag) is CTypeUnknown

    def test_predicate_registry_covers_simple_kinds(self):
        for tag in ("nn", "null", "vm", "gm", "ab", "z", "nt", "nneg", "pre", "vc"):
            assert PREDICATES.lookup(tag) is CPOSimpleExpression

    @pytest.mark.parametrize("registry", [TYPES, PREDICATES])
    def test_untagged_row_does_not_become_unknown(self, registry):
        with pytest.raises(MalformedRecordError):
            registry.build(TaggedRecord.from_wire(2, "", ""))

    def test_registering_a_builtin_tag_twice_fails(self):
        with pytest.raises(DuplicateTagError):
            TYPES.register("tptr", CTypeUnknown)
