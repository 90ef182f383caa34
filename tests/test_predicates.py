# tests/test_predicates.py
"""
Tests for the predicate taxonomy and the expression / lvalue variants it
renders through.
"""

import pytest

from canalysis.expressions import format_binop
from canalysis.predicates import (
    PREDICATES,
    CPOIntegerCast,
    CPOUnknown,
    PredicateKind,
)
from canalysis.records import Family, make_record
from tests.conftest import SAMPLE_TABLES, build_cfile


def _with_predicates(*rows):
    tables = dict(SAMPLE_TABLES)
    tables[Family.PRD] = {"predicate": list(rows)}
    return build_cfile(tables)


class TestPredicateKind:

    def test_labels(self):
        assert PredicateKind.NOT_NULL.label == "Not Null"
        assert PredicateKind.PTR_UPPER_BOUND_DEREF.label == "Ptr Upper Bound Deref"
        assert str(PredicateKind.INT_OVERFLOW) == "Int Overflow"

    def test_from_tag(self):
        assert PredicateKind.from_tag("nn") is PredicateKind.NOT_NULL
        assert PredicateKind.from_tag("pubd") is PredicateKind.PTR_UPPER_BOUND_DEREF
        assert PredicateKind.from_tag("nope") is PredicateKind.UNKNOWN

    def test_tags_are_unique(self):
        tags = [k.tag for k in PredicateKind]
        assert len(tags) == len(set(tags))

    def test_every_known_kind_is_registered(self):
        for kind in PredicateKind:
            if kind is not PredicateKind.UNKNOWN:
                assert kind.tag in PREDICATES, kind

    def test_kind_known_before_binding(self):
        pred = PREDICATES.build(make_record(1, ["csu", "iint", "iuint"], [2]))
        assert not pred.is_bound
        assert pred.kind is PredicateKind.SIGNED_TO_UNSIGNED_CAST


class TestPredicateRendering:

    def test_not_null(self, sample_cfile):
        assert str(sample_cfile.get_predicate(1)) == "Not Null\n\tp"

    def test_int_overflow(self, sample_cfile):
        pred = sample_cfile.get_predicate(2)
        assert pred.binop == "plusa"
        assert pred.ikind == "iint"
        assert str(pred) == "Int Overflow\n\t(p + 42), ikind:iint"

    def test_initialized(self, sample_cfile):
        assert str(sample_cfile.get_predicate(4)) == "Initialized\n\t(*p)"

    def test_unknown_predicate(self, sample_cfile):
        pred = sample_cfile.get_predicate(5)
        assert isinstance(pred, CPOUnknown)
        assert pred.kind is PredicateKind.UNKNOWN
        assert str(pred) == "Unknown\n\t-qq-"

    def test_cast_directions_stay_distinct(self, sample_cfile):
        csu = sample_cfile.get_predicate(3)
        cus = sample_cfile.get_predicate(6)
        assert type(csu) is type(cus) is CPOIntegerCast
        assert csu.kind is PredicateKind.SIGNED_TO_UNSIGNED_CAST
        assert cus.kind is PredicateKind.UNSIGNED_TO_SIGNED_CAST
        assert csu.signed_to_unsigned and not cus.signed_to_unsigned
        assert str(csu) == "Signed To Unsigned Cast\n\t42,from:iint,to:iuint"

    def test_references_are_instances(self, sample_cfile):
        pred = sample_cfile.get_predicate(2)
        assert pred.references() == [
            sample_cfile.get_expression(1),
            sample_cfile.get_expression(2),
        ]

    @pytest.mark.parametrize("row, text", [
        ((1, "tao", "2,1"), "Type At Offset\n\t((int) *), p"),
        ((1, "c", "1,2,1"), "Cast\n\tp,from:(int),to:((int) *)"),
        ((1, "ir", "1,2"), "Initialized Range\n\tp, len:42"),
        ((1, "w,iint", "3"), "Width Overflow\n\t(p + 42), kind:iint"),
        ((1, "pub,minuspi", "2,1,2"), "Ptr Upper Bound\n\t(p -i 42), typ:((int) *)"),
        ((1, "no", "1,4"), "No Overlap\n\tp, (*p)"),
        ((1, "vc", "3"), "Value Constraint\n\t(p + 42)"),
    ])
    def test_binding_layouts(self, row, text):
        cfile, errors = _with_predicates(row)
        assert errors.is_empty, errors.to_json()
        assert str(cfile.get_predicate(1)) == text


class TestPredicateErrors:

    def test_missing_expression(self):
        cfile, errors = _with_predicates((1, "nn", "99"), (2, "nn", "1"))
        assert 1 not in cfile.predicates
        assert str(cfile.get_predicate(2)) == "Not Null\n\tp"
        assert errors.errors[0].message == "predicate #1: missing expression reference: 99"

    def test_missing_tag_token(self):
        cfile, errors = _with_predicates((1, "io,plusa", "1,2"))
        assert len(cfile.predicates) == 0
        assert "ikind" in errors.errors[0].message

    def test_missing_argument(self):
        cfile, errors = _with_predicates((1, "cb", "1"))
        assert len(errors) == 1
        assert "exp2" in errors.errors[0].message

    def test_untagged_row_reported(self):
        cfile, errors = _with_predicates((1, "", "1"), (2, "nn", "1"))
        assert cfile.predicates.ids() == [2]
        assert [e.message for e in errors] == ["predicate #1: empty tag"]


class TestExpressions:

    def test_operator_table(self):
        assert format_binop("lt", "a", "b") == "(a < b)"
        assert format_binop("weird", "a", "b") == "(a weird b)"

    def test_expression_renders(self, sample_cfile):
        assert str(sample_cfile.get_expression(3)) == "(p + 42)"
        assert str(sample_cfile.get_lvalue(2)) == "(*p)"
        assert sample_cfile.get_expression(3).type is sample_cfile.get_type(1)

    @pytest.mark.parametrize("row, text", [
        ((9, "cast", "2,1"), "caste(p, ((int) *))"),
        ((9, "addrof", "1"), "&(p)"),
        ((9, "startof", "2"), "&((*p))[0]"),
        ((9, "sizeof", "1"), "sizeof((int))"),
        ((9, "unop,neg", "2"), "-42"),
        ((9, "wat", ""), "-wat-"),
    ])
    def test_expression_variants(self, row, text):
        tables = dict(SAMPLE_TABLES)
        cdict = dict(tables[Family.CDICT])
        cdict["exp"] = list(cdict["exp"]) + [row]
        tables[Family.CDICT] = cdict
        cfile, errors = build_cfile(tables)
        assert errors.is_empty, errors.to_json()
        assert str(cfile.get_expression(9)) == text
