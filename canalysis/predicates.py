"""
canalysis.predicates
====================

The proof-obligation predicate taxonomy.

Each predicate record is tagged with the short code of its kind (``nn``,
``io``, ``pubd``, ...).  The :class:`PredicateKind` is resolved from that
code when the instance is *constructed*, so a predicate can always report
its kind, even when binding it later fails.

Binding is declarative: every variant lists which argument positions are
expression / type / lvalue references (``ARGS``) and which tag tokens are
literal sub-kinds (``TOKENS``, starting at ``tags[1]``).  One shared helper,
:func:`bind_layout`, applies the layout.

================================  ===========================  ===================
kinds                             args                         tag tokens
================================  ===========================  ===================
nn null vm gm ab z nt nneg        exp
ilb iub ft pre vc
tao lb ub                         typ, exp
c pc                              from_type, target_type, exp
csu cus                           exp                          from_kind, target_kind
i                                 lval
ir                                exp, length
io iu                             exp1, exp2                   binop, ikind
w                                 exp                          ikind
plb pub pubd                      typ, exp1, exp2              binop
cb cbt no                         exp1, exp2
================================  ===========================  ===================

A bound predicate renders as ``<label>\\n\\t<body>``, e.g.::

    Not Null
        p
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar, Dict, List, Sequence, Tuple

from .bindable import Bindable, Domain, LookupContext, arg, token
from .expressions import format_binop
from .records import TaggedRecord
from .registry import VariantRegistry


class PredicateKind(enum.Enum):
    """Closed set of predicate kinds: ``(tag, label)``."""

    ALLOCATION_BASE = ("ab", "Allocation Base")
    CAST = ("c", "Cast")
    COMMON_BASE = ("cb", "Common Base")
    COMMON_BASE_TYPE = ("cbt", "Common Base Type")
    SIGNED_TO_UNSIGNED_CAST = ("csu", "Signed To Unsigned Cast")
    UNSIGNED_TO_SIGNED_CAST = ("cus", "Unsigned To Signed Cast")
    FORMAT_STRING = ("ft", "Format String")
    GLOBAL_MEM = ("gm", "Global Mem")
    INITIALIZED = ("i", "Initialized")
    INDEX_LOWER_BOUND = ("ilb", "Index Lower Bound")
    INT_OVERFLOW = ("io", "Int Overflow")
    INITIALIZED_RANGE = ("ir", "Initialized Range")
    INT_UNDERFLOW = ("iu", "Int Underflow")
    INDEX_UPPER_BOUND = ("iub", "Index Upper Bound")
    LOWER_BOUND = ("lb", "Lower Bound")
    NOT_NULL = ("nn", "Not Null")
    NON_NEGATIVE = ("nneg", "Non Negative")
    NO_OVERLAP = ("no", "No Overlap")
    NULL_TERMINATED = ("nt", "Null Terminated")
    NULL = ("null", "Null")
    POINTER_CAST = ("pc", "Pointer Cast")
    PTR_LOWER_BOUND = ("plb", "Ptr Lower Bound")
    PREDICATE = ("pre", "Predicate")
    PTR_UPPER_BOUND = ("pub", "Ptr Upper Bound")
    PTR_UPPER_BOUND_DEREF = ("pubd", "Ptr Upper Bound Deref")
    TYPE_AT_OFFSET = ("tao", "Type At Offset")
    UPPER_BOUND = ("ub", "Upper Bound")
    VALUE_CONSTRAINT = ("vc", "Value Constraint")
    VALID_MEM = ("vm", "Valid Mem")
    WIDTH_OVERFLOW = ("w", "Width Overflow")
    NOT_ZERO = ("z", "Not Zero")
    UNKNOWN = ("?", "Unknown")

    def __init__(self, tag: str, label: str) -> None:
        self.tag = tag
        self.label = label

    def __str__(self) -> str:
        return self.label

    @classmethod
    def from_tag(cls, tag: str) -> "PredicateKind":
        return _KIND_BY_TAG.get(tag, cls.UNKNOWN)


_KIND_BY_TAG: Dict[str, PredicateKind] = {
    kind.tag: kind for kind in PredicateKind if kind is not PredicateKind.UNKNOWN
}


def bind_layout(
    target: Any,
    context: LookupContext,
    tags: Sequence[str],
    args: Sequence[int],
    arg_layout: Sequence[Tuple[str, Domain]],
    token_names: Sequence[str] = (),
) -> None:
    """Resolve ``args[i]`` in ``arg_layout[i]``'s domain and copy ``tags[1:]``.

    Every resolved reference and token is set as an attribute of *target*
    under its layout name.
    """
    for pos, (name, domain) in enumerate(arg_layout):
        setattr(target, name, context.lookup(domain, arg(args, pos, name)))
    for pos, name in enumerate(token_names, start=1):
        setattr(target, name, token(tags, pos, name))


# ═══════════════════════════════════════════════════════════════════
#  VARIANTS
# ═══════════════════════════════════════════════════════════════════

class CPOPredicate(Bindable):
    """Base of every predicate variant."""

    domain = Domain.PREDICATE

    ARGS: ClassVar[Tuple[Tuple[str, Domain], ...]] = ()
    TOKENS: ClassVar[Tuple[str, ...]] = ()

    def __init__(self, record: TaggedRecord) -> None:
        super().__init__(record)
        self.kind: PredicateKind = PredicateKind.from_tag(record.tag)

    def _bind(self, context, tags, args):
        bind_layout(self, context, tags, args, self.ARGS, self.TOKENS)

    def references(self) -> List[Any]:
        """The instances this predicate refers to, in argument order."""
        return [getattr(self, name) for name, _ in self.ARGS]

    def express(self) -> str:
        raise NotImplementedError

    def render(self) -> str:
        return f"{self.kind.label}\n\t{self.express()}"


class CPOUnknown(CPOPredicate):

    def express(self) -> str:
        return f"-{self.tag}-"


PREDICATES: VariantRegistry[CPOPredicate] = VariantRegistry("predicate", unknown=CPOUnknown)


@PREDICATES.variant("nn", "null", "vm", "gm", "ab", "ilb", "iub",
                    "z", "nt", "nneg", "ft", "vc", "pre")
class CPOSimpleExpression(CPOPredicate):
    ARGS = (("exp", Domain.EXPRESSION),)

    def express(self) -> str:
        return str(self.exp)


@PREDICATES.variant("tao", "lb", "ub")
class CPOTypeAndExp(CPOPredicate):
    ARGS = (("typ", Domain.TYPE), ("exp", Domain.EXPRESSION))

    def express(self) -> str:
        return f"{self.typ}, {self.exp}"


@PREDICATES.variant("c", "pc")
class CPOCast(CPOPredicate):
    ARGS = (
        ("from_type", Domain.TYPE),
        ("target_type", Domain.TYPE),
        ("exp", Domain.EXPRESSION),
    )

    def express(self) -> str:
        return f"{self.exp},from:{self.from_type},to:{self.target_type}"


@PREDICATES.variant("csu", "cus")
class CPOIntegerCast(CPOPredicate):
    """Signed↔unsigned cast; the direction is carried by :attr:`kind`."""

    ARGS = (("exp", Domain.EXPRESSION),)
    TOKENS = ("from_kind", "target_kind")

    @property
    def signed_to_unsigned(self) -> bool:
        return self.kind is PredicateKind.SIGNED_TO_UNSIGNED_CAST

    def express(self) -> str:
        return f"{self.exp},from:{self.from_kind},to:{self.target_kind}"


@PREDICATES.variant("i")
class CPOInitialized(CPOPredicate):
    ARGS = (("lval", Domain.LVALUE),)

    def express(self) -> str:
        return str(self.lval)


@PREDICATES.variant("ir")
class CPOInitializedRange(CPOPredicate):
    ARGS = (("exp", Domain.EXPRESSION), ("length", Domain.EXPRESSION))

    def express(self) -> str:
        return f"{self.exp}, len:{self.length}"


@PREDICATES.variant("io", "iu")
class CPOIntOverflow(CPOPredicate):
    ARGS = (("exp1", Domain.EXPRESSION), ("exp2", Domain.EXPRESSION))
    TOKENS = ("binop", "ikind")

    def express(self) -> str:
        return f"{format_binop(self.binop, self.exp1, self.exp2)}, ikind:{self.ikind}"


@PREDICATES.variant("w")
class CPOWidthOverflow(CPOPredicate):
    ARGS = (("exp", Domain.EXPRESSION),)
    TOKENS = ("ikind",)

    def express(self) -> str:
        return f"{self.exp}, kind:{self.ikind}"


@PREDICATES.variant("plb", "pub", "pubd")
class CPOPtrBound(CPOPredicate):
    ARGS = (
        ("typ", Domain.TYPE),
        ("exp1", Domain.EXPRESSION),
        ("exp2", Domain.EXPRESSION),
    )
    TOKENS = ("binop",)

    def express(self) -> str:
        return f"{format_binop(self.binop, self.exp1, self.exp2)}, typ:{self.typ}"


@PREDICATES.variant("cb", "cbt", "no")
class CPOTwoExpressions(CPOPredicate):
    ARGS = (("exp1", Domain.EXPRESSION), ("exp2", Domain.EXPRESSION))

    def express(self) -> str:
        return f"{self.exp1}, {self.exp2}"
