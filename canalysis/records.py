"""
canalysis.records
=================

The raw unit of input: a :class:`TaggedRecord` (index, tag tokens, integer
arguments), plus the wire-field grammar that turns the delimited strings of
the analyzer output into token and integer lists.

Wire form
---------
Every table row of the analyzer output looks like::

    <n ix="12" t="tptr" a="7"/>
    <n ix="13" t="io,plusa,iint" a="4,5"/>

``t`` holds the tag tokens and ``a`` the integer arguments.  Both are
delimited by commas and/or whitespace.  An empty (or absent) string yields
an empty list, never an error.

The lists are parsed with a small Parsimonious PEG grammar.

Families
--------
A translation unit is described by eight file families, see :class:`Family`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from .errors import MalformedRecordError


# ═══════════════════════════════════════════════════════════════════
#  WIRE GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

WIRE_GRAMMAR = Grammar(r'''
    int_list    = sep? (integer (sep integer)*)? sep?
    token_list  = sep? (token (sep token)*)? sep?

    integer     = ~r"[+-]?[0-9]+"
    token       = ~r"[^\s,]+"
    sep         = ~r"[\s,]+"
''')


class _ItemCollector(NodeVisitor):
    """Collects ``integer`` / ``token`` leaves in source order."""

    def __init__(self) -> None:
        self.items: List[Any] = []

    def visit_integer(self, node, visited_children):
        self.items.append(int(node.text))

    def visit_token(self, node, visited_children):
        self.items.append(node.text)

    def generic_visit(self, node, visited_children):
        return None


def _parse_list(rule: str, text: Optional[str], what: str) -> List[Any]:
    if text is None:
        return []
    text = text.strip()
    if not text:
        return []
    try:
        tree = WIRE_GRAMMAR[rule].parse(text)
    except ParseError as exc:
        raise MalformedRecordError(
            f"cannot parse {what} list {text!r}: {exc}"
        ) from exc
    collector = _ItemCollector()
    collector.visit(tree)
    return collector.items


def parse_int_list(text: Optional[str]) -> List[int]:
    """Parse ``"3,4"`` / ``"3 4"`` into ``[3, 4]``; ``None`` or ``""`` → ``[]``."""
    return _parse_list("int_list", text, "integer")


def parse_token_list(text: Optional[str]) -> List[str]:
    """Parse ``"io,plusa,iint"`` into ``["io", "plusa", "iint"]``."""
    return _parse_list("token_list", text, "tag")


# ═══════════════════════════════════════════════════════════════════
#  TAGGED RECORD
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TaggedRecord:
    """One row of an indexed table.

    Attributes
    ----------
    index : int
        Record id, unique within its table.
    tags : tuple[str, ...]
        Tag tokens.  ``tags[0]`` selects the variant kind.
    args : tuple[int, ...]
        Integer arguments, usually ids into other tables.
    extras : Mapping[str, str]
        Any additional wire attributes of the row (e.g. ``ppos``/``spos``).
    """

    index: int
    tags: Tuple[str, ...] = ()
    args: Tuple[int, ...] = ()
    extras: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", tuple(self.tags))
        object.__setattr__(self, "args", tuple(self.args))

    @property
    def tag(self) -> str:
        """The leading tag token (variant key); ``""`` when there are none."""
        return self.tags[0] if self.tags else ""

    @classmethod
    def from_wire(
        cls,
        index: Any,
        tags: Optional[str] = None,
        args: Optional[str] = None,
        extras: Optional[Mapping[str, str]] = None,
    ) -> "TaggedRecord":
        """Build a record from its wire attributes (all strings)."""
        try:
            ix = int(index)
        except (TypeError, ValueError) as exc:
            raise MalformedRecordError(f"invalid record index {index!r}") from exc
        return cls(
            index=ix,
            tags=tuple(parse_token_list(tags)),
            args=tuple(parse_int_list(args)),
            extras=dict(extras or {}),
        )


def make_record(index: int, tags: Sequence[str] = (), args: Sequence[int] = (),
                **extras: str) -> TaggedRecord:
    """Convenience constructor used by readers and tests."""
    return TaggedRecord(index=index, tags=tuple(tags), args=tuple(args),
                        extras=dict(extras))


# ═══════════════════════════════════════════════════════════════════
#  FILE FAMILIES
# ═══════════════════════════════════════════════════════════════════

class Family(enum.Enum):
    """The eight per-unit file families.

    Each member carries its file suffix, whether the family is scoped to a
    function (rather than a whole source file) and the share of the overall
    read progress it accounts for.
    """

    CFILE = ("cfile", False, 5)
    CDICT = ("cdict", False, 10)
    CFUN = ("cfun", True, 5)
    PRD = ("prd", False, 10)
    POD = ("pod", True, 10)
    PPO = ("ppo", True, 20)
    SPO = ("spo", True, 20)
    API = ("api", True, 20)

    def __init__(self, suffix: str, function_level: bool, weight: int) -> None:
        self.suffix = suffix
        self.function_level = function_level
        self.weight = weight

    @property
    def label(self) -> str:
        return self.suffix.upper()

    @classmethod
    def from_suffix(cls, suffix: str) -> "Family":
        for member in cls:
            if member.suffix == suffix:
                return member
        raise ValueError(f"unknown file family {suffix!r}")


# Families a family cannot be read without, per unit.
FAMILY_REQUIREMENTS: Mapping[Family, Tuple[Family, ...]] = {
    Family.CFILE: (),
    Family.CDICT: (Family.CFILE,),
    Family.PRD: (Family.CDICT,),
    Family.CFUN: (Family.CDICT,),
    Family.POD: (Family.PRD,),
    Family.PPO: (Family.POD,),
    Family.SPO: (Family.POD,),
    Family.API: (Family.PRD,),
}


@dataclass
class UnitFile:
    """The deserialized content of one family file.

    ``tables`` maps a table name (``"typ"``, ``"predicate"``, ...) to its
    records in file order.  ``function_name`` is set for function-level
    families only.  ``rejected`` holds one message per row that could not
    be turned into a record.
    """

    family: Family
    origin: str
    source_filename: str
    function_name: Optional[str] = None
    tables: Mapping[str, List[TaggedRecord]] = field(default_factory=dict)
    rejected: List[str] = field(default_factory=list)

    def table(self, name: str) -> List[TaggedRecord]:
        return list(self.tables.get(name, ()))

    @property
    def record_count(self) -> int:
        return sum(len(rows) for rows in self.tables.values())
