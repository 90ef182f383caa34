"""
canalysis.bindable
==================

The two-phase build/bind protocol.

Every variant is first *constructed* from its record.  At that point it
only holds the record (tags and integer arguments); nothing is looked up.
Once every record of the unit exists, each instance is *bound* exactly once
against its lookup context.  Binding turns argument ids into references to
other instances, which may themselves still be unbound, and tag tokens into
typed fields.  The record is dropped afterwards.

::

    UNBOUND ──bind() ok──▶ BOUND
       │
       └────bind() raised─▶ FAILED

Both BOUND and FAILED are terminal: a second ``bind`` raises
:class:`~canalysis.errors.AlreadyBoundError`.

References are stored as the referenced *instance*, never as a copy of its
fields, so forward references and cycles resolve the same way whatever the
bind order.
"""

from __future__ import annotations

import enum
from typing import Any, ClassVar, Optional, Protocol, Sequence

from .errors import AlreadyBoundError, MalformedRecordError
from .records import TaggedRecord


class Domain(enum.Enum):
    """Lookup domains: one dictionary per domain and unit (or function)."""

    TYPE = "type"
    EXPRESSION = "expression"
    LVALUE = "lvalue"
    STRUCT = "struct"
    FIELD = "field"
    FUNARGS = "funargs"
    FUNARG = "funarg"
    VARINFO = "varinfo"
    PREDICATE = "predicate"
    PPO_TYPE = "ppo-type"
    SPO_TYPE = "spo-type"
    ASSUMPTION = "assumption"
    CALL_SITE = "call-site"
    PPO = "ppo"
    SPO = "spo"
    API_ASSUMPTION = "api-assumption"
    CFILE = "cfile"
    FUNCTION = "function"


class BindState(enum.Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    FAILED = "failed"


class LookupContext(Protocol):
    """What a variant binds against: strict lookup by domain and id."""

    def lookup(self, domain: Domain, index: int) -> Any:
        ...


# ---------------------------------------------------------------------------
# Record accessors
# ---------------------------------------------------------------------------

def arg(args: Sequence[int], pos: int, what: str = "argument") -> int:
    """Return ``args[pos]`` or raise :class:`MalformedRecordError`."""
    try:
        return args[pos]
    except IndexError:
        raise MalformedRecordError(
            f"missing {what} (argument {pos} of {len(args)})"
        ) from None


def token(tags: Sequence[str], pos: int, what: str = "tag") -> str:
    """Return ``tags[pos]`` or raise :class:`MalformedRecordError`."""
    try:
        return tags[pos]
    except IndexError:
        raise MalformedRecordError(
            f"missing {what} (tag {pos} of {len(tags)})"
        ) from None


# ---------------------------------------------------------------------------
# Bindable base
# ---------------------------------------------------------------------------

class Bindable:
    """Base class of every two-phase variant.

    Subclasses set :attr:`domain` and implement :meth:`_bind` (resolve
    fields) and :meth:`render` (canonical text, only valid once bound).

    Attributes
    ----------
    index : int
        Record id.
    tag : str
        Leading tag token, kept after binding for diagnostics.
    """

    domain: ClassVar[Domain]

    def __init__(self, record: TaggedRecord) -> None:
        self.index: int = record.index
        self.tag: str = record.tag
        self._record: Optional[TaggedRecord] = record
        self._state: BindState = BindState.UNBOUND

    @property
    def state(self) -> BindState:
        return self._state

    @property
    def is_bound(self) -> bool:
        return self._state is BindState.BOUND

    def bind(self, context: LookupContext) -> None:
        """Resolve this instance against *context*; allowed exactly once."""
        if self._state is not BindState.UNBOUND:
            raise AlreadyBoundError(self.domain, self.index)
        record = self._record
        try:
            self._bind(context, record.tags, record.args)
        except Exception:
            self._state = BindState.FAILED
            self._record = None
            raise
        self._record = None
        self._state = BindState.BOUND

    def _bind(self, context: LookupContext, tags: Sequence[str],
              args: Sequence[int]) -> None:
        raise NotImplementedError

    def render(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        if self._state is not BindState.BOUND:
            return f"<{self._state.value} {self.tag}#{self.index}>"
        return self.render()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.index}, {self.tag!r}, {self._state.value})"
