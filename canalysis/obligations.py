"""
canalysis.obligations
=====================

Proof obligations and assumptions of one function.

Linking works in two layers:

* the function's **PO dictionary** (``pod`` family) holds the PO *types*:
  a predicate reference plus the location ids where it applies, and the
  assumptions the function relies on;
* the **obligation** tables (``ppo`` / ``spo``) hold the obligations
  themselves: a status token and the id of their PO type.  A secondary
  obligation also points at the call site it originates from.

API assumptions (``api`` family) associate a predicate with the primary
and secondary obligation ids it discharges.  Those id lists are opaque
here; they are neither resolved nor validated.
"""

from __future__ import annotations

import enum
from typing import ClassVar, List, Optional, Tuple

from .bindable import Bindable, Domain, arg, token
from .errors import MalformedRecordError
from .predicates import CPOPredicate
from .records import TaggedRecord, parse_int_list


class POLevel(enum.Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class POStatus(enum.Enum):
    OPEN = "open"
    SAFE = "safe"
    VIOLATION = "violation"
    UNREACHABLE = "unreachable"
    DELEGATED = "delegated"

    @classmethod
    def from_token(cls, text: Optional[str]) -> "POStatus":
        if not text:
            return cls.OPEN
        try:
            return cls(text)
        except ValueError:
            raise MalformedRecordError(f"unknown proof obligation status '{text}'") from None


class AssumptionKind(enum.Enum):
    """``(tag, label)`` of an assumption in the PO dictionary."""

    API = ("aa", "api")
    GLOBAL = ("ga", "global")
    CONTRACT = ("ca", "contract")
    LOCAL = ("la", "local")
    UNKNOWN = ("?", "unknown")

    def __init__(self, tag: str, label: str) -> None:
        self.tag = tag
        self.label = label

    @classmethod
    def from_tag(cls, tag: str) -> "AssumptionKind":
        for kind in cls:
            if kind.tag == tag:
                return kind
        return cls.UNKNOWN


class CallSiteKind(enum.Enum):
    DIRECT = "dc"
    INDIRECT = "ic"


# ═══════════════════════════════════════════════════════════════════
#  PO DICTIONARY
# ═══════════════════════════════════════════════════════════════════

class POType(Bindable):
    """``args[0]`` predicate id, ``args[1:]`` location ids."""

    predicate: CPOPredicate
    locations: Tuple[int, ...]

    def _bind(self, context, tags, args):
        self.predicate = context.lookup(Domain.PREDICATE, arg(args, 0, "predicate"))
        self.locations = tuple(args[1:])

    def render(self) -> str:
        return f"{self.predicate.kind.label} @ {list(self.locations)}"


class PPOType(POType):
    domain = Domain.PPO_TYPE


class SPOType(POType):
    domain = Domain.SPO_TYPE


class Assumption(Bindable):
    """An assumption: kind tag, ``args[0]`` predicate, ``args[1:]`` dependent PPO ids."""

    domain = Domain.ASSUMPTION

    def __init__(self, record: TaggedRecord) -> None:
        super().__init__(record)
        self.kind = AssumptionKind.from_tag(record.tag)

    def _bind(self, context, tags, args):
        self.predicate = context.lookup(Domain.PREDICATE, arg(args, 0, "predicate"))
        self.dependents: Tuple[int, ...] = tuple(args[1:])

    def render(self) -> str:
        return f"{self.kind.label} assumption {self.index}: {self.predicate.kind.label}"


class CallSite:
    """A call site of the function: ``tags`` = ``[dc|ic, callee]``, ``args[0]`` location.

    Fully known at construction.
    """

    def __init__(self, record: TaggedRecord) -> None:
        try:
            self.kind = CallSiteKind(token(record.tags, 0, "call kind"))
        except ValueError:
            raise MalformedRecordError(f"unknown call-site kind '{record.tag}'") from None
        self.index: int = record.index
        self.callee: str = record.tags[1] if len(record.tags) > 1 else ""
        self.location: Optional[int] = record.args[0] if record.args else None

    def __str__(self) -> str:
        callee = self.callee or "<indirect>"
        return f"call {callee} @{self.location}"

    def __repr__(self) -> str:
        return f"CallSite({self.index}, {self.kind.name}, {self.callee!r})"


# ═══════════════════════════════════════════════════════════════════
#  OBLIGATIONS
# ═══════════════════════════════════════════════════════════════════

class ProofObligation(Bindable):
    """Base of primary and secondary obligations.

    ``level`` is fixed when the instance is constructed.
    """

    LEVEL: ClassVar[POLevel]
    TYPE_DOMAIN: ClassVar[Domain]

    po_type: POType
    status: POStatus

    def __init__(self, record: TaggedRecord) -> None:
        super().__init__(record)
        self.level: POLevel = self.LEVEL

    def _bind(self, context, tags, args):
        self.status = POStatus.from_token(tags[0] if tags else None)
        self.po_type = context.lookup(self.TYPE_DOMAIN, arg(args, 0, "po type"))

    @property
    def predicate(self) -> CPOPredicate:
        return self.po_type.predicate

    @property
    def locations(self) -> Tuple[int, ...]:
        return self.po_type.locations

    def render(self) -> str:
        return f"{self.level.value} #{self.index} [{self.status.value}] {self.predicate}"


class PrimaryPO(ProofObligation):
    """``tags[0]`` status, ``args[0]`` PPO type id."""

    domain = Domain.PPO
    LEVEL = POLevel.PRIMARY
    TYPE_DOMAIN = Domain.PPO_TYPE


class SecondaryPO(ProofObligation):
    """``tags[0]`` status, ``args`` = ``[SPO type id, call-site id]``."""

    domain = Domain.SPO
    LEVEL = POLevel.SECONDARY
    TYPE_DOMAIN = Domain.SPO_TYPE

    call_site: CallSite

    def _bind(self, context, tags, args):
        super()._bind(context, tags, args)
        self.call_site = context.lookup(Domain.CALL_SITE, arg(args, 1, "call site"))

    def render(self) -> str:
        return f"{super().render()}\n\tat {self.call_site}"


class ApiAssumption(Bindable):
    """An API assumption.

    ``index`` is the predicate id; ``ppos`` / ``spos`` are the obligation
    ids it discharges, parsed from the row's ``ppos`` / ``spos`` attributes.
    """

    domain = Domain.API_ASSUMPTION

    predicate: CPOPredicate

    def __init__(self, record: TaggedRecord) -> None:
        super().__init__(record)
        self.ppos: List[int] = parse_int_list(record.extras.get("ppos"))
        self.spos: List[int] = parse_int_list(record.extras.get("spos"))

    def _bind(self, context, tags, args):
        self.predicate = context.lookup(Domain.PREDICATE, self.index)

    def render(self) -> str:
        return f"api {self.index}: {self.predicate.kind.label} ppos={self.ppos} spos={self.spos}"
