"""
canalysis.ctype
===============

The C type system of the symbol dictionary, plus the file-level
declarations that refer to it (struct/union descriptors, fields, variables)
and the argument lists of function types.

Canonical text
--------------
Every bound type renders a canonical form that doubles as an identity and
debug key:

=============  =====================================
``tvoid``      ``void``
``tptr``       ``(<ref> *)``
``tcomp``      ``struct <name>(<key>)`` / ``union <name>(<key>)``
``tint``       ``(<spelling>)``, e.g. ``(unsigned int)``
``tfloat``     ``(<spelling>)``, e.g. ``(long double)``
``tnamed``     the typedef name
``tfun``       ``(<arg types>):<return type>``
other          ``-<tag>-`` (arrays, enums, va-list markers, unknown tags)
=============  =====================================

A composite renders its descriptor only and never descends into its
fields, so self-referential structures render in bounded time.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from .bindable import Bindable, Domain, LookupContext, arg, token
from .errors import MalformedRecordError
from .records import TaggedRecord
from .registry import VariantRegistry


INTEGER_NAMES: Dict[str, str] = {
    "ichar": "char",
    "ischar": "signed char",
    "iuchar": "unsigned char",
    "ibool": "bool",
    "iint": "int",
    "iuint": "unsigned int",
    "ishort": "short",
    "iushort": "unsigned short",
    "ilong": "long",
    "iulong": "unsigned long",
    "ilonglong": "long long",
    "iulonglong": "unsigned long long",
}

FLOAT_NAMES: Dict[str, str] = {
    "fdouble": "fdouble",
    "float": "float",
    "flongdouble": "long double",
}


# ═══════════════════════════════════════════════════════════════════
#  TYPES
# ═══════════════════════════════════════════════════════════════════

class CType(Bindable):
    """Base of every type variant."""

    domain = Domain.TYPE

    def _bind(self, context: LookupContext, tags: Sequence[str],
              args: Sequence[int]) -> None:
        pass


class CTypeUnknown(CType):
    """Placeholder for kinds that are not decomposed (arrays, enums, ...)."""

    def _bind(self, context, tags, args):
        self.kind = self.tag

    def render(self) -> str:
        return f"-{self.kind}-"


TYPES: VariantRegistry[CType] = VariantRegistry("type", unknown=CTypeUnknown)

# Recognised kinds that are deliberately left opaque.
for _tag in ("tarray", "tenum", "tbuiltin-va-list", "tbuiltinvaargs"):
    TYPES.register(_tag, CTypeUnknown)
del _tag


@TYPES.variant("tvoid")
class CTypeVoid(CType):

    def render(self) -> str:
        return "void"


@TYPES.variant("tptr")
class CTypePtr(CType):
    """Pointer; ``args[0]`` is the referenced type."""

    ref: CType

    def _bind(self, context, tags, args):
        self.ref = context.lookup(Domain.TYPE, arg(args, 0, "pointee type"))

    def render(self) -> str:
        return f"({self.ref} *)"


@TYPES.variant("tcomp")
class CTypeComp(CType):
    """Struct or union; ``args[0]`` is the composite key."""

    ckey: int
    struct: "CCompInfo"

    def _bind(self, context, tags, args):
        self.ckey = arg(args, 0, "composite key")
        self.struct = context.lookup(Domain.STRUCT, self.ckey)

    def render(self) -> str:
        return self.struct.describe(self.ckey)


@TYPES.variant("tint")
class CTypeInt(CType):

    ikind: str
    name: str

    def _bind(self, context, tags, args):
        self.ikind = token(tags, 1, "integer kind")
        self.name = INTEGER_NAMES.get(self.ikind, self.ikind)

    def render(self) -> str:
        return f"({self.name})"


@TYPES.variant("tfloat")
class CTypeFloat(CType):

    fkind: str
    name: str

    def _bind(self, context, tags, args):
        self.fkind = token(tags, 1, "float kind")
        self.name = FLOAT_NAMES.get(self.fkind, self.fkind)

    def render(self) -> str:
        return f"({self.name})"


@TYPES.variant("tnamed")
class CTypeNamed(CType):
    """Typedef name (``tags[1]``)."""

    name: str

    def _bind(self, context, tags, args):
        self.name = token(tags, 1, "typedef name")

    def render(self) -> str:
        return self.name


@TYPES.variant("tfun")
class CTypeFun(CType):
    """Function type.

    ``args[0]`` is the return type, ``args[1]`` the argument list (absent or
    negative when the prototype has none), ``args[2]`` the varargs flag.
    """

    return_type: CType
    fun_args: Optional["CFunArgs"]
    varargs: bool

    def _bind(self, context, tags, args):
        self.return_type = context.lookup(Domain.TYPE, arg(args, 0, "return type"))
        self.fun_args = None
        if len(args) > 1 and args[1] >= 0:
            self.fun_args = context.lookup(Domain.FUNARGS, args[1])
        self.varargs = len(args) > 2 and args[2] == 1

    def render(self) -> str:
        params = str(self.fun_args) if self.fun_args is not None else ""
        return f"({params}):{self.return_type}"


# ═══════════════════════════════════════════════════════════════════
#  FUNCTION ARGUMENTS
# ═══════════════════════════════════════════════════════════════════

class CFunArg(Bindable):
    """One formal of a function type: name (``tags[0]``), type (``args[0]``)."""

    domain = Domain.FUNARG

    name: str
    type: CType

    def _bind(self, context, tags, args):
        self.name = tags[0] if tags else ""
        self.type = context.lookup(Domain.TYPE, arg(args, 0, "argument type"))

    def render(self) -> str:
        return str(self.type)


class CFunArgs(Bindable):
    """Ordered argument list; every arg is a :class:`CFunArg` id."""

    domain = Domain.FUNARGS

    args: List[CFunArg]

    def _bind(self, context, tags, args):
        self.args = [context.lookup(Domain.FUNARG, i) for i in args]

    def render(self) -> str:
        return ", ".join(str(a) for a in self.args)


# ═══════════════════════════════════════════════════════════════════
#  FILE-LEVEL DECLARATIONS
# ═══════════════════════════════════════════════════════════════════

class CCompInfo:
    """Struct/union descriptor.

    Fully known at construction: ``tags[0]`` is the name, ``args`` are
    ``[key, is_struct, field ids...]``.  Field ids are kept as ids and only
    resolved on demand through the owning unit.
    """

    def __init__(self, record: TaggedRecord) -> None:
        if len(record.args) < 2:
            raise MalformedRecordError(
                f"compinfo #{record.index} needs [key, is_struct], got {list(record.args)}"
            )
        self.index: int = record.index
        self.name: str = record.tag
        self.key: int = record.args[0]
        self.is_struct: bool = record.args[1] == 1
        self.field_ids: Tuple[int, ...] = tuple(record.args[2:])

    def describe(self, key: Optional[int] = None) -> str:
        kind = "struct" if self.is_struct else "union"
        return f"{kind} {self.name}({self.key if key is None else key})"

    def fields(self, context: LookupContext) -> List["CFieldInfo"]:
        return [context.lookup(Domain.FIELD, i) for i in self.field_ids]

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"CCompInfo({self.key}, {self.name!r}, is_struct={self.is_struct})"


class CFieldInfo(Bindable):
    """A struct/union member: ``tags[0]`` name, ``args`` = ``[key, type]``."""

    domain = Domain.FIELD

    name: str
    comp: CCompInfo
    type: CType

    def _bind(self, context, tags, args):
        self.name = token(tags, 0, "field name")
        self.comp = context.lookup(Domain.STRUCT, arg(args, 0, "composite key"))
        self.type = context.lookup(Domain.TYPE, arg(args, 1, "field type"))

    def render(self) -> str:
        return f"{self.type} {self.name}"


class CVarInfo(Bindable):
    """A variable (global, formal or local): ``tags[0]`` name, ``args[0]`` type."""

    domain = Domain.VARINFO

    name: str
    type: CType

    def _bind(self, context, tags, args):
        self.name = token(tags, 0, "variable name")
        self.type = context.lookup(Domain.TYPE, arg(args, 0, "variable type"))

    def render(self) -> str:
        return f"{self.type} {self.name}"


def describe_types(types: Any) -> Dict[int, str]:
    """``{id: canonical text}`` for an iterable of bound types."""
    return {t.index: str(t) for t in types}
