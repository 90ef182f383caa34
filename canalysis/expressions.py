"""
canalysis.expressions
=====================

The symbolic expression / lvalue sub-dictionary of a unit.

Predicates only consume this dictionary through two lookups
(``get_expression`` and ``get_lvalue``); the variants below are just rich
enough to render the operands of a predicate.  Nothing here evaluates an
expression.

Expression tags: ``const``, ``lval``, ``sizeof``, ``sizeofe``, ``unop``,
``binop``, ``cast``, ``addrof``, ``startof``.
Lvalue tags: ``var``, ``mem``, ``field``, ``index``.
Anything else renders as ``-<tag>-``.
"""

from __future__ import annotations

from typing import Dict, Sequence

from .bindable import Bindable, Domain, LookupContext, arg, token
from .registry import VariantRegistry


# Binary operator tag → format string over the two operands.
OP_MAP: Dict[str, str] = {
    "plusa": "({0} + {1})",
    "pluspi": "({0} +i {1})",
    "indexpi": "({0} +i {1})",
    "minusa": "({0} - {1})",
    "minuspi": "({0} -i {1})",
    "minuspp": "({0} -p {1})",
    "mult": "({0} * {1})",
    "div": "({0} / {1})",
    "mod": "({0} % {1})",
    "shiftlt": "({0} << {1})",
    "shiftrt": "({0} >> {1})",
    "lt": "({0} < {1})",
    "gt": "({0} > {1})",
    "le": "({0} <= {1})",
    "ge": "({0} >= {1})",
    "eq": "({0} == {1})",
    "ne": "({0} != {1})",
    "band": "({0} & {1})",
    "bxor": "({0} ^ {1})",
    "bor": "({0} | {1})",
    "land": "({0} && {1})",
    "lor": "({0} || {1})",
}

UNOP_MAP: Dict[str, str] = {
    "neg": "-",
    "bnot": "~",
    "lnot": "!",
}


def format_binop(op: str, left: object, right: object) -> str:
    """Render ``left op right``; unknown operators are spelled out."""
    template = OP_MAP.get(op)
    if template is None:
        return f"({left} {op} {right})"
    return template.format(left, right)


# ═══════════════════════════════════════════════════════════════════
#  EXPRESSIONS
# ═══════════════════════════════════════════════════════════════════

class CExpression(Bindable):
    domain = Domain.EXPRESSION

    def _bind(self, context: LookupContext, tags: Sequence[str],
              args: Sequence[int]) -> None:
        pass


class CExpUnknown(CExpression):

    def render(self) -> str:
        return f"-{self.tag}-"


EXPRESSIONS: VariantRegistry[CExpression] = VariantRegistry("expression", unknown=CExpUnknown)


@EXPRESSIONS.variant("const")
class CExpConst(CExpression):
    """Literal constant; the literal text follows the tag."""

    def _bind(self, context, tags, args):
        self.value = " ".join(tags[1:])

    def render(self) -> str:
        return self.value


@EXPRESSIONS.variant("lval")
class CExpLval(CExpression):

    def _bind(self, context, tags, args):
        self.lval = context.lookup(Domain.LVALUE, arg(args, 0, "lvalue"))

    def render(self) -> str:
        return str(self.lval)


@EXPRESSIONS.variant("sizeof")
class CExpSizeOf(CExpression):

    def _bind(self, context, tags, args):
        self.type = context.lookup(Domain.TYPE, arg(args, 0, "type"))

    def render(self) -> str:
        return f"sizeof({self.type})"


@EXPRESSIONS.variant("sizeofe")
class CExpSizeOfE(CExpression):

    def _bind(self, context, tags, args):
        self.exp = context.lookup(Domain.EXPRESSION, arg(args, 0, "operand"))

    def render(self) -> str:
        return f"sizeof({self.exp})"


@EXPRESSIONS.variant("unop")
class CExpUnOp(CExpression):

    def _bind(self, context, tags, args):
        self.op = token(tags, 1, "unary operator")
        self.exp = context.lookup(Domain.EXPRESSION, arg(args, 0, "operand"))

    def render(self) -> str:
        return f"{UNOP_MAP.get(self.op, self.op)}{self.exp}"


@EXPRESSIONS.variant("binop")
class CExpBinOp(CExpression):
    """``tags[1]`` operator; ``args`` = ``[exp1, exp2]`` (+ optional result type)."""

    def _bind(self, context, tags, args):
        self.op = token(tags, 1, "binary operator")
        self.exp1 = context.lookup(Domain.EXPRESSION, arg(args, 0, "left operand"))
        self.exp2 = context.lookup(Domain.EXPRESSION, arg(args, 1, "right operand"))
        self.type = context.lookup(Domain.TYPE, args[2]) if len(args) > 2 else None

    def render(self) -> str:
        return format_binop(self.op, self.exp1, self.exp2)


@EXPRESSIONS.variant("cast")
class CExpCast(CExpression):
    """``args`` = ``[target type, operand]``."""

    def _bind(self, context, tags, args):
        self.type = context.lookup(Domain.TYPE, arg(args, 0, "target type"))
        self.exp = context.lookup(Domain.EXPRESSION, arg(args, 1, "operand"))

    def render(self) -> str:
        return f"caste({self.exp}, {self.type})"


@EXPRESSIONS.variant("addrof")
class CExpAddrOf(CExpression):

    def _bind(self, context, tags, args):
        self.lval = context.lookup(Domain.LVALUE, arg(args, 0, "lvalue"))

    def render(self) -> str:
        return f"&({self.lval})"


@EXPRESSIONS.variant("startof")
class CExpStartOf(CExpression):

    def _bind(self, context, tags, args):
        self.lval = context.lookup(Domain.LVALUE, arg(args, 0, "lvalue"))

    def render(self) -> str:
        return f"&({self.lval})[0]"


# ═══════════════════════════════════════════════════════════════════
#  LVALUES
# ═══════════════════════════════════════════════════════════════════

class CLval(Bindable):
    domain = Domain.LVALUE

    def _bind(self, context: LookupContext, tags: Sequence[str],
              args: Sequence[int]) -> None:
        pass


class CLvalUnknown(CLval):

    def render(self) -> str:
        return f"-{self.tag}-"


LVALUES: VariantRegistry[CLval] = VariantRegistry("lvalue", unknown=CLvalUnknown)


@LVALUES.variant("var")
class CLvalVar(CLval):

    def _bind(self, context, tags, args):
        self.name = token(tags, 1, "variable name")

    def render(self) -> str:
        return self.name


@LVALUES.variant("mem")
class CLvalMem(CLval):
    """Dereference of the address expression ``args[0]``."""

    def _bind(self, context, tags, args):
        self.exp = context.lookup(Domain.EXPRESSION, arg(args, 0, "address"))

    def render(self) -> str:
        return f"(*{self.exp})"


@LVALUES.variant("field")
class CLvalField(CLval):

    def _bind(self, context, tags, args):
        self.field_name = token(tags, 1, "field name")
        self.base = context.lookup(Domain.LVALUE, arg(args, 0, "base lvalue"))

    def render(self) -> str:
        return f"{self.base}.{self.field_name}"


@LVALUES.variant("index")
class CLvalIndex(CLval):

    def _bind(self, context, tags, args):
        self.base = context.lookup(Domain.LVALUE, arg(args, 0, "base lvalue"))
        self.exp = context.lookup(Domain.EXPRESSION, arg(args, 1, "index"))

    def render(self) -> str:
        return f"{self.base}[{self.exp}]"
