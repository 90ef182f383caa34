"""
canalysis: resolved object model for C static-analysis results
===============================================================

Reads the index-addressed record tables a C analyzer writes for every
translation unit (types, expressions, lvalues, proof-obligation
predicates, obligations and assumptions) and rebuilds them as a graph of
bound Python objects.

Core modules
------------
records
    Tagged records, file families, wire-field grammar.
errors
    Error taxonomy and the ``ErrorsBundle`` error sink.
registry
    Tag → variant dispatch.
bindable
    Two-phase build/bind protocol.
dictionary
    Id-keyed dictionaries with per-record error isolation.
ctype, expressions, predicates, obligations
    The variant sets.
model
    ``CFile``, ``CFunction`` and the ``CApplication`` read pipeline.

Quick start
-----------
>>> from canalysis import CApplication, ReadOptions
>>> app = CApplication("ch_analysis", ReadOptions(parallel=False))
>>> errors = app.read()
>>> print(app.get_cfile_strictly("list.c").get_type(2))
((int) *)
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import List

__version__ = "0.1.0"
__all__: List[str] = []

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Re-exported names: (module_name, list_of_names_to_import)
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "records": [
        "TaggedRecord",
        "Family",
        "UnitFile",
        "make_record",
        "parse_int_list",
        "parse_token_list",
    ],
    "errors": [
        "CAnalysisError",
        "ErrorKind",
        "UnknownTagError",
        "MissingReferenceError",
        "MissingFamilyError",
        "DuplicateTagError",
        "AlreadyBoundError",
        "MalformedRecordError",
        "UnitReadError",
        "ErrorsBundle",
    ],
    "registry": [
        "VariantRegistry",
    ],
    "bindable": [
        "Bindable",
        "BindState",
        "Domain",
    ],
    "dictionary": [
        "IndexedDictionary",
    ],
    "ctype": [
        "CType",
        "CCompInfo",
        "CFieldInfo",
        "CVarInfo",
        "TYPES",
    ],
    "expressions": [
        "CExpression",
        "CLval",
        "EXPRESSIONS",
        "LVALUES",
    ],
    "predicates": [
        "CPOPredicate",
        "PredicateKind",
        "PREDICATES",
    ],
    "obligations": [
        "POLevel",
        "POStatus",
        "PrimaryPO",
        "SecondaryPO",
        "ApiAssumption",
    ],
    "config": [
        "ReadOptions",
        "BindOrder",
    ],
    "progress": [
        "ProgressTracker",
    ],
    "model": [
        "CApplication",
        "CFile",
        "CFunction",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"canalysis: required submodule '{module_rel_name}' failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(f"canalysis.{module_rel_name} does not export '{name}'")
        setattr(current_module, name, obj)
        __all__.append(name)

    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod_name, _names in _CORE_MODULES.items():
    _import_names(_mod_name, _names)

del _mod_name, _names
