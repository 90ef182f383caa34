# tests/conftest.py
"""
Shared fixtures and helpers for the canalysis test-suite.

Rows are written as ``(ix, tags, args)`` or ``(ix, tags, args, extras)``
tuples with wire-form strings, e.g. ``(2, "tptr", "1")``.
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from canalysis.config import ReadOptions
from canalysis.errors import ErrorsBundle, MissingReferenceError
from canalysis.model import CFile, CFunction
from canalysis.records import Family, TaggedRecord, UnitFile

Tables = Dict[str, List[tuple]]


# ---------------------------------------------------------------------------
# Sample translation unit: list.c with one function, main
# ---------------------------------------------------------------------------

SAMPLE_FILE = "list.c"
SAMPLE_FUNCTION = "main"

SAMPLE_TABLES: Dict[Family, Tables] = {
    Family.CFILE: {
        "compinfo": [(1, "node", "7,1,1,2")],
        "fieldinfo": [(1, "next", "7,3"), (2, "value", "7,1")],
        "varinfo": [(1, "head", "3")],
    },
    Family.CDICT: {
        "typ": [
            (1, "tint,iint", ""),
            (2, "tptr", "1"),
            (3, "tptr", "4"),
            (4, "tcomp", "7"),
            (5, "tvoid", ""),
            (6, "tfun", "1,1,0"),
            (7, "xyz", ""),
            (8, "tfloat,flongdouble", ""),
            (9, "tnamed,size_t", "1"),
            (10, "tfun", "5"),
        ],
        "funargs": [(1, "", "1,2")],
        "funarg": [(1, "p", "2"), (2, "n", "1")],
        "exp": [
            (1, "lval", "1"),
            (2, "const,42", ""),
            (3, "binop,plusa", "1,2,1"),
            (4, "lval", "2"),
        ],
        "lval": [(1, "var,p", ""), (2, "mem", "1")],
    },
    Family.PRD: {
        "predicate": [
            (1, "nn", "1"),
            (2, "io,plusa,iint", "1,2"),
            (3, "csu,iint,iuint", "2"),
            (4, "i", "2"),
            (5, "qq", ""),
            (6, "cus,iuint,iint", "2"),
        ],
    },
    Family.CFUN: {
        "formals": [(1, "argc", "1")],
        "locals": [(2, "p", "2")],
    },
    Family.POD: {
        "ppo-type": [(1, "ppo", "1,10,11"), (2, "ppo", "4,12")],
        "spo-type": [(1, "spo", "2,13")],
        "assumption": [(1, "aa", "1,1")],
    },
    Family.PPO: {
        "ppo": [(1, "open", "1"), (2, "safe", "2")],
    },
    Family.SPO: {
        "callsite": [(1, "dc,free", "20")],
        "spo": [(1, "violation", "1,1")],
    },
    Family.API: {
        "api-assumption": [
            (1, "", "", {"ppos": "1,2", "spos": ""}),
            (4, "", "", {"spos": "1"}),
        ],
    },
}


# ---------------------------------------------------------------------------
# Record / unit builders
# ---------------------------------------------------------------------------

def record_from_row(row: tuple) -> TaggedRecord:
    ix, tags, args = row[:3]
    extras = row[3] if len(row) > 3 else {}
    return TaggedRecord.from_wire(ix, tags, args, extras)


def make_unit(family: Family, filename: str, tables: Tables,
              fname: Optional[str] = None, origin: Optional[str] = None) -> UnitFile:
    return UnitFile(
        family=family,
        origin=origin or f"{filename}:{family.suffix}",
        source_filename=filename,
        function_name=fname,
        tables={name: [record_from_row(r) for r in rows] for name, rows in tables.items()},
    )


def build_cfile(tables: Optional[Dict[Family, Tables]] = None, name: str = "t.c",
                bind: bool = True):
    """Construct (and bind) a CFile from file-level tables; returns (cfile, errors)."""
    tables = tables or {}
    cfile = CFile(None, name)
    errors = ErrorsBundle()
    for family in (Family.CFILE, Family.CDICT, Family.PRD):
        cfile.load(make_unit(family, name, tables.get(family, {})), errors)
    if bind:
        cfile.bind(errors)
    return cfile, errors


def build_function(cfile: CFile, tables: Dict[Family, Tables], errors: ErrorsBundle,
                   name: str = "f") -> CFunction:
    fn = cfile.function(name)
    for family in (Family.CFUN, Family.POD, Family.PPO, Family.SPO, Family.API):
        if family in tables:
            fn.load_and_bind(make_unit(family, cfile.name, tables[family], fname=name), errors)
    return fn


def unit_xml(family: Family, filename: str, tables: Tables, fname: Optional[str] = None) -> str:
    root = ET.Element("c-analysis")
    if family.function_level:
        unit = ET.SubElement(root, "function", fname=fname or "", filename=filename)
    else:
        unit = ET.SubElement(root, "c-file", filename=filename)
    for name, rows in tables.items():
        table = ET.SubElement(unit, f"{name}-table")
        for row in rows:
            ix, tags, args = row[:3]
            attrs = {"ix": str(ix)}
            if tags:
                attrs["t"] = tags
            if args:
                attrs["a"] = args
            if len(row) > 3:
                attrs.update(row[3])
            ET.SubElement(table, "n", attrs)
    return ET.tostring(root, encoding="unicode")


def write_unit(directory: Path, family: Family, filename: str, tables: Tables,
               fname: Optional[str] = None) -> Path:
    stem = Path(filename).stem
    if family.function_level:
        path = directory / stem / f"{stem}_{fname}_{family.suffix}.xml"
    else:
        path = directory / f"{stem}_{family.suffix}.xml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(unit_xml(family, filename, tables, fname), encoding="utf-8")
    return path


def write_sample(directory: Path, filename: str = SAMPLE_FILE,
                 fname: str = SAMPLE_FUNCTION) -> Path:
    for family, tables in SAMPLE_TABLES.items():
        write_unit(directory, family, filename, tables,
                   fname if family.function_level else None)
    return directory


class DictContext:
    """A lookup context over plain ``{(domain, id): instance}`` entries."""

    def __init__(self, entries=None):
        self.entries = dict(entries or {})

    def lookup(self, domain, index):
        try:
            return self.entries[(domain, index)]
        except KeyError:
            raise MissingReferenceError(domain, index) from None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_dir(tmp_path):
    return write_sample(tmp_path / "analysis")


@pytest.fixture
def sequential():
    return ReadOptions(parallel=False)


@pytest.fixture
def sample_cfile():
    cfile, errors = build_cfile(SAMPLE_TABLES, name=SAMPLE_FILE)
    assert errors.is_empty, errors.to_json()
    return cfile
