"""
canalysis.reader
================

Loading of family files from an analysis directory.

File format
-----------
Every family file is an XML document::

    <c-analysis>
      <c-file filename="list.c">            <!-- file-level families -->
        <typ-table>
          <n ix="1" t="tint,iint"/>
          <n ix="2" t="tptr" a="1"/>
        </typ-table>
      </c-file>
    </c-analysis>

Function-level families use ``<function fname="main" filename="list.c">``
as the unit element.  Which tables a family file may hold is listed in
:data:`FAMILY_TABLES`; absent tables are empty.  Any row attribute other
than ``ix``/``t``/``a`` is kept in the record's ``extras``.

Directory layout
----------------
Files are found by suffix (``*_<family>.xml``) anywhere below the analysis
root.  :class:`AnalysisLayout` caches the listing per instance, so two
reads of different directories in one process never share listings.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import CAnalysisError, UnitReadError
from .records import Family, TaggedRecord, UnitFile

_log = logging.getLogger(__name__)

ROOT_TAG = "c-analysis"
FILE_UNIT_TAG = "c-file"
FUNCTION_UNIT_TAG = "function"

FAMILY_TABLES: Mapping[Family, Tuple[str, ...]] = {
    Family.CFILE: ("compinfo", "fieldinfo", "varinfo"),
    Family.CDICT: ("typ", "funargs", "funarg", "exp", "lval"),
    Family.CFUN: ("formals", "locals"),
    Family.PRD: ("predicate",),
    Family.POD: ("ppo-type", "spo-type", "assumption"),
    Family.PPO: ("ppo",),
    Family.SPO: ("callsite", "spo"),
    Family.API: ("api-assumption",),
}

_WIRE_ATTRIBUTES = frozenset({"ix", "t", "a"})


class UnitReader:
    """Deserializes one family file into a :class:`UnitFile`.

    Rows that cannot be turned into a record are reported in
    ``UnitFile.rejected``; a file that cannot be parsed at all raises
    :class:`UnitReadError`.
    """

    def read(self, path: Path, family: Family) -> UnitFile:
        origin = str(path)
        try:
            root = ET.parse(str(path)).getroot()
        except ET.ParseError as exc:
            raise UnitReadError(origin, f"invalid XML ({exc})") from exc
        except OSError as exc:
            raise UnitReadError(origin, exc.strerror or str(exc)) from exc
        return self.from_element(root, family, origin)

    def parse(self, text: str, family: Family, origin: str = "<string>") -> UnitFile:
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise UnitReadError(origin, f"invalid XML ({exc})") from exc
        return self.from_element(root, family, origin)

    def from_element(self, root: ET.Element, family: Family, origin: str) -> UnitFile:
        if root.tag != ROOT_TAG:
            raise UnitReadError(origin, f"expected <{ROOT_TAG}> root, found <{root.tag}>")

        unit_tag = FUNCTION_UNIT_TAG if family.function_level else FILE_UNIT_TAG
        unit = root.find(unit_tag)
        if unit is None:
            raise UnitReadError(origin, f"no <{unit_tag}> element")

        filename = unit.get("filename")
        if not filename:
            raise UnitReadError(origin, f"<{unit_tag}> has no filename")
        function_name: Optional[str] = None
        if family.function_level:
            function_name = unit.get("fname")
            if not function_name:
                raise UnitReadError(origin, f"<{unit_tag}> has no fname")

        result = UnitFile(family=family, origin=origin, source_filename=filename,
                          function_name=function_name)
        tables: Dict[str, List[TaggedRecord]] = {}
        for name in FAMILY_TABLES[family]:
            table = unit.find(f"{name}-table")
            tables[name] = [] if table is None else self._rows(table, name, result.rejected)
        result.tables = tables
        _log.debug("%s: %d %s record(s)", origin, result.record_count, family.label)
        return result

    @staticmethod
    def _rows(table: ET.Element, name: str, rejected: List[str]) -> List[TaggedRecord]:
        rows: List[TaggedRecord] = []
        for position, node in enumerate(table.findall("n")):
            extras = {k: v for k, v in node.attrib.items() if k not in _WIRE_ATTRIBUTES}
            try:
                rows.append(TaggedRecord.from_wire(node.get("ix"), node.get("t"),
                                                   node.get("a"), extras))
            except CAnalysisError as exc:
                rejected.append(f"{name} row {position}: {exc}")
        return rows


class AnalysisLayout:
    """The family files found below one analysis directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._listing: Dict[Family, List[Path]] = {}

    def files(self, family: Family) -> List[Path]:
        """Sorted ``*_<suffix>.xml`` files of *family*; listed once per instance."""
        cached = self._listing.get(family)
        if cached is None:
            pattern = f"*_{family.suffix}.xml"
            cached = sorted(p for p in self.root.rglob(pattern) if p.is_file())
            self._listing[family] = cached
            _log.debug("%s: %d file(s) matching %s", self.root, len(cached), pattern)
        return list(cached)

    def invalidate(self) -> None:
        self._listing.clear()
