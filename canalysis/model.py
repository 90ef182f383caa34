"""
canalysis.model
===============

The resolved object model: :class:`CFile` (one translation unit and its
dictionaries), :class:`CFunction` (the function-level dictionaries) and
:class:`CApplication`, which orchestrates a read.

Read order
----------
::

    stage 1   CFILE ─▶ CDICT ─▶ PRD        construct, every unit
    barrier   bind every CFile
    stage 2   CFUN ─▶ POD ─▶ PPO ─▶ SPO ─▶ API
              (each family: construct every unit, then bind it)

Every failure is recorded in :attr:`CApplication.errors` against the file
it came from; the rest of the read goes on.  A family file whose unit lacks
a required family (see :data:`~canalysis.records.FAMILY_REQUIREMENTS`) is
skipped with a single unit-level error.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Set, Tuple

from .bindable import Bindable, Domain
from .config import BindOrder, ReadOptions
from .ctype import TYPES, CCompInfo, CFieldInfo, CFunArg, CFunArgs, CType, CVarInfo
from .dictionary import IndexedDictionary
from .errors import CAnalysisError, ErrorsBundle, MissingFamilyError, MissingReferenceError
from .expressions import EXPRESSIONS, LVALUES, CExpression, CLval
from .obligations import (
    ApiAssumption,
    Assumption,
    CallSite,
    PPOType,
    PrimaryPO,
    SecondaryPO,
    SPOType,
)
from .predicates import PREDICATES, CPOPredicate
from .progress import ProgressTracker
from .reader import AnalysisLayout, UnitReader
from .records import FAMILY_REQUIREMENTS, Family, TaggedRecord, UnitFile

_log = logging.getLogger(__name__)


class TableSpec(NamedTuple):
    """Which dictionary a table is populated into, and how."""

    table: str
    attribute: str
    build: Callable[[TaggedRecord], Any]
    key: Optional[Callable[[Any], int]] = None


FILE_TABLES: Mapping[Family, Tuple[TableSpec, ...]] = {
    Family.CFILE: (
        TableSpec("compinfo", "structs", CCompInfo, key=lambda c: c.key),
        TableSpec("fieldinfo", "fields", CFieldInfo),
        TableSpec("varinfo", "varinfos", CVarInfo),
    ),
    Family.CDICT: (
        TableSpec("typ", "types", TYPES.build),
        TableSpec("funargs", "funargs", CFunArgs),
        TableSpec("funarg", "funarg", CFunArg),
        TableSpec("exp", "expressions", EXPRESSIONS.build),
        TableSpec("lval", "lvalues", LVALUES.build),
    ),
    Family.PRD: (
        TableSpec("predicate", "predicates", PREDICATES.build),
    ),
}

FUNCTION_TABLES: Mapping[Family, Tuple[TableSpec, ...]] = {
    Family.CFUN: (
        TableSpec("formals", "formals", CVarInfo),
        TableSpec("locals", "locals", CVarInfo),
    ),
    Family.POD: (
        TableSpec("ppo-type", "ppo_types", PPOType),
        TableSpec("spo-type", "spo_types", SPOType),
        TableSpec("assumption", "assumptions", Assumption),
    ),
    Family.PPO: (
        TableSpec("ppo", "ppos", PrimaryPO),
    ),
    Family.SPO: (
        TableSpec("callsite", "call_sites", CallSite),
        TableSpec("spo", "spos", SecondaryPO),
    ),
    Family.API: (
        TableSpec("api-assumption", "api_assumptions", ApiAssumption),
    ),
}

FILE_STAGE: Tuple[Family, ...] = (Family.CFILE, Family.CDICT, Family.PRD)
FUNCTION_STAGE: Tuple[Family, ...] = (Family.CFUN, Family.POD, Family.PPO, Family.SPO, Family.API)

_DOMAIN_FAMILY: Dict[Domain, Family] = {
    Domain.STRUCT: Family.CFILE,
    Domain.FIELD: Family.CFILE,
    Domain.VARINFO: Family.CFILE,
    Domain.TYPE: Family.CDICT,
    Domain.FUNARGS: Family.CDICT,
    Domain.FUNARG: Family.CDICT,
    Domain.EXPRESSION: Family.CDICT,
    Domain.LVALUE: Family.CDICT,
    Domain.PREDICATE: Family.PRD,
}


def _populate(owner: Any, specs: Iterable[TableSpec], unit: UnitFile,
              errors: ErrorsBundle) -> List[IndexedDictionary]:
    touched = []
    for spec in specs:
        dictionary: IndexedDictionary = getattr(owner, spec.attribute)
        dictionary.populate(unit.table(spec.table), spec.build, errors, unit.origin, spec.key)
        touched.append(dictionary)
    return touched


def _provides(unit: UnitFile) -> bool:
    """Whether *unit* satisfies the families that depend on its family.

    A CFILE unit marks the translation unit as present even without rows;
    any other family counts only when it has at least one record.
    """
    return unit.family is Family.CFILE or unit.record_count > 0


def _bind_order(dictionary: IndexedDictionary, order: BindOrder) -> Optional[List[int]]:
    if order is BindOrder.REVERSED:
        return list(reversed(dictionary.ids()))
    return None


# ═══════════════════════════════════════════════════════════════════
#  TRANSLATION UNIT
# ═══════════════════════════════════════════════════════════════════

class CFile:
    """One translation unit: the file-level dictionaries and its functions.

    A ``CFile`` is the lookup context of every file-level variant, see
    :meth:`lookup`.
    """

    def __init__(self, application: Optional["CApplication"], name: str) -> None:
        self.application = application
        self.name = name
        self.families: Set[Family] = set()
        self.origins: Dict[Family, str] = {}

        self.structs: IndexedDictionary[CCompInfo] = IndexedDictionary(Domain.STRUCT)
        self.fields: IndexedDictionary[CFieldInfo] = IndexedDictionary(Domain.FIELD)
        self.varinfos: IndexedDictionary[CVarInfo] = IndexedDictionary(Domain.VARINFO)
        self.types: IndexedDictionary[CType] = IndexedDictionary(Domain.TYPE)
        self.funargs: IndexedDictionary[CFunArgs] = IndexedDictionary(Domain.FUNARGS)
        self.funarg: IndexedDictionary[CFunArg] = IndexedDictionary(Domain.FUNARG)
        self.expressions: IndexedDictionary[CExpression] = IndexedDictionary(Domain.EXPRESSION)
        self.lvalues: IndexedDictionary[CLval] = IndexedDictionary(Domain.LVALUE)
        self.predicates: IndexedDictionary[CPOPredicate] = IndexedDictionary(Domain.PREDICATE)
        self._by_domain: Dict[Domain, IndexedDictionary] = {
            d.domain: d for d in (
                self.structs, self.fields, self.varinfos, self.types, self.funargs,
                self.funarg, self.expressions, self.lvalues, self.predicates,
            )
        }

        self.functions: Dict[str, CFunction] = {}

    # ----- lookup ------------------------------------------------------------

    def dictionaries(self) -> Dict[Domain, IndexedDictionary]:
        return dict(self._by_domain)

    def lookup(self, domain: Domain, index: int) -> Any:
        dictionary = self._by_domain.get(domain)
        if dictionary is None:
            raise MissingReferenceError(domain, index)
        return dictionary.get(index)

    def get_type(self, index: int) -> CType:
        return self.types.get(index)

    def get_expression(self, index: int) -> CExpression:
        return self.expressions.get(index)

    def get_lvalue(self, index: int) -> CLval:
        return self.lvalues.get(index)

    def get_struct(self, key: int) -> CCompInfo:
        return self.structs.get(key)

    def get_field(self, index: int) -> CFieldInfo:
        return self.fields.get(index)

    def get_funargs(self, index: int) -> CFunArgs:
        return self.funargs.get(index)

    def get_funarg(self, index: int) -> CFunArg:
        return self.funarg.get(index)

    def get_varinfo(self, index: int) -> CVarInfo:
        return self.varinfos.get(index)

    def get_predicate(self, index: int) -> CPOPredicate:
        return self.predicates.get(index)

    def get_function(self, name: str) -> Optional["CFunction"]:
        return self.functions.get(name)

    def function(self, name: str) -> "CFunction":
        """Return the function called *name*, creating it on first use."""
        fn = self.functions.get(name)
        if fn is None:
            fn = self.functions[name] = CFunction(self, name)
        return fn

    # ----- loading -------------------------------------------------------------

    def require(self, family: Family) -> None:
        """Raise :class:`MissingFamilyError` if a family *family* needs has no records."""
        for needed in FAMILY_REQUIREMENTS[family]:
            if not needed.function_level and needed not in self.families:
                raise MissingFamilyError(self.name, needed, needed_by=family)

    def load(self, unit: UnitFile, errors: ErrorsBundle) -> List[IndexedDictionary]:
        """Construct every record of a file-level *unit*."""
        if unit.record_count:
            self.require(unit.family)
        if _provides(unit):
            self.families.add(unit.family)
        self.origins[unit.family] = unit.origin
        return _populate(self, FILE_TABLES[unit.family], unit, errors)

    def bind(self, errors: ErrorsBundle, order: BindOrder = BindOrder.DECLARATION) -> int:
        """Bind every file-level dictionary; return how many instances were bound."""
        bound = 0
        for dictionary in self._by_domain.values():
            origin = self.origins.get(_DOMAIN_FAMILY[dictionary.domain], self.name)
            bound += dictionary.bind_all(self, errors, origin, _bind_order(dictionary, order))
        return bound

    def __repr__(self) -> str:
        return f"CFile({self.name!r}, {len(self.functions)} function(s))"



# ═══════════════════════════════════════════════════════════════════
#  FUNCTION
# ═══════════════════════════════════════════════════════════════════

class CFunction:
    """The function-level dictionaries of one function.

    Lookups of function-level domains are answered here; every other domain
    is delegated to the owning :class:`CFile`.
    """

    def __init__(self, cfile: CFile, name: str) -> None:
        self.cfile = cfile
        self.name = name
        self.families: Set[Family] = set()

        self.formals: IndexedDictionary[CVarInfo] = IndexedDictionary(Domain.VARINFO)
        self.locals: IndexedDictionary[CVarInfo] = IndexedDictionary(Domain.VARINFO)
        self.ppo_types: IndexedDictionary[PPOType] = IndexedDictionary(Domain.PPO_TYPE)
        self.spo_types: IndexedDictionary[SPOType] = IndexedDictionary(Domain.SPO_TYPE)
        self.assumptions: IndexedDictionary[Assumption] = IndexedDictionary(Domain.ASSUMPTION)
        self.call_sites: IndexedDictionary[CallSite] = IndexedDictionary(Domain.CALL_SITE)
        self.ppos: IndexedDictionary[PrimaryPO] = IndexedDictionary(Domain.PPO)
        self.spos: IndexedDictionary[SecondaryPO] = IndexedDictionary(Domain.SPO)
        self.api_assumptions: IndexedDictionary[ApiAssumption] = IndexedDictionary(
            Domain.API_ASSUMPTION)
        self._by_domain: Dict[Domain, IndexedDictionary] = {
            d.domain: d for d in (
                self.ppo_types, self.spo_types, self.assumptions, self.call_sites,
                self.ppos, self.spos, self.api_assumptions,
            )
        }

    @property
    def qualified_name(self) -> str:
        return f"{self.cfile.name}:{self.name}"

    def dictionaries(self) -> Dict[Domain, IndexedDictionary]:
        return dict(self._by_domain)

    def lookup(self, domain: Domain, index: int) -> Any:
        dictionary = self._by_domain.get(domain)
        if dictionary is not None:
            return dictionary.get(index)
        return self.cfile.lookup(domain, index)

    def get_ppo_type(self, index: int) -> PPOType:
        return self.ppo_types.get(index)

    def get_spo_type(self, index: int) -> SPOType:
        return self.spo_types.get(index)

    def get_assumption(self, index: int) -> Assumption:
        return self.assumptions.get(index)

    def get_call_site(self, index: int) -> CallSite:
        return self.call_sites.get(index)

    def get_ppo(self, index: int) -> PrimaryPO:
        return self.ppos.get(index)

    def get_spo(self, index: int) -> SecondaryPO:
        return self.spos.get(index)

    def get_api_assumption(self, index: int) -> ApiAssumption:
        return self.api_assumptions.get(index)

    def require(self, family: Family) -> None:
        for needed in FAMILY_REQUIREMENTS[family]:
            present = self.families if needed.function_level else self.cfile.families
            if needed not in present:
                raise MissingFamilyError(self.qualified_name, needed, needed_by=family)

    def load_and_bind(self, unit: UnitFile, errors: ErrorsBundle,
                      order: BindOrder = BindOrder.DECLARATION) -> int:
        """Construct every record of a function-level *unit*, then bind them."""
        if unit.record_count:
            self.require(unit.family)
        if _provides(unit):
            self.families.add(unit.family)
        bound = 0
        for dictionary in _populate(self, FUNCTION_TABLES[unit.family], unit, errors):
            bound += dictionary.bind_all(self, errors, unit.origin,
                                         _bind_order(dictionary, order))
        return bound

    def __repr__(self) -> str:
        return f"CFunction({self.qualified_name!r})"


# ═══════════════════════════════════════════════════════════════════
#  APPLICATION
# ═══════════════════════════════════════════════════════════════════

@dataclass
class DomainStats:
    constructed: int = 0
    bound: int = 0
    size: int = 0
    bindable: bool = False

    def add(self, dictionary: IndexedDictionary) -> None:
        self.constructed += dictionary.constructed
        self.bound += dictionary.bound
        self.size += len(dictionary)
        if any(isinstance(v, Bindable) for v in dictionary.values()):
            self.bindable = True


class CApplication:
    """All translation units found below one analysis directory.

    Parameters
    ----------
    path : Path
        The analysis directory.
    options : ReadOptions, optional
        Defaults to :meth:`ReadOptions.from_env`.
    progress : ProgressTracker, optional
        Progress sink; a silent tracker is used when omitted.
    """

    def __init__(
        self,
        path: Path,
        options: Optional[ReadOptions] = None,
        progress: Optional[ProgressTracker] = None,
        reader: Optional[UnitReader] = None,
    ) -> None:
        self.path = Path(path)
        self.options = options if options is not None else ReadOptions.from_env()
        self.progress = progress if progress is not None else ProgressTracker()
        self.reader = reader if reader is not None else UnitReader()
        self.layout = AnalysisLayout(self.path)
        self.errors = ErrorsBundle()
        self.files: Dict[str, CFile] = {}

    # ----- lookup ------------------------------------------------------------

    @property
    def cfiles(self) -> List[CFile]:
        return [self.files[name] for name in sorted(self.files)]

    def get_cfile(self, name: str) -> Optional[CFile]:
        return self.files.get(name)

    def get_cfile_strictly(self, name: str) -> CFile:
        cfile = self.files.get(name)
        if cfile is None:
            raise MissingReferenceError(Domain.CFILE, name)
        return cfile

    def get_cfunction_strictly(self, filename: str, fname: str) -> CFunction:
        fn = self.get_cfile_strictly(filename).get_function(fname)
        if fn is None:
            raise MissingReferenceError(Domain.FUNCTION, f"{filename}:{fname}")
        return fn

    def functions(self) -> List[CFunction]:
        return [
            cfile.functions[name]
            for cfile in self.cfiles for name in sorted(cfile.functions)
        ]

    def stats(self) -> Dict[Domain, DomainStats]:
        """Constructed / bound / kept counts per domain over every unit."""
        result: Dict[Domain, DomainStats] = {}
        for cfile in self.cfiles:
            owners: List[Any] = [cfile] + [cfile.functions[n] for n in sorted(cfile.functions)]
            for owner in owners:
                for domain, dictionary in owner.dictionaries().items():
                    result.setdefault(domain, DomainStats()).add(dictionary)
            for fn in owners[1:]:
                for dictionary in (fn.formals, fn.locals):
                    result.setdefault(Domain.VARINFO, DomainStats()).add(dictionary)
        return result

    # ----- reading -------------------------------------------------------------

    def read(self) -> ErrorsBundle:
        """Read every family file; return the accumulated errors."""
        started = time.perf_counter()
        order = self.options.bind_order

        for family in FILE_STAGE:
            self._read_family(family, self._register_file_unit)

        for cfile in self.cfiles:
            self._safely(cfile.name, cfile.bind, self.errors, order)

        for family in FUNCTION_STAGE:
            self._read_family(family, self._register_function_unit)

        _log.info("read %d file(s), %d function(s) in %.2fs with %d error(s)",
                  len(self.files), len(self.functions()),
                  time.perf_counter() - started, len(self.errors))
        return self.errors

    def _read_family(self, family: Family, register: Callable[[UnitFile], Any]) -> None:
        paths = self.layout.files(family)
        with self.progress.subtask(family.weight, family.label, steps=len(paths)) as task:
            if not paths:
                self.errors.add_error(str(self.path), f"no {family.label} files found")
                return
            for unit in self._load(family, paths):
                for message in unit.rejected:
                    self.errors.add_error(unit.origin, message)
                self._safely(unit.origin, register, unit)
                task.advance()

    def _load(self, family: Family, paths: List[Path]) -> List[UnitFile]:
        """Deserialize *paths*, on a thread pool unless reading sequentially.

        Results come back in path order whatever the completion order.
        """
        def load_one(path: Path) -> Optional[UnitFile]:
            try:
                return self.reader.read(path, family)
            except CAnalysisError as exc:
                self.errors.add_exception(str(path), exc)
                return None

        if self.options.sequential or len(paths) < 2:
            loaded = [load_one(p) for p in paths]
        else:
            with ThreadPoolExecutor(max_workers=self.options.max_workers,
                                    thread_name_prefix="canalysis") as pool:
                loaded = list(pool.map(load_one, paths))
        return [unit for unit in loaded if unit is not None]

    def _cfile_for(self, unit: UnitFile) -> CFile:
        """The translation unit *unit* belongs to; without a CFILE file it has none."""
        cfile = self.files.get(unit.source_filename)
        if cfile is None:
            raise MissingFamilyError(unit.source_filename, Family.CFILE, needed_by=unit.family)
        return cfile

    def _register_file_unit(self, unit: UnitFile) -> None:
        if unit.family is Family.CFILE:
            cfile = self.files.get(unit.source_filename)
            if cfile is None:
                cfile = self.files[unit.source_filename] = CFile(self, unit.source_filename)
        else:
            cfile = self._cfile_for(unit)
        cfile.load(unit, self.errors)

    def _register_function_unit(self, unit: UnitFile) -> None:
        if unit.family in (Family.PPO, Family.SPO):
            fn = self.get_cfunction_strictly(unit.source_filename, unit.function_name)
        else:
            cfile = self._cfile_for(unit)
            if unit.record_count:
                cfile.require(unit.family)
            fn = cfile.function(unit.function_name)
        fn.load_and_bind(unit, self.errors, self.options.bind_order)

    def _safely(self, origin: str, action: Callable[..., Any], *args: Any) -> Any:
        try:
            return action(*args)
        except CAnalysisError as exc:
            self.errors.add_exception(origin, exc)
            return None

    def __repr__(self) -> str:
        return f"CApplication({str(self.path)!r}, {len(self.files)} file(s))"
