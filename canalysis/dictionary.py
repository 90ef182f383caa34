"""
canalysis.dictionary
====================

:class:`IndexedDictionary`: the id-keyed store of one domain's instances
for one translation unit (or one function).

Population and binding both isolate failures per record: a record that
cannot be constructed or bound is reported to the error sink against its
origin file and left out of the dictionary; the rest of the table is
unaffected.
"""

from __future__ import annotations

import logging
from typing import (
    Callable,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from .bindable import Bindable, BindState, Domain, LookupContext
from .errors import CAnalysisError, ErrorsBundle, MalformedRecordError, MissingReferenceError
from .records import TaggedRecord

_log = logging.getLogger(__name__)

V = TypeVar("V")


class IndexedDictionary(Generic[V]):
    """Id → instance map for one domain.

    Lookups never mutate the map, and return the same instance on every
    call.
    """

    def __init__(self, domain: Domain) -> None:
        self.domain = domain
        self._entries: Dict[int, V] = {}
        self.constructed = 0
        self.bound = 0

    # ----- lookup ------------------------------------------------------------

    def get(self, index: int) -> V:
        """Strict lookup: raise :class:`MissingReferenceError` on a miss."""
        try:
            return self._entries[index]
        except KeyError:
            raise MissingReferenceError(self.domain, index) from None

    def find(self, index: int) -> Optional[V]:
        return self._entries.get(index)

    def __contains__(self, index: int) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[V]:
        return iter(self.values())

    def ids(self) -> List[int]:
        return sorted(self._entries)

    def values(self) -> List[V]:
        return [self._entries[i] for i in sorted(self._entries)]

    def items(self) -> List[Tuple[int, V]]:
        return [(i, self._entries[i]) for i in sorted(self._entries)]

    # ----- population ----------------------------------------------------------

    def add(self, item: V, index: Optional[int] = None) -> V:
        """Register *item* under *index* (default: ``item.index``)."""
        key = item.index if index is None else index  # type: ignore[attr-defined]
        if key in self._entries:
            raise MalformedRecordError(f"duplicate {self.domain.value} id {key}")
        self._entries[key] = item
        self.constructed += 1
        return item

    def populate(
        self,
        records: Iterable[TaggedRecord],
        build: Callable[[TaggedRecord], V],
        errors: ErrorsBundle,
        origin: str,
        key: Optional[Callable[[V], int]] = None,
    ) -> int:
        """Construct and register every record; return how many succeeded.

        *build* is a registry's ``build`` or a variant class.  *key* selects
        the dictionary key when it differs from the record id.
        """
        added = 0
        for record in records:
            try:
                item = build(record)
                self.add(item, key(item) if key is not None else None)
            except CAnalysisError as exc:
                errors.add_exception(origin, exc, f"{self.domain.value} #{record.index}")
                continue
            added += 1
        return added

    # ----- binding -------------------------------------------------------------

    def bind_all(
        self,
        context: LookupContext,
        errors: ErrorsBundle,
        origin: str,
        order: Optional[Sequence[int]] = None,
    ) -> int:
        """Bind every unbound instance; drop the ones whose bind failed.

        Instances are pruned only after the whole pass, so a failed
        instance stays resolvable for its neighbours during the pass and
        the outcome does not depend on *order*.
        """
        ids = list(order) if order is not None else self.ids()
        bound = 0
        for index in ids:
            item = self._entries.get(index)
            if not isinstance(item, Bindable) or item.state is not BindState.UNBOUND:
                continue
            try:
                item.bind(context)
            except CAnalysisError as exc:
                errors.add_exception(origin, exc, f"{self.domain.value} #{index}")
                continue
            bound += 1
        self.bound += bound
        self.prune_failed()
        return bound

    def prune_failed(self) -> List[int]:
        failed = [
            index for index, item in self._entries.items()
            if isinstance(item, Bindable) and item.state is BindState.FAILED
        ]
        for index in failed:
            del self._entries[index]
        if failed:
            _log.debug("%s: dropped %d instance(s) that failed to bind",
                       self.domain.value, len(failed))
        return failed

    def __repr__(self) -> str:
        return f"IndexedDictionary({self.domain.value}, {len(self)} entries)"
