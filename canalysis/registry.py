"""
canalysis.registry
==================

Tag-driven dispatch from a :class:`~canalysis.records.TaggedRecord` to the
variant class that models it.

One registry exists per domain (types, expressions, lvalues, predicates).
Variant modules populate their registry at import time with the
:meth:`VariantRegistry.variant` decorator, so registering the same tag twice
fails while the package is being imported, never while a file is being read.

Usage
-----
>>> TYPES = VariantRegistry("type", unknown=CTypeUnknown)
>>> @TYPES.variant("tptr")
... class CTypePtr(CType): ...
>>> TYPES.build(make_record(3, ["tptr"], [7]))
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from .errors import DuplicateTagError, MalformedRecordError, UnknownTagError
from .records import TaggedRecord

_log = logging.getLogger(__name__)

V = TypeVar("V")

Constructor = Callable[[TaggedRecord], V]


class VariantRegistry(Generic[V]):
    """Maps a leading tag token to a constructor.

    Constructors only capture the record; they must not look anything up.
    Unknown tags are built with the *unknown* constructor, which keeps the
    tag for diagnostics.
    """

    def __init__(self, domain: str, unknown: Optional[Constructor] = None) -> None:
        self.domain = domain
        self._constructors: Dict[str, Constructor] = {}
        self._unknown = unknown

    def register(self, tag: str, constructor: Constructor) -> None:
        """Register *constructor* under *tag*; a second registration raises."""
        if not tag:
            raise ValueError(f"empty tag in the {self.domain} registry")
        if tag in self._constructors:
            raise DuplicateTagError(self.domain, tag)
        self._constructors[tag] = constructor

    def variant(self, *tags: str) -> Callable:
        """Class decorator: register the decorated class under every tag."""
        def deco(cls):
            for tag in tags:
                self.register(tag, cls)
            return cls
        return deco

    def set_unknown(self, constructor: Constructor) -> None:
        self._unknown = constructor

    def build(self, record: TaggedRecord) -> V:
        """Construct the unbound variant for *record*.

        A record without a leading tag is malformed; it never falls back to
        the unknown variant.
        """
        if not record.tag:
            raise MalformedRecordError("empty tag")
        constructor = self.lookup(record.tag)
        if constructor is None:
            if self._unknown is None:
                raise UnknownTagError(self.domain, record.tag)
            _log.debug("%s #%d: unknown tag '%s'", self.domain, record.index, record.tag)
            constructor = self._unknown
        return constructor(record)

    def lookup(self, tag: str) -> Optional[Constructor]:
        return self._constructors.get(tag)

    def __contains__(self, tag: str) -> bool:
        return tag in self._constructors

    def __len__(self) -> int:
        return len(self._constructors)

    @property
    def tags(self) -> List[str]:
        return sorted(self._constructors)

    def __repr__(self) -> str:
        return f"VariantRegistry({self.domain!r}, {len(self)} tags)"
