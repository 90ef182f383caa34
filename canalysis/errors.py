# canalysis/errors.py
"""
Error types and the error sink for the analysis-results reader.

Error hierarchy
───────────────
┌─────────────────────────────────────────────────────────────────────┐
│  CAnalysisError (base)                                              │
│  ├── UnknownTagError        - tag with no registered variant        │
│  ├── MissingReferenceError  - id/domain lookup found no record      │
│  ├── MissingFamilyError     - unit lacks a required file family     │
│  ├── DuplicateTagError      - registry configured twice (startup)   │
│  ├── AlreadyBoundError      - second bind() on one instance         │
│  ├── MalformedRecordError   - row shape does not match its variant  │
│  └── UnitReadError          - file could not be loaded              │
└─────────────────────────────────────────────────────────────────────┘

Propagation policy
──────────────────
Everything except :class:`DuplicateTagError` is caught at the smallest
granularity (one record, or one file when the file itself is unreadable)
and accumulated in an :class:`ErrorsBundle` as an ``(origin, message)``
pair.  A read never aborts because of bad input.

An empty bundle after a read means every record of every family was
constructed and bound.
"""

from __future__ import annotations

import json
import threading
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, Iterator, List, Optional, Union


@unique
class ErrorKind(Enum):
    """Classification of reader errors."""

    UNKNOWN_TAG = "unknown-tag"
    MISSING_REFERENCE = "missing-reference"
    MISSING_FAMILY = "missing-family"
    DUPLICATE_TAG = "duplicate-tag"
    ALREADY_BOUND = "already-bound"
    MALFORMED_RECORD = "malformed-record"
    UNIT_READ = "unit-read"


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class CAnalysisError(Exception):
    """Base exception for every error raised while reading analysis results."""

    kind: ErrorKind = ErrorKind.MALFORMED_RECORD

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class UnknownTagError(CAnalysisError):
    """A tag token has no registered variant.

    Never raised by :meth:`VariantRegistry.build`, which falls back to the
    domain's unknown variant; kept for callers that want strict dispatch.
    """

    kind = ErrorKind.UNKNOWN_TAG

    def __init__(self, domain: str, tag: str) -> None:
        super().__init__(f"unknown {domain} tag '{tag}'")
        self.domain = domain
        self.tag = tag


class MissingReferenceError(CAnalysisError):
    """A lookup by id found no record in the requested domain."""

    kind = ErrorKind.MISSING_REFERENCE

    def __init__(self, domain: Any, key: Union[int, str]) -> None:
        domain_name = getattr(domain, "value", domain)
        super().__init__(f"missing {domain_name} reference: {key}")
        self.domain = domain
        self.key = key


class MissingFamilyError(CAnalysisError):
    """A unit has no records of a family that another family depends on."""

    kind = ErrorKind.MISSING_FAMILY

    def __init__(self, unit: str, family: Any, needed_by: Any = None) -> None:
        family_name = getattr(family, "label", family)
        message = f"{unit}: no {family_name} records"
        if needed_by is not None:
            message += f" (required by {getattr(needed_by, 'label', needed_by)})"
        super().__init__(message)
        self.unit = unit
        self.family = family
        self.needed_by = needed_by


class DuplicateTagError(CAnalysisError):
    """A tag was registered twice in one registry (configuration error)."""

    kind = ErrorKind.DUPLICATE_TAG

    def __init__(self, domain: str, tag: str) -> None:
        super().__init__(f"tag '{tag}' registered twice in the {domain} registry")
        self.domain = domain
        self.tag = tag


class AlreadyBoundError(CAnalysisError):
    """``bind`` was called on an instance that is no longer unbound."""

    kind = ErrorKind.ALREADY_BOUND

    def __init__(self, domain: Any, index: int) -> None:
        domain_name = getattr(domain, "value", domain)
        super().__init__(f"{domain_name} #{index} is already bound")
        self.domain = domain
        self.index = index


class MalformedRecordError(CAnalysisError):
    """A record does not have the shape its variant expects."""

    kind = ErrorKind.MALFORMED_RECORD


class UnitReadError(CAnalysisError):
    """A family file could not be loaded or deserialized."""

    kind = ErrorKind.UNIT_READ

    def __init__(self, origin: str, reason: str) -> None:
        super().__init__(f"cannot read {origin}: {reason}")
        self.origin = origin
        self.reason = reason


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SINK
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ErrorEntry:
    """One accumulated error: where it came from and what went wrong."""

    origin: str
    message: str

    def __str__(self) -> str:
        return f"{self.origin}: {self.message}"


class ErrorsBundle:
    """Accumulates ``(origin, message)`` pairs without raising.

    Safe to share between worker threads.
    """

    def __init__(self) -> None:
        self._entries: List[ErrorEntry] = []
        self._lock = threading.Lock()

    def add_error(self, origin: str, message: str) -> None:
        with self._lock:
            self._entries.append(ErrorEntry(str(origin), str(message)))

    def add_exception(self, origin: str, exc: BaseException,
                      context: Optional[str] = None) -> None:
        """Record *exc* against *origin*, prefixed with *context* if given."""
        message = str(exc) or type(exc).__name__
        if context:
            message = f"{context}: {message}"
        self.add_error(origin, message)

    @property
    def errors(self) -> List[ErrorEntry]:
        with self._lock:
            return list(self._entries)

    def __iter__(self) -> Iterator[ErrorEntry]:
        return iter(self.errors)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def by_origin(self) -> "OrderedDict[str, List[str]]":
        """Group messages by origin, in first-seen order."""
        grouped: "OrderedDict[str, List[str]]" = OrderedDict()
        for entry in self.errors:
            grouped.setdefault(entry.origin, []).append(entry.message)
        return grouped

    def for_origin(self, origin: str) -> List[str]:
        return [e.message for e in self.errors if e.origin == origin]

    def to_dict(self) -> Dict[str, List[str]]:
        return dict(self.by_origin())

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(
            [{"origin": e.origin, "message": e.message} for e in self.errors],
            indent=indent,
        )
