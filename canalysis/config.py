"""
canalysis.config
================

Read options.

Defaults can be overridden from the environment:

``CANALYSIS_TEST_MODE``
    ``1`` / ``true`` / ``yes`` forces sequential loading.
``CANALYSIS_WORKERS``
    Upper bound on loader threads.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

_log = logging.getLogger(__name__)

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class BindOrder(enum.Enum):
    """Order in which a dictionary's instances are bound."""

    DECLARATION = "declaration"
    REVERSED = "reversed"


@dataclass
class ReadOptions:
    """How a :class:`~canalysis.model.CApplication` loads its files.

    Attributes
    ----------
    parallel : bool
        Load files of one family on a thread pool.  Registration into the
        dictionaries stays sequential either way.
    max_workers : int or None
        Pool size; ``None`` lets :mod:`concurrent.futures` decide.
    bind_order : BindOrder
        Bind pass order.  The result does not depend on it.
    """

    parallel: bool = True
    max_workers: Optional[int] = None
    bind_order: BindOrder = BindOrder.DECLARATION

    def __post_init__(self) -> None:
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ReadOptions":
        env = os.environ if environ is None else environ
        values = {}
        if env.get("CANALYSIS_TEST_MODE", "").strip().lower() in _TRUTHY:
            values["parallel"] = False
        workers = env.get("CANALYSIS_WORKERS", "").strip()
        if workers:
            try:
                values["max_workers"] = max(int(workers), 1)
            except ValueError:
                _log.warning("ignoring CANALYSIS_WORKERS=%r (not an integer)", workers)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def sequential(self) -> bool:
        return not self.parallel or self.max_workers == 1
