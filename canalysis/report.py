"""
canalysis.report
================

Terminal and JSON rendering of a read: per-domain counts and the
accumulated errors grouped by origin file.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, TextIO

from termcolor import colored

from .bindable import Domain
from .errors import ErrorsBundle
from .model import CApplication, DomainStats


class Reporter:
    """Writes read results to *stream*.

    Colour is used only when *color* is true and ``NO_COLOR`` is unset.
    """

    def __init__(self, stream: TextIO, color: bool = True) -> None:
        self.stream = stream
        self.color = color and "NO_COLOR" not in os.environ

    def _c(self, text: str, color: Optional[str] = None,
           attrs: Optional[List[str]] = None) -> str:
        if not self.color:
            return text
        return colored(text, color, attrs=attrs)

    def _line(self, text: str = "") -> None:
        self.stream.write(text + "\n")

    # ----- text ----------------------------------------------------------------

    def summary(self, app: CApplication) -> None:
        stats = app.stats()
        self._line(self._c(f"{app.path}", attrs=["bold"]))
        self._line(f"  {len(app.files)} file(s), {len(app.functions())} function(s)")
        for domain in Domain:
            entry = stats.get(domain)
            if entry is None or entry.constructed == 0:
                continue
            self._line(f"  {domain.value:<16} {self._counts(entry)}")

    def _counts(self, entry: DomainStats) -> str:
        if not entry.bindable:
            return f"{entry.size:>6}"
        text = f"{entry.size:>6}  ({entry.bound}/{entry.constructed} bound)"
        if entry.bound < entry.constructed:
            return self._c(text, "yellow")
        return text

    def errors(self, errors: ErrorsBundle) -> None:
        if errors.is_empty:
            self._line(self._c("no errors", "green", attrs=["bold"]))
            return
        for origin, messages in errors.by_origin().items():
            self._line(self._c(origin, "cyan", attrs=["bold"]))
            for message in messages:
                self._line(f"  {self._c('error', 'red', attrs=['bold'])}: {message}")
        self._line()
        self._line(self._c(f"--- {len(errors)} error(s) ---", "red"))

    def listing(self, title: str, rows: Dict[Any, str]) -> None:
        """Write ``id: text`` rows under *title*; multi-line text is indented."""
        self._line(self._c(title, attrs=["bold"]))
        for key, text in rows.items():
            label = self._c(f"{key}", "blue", attrs=["bold"])
            self._line(f"  {label}: {text.replace(chr(10), chr(10) + '    ')}")

    # ----- json ----------------------------------------------------------------

    def json(self, app: CApplication) -> None:
        self._line(json.dumps(summary_dict(app), indent=2))


def summary_dict(app: CApplication) -> Dict[str, Any]:
    stats = app.stats()
    return {
        "path": str(app.path),
        "files": sorted(app.files),
        "functions": [fn.qualified_name for fn in app.functions()],
        "domains": {
            domain.value: {
                "constructed": entry.constructed,
                "bound": entry.bound,
                "size": entry.size,
            }
            for domain, entry in sorted(stats.items(), key=lambda kv: kv[0].value)
        },
        "errors": [{"origin": e.origin, "message": e.message} for e in app.errors],
    }
