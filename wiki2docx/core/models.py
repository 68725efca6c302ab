from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Article:
    title: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FailedTitle:
    """A title that could not be fetched or written, with a readable cause."""

    title: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RunReport:
    """Aggregated outcome of one pool run.

    Workers only ever append failures (under ``_lock``); successes are derived
    as ``total - failed``. Read the report after the pool has joined.
    """

    total: int
    failures: List[FailedTitle] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_failure(self, title: str, reason: str) -> None:
        with self._lock:
            self.failures.append(FailedTitle(title=title, reason=reason))

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def succeeded(self) -> int:
        return self.total - self.failed

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            failures = [f.to_dict() for f in self.failures]
        return {
            "total": self.total,
            "success": self.total - len(failures),
            "failed": len(failures),
            "failures": failures,
        }
