"""Report storage backends.

``IReportStorage`` is the protocol.  Two implementations ship:

* ``MemoryReportStorage`` -- for unit tests and embedding.
* ``FileReportStorage`` -- one timestamped XML file per report.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

from calltree.core.errors import ReportNotFoundError
from calltree.core.file_io import safe_write_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class IReportStorage(Protocol):
    """Write-once storage for rendered reports."""

    def save(self, report: str) -> str:
        """Persist ``report`` and return the key it was stored under."""
        ...

    def keys(self) -> list[str]:
        """Return stored keys, newest first."""
        ...

    def load(self, key: str) -> str:
        """Return the report stored under ``key``."""
        ...


# ---------------------------------------------------------------------------
# MemoryReportStorage  (tests)
# ---------------------------------------------------------------------------


class MemoryReportStorage:
    """In-memory implementation -- no persistence, no dependencies."""

    def __init__(self) -> None:
        self._reports: dict[str, str] = {}

    def save(self, report: str) -> str:
        key = f"report-{len(self._reports) + 1}"
        self._reports[key] = report
        return key

    def keys(self) -> list[str]:
        return list(reversed(self._reports))

    def load(self, key: str) -> str:
        try:
            return self._reports[key]
        except KeyError:
            raise ReportNotFoundError(f"no report stored under {key}") from None

    # -- helpers for tests --------------------------------------------------

    @property
    def reports(self) -> list[str]:
        """Stored reports in save order (for assertions)."""
        return list(self._reports.values())

    def clear(self) -> None:
        self._reports.clear()


# ---------------------------------------------------------------------------
# FileReportStorage
# ---------------------------------------------------------------------------


class FileReportStorage:
    """Writes ``<prefix><epoch seconds>[-n]<suffix>`` files into a directory.

    The directory is created on the first save.  Two reports in the same
    second get a numeric suffix rather than overwriting each other.
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        prefix: str = "profile-",
        suffix: str = ".xml",
    ) -> None:
        self._directory = Path(directory)
        self._prefix = prefix
        self._suffix = suffix

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, report: str) -> str:
        path = self._free_path(int(time.time()))
        safe_write_text(path, report)
        logger.info("Profile written to %s", path)
        return path.name

    def keys(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        files = [
            p for p in self._directory.glob(f"{self._prefix}*{self._suffix}")
            if p.is_file()
        ]
        files.sort(key=lambda p: (p.stat().st_mtime, p.name), reverse=True)
        return [p.name for p in files]

    def load(self, key: str) -> str:
        path = self._directory / key
        # Keys are bare file names; refuse anything that escapes the directory.
        if path.parent != self._directory or not path.is_file():
            raise ReportNotFoundError(f"no report stored under {key}")
        return path.read_text(encoding="utf-8")

    # -- internals ----------------------------------------------------------

    def _free_path(self, stamp: int) -> Path:
        base = f"{self._prefix}{stamp}"
        path = self._directory / f"{base}{self._suffix}"
        n = 1
        while path.exists():
            path = self._directory / f"{base}-{n}{self._suffix}"
            n += 1
        return path
