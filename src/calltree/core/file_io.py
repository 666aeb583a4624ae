"""Safe file I/O utilities.

Provides an atomic whole-file write: data goes to a sibling temp file,
is ``fsync``-ed, then renamed over the target so readers never see a
half-written report.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def safe_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` atomically.

    * Parent directories are created when absent.
    * ``os.fsync`` ensures the data hits disk before the rename, so a
      crash immediately after return won't leave a truncated file.
    * ``os.replace`` is atomic on POSIX and Windows.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
        logger.debug("Wrote %d chars to %s", len(text), path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
