"""ArtifactCache: isolated per-run working directories, reclaimed by age."""

from __future__ import annotations

import logging
import os
import shutil
import time
import uuid
from datetime import datetime
from pathlib import Path

from docloom.types.documents import RunArtifactDirectory

logger = logging.getLogger(__name__)

RETENTION_SECONDS = 24 * 3600


class ArtifactCache:
    """Owns a cache root holding one directory per agent run.

    Directory names combine the agent name, a timestamp, the process id and
    a random suffix, so concurrent runs of the same agent never collide.
    Nothing is reference-counted: :meth:`clean` removes directories purely by
    modification time.
    """

    def __init__(self, root: Path, *, max_age_seconds: float = RETENTION_SECONDS) -> None:
        self._root = Path(root)
        self._max_age = max_age_seconds

    @property
    def root(self) -> Path:
        return self._root

    @property
    def max_age_seconds(self) -> float:
        return self._max_age

    def create_run_directory(self, agent_name: str) -> RunArtifactDirectory:
        """Create and return a fresh run directory for *agent_name*."""
        created_at = datetime.now()
        pid = os.getpid()
        name = (
            f"{_safe_name(agent_name)}-{created_at:%Y%m%d-%H%M%S}-{pid}-{uuid.uuid4().hex[:8]}"
        )
        path = self._root / name
        path.mkdir(parents=True, exist_ok=False)
        logger.debug("Created run directory %s", path)
        return RunArtifactDirectory(path=path, created_at=created_at, agent_name=agent_name, pid=pid)

    def list_runs(self) -> list[Path]:
        """Existing run directories, oldest first."""
        if not self._root.exists():
            return []
        runs = [p for p in self._root.iterdir() if p.is_dir()]
        return sorted(runs, key=_mtime)

    def clean(self, now: float | None = None) -> int:
        """Remove run directories older than the retention window.

        Best effort: a directory that cannot be stat'ed or removed is logged
        and skipped.  Returns the number of directories removed.
        """
        if not self._root.exists():
            return 0

        cutoff = (now if now is not None else time.time()) - self._max_age
        removed = 0
        for entry in self._root.iterdir():
            try:
                if not entry.is_dir() or entry.stat().st_mtime >= cutoff:
                    continue
                shutil.rmtree(entry)
                removed += 1
            except OSError as exc:
                logger.debug("Could not remove cache entry %s: %s", entry, exc)
        if removed:
            logger.info("Removed %d expired run directories from %s", removed, self._root)
        return removed


def _safe_name(name: str) -> str:
    cleaned = "".join(c if c.isalnum() or c in "-_." else "_" for c in name)
    return cleaned or "agent"


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0
