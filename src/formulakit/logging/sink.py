"""Append-only NDJSON event files under ``<project>/logs``.

``events.ndjson`` receives every event.  Events that belong to a batch run
are also appended to ``batches/<batch_id>.ndjson`` so a single batch can be
read back without scanning the global log.  Reads only look at the last
``tail_bytes`` of a file.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any

from formulakit.logging.events import FormulakitEvent

try:
    import fcntl
except ImportError:  # Windows: files are not locked
    fcntl = None

GLOBAL_LOG = "events.ndjson"
BATCH_DIR = "batches"

DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
MAX_QUERY_LIMIT = 2000

_BATCH_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


def is_valid_batch_id(batch_id: str) -> bool:
    """Batch ids become file names, so only ``[A-Za-z0-9_-]`` is allowed."""
    return bool(_BATCH_ID_RE.match(batch_id))


@contextmanager
def _locked(path: Path, mode: str, *, exclusive: bool) -> Iterator[IO[bytes]]:
    with open(path, mode) as f:
        if fcntl is not None:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
        try:
            yield f
        finally:
            if fcntl is not None:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)


class EventSink:
    """Writer and reader for a project's event files."""

    def __init__(self, project_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.logs_dir = Path(project_dir) / "logs"
        self.fsync = fsync
        self.tail_bytes = tail_bytes or DEFAULT_TAIL_BYTES

    @property
    def global_log(self) -> Path:
        return self.logs_dir / GLOBAL_LOG

    def batch_log(self, batch_id: str) -> Path | None:
        """Path of the log for *batch_id*, or None for an unusable id."""
        if not is_valid_batch_id(batch_id):
            return None
        return self.logs_dir / BATCH_DIR / f"{batch_id}.ndjson"

    def write(self, event: FormulakitEvent, *, batch_id: str | None = None) -> None:
        """Append *event* to the global log and, given a valid id, its batch log."""
        data = (json.dumps(event.model_dump(mode="json"), sort_keys=True) + "\n").encode("utf-8")

        targets = [self.global_log]
        if batch_id:
            path = self.batch_log(batch_id)
            if path is not None:
                targets.append(path)

        for path in targets:
            path.parent.mkdir(parents=True, exist_ok=True)
            with _locked(path, "ab", exclusive=True) as f:
                f.write(data)
                f.flush()
                if self.fsync:
                    os.fsync(f.fileno())

    def query(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        batch_id: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Return matching events, most recent first.

        With *batch_id* the batch's own log is read instead of the global one.
        """
        if batch_id is not None:
            path = self.batch_log(batch_id)
            if path is None:
                return []
        else:
            path = self.global_log

        matches = [
            e for e in self._events(path)
            if (level is None or e.get("level") == level)
            and (event_type is None or e.get("event_type") == event_type)
        ]
        matches.reverse()
        return matches[:min(limit, MAX_QUERY_LIMIT)]

    def read_batch_log(self, batch_id: str) -> list[dict[str, Any]]:
        """All events of one batch, oldest first."""
        path = self.batch_log(batch_id)
        if path is None:
            return []
        return list(self._events(path))

    def list_batches(self) -> list[str]:
        """Ids of batches that have a log, most recently written first."""
        batch_dir = self.logs_dir / BATCH_DIR
        if not batch_dir.is_dir():
            return []
        logs = sorted(batch_dir.glob("*.ndjson"), key=lambda p: p.stat().st_mtime, reverse=True)
        return [p.stem for p in logs]

    def _events(self, path: Path) -> Iterator[dict[str, Any]]:
        """Decode the events in the tail of *path*; malformed lines are skipped."""
        if not path.exists():
            return
        for raw in self._tail(path).splitlines():
            if not raw.strip():
                continue
            try:
                yield json.loads(raw)
            except json.JSONDecodeError:
                continue

    def _tail(self, path: Path) -> bytes:
        with _locked(path, "rb", exclusive=False) as f:
            size = os.fstat(f.fileno()).st_size
            if size <= self.tail_bytes:
                return f.read()
            f.seek(size - self.tail_bytes)
            data = f.read()
        # the first line is cut by the seek
        return data[data.find(b"\n") + 1:]
