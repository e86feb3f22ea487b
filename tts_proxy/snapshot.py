"""Durable, best-effort snapshots of the metric store."""

import contextlib
import json
import os
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Sequence

import structlog

from tts_proxy.errors import SnapshotWriteError
from tts_proxy.metrics import SNAPSHOT_WRITES
from tts_proxy.records import MetricRecord

logger = structlog.get_logger()


class SnapshotWriter:
    """
    Writes the full record sequence to ``<directory>/metrics-YYYY-MM-DD.json``.

    Each flush overwrites that day's file with everything known at flush
    time. Failures are logged and counted, never raised: the next batch
    boundary simply tries again.
    """

    def __init__(self, directory: str, clock: Callable[[], float] = time.time):
        self.directory = Path(directory)
        self._clock = clock

    def path_for_today(self) -> Path:
        today = datetime.fromtimestamp(self._clock(), tz=timezone.utc).date()
        return self.directory / f"metrics-{today.isoformat()}.json"

    def flush(self, records: Sequence[MetricRecord]) -> bool:
        """
        Serialize ``records`` to today's snapshot file.

        Returns:
            True if the file was written, False if there was nothing to
            write or the write failed.
        """
        if not records:
            return False

        try:
            path = self._write(records)
        except SnapshotWriteError as e:
            SNAPSHOT_WRITES.labels(status="error").inc()
            logger.warning("Metrics snapshot failed",
                           path=e.path,
                           error=e.message)
            return False

        SNAPSHOT_WRITES.labels(status="success").inc()
        logger.info("Metrics saved", path=str(path), records=len(records))
        return True

    def _write(self, records: Sequence[MetricRecord]) -> Path:
        path = self.path_for_today()
        payload = json.dumps([record.to_dict() for record in records], indent=2)
        tmp_name: Optional[str] = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=".metrics-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise SnapshotWriteError(str(path), str(e)) from e
        finally:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
        return path
