"""
Rotating append-only JSON-lines log.
Rotation renames the live file away before anything new is appended to the
original path, so a reader never sees a truncated file.
"""
import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional
from pingmon.schemas.record import Record

logger = logging.getLogger(__name__)

KEEP_ARCHIVES = 5
_BYTES_PER_MB = 1024 * 1024


class FileSink:
    def __init__(self, log_path, rotation_size_mb: float, keep_archives: int = KEEP_ARCHIVES):
        self.log_path = Path(log_path)
        self.rotation_size_mb = rotation_size_mb
        self.keep_archives = keep_archives

    def ensure_dir(self) -> None:
        log_dir = self.log_path.parent
        if not log_dir.is_dir():
            log_dir.mkdir(parents=True, exist_ok=True)
            logger.debug("Created log directory: %s", log_dir)

    def archives(self) -> List[Path]:
        """Archived logs for this path, newest first."""
        pattern = f"{self.log_path.stem}_*{self.log_path.suffix}"
        archive_name = re.compile(
            re.escape(self.log_path.stem) + r"_\d{8}_\d{6}(_\d+)?" + re.escape(self.log_path.suffix) + "$"
        )
        found = [
            p for p in self.log_path.parent.glob(pattern)
            if p.is_file() and archive_name.match(p.name)
        ]
        return sorted(found, key=lambda p: p.stat().st_mtime, reverse=True)

    def _archive_path(self, now: datetime) -> Path:
        stamp = now.strftime("%Y%m%d_%H%M%S")
        base = f"{self.log_path.stem}_{stamp}"
        candidate = self.log_path.with_name(f"{base}{self.log_path.suffix}")
        n = 1
        while candidate.exists():
            candidate = self.log_path.with_name(f"{base}_{n}{self.log_path.suffix}")
            n += 1
        return candidate

    def rotate_if_needed(self, now: Optional[datetime] = None) -> Optional[Path]:
        """Archive the live log once it reaches the size threshold.

        Returns the archive path when a rotation happened.
        """
        try:
            size_bytes = self.log_path.stat().st_size
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cannot stat log file %s: %s", self.log_path, e)
            return None

        if size_bytes < self.rotation_size_mb * _BYTES_PER_MB:
            return None

        archive = self._archive_path(now or datetime.now())
        try:
            os.replace(self.log_path, archive)
        except OSError as e:
            logger.warning("Log rotation failed for %s: %s", self.log_path, e)
            return None
        logger.warning("Rotated log file (Size: %.1fMB) to %s", size_bytes / _BYTES_PER_MB, archive.name)

        self._prune_archives()
        return archive

    def _prune_archives(self) -> None:
        for old in self.archives()[self.keep_archives:]:
            try:
                old.unlink()
                logger.debug("Removed old log: %s", old)
            except OSError as e:
                logger.warning("Could not remove old log %s: %s", old, e)

    def write(self, records: Iterable[Record]) -> bool:
        """Append one JSON line per record. Returns False if any record was lost."""
        try:
            self.ensure_dir()
            fh = open(self.log_path, "a", encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot open log file %s: %s", self.log_path, e)
            return False

        ok = True
        with fh:
            for record in records:
                try:
                    fh.write(record.to_json() + "\n")
                except (OSError, ValueError) as e:
                    logger.warning("Failed to write record for %s: %s", record.hostname, e)
                    ok = False
        return ok
