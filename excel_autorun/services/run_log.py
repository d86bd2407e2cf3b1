from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..config.constants import LOG_FORMAT, LOG_TIMESTAMP_FORMAT

PACKAGE_LOGGER = "excel_autorun"


def _open_exclusive(log_dir: Path, stem: str, stamp: str) -> logging.FileHandler:
    """FileHandler on a brand-new file. Existing logs are never reused."""
    n = 0
    while True:
        suffix = f"_{n}" if n else ""
        path = log_dir / f"{stem}_{stamp}{suffix}.log"
        try:
            return logging.FileHandler(path, mode="x", encoding="utf-8")
        except FileExistsError:
            n += 1


class RunLog:
    """One append-only log artifact per run, mirrored to stdout."""

    def __init__(self, log_dir, document_path, now: Optional[datetime] = None, level: int = logging.INFO):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        stamp = (now or datetime.now()).strftime(LOG_TIMESTAMP_FORMAT)
        stem = Path(document_path).stem or "run"

        formatter = logging.Formatter(LOG_FORMAT)
        self.file_handler = _open_exclusive(self.log_dir, stem, stamp)
        self.file_handler.setFormatter(formatter)

        self.stream_handler = logging.StreamHandler(sys.stdout)
        self.stream_handler.setFormatter(formatter)

        self._handlers: List[logging.Handler] = [self.file_handler, self.stream_handler]
        self._logger = logging.getLogger(PACKAGE_LOGGER)
        self._previous_level = self._logger.level
        self._logger.setLevel(level)
        for h in self._handlers:
            self._logger.addHandler(h)

    @property
    def path(self) -> Path:
        return Path(self.file_handler.baseFilename)

    def close(self) -> None:
        for h in self._handlers:
            self._logger.removeHandler(h)
            h.close()
        self._logger.setLevel(self._previous_level)

    def __enter__(self) -> "RunLog":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
