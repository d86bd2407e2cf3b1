from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List

from .errors import EnvironmentSetupError

logger = logging.getLogger(__name__)


def default_required_folders() -> List[Path]:
    """Folders Excel expects when it runs without an interactive desktop.

    Under Task Scheduler (or any non-interactive account) Excel resolves its
    desktop to the systemprofile of the machine. If that Desktop folder is
    missing, ``Workbooks.Open`` fails with an unhelpful COM error.
    """
    windir = os.environ.get("WINDIR") or os.environ.get("SystemRoot")
    if not windir:
        return []

    folders = [Path(windir) / "System32" / "config" / "systemprofile" / "Desktop"]

    # 32-bit Office on 64-bit Windows looks here instead.
    wow64 = Path(windir) / "SysWOW64"
    if wow64.is_dir():
        folders.append(wow64 / "config" / "systemprofile" / "Desktop")
    return folders


def ensure_folder(path) -> Path:
    path = Path(path)
    if path.is_dir():
        return path
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise EnvironmentSetupError(path, e) from e
    logger.info("Created required folder %s", path)
    return path


def ensure_folders(paths: Iterable) -> None:
    for p in paths:
        ensure_folder(p)
