from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import JobDefinition, Settings

logger = logging.getLogger(__name__)


def _parse_jobs(raw: Any) -> Dict[str, JobDefinition]:
    if not isinstance(raw, dict):
        return {}

    out: Dict[str, JobDefinition] = {}
    for job_id, item in raw.items():
        if not isinstance(item, dict):
            continue

        label = str(item.get("label", job_id))
        workbook_path = str(item.get("workbook_path", ""))
        procedure = str(item.get("procedure", ""))
        args = str(item.get("args", ""))

        if workbook_path.strip():
            out[str(job_id)] = JobDefinition(
                label=label,
                workbook_path=workbook_path,
                procedure=procedure,
                args=args,
            )

    return out


def _parse_folders(raw: Any) -> Optional[List[str]]:
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return None
    return [str(p) for p in raw if str(p).strip()]


def _as_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(raw, (int, float)):
        return bool(raw)
    return default


def _as_float(raw: Any, default: float, allow_zero: bool = False) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if value > 0 or (allow_zero and value == 0):
        return value
    return default


def load_settings(path: Path) -> Settings:
    """Load settings from JSON (missing file -> defaults)."""
    if not path.exists():
        return Settings()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return Settings()

    if not isinstance(data, dict):
        return Settings()

    s = Settings()
    s.log_dir = str(data.get("log_dir") or s.log_dir)
    s.visible = _as_bool(data.get("visible"), s.visible)
    s.save_on_success = _as_bool(data.get("save_on_success"), s.save_on_success)
    s.max_wait = _as_float(data.get("max_wait"), s.max_wait)
    s.settle_delay = _as_float(data.get("settle_delay"), s.settle_delay, allow_zero=True)
    s.required_folders = _parse_folders(data.get("required_folders"))

    s.jobs = _parse_jobs(data.get("jobs"))
    return s


def split_args(raw: str) -> List[str]:
    """'a; b;;c' -> ['a', 'b', 'c']"""
    return [a.strip() for a in str(raw or "").split(";") if a.strip()]
