from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..excel.errors import PathNotFound
from .constants import DEFAULT_MAX_WAIT_S, POLL_INTERVAL_S, SETTLE_DELAY_S


@dataclass
class JobDefinition:
    """A named workbook run declared in settings.json."""

    label: str
    workbook_path: str
    procedure: str = ""
    args: str = ""  # semicolon-separated


@dataclass
class Settings:
    """Defaults stored in settings.json. CLI flags win over these."""

    log_dir: str = ""
    visible: bool = False
    save_on_success: bool = True
    max_wait: float = DEFAULT_MAX_WAIT_S
    settle_delay: float = SETTLE_DELAY_S

    # None -> use the host defaults (systemprofile Desktop folders)
    required_folders: Optional[List[str]] = None

    jobs: Dict[str, JobDefinition] = field(default_factory=dict)


@dataclass(frozen=True)
class RunConfig:
    """Everything one run needs. Built once, never mutated."""

    document_path: Path
    log_dir: Path
    procedure: Optional[str] = None
    procedure_args: Tuple[str, ...] = ()
    save_on_success: bool = True
    visible: bool = False
    max_wait: float = DEFAULT_MAX_WAIT_S
    poll_interval: float = POLL_INTERVAL_S
    settle_delay: float = SETTLE_DELAY_S
    required_folders: Tuple[Path, ...] = ()

    def validate(self) -> None:
        if not Path(self.document_path).is_file():
            raise PathNotFound(self.document_path)
        if self.max_wait <= 0:
            raise ValueError(f"max_wait must be positive, got {self.max_wait}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")

    @property
    def waits_for_autorun(self) -> bool:
        return not (self.procedure or "").strip()
