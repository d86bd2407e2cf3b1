from __future__ import annotations

from pathlib import Path

import pytest

from excel_autorun.config.models import RunConfig


class FakeController:
    """Application handle double that records calls and fails on demand."""

    def __init__(self, fail_on=(), idle_after=None, errors=None):
        self.fail_on = set(fail_on)
        self.idle_after = idle_after
        self.errors = errors or {}
        self.calls = []
        self.idle_checks = 0
        self.saved_with = None

    def _maybe_fail(self, step):
        self.calls.append(step)
        if step in self.fail_on:
            raise self.errors.get(step, RuntimeError(f"{step} boom"))

    def start(self):
        self._maybe_fail("start")

    def set_visibility(self, visible):
        self._maybe_fail("set_visibility")

    def set_alert_suppression(self, suppress):
        self._maybe_fail("set_alert_suppression")

    def open_document(self, path):
        self._maybe_fail("open")
        return Path(path).name

    def run_procedure(self, name, *args):
        self._maybe_fail("run")

    def is_idle(self):
        self._maybe_fail("is_idle")
        self.idle_checks += 1
        return self.idle_after is not None and self.idle_checks >= self.idle_after

    def close_document(self, save):
        self.saved_with = save
        self._maybe_fail("close")
        return True

    def terminate(self):
        self._maybe_fail("terminate")

    def release(self):
        self._maybe_fail("release")


@pytest.fixture
def workbook(tmp_path: Path) -> Path:
    p = tmp_path / "report.xlsm"
    p.write_bytes(b"not really a workbook")
    return p


@pytest.fixture
def make_config(workbook: Path, tmp_path: Path):
    def _make(**overrides) -> RunConfig:
        values = dict(
            document_path=workbook,
            log_dir=tmp_path / "logs",
            procedure="Main",
            save_on_success=True,
            max_wait=25,
            poll_interval=10,
            settle_delay=0,
            required_folders=(),
        )
        values.update(overrides)
        return RunConfig(**values)

    return _make
