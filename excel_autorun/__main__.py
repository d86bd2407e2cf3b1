from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config.constants import DEFAULT_MAX_WAIT_S, POLL_INTERVAL_S, SETTINGS_PATH
from .config.io import load_settings, split_args
from .config.models import RunConfig, Settings
from .excel.environment import default_required_folders
from .excel.errors import AutomationError
from .services.macro_runner import MacroRunner, RunStatus
from .services.run_log import RunLog

logger = logging.getLogger("excel_autorun.cli")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="excel_autorun", description="Open a workbook, run or await its macro, close Excel.")
    p.add_argument("document", nargs="?", default="", help="Workbook path")
    p.add_argument("--job", dest="job_id", default="", help="Job id from settings.json (jobs.<id>)")
    p.add_argument("--list", action="store_true", help="List job ids from settings.json")
    p.add_argument("--settings", default=str(SETTINGS_PATH), help="Path to settings.json")
    p.add_argument("--log-dir", default="", help="Folder for the run log (default: current folder)")
    p.add_argument("--procedure", default="", help="Macro to run; without it, wait for the autorun macro")
    p.add_argument("--args", dest="args", default=None, help="Macro args separated by ';'")
    p.add_argument("--no-save", action="store_true", help="Discard workbook changes even on success")
    p.add_argument("--visible", action="store_true", help="Show Excel and its alerts")
    p.add_argument("--max-wait", type=float, default=None, help=f"Seconds to wait for autorun (default {DEFAULT_MAX_WAIT_S})")
    p.add_argument(
        "--required-folder",
        dest="required_folders",
        action="append",
        default=None,
        help="Folder that must exist before Excel starts (repeatable)",
    )
    p.add_argument("--debug", action="store_true", help="Log every wait tick")
    return p.parse_args(argv)


def build_config(ns: argparse.Namespace, settings: Settings) -> RunConfig:
    """Resolve a RunConfig from CLI overrides, then job, then settings."""
    document = ns.document
    procedure = ns.procedure
    raw_args = ns.args

    if ns.job_id:
        if ns.job_id not in settings.jobs:
            raise KeyError(ns.job_id)
        job = settings.jobs[ns.job_id]
        document = document or job.workbook_path
        procedure = procedure or job.procedure
        if raw_args is None:
            raw_args = job.args

    if ns.required_folders is not None:
        folders = ns.required_folders
    elif settings.required_folders is not None:
        folders = settings.required_folders
    else:
        folders = default_required_folders()

    return RunConfig(
        document_path=Path(document.strip()),
        log_dir=Path(ns.log_dir or settings.log_dir or Path.cwd()),
        procedure=procedure.strip() or None,
        procedure_args=tuple(split_args(raw_args or "")),
        save_on_success=settings.save_on_success and not ns.no_save,
        visible=ns.visible or settings.visible,
        max_wait=ns.max_wait if ns.max_wait is not None else settings.max_wait,
        poll_interval=POLL_INTERVAL_S,
        settle_delay=settings.settle_delay,
        required_folders=tuple(Path(f) for f in folders),
    )


def main(argv: list[str] | None = None) -> int:
    ns = _parse_args(list(argv) if argv is not None else sys.argv[1:])

    settings = load_settings(Path(ns.settings))

    if ns.list:
        if not settings.jobs:
            print("No jobs declared in settings.json under 'jobs'.")
            return 0
        for job_id, job in settings.jobs.items():
            target = f"{job.workbook_path}!{job.procedure}" if job.procedure else f"{job.workbook_path} (autorun)"
            print(f"{job_id}: {job.label} -> {target}")
        return 0

    try:
        config = build_config(ns, settings)
    except KeyError:
        print(f"Unknown job id: {ns.job_id}")
        return 2

    if not str(config.document_path).strip() or str(config.document_path) == ".":
        print("Missing workbook path. Pass it as an argument or use --job.")
        return 2
    if not config.document_path.is_file():
        print(f"Workbook not found: {config.document_path}")
        return 2
    if config.max_wait <= 0:
        print("--max-wait must be positive.")
        return 2

    with RunLog(config.log_dir, config.document_path, level=logging.DEBUG if ns.debug else logging.INFO) as run_log:
        logger.info("Log file: %s", run_log.path)
        try:
            outcome = MacroRunner().run(config)
        except AutomationError as e:
            logger.error("Run failed: %s", e, exc_info=True)
            return 1
        except Exception:
            logger.exception("Unexpected failure")
            return 1

        if outcome.status is RunStatus.TIMED_OUT:
            logger.warning("Workbook did not finish within %ss; Excel was closed anyway.", config.max_wait)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
