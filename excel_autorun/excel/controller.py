from __future__ import annotations

import gc
import logging
import os
from typing import Optional

try:
    import pythoncom
    import pywintypes
    import win32com.client
    import win32process
except Exception:  # pragma: no cover
    pythoncom = None
    pywintypes = None
    win32com = None
    win32process = None

import psutil

from ..config.constants import (
    BUSY_HRESULTS,
    EXCEL_PROCESS_NAME,
    EXCEL_PROG_ID,
    KILL_WAIT_S,
    NOT_INSTALLED_HRESULTS,
)
from .errors import (
    ApplicationLaunchError,
    ApplicationUnavailable,
    DocumentOpenError,
    MacroExecutionError,
    TeardownStepError,
)

logger = logging.getLogger(__name__)


def _hresult(exc: BaseException) -> Optional[int]:
    """Extract the HRESULT from a pywintypes.com_error (first positional arg)."""
    hr = getattr(exc, "hresult", None)
    if hr is None and exc.args and isinstance(exc.args[0], int):
        hr = exc.args[0]
    return hr


def _com_errors() -> tuple:
    if pywintypes is not None:
        return (pywintypes.com_error,)
    return (OSError,)


class ExcelController:
    """Thin wrapper around one dedicated Excel COM instance.

    - starts a private Excel process (DispatchEx, never an existing one)
    - opens exactly one workbook
    - runs macros or reports whether Excel is idle
    - closes, quits and releases, each step safe to repeat
    """

    def __init__(self, process_name: str = EXCEL_PROCESS_NAME):
        self.process_name = process_name
        self.excel = None
        self.workbook = None
        self.excel_pid: Optional[int] = None
        self.visible = False
        self.alerts_suppressed = False
        self._com_initialized = False

    def _ensure_excel(self) -> None:
        if self.excel is None:
            raise RuntimeError("Excel is not running.")

    # ------------------------------
    # Launch
    # ------------------------------
    def start(self) -> None:
        if not pythoncom or not win32com:
            raise ApplicationUnavailable("pywin32 is required to automate Excel (Windows only).")

        # COM objects are thread-affine: initialize on the thread that uses them.
        pythoncom.CoInitialize()
        self._com_initialized = True

        try:
            self.excel = win32com.client.DispatchEx(EXCEL_PROG_ID)
        except _com_errors() as e:
            if _hresult(e) in NOT_INSTALLED_HRESULTS:
                raise ApplicationUnavailable(
                    f"Excel is not installed on this host ({EXCEL_PROG_ID} is not registered)."
                ) from e
            raise ApplicationLaunchError(e) from e
        except Exception as e:
            raise ApplicationLaunchError(e) from e

        try:
            _, pid = win32process.GetWindowThreadProcessId(self.excel.Hwnd)
            self.excel_pid = pid
            logger.info("Excel started (PID=%s).", pid)
        except Exception as e:
            logger.warning("Excel started, PID unknown (%s).", e)

    def set_visibility(self, visible: bool) -> None:
        self._ensure_excel()
        self.excel.Visible = bool(visible)
        self.visible = bool(visible)

    def set_alert_suppression(self, suppress: bool) -> None:
        self._ensure_excel()
        self.excel.DisplayAlerts = not suppress
        if suppress:
            # Best effort: older Excel builds do not expose it
            try:
                self.excel.AskToUpdateLinks = False
            except Exception:
                pass
        self.alerts_suppressed = bool(suppress)

    # ------------------------------
    # Workbook
    # ------------------------------
    def open_document(self, path) -> str:
        self._ensure_excel()
        path = os.path.abspath(str(path))
        try:
            try:
                wb = self.excel.Workbooks.Open(path, UpdateLinks=0)
            except Exception:
                wb = self.excel.Workbooks.Open(path)
        except Exception as e:
            raise DocumentOpenError(path, e) from e

        self.workbook = wb
        logger.info("Workbook opened: %s", path)
        return wb.Name

    def run_procedure(self, name: str, *args) -> None:
        self._ensure_excel()
        name = (name or "").strip()
        if not name:
            raise MacroExecutionError(name, ValueError("empty macro name"))

        attempts = [name]
        if "!" not in name and self.workbook is not None:
            attempts.append(f"'{self.workbook.Name}'!{name}")

        last_err = None
        for m in attempts:
            try:
                self.excel.Application.Run(m, *args)
                logger.info("Macro OK: %s", m)
                return
            except Exception as e:
                logger.debug("Macro attempt %s failed: %s", m, e)
                last_err = e

        raise MacroExecutionError(name, last_err) from last_err

    def is_idle(self) -> bool:
        """Non-blocking: False while Excel is still running automation."""
        self._ensure_excel()
        try:
            return bool(self.excel.Ready)
        except _com_errors() as e:
            if _hresult(e) in BUSY_HRESULTS:
                return False
            raise

    # ------------------------------
    # Teardown
    # ------------------------------
    def close_document(self, save: bool) -> bool:
        if self.workbook is None:
            return True
        try:
            self.workbook.Close(SaveChanges=bool(save))
            logger.info("Workbook closed (%s).", "saved" if save else "changes discarded")
            return True
        except Exception as e:
            logger.warning("%s", TeardownStepError("close", e))
            return False
        finally:
            self.workbook = None

    def terminate(self) -> None:
        if self.excel is None:
            return
        try:
            try:
                self.excel.DisplayAlerts = False
            except Exception:
                pass
            self.excel.Quit()
            logger.info("Excel: quit.")
        except Exception as e:
            logger.warning("Excel did not quit gracefully (%s), killing %s.", e, self.process_name)
            killed = self.kill_processes()
            if not killed:
                raise TeardownStepError("terminate", e) from e
        finally:
            # The document cannot outlive its session.
            self.workbook = None
            self.excel = None

    def kill_processes(self) -> int:
        """Force-kill Excel by process name, limited to our PID when we know it."""
        target = self.process_name.lower()
        victims = []
        for proc in psutil.process_iter(["pid", "name"]):
            name = (proc.info.get("name") or "").lower()
            if name != target:
                continue
            if self.excel_pid is not None and proc.info.get("pid") != self.excel_pid:
                continue
            try:
                proc.kill()
                victims.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.warning("Could not kill PID %s: %s", proc.info.get("pid"), e)

        if victims:
            _, alive = psutil.wait_procs(victims, timeout=KILL_WAIT_S)
            for p in alive:
                logger.warning("PID %s still alive after kill.", p.pid)
            logger.info("Killed %d %s process(es).", len(victims) - len(alive), self.process_name)
        return len(victims)

    def release(self) -> None:
        self.workbook = None
        self.excel = None
        self.excel_pid = None
        # Wrapper objects keep the Excel process pinned until collected.
        gc.collect()
        if self._com_initialized and pythoncom is not None:
            self._com_initialized = False
            pythoncom.CoUninitialize()
