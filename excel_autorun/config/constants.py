from __future__ import annotations

from pathlib import Path

APP_TITLE = "Excel Autorun"

EXCEL_PROG_ID = "Excel.Application"
EXCEL_PROCESS_NAME = "EXCEL.EXE"

# Completion polling (seconds). The tick is fixed; only the ceiling is tunable.
POLL_INTERVAL_S = 10
DEFAULT_MAX_WAIT_S = 1800

# Pause between closing the workbook and quitting Excel.
SETTLE_DELAY_S = 2

# How long psutil waits for a killed process to disappear.
KILL_WAIT_S = 5

LOG_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

SETTINGS_PATH = Path.cwd() / "settings.json"

# HRESULTs returned by CoCreateInstance when the ProgID is not registered.
CO_E_CLASSSTRING = -2147221005
REGDB_E_CLASSNOTREG = -2147221164
NOT_INSTALLED_HRESULTS = (CO_E_CLASSSTRING, REGDB_E_CLASSNOTREG)

# Excel answers these while a macro keeps its message loop busy.
RPC_E_CALL_REJECTED = -2147418111
RPC_E_SERVERCALL_RETRYLATER = -2147417846
BUSY_HRESULTS = (RPC_E_CALL_REJECTED, RPC_E_SERVERCALL_RETRYLATER)
