from __future__ import annotations

from typing import Optional


class AutomationError(Exception):
    """Base class for every failure raised while driving Excel."""


class EnvironmentSetupError(AutomationError):
    def __init__(self, path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot create required folder {path}: {cause}")


class ApplicationUnavailable(AutomationError):
    """Excel (or the COM bridge to it) is not installed on this host."""


class ApplicationLaunchError(AutomationError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Excel failed to start: {cause}")


class DocumentOpenError(AutomationError):
    def __init__(self, path, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(self._describe())

    def _describe(self) -> str:
        return f"Cannot open workbook {self.path}: {self.cause}"


class PathNotFound(DocumentOpenError):
    def _describe(self) -> str:
        return f"Workbook not found: {self.path}"


class MacroExecutionError(AutomationError):
    def __init__(self, name: str, cause: Optional[BaseException] = None):
        self.name = name
        self.cause = cause
        super().__init__(f"Macro '{name}' failed: {cause}")


class CompletionWaitError(AutomationError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Lost track of Excel while waiting for completion: {cause}")


class TeardownStepError(AutomationError):
    """A close/terminate/release step failed. Logged, never escalated."""

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"Teardown step '{step}' failed: {cause}")


class RunFailedError(AutomationError):
    """An unexpected failure, annotated with the lifecycle stage it hit."""

    def __init__(self, stage: str, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Run failed during '{stage}': {cause}")
