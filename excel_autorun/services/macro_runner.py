from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional

from ..config.models import RunConfig
from ..excel.controller import ExcelController
from ..excel.environment import ensure_folders
from ..excel.errors import AutomationError, CompletionWaitError, RunFailedError, TeardownStepError
from .waiter import CompletionWaiter, WaitStatus

logger = logging.getLogger(__name__)


class Stage(str, enum.Enum):
    INIT = "init"
    FOLDER_READY = "folder_ready"
    LAUNCHED = "launched"
    OPENED = "opened"
    RUNNING = "running"
    WAITING = "waiting"
    FINISHING = "finishing"
    CLOSED = "closed"
    TERMINATED = "terminated"
    RELEASED = "released"
    DONE = "done"


class RunStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class RunOutcome:
    """Result of one run, threaded through every stage of MacroRunner.run."""

    status: RunStatus = RunStatus.PENDING
    stage: Stage = Stage.INIT
    errors: List[BaseException] = field(default_factory=list)
    elapsed: float = 0
    saved: bool = False

    @property
    def errors_occurred(self) -> bool:
        return bool(self.errors)

    @property
    def reason(self) -> Optional[BaseException]:
        return self.errors[0] if self.errors else None

    def record_error(self, exc: BaseException) -> None:
        self.errors.append(exc)
        self.status = RunStatus.FAILED

    def save_decision(self, save_requested: bool) -> bool:
        # A half-applied macro must never be persisted.
        return bool(save_requested) and not self.errors_occurred


class MacroRunner:
    """Orchestrates the full 'open workbook -> run or wait -> tear down' flow.

    Teardown (close, settle, terminate, release) runs exactly once as soon
    as a launch was attempted, whatever happened before it. Each teardown
    step is isolated: a failure is logged and the next step still runs.
    """

    def __init__(
        self,
        controller_factory: Callable[[], Any] = ExcelController,
        prepare: Callable[[Iterable], None] = ensure_folders,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._controller_factory = controller_factory
        self._prepare = prepare
        self._sleep = sleep
        self.last_outcome: Optional[RunOutcome] = None

    def _advance(self, outcome: RunOutcome, stage: Stage) -> None:
        outcome.stage = stage
        logger.info("Stage -> %s", stage.value)

    def run(self, config: RunConfig) -> RunOutcome:
        outcome = RunOutcome()
        self.last_outcome = outcome
        logger.info("Run started for %s", config.document_path)

        # Nothing is running yet: these fail fast with no teardown.
        config.validate()
        self._prepare(config.required_folders)
        self._advance(outcome, Stage.FOLDER_READY)

        controller = self._controller_factory()
        try:
            controller.start()
            self._advance(outcome, Stage.LAUNCHED)

            # Before any workbook is opened, so no prompt can block a headless run.
            controller.set_visibility(config.visible)
            controller.set_alert_suppression(not config.visible)

            controller.open_document(config.document_path)
            self._advance(outcome, Stage.OPENED)

            if config.waits_for_autorun:
                self._wait_for_autorun(controller, config, outcome)
            else:
                self._advance(outcome, Stage.RUNNING)
                controller.run_procedure(config.procedure.strip(), *config.procedure_args)
                outcome.status = RunStatus.COMPLETED

        except AutomationError as e:
            outcome.record_error(e)
            logger.warning("Run failed at stage '%s': %s", outcome.stage.value, e)
            raise
        except Exception as e:
            outcome.record_error(e)
            logger.warning("Run failed at stage '%s': %s", outcome.stage.value, e)
            raise RunFailedError(outcome.stage.value, e) from e
        except BaseException as e:
            outcome.record_error(e)
            logger.warning("Run interrupted at stage '%s'.", outcome.stage.value)
            raise
        finally:
            self._teardown(controller, config, outcome)

        logger.info("Run finished: %s (saved=%s)", outcome.status.value, outcome.saved)
        return outcome

    def _wait_for_autorun(self, controller, config: RunConfig, outcome: RunOutcome) -> None:
        self._advance(outcome, Stage.WAITING)
        waiter = CompletionWaiter(
            controller.is_idle,
            poll_interval=config.poll_interval,
            max_wait=config.max_wait,
            sleep=self._sleep,
        )
        try:
            result = waiter.wait()
        except Exception as e:
            raise CompletionWaitError(e) from e

        outcome.elapsed = result.elapsed
        if result.status is WaitStatus.COMPLETED:
            outcome.status = RunStatus.COMPLETED
        else:
            outcome.status = RunStatus.TIMED_OUT

    # ------------------------------
    # Teardown
    # ------------------------------
    def _guarded(self, step: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except Exception as e:
            err = e if isinstance(e, TeardownStepError) else TeardownStepError(step, e)
            logger.warning("%s", err)
            return None

    def _teardown(self, controller, config: RunConfig, outcome: RunOutcome) -> None:
        self._advance(outcome, Stage.FINISHING)
        save = outcome.save_decision(config.save_on_success)
        if config.save_on_success and not save:
            logger.warning("Discarding workbook changes (run status: %s).", outcome.status.value)

        closed = self._guarded("close", lambda: controller.close_document(save))
        outcome.saved = bool(save and closed)
        self._advance(outcome, Stage.CLOSED)

        try:
            if config.settle_delay > 0:
                self._sleep(config.settle_delay)
        finally:
            self._guarded("terminate", controller.terminate)
            self._advance(outcome, Stage.TERMINATED)

            self._guarded("release", controller.release)
            self._advance(outcome, Stage.RELEASED)

        self._advance(outcome, Stage.DONE)
