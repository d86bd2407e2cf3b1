from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable

from ..config.constants import DEFAULT_MAX_WAIT_S, POLL_INTERVAL_S

logger = logging.getLogger(__name__)


class WaitStatus(str, enum.Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclass
class WaitState:
    elapsed: float = 0
    finished: bool = False
    ticks: int = 0

    def is_terminal(self, ceiling: float) -> bool:
        return self.finished or self.elapsed >= ceiling


@dataclass(frozen=True)
class WaitResult:
    status: WaitStatus
    elapsed: float
    ticks: int

    @property
    def completed(self) -> bool:
        return self.status is WaitStatus.COMPLETED


class CompletionWaiter:
    """Polls Excel's idle flag until it reports idle or the ceiling is hit.

    Excel exposes no "autorun finished" event, so this is a plain poll. The
    idle check happens *after* each sleep: the shortest possible wait is one
    full tick.
    """

    def __init__(
        self,
        is_idle: Callable[[], bool],
        poll_interval: float = POLL_INTERVAL_S,
        max_wait: float = DEFAULT_MAX_WAIT_S,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.is_idle = is_idle
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep

    def wait(self) -> WaitResult:
        state = WaitState()
        logger.info("Waiting for Excel to become idle (tick=%ss, max=%ss).", self.poll_interval, self.max_wait)

        while not state.is_terminal(self.max_wait):
            state.elapsed += self.poll_interval
            state.ticks += 1
            self._sleep(self.poll_interval)
            state.finished = bool(self.is_idle())
            logger.debug("Tick %d: elapsed=%ss idle=%s", state.ticks, state.elapsed, state.finished)

        if state.finished:
            logger.info("Excel idle after %ss.", state.elapsed)
            return WaitResult(WaitStatus.COMPLETED, state.elapsed, state.ticks)

        logger.warning("Timed out after %ss: Excel still busy.", state.elapsed)
        return WaitResult(WaitStatus.TIMED_OUT, state.elapsed, state.ticks)
