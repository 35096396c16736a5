"""
Debounced validation requests with last-issued-wins ordering.

Each explanation edit cancels the pending timer for its criterion and
starts a fresh one. Requests already sent to the gateway are not
cancelled; instead every edit takes the next sequence number for its
criterion and a response is applied only if its sequence number is
still the latest issued for that criterion.
"""

import asyncio
from typing import Callable, Dict, Optional, Set

from ai.base_provider import ValidationGateway
from core.models import AIAnalysis, ValidationRequest, ValidationStatus
from core.exceptions import GatewayError
from config.constants import VALIDATION_DEBOUNCE_SECONDS, GATEWAY_ERROR_MESSAGE
from config.logging_config import get_logger

logger = get_logger(__name__)


# on_result(criterion_id, analysis)
ResultCallback = Callable[[str, AIAnalysis], None]


class ValidationScheduler:
    """
    Schedules validation requests per criterion.

    Must be used from within a running event loop.

    Usage:
        scheduler = ValidationScheduler(gateway, on_result=apply_verdict)
        scheduler.schedule("crit1", request)   # fires after the debounce delay
        await scheduler.wait_idle()
    """

    def __init__(
        self,
        gateway: ValidationGateway,
        on_result: ResultCallback,
        delay: float = VALIDATION_DEBOUNCE_SECONDS
    ):
        """
        Initialize scheduler.

        Args:
            gateway: Validation gateway to call
            on_result: Called with the verdict of the latest request per criterion
            delay: Debounce delay in seconds
        """
        self.gateway = gateway
        self.on_result = on_result
        self.delay = delay

        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._latest_seq: Dict[str, int] = {}
        self._tasks: Set[asyncio.Task] = set()

    def latest_sequence(self, criterion_id: str) -> int:
        """Latest sequence number issued for a criterion (0 if none)."""
        return self._latest_seq.get(criterion_id, 0)

    def is_pending(self, criterion_id: Optional[str] = None) -> bool:
        """Whether a timer or an in-flight request exists (for one criterion or any)."""
        if criterion_id is None:
            return bool(self._timers) or any(not t.done() for t in self._tasks)
        if criterion_id in self._timers:
            return True
        return any(
            not t.done() and t.get_name() == self._task_name(criterion_id)
            for t in self._tasks
        )

    def _next_sequence(self, criterion_id: str) -> int:
        seq = self._latest_seq.get(criterion_id, 0) + 1
        self._latest_seq[criterion_id] = seq
        return seq

    def _cancel_timer(self, criterion_id: str) -> None:
        timer = self._timers.pop(criterion_id, None)
        if timer is not None:
            timer.cancel()

    @staticmethod
    def _task_name(criterion_id: str) -> str:
        return f"validate:{criterion_id}"

    def schedule(self, criterion_id: str, request: ValidationRequest) -> int:
        """
        Schedule a debounced validation.

        Returns:
            Sequence number assigned to this edit
        """
        self._cancel_timer(criterion_id)
        seq = self._next_sequence(criterion_id)

        loop = asyncio.get_running_loop()
        self._timers[criterion_id] = loop.call_later(
            self.delay, self._fire, criterion_id, seq, request
        )
        return seq

    def request_now(self, criterion_id: str, request: ValidationRequest) -> asyncio.Task:
        """Issue a validation immediately, bypassing the debounce timer."""
        self._cancel_timer(criterion_id)
        seq = self._next_sequence(criterion_id)
        return self._start(criterion_id, seq, request)

    def invalidate(self, criterion_id: str) -> None:
        """
        Make every outstanding request for a criterion stale.

        Used when the explanation is cleared or the score changes.
        """
        self._cancel_timer(criterion_id)
        self._next_sequence(criterion_id)

    def _fire(self, criterion_id: str, seq: int, request: ValidationRequest) -> None:
        self._timers.pop(criterion_id, None)
        self._start(criterion_id, seq, request)

    def _start(self, criterion_id: str, seq: int, request: ValidationRequest) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._run(criterion_id, seq, request),
            name=self._task_name(criterion_id)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, criterion_id: str, seq: int, request: ValidationRequest) -> None:
        try:
            analysis = await self.gateway.validate(request)
        except GatewayError as e:
            logger.error(f"Validation failed for criterion {criterion_id}: {e}")
            analysis = AIAnalysis(status=ValidationStatus.ERROR, error=GATEWAY_ERROR_MESSAGE)
        except Exception as e:
            logger.error(f"Unexpected validation failure for criterion {criterion_id}: {e!r}")
            analysis = AIAnalysis(status=ValidationStatus.ERROR, error=GATEWAY_ERROR_MESSAGE)

        if seq != self._latest_seq.get(criterion_id):
            logger.debug(
                f"Discarding stale verdict for criterion {criterion_id} "
                f"(seq {seq}, latest {self._latest_seq.get(criterion_id)})"
            )
            return

        self.on_result(criterion_id, analysis)

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no request is in flight."""
        while self._timers or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self.delay / 2 if self.delay else 0)

    def cancel_all(self) -> None:
        """Cancel every timer and in-flight request (session reset)."""
        for criterion_id in list(self._timers):
            self._cancel_timer(criterion_id)
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._latest_seq.clear()
