"""Fire-and-forget persistence for edits that must not wait on storage."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistenceFailure:
    """A background persistence call that raised."""

    label: str
    error: BaseException


@dataclass(frozen=True)
class PersistenceOutcome:
    """Result of an awaited persistence call whose failure is not fatal."""

    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PersistenceScheduler:
    """Run persistence coroutines as background tasks on the running loop.

    Failures are logged and recorded in :attr:`failures`; they are never
    retried. Completions are not ordered, so two saves of the same payload
    resolve last-write-wins at the gateway.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task[None]] = set()
        self.failures: List[PersistenceFailure] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(
        self, label: str, operation: Callable[[], Awaitable[Any]]
    ) -> asyncio.Task[None] | None:
        """Start ``operation`` in the background without awaiting it.

        Returns:
            The scheduled task, or ``None`` when no event loop is running, in
            which case the operation is skipped.
        """

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; skipped %s", label)
            return None

        task = loop.create_task(self._run(label, operation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def flush(self) -> None:
        """Wait until every scheduled operation has finished."""

        while self._pending:
            await asyncio.gather(*tuple(self._pending))

    async def _run(self, label: str, operation: Callable[[], Awaitable[Any]]) -> None:
        try:
            await operation()
        except Exception as exc:
            logger.error("Background persistence failed: %s", label, exc_info=exc)
            self.failures.append(PersistenceFailure(label=label, error=exc))
        else:
            logger.debug("Background persistence finished: %s", label)


__all__ = ["PersistenceFailure", "PersistenceOutcome", "PersistenceScheduler"]
