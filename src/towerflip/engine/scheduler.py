from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


@dataclass
class PendingTransition:
    due: float
    order: int
    label: str
    action: Callable[[], None]
    # Cosmetic timers (hiding a peek) must not hold up player input.
    blocking: bool = True
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class Scheduler:
    """Ordered queue of deferred turn transitions on a simulated clock.

    Nothing here sleeps: the owner advances `now` (a renderer with its frame
    delta, tests with `run_until_idle`). Tasks run in (due, insertion) order,
    and a task scheduled by a running task with zero delay still runs within
    the same `advance` call.
    """

    now: float = 0.0
    _queue: list[PendingTransition] = field(default_factory=list)
    _counter: int = 0

    def schedule(
        self, delay: float, label: str, action: Callable[[], None], *, blocking: bool = True
    ) -> PendingTransition:
        self._counter += 1
        task = PendingTransition(
            due=self.now + max(0.0, delay),
            order=self._counter,
            label=label,
            action=action,
            blocking=blocking,
        )
        self._queue.append(task)
        self._queue.sort(key=lambda t: (t.due, t.order))
        return task

    def cancel_all(self) -> int:
        n = 0
        for task in self._queue:
            if not task.cancelled:
                task.cancel()
                n += 1
        self._queue.clear()
        return n

    @property
    def idle(self) -> bool:
        return not any(not t.cancelled for t in self._queue)

    @property
    def busy(self) -> bool:
        """True while a turn transition is still pending."""
        return any(t.blocking and not t.cancelled for t in self._queue)

    def pending_labels(self) -> list[str]:
        return [t.label for t in self._queue if not t.cancelled]

    def _pop_due(self, until: float) -> PendingTransition | None:
        while self._queue:
            task = self._queue[0]
            if task.cancelled:
                self._queue.pop(0)
                continue
            if task.due > until:
                return None
            self._queue.pop(0)
            return task
        return None

    def advance(self, dt: float) -> int:
        """Move the clock forward by `dt` seconds, running every task that falls due."""
        target = self.now + max(0.0, dt)
        ran = 0
        while True:
            task = self._pop_due(target)
            if task is None:
                break
            self.now = max(self.now, task.due)
            task.action()
            ran += 1
        self.now = target
        return ran

    def run_until_idle(self, max_tasks: int = 10_000) -> int:
        """Jump the clock from task to task until the queue drains."""
        ran = 0
        while ran < max_tasks:
            task = self._pop_due(float("inf"))
            if task is None:
                break
            self.now = max(self.now, task.due)
            task.action()
            ran += 1
        return ran

    def run_next(self) -> bool:
        task = self._pop_due(float("inf"))
        if task is None:
            return False
        self.now = max(self.now, task.due)
        task.action()
        return True
