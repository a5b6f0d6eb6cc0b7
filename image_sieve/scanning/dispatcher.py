import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, TypeVar

from .. import config

T = TypeVar('T')


@dataclass(frozen=True)
class DispatchOutcome:
    launched: int
    completed: int
    partial: bool       # deadline expired before every item ran to completion


class BoundedDispatcher:
    """
    Runs one task per item on a thread pool, never more than `capacity`
    at once.

    A slot is taken from a counting semaphore before each submit and given
    back from the future's done-callback, so a slot is returned whether the
    task succeeded, raised, or was cancelled. When all slots are held the
    launch loop blocks.
    """

    def __init__(self, capacity: int = config.DEFAULT_CAPACITY, deadline: Optional[float] = None):
        """
        Args:
            capacity: Maximum number of tasks in flight.
            deadline: Wall-clock seconds after which no new task is launched
                      and in-flight tasks are abandoned.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        if deadline is not None and deadline < 0:
            raise ValueError(f"deadline must not be negative, got {deadline}")
        self.capacity = capacity
        self.deadline = deadline

    def run(self,
            items: Iterable[T],
            task: Callable[[T], None],
            stop: Optional[threading.Event] = None) -> DispatchOutcome:
        """
        Launches `task(item)` for each item and waits for all of them.

        Args:
            stop: When set, launching ends early. Tasks already running still
                  finish and the outcome is not marked partial.
        """
        slots = threading.Semaphore(self.capacity)
        expires_at = time.monotonic() + self.deadline if self.deadline is not None else None
        futures: List[Future] = []
        partial = False

        executor = ThreadPoolExecutor(max_workers=self.capacity, thread_name_prefix="sieve")
        try:
            for item in items:
                if stop is not None and stop.is_set():
                    break
                if not self._acquire(slots, expires_at):
                    logging.warning(f"Deadline reached after launching {len(futures)} tasks; stopping.")
                    partial = True
                    break
                # A match may have landed while we were blocked on the semaphore
                if stop is not None and stop.is_set():
                    slots.release()
                    break
                try:
                    future = executor.submit(task, item)
                except BaseException:
                    slots.release()
                    raise
                future.add_done_callback(lambda _f: slots.release())
                futures.append(future)

            # Barrier: wait for everything launched, bounded by the deadline if any
            done, not_done = wait(futures, timeout=self._remaining(expires_at))
            if not_done:
                logging.warning(f"Deadline reached with {len(not_done)} tasks still running; abandoning them.")
                partial = True

            for future in done:
                if not future.cancelled() and future.exception() is not None:
                    logging.error(f"Task failed: {future.exception()}")
        finally:
            # On a deadline, don't block on abandoned tasks
            executor.shutdown(wait=not partial, cancel_futures=True)

        return DispatchOutcome(launched=len(futures), completed=len(done), partial=partial)

    def _acquire(self, slots: threading.Semaphore, expires_at: Optional[float]) -> bool:
        if expires_at is None:
            return slots.acquire()
        remaining = expires_at - time.monotonic()
        if remaining <= 0:
            return False
        return slots.acquire(timeout=remaining)

    def _remaining(self, expires_at: Optional[float]) -> Optional[float]:
        if expires_at is None:
            return None
        return max(0.0, expires_at - time.monotonic())
