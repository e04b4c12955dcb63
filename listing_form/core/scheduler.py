"""Timer and worker primitives used by the autocomplete controller."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], Any]) -> Cancellable: ...

    def submit(self, fn: Callable[..., Any], *args: Any) -> None: ...

    def shutdown(self) -> None: ...


class ThreadingScheduler:
    """Debounce timers on ``threading.Timer``, fetches on a small thread pool."""

    def __init__(self, max_workers: int = 2) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="suggestions")

    def call_later(self, delay: float, callback: Callable[[], Any]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        self._executor.submit(_run_logged, fn, *args)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def _run_logged(fn: Callable[..., Any], *args: Any) -> None:
    try:
        fn(*args)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Background task failed: %s", exc)
