# portfolio_engine/utils/concurrency.py
"""
Timeout-bounded execution of blocking provider calls.

Provider SDKs (yfinance, httpx) block the calling thread, and a blocked
call cannot be interrupted from outside. CallRunner therefore starts one
daemon thread per call and waits on it with a timeout:

    - At most max_concurrent calls run at once; the rest queue for a slot
    - A call that misses its timeout is abandoned: it gives its slot back
      immediately, keeps running in its own thread until the provider
      returns, and its result is discarded
    - At most max_abandoned abandoned calls may be outstanding; past that
      new calls fail fast instead of piling up blocked threads

A hung provider call therefore delays its own caller by at most the timeout
and never holds up later or sibling calls.

Usage:
    runner = CallRunner(name="quotes", max_concurrent=4)
    rows = runner.call(10.0, provider.get_batch_quotes, ["AAPL"])

    deadline = start_deadline(10.0)
    futures = {s: runner.submit(source.get_holdings, s) for s in symbols}
    results = {s: runner.wait(f, 10.0, s, deadline=deadline) for s, f in futures.items()}
"""

import contextvars
import itertools
import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, TypeVar

from portfolio_engine.services.exceptions import (
    ExternalCallTimeoutError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ABANDONED = 32


def start_deadline(timeout_seconds: float) -> float:
    """Monotonic deadline timeout_seconds from now."""
    return time.monotonic() + timeout_seconds


def time_left(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())


class CallRunner:
    """
    Runs blocking calls on per-call threads under a timeout.

    Attributes:
        name: Thread name suffix and provider name in errors
        max_concurrent: Calls allowed to run at the same time
        max_abandoned: Timed-out calls allowed to still be running
    """

    def __init__(
            self,
            name: str,
            max_concurrent: int = 4,
            max_abandoned: int = DEFAULT_MAX_ABANDONED,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if max_abandoned < 0:
            raise ValueError("max_abandoned cannot be negative")

        self.name = name
        self.max_concurrent = max_concurrent
        self.max_abandoned = max_abandoned

        self._cond = threading.Condition()
        self._running = 0
        self._abandoned: set[Future] = set()
        self._counter = itertools.count(1)

    @property
    def running_count(self) -> int:
        with self._cond:
            return self._running

    @property
    def abandoned_count(self) -> int:
        with self._cond:
            return len(self._abandoned)

    def submit(self, func: Callable[..., T], *args: Any) -> Future:
        """
        Start func(*args) on its own thread and return its future.

        The caller's context (request correlation ID) is copied into the
        thread so provider log records keep it.
        """
        future: Future = Future()

        with self._cond:
            abandoned = len(self._abandoned)
        if abandoned >= self.max_abandoned:
            logger.error(f"{self.name}: {abandoned} timed-out calls still running; refusing new call")
            future.set_exception(ProviderUnavailableError(
                provider=self.name,
                reason=f"{abandoned} earlier calls have not returned",
            ))
            return future

        context = contextvars.copy_context()
        thread = threading.Thread(
            target=self._run,
            args=(future, context, func, args),
            name=f"portfolio_engine-{self.name}-{next(self._counter)}",
            daemon=True,
        )
        thread.start()
        return future

    def wait(
            self,
            future: Future,
            timeout_seconds: float,
            operation: str,
            deadline: float | None = None,
    ) -> Any:
        """
        Wait for a submitted future.

        With a deadline, waits only for the time left until it, so a set of
        futures started together shares one timeout.

        Raises:
            ExternalCallTimeoutError: If the future does not finish in time
            Exception: Whatever the call itself raised
        """
        wait_seconds = timeout_seconds if deadline is None else time_left(deadline)
        try:
            return future.result(timeout=wait_seconds)
        except FuturesTimeoutError:
            self._abandon(future)
            logger.warning(f"Timeout after {timeout_seconds:g}s waiting for {operation}")
            raise ExternalCallTimeoutError(operation, timeout_seconds)

    def call(self, timeout_seconds: float, func: Callable[..., T], *args: Any) -> T:
        """Run func(*args) and wait at most timeout_seconds."""
        operation = getattr(func, "__qualname__", None) or getattr(func, "__name__", "external call")
        return self.wait(self.submit(func, *args), timeout_seconds, operation)

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _run(self, future: Future, context: contextvars.Context, func: Callable, args: tuple) -> None:
        with self._cond:
            while self._running >= self.max_concurrent and not future.cancelled():
                self._cond.wait()
            if not future.set_running_or_notify_cancel():
                return
            self._running += 1

        try:
            result = context.run(func, *args)
        except BaseException as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        finally:
            with self._cond:
                if future in self._abandoned:
                    self._abandoned.discard(future)
                else:
                    self._running -= 1
                self._cond.notify_all()

    def _abandon(self, future: Future) -> None:
        """Give up on a future: a queued call never starts, a running one frees its slot."""
        with self._cond:
            if not future.cancel() and future.running():
                self._running -= 1
                self._abandoned.add(future)
            self._cond.notify_all()
