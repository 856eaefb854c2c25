"""Background event loop that owns all FX service state."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackgroundLoop:
    """Runs one asyncio loop in a daemon thread.

    Synchronous callers (Flask views, CLI commands, scheduler jobs) submit
    coroutines with :meth:`run`; every coroutine executes on the same loop, so
    the cache and the service are only ever mutated from one thread.
    """

    def __init__(self, name: str = "fx-loop") -> None:
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            loop = asyncio.new_event_loop()
            ready = threading.Event()

            def _serve() -> None:
                asyncio.set_event_loop(loop)
                loop.call_soon(ready.set)
                loop.run_forever()
                loop.close()

            thread = threading.Thread(target=_serve, name=self._name, daemon=True)
            thread.start()
            ready.wait()
            self._loop = loop
            self._thread = thread
            logger.debug("Started FX event loop thread %s", self._name)

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run ``coro`` on the loop and block until it finishes.

        Raises:
            TimeoutError: If ``timeout`` elapses; the coroutine is cancelled.
        """

        if not self.running:
            self.start()
        assert self._loop is not None
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise TimeoutError(f"FX operation did not finish within {timeout}s") from exc

    def stop(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            if loop is None or thread is None:
                return
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=5)
            self._loop = None
            self._thread = None
