"""Single execution point for toggle requests.

Trigger surfaces run on foreign threads (pynput listener, IPC accept
thread, tray menu) or inside the dispatcher loop itself (portal
Activated signal). None of them call the controller directly: they hand
the request to `request_toggle()`, which schedules it on one asyncio loop
running in a dedicated daemon thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine

from toggle.controller import RecordingController

logger = logging.getLogger("whis.toggle.dispatcher")


class ToggleDispatcher:
    """Owns the event loop that executes toggles and portal coroutines.

    Usage:
        dispatcher = ToggleDispatcher(controller)
        dispatcher.start()
        listener = IpcListener(on_toggle=dispatcher.trigger("ipc"))
    """

    def __init__(self, controller: RecordingController) -> None:
        self.controller = controller
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._ready.clear()
        self._thread = threading.Thread(
            target=self._run_loop, daemon=True, name="ToggleDispatcher"
        )
        self._thread.start()
        self._ready.wait()
        logger.debug("Toggle dispatcher started")

    def _run_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            loop.close()

    def stop(self, timeout: float = 2.0) -> None:
        loop, thread = self._loop, self._thread
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=timeout)
        self._loop = None
        self._thread = None
        logger.debug("Toggle dispatcher stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        """Schedules any coroutine on the dispatcher loop (thread-safe)."""
        if self._loop is None:
            coro.close()
            raise RuntimeError("ToggleDispatcher is not running")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def request_toggle(self, source: str = "unknown") -> Future:
        """Queues one toggle and returns immediately.

        Returns:
            Future resolving to the controller's error message or None
        """
        future = self.submit(self.controller.toggle(source))
        future.add_done_callback(lambda f: self._log_outcome(source, f))
        return future

    def trigger(self, source: str) -> Callable[[], None]:
        """Callback adapter for a trigger surface (hotkey, portal, ipc, tray)."""

        def fire(*_args: Any) -> None:
            self.request_toggle(source)

        return fire

    @staticmethod
    def _log_outcome(source: str, future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(f"Toggle from {source} crashed: {exc!r}")
            return
        error = future.result()
        if error:
            logger.warning(f"Toggle from {source} failed: {error}")


__all__ = ["ToggleDispatcher"]
