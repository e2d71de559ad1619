"""Periodic status polling over the device registry."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future

from dynctl.core.errors import ResolutionError
from dynctl.core.executor import RequestExecutor
from dynctl.core.kinds import behavior_for
from dynctl.core.model import Device, StateUpdate
from dynctl.core.registry import Registry

LOGGER = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``callback`` every ``interval_s`` seconds on a daemon thread."""

    def __init__(self, name: str, interval_s: float, callback: Callable[[], object]) -> None:
        self.name = name
        self.interval_s = interval_s
        self._callback = callback
        self._lock = threading.Lock()
        self._stop: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self, *, immediate: bool = False) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive() and not self._stop.is_set():
                return
            stop = threading.Event()
            self._stop = stop
            self._thread = threading.Thread(
                target=self._run,
                args=(stop, immediate),
                name=self.name,
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._stop is not None:
                self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self, stop: threading.Event, immediate: bool) -> None:
        if immediate:
            self._tick()
        while not stop.wait(self.interval_s):
            self._tick()

    def _tick(self) -> None:
        try:
            self._callback()
        except Exception:
            LOGGER.exception("%s tick failed", self.name)


class PollingScheduler:
    def __init__(
        self,
        registry: Registry,
        executor: RequestExecutor,
        pool: Executor,
        *,
        interval_s: float,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.pool = pool
        self._task = PeriodicTask("dynctl-poller", interval_s, self.sweep)

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self, *, immediate: bool = False) -> None:
        self._task.start(immediate=immediate)

    def stop(self) -> None:
        """Halt future ticks; requests already in flight still apply their results."""
        self._task.stop()

    def sweep(self) -> list[Future[Device | None]]:
        devices = self.registry.snapshot()
        LOGGER.debug("Poll sweep over %d device(s)", len(devices))
        return [self.pool.submit(self.poll_device, device) for device in devices]

    def poll_now(self, device_id: str) -> Future[Device | None] | None:
        device = self.registry.get(device_id)
        if device is None:
            return None
        try:
            return self.pool.submit(self.poll_device, device)
        except RuntimeError:
            LOGGER.debug("Worker pool closed; skipping follow-up poll for %s", device.name)
            return None

    def poll_device(self, device: Device) -> Device | None:
        try:
            update = self._poll(device)
        except Exception:
            LOGGER.exception("Polling %s failed unexpectedly", device.name)
            update = StateUpdate.failed()
        return self.registry.apply(device.id, update)

    def _poll(self, device: Device) -> StateUpdate:
        behavior = behavior_for(device.kind)
        if not behavior.pollable:
            return StateUpdate.idle()

        try:
            url = behavior.status_url(device)
        except ResolutionError as exc:
            LOGGER.warning("Invalid status URL for %s: %s", device.name, exc)
            return StateUpdate.failed()

        LOGGER.debug("Polling status for %s at %s", device.name, url)
        outcome = self.executor.execute(url, secure=device.secure, credentials=device.credentials)
        update = behavior.apply_poll_result(outcome)
        if update.error:
            LOGGER.warning("Status poll failed for %s: %s", device.name, getattr(outcome, "detail", "unreadable body"))
        else:
            LOGGER.debug("Status for %s: on=%s", device.name, update.on)
        return update
