"""Command dispatch: optimistic state, one request, authoritative state."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future

from dynctl.core.errors import DeviceNotFoundError, ResolutionError
from dynctl.core.executor import RequestExecutor
from dynctl.core.kinds import KindBehavior, behavior_for, validate_level
from dynctl.core.model import Device, DeviceKind, Dispatch, Failure, FailureReason, Intent, Outcome
from dynctl.core.registry import Registry

LOGGER = logging.getLogger(__name__)

FollowUp = Callable[[str], object]


class CommandDispatcher:
    def __init__(
        self,
        registry: Registry,
        executor: RequestExecutor,
        pool: Executor,
        *,
        follow_up: FollowUp | None = None,
        follow_up_delay_s: float = 0.1,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.pool = pool
        self.follow_up = follow_up
        self.follow_up_delay_s = follow_up_delay_s
        self._timers_lock = threading.Lock()
        self._timers: dict[str, set[threading.Timer]] = {}

    def dispatch(self, device_id: str, intent: Intent) -> Dispatch:
        """Apply the optimistic update and send the request in the background.

        Raises for unknown devices and intents the kind cannot handle. Network
        and URL failures never raise; they end up in the device's error flag.
        The returned outcome resolves to None when no request was needed.
        """
        device = self.registry.require(device_id)
        behavior = behavior_for(device.kind)
        behavior.check_intent(intent)

        if intent.action == Intent.SET_LEVEL:
            self.registry.set_level(device_id, validate_level(intent.value))
        level = self.registry.level(device_id)

        try:
            url = behavior.command_url(device, intent, level)
        except ResolutionError as exc:
            LOGGER.warning("Invalid command URL for %s: %s", device.name, exc)
            failure = Failure(reason=FailureReason.CONNECTION, detail=str(exc))
            snapshot = self.registry.apply(device_id, behavior.after_command(intent, failure)) or device
            return Dispatch(device=snapshot, outcome=_resolved(failure))

        optimistic = behavior.before_command(intent)
        snapshot = device
        if optimistic is not None:
            snapshot = self.registry.apply(device_id, optimistic) or device

        if url is None:
            return Dispatch(device=snapshot, outcome=_resolved(None))

        LOGGER.debug("Sending %s for %s to %s", intent.action, device.name, url)
        try:
            future = self.pool.submit(self._send, device, behavior, intent, url)
        except RuntimeError as exc:
            LOGGER.warning("Cannot send %s for %s: %s", intent.action, device.name, exc)
            failure = Failure(reason=FailureReason.CONNECTION, detail=str(exc))
            snapshot = self.registry.apply(device_id, behavior.after_command(intent, failure)) or snapshot
            return Dispatch(device=snapshot, outcome=_resolved(failure))
        return Dispatch(device=snapshot, outcome=future)

    def _send(self, device: Device, behavior: KindBehavior, intent: Intent, url: str) -> Outcome:
        try:
            outcome = self.executor.execute(url, secure=device.secure, credentials=device.credentials)
        except Exception as exc:
            LOGGER.exception("Command %s for %s failed unexpectedly", intent.action, device.name)
            outcome = Failure(reason=FailureReason.CONNECTION, detail=f"{type(exc).__name__}: {exc}")
        if isinstance(outcome, Failure):
            LOGGER.warning("Command %s for %s failed: %s", intent.action, device.name, outcome.detail)
        else:
            LOGGER.debug("Command %s for %s -> %s", intent.action, device.name, outcome.status_code)
        self.registry.apply(device.id, behavior.after_command(intent, outcome))
        if device.kind is DeviceKind.TOGGLE and self.follow_up is not None:
            self._schedule(device.id, self.follow_up_delay_s, lambda: self.follow_up(device.id))
        return outcome

    def pulse(self, device_id: str, delay_s: float) -> Dispatch:
        """Pulse on now, end the pulse after ``delay_s`` unless cancelled or deleted."""
        dispatched = self.dispatch(device_id, Intent.pulse_on())
        self._schedule(device_id, delay_s, lambda: self._pulse_end(device_id))
        return dispatched

    def _pulse_end(self, device_id: str) -> None:
        try:
            self.dispatch(device_id, Intent.pulse_end())
        except DeviceNotFoundError:
            LOGGER.debug("Skipping deferred pulse end for removed device %s", device_id)

    def _schedule(self, device_id: str, delay_s: float, action: Callable[[], object]) -> None:
        def _fire() -> None:
            with self._timers_lock:
                pending = self._timers.get(device_id)
                if pending is not None:
                    pending.discard(timer)
                    if not pending:
                        del self._timers[device_id]
            try:
                action()
            except Exception:
                LOGGER.exception("Deferred command for %s failed", device_id)

        timer = threading.Timer(delay_s, _fire)
        timer.daemon = True
        with self._timers_lock:
            self._timers.setdefault(device_id, set()).add(timer)
        timer.start()

    def cancel_pending(self, device_id: str) -> None:
        with self._timers_lock:
            timers = self._timers.pop(device_id, set())
        for timer in timers:
            timer.cancel()

    def shutdown(self) -> None:
        with self._timers_lock:
            timers = [t for pending in self._timers.values() for t in pending]
            self._timers.clear()
        for timer in timers:
            timer.cancel()


def _resolved(outcome: Outcome | None) -> Future[Outcome | None]:
    future: Future[Outcome | None] = Future()
    future.set_result(outcome)
    return future
