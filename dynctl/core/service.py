"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, wait

from dynctl.core.bridge import StateBridge
from dynctl.core.config_loader import validate_device
from dynctl.core.dispatcher import CommandDispatcher
from dynctl.core.errors import ConfigImportError, DeviceNotFoundError, DeviceValidationError
from dynctl.core.executor import RequestExecutor
from dynctl.core.importer import ConfigImporter
from dynctl.core.model import Device, DeviceKind, Dispatch, Intent
from dynctl.core.poller import PeriodicTask, PollingScheduler
from dynctl.core.registry import Registry
from dynctl.core.settings import Settings, load_settings
from dynctl.transports.base import Transport

LOGGER = logging.getLogger(__name__)


def _kind(value: DeviceKind | str) -> DeviceKind:
    try:
        return DeviceKind(value)
    except ValueError:
        allowed = ", ".join(k.value for k in DeviceKind)
        raise DeviceValidationError(f"Unknown device type '{value}'. Allowed: {allowed}") from None


def _with_unique_ids(devices: Iterable[Device], taken: Iterable[str] = ()) -> list[Device]:
    seen = set(taken)
    unique: list[Device] = []
    for device in devices:
        if device.id in seen:
            fresh = str(uuid.uuid4())
            LOGGER.warning("Device '%s' reuses id %s; assigning %s", device.name, device.id, fresh)
            device.id = fresh
        seen.add(device.id)
        unique.append(device)
    return unique


class DeviceService:
    def __init__(
        self,
        *,
        settings: Settings | None = None,
        transport: Transport | None = None,
        bridge: StateBridge | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.bridge = bridge or StateBridge.from_paths(
            self.settings.local_store,
            self.settings.shared_store,
        )
        self.registry = Registry()
        self.registry.load(_with_unique_ids(self.bridge.load() or []))
        self.registry.set_listener(self.bridge.save)
        self.last_error: str | None = None

        self.executor = RequestExecutor(transport)
        self.pool = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="dynctl-request",
        )
        self.poller = PollingScheduler(
            self.registry,
            self.executor,
            self.pool,
            interval_s=self.settings.poll_interval_s,
        )
        self.dispatcher = CommandDispatcher(
            self.registry,
            self.executor,
            self.pool,
            follow_up=self.poller.poll_now,
            follow_up_delay_s=self.settings.follow_up_delay_s,
        )
        self.trigger_watcher = PeriodicTask(
            "dynctl-trigger",
            self.settings.trigger_interval_s,
            self.check_trigger,
        )
        self.importer = ConfigImporter(self.executor)

    def __enter__(self) -> DeviceService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Registry management

    def list_devices(self) -> list[Device]:
        return self.registry.snapshot()

    def get_device(self, device_id: str) -> Device:
        return self.registry.require(device_id)

    def find_device(self, ref: str) -> Device:
        """Look a device up by id, then by exact name."""
        device = self.registry.get(ref) or self.registry.find_by_name(ref)
        if device is None:
            raise DeviceNotFoundError(f"No device found matching '{ref}'")
        return device

    def level(self, device_id: str) -> int:
        return self.registry.level(device_id)

    def add_device(
        self,
        name: str,
        url: str,
        kind: DeviceKind | str,
        *,
        secure: bool = False,
        login: str | None = None,
        password: str | None = None,
    ) -> Device:
        device = Device(
            name=name.strip(),
            url=url.strip(),
            kind=_kind(kind),
            secure=secure,
            login=login if secure else None,
            password=password if secure else None,
        )
        return self.registry.add(validate_device(device))

    def update_device(
        self,
        device_id: str,
        *,
        name: str | None = None,
        url: str | None = None,
        kind: DeviceKind | str | None = None,
        secure: bool | None = None,
        login: str | None = None,
        password: str | None = None,
    ) -> Device:
        current = self.registry.require(device_id)
        secure = current.secure if secure is None else secure
        device = Device(
            id=current.id,
            name=current.name if name is None else name.strip(),
            url=current.url if url is None else url.strip(),
            kind=current.kind if kind is None else _kind(kind),
            secure=secure,
            login=(current.login if login is None else login) if secure else None,
            password=(current.password if password is None else password) if secure else None,
            on=current.on,
            error=current.error,
            pressed=current.pressed,
        )
        return self.registry.update(validate_device(device))

    def delete_device(self, device_id: str) -> bool:
        self.dispatcher.cancel_pending(device_id)
        removed = self.registry.delete(device_id)
        if not removed:
            LOGGER.debug("Delete of unknown device %s ignored", device_id)
        return removed

    def import_from(self, url: str, *, replace: bool = False) -> list[Device]:
        try:
            devices = self.importer.fetch(url)
        except ConfigImportError as exc:
            self.last_error = str(exc)
            raise
        self.last_error = None
        for device in devices:
            device.pressed = False
        if replace:
            for current in self.registry.snapshot():
                self.dispatcher.cancel_pending(current.id)
            devices = _with_unique_ids(devices)
            self.registry.replace_all(devices)
            return self.registry.snapshot()
        taken = [d.id for d in self.registry.snapshot()]
        return self.registry.add_many(_with_unique_ids(devices, taken))

    # Commands

    def press(self, device_id: str) -> Dispatch:
        return self.dispatcher.dispatch(device_id, Intent.pulse_on())

    def release(self, device_id: str) -> Dispatch:
        return self.dispatcher.dispatch(device_id, Intent.pulse_off())

    def switch(self, device_id: str, on: bool) -> Dispatch:
        intent = Intent.turn_on() if on else Intent.turn_off()
        return self.dispatcher.dispatch(device_id, intent)

    def set_level(self, device_id: str, value: int) -> Dispatch:
        return self.dispatcher.dispatch(device_id, Intent.set_level(value))

    def pulse(self, device_id: str) -> Dispatch:
        return self.dispatcher.pulse(device_id, self.settings.pulse_delay_s)

    def handle_trigger(self, name: str) -> Dispatch | None:
        device = self.registry.find_by_name(name)
        if device is None:
            LOGGER.warning("External trigger for unknown device name '%s' ignored", name)
            return None
        LOGGER.debug("External trigger for %s (%s)", device.name, device.id)
        return self.pulse(device.id)

    def check_trigger(self) -> Dispatch | None:
        name = self.bridge.take_last_pressed()
        if name is None:
            return None
        return self.handle_trigger(name)

    # Polling lifecycle

    def refresh(self, timeout: float | None = None) -> list[Device]:
        """Run one poll sweep and wait for it to settle."""
        wait(self.poller.sweep(), timeout=timeout)
        return self.registry.snapshot()

    def start(self, *, immediate: bool = False) -> None:
        self.poller.start(immediate=immediate)
        self.trigger_watcher.start()

    def stop(self) -> None:
        self.poller.stop()
        self.trigger_watcher.stop()

    def close(self) -> None:
        self.stop()
        self.dispatcher.shutdown()
        self.pool.shutdown(wait=True)
        self.executor.close()
