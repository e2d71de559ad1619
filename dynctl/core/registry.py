"""Thread-safe ordered device registry.

Every mutation goes through one lock. Callers only ever see copies of the
stored records, and transient state changes arrive as ``StateUpdate`` values
through :meth:`Registry.apply`, so concurrent pollers and command workers
cannot interleave writes to the same record.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable, Iterable

from dynctl.core.errors import DeviceNotFoundError, DuplicateDeviceError
from dynctl.core.model import Device, DeviceKind, StateUpdate

LOGGER = logging.getLogger(__name__)

ChangeListener = Callable[[list[Device]], None]


def _copy(device: Device) -> Device:
    return dataclasses.replace(device)


def merge_state(device: Device, update: StateUpdate) -> None:
    if update.error:
        device.error = True
        device.on = False
        device.pressed = False
        return
    if update.error is not None:
        device.error = False
    if update.on is not None:
        device.on = update.on
    if update.pressed is not None:
        device.pressed = update.pressed
    if device.error or device.kind in (DeviceKind.PUSH, DeviceKind.BUTTON):
        device.on = False


class Registry:
    def __init__(self, devices: Iterable[Device] = ()) -> None:
        self._lock = threading.RLock()
        self._devices: list[Device] = []
        self._levels: dict[str, int] = {}
        self._name_index: dict[str, str] = {}
        self._listener: ChangeListener | None = None
        self._replace(devices)

    def set_listener(self, listener: ChangeListener | None) -> None:
        with self._lock:
            self._listener = listener

    def _replace(self, devices: Iterable[Device]) -> None:
        fresh: list[Device] = []
        seen: set[str] = set()
        for device in devices:
            if device.id in seen:
                raise DuplicateDeviceError(f"Device id '{device.id}' appears more than once")
            seen.add(device.id)
            fresh.append(_copy(device))
        self._devices = fresh
        self._levels = {}
        self._reindex()

    def _reindex(self) -> None:
        index: dict[str, str] = {}
        for device in self._devices:
            index.setdefault(device.name, device.id)
        self._name_index = index

    def _find(self, device_id: str) -> Device | None:
        for device in self._devices:
            if device.id == device_id:
                return device
        return None

    def _changed(self) -> None:
        self._reindex()
        if self._listener is None:
            return
        try:
            self._listener([_copy(d) for d in self._devices])
        except Exception:
            LOGGER.exception("Registry change listener failed")

    def load(self, devices: Iterable[Device]) -> None:
        """Replace contents without notifying the listener (startup path)."""
        with self._lock:
            self._replace(devices)

    def snapshot(self) -> list[Device]:
        with self._lock:
            return [_copy(d) for d in self._devices]

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def get(self, device_id: str) -> Device | None:
        with self._lock:
            device = self._find(device_id)
            return _copy(device) if device else None

    def require(self, device_id: str) -> Device:
        device = self.get(device_id)
        if device is None:
            raise DeviceNotFoundError(f"No device with id '{device_id}'")
        return device

    def find_by_name(self, name: str) -> Device | None:
        """First device in registry order with exactly this name."""
        with self._lock:
            device_id = self._name_index.get(name)
            if device_id is None:
                return None
            return self.get(device_id)

    def add(self, device: Device) -> Device:
        return self.add_many([device])[0]

    def add_many(self, devices: Iterable[Device]) -> list[Device]:
        with self._lock:
            incoming = [_copy(d) for d in devices]
            ids = {d.id for d in self._devices}
            for device in incoming:
                if device.id in ids:
                    raise DuplicateDeviceError(f"Device id '{device.id}' is already registered")
                ids.add(device.id)
            self._devices.extend(incoming)
            self._changed()
            return [_copy(d) for d in incoming]

    def replace_all(self, devices: Iterable[Device]) -> None:
        with self._lock:
            self._replace(devices)
            self._changed()

    def update(self, device: Device) -> Device:
        with self._lock:
            for index, current in enumerate(self._devices):
                if current.id == device.id:
                    self._devices[index] = _copy(device)
                    if device.kind is not DeviceKind.LED:
                        self._levels.pop(device.id, None)
                    self._changed()
                    return _copy(device)
        raise DeviceNotFoundError(f"No device with id '{device.id}'")

    def delete(self, device_id: str) -> bool:
        with self._lock:
            before = len(self._devices)
            self._devices = [d for d in self._devices if d.id != device_id]
            self._levels.pop(device_id, None)
            if len(self._devices) == before:
                return False
            self._changed()
            return True

    def apply(self, device_id: str, update: StateUpdate) -> Device | None:
        """Merge a transient-state update; returns None if the device is gone."""
        with self._lock:
            device = self._find(device_id)
            if device is None:
                LOGGER.debug("Discarding state update for removed device %s", device_id)
                return None
            before = (device.on, device.error, device.pressed)
            merge_state(device, update)
            if (device.on, device.error, device.pressed) != before:
                self._changed()
            return _copy(device)

    def level(self, device_id: str) -> int:
        with self._lock:
            return self._levels.get(device_id, 0)

    def set_level(self, device_id: str, value: int) -> None:
        with self._lock:
            if self._find(device_id) is None:
                raise DeviceNotFoundError(f"No device with id '{device_id}'")
            self._levels[device_id] = value
