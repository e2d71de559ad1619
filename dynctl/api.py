"""Stable public API for building tooling on top of dynctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from dynctl.core.bridge import StateBridge
from dynctl.core.errors import (
    ConfigImportError,
    CredentialError,
    DecodeError,
    DeviceNotFoundError,
    DeviceValidationError,
    DuplicateDeviceError,
    DynctlError,
    NetworkError,
    ResolutionError,
    StoreError,
    TransportError,
    UnsupportedIntentError,
)
from dynctl.core.model import (
    Credentials,
    Device,
    DeviceKind,
    Dispatch,
    Failure,
    FailureReason,
    Intent,
    Outcome,
    StateUpdate,
    Success,
)
from dynctl.core.service import DeviceService
from dynctl.core.settings import Settings, load_settings
from dynctl.transports.base import HttpResponse, Transport

__all__ = [
    "DynctlError",
    "ConfigImportError",
    "CredentialError",
    "DecodeError",
    "DeviceNotFoundError",
    "DeviceValidationError",
    "DuplicateDeviceError",
    "NetworkError",
    "ResolutionError",
    "StoreError",
    "TransportError",
    "UnsupportedIntentError",
    "Credentials",
    "Device",
    "DeviceKind",
    "Dispatch",
    "Failure",
    "FailureReason",
    "HttpResponse",
    "Intent",
    "Outcome",
    "Settings",
    "StateBridge",
    "StateUpdate",
    "Success",
    "Transport",
    "load_settings",
    "Client",
]


class Client:
    """Public client for interacting with dynctl core capabilities.

    A `Client` instance owns a device registry loaded from the state bridge, a
    request worker pool, the polling scheduler, and the command dispatcher.
    Call `close()` (or use it as a context manager) to stop polling and release
    the worker threads.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        transport: Transport | None = None,
        bridge: StateBridge | None = None,
    ) -> None:
        self._service = DeviceService(settings=settings, transport=transport, bridge=bridge)

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def last_error(self) -> str | None:
        return self._service.last_error

    def list_devices(self) -> list[Device]:
        return self._service.list_devices()

    def get_device(self, device_id: str) -> Device:
        return self._service.get_device(device_id)

    def find_device(self, ref: str) -> Device:
        return self._service.find_device(ref)

    def level(self, device_id: str) -> int:
        return self._service.level(device_id)

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
        return self._service.add_device(
            name,
            url,
            kind,
            secure=secure,
            login=login,
            password=password,
        )

    def update_device(self, device_id: str, **changes: object) -> Device:
        return self._service.update_device(device_id, **changes)  # type: ignore[arg-type]

    def delete_device(self, device_id: str) -> bool:
        return self._service.delete_device(device_id)

    def import_from(self, url: str, *, replace: bool = False) -> list[Device]:
        return self._service.import_from(url, replace=replace)

    def press(self, device_id: str) -> Dispatch:
        return self._service.press(device_id)

    def release(self, device_id: str) -> Dispatch:
        return self._service.release(device_id)

    def pulse(self, device_id: str) -> Dispatch:
        return self._service.pulse(device_id)

    def switch(self, device_id: str, on: bool) -> Dispatch:
        return self._service.switch(device_id, on)

    def set_level(self, device_id: str, value: int) -> Dispatch:
        return self._service.set_level(device_id, value)

    def refresh(self, timeout: float | None = None) -> list[Device]:
        return self._service.refresh(timeout=timeout)

    def start_polling(self, *, immediate: bool = False) -> None:
        self._service.start(immediate=immediate)

    def stop_polling(self) -> None:
        self._service.stop()

    def close(self) -> None:
        self._service.close()
