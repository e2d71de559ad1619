"""Cross-process state bridge: persisted device list plus trigger signal.

Two JSON key-value scopes are kept. The local scope belongs to this process;
the shared scope is also read and written by external trigger surfaces. Device
lists are written to both and read from the shared scope first.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from dynctl.core.config_loader import decode_devices, encode_devices
from dynctl.core.errors import DeviceValidationError, StoreError
from dynctl.core.model import Device

LOGGER = logging.getLogger(__name__)

DEVICES_KEY = "SavedDevices"
LAST_PRESSED_KEY = "LastDevicePressed"
LOCK_TIMEOUT_S = 5.0


class KeyValueStore:
    """A JSON object on disk, rewritten atomically on every change.

    Read-modify-write cycles hold a lock file next to the store, so writers in
    other processes cannot drop each other's keys.
    """

    def __init__(self, path: Path, *, lock_timeout_s: float = LOCK_TIMEOUT_S) -> None:
        self._path = Path(path)
        self._lock = FileLock(f"{self._path}.lock", timeout=lock_timeout_s)

    @property
    def path(self) -> Path:
        return self._path

    def read_raw(self) -> dict[str, Any]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StoreError(f"Could not read store {self._path}: {exc}") from exc
        except ValueError:
            ts = time.strftime("%Y%m%d-%H%M%S")
            LOGGER.warning("Store %s is corrupt; moving it aside", self._path)
            try:
                os.replace(self._path, f"{self._path}.corrupt.{ts}")
            except OSError:
                LOGGER.warning("Could not move corrupt store %s aside", self._path)
            return {}
        if not isinstance(raw, dict):
            LOGGER.warning("Store %s does not hold an object; ignoring its contents", self._path)
            return {}
        return raw

    def write_raw(self, state: dict[str, Any]) -> None:
        tmp: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f"{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp = f.name
                json.dump(state, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except OSError as exc:
            if tmp is not None and os.path.exists(tmp):
                os.unlink(tmp)
            raise StoreError(f"Could not write store {self._path}: {exc}") from exc

    @contextmanager
    def _locked(self) -> Iterator[None]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire()
        except Timeout as exc:
            raise StoreError(f"Timed out waiting for lock on store {self._path}") from exc
        except OSError as exc:
            raise StoreError(f"Could not lock store {self._path}: {exc}") from exc
        try:
            yield
        finally:
            self._lock.release()

    def get(self, key: str) -> Any:
        if not self._path.parent.is_dir():
            return None
        with self._locked():
            return self.read_raw().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._locked():
            state = self.read_raw()
            state[key] = value
            self.write_raw(state)

    def pop(self, key: str) -> Any:
        with self._locked():
            state = self.read_raw()
            if key not in state:
                return None
            value = state.pop(key)
            self.write_raw(state)
            return value


class StateBridge:
    def __init__(self, local: KeyValueStore, shared: KeyValueStore) -> None:
        self.local = local
        self.shared = shared

    @classmethod
    def from_paths(cls, local_path: Path, shared_path: Path) -> StateBridge:
        return cls(KeyValueStore(local_path), KeyValueStore(shared_path))

    def _load_scope(self, store: KeyValueStore) -> list[Device] | None:
        try:
            raw = store.get(DEVICES_KEY)
        except StoreError as exc:
            LOGGER.warning("%s", exc)
            return None
        if raw is None:
            return None
        try:
            devices = decode_devices(raw, source=str(store.path))
        except DeviceValidationError as exc:
            LOGGER.warning("Ignoring saved devices in %s: %s", store.path, exc)
            return None
        for device in devices:
            device.pressed = False
        return devices

    def load(self) -> list[Device] | None:
        """Shared scope first, then local; None when neither holds a list."""
        devices = self._load_scope(self.shared)
        if devices is not None:
            return devices
        return self._load_scope(self.local)

    def save(self, devices: list[Device]) -> None:
        payload = encode_devices(devices)
        try:
            self.shared.set(DEVICES_KEY, payload)
        except StoreError as exc:
            LOGGER.warning("Shared store unavailable, saved locally only: %s", exc)
        self.local.set(DEVICES_KEY, payload)

    def signal_pressed(self, name: str) -> None:
        self.shared.set(LAST_PRESSED_KEY, name)

    def take_last_pressed(self) -> str | None:
        """Read and clear the trigger field so a signal fires at most once."""
        try:
            value = self.shared.pop(LAST_PRESSED_KEY)
        except StoreError as exc:
            LOGGER.warning("Could not read trigger signal: %s", exc)
            return None
        if not value:
            return None
        return str(value)
