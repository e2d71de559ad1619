"""Request URL derivation from a device's base URL."""

from __future__ import annotations

import re
from urllib.parse import SplitResult, urlsplit, urlunsplit

from dynctl.core.errors import ResolutionError
from dynctl.core.model import Device, DeviceKind

STATUS_SUFFIX = "status"
_ALLOWED_SCHEMES = frozenset({"http", "https"})
_WHITESPACE_RE = re.compile(r"\s")


def _parse_base(device: Device) -> SplitResult:
    raw = device.url
    if not raw or _WHITESPACE_RE.search(raw):
        raise ResolutionError(f"Invalid base URL for device '{device.name}': {raw!r}")
    try:
        parts = urlsplit(raw)
        # Port parsing is lazy in urllib; force it so bad ports fail here.
        _ = parts.port
    except ValueError as exc:
        raise ResolutionError(f"Invalid base URL for device '{device.name}': {exc}") from exc
    if parts.scheme.lower() not in _ALLOWED_SCHEMES or not parts.hostname:
        raise ResolutionError(f"Invalid base URL for device '{device.name}': {raw!r}")
    return parts


def resolve(device: Device, suffix: str = STATUS_SUFFIX, value: int | None = None) -> str:
    """Build ``/<base-path>/<segment>`` on the device's base URL.

    ``led`` devices with a value use the decimal value as the segment; every
    other case uses ``suffix``.
    """
    parts = _parse_base(device)
    base_path = parts.path[1:] if parts.path.startswith("/") else parts.path

    if device.kind is DeviceKind.LED and value is not None:
        segment = str(int(value))
    else:
        segment = suffix

    path = f"/{base_path}/{segment}" if base_path else f"/{segment}"
    return urlunsplit(parts._replace(path=path))


def raw_url(device: Device) -> str:
    _parse_base(device)
    return device.url
