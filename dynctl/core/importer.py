"""Fetch device lists published at a remote URL."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from dynctl.core.config_loader import load_devices_text
from dynctl.core.errors import ConfigImportError, DecodeError, DeviceValidationError
from dynctl.core.executor import RequestExecutor
from dynctl.core.model import Device, Failure

LOGGER = logging.getLogger(__name__)


class ConfigImporter:
    def __init__(self, executor: RequestExecutor) -> None:
        self.executor = executor

    def fetch(self, url: str) -> list[Device]:
        try:
            parts = urlsplit(url.strip())
        except ValueError as exc:
            raise ConfigImportError("Invalid URL") from exc
        if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
            raise ConfigImportError("Invalid URL")

        outcome = self.executor.execute(url.strip())
        if isinstance(outcome, Failure):
            raise ConfigImportError(f"Download failed: {outcome.detail}")
        if not outcome.body:
            raise ConfigImportError("No data received")

        try:
            devices = load_devices_text(outcome.text(), source=url)
        except (DecodeError, DeviceValidationError) as exc:
            raise ConfigImportError(f"Could not parse configuration: {exc}") from exc
        LOGGER.info("Fetched %d device(s) from %s", len(devices), url)
        return devices
