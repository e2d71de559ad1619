"""Device list decoding, encoding, and validation.

The same decoder handles the persisted store and remotely imported
configurations. JSON is tried first; YAML is accepted as a fallback so device
lists can be written by hand.
"""

from __future__ import annotations

import json
import logging
import uuid
from functools import lru_cache
from importlib import resources
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from dynctl.core.errors import CredentialError, DeviceValidationError
from dynctl.core.model import Device, DeviceKind

LOGGER = logging.getLogger(__name__)

# Field aliases written by earlier releases of the companion app.
_LEGACY_FLAGS = {"on": "isOn", "error": "isError", "pressed": "isPressed"}


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise DeviceValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@lru_cache(maxsize=1)
def _load_schema_validator() -> Any:
    schema_text = resources.files("dynctl.schemas").joinpath("device.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def parse_document(text: str, *, source: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        return yaml.load(text, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise DeviceValidationError(f"{source} is neither valid JSON nor YAML: {exc}") from exc


def _normalize_bool(value: Any, *, context: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise DeviceValidationError(f"{context} must be boolean true/false")


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _device_id(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return str(uuid.uuid4())


def decode_device(doc: Any, *, source: str, index: int = 0) -> Device:
    where = f"{source}[{index}]"
    if not isinstance(doc, dict):
        raise DeviceValidationError(f"{where} must be a mapping")
    try:
        _load_schema_validator().validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        field = f" ({path})" if path else ""
        raise DeviceValidationError(f"Schema validation failed for {where}{field}: {exc.message}") from exc

    flags: dict[str, bool] = {}
    for name, legacy in _LEGACY_FLAGS.items():
        raw = doc[name] if name in doc else doc.get(legacy)
        flags[name] = _normalize_bool(raw, context=f"{where}.{name}")

    return Device(
        id=_device_id(doc.get("id")),
        name=doc["name"],
        url=doc["url"].strip(),
        kind=DeviceKind(doc["type"]),
        secure=_normalize_bool(doc.get("secure"), context=f"{where}.secure"),
        login=_optional_text(doc.get("login")),
        password=_optional_text(doc.get("password")),
        on=flags["on"],
        error=flags["error"],
        pressed=flags["pressed"],
    )


def decode_devices(doc: Any, *, source: str) -> list[Device]:
    if isinstance(doc, dict) and "devices" in doc:
        doc = doc["devices"]
    if not isinstance(doc, list):
        raise DeviceValidationError(f"{source} must contain a list of devices")
    return [decode_device(item, source=source, index=i) for i, item in enumerate(doc)]


def load_devices_text(text: str, *, source: str) -> list[Device]:
    return decode_devices(parse_document(text, source=source), source=source)


def encode_device(device: Device) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": device.id,
        "name": device.name,
        "url": device.url,
        "type": device.kind.value,
        "secure": device.secure,
    }
    if device.login is not None:
        record["login"] = device.login
    if device.password is not None:
        record["password"] = device.password
    record.update(on=device.on, error=device.error, pressed=device.pressed)
    return record


def encode_devices(devices: list[Device]) -> list[dict[str, Any]]:
    return [encode_device(d) for d in devices]


def validate_device(device: Device) -> Device:
    """Input validation for devices created or edited by the user."""
    if not device.name.strip():
        raise DeviceValidationError("Device name must not be empty")
    if not device.url.strip():
        raise DeviceValidationError(f"Device '{device.name}' must have a URL")
    if device.secure and not (device.login and device.password):
        raise CredentialError(f"Secure device '{device.name}' requires both login and password")
    return device
