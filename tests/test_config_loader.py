from __future__ import annotations

import pytest

from dynctl.core.config_loader import (
    decode_devices,
    encode_device,
    load_devices_text,
    validate_device,
)
from dynctl.core.errors import CredentialError, DeviceValidationError
from dynctl.core.model import Device, DeviceKind


def test_json_device_list() -> None:
    text = '[{"id": "1", "name": "Lamp", "url": " http://h/lamp ", "type": "toggle", "secure": false}]'

    (device,) = load_devices_text(text, source="inline")

    assert device.id == "1"
    assert device.url == "http://h/lamp"
    assert device.kind is DeviceKind.TOGGLE
    assert device.login is None


def test_yaml_device_list_with_wrapper() -> None:
    text = """
devices:
  - name: Dimmer
    url: http://h/pwm
    type: led
  - name: Gate
    url: https://h/gate
    type: button
    secure: true
    login: admin
    password: secret
"""

    dimmer, gate = load_devices_text(text, source="inline.yaml")

    assert dimmer.kind is DeviceKind.LED
    assert dimmer.id
    assert gate.secure is True
    assert gate.credentials is not None
    assert gate.credentials.login == "admin"


def test_missing_ids_are_generated_uniquely() -> None:
    docs = [{"name": "A", "url": "http://h/a", "type": "push"}] * 2
    first, second = decode_devices(docs, source="inline")
    assert first.id != second.id


def test_duplicate_yaml_keys_rejected() -> None:
    text = """
- name: Lamp
  name: Other
  url: http://h/lamp
  type: toggle
"""
    with pytest.raises(DeviceValidationError, match="Duplicate key 'name'"):
        load_devices_text(text, source="dupe.yaml")


@pytest.mark.parametrize(
    "doc",
    [
        {"name": "Lamp", "type": "toggle"},
        {"name": "Lamp", "url": "http://h/lamp", "type": "dimmer"},
        {"name": 3, "url": "http://h/lamp", "type": "toggle"},
    ],
)
def test_schema_violations(doc: dict) -> None:
    with pytest.raises(DeviceValidationError, match="Schema validation failed"):
        decode_devices([doc], source="inline")


def test_not_a_list() -> None:
    with pytest.raises(DeviceValidationError, match="list of devices"):
        decode_devices({"name": "Lamp"}, source="inline")


def test_unparseable_text() -> None:
    with pytest.raises(DeviceValidationError, match="neither valid JSON nor YAML"):
        load_devices_text("[unclosed", source="inline")


def test_string_booleans_and_legacy_aliases() -> None:
    (device,) = decode_devices(
        [{"name": "Lamp", "url": "http://h/lamp", "type": "toggle", "secure": "False", "isOn": "TRUE"}],
        source="inline",
    )
    assert device.secure is False
    assert device.on is True


def test_yaml_yes_is_not_a_boolean() -> None:
    text = """
- name: Lamp
  url: http://h/lamp
  type: toggle
  secure: yes
"""
    with pytest.raises(DeviceValidationError, match="secure must be boolean"):
        load_devices_text(text, source="inline.yaml")


def test_secure_device_requires_both_credentials() -> None:
    device = Device(name="Gate", url="https://h/gate", kind=DeviceKind.BUTTON, secure=True, login="admin")
    with pytest.raises(CredentialError):
        validate_device(device)
    assert isinstance(CredentialError("x"), DeviceValidationError)


@pytest.mark.parametrize(("name", "url"), [("  ", "http://h/x"), ("Lamp", "")])
def test_name_and_url_required(name: str, url: str) -> None:
    with pytest.raises(DeviceValidationError):
        validate_device(Device(name=name, url=url, kind=DeviceKind.TOGGLE))


def test_encode_omits_absent_credentials() -> None:
    record = encode_device(Device(id="1", name="Lamp", url="http://h/lamp", kind=DeviceKind.TOGGLE))
    assert record == {
        "id": "1",
        "name": "Lamp",
        "url": "http://h/lamp",
        "type": "toggle",
        "secure": False,
        "on": False,
        "error": False,
        "pressed": False,
    }
