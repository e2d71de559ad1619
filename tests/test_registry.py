from __future__ import annotations

import pytest

from dynctl.core.errors import DeviceNotFoundError, DuplicateDeviceError
from dynctl.core.model import Device, DeviceKind, StateUpdate
from dynctl.core.registry import Registry


def _toggle(device_id: str = "t1", name: str = "Lamp") -> Device:
    return Device(id=device_id, name=name, url="http://h/lamp", kind=DeviceKind.TOGGLE)


def test_error_update_forces_off_and_unpressed() -> None:
    registry = Registry([_toggle()])
    registry.apply("t1", StateUpdate(on=True, pressed=True))

    device = registry.apply("t1", StateUpdate(on=True, error=True, pressed=True))

    assert device is not None
    assert device.error is True
    assert device.on is False
    assert device.pressed is False


@pytest.mark.parametrize(
    "updates",
    [
        [StateUpdate(on=True), StateUpdate.failed()],
        [StateUpdate.failed(), StateUpdate(on=True, error=False)],
        [StateUpdate(pressed=True, error=False), StateUpdate(error=True), StateUpdate(on=True)],
        [StateUpdate(on=True, error=True)],
    ],
)
def test_error_and_on_never_both_true(updates: list[StateUpdate]) -> None:
    registry = Registry([_toggle()])
    for update in updates:
        device = registry.apply("t1", update)
        assert device is not None
        assert not (device.error and device.on)


def test_momentary_devices_never_report_on() -> None:
    registry = Registry([Device(id="b1", name="Bell", url="http://h/bell", kind=DeviceKind.BUTTON)])
    device = registry.apply("b1", StateUpdate(on=True, pressed=True))
    assert device is not None
    assert device.on is False
    assert device.pressed is True


def test_apply_for_removed_device_is_discarded() -> None:
    registry = Registry([_toggle()])
    assert registry.delete("t1") is True
    assert registry.apply("t1", StateUpdate(on=True)) is None
    assert registry.snapshot() == []


def test_delete_unknown_id_is_noop() -> None:
    saved: list[list[Device]] = []
    registry = Registry([_toggle()])
    registry.set_listener(saved.append)

    assert registry.delete("missing") is False
    assert registry.delete("missing") is False
    assert saved == []
    assert len(registry) == 1


def test_listener_receives_full_snapshot_on_change_only() -> None:
    saved: list[list[Device]] = []
    registry = Registry()
    registry.set_listener(saved.append)

    registry.add(_toggle())
    registry.apply("t1", StateUpdate(on=False, error=False))
    registry.apply("t1", StateUpdate(on=True))

    assert len(saved) == 2
    assert [d.id for d in saved[-1]] == ["t1"]
    assert saved[-1][0].on is True


def test_listener_failure_does_not_break_mutation() -> None:
    def broken(_: list[Device]) -> None:
        raise OSError("disk full")

    registry = Registry()
    registry.set_listener(broken)
    registry.add(_toggle())
    assert registry.get("t1") is not None


def test_duplicate_id_rejected() -> None:
    registry = Registry([_toggle()])
    with pytest.raises(DuplicateDeviceError):
        registry.add(_toggle(name="Other"))
    with pytest.raises(DuplicateDeviceError):
        Registry([_toggle(), _toggle()])


def test_find_by_name_returns_first_in_order() -> None:
    registry = Registry([_toggle("a", "Fan"), _toggle("b", "Fan"), _toggle("c", "Light")])

    first = registry.find_by_name("Fan")
    assert first is not None
    assert first.id == "a"

    registry.delete("a")
    second = registry.find_by_name("Fan")
    assert second is not None
    assert second.id == "b"
    assert registry.find_by_name("Nope") is None


def test_snapshots_are_copies() -> None:
    registry = Registry([_toggle()])
    copy = registry.snapshot()[0]
    copy.on = True
    copy.name = "Changed"

    stored = registry.get("t1")
    assert stored is not None
    assert stored.on is False
    assert stored.name == "Lamp"


def test_update_replaces_configuration_and_keeps_position() -> None:
    registry = Registry([_toggle("a", "One"), _toggle("b", "Two")])
    registry.update(Device(id="a", name="Renamed", url="http://h/x", kind=DeviceKind.LED))

    names = [d.name for d in registry.snapshot()]
    assert names == ["Renamed", "Two"]
    with pytest.raises(DeviceNotFoundError):
        registry.update(_toggle("zzz"))


def test_levels_are_separate_and_reset_on_load() -> None:
    saved: list[list[Device]] = []
    led = Device(id="l1", name="Dimmer", url="http://h/pwm", kind=DeviceKind.LED)
    registry = Registry([led])
    registry.set_listener(saved.append)

    assert registry.level("l1") == 0
    registry.set_level("l1", 55)
    assert registry.level("l1") == 55
    assert saved == []

    registry.load([led])
    assert registry.level("l1") == 0

    with pytest.raises(DeviceNotFoundError):
        registry.set_level("missing", 10)
