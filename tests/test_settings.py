from __future__ import annotations

from pathlib import Path

from dynctl.core.settings import load_settings


def test_defaults_follow_xdg_locations(tmp_path: Path) -> None:
    settings = load_settings({"XDG_CONFIG_HOME": str(tmp_path / "cfg"), "XDG_DATA_HOME": str(tmp_path / "data")})

    assert settings.local_store == tmp_path / "cfg" / "dynctl" / "devices.json"
    assert settings.shared_store == tmp_path / "data" / "dynctl" / "shared.json"
    assert settings.poll_interval_s == 5.0
    assert settings.pulse_delay_s == 0.2
    assert settings.follow_up_delay_s == 0.1
    assert settings.trigger_interval_s == 0.5
    assert settings.max_workers == 8


def test_environment_overrides(tmp_path: Path) -> None:
    settings = load_settings(
        {
            "XDG_CONFIG_HOME": str(tmp_path),
            "DYNCTL_SHARED_STORE": str(tmp_path / "group.json"),
            "DYNCTL_POLL_INTERVAL": "1.5",
            "DYNCTL_PULSE_DELAY": "0.5",
            "DYNCTL_MAX_WORKERS": "2",
        }
    )

    assert settings.shared_store == tmp_path / "group.json"
    assert settings.poll_interval_s == 1.5
    assert settings.pulse_delay_s == 0.5
    assert settings.max_workers == 2


def test_invalid_values_fall_back_to_defaults(tmp_path: Path) -> None:
    settings = load_settings(
        {
            "XDG_CONFIG_HOME": str(tmp_path),
            "DYNCTL_POLL_INTERVAL": "soon",
            "DYNCTL_PULSE_DELAY": "-1",
            "DYNCTL_MAX_WORKERS": "2.5",
            "DYNCTL_TRIGGER_INTERVAL": "  ",
        }
    )

    assert settings.poll_interval_s == 5.0
    assert settings.pulse_delay_s == 0.2
    assert settings.max_workers == 8
    assert settings.trigger_interval_s == 0.5
