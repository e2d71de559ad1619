"""Core data models used across the registry, engine, bridge, and CLI."""

from __future__ import annotations

import uuid
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from dynctl.core.errors import DecodeError


class DeviceKind(str, Enum):
    PUSH = "push"
    TOGGLE = "toggle"
    LED = "led"
    BUTTON = "button"


@dataclass(frozen=True)
class Credentials:
    login: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(login={self.login!r}, password='***')"


@dataclass
class Device:
    name: str
    url: str
    kind: DeviceKind
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    secure: bool = False
    login: str | None = None
    password: str | None = field(default=None, repr=False)
    on: bool = False
    error: bool = False
    pressed: bool = False

    @property
    def credentials(self) -> Credentials | None:
        if self.login is None and self.password is None:
            return None
        return Credentials(login=self.login or "", password=self.password or "")


@dataclass(frozen=True)
class StateUpdate:
    """Partial transient-state change; ``None`` leaves a field untouched."""

    on: bool | None = None
    error: bool | None = None
    pressed: bool | None = None

    @classmethod
    def failed(cls) -> StateUpdate:
        return cls(on=False, error=True, pressed=False)

    @classmethod
    def idle(cls) -> StateUpdate:
        return cls(on=False, error=False, pressed=False)


class FailureReason(str, Enum):
    CONNECTION = "connection"
    DECODE = "decode"


@dataclass(frozen=True)
class Success:
    status_code: int
    body: bytes = b""

    def text(self) -> str:
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Response body is not valid UTF-8: {exc}") from exc


@dataclass(frozen=True)
class Failure:
    reason: FailureReason
    detail: str


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class Intent:
    action: str
    value: int | None = None

    PULSE_ON = "pulse_on"
    PULSE_OFF = "pulse_off"
    TURN_ON = "turn_on"
    TURN_OFF = "turn_off"
    SET_LEVEL = "set_level"
    PULSE_END = "pulse_end"

    @classmethod
    def pulse_on(cls) -> Intent:
        return cls(cls.PULSE_ON)

    @classmethod
    def pulse_off(cls) -> Intent:
        return cls(cls.PULSE_OFF)

    @classmethod
    def pulse_end(cls) -> Intent:
        """Deferred second half of an external pulse; repeats the pulse request."""
        return cls(cls.PULSE_END)

    @classmethod
    def turn_on(cls) -> Intent:
        return cls(cls.TURN_ON)

    @classmethod
    def turn_off(cls) -> Intent:
        return cls(cls.TURN_OFF)

    @classmethod
    def set_level(cls, value: int) -> Intent:
        return cls(cls.SET_LEVEL, value)


@dataclass(frozen=True)
class Dispatch:
    """Result of dispatching a command: optimistic snapshot plus pending outcome."""

    device: Device
    outcome: Future[Outcome | None]
