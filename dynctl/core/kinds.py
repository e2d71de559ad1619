"""Per-kind device behaviour: which URLs to hit and how results change state."""

from __future__ import annotations

from dynctl.core.errors import DecodeError, UnsupportedIntentError
from dynctl.core.model import Device, DeviceKind, Failure, Intent, Outcome, StateUpdate
from dynctl.core.urls import raw_url, resolve

MIN_LEVEL = 0
MAX_LEVEL = 100


def validate_level(value: int | None) -> int:
    if value is None or isinstance(value, bool) or not MIN_LEVEL <= value <= MAX_LEVEL:
        raise UnsupportedIntentError(
            f"Level must be between {MIN_LEVEL} and {MAX_LEVEL}, got {value!r}"
        )
    return value


def parse_status(outcome: Outcome) -> StateUpdate:
    """Map a status poll outcome onto transient state; never reports pressed."""
    if isinstance(outcome, Failure):
        return StateUpdate.failed()
    try:
        text = outcome.text()
    except DecodeError:
        return StateUpdate.failed()
    return StateUpdate(on=text.strip().lower() == "on", error=False, pressed=False)


class KindBehavior:
    kind: DeviceKind
    pollable = True
    intents: frozenset[str] = frozenset()

    def status_url(self, device: Device) -> str:
        return resolve(device)

    def apply_poll_result(self, outcome: Outcome) -> StateUpdate:
        return parse_status(outcome)

    def check_intent(self, intent: Intent) -> None:
        if intent.action not in self.intents:
            raise UnsupportedIntentError(
                f"Intent '{intent.action}' is not supported by {self.kind.value} devices"
            )

    def command_url(self, device: Device, intent: Intent, level: int) -> str | None:
        """Return the URL to call, or None when the intent needs no request."""
        raise NotImplementedError

    def before_command(self, intent: Intent) -> StateUpdate | None:
        return None

    def after_command(self, intent: Intent, outcome: Outcome) -> StateUpdate:
        if isinstance(outcome, Failure):
            return StateUpdate.failed()
        return StateUpdate(error=False)


class MomentaryBehavior(KindBehavior):
    """``button`` and ``push``: fire the raw base URL, no status endpoint."""

    pollable = False
    intents = frozenset({Intent.PULSE_ON, Intent.PULSE_OFF, Intent.PULSE_END})

    def __init__(self, kind: DeviceKind) -> None:
        self.kind = kind

    def apply_poll_result(self, outcome: Outcome | None = None) -> StateUpdate:
        return StateUpdate.idle()

    def command_url(self, device: Device, intent: Intent, level: int) -> str | None:
        self.check_intent(intent)
        if intent.action in (Intent.PULSE_ON, Intent.PULSE_END):
            return raw_url(device)
        return None

    def before_command(self, intent: Intent) -> StateUpdate | None:
        if intent.action == Intent.PULSE_ON:
            return StateUpdate(on=False, error=False, pressed=True)
        return StateUpdate(on=False, pressed=False)

    def after_command(self, intent: Intent, outcome: Outcome) -> StateUpdate:
        if isinstance(outcome, Failure):
            return StateUpdate.failed()
        return StateUpdate(on=False, pressed=False)


class ToggleBehavior(KindBehavior):
    kind = DeviceKind.TOGGLE
    intents = frozenset(
        {Intent.TURN_ON, Intent.TURN_OFF, Intent.PULSE_ON, Intent.PULSE_OFF, Intent.PULSE_END}
    )

    @staticmethod
    def _switches_on(intent: Intent) -> bool:
        return intent.action in (Intent.TURN_ON, Intent.PULSE_ON)

    def command_url(self, device: Device, intent: Intent, level: int) -> str | None:
        self.check_intent(intent)
        return resolve(device, "on" if self._switches_on(intent) else "off")

    def before_command(self, intent: Intent) -> StateUpdate | None:
        return StateUpdate(error=False, pressed=self._switches_on(intent))

    def after_command(self, intent: Intent, outcome: Outcome) -> StateUpdate:
        # `on` is left to the follow-up poll.
        if isinstance(outcome, Failure):
            return StateUpdate.failed()
        return StateUpdate(error=False, pressed=False)


class LedBehavior(KindBehavior):
    kind = DeviceKind.LED
    intents = frozenset({Intent.SET_LEVEL, Intent.PULSE_ON, Intent.PULSE_OFF, Intent.PULSE_END})

    def command_url(self, device: Device, intent: Intent, level: int) -> str | None:
        self.check_intent(intent)
        if intent.action == Intent.PULSE_OFF:
            return None
        value = validate_level(intent.value if intent.action == Intent.SET_LEVEL else level)
        return resolve(device, str(value), value)


BEHAVIORS: dict[DeviceKind, KindBehavior] = {
    DeviceKind.PUSH: MomentaryBehavior(DeviceKind.PUSH),
    DeviceKind.BUTTON: MomentaryBehavior(DeviceKind.BUTTON),
    DeviceKind.TOGGLE: ToggleBehavior(),
    DeviceKind.LED: LedBehavior(),
}


def behavior_for(kind: DeviceKind) -> KindBehavior:
    return BEHAVIORS[kind]
