"""Security status strings reported by the panel and their derived states."""

from enum import StrEnum

from .const import DoorState
from .exceptions import UnknownStateError

ENTRY_DELAY_MARKER = "Secs Remaining"


class SecurityStatus(StrEnum):
    """Status strings returned by GetSecurityStatus."""

    ARMED_STAY = "Armed Stay"
    ARMED_STAY_FAULT = "Armed Stay Fault"
    ARMED_AWAY = "Armed Away"
    ARMED_AWAY_FAULT = "Armed Away Fault"
    ARMED_NIGHT = "Armed Night"
    ARMED_NIGHT_FAULT = "Armed Night Fault"
    ARMED_INSTANT = "Armed Instant"
    ARMED_INSTANT_FAULT = "Armed Instant Fault"
    READY_FAULT = "Ready Fault"
    READY_TO_ARM = "Ready To Arm"
    NOT_READY = "Not Ready"
    NOT_READY_FAULT = "Not Ready Fault"
    ENTRY_DELAY_ACTIVE = "Entry Delay Active"
    NOT_READY_ALARM = "Not Ready Alarm"
    ARMED_STAY_ALARM = "Armed Stay Alarm"
    ARMED_NIGHT_ALARM = "Armed Night Alarm"
    ARMED_AWAY_ALARM = "Armed Away Alarm"


class TargetState(StrEnum):
    """State the panel is heading to."""

    STAY_ARM = "stay_arm"
    AWAY_ARM = "away_arm"
    NIGHT_ARM = "night_arm"
    DISARM = "disarm"


class CurrentState(StrEnum):
    """State the panel is in right now."""

    STAY_ARM = "stay_arm"
    AWAY_ARM = "away_arm"
    NIGHT_ARM = "night_arm"
    DISARMED = "disarmed"
    ALARM_TRIGGERED = "alarm_triggered"


_TARGET_STATES = {
    SecurityStatus.ARMED_STAY: TargetState.STAY_ARM,
    SecurityStatus.ARMED_STAY_FAULT: TargetState.STAY_ARM,
    SecurityStatus.ARMED_STAY_ALARM: TargetState.STAY_ARM,
    SecurityStatus.ARMED_AWAY: TargetState.AWAY_ARM,
    SecurityStatus.ARMED_AWAY_FAULT: TargetState.AWAY_ARM,
    SecurityStatus.ARMED_AWAY_ALARM: TargetState.AWAY_ARM,
    SecurityStatus.ENTRY_DELAY_ACTIVE: TargetState.AWAY_ARM,
    SecurityStatus.ARMED_NIGHT: TargetState.NIGHT_ARM,
    SecurityStatus.ARMED_NIGHT_FAULT: TargetState.NIGHT_ARM,
    SecurityStatus.ARMED_INSTANT: TargetState.NIGHT_ARM,
    SecurityStatus.ARMED_INSTANT_FAULT: TargetState.NIGHT_ARM,
    SecurityStatus.ARMED_NIGHT_ALARM: TargetState.NIGHT_ARM,
    SecurityStatus.READY_FAULT: TargetState.DISARM,
    SecurityStatus.READY_TO_ARM: TargetState.DISARM,
    SecurityStatus.NOT_READY: TargetState.DISARM,
    SecurityStatus.NOT_READY_FAULT: TargetState.DISARM,
    SecurityStatus.NOT_READY_ALARM: TargetState.DISARM,
}

_CURRENT_STATES = {
    SecurityStatus.ARMED_STAY: CurrentState.STAY_ARM,
    SecurityStatus.ARMED_STAY_FAULT: CurrentState.STAY_ARM,
    SecurityStatus.ARMED_AWAY: CurrentState.AWAY_ARM,
    SecurityStatus.ARMED_AWAY_FAULT: CurrentState.AWAY_ARM,
    SecurityStatus.ARMED_NIGHT: CurrentState.NIGHT_ARM,
    SecurityStatus.ARMED_NIGHT_FAULT: CurrentState.NIGHT_ARM,
    SecurityStatus.ARMED_INSTANT: CurrentState.NIGHT_ARM,
    SecurityStatus.ARMED_INSTANT_FAULT: CurrentState.NIGHT_ARM,
    SecurityStatus.READY_FAULT: CurrentState.DISARMED,
    SecurityStatus.READY_TO_ARM: CurrentState.DISARMED,
    SecurityStatus.NOT_READY: CurrentState.DISARMED,
    SecurityStatus.NOT_READY_FAULT: CurrentState.DISARMED,
    SecurityStatus.ENTRY_DELAY_ACTIVE: CurrentState.ALARM_TRIGGERED,
    SecurityStatus.NOT_READY_ALARM: CurrentState.ALARM_TRIGGERED,
    SecurityStatus.ARMED_STAY_ALARM: CurrentState.ALARM_TRIGGERED,
    SecurityStatus.ARMED_NIGHT_ALARM: CurrentState.ALARM_TRIGGERED,
    SecurityStatus.ARMED_AWAY_ALARM: CurrentState.ALARM_TRIGGERED,
}


def parse_security_status(value) -> SecurityStatus:
    """Map a raw status string to a SecurityStatus.

    Entry delay is reported as a countdown ("7 Secs Remaining") rather than a
    fixed string. Anything else that is not a known status raises
    UnknownStateError; guessing the state of a security system is not safe.
    """
    if not isinstance(value, str):
        raise UnknownStateError("security", value)
    try:
        return SecurityStatus(value)
    except ValueError:
        if ENTRY_DELAY_MARKER in value:
            return SecurityStatus.ENTRY_DELAY_ACTIVE
        raise UnknownStateError("security", value) from None


def target_state_for(status) -> TargetState:
    return _TARGET_STATES[parse_security_status(status)]


def current_state_for(status) -> CurrentState:
    return _CURRENT_STATES[parse_security_status(status)]


def parse_door_state(value) -> DoorState:
    """Map a GetGarageDoorStatus string to a DoorState."""
    try:
        return DoorState(value)
    except ValueError:
        raise UnknownStateError("door", value) from None
