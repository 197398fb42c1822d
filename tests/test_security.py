"""Tests for security status mapping."""

import pytest

from custom_components.tuxedo_touch.const import DoorState
from custom_components.tuxedo_touch.exceptions import TuxedoError, UnknownStateError
from custom_components.tuxedo_touch.security import (
    CurrentState,
    SecurityStatus,
    TargetState,
    current_state_for,
    parse_door_state,
    parse_security_status,
    target_state_for,
)


def test_every_status_has_target_and_current_state():
    for status in SecurityStatus:
        assert isinstance(target_state_for(status), TargetState)
        assert isinstance(current_state_for(status), CurrentState)


@pytest.mark.parametrize(
    "status, target, current",
    [
        ("Armed Stay", TargetState.STAY_ARM, CurrentState.STAY_ARM),
        ("Armed Away Fault", TargetState.AWAY_ARM, CurrentState.AWAY_ARM),
        ("Armed Instant", TargetState.NIGHT_ARM, CurrentState.NIGHT_ARM),
        ("Ready To Arm", TargetState.DISARM, CurrentState.DISARMED),
        ("Not Ready Fault", TargetState.DISARM, CurrentState.DISARMED),
        ("Armed Stay Alarm", TargetState.STAY_ARM, CurrentState.ALARM_TRIGGERED),
        ("Not Ready Alarm", TargetState.DISARM, CurrentState.ALARM_TRIGGERED),
        ("Entry Delay Active", TargetState.AWAY_ARM, CurrentState.ALARM_TRIGGERED),
    ],
)
def test_status_mapping(status, target, current):
    assert target_state_for(status) == target
    assert current_state_for(status) == current


def test_entry_delay_countdown_is_recognised():
    assert parse_security_status("27 Secs Remaining") == SecurityStatus.ENTRY_DELAY_ACTIVE
    assert current_state_for("5 Secs Remaining") == CurrentState.ALARM_TRIGGERED
    assert target_state_for("5 Secs Remaining") == TargetState.AWAY_ARM


@pytest.mark.parametrize("value", ["Armed Vacation", "", "armed stay", None, 3])
def test_unknown_status_raises(value):
    with pytest.raises(UnknownStateError) as err:
        parse_security_status(value)
    assert err.value.kind == "security"
    assert err.value.value == value
    assert isinstance(err.value, TuxedoError)


def test_parse_door_state():
    assert parse_door_state("Open") == DoorState.OPEN
    assert parse_door_state("Close") == DoorState.CLOSED


@pytest.mark.parametrize("value", ["Closed", "Opening", None])
def test_unknown_door_state_raises(value):
    with pytest.raises(UnknownStateError) as err:
        parse_door_state(value)
    assert err.value.kind == "door"
