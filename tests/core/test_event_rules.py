"""Tests for event rules — required text, roles, end-status and duration coercion."""

import math

import pytest

from callstore.core.domain_types import CallStatus, SpeakerRole
from callstore.core.errors import EventValidationError
from callstore.core.event_rules import (
    coerce_duration, optional_key, parse_speaker_role,
    require_text, resolve_end_status,
)


def test_require_text_returns_value_as_received():
    assert require_text("  CA123 ", "session_id") == "  CA123 "
    assert require_text("Hello, world.  ", "text", max_length=None) == "Hello, world.  "


def test_require_text_rejects_over_long_value():
    assert require_text("x" * 128, "session_id") == "x" * 128
    with pytest.raises(EventValidationError) as exc:
        require_text("x" * 129, "session_id")
    assert exc.value.field == "session_id"


def test_require_text_without_limit_accepts_long_text():
    assert len(require_text("y" * 5000, "text", max_length=None)) == 5000


@pytest.mark.parametrize("value", [None, "", "   ", 42])
def test_require_text_rejects_missing_or_blank(value):
    with pytest.raises(EventValidationError) as exc:
        require_text(value, "session_id")
    assert exc.value.field == "session_id"
    assert exc.value.http_status == 400


def test_parse_speaker_role_accepts_known_roles():
    assert parse_speaker_role("caller") is SpeakerRole.CALLER
    assert parse_speaker_role("agent") is SpeakerRole.AGENT


def test_parse_speaker_role_rejects_unknown_role():
    with pytest.raises(EventValidationError) as exc:
        parse_speaker_role("narrator")
    assert exc.value.field == "role"
    assert exc.value.code == "VALIDATION_ERROR"


@pytest.mark.parametrize("raw", ["completed", "failed", "in_progress", "initiated"])
def test_resolve_end_status_keeps_valid_status(raw):
    assert resolve_end_status(raw) == CallStatus(raw)


@pytest.mark.parametrize("raw", [None, "", "hung_up", 3])
def test_resolve_end_status_defaults_to_completed(raw):
    assert resolve_end_status(raw) is CallStatus.COMPLETED


def test_coerce_duration_accepts_numbers_and_numeric_strings():
    assert coerce_duration(42) == 42.0
    assert coerce_duration(12.5) == 12.5
    assert coerce_duration("30") == 30.0
    assert coerce_duration(0) == 0.0


@pytest.mark.parametrize("raw", [None, "", "  ", "abc", -1, True, math.nan, math.inf, [5]])
def test_coerce_duration_ignores_invalid_values(raw):
    assert coerce_duration(raw) is None


def test_optional_key_treats_blank_as_absent():
    assert optional_key(None, "turn_id") is None
    assert optional_key("  ", "turn_id") is None


def test_optional_key_keeps_value_as_received():
    assert optional_key(" t1 ", "turn_id") == " t1 "


def test_optional_key_rejects_over_long_value():
    with pytest.raises(EventValidationError) as exc:
        optional_key("k" * 129, "event_id")
    assert exc.value.field == "event_id"


def test_optional_key_honours_custom_limit():
    assert optional_key("+15550001", "from", max_length=64) == "+15550001"
    with pytest.raises(EventValidationError):
        optional_key("+1" * 40, "from", max_length=64)
