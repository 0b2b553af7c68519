"""Parsing of inbound frames and serialization of outbound ones."""

import json

import pytest

from oscbridge.protocol import (
    DataEnvelope,
    EnvelopeError,
    Number,
    RequestActiveEnvelope,
    SetModeEnvelope,
    Text,
    create_state_snapshot,
    create_user_count,
    parse_envelope,
)


def test_data_envelope_with_numbers():
    envelope = parse_envelope('{"address": "/mouse/xy", "args": [0.25, 0.75]}')

    assert isinstance(envelope, DataEnvelope)
    assert envelope.address == "/mouse/xy"
    assert envelope.osc_args() == (Number(0.25), Number(0.75))


def test_data_envelope_tags_mixed_arguments():
    envelope = parse_envelope('{"address": "/label", "args": [1, "hello", 2.5]}')

    assert envelope.osc_args() == (Number(1.0), Text("hello"), Number(2.5))


def test_data_envelope_accepts_bytes_and_empty_args():
    envelope = parse_envelope(b'{"address": "/ping", "args": []}')

    assert isinstance(envelope, DataEnvelope)
    assert envelope.osc_args() == ()


def test_set_mode_envelope():
    envelope = parse_envelope('{"type": "setMode", "mode": "blended"}')

    assert isinstance(envelope, SetModeEnvelope)
    assert envelope.mode == "blended"


def test_set_mode_keeps_unknown_mode_name_for_the_engine_to_reject():
    envelope = parse_envelope('{"type": "setMode", "mode": "chaos"}')

    assert isinstance(envelope, SetModeEnvelope)
    assert envelope.mode == "chaos"


def test_request_active_envelope():
    envelope = parse_envelope(json.dumps({"type": "requestActive"}))

    assert isinstance(envelope, RequestActiveEnvelope)


@pytest.mark.parametrize(
    "raw, reason",
    [
        ("not json", EnvelopeError.INVALID_JSON),
        ("[1, 2, 3]", EnvelopeError.NOT_AN_OBJECT),
        ('"text"', EnvelopeError.NOT_AN_OBJECT),
        ('{"address": "", "args": [1]}', EnvelopeError.INVALID_DATA),
        ('{"address": "/press"}', EnvelopeError.INVALID_DATA),
        ('{"args": [1]}', EnvelopeError.INVALID_DATA),
        ('{"address": "/press", "args": 1}', EnvelopeError.INVALID_DATA),
        ('{"address": "/press", "args": [null]}', EnvelopeError.INVALID_DATA),
        ('{"address": "/mouse/xy", "args": [NaN, 0.5]}', EnvelopeError.INVALID_JSON),
        ('{"address": "/mouse/x", "args": [Infinity]}', EnvelopeError.INVALID_JSON),
        ('{"address": "/mouse/x", "args": [-Infinity]}', EnvelopeError.INVALID_JSON),
        ('{"address": "/mouse/x", "args": [1e400]}', EnvelopeError.INVALID_DATA),
        ('{"type": "setMode"}', EnvelopeError.INVALID_CONTROL),
        ('{"type": "shutdown"}', EnvelopeError.INVALID_CONTROL),
    ],
)
def test_malformed_frames_raise_envelope_error(raw, reason):
    with pytest.raises(EnvelopeError) as exc_info:
        parse_envelope(raw)

    assert exc_info.value.reason == reason


def test_state_snapshot_uses_wire_field_names():
    snapshot = create_state_snapshot(
        user_id=3, mode="single", total_users=4, zone=None, is_active=False
    )

    assert json.loads(snapshot.to_json()) == {
        "type": "state",
        "userId": 3,
        "mode": "single",
        "totalUsers": 4,
        "zone": None,
        "isActive": False,
    }


def test_user_count_frame():
    assert json.loads(create_user_count(2).to_json()) == {"type": "userCount", "count": 2}
