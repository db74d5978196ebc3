"""Tests for the shared subtitle protocol module."""

import json

from shared import protocol


def test_encode_json_is_compact_and_keeps_umlauts():
    encoded = protocol.encode_json({"type": "final", "text": "Grüße"})
    assert encoded == '{"type":"final","text":"Grüße"}'


def test_make_subtitle():
    msg = json.loads(protocol.make_subtitle(protocol.TRANSLATION, "Hello"))
    assert msg == {"type": "translation", "text": "Hello"}


def test_make_result_success():
    assert protocol.make_result("Hallo", "Hello") == {"german": "Hallo", "english": "Hello"}


def test_make_result_filtered_carries_raw_text():
    result = protocol.make_result(filtered="Untertitelung von XYZ")
    assert result == {"german": "", "english": "", "filtered": "Untertitelung von XYZ"}


def test_make_error():
    msg = protocol.make_error("STT failed", stage="stt", code="provider_stt_failed")
    assert msg == {"error": "STT failed", "stage": "stt", "code": "provider_stt_failed"}


def test_make_error_no_stage():
    msg = protocol.make_error("unknown error")
    assert msg == {"error": "unknown error"}


def test_parse_relay_frame_accepts_publisher_types():
    for kind in ("partial", "final", "translation"):
        frame = protocol.make_subtitle(kind, "Hi")
        assert protocol.parse_relay_frame(frame) == {"type": kind, "text": "Hi"}


def test_parse_relay_frame_rejects_garbage():
    assert protocol.parse_relay_frame("not json") is None
    assert protocol.parse_relay_frame("[1, 2]") is None
    assert protocol.parse_relay_frame('{"type":"wake"}') is None
    assert protocol.parse_relay_frame('{"type":"final","text":3}') is None


def test_message_type_constants():
    assert protocol.TRANSLATION == "translation"
    assert protocol.FINAL == "final"
    assert protocol.SOURCE == "source"
    assert protocol.PARTIAL == "partial"
