"""Subtitle protocol constants and helpers for server, viewers and publishers.

Every frame on the subtitle bus is a JSON text frame of shape
``{"type": ..., "text": ...}``. The ingestion endpoint answers with a JSON
object keyed by source and target language.
"""

import json

# ── Bus message types ───────────────────────────────────────────────

TRANSLATION = "translation"
FINAL = "final"
SOURCE = "source"

# Publisher frames relayed verbatim between clients
PARTIAL = "partial"

SUBTITLE_TYPES = frozenset({TRANSLATION, FINAL, SOURCE})
RELAY_TYPES = frozenset({PARTIAL, FINAL, TRANSLATION})

# ── Ingestion response fields ───────────────────────────────────────

SOURCE_FIELD = "german"
TARGET_FIELD = "english"
FILTERED_FIELD = "filtered"

ERROR = "error"


# ── Encoding helpers ────────────────────────────────────────────────

def encode_json(msg: dict) -> str:
    """Encode a message as a compact JSON text frame."""
    return json.dumps(msg, separators=(",", ":"), ensure_ascii=False)


def decode_json(text: str) -> dict:
    """Decode a JSON text frame into a dict."""
    return json.loads(text)


# ── Message constructors ────────────────────────────────────────────

def make_subtitle(kind: str, text: str) -> str:
    return encode_json({"type": kind, "text": text})


def make_result(source_text: str = "", target_text: str = "", filtered: str | None = None) -> dict:
    result = {SOURCE_FIELD: source_text, TARGET_FIELD: target_text}
    if filtered is not None:
        result[FILTERED_FIELD] = filtered
    return result


def make_error(message: str, stage: str = "", code: str = "") -> dict:
    msg = {"error": message}
    if stage:
        msg["stage"] = stage
    if code:
        msg["code"] = code
    return msg


def parse_relay_frame(text: str) -> dict | None:
    """Return the decoded publisher frame, or None if it must not be relayed."""
    try:
        msg = decode_json(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(msg, dict):
        return None
    if msg.get("type") not in RELAY_TYPES or not isinstance(msg.get("text"), str):
        return None
    return msg
