"""Helpers for privacy-aware metrics payloads."""


def stt_metrics_payload(stt_result: dict, include_text: bool = False) -> dict:
    """Build STT metrics payload with optional transcript text."""
    payload = {
        "language": stt_result.get("language"),
        "transcription_time_s": stt_result.get("transcription_time_s"),
        "text_chars": len(stt_result.get("text", "")),
    }
    if include_text:
        payload["text"] = stt_result.get("text", "")
    return payload


def translation_metrics_payload(result: dict, include_text: bool = False) -> dict:
    """Build translation metrics payload with optional translated text."""
    payload = {
        "model": result.get("model"),
        "elapsed_s": result.get("elapsed_s"),
        "text_chars": len(result.get("text", "")),
    }
    if include_text:
        payload["text"] = result.get("text", "")
    return payload
