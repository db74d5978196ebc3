"""STT hallucination detection filters.

A denylist of known Whisper artifacts on silence and noise. Every rule
must match the whole transcript (trailing punctuation aside), so ordinary
sentences that merely mention a word like "Untertitel" or "subscribe" pass.
Rules are checked in order and the first match wins.
"""

import re

MIN_TEXT_CHARS = 3

_WORD = r"[\w.\-]+"
_TRAILING = r"[\s.!?,]*"

# (label, pattern), matched case-insensitively against the trimmed text
_HALLUCINATION_RULES: tuple[tuple[str, re.Pattern], ...] = tuple(
    (label, re.compile(rf"(?:{pattern}){_TRAILING}", re.IGNORECASE))
    for label, pattern in (
        ("copyright", rf"(?:©|\(c\)|copyright)\s+(?:{_WORD}\s+){{0,4}}\d{{4}}(?:\s+{_WORD}){{0,4}}"),
        ("subtitles_by", rf"untertitel(?:ung)?\s+von\s+{_WORD}(?:\s+{_WORD}){{0,2}}"),
        ("subtitles_by", r"untertitel(?:ung)?\s+im auftrag\s+(?:des|der|von)\s+.{1,40}"),
        ("subtitles_by", r"untertitel(?:ung)?\s+(?:der|des)\s+amara\.org(?:-community)?"),
        ("subtitles_by", rf"subtitles?\s+by\s+{_WORD}(?:\s+{_WORD}){{0,3}}"),
        ("thanks_for_watching", r"(?:thanks|thank you)(?: so much)? for watching"),
        ("thanks_for_watching", r"(?:vielen )?danke (?:fürs|für's|für das) zuschauen"),
        ("call_to_action", r"(?:please\s+)?(?:like and\s+)?subscribe(?:\s+to\s+(?:my|our|the)\s+channel)?"),
        ("call_to_action", r"(?:and\s+)?don't forget to (?:like and\s+)?subscribe"),
        ("call_to_action", r"leave a (?:like|comment)(?:\s+below)?|comment below"),
        ("call_to_action", r"abonniert? (?:den|unseren|meinen) kanal"),
        ("call_to_action", r"lasst (?:ein|einen) (?:like|kommentar|abo) da"),
        ("broadcaster", r"(?:zdf|ard|wdr|swr|ndr|mdr|funk)(?:\s+mediathek(?:,?\s+\d{4})?|,?\s+\d{4})"),
        ("broadcaster", r".*\bamara\.org\b.*"),
        ("channel_ident", r"zdf|ard|wdr|swr|ndr|mdr|br|srf|orf"),
    )
)


def check_hallucination(text: str) -> tuple[bool, str]:
    """Return (rejected, reason) if the transcript looks like a hallucination."""
    stripped = text.strip()
    if len(stripped) < MIN_TEXT_CHARS:
        return True, "too_short"

    for label, pattern in _HALLUCINATION_RULES:
        if pattern.fullmatch(stripped):
            return True, label

    return False, ""


def is_hallucination(text: str) -> bool:
    return check_hallucination(text)[0]
