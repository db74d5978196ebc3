"""System instruction and message formatting for the translation model."""

_LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "de": "German",
}

_TRANSLATION_PROMPT = (
    "You are a live subtitle translator. "
    "Translate the user's {source} text into natural, concise {target}. "
    "Respond with the translation only. "
    "Never add commentary, explanations, quotes, notes or alternatives. "
    "If the input is already {target}, return it unchanged."
)


def language_name(code: str) -> str:
    return _LANGUAGE_NAMES.get(code, code)


def get_system_prompt(source_language: str = "de", target_language: str = "en") -> str:
    """Return the translation instruction for a language pair."""
    return _TRANSLATION_PROMPT.format(
        source=language_name(source_language),
        target=language_name(target_language),
    )


def build_messages(system_prompt: str, user_text: str) -> list[dict]:
    """Build the messages list for the chat completion call."""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_text},
    ]
