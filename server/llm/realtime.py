"""Ephemeral realtime session minting for browser publishers."""

import os

import requests

from server.errors import Misconfigured, ProviderError

_DEFAULT_INSTRUCTIONS = (
    "You are a live subtitle/translation agent. Listen to German speech and "
    "provide English text translations in real-time. Keep translations concise "
    "and natural. Only respond with the translated text, nothing else."
)


class RealtimeSessionClient:
    """Requests short-lived realtime sessions so browsers never see the API key."""

    def __init__(self, realtime_config: dict, api_key_env: str = "OPENAI_API_KEY"):
        self._api_base = realtime_config["api_base"].rstrip("/")
        self._model = realtime_config["model"]
        self._voice = realtime_config.get("voice", "alloy")
        self._instructions = realtime_config.get("instructions") or _DEFAULT_INSTRUCTIONS
        self._transcription_model = realtime_config.get("transcription_model", "whisper-1")
        self._timeout = realtime_config.get("timeout_s", 15)
        self._api_key_env = api_key_env

    def build_payload(self) -> dict:
        return {
            "model": self._model,
            "voice": self._voice,
            "modalities": ["text", "audio"],
            "instructions": self._instructions,
            "turn_detection": {"type": "server_vad"},
            "input_audio_transcription": {"model": self._transcription_model},
        }

    def create_session(self) -> dict:
        """Create a realtime session and return the provider's JSON body."""
        api_key = os.environ.get(self._api_key_env, "")
        if not api_key:
            raise Misconfigured(f"{self._api_key_env} is not set", stage="session")

        try:
            resp = requests.post(
                f"{self._api_base}/realtime/sessions",
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                json=self.build_payload(),
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError("session", None, str(exc)) from exc

        if resp.status_code >= 400:
            raise ProviderError("session", resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderError("session", resp.status_code, resp.text) from exc
