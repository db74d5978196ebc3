"""Speech-to-text via the OpenAI-compatible transcription endpoint."""

import logging
import os
import time
from dataclasses import dataclass

import requests

from server.errors import ProviderError

log = logging.getLogger(__name__)


@dataclass
class AudioClip:
    """One uploaded audio payload, owned by a single pipeline run."""

    data: bytes
    content_type: str = "audio/webm"
    filename: str = "audio.webm"

    def __len__(self) -> int:
        return len(self.data)


class TranscriptionClient:
    """Blocking HTTP client for the speech-recognition provider."""

    def __init__(self, stt_config: dict, api_key_env: str = "OPENAI_API_KEY"):
        self._api_base = stt_config["api_base"].rstrip("/")
        self._model = stt_config["model"]
        self._language = stt_config.get("language", "de")
        self._prompt = stt_config.get("prompt") or ""
        self._timeout = stt_config.get("timeout_s", 30)
        self._api_key_env = api_key_env

    @property
    def api_key(self) -> str:
        # Read per call so a missing key is reported per request, not at startup
        return os.environ.get(self._api_key_env, "")

    def transcribe(self, clip: AudioClip) -> dict:
        """Transcribe one audio clip.

        Returns dict with keys: text, language, transcription_time_s.
        ``text`` is empty when the provider heard no speech.
        """
        data = {
            "model": self._model,
            "language": self._language,
            "temperature": "0",
            "response_format": "json",
        }
        if self._prompt:
            data["prompt"] = self._prompt

        t0 = time.monotonic()
        try:
            resp = requests.post(
                f"{self._api_base}/audio/transcriptions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                data=data,
                files={"file": (clip.filename, clip.data, clip.content_type)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            log.warning("Transcription request failed: %s", exc)
            raise ProviderError("stt", None, str(exc)) from exc

        if resp.status_code >= 400:
            raise ProviderError("stt", resp.status_code, resp.text)

        try:
            text = resp.json().get("text") or ""
        except ValueError as exc:
            raise ProviderError("stt", resp.status_code, resp.text) from exc

        return {
            "text": text.strip(),
            "language": self._language,
            "transcription_time_s": time.monotonic() - t0,
        }
