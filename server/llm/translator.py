"""Chat-completion client used for subtitle translation."""

import logging
import os
import time

import requests

from server.errors import ProviderError
from server.llm.prompt import build_messages, get_system_prompt

log = logging.getLogger(__name__)


class TranslationClient:
    """Blocking HTTP client for an OpenAI-compatible chat completions API."""

    def __init__(self, translation_config: dict, api_key_env: str = "OPENAI_API_KEY"):
        self._model = translation_config["model"]
        self._api_base = translation_config["api_base"].rstrip("/")
        self._max_tokens = translation_config.get("max_tokens", 200)
        self._temperature = translation_config.get("temperature", 0.2)
        self._timeout = translation_config.get("timeout_s", 30)
        self._system_prompt = get_system_prompt(
            translation_config.get("source_language", "de"),
            translation_config.get("target_language", "en"),
        )
        self._api_key_env = api_key_env

    @property
    def api_key(self) -> str:
        return os.environ.get(self._api_key_env, "")

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def translate(self, text: str) -> dict:
        """Translate one accepted transcript.

        Returns dict with keys: text, model, elapsed_s
        """
        payload = {
            "model": self._model,
            "messages": build_messages(self._system_prompt, text),
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

        t0 = time.monotonic()
        try:
            resp = requests.post(
                f"{self._api_base}/chat/completions",
                headers=self._headers(),
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            log.warning("Translation request failed: %s", exc)
            raise ProviderError("translation", None, str(exc)) from exc

        if resp.status_code >= 400:
            raise ProviderError("translation", resp.status_code, resp.text)

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProviderError("translation", resp.status_code, resp.text) from exc

        return {
            "text": content.strip(),
            "model": data.get("model", self._model),
            "elapsed_s": time.monotonic() - t0,
        }
