import pytest
import requests

from server.errors import Misconfigured, ProviderError
from server.llm.realtime import RealtimeSessionClient
from server.llm.translator import TranslationClient
from server.stt.openai_stt import AudioClip, TranscriptionClient


class FakeResponse:
    def __init__(self, status_code: int, body=None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class RecordingPost:
    def __init__(self, response=None, error=None):
        self._response = response
        self._error = error
        self.calls: list[tuple[tuple, dict]] = []

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        if self._error:
            raise self._error
        return self._response


def _stt() -> TranscriptionClient:
    return TranscriptionClient({
        "api_base": "https://api.example.test/v1/",
        "model": "whisper-1",
        "language": "de",
        "prompt": "Gespräch auf Deutsch",
        "timeout_s": 1,
    })


def _translator() -> TranslationClient:
    return TranslationClient({
        "api_base": "https://api.example.test/v1",
        "model": "gpt-4o-mini",
        "max_tokens": 64,
        "temperature": 0.1,
        "timeout_s": 1,
    })


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")


# ── Transcription ────────────────────────────────────────────────

def test_transcribe_sends_language_hint_and_zero_temperature(monkeypatch) -> None:
    post = RecordingPost(FakeResponse(200, {"text": " Hallo, wie geht es dir? "}))
    monkeypatch.setattr("server.stt.openai_stt.requests.post", post)

    out = _stt().transcribe(AudioClip(b"abc", "audio/webm", "clip.webm"))

    assert out["text"] == "Hallo, wie geht es dir?"
    (url,), kwargs = post.calls[0]
    assert url == "https://api.example.test/v1/audio/transcriptions"
    assert kwargs["data"]["language"] == "de"
    assert kwargs["data"]["temperature"] == "0"
    assert kwargs["data"]["prompt"] == "Gespräch auf Deutsch"
    assert kwargs["files"]["file"] == ("clip.webm", b"abc", "audio/webm")
    assert kwargs["headers"]["Authorization"] == "Bearer test-key"


def test_transcribe_empty_result_is_not_an_error(monkeypatch) -> None:
    monkeypatch.setattr("server.stt.openai_stt.requests.post", RecordingPost(FakeResponse(200, {"text": "  "})))

    assert _stt().transcribe(AudioClip(b"abc"))["text"] == ""


def test_transcribe_non_success_raises_provider_error_once(monkeypatch) -> None:
    post = RecordingPost(FakeResponse(429, text="rate limited"))
    monkeypatch.setattr("server.stt.openai_stt.requests.post", post)

    with pytest.raises(ProviderError) as excinfo:
        _stt().transcribe(AudioClip(b"abc"))

    assert excinfo.value.status == 429
    assert excinfo.value.body == "rate limited"
    assert len(post.calls) == 1


def test_transcribe_transport_error_becomes_provider_error(monkeypatch) -> None:
    post = RecordingPost(error=requests.ConnectionError("refused"))
    monkeypatch.setattr("server.stt.openai_stt.requests.post", post)

    with pytest.raises(ProviderError) as excinfo:
        _stt().transcribe(AudioClip(b"abc"))

    assert excinfo.value.status is None


def test_api_key_is_read_per_call(monkeypatch) -> None:
    client = _stt()
    monkeypatch.delenv("OPENAI_API_KEY")
    assert client.api_key == ""
    monkeypatch.setenv("OPENAI_API_KEY", "later")
    assert client.api_key == "later"


# ── Translation ──────────────────────────────────────────────────

def test_translate_strips_message_content(monkeypatch) -> None:
    body = {"model": "gpt-4o-mini", "choices": [{"message": {"content": "\n Hello, how are you? \n"}}]}
    post = RecordingPost(FakeResponse(200, body))
    monkeypatch.setattr("server.llm.translator.requests.post", post)

    out = _translator().translate("Hallo, wie geht es dir?")

    assert out["text"] == "Hello, how are you?"
    (url,), kwargs = post.calls[0]
    assert url == "https://api.example.test/v1/chat/completions"
    payload = kwargs["json"]
    assert payload["max_tokens"] == 64
    assert payload["temperature"] == 0.1
    assert payload["messages"][0]["role"] == "system"
    assert "translation only" in payload["messages"][0]["content"]
    assert payload["messages"][1] == {"role": "user", "content": "Hallo, wie geht es dir?"}


def test_translate_http_500_is_not_retried(monkeypatch) -> None:
    post = RecordingPost(FakeResponse(500, text="boom"))
    monkeypatch.setattr("server.llm.translator.requests.post", post)

    with pytest.raises(ProviderError) as excinfo:
        _translator().translate("Hallo")

    assert excinfo.value.status == 500
    assert excinfo.value.code == "provider_translation_failed"
    assert len(post.calls) == 1


def test_translate_malformed_body_is_provider_error(monkeypatch) -> None:
    monkeypatch.setattr("server.llm.translator.requests.post", RecordingPost(FakeResponse(200, {"choices": []})))

    with pytest.raises(ProviderError):
        _translator().translate("Hallo")


# ── Realtime sessions ────────────────────────────────────────────

def _realtime() -> RealtimeSessionClient:
    return RealtimeSessionClient({"api_base": "https://api.example.test/v1", "model": "rt-model"})


def test_create_session_returns_provider_json(monkeypatch) -> None:
    post = RecordingPost(FakeResponse(200, {"id": "sess_1", "client_secret": {"value": "eph"}}))
    monkeypatch.setattr("server.llm.realtime.requests.post", post)

    session = _realtime().create_session()

    assert session["id"] == "sess_1"
    payload = post.calls[0][1]["json"]
    assert payload["model"] == "rt-model"
    assert payload["turn_detection"] == {"type": "server_vad"}
    assert payload["input_audio_transcription"] == {"model": "whisper-1"}


def test_create_session_without_key_is_misconfigured(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY")
    with pytest.raises(Misconfigured):
        _realtime().create_session()


def test_create_session_surfaces_upstream_status(monkeypatch) -> None:
    monkeypatch.setattr("server.llm.realtime.requests.post", RecordingPost(FakeResponse(403, text="denied")))

    with pytest.raises(ProviderError) as excinfo:
        _realtime().create_session()

    assert excinfo.value.status == 403
    assert excinfo.value.to_payload()["upstream_body"] == "denied"
