"""Per-submission subtitle pipeline: transcribe, filter, translate, publish.

Each submission runs independently on the event loop. The two provider calls
are blocking HTTP requests pushed to worker threads; the delayed ``final``
publish is a detached task that outlives the request that scheduled it.
"""

import asyncio
import logging
from dataclasses import dataclass

from shared import protocol
from server.bus import EventKind, SubtitleBus, SubtitleEvent
from server.errors import BadRequest, Misconfigured, PipelineError
from server.llm.translator import TranslationClient
from server.metrics import MetricsLogger
from server.stt.filters import check_hallucination
from server.stt.openai_stt import AudioClip, TranscriptionClient
from server.telemetry import stt_metrics_payload, translation_metrics_payload

log = logging.getLogger(__name__)

OUTCOME_TRANSLATED = "translated"
OUTCOME_NO_SPEECH = "no_speech"
OUTCOME_FILTERED = "filtered"
OUTCOME_EMPTY_TRANSLATION = "empty_translation"

DEFAULT_FINAL_DELAY_S = 1.5


@dataclass
class PipelineResult:
    outcome: str
    source_text: str = ""
    target_text: str = ""
    filtered_text: str | None = None

    def to_response(self) -> dict:
        return protocol.make_result(self.source_text, self.target_text, self.filtered_text)


class SubtitlePipeline:
    """Turns audio submissions into staged subtitle events on the bus."""

    def __init__(
        self,
        stt: TranscriptionClient,
        translator: TranslationClient,
        bus: SubtitleBus,
        metrics: MetricsLogger,
        config: dict,
    ):
        self._stt = stt
        self._translator = translator
        self._bus = bus
        self._metrics = metrics
        self._pending_finals: set[asyncio.Task] = set()

        subtitles_cfg = config.get("subtitles", {})
        try:
            final_delay_s = float(subtitles_cfg.get("final_delay_s", DEFAULT_FINAL_DELAY_S))
        except (TypeError, ValueError):
            final_delay_s = DEFAULT_FINAL_DELAY_S
        self._final_delay_s = max(0.0, final_delay_s)
        self._broadcast_source = bool(subtitles_cfg.get("broadcast_source_partial", False))

        metrics_cfg = config.get("metrics", {})
        self._log_transcripts = metrics_cfg.get("log_transcripts", False)
        self._log_translations = metrics_cfg.get("log_translations", False)

    @property
    def pending_finals(self) -> int:
        return len(self._pending_finals)

    async def process(self, clip: AudioClip | None) -> PipelineResult:
        """Run one submission to completion, up to scheduling its final event.

        Raises BadRequest, Misconfigured or ProviderError; no event is
        published for a submission that raises.
        """
        if clip is None or len(clip) == 0:
            raise BadRequest("No audio received.", stage="ingest")
        if not self._stt.api_key or not self._translator.api_key:
            raise Misconfigured("Provider API key is not configured.", stage="ingest")

        stage = "stt"
        try:
            # ── Transcribe ──────────────────────────────────────
            stt_result = await asyncio.to_thread(self._stt.transcribe, clip)
            transcript = stt_result["text"]
            log.info("STT: '%s' (%d bytes, %.2fs)",
                     transcript[:80], len(clip), stt_result["transcription_time_s"])
            self._metrics.log(
                "stt_complete",
                **stt_metrics_payload(stt_result, include_text=self._log_transcripts),
            )

            if not transcript.strip():
                log.info("No speech detected")
                return PipelineResult(OUTCOME_NO_SPEECH)

            # ── Filter ──────────────────────────────────────────
            rejected, reason = check_hallucination(transcript)
            if rejected:
                log.info("STT rejected: %s", reason)
                rejected_payload = {"reason": reason, "text_chars": len(transcript)}
                if self._log_transcripts:
                    rejected_payload["text"] = transcript
                self._metrics.log("stt_rejected", **rejected_payload)
                return PipelineResult(OUTCOME_FILTERED, filtered_text=transcript)

            if self._broadcast_source:
                self._publish(SubtitleEvent(EventKind.SOURCE_PARTIAL, transcript))

            # ── Translate ───────────────────────────────────────
            stage = "translation"
            translation = await asyncio.to_thread(self._translator.translate, transcript)
            translated = translation["text"]
            log.info("Translation: '%s' (%.2fs)", translated[:80], translation["elapsed_s"])
            self._metrics.log(
                "translation_complete",
                **translation_metrics_payload(translation, include_text=self._log_translations),
            )

            if not translated:
                log.info("Empty translation, nothing to publish")
                return PipelineResult(OUTCOME_EMPTY_TRANSLATION, source_text=transcript)

            # ── Publish ─────────────────────────────────────────
            stage = "publish"
            self._publish(SubtitleEvent(EventKind.TRANSLATION, translated))
            self._schedule_final(translated)
            return PipelineResult(OUTCOME_TRANSLATED, transcript, translated)

        except PipelineError as e:
            log.error("Pipeline %s failed: %s", stage, e)
            self._metrics.log("pipeline_error", code=e.code, stage=stage)
            raise
        except Exception:
            log.exception("Pipeline %s failed unexpectedly", stage)
            self._metrics.log("pipeline_error", code="pipeline_internal_error", stage=stage)
            raise

    async def shutdown(self) -> None:
        """Cancel final events that have not fired yet."""
        pending = list(self._pending_finals)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _publish(self, event: SubtitleEvent) -> None:
        viewers = self._bus.publish(event)
        log.debug("Published %s to %d viewer(s)", event.kind.value, viewers)
        self._metrics.log("subtitle_published", kind=event.kind.value, viewers=viewers)

    def _schedule_final(self, text: str) -> None:
        task = asyncio.create_task(self._publish_final_later(text))
        self._pending_finals.add(task)
        task.add_done_callback(self._pending_finals.discard)

    async def _publish_final_later(self, text: str) -> None:
        await asyncio.sleep(self._final_delay_s)
        self._publish(SubtitleEvent(EventKind.FINAL, text))
