"""FastAPI application: audio ingestion, subtitle WebSocket bus, realtime sessions."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Request, UploadFile, WebSocket
from fastapi.responses import JSONResponse

from shared import protocol
from server.bus import SubtitleBus
from server.errors import PipelineError
from server.llm.realtime import RealtimeSessionClient
from server.llm.translator import TranslationClient
from server.metrics import MetricsLogger
from server.pipeline import SubtitlePipeline
from server.stt.openai_stt import AudioClip, TranscriptionClient
from server.viewer_handler import ViewerHandler

log = logging.getLogger(__name__)


def create_app(
    config: dict,
    stt: TranscriptionClient | None = None,
    translator: TranslationClient | None = None,
    realtime: RealtimeSessionClient | None = None,
) -> FastAPI:
    """Wire the server components and return the configured FastAPI app."""
    api_key_env = config.get("provider", {}).get("api_key_env", "OPENAI_API_KEY")
    bus_cfg = config.get("bus", {})

    if stt is None:
        log.info("Initializing STT client (model=%s)...", config["stt"]["model"])
        stt = TranscriptionClient(config["stt"], api_key_env=api_key_env)
    if translator is None:
        log.info("Initializing translation client (model=%s)...", config["translation"]["model"])
        translator = TranslationClient(config["translation"], api_key_env=api_key_env)
    if realtime is None:
        realtime = RealtimeSessionClient(config["realtime"], api_key_env=api_key_env)

    bus = SubtitleBus(queue_size=bus_cfg.get("queue_size", 64))
    metrics = MetricsLogger(config.get("metrics", {}))
    pipeline = SubtitlePipeline(stt, translator, bus, metrics, config)
    allow_relay = bus_cfg.get("allow_relay", True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await pipeline.shutdown()
        bus.close()
        await asyncio.to_thread(metrics.flush)

    app = FastAPI(title="Live Subtitle Bridge", lifespan=lifespan)
    app.state.bus = bus
    app.state.pipeline = pipeline
    app.state.metrics = metrics

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=protocol.make_error("Internal server error.", code="internal_error"),
        )

    @app.post("/transcribe")
    async def transcribe(audio: UploadFile | None = File(None)):
        """Transcribe, filter and translate one clip, then broadcast it."""
        clip = None
        if audio is not None:
            data = await audio.read()
            clip = AudioClip(
                data=data,
                content_type=audio.content_type or "application/octet-stream",
                filename=audio.filename or "audio.webm",
            )
        result = await pipeline.process(clip)
        return result.to_response()

    @app.post("/session")
    async def create_session():
        """Mint an ephemeral realtime session for a browser publisher."""
        log.info("Creating realtime session...")
        session = await asyncio.to_thread(realtime.create_session)
        log.info("Realtime session created: %s", session.get("id", "ok"))
        return session

    @app.get("/health")
    async def health():
        return {"status": "ok", "viewers": bus.viewer_count}

    @app.websocket("/ws/subs")
    async def subtitles_endpoint(ws: WebSocket):
        """Subtitle bus: viewers receive events, publishers may relay frames."""
        handler = ViewerHandler(ws, bus, allow_relay=allow_relay)
        await handler.handle()
        log.info("Connection closed: %s", ws.client)

    return app
