"""TTS Proxy - metrics-instrumented front for the OpenAI speech API."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import structlog

from tts_proxy import __version__
from tts_proxy.config import Settings, get_settings
from tts_proxy.errors import EmptyExportError
from tts_proxy.exporter import export_filename, to_csv
from tts_proxy.proxy import ProxyHandler, SpeechRequest
from tts_proxy.records import FORMAT_CONTENT_TYPES, VOICES
from tts_proxy.snapshot import SnapshotWriter
from tts_proxy.store import MetricStore
from tts_proxy.summary import summarize
from tts_proxy.upstream import OpenAISpeechClient, SpeechSynthesizer


def configure_logging(level: str = "INFO"):
    """Configure structlog JSON logging over the stdlib logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(get_settings().log_level)

logger = structlog.get_logger()
router = APIRouter()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings
    logger.info("Starting TTS Proxy",
                host=settings.service_host,
                port=settings.http_port,
                upstream=settings.openai_api_url)
    if settings.openai_api_key:
        logger.info("OpenAI API key set")
    else:
        logger.warning("OpenAI API key NOT SET - set OPENAI_API_KEY in the environment or .env")

    synthesizer = app.state.synthesizer
    if hasattr(synthesizer, "initialize"):
        await synthesizer.initialize()

    yield

    # Shutdown
    logger.info("Shutting down TTS Proxy")
    store: MetricStore = app.state.store
    if store.size():
        app.state.snapshot_writer.flush(store.all())
    if hasattr(synthesizer, "close"):
        await synthesizer.close()


@router.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness check."""
    return "Server is running"


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    settings: Settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": __version__,
        "api_key_configured": bool(settings.openai_api_key),
        "records": request.app.state.store.size(),
    }


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.post("/api/text-to-speech")
async def text_to_speech(body: SpeechRequest, request: Request):
    """
    Synthesize text to speech via the upstream provider.

    Returns the complete audio payload with ``Content-Type`` matching the
    requested format and the provider latency in ``X-Response-Time``.
    """
    proxy: ProxyHandler = request.app.state.proxy
    client_address = request.client.host if request.client else None
    return await proxy.handle(body, client_address)


@router.get("/api/performance-metrics")
async def performance_metrics(request: Request):
    """Every recorded request, in completion order."""
    return request.app.state.store.to_dicts()


@router.get("/api/performance-summary")
async def performance_summary(request: Request):
    """Outcome counts and latency percentiles across recorded requests."""
    return summarize(request.app.state.store.all())


@router.get("/api/export-metrics")
async def export_metrics(request: Request):
    """Download recorded requests as CSV."""
    try:
        content = to_csv(request.app.state.store.all())
    except EmptyExportError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={export_filename()}"
        }
    )


@router.get("/api/voices")
async def list_voices(request: Request):
    """List voices and audio formats accepted by the provider."""
    settings: Settings = request.app.state.settings
    return {
        "voices": list(VOICES),
        "formats": list(FORMAT_CONTENT_TYPES),
        "default_voice": settings.default_voice,
        "default_format": settings.default_format,
    }


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning("Rejected malformed request", path=request.url.path)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def create_app(
    settings: Optional[Settings] = None,
    synthesizer: Optional[SpeechSynthesizer] = None,
    store: Optional[MetricStore] = None,
    snapshot_writer: Optional[SnapshotWriter] = None,
) -> FastAPI:
    """Build the application with its collaborators."""
    settings = settings or get_settings()
    if synthesizer is None:
        synthesizer = OpenAISpeechClient(settings)
    if store is None:
        store = MetricStore(batch_size=settings.snapshot_batch_size)
    if snapshot_writer is None:
        snapshot_writer = SnapshotWriter(settings.metrics_dir)

    app = FastAPI(
        title="TTS Proxy",
        description="Metrics-instrumented proxy for OpenAI text-to-speech",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.synthesizer = synthesizer
    app.state.store = store
    app.state.snapshot_writer = snapshot_writer
    app.state.proxy = ProxyHandler(synthesizer, store, snapshot_writer, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Response-Time", "Content-Disposition"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)
    return app


def main():
    """Entry point for the ``tts-proxy`` command."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "tts_proxy.main:app",
        host=settings.service_host,
        port=settings.http_port,
        reload=settings.debug
    )


app = create_app()


if __name__ == "__main__":
    main()
