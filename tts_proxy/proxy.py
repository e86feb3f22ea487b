"""Request orchestration for the synthesis endpoint."""

import time
from typing import Callable, Optional

import structlog
from pydantic import BaseModel
from starlette.background import BackgroundTask
from starlette.responses import JSONResponse, Response

from tts_proxy.config import Settings, get_settings
from tts_proxy.errors import UpstreamError, ValidationError
from tts_proxy.metrics import (
    AUDIO_SIZE,
    PROXY_REQUESTS,
    PROXY_VALIDATION_ERRORS,
    TEXT_LENGTH,
    UPSTREAM_LATENCY,
)
from tts_proxy.records import (
    FailureRecord,
    MetricRecord,
    SuccessRecord,
    content_type_for,
    count_words,
    iso_timestamp,
)
from tts_proxy.snapshot import SnapshotWriter
from tts_proxy.store import MetricStore
from tts_proxy.upstream import SpeechSynthesizer

logger = structlog.get_logger()

GENERIC_FAILURE_MESSAGE = "Failed to generate speech"


class SpeechRequest(BaseModel):
    """Request body for synthesis."""
    text: Optional[str] = None
    voice: Optional[str] = None
    format: Optional[str] = None


class ProxyHandler:
    """
    Proxies one synthesis request to the provider and records its timing.

    Every request that gets past validation produces exactly one metric
    record, appended once the outcome is known. When a successful append
    lands on a batch boundary, the returned response carries a background
    task that snapshots the store after the response has been sent.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        store: MetricStore,
        snapshot_writer: SnapshotWriter,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.synthesizer = synthesizer
        self.store = store
        self.snapshot_writer = snapshot_writer
        self.settings = settings or get_settings()
        self._clock = clock

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def validate(self, request: SpeechRequest) -> str:
        if not request.text:
            raise ValidationError("Text is required")
        return request.text

    async def handle(self, request: SpeechRequest, client_address: Optional[str] = None) -> Response:
        try:
            text = self.validate(request)
        except ValidationError as e:
            PROXY_VALIDATION_ERRORS.inc()
            return JSONResponse(status_code=e.status_code, content={"error": e.message})

        request_start = self._now_ms()
        voice = request.voice or self.settings.default_voice
        audio_format = request.format or self.settings.default_format
        common = dict(
            timestamp=iso_timestamp(request_start),
            text_length=len(text),
            word_count=count_words(text),
            voice=voice,
            request_format=audio_format,
            client_address=client_address or "unknown",
            request_start=request_start,
        )
        TEXT_LENGTH.observe(len(text))

        logger.info("Processing TTS request",
                    voice=voice,
                    format=audio_format,
                    text_length=common["text_length"])

        upstream_request_start = self._now_ms()
        try:
            audio = await self.synthesizer.synthesize(text, voice, audio_format)
        except Exception as e:
            upstream_response_end = self._now_ms()
            failure_time = self._now_ms()
            message = getattr(e, "message", None) or str(e) or type(e).__name__
            record = FailureRecord(
                upstream_request_start=upstream_request_start,
                upstream_response_end=upstream_response_end,
                failure_time=failure_time,
                message=message,
                **common,
            )
            PROXY_REQUESTS.labels(format=audio_format, status="error").inc()
            logger.error("Error generating speech",
                         voice=voice,
                         format=audio_format,
                         error=message,
                         total_ms=round(record.total_duration))

            if isinstance(e, UpstreamError):
                status_code = e.status_code
                content = {"error": e.message}
            else:
                status_code = 500
                content = {"error": GENERIC_FAILURE_MESSAGE, "details": message}
            return JSONResponse(
                status_code=status_code,
                content=content,
                background=self._record(record),
            )

        upstream_response_end = self._now_ms()
        upstream_duration = upstream_response_end - upstream_request_start
        content_type = content_type_for(audio_format)
        completion_time = self._now_ms()
        record = SuccessRecord(
            upstream_request_start=upstream_request_start,
            upstream_response_end=upstream_response_end,
            completion_time=completion_time,
            audio_size=len(audio),
            **common,
        )
        PROXY_REQUESTS.labels(format=audio_format, status="success").inc()
        UPSTREAM_LATENCY.labels(format=audio_format).observe(upstream_duration / 1000)
        AUDIO_SIZE.observe(len(audio))

        logger.info("Synthesis complete",
                    voice=voice,
                    format=audio_format,
                    audio_bytes=len(audio),
                    upstream_ms=round(upstream_duration),
                    total_ms=round(record.total_duration))

        return Response(
            content=audio,
            media_type=content_type,
            headers={"X-Response-Time": str(round(upstream_duration))},
            background=self._record(record),
        )

    def _record(self, record: MetricRecord) -> Optional[BackgroundTask]:
        """Append ``record``; return a snapshot task when a batch of successes completes."""
        snapshot = self.store.append(record)
        if snapshot is None:
            return None
        return BackgroundTask(self.snapshot_writer.flush, snapshot)
