"""Client for the upstream speech-synthesis provider."""

from typing import Optional, Protocol

import httpx
import structlog

from tts_proxy.config import Settings, get_settings
from tts_proxy.errors import TransportError, UpstreamError

logger = structlog.get_logger()

GENERIC_UPSTREAM_MESSAGE = "OpenAI API error"

# Status reported for provider answers that are neither audio nor an error
BAD_GATEWAY = 502


class SpeechSynthesizer(Protocol):
    """Anything that turns text into a buffered audio payload."""

    async def synthesize(self, text: str, voice: str, audio_format: str) -> bytes:
        ...


def extract_error_message(response: httpx.Response) -> str:
    """
    Pull ``error.message`` out of a provider error body.

    Falls back to a generic message when the body is not JSON or does not
    have the expected shape. Never raises.
    """
    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type:
        return GENERIC_UPSTREAM_MESSAGE

    try:
        body = response.json()
    except ValueError:
        logger.warning("Undecodable provider error body",
                       status=response.status_code)
        return GENERIC_UPSTREAM_MESSAGE

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    return GENERIC_UPSTREAM_MESSAGE


class OpenAISpeechClient:
    """
    OpenAI ``/audio/speech`` client.

    Features:
    - Shared connection pool across requests
    - Provider error bodies decoded into UpstreamError
    - No request timeout unless one is configured
    """

    def __init__(self, settings: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def initialize(self):
        """Initialize HTTP client."""
        if self._http_client is not None:
            return
        self._http_client = httpx.AsyncClient(
            base_url=self.settings.openai_api_url,
            timeout=httpx.Timeout(self.settings.upstream_timeout_seconds),
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
            transport=self._transport,
        )

    async def close(self):
        """Close connections."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.settings.openai_api_key:
            headers["Authorization"] = f"Bearer {self.settings.openai_api_key}"
        return headers

    async def synthesize(self, text: str, voice: str, audio_format: str) -> bytes:
        """
        Synthesize ``text`` and return the complete audio payload.

        Args:
            text: Text to speak
            voice: Provider voice identifier
            audio_format: Provider response format (mp3, wav, ...)

        Returns:
            Audio bytes in the requested format

        Raises:
            UpstreamError: the provider answered with an error status
            TransportError: no response could be obtained
        """
        if self._http_client is None:
            await self.initialize()

        payload = {
            "model": self.settings.tts_model,
            "input": text,
            "voice": voice,
            "response_format": audio_format,
        }

        try:
            response = await self._http_client.post(
                "/audio/speech",
                headers=self._headers(),
                json=payload
            )
            response.raise_for_status()
            return response.content

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status < 400:
                # Redirects are not followed; there is no audio to relay
                logger.error("Unexpected Speech API status", status=status)
                raise UpstreamError(
                    BAD_GATEWAY, f"Unexpected upstream status {status}"
                ) from e
            message = extract_error_message(e.response)
            logger.error("Speech API error", status=status, error=message)
            raise UpstreamError(status, message) from e
        except httpx.RequestError as e:
            logger.error("Speech API unreachable",
                         error=str(e) or type(e).__name__)
            raise TransportError(str(e) or type(e).__name__, cause=e) from e
