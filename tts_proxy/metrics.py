"""Prometheus metrics for TTS proxy - defined once to avoid duplicate registration."""
from prometheus_client import Counter, Histogram

PROXY_REQUESTS = Counter(
    'tts_proxy_requests',
    'Total proxied synthesis requests',
    ['format', 'status']
)
PROXY_VALIDATION_ERRORS = Counter(
    'tts_proxy_validation_errors',
    'Requests rejected before reaching the provider'
)
UPSTREAM_LATENCY = Histogram(
    'tts_proxy_upstream_latency_seconds',
    'Time spent waiting on the speech provider',
    ['format'],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0]
)
TEXT_LENGTH = Histogram(
    'tts_proxy_text_length_chars',
    'Length of text submitted for synthesis',
    buckets=[10, 50, 100, 200, 500, 1000, 4096]
)
AUDIO_SIZE = Histogram(
    'tts_proxy_audio_size_bytes',
    'Size of audio returned to callers',
    buckets=[1024, 10240, 51200, 102400, 512000, 1048576, 5242880]
)
SNAPSHOT_WRITES = Counter(
    'tts_proxy_snapshot_writes',
    'Metric snapshot flush attempts',
    ['status']
)
