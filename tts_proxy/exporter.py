"""CSV export of the metric store."""

import csv
import io
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from tts_proxy.errors import EmptyExportError
from tts_proxy.records import MetricRecord

CSV_HEADERS = [
    "Timestamp",
    "Voice",
    "Text Length (chars)",
    "Word Count",
    "Request Format",
    "OpenAI Duration (ms)",
    "Total Duration (ms)",
    "Audio Size (bytes)",
    "Status",
    "Error Message",
    "Client IP",
]


def _cell(value) -> str:
    # Absent fields are empty cells, never "None"
    if value is None:
        return ""
    if isinstance(value, float):
        return str(int(round(value)))
    if isinstance(value, str):
        # One physical line per record
        return " ".join(value.splitlines())
    return str(value)


def record_to_row(record: MetricRecord) -> List[str]:
    return [
        record.timestamp,
        _cell(record.voice),
        _cell(record.text_length),
        _cell(record.word_count),
        _cell(record.request_format),
        _cell(record.upstream_duration),
        _cell(record.total_duration),
        _cell(record.audio_byte_size),
        record.status,
        _cell(record.error_message),
        _cell(record.client_address),
    ]


def to_csv(records: Sequence[MetricRecord]) -> str:
    """
    Render records as a CSV document, one row per record in order.

    Raises:
        EmptyExportError: if there is nothing to export.
    """
    if not records:
        raise EmptyExportError()

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(record_to_row(record))
    return buffer.getvalue().rstrip("\n")


def export_filename(now: Optional[datetime] = None) -> str:
    """Attachment name, e.g. ``tts-server-metrics-2025-01-31T09-15-00.csv``."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H:%M:%S").replace(":", "-")
    return f"tts-server-metrics-{stamp}.csv"
