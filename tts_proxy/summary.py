"""Aggregate statistics over the metric store."""

import math
import statistics
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from tts_proxy.records import MetricRecord

PERCENTILES = (90, 95, 99)


def percentile(sorted_values: List[float], pct: float) -> float:
    """Nearest-rank percentile of an ascending, non-empty list."""
    rank = math.ceil(pct * len(sorted_values) / 100)
    return sorted_values[max(rank, 1) - 1]


@dataclass
class AggregateStats:
    """Distribution of one record field across the store."""
    count: int = 0
    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    median: float = 0.0
    p90: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    stddev: float = 0.0

    @classmethod
    def from_values(cls, values: Iterable[Optional[float]]) -> "AggregateStats":
        """
        Build stats from raw record fields.

        Absent fields (None) are skipped, so optional fields such as the
        upstream duration of a failed request can be passed straight in.
        """
        present = sorted(float(v) for v in values if v is not None)
        if not present:
            return cls()

        stats = cls(
            count=len(present),
            min=present[0],
            max=present[-1],
            mean=statistics.fmean(present),
            median=statistics.median(present),
            stddev=statistics.stdev(present) if len(present) > 1 else 0.0,
        )
        for pct in PERCENTILES:
            setattr(stats, f"p{pct}", percentile(present, pct))
        return stats

    def to_dict(self) -> Dict[str, Any]:
        return {key: round(value, 3) if isinstance(value, float) else value
                for key, value in asdict(self).items()}


def summarize(records: Sequence[MetricRecord]) -> Dict[str, Any]:
    """
    Summarize request outcomes and latencies.

    Upstream durations and audio sizes only exist on successful requests;
    total duration covers every request.
    """
    outcomes = Counter(r.status for r in records)
    total = len(records)

    return {
        "total_requests": total,
        "success_count": outcomes["success"],
        "error_count": outcomes["error"],
        "success_rate": round(outcomes["success"] / total, 4) if total else 0.0,
        "by_voice": dict(Counter(r.voice for r in records)),
        "by_format": dict(Counter(r.request_format for r in records)),
        "upstream_duration_ms": AggregateStats.from_values(
            r.upstream_duration for r in records
        ).to_dict(),
        "total_duration_ms": AggregateStats.from_values(
            r.total_duration for r in records
        ).to_dict(),
        "audio_size_bytes": AggregateStats.from_values(
            r.audio_byte_size for r in records
        ).to_dict(),
    }
