import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from db.enums import IngestJob


@dataclass
class JobMetrics:
    job: IngestJob
    start_time: float = field(default_factory=time.monotonic)
    end_time: float | None = None
    counts: Counter = field(default_factory=Counter)
    error_counts: Counter = field(default_factory=Counter)
    skip_reasons: Counter = field(default_factory=Counter)
    quality_stats: Counter = field(default_factory=Counter)

    def start(self):
        """Reset and start new metrics collection"""
        self.start_time = time.monotonic()
        self.end_time = None
        self.counts.clear()
        self.error_counts.clear()
        self.skip_reasons.clear()
        self.quality_stats.clear()

    def stop(self):
        self.end_time = time.monotonic()

    @property
    def duration_ms(self) -> int:
        end = self.end_time if self.end_time is not None else time.monotonic()
        return int((end - self.start_time) * 1000)

    def increment(self, name: str, count: int = 1):
        self.counts[name] += count

    def record_error(self, error_type: str):
        self.error_counts[error_type] += 1

    def record_skip(self, reason: str):
        self.skip_reasons[reason] += 1

    def record_quality(self, quality: str):
        self.quality_stats[getattr(quality, "value", quality)] += 1

    def get_summary(self) -> dict[str, Any]:
        return {
            "job": self.job.value,
            "duration_ms": self.duration_ms,
            "counts": dict(self.counts),
            "error_counts": dict(self.error_counts),
            "skip_reasons": dict(self.skip_reasons),
            "quality_distribution": dict(self.quality_stats),
        }

    def format_summary(self) -> str:
        summary = self.get_summary()
        lines = [
            "",
            "=" * 60,
            f"{self.job.value.upper()} Job Metrics Summary".center(60),
            "=" * 60,
            f"Duration: {summary['duration_ms'] / 1000:.2f} seconds",
            "",
        ]

        sections = (
            ("Counts", self.counts),
            ("Error Distribution", self.error_counts),
            ("Skip Reasons", self.skip_reasons),
            ("Quality Distribution", self.quality_stats),
        )
        for title, counter in sections:
            if not counter:
                continue
            lines.append(f"{title}:")
            for i, (name, count) in enumerate(counter.most_common(), 1):
                prefix = "  └─" if i == len(counter) else "  ├─"
                lines.append(f"{prefix} {name:<24} : {count:>4}")
            lines.append("")

        lines.extend(["=" * 60, ""])
        return "\n".join(lines)

    def log_summary(self, logger):
        """Log the metrics summary using the provided logger"""
        logger.info(self.format_summary())
