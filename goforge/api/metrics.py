"""In-process service counters exposed at ``/metrics``."""

from __future__ import annotations

import time
from collections import Counter
from typing import Any


class ServiceMetrics:
    """Request and generation counters for one application instance.

    Instances are created by ``create_app`` and passed to whatever records
    into them; there is no module-level registry.
    """

    def __init__(self) -> None:
        self.started_at = time.monotonic()
        self.requests_by_method: Counter[str] = Counter()
        self.requests_by_path: Counter[str] = Counter()
        self.requests_by_status: Counter[int] = Counter()
        self.request_seconds = 0.0
        self.generations_succeeded = 0
        self.generations_failed = 0
        self.generation_seconds = 0.0
        self.bytes_generated = 0

    def record_request(
        self, method: str, path: str, status_code: int, duration: float
    ) -> None:
        self.requests_by_method[method.upper()] += 1
        self.requests_by_path[path] += 1
        self.requests_by_status[status_code] += 1
        self.request_seconds += duration

    def record_generation(self, *, success: bool, duration: float, size: int = 0) -> None:
        if success:
            self.generations_succeeded += 1
            self.bytes_generated += size
        else:
            self.generations_failed += 1
        self.generation_seconds += duration

    @property
    def total_requests(self) -> int:
        return sum(self.requests_by_status.values())

    def snapshot(self) -> dict[str, Any]:
        """JSON-serialisable view of every counter."""
        generations = self.generations_succeeded + self.generations_failed
        return {
            "uptime_seconds": round(time.monotonic() - self.started_at, 3),
            "requests": {
                "total": self.total_requests,
                "by_method": dict(sorted(self.requests_by_method.items())),
                "by_path": dict(sorted(self.requests_by_path.items())),
                "by_status": {
                    str(code): count for code, count in sorted(self.requests_by_status.items())
                },
                "total_duration_seconds": round(self.request_seconds, 6),
            },
            "generations": {
                "total": generations,
                "succeeded": self.generations_succeeded,
                "failed": self.generations_failed,
                "total_duration_seconds": round(self.generation_seconds, 6),
                "average_duration_seconds": (
                    round(self.generation_seconds / generations, 6) if generations else 0.0
                ),
                "bytes_total": self.bytes_generated,
            },
        }
