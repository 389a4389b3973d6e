# app/core/performance.py

import time
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Deque, List, Optional

from fastapi import Request
from loguru import logger

from app.core.config import settings


@dataclass(frozen=True)
class PerformanceSample:
    endpoint: str
    method: str
    duration_ms: float
    status: int
    timestamp: datetime


class PerformanceBuffer:
    """
    Bounded in-memory ring of recent request samples, oldest evicted first.
    Diagnostics only; nothing in the authorization path reads it.
    """

    def __init__(self, maxlen: int = 1000, slow_ms: int = 5000):
        self._samples: Deque[PerformanceSample] = deque(maxlen=maxlen)
        self.slow_ms = slow_ms

    def __len__(self):
        return len(self._samples)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    def record(self, endpoint: str, method: str, duration_ms: float, status: int) -> PerformanceSample:
        sample = PerformanceSample(
            endpoint=endpoint,
            method=method,
            duration_ms=duration_ms,
            status=status,
            timestamp=datetime.now(timezone.utc),
        )
        self._samples.append(sample)

        if duration_ms > self.slow_ms:
            logger.warning(f"Slow request detected: {method} {endpoint} took {duration_ms:.0f}ms")

        return sample

    def recent(self, limit: int = 100) -> List[dict]:
        samples = list(self._samples)[-limit:]
        return [asdict(s) for s in samples]

    def average_ms(self, endpoint: Optional[str] = None) -> float:
        relevant = [s.duration_ms for s in self._samples if endpoint is None or s.endpoint == endpoint]
        if not relevant:
            return 0.0
        return sum(relevant) / len(relevant)

    def clear(self):
        self._samples.clear()


performance_buffer = PerformanceBuffer(
    maxlen=settings.PERF_BUFFER_SIZE,
    slow_ms=settings.SLOW_REQUEST_MS,
)


async def track_performance(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    performance_buffer.record(request.url.path, request.method, duration_ms, response.status_code)
    return response
