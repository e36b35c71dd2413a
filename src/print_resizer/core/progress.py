"""进度更新与耗时估算。"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, Optional

DEFAULT_MS_PER_ITEM = 2000.0
HISTORY_WINDOW = 5


@dataclass(slots=True)
class TimeEstimate:
    """某一时刻的耗时估算，每次进度刷新时重新计算。"""

    elapsed_ms: float
    average_ms_per_item: float
    remaining_ms: float
    total_ms: float
    eta: datetime


@dataclass(slots=True)
class ProgressUpdate:
    """批处理过程中的进度信息。"""

    stage: str
    current: int
    total: int
    percentage: int
    message: Optional[str] = None
    time_estimate: Optional[TimeEstimate] = None


ProgressCallback = Optional[Callable[[ProgressUpdate], None]]


class TimeEstimator:
    """根据最近若干项的耗时推算剩余时间与预计完成时刻。"""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._durations: Deque[float] = deque(maxlen=HISTORY_WINDOW)
        self._started_at = 0.0
        self._last_completion = 0.0

    def start(self) -> None:
        now = self._now_ms()
        self._started_at = now
        self._last_completion = now
        self._durations.clear()

    def record_item_completion(self) -> None:
        """记录自上一次完成（或开始）以来的耗时。"""

        now = self._now_ms()
        self._durations.append(now - self._last_completion)
        self._last_completion = now

    def estimate(self, current_index: int, total_count: int) -> TimeEstimate:
        now = self._now_ms()
        elapsed = now - self._started_at

        if self._durations:
            average = sum(self._durations) / len(self._durations)
        elif current_index > 0:
            average = elapsed / current_index
        else:
            average = DEFAULT_MS_PER_ITEM

        remaining = (total_count - current_index) * average
        return TimeEstimate(
            elapsed_ms=elapsed,
            average_ms_per_item=average,
            remaining_ms=remaining,
            total_ms=elapsed + remaining,
            eta=datetime.fromtimestamp((now + remaining) / 1000),
        )

    def _now_ms(self) -> float:
        return self._clock() * 1000
