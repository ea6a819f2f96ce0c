"""
辅助指标接收端

- LoggingSink: 只记录日志不发送，没有 StatsD 代理时使用
- RecordingSink: 在内存中记录每次调用，便于检查导出结果
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class LoggingSink:
    """把每个指标写入日志的接收端"""

    def gauge(self, name: str, value: float, tags: Sequence[str], rate: float) -> None:
        logger.info("LoggingSink.gauge name=%s value=%s tags=%s rate=%s", name, value, list(tags), rate)

    def count(self, name: str, value: int, tags: Sequence[str], rate: float) -> None:
        logger.info("LoggingSink.count name=%s value=%s tags=%s rate=%s", name, value, list(tags), rate)

    def close(self) -> None:
        pass


@dataclass(frozen=True)
class Observation:
    """一次指标调用"""

    kind: str  # "gauge" 或 "count"
    name: str
    value: float
    tags: tuple[str, ...]
    rate: float


class RecordingSink:
    """
    在内存中记录指标调用的接收端

    使用示例:
        >>> sink = RecordingSink()
        >>> sink.count("gets", 10, ["group:files"], 1.0)
        >>> sink.find("gets", "group:files")[0].value
        10
    """

    def __init__(self) -> None:
        self.observations: list[Observation] = []
        self.close_calls = 0
        self._lock = threading.Lock()

    def gauge(self, name: str, value: float, tags: Sequence[str], rate: float) -> None:
        self._record("gauge", name, value, tags, rate)

    def count(self, name: str, value: int, tags: Sequence[str], rate: float) -> None:
        self._record("count", name, value, tags, rate)

    def _record(self, kind: str, name: str, value: float, tags: Sequence[str], rate: float) -> None:
        with self._lock:
            self.observations.append(Observation(kind, name, value, tuple(tags), rate))

    def find(self, name: str, *tags: str) -> list[Observation]:
        """按名称和标签子集查找调用记录"""
        with self._lock:
            return [
                obs
                for obs in self.observations
                if obs.name == name and all(tag in obs.tags for tag in tags)
            ]

    def clear(self) -> None:
        with self._lock:
            self.observations.clear()

    def close(self) -> None:
        with self._lock:
            self.close_calls += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self.observations)


__all__ = ["LoggingSink", "Observation", "RecordingSink"]
