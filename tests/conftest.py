"""
Pytest 配置和全局 fixtures

本模块提供测试所需的公共 fixtures 和辅助来源。
"""

from __future__ import annotations

import time
from collections.abc import Callable

import pytest

from groupcache_statsd import ExporterOptions, RecordingSink, Stats


class SequenceSource:
    """依次返回预设快照的来源，用完后重复最后一个"""

    def __init__(self, name: str, *snapshots: Stats) -> None:
        self._name = name
        self._snapshots = list(snapshots) or [Stats()]
        self.calls = 0

    def name(self) -> str:
        return self._name

    def collect(self) -> Stats:
        index = min(self.calls, len(self._snapshots) - 1)
        self.calls += 1
        return self._snapshots[index]


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """轮询等待条件成立"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def sink() -> RecordingSink:
    """记录所有调用的接收端"""
    return RecordingSink()


@pytest.fixture
def options() -> ExporterOptions:
    """不带主机名标签的导出器选项"""
    return ExporterOptions(disable_hostname_tag=True)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """清理会影响默认值的环境变量"""
    for name in ("DD_AGENT_HOST", "DD_AGENT_PORT", "DD_SERVICE", "DD_TAGS"):
        monkeypatch.delenv(name, raising=False)
