"""
辅助接收端测试

测试 LoggingSink 和 RecordingSink。
"""

from __future__ import annotations

import logging

import pytest
from conftest import SequenceSource

from groupcache_statsd import (
    Exporter,
    ExporterOptions,
    GroupStats,
    LoggingSink,
    MetricSink,
    RecordingSink,
    Stats,
)

SINK_LOGGER = "groupcache_statsd.sinks"


class TestLoggingSink:
    """测试只记录日志的接收端"""

    def test_protocol(self) -> None:
        """测试实现 MetricSink 协议"""
        assert isinstance(LoggingSink(), MetricSink)

    def test_gauge_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """测试 gauge 以 INFO 级别记录名称、值、标签和采样率"""
        with caplog.at_level(logging.INFO, logger=SINK_LOGGER):
            LoggingSink().gauge("cache_items", 2.0, ["group:files", "type:main"], 0.5)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.INFO
        assert record.getMessage() == (
            "LoggingSink.gauge name=cache_items value=2.0 "
            "tags=['group:files', 'type:main'] rate=0.5"
        )

    def test_count_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """测试 count 以 INFO 级别记录"""
        with caplog.at_level(logging.INFO, logger=SINK_LOGGER):
            LoggingSink().count("gets", -3, ("group:files",), 1.0)

        assert caplog.records[0].levelno == logging.INFO
        assert caplog.records[0].getMessage() == (
            "LoggingSink.count name=gets value=-3 tags=['group:files'] rate=1.0"
        )

    def test_close(self) -> None:
        """测试关闭不抛出异常，可重复调用"""
        sink = LoggingSink()

        sink.close()
        sink.close()

    def test_drives_exporter(self, caplog: pytest.LogCaptureFixture) -> None:
        """测试作为导出器的接收端"""
        options = ExporterOptions(disable_hostname_tag=True)
        source = SequenceSource("files", Stats(group=GroupStats(gets=10, hits=4)))
        exporter = Exporter(LoggingSink(), groups=[source], options=options, start=False)

        with caplog.at_level(logging.INFO, logger=SINK_LOGGER):
            exporter.export_once()
        exporter.close()

        messages = [r.getMessage() for r in caplog.records if r.name == SINK_LOGGER]
        assert len(messages) == 23
        assert "LoggingSink.count name=gets value=10 tags=['group:files'] rate=1.0" in messages
        assert (
            "LoggingSink.gauge name=cache_items value=0.0 tags=['group:files', 'type:hot'] rate=1.0"
            in messages
        )


class TestRecordingSink:
    """测试内存记录接收端"""

    def test_find_by_tags(self) -> None:
        """测试按名称和标签子集查找"""
        sink = RecordingSink()
        sink.count("gets", 1, ["group:a"], 1.0)
        sink.count("gets", 2, ["group:b"], 1.0)
        sink.gauge("cache_items", 3.0, ["group:a", "type:main"], 1.0)

        assert [obs.value for obs in sink.find("gets")] == [1, 2]
        assert [obs.value for obs in sink.find("gets", "group:b")] == [2]
        assert sink.find("cache_items", "type:main")[0].kind == "gauge"
        assert len(sink) == 3

    def test_clear_and_close(self) -> None:
        """测试清空记录与关闭计数"""
        sink = RecordingSink()
        sink.count("gets", 1, [], 1.0)

        sink.clear()
        sink.close()

        assert len(sink) == 0
        assert sink.close_calls == 1
