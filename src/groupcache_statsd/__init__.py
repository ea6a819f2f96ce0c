"""
groupcache-statsd - 缓存组统计的 StatsD 导出器

周期性采集一个或多个缓存组的内部计数器和 Gauge，
把累积计数器转换为区间增量后发送到 DogStatsD。

主要特性：
- 每个组独立保存上一次快照，首次采集以零快照为基线
- 静态组列表或每个周期动态查找
- 单个指标发送失败不影响其余指标
- 后台线程采集，close() 立即唤醒并等待进行中的采集完成
- Pydantic 配置，支持环境变量和 YAML/TOML/JSON 文件

示例：
    >>> from groupcache_statsd import Exporter, StatsRecorder, new_statsd_client
    >>>
    >>> recorder = StatsRecorder("files")
    >>> exporter = Exporter(new_statsd_client(), groups=[recorder])
    >>> recorder.record_get(hit=True)
    >>> exporter.close()
"""

from __future__ import annotations

from .__version__ import __version__
from .config import ExporterOptions, StatsDClientOptions, merge_tags
from .delta import delta, stats_delta
from .exceptions import (
    ExporterClosedError,
    ExporterConfigError,
    ExporterError,
    HostnameResolutionError,
    SinkSubmissionError,
)
from .exporter import Exporter, ExporterState
from .registry import DynamicGroupRegistry, GroupRegistry, StaticGroupRegistry, as_registry
from .sinks import LoggingSink, RecordingSink
from .sources import FunctionSource, StatsRecorder, stats_from_dict
from .statsd import StatsDClient, new_statsd_client
from .types import CacheType, CacheTypeStats, GroupStats, MetricSink, Stats, StatsSource

# 导出核心类和版本号
__all__ = [
    "__version__",
    # 导出器
    "Exporter",
    "ExporterState",
    "ExporterOptions",
    # 增量计算
    "delta",
    "stats_delta",
    # 注册表
    "GroupRegistry",
    "StaticGroupRegistry",
    "DynamicGroupRegistry",
    "as_registry",
    # 来源
    "FunctionSource",
    "StatsRecorder",
    "stats_from_dict",
    # 接收端
    "StatsDClient",
    "StatsDClientOptions",
    "new_statsd_client",
    "merge_tags",
    "LoggingSink",
    "RecordingSink",
    # 类型
    "CacheType",
    "GroupStats",
    "CacheTypeStats",
    "Stats",
    "StatsSource",
    "MetricSink",
    # 异常
    "ExporterError",
    "ExporterConfigError",
    "ExporterClosedError",
    "SinkSubmissionError",
    "HostnameResolutionError",
]
