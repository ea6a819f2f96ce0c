"""
类型定义模块

本模块定义了导出器的核心数据结构、枚举和协作者协议。

- GroupStats / CacheTypeStats / Stats: 缓存组的统计快照（不可变）
- StatsSource: 统计来源协议（由缓存实现提供）
- MetricSink: 指标接收端协议（StatsD 客户端等）
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Protocol, runtime_checkable

# ========== 类型别名定义 ==========

Tags = list[str]
"""标签列表：每个元素为 "key:value" 形式的字符串"""


# ========== 枚举定义 ==========


class CacheType(str, Enum):
    """
    缓存分区类型枚举

    - MAIN: 主缓存，存放本节点负责的键
    - HOT: 热点缓存，存放从对等节点借来的热点键
    """

    MAIN = "main"  # 主缓存
    HOT = "hot"  # 热点缓存

    @property
    def tag(self) -> str:
        """对应的标签，如 type:main"""
        return f"type:{self.value}"


# ========== 数据类定义 ==========


@dataclass(frozen=True)
class GroupStats:
    """
    缓存组级别统计

    除 get_from_peers_latency_lower 外均为单调递增计数器。

    Attributes:
        gets: get 请求次数（含本地与对等节点）
        hits: 任一缓存命中次数
        get_from_peers_latency_lower: 最慢的对等节点加载耗时（毫秒，Gauge）
        peer_loads: 从对等节点加载的次数
        peer_errors: 对等节点加载错误次数
        loads: 未命中缓存后的加载次数
        loads_deduped: 去重后的加载次数
        local_loads: 本地加载成功次数
        local_load_errs: 本地加载失败次数
        server_requests: 来自对等节点的请求次数
        crosstalk_refusals: 拒绝的串扰请求次数
    """

    COUNTER_FIELDS: ClassVar[tuple[str, ...]] = (
        "gets",
        "hits",
        "peer_loads",
        "peer_errors",
        "loads",
        "loads_deduped",
        "local_loads",
        "local_load_errs",
        "server_requests",
        "crosstalk_refusals",
    )

    gets: int = 0
    hits: int = 0
    get_from_peers_latency_lower: int = 0  # Gauge
    peer_loads: int = 0
    peer_errors: int = 0
    loads: int = 0
    loads_deduped: int = 0
    local_loads: int = 0
    local_load_errs: int = 0
    server_requests: int = 0
    crosstalk_refusals: int = 0


@dataclass(frozen=True)
class CacheTypeStats:
    """
    缓存分区统计（main 或 hot）

    Attributes:
        cache_items: 当前条目数（Gauge）
        cache_bytes: 当前占用字节数（Gauge）
        cache_gets: 分区 get 次数
        cache_hits: 分区命中次数
        cache_evictions: 淘汰次数
        cache_evictions_nonexpired: 未过期即被淘汰的次数
    """

    COUNTER_FIELDS: ClassVar[tuple[str, ...]] = (
        "cache_gets",
        "cache_hits",
        "cache_evictions",
        "cache_evictions_nonexpired",
    )

    cache_items: int = 0  # Gauge
    cache_bytes: int = 0  # Gauge
    cache_gets: int = 0
    cache_hits: int = 0
    cache_evictions: int = 0
    cache_evictions_nonexpired: int = 0


@dataclass(frozen=True)
class Stats:
    """
    缓存组在某一时刻的完整快照

    Attributes:
        group: 组级别统计
        main: 主缓存分区统计
        hot: 热点缓存分区统计
    """

    group: GroupStats = field(default_factory=GroupStats)
    main: CacheTypeStats = field(default_factory=CacheTypeStats)
    hot: CacheTypeStats = field(default_factory=CacheTypeStats)

    def cache_type(self, cache_type: CacheType) -> CacheTypeStats:
        """按分区类型取统计"""
        return self.main if cache_type is CacheType.MAIN else self.hot


ZERO_STATS = Stats()
"""零快照：首次观察某个组时的隐式基线"""


# ========== 协作者协议 ==========


@runtime_checkable
class StatsSource(Protocol):
    """
    统计来源协议

    每个缓存组对应一个来源。collect() 从导出器的角度看总是成功，
    内部错误需由实现方吸收（返回零值或上次的快照）。
    """

    def name(self) -> str:
        """组名（唯一且稳定）"""
        ...

    def collect(self) -> Stats:
        """采集当前快照"""
        ...


@runtime_checkable
class MetricSink(Protocol):
    """
    指标接收端协议

    与 DogStatsD 客户端的 gauge/count/close 接口一致，每个方法都可能抛出异常。
    """

    def gauge(self, name: str, value: float, tags: Sequence[str], rate: float) -> None:
        """记录某一时刻的瞬时值"""
        ...

    def count(self, name: str, value: int, tags: Sequence[str], rate: float) -> None:
        """记录区间内发生的次数"""
        ...

    def close(self) -> None:
        """关闭客户端连接"""
        ...


__all__ = [
    "Tags",
    "CacheType",
    "GroupStats",
    "CacheTypeStats",
    "Stats",
    "ZERO_STATS",
    "StatsSource",
    "MetricSink",
]
