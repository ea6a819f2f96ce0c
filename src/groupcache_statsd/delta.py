"""
增量计算模块

DogStatsD 的 count 语义是"本区间内发生的次数"，而缓存暴露的是累积计数器。
本模块把同一个组的两次连续快照转换为区间增量。

规则：
- 计数器字段: curr - prev
- Gauge 字段: 不做差，直接取 curr 的最新值
- 不做截断：负增量表示来源端计数器被重置（进程重启等），原样上报

使用示例:
    >>> prev = GroupStats(gets=10, hits=4)
    >>> curr = GroupStats(gets=15, hits=6)
    >>> delta(prev, curr).gets
    5
"""

from __future__ import annotations

from dataclasses import replace
from typing import TypeVar

from .types import ZERO_STATS, CacheTypeStats, GroupStats, Stats

CounterRecord = TypeVar("CounterRecord", GroupStats, CacheTypeStats)


def delta(prev: CounterRecord, curr: CounterRecord) -> CounterRecord:
    """
    计算两次快照之间的计数器增量

    Args:
        prev: 上一次快照
        curr: 当前快照（与 prev 类型相同）

    Returns:
        同类型记录：计数器字段为增量，Gauge 字段为 curr 的值

    示例:
        >>> delta(CacheTypeStats(cache_gets=3), CacheTypeStats(cache_gets=1)).cache_gets
        -2
    """
    if type(prev) is not type(curr):
        msg = f"无法对不同类型的快照做差: {type(prev).__name__} / {type(curr).__name__}"
        raise TypeError(msg)

    changes = {name: getattr(curr, name) - getattr(prev, name) for name in curr.COUNTER_FIELDS}
    return replace(curr, **changes)


def stats_delta(prev: Stats | None, curr: Stats) -> Stats:
    """
    对完整快照做差

    组级别统计和两个分区分别与各自的上一次快照做差。
    prev 为 None 时以零快照为基线，结果等于 curr。
    """
    if prev is None:
        prev = ZERO_STATS

    return Stats(
        group=delta(prev.group, curr.group),
        main=delta(prev.main, curr.main),
        hot=delta(prev.hot, curr.hot),
    )


__all__ = ["delta", "stats_delta"]
