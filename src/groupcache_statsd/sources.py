"""
统计来源适配器模块

把不同缓存实现适配为 StatsSource 协议。

- FunctionSource: 包装一个返回快照的函数，读取失败时返回上次成功的快照
- StatsRecorder: 线程安全的进程内计数器，缓存实现可直接累加
- stats_from_dict: 从嵌套字典构造快照（适配返回 dict 的 stats() 接口）

使用示例:
    >>> recorder = StatsRecorder("files")
    >>> recorder.record_get(hit=True)
    >>> recorder.collect().group.hits
    1
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import fields
from typing import Any

from .types import CacheType, CacheTypeStats, GroupStats, Stats

logger = logging.getLogger(__name__)


def stats_from_dict(data: Mapping[str, Any]) -> Stats:
    """
    从嵌套字典构造快照

    字典格式:
        {
            "group": {"gets": 10, "hits": 4, ...},
            "main": {"cache_items": 2, "cache_bytes": 200, ...},
            "hot": {...},
        }

    缺失的字段按 0 处理，未知字段忽略。

    Args:
        data: 统计字典

    Returns:
        Stats 快照
    """
    return Stats(
        group=_record_from_dict(GroupStats, data.get("group") or {}),
        main=_record_from_dict(CacheTypeStats, data.get("main") or {}),
        hot=_record_from_dict(CacheTypeStats, data.get("hot") or {}),
    )


def _record_from_dict(record_type: Any, data: Mapping[str, Any]) -> Any:
    """按字段名挑选并转换为整数"""
    known = {f.name for f in fields(record_type)}
    values = {}
    for key, value in data.items():
        if key in known:
            values[key] = int(value)
        else:
            logger.debug("stats_from_dict: 忽略未知字段 %s.%s", record_type.__name__, key)
    return record_type(**values)


class FunctionSource:
    """
    包装采集函数的统计来源

    collect() 从导出器的角度看总是成功：采集函数抛出异常时记录日志，
    并返回上次成功的快照（首次失败返回零快照），使下一次增量不会出现负尖峰。

    使用示例:
        >>> source = FunctionSource("files", lambda: stats_from_dict(cache.stats()))
    """

    def __init__(self, name: str, collect: Callable[[], Stats | Mapping[str, Any]]) -> None:
        """
        Args:
            name: 组名
            collect: 返回 Stats 或统计字典的函数
        """
        self._name = name
        self._collect = collect
        self._last = Stats()

    def name(self) -> str:
        return self._name

    def collect(self) -> Stats:
        try:
            result = self._collect()
            stats = result if isinstance(result, Stats) else stats_from_dict(result)
        except Exception as e:
            logger.error("FunctionSource.collect: group=%s error: %s", self._name, e)
            return self._last

        self._last = stats
        return stats

    def __repr__(self) -> str:
        return f"FunctionSource(name={self._name!r})"


class StatsRecorder:
    """
    进程内缓存统计记录器

    缓存实现在每次操作时调用 record_* 方法累加计数器，
    导出器通过 collect() 获取不可变快照。所有操作使用锁保护。

    使用示例:
        >>> recorder = StatsRecorder("files")
        >>> recorder.record_get(hit=False)
        >>> recorder.record_load(local=True)
        >>> recorder.set_items(CacheType.MAIN, items=1, nbytes=128)
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._lock = threading.RLock()
        self._group: dict[str, int] = {f.name: 0 for f in fields(GroupStats)}
        self._types: dict[CacheType, dict[str, int]] = {
            cache_type: {f.name: 0 for f in fields(CacheTypeStats)} for cache_type in CacheType
        }

    def name(self) -> str:
        return self._name

    # ========== 组级别 ==========

    def incr(self, field_name: str, n: int = 1) -> None:
        """累加组级别计数器"""
        if field_name not in GroupStats.COUNTER_FIELDS:
            msg = f"未知的组计数器: {field_name}"
            raise KeyError(msg)
        with self._lock:
            self._group[field_name] += n

    def record_get(self, hit: bool, cache_type: CacheType = CacheType.MAIN) -> None:
        """记录一次 get：同时累加组和分区计数器"""
        with self._lock:
            self._group["gets"] += 1
            partition = self._types[cache_type]
            partition["cache_gets"] += 1
            if hit:
                self._group["hits"] += 1
                partition["cache_hits"] += 1

    def record_load(self, local: bool, error: bool = False, deduped: bool = True) -> None:
        """
        记录一次未命中后的加载

        Args:
            local: 本地加载（否则从对等节点加载）
            error: 加载失败
            deduped: 是否为去重后的实际加载
        """
        with self._lock:
            self._group["loads"] += 1
            if deduped:
                self._group["loads_deduped"] += 1
            if local:
                self._group["local_load_errs" if error else "local_loads"] += 1
            else:
                self._group["peer_errors" if error else "peer_loads"] += 1

    def observe_peer_latency(self, milliseconds: int) -> None:
        """记录对等节点加载耗时，Gauge 只保留最慢值"""
        with self._lock:
            current = self._group["get_from_peers_latency_lower"]
            self._group["get_from_peers_latency_lower"] = max(current, int(milliseconds))

    # ========== 分区级别 ==========

    def record_eviction(self, cache_type: CacheType = CacheType.MAIN, expired: bool = False) -> None:
        """记录一次淘汰"""
        with self._lock:
            partition = self._types[cache_type]
            partition["cache_evictions"] += 1
            if not expired:
                partition["cache_evictions_nonexpired"] += 1

    def set_items(self, cache_type: CacheType, items: int, nbytes: int) -> None:
        """更新分区的条目数和字节数 Gauge"""
        with self._lock:
            partition = self._types[cache_type]
            partition["cache_items"] = items
            partition["cache_bytes"] = nbytes

    # ========== 快照 ==========

    def collect(self) -> Stats:
        """获取当前快照"""
        with self._lock:
            return Stats(
                group=GroupStats(**self._group),
                main=CacheTypeStats(**self._types[CacheType.MAIN]),
                hot=CacheTypeStats(**self._types[CacheType.HOT]),
            )

    def __repr__(self) -> str:
        return f"StatsRecorder(name={self._name!r})"


__all__ = ["FunctionSource", "StatsRecorder", "stats_from_dict"]
