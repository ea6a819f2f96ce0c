"""
导出器模块

周期性采集缓存组统计，计算区间增量后发送到 StatsD。

架构设计:
- 后台守护线程运行采集循环，周期之间用 Event.wait() 休眠，close() 可立即唤醒
- 每个组独立保存上一次快照，首次采集以零快照为基线
- 计数器以增量 count 发送，Gauge 以最新绝对值发送
- 单个指标发送失败只记录日志，不影响其余指标和后续周期

状态机:
    STOPPED -> RUNNING -> CLOSED（终态）

使用示例:
    >>> client = new_statsd_client(StatsDClientOptions(service="files"))
    >>> exporter = Exporter(client, groups=[StatsRecorder("files")])
    >>> ...
    >>> exporter.close()
"""

from __future__ import annotations

import logging
import socket
import threading
from collections.abc import Sequence
from enum import Enum
from typing import Any

from .config import ExporterOptions
from .delta import stats_delta
from .exceptions import ExporterClosedError, HostnameResolutionError
from .registry import GroupLister, GroupsLike, as_registry
from .types import CacheType, CacheTypeStats, MetricSink, Stats, StatsSource

logger = logging.getLogger(__name__)

GAUGE = "gauge"
COUNT = "count"

# (指标名, 字段名, 类型)，顺序即发送顺序
GROUP_METRICS: tuple[tuple[str, str, str], ...] = (
    ("gets", "gets", COUNT),
    ("hits", "hits", COUNT),
    ("get_from_peers_latency_slowest_milliseconds", "get_from_peers_latency_lower", GAUGE),
    ("peer_loads", "peer_loads", COUNT),
    ("peer_errors", "peer_errors", COUNT),
    ("loads", "loads", COUNT),
    ("loads_deduped", "loads_deduped", COUNT),
    ("local_load", "local_loads", COUNT),
    ("local_load_errs", "local_load_errs", COUNT),
    ("server_requests", "server_requests", COUNT),
    ("crosstalk_refusals", "crosstalk_refusals", COUNT),
)

CACHE_TYPE_METRICS: tuple[tuple[str, str, str], ...] = (
    ("cache_items", "cache_items", GAUGE),
    ("cache_bytes", "cache_bytes", GAUGE),
    ("cache_gets", "cache_gets", COUNT),
    ("cache_hits", "cache_hits", COUNT),
    ("cache_evictions", "cache_evictions", COUNT),
    ("cache_evictions_nonexpired", "cache_evictions_nonexpired", COUNT),
)


class ExporterState(str, Enum):
    """导出器状态"""

    STOPPED = "stopped"
    RUNNING = "running"
    CLOSED = "closed"


def resolve_hostname() -> str:
    """
    获取本机主机名

    Raises:
        HostnameResolutionError: 无法获取主机名
    """
    try:
        hostname = socket.gethostname()
    except OSError as e:
        msg = f"获取主机名失败: {e}"
        raise HostnameResolutionError(msg) from e

    if not hostname:
        msg = "获取主机名失败: 主机名为空"
        raise HostnameResolutionError(msg)

    return hostname


class Exporter:
    """
    缓存组指标导出器

    构造后立即启动后台线程并执行第一次采集（start=False 时需手动调用 start()）。

    使用示例:
        >>> exporter = Exporter(
        ...     LoggingSink(),
        ...     list_groups=lambda: workspace.groups(),
        ...     options=ExporterOptions(export_interval=20),
        ... )
        >>> exporter.close()
    """

    def __init__(
        self,
        client: MetricSink,
        groups: GroupsLike | None = None,
        list_groups: GroupLister | None = None,
        options: ExporterOptions | None = None,
        start: bool = True,
    ) -> None:
        """
        初始化导出器

        Args:
            client: 指标接收端（StatsDClient 等）
            groups: 静态来源列表、注册表或动态回调
            list_groups: 动态查找回调，与 groups 互斥
            options: 导出器选项，None 表示全部默认值
            start: 是否立即启动后台采集

        Raises:
            ExporterConfigError: 组配置冲突
        """
        self.client = client
        self.options = options or ExporterOptions()
        self.registry = as_registry(groups, list_groups)

        self._previous: dict[str, Stats] = {}
        self._state = ExporterState.STOPPED
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

        self.hostname_tag = self._build_hostname_tag()

        if start:
            self.start()

    def _build_hostname_tag(self) -> str | None:
        """生成主机名标签，禁用或解析失败时返回 None"""
        if self.options.disable_hostname_tag:
            return None
        try:
            hostname = resolve_hostname()
        except HostnameResolutionError as e:
            logger.error("Exporter: %s，不添加主机名标签", e)
            return None
        return f"{self.options.hostname_tag_key}:{hostname}"

    # ========== 生命周期 ==========

    @property
    def state(self) -> ExporterState:
        return self._state

    def start(self) -> None:
        """
        启动后台采集线程

        只在 STOPPED 状态下生效，重复调用无副作用。
        """
        with self._state_lock:
            if self._state is not ExporterState.STOPPED:
                return
            self._state = ExporterState.RUNNING
            self._thread = threading.Thread(
                target=self._run,
                daemon=True,
                name="groupcache-statsd-exporter",
            )
            self._thread.start()

    def _run(self) -> None:
        """后台采集循环"""
        while not self._stop.is_set():
            try:
                self._export_cycle()
            except Exception:
                logger.exception("Exporter: 导出周期失败")

            if self._stop.wait(self.options.export_interval):
                break

    def close(self) -> None:
        """
        关闭导出器

        通知采集循环退出，等待进行中的采集完成，然后关闭 client。
        client.close() 的异常会传递给调用方。重复调用无副作用。
        """
        with self._state_lock:
            if self._state is ExporterState.CLOSED:
                return
            self._state = ExporterState.CLOSED
            self._stop.set()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join()

        # 等待其他线程中的 export_once() 完成
        with self._cycle_lock:
            self.client.close()

    async def aclose(self) -> None:
        """异步关闭导出器，在线程池中等待采集线程退出"""
        import asyncio

        await asyncio.to_thread(self.close)

    def __enter__(self) -> Exporter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            self.close()
            return

        # with 块已抛出异常时，关闭错误只记录日志
        try:
            self.close()
        except Exception:
            logger.exception("Exporter: 关闭失败")

    # ========== 采集 ==========

    def export_once(self) -> None:
        """
        立即执行一次导出周期

        Raises:
            ExporterClosedError: 导出器已关闭
        """
        if self._state is ExporterState.CLOSED:
            msg = "导出器已关闭"
            raise ExporterClosedError(msg)
        self._export_cycle()

    def _export_cycle(self) -> None:
        """按注册表顺序依次导出每个组"""
        with self._cycle_lock:
            if self._stop.is_set():
                return
            for name, source in self.registry.current_groups():
                try:
                    self._export_group(name, source)
                except Exception:
                    # 保留该组的上一次快照，不影响后续组
                    logger.exception("Exporter: 导出组 %s 失败", name)

    def _export_group(self, name: str, source: StatsSource) -> None:
        """采集一个组并发送 11 个组指标和两个分区各 6 个指标"""
        tags = [f"group:{name}"]
        if self.hostname_tag:
            tags.append(self.hostname_tag)

        stats = source.collect()
        delta = stats_delta(self._previous.get(name), stats)

        for metric_name, field_name, kind in GROUP_METRICS:
            self._export(kind, metric_name, getattr(delta.group, field_name), tags)

        for cache_type in CacheType:
            self._export_cache_type(delta.cache_type(cache_type), [*tags, cache_type.tag])

        self._previous[name] = stats  # 保存供下次计算增量

    def _export_cache_type(self, delta: CacheTypeStats, tags: list[str]) -> None:
        for metric_name, field_name, kind in CACHE_TYPE_METRICS:
            self._export(kind, metric_name, getattr(delta, field_name), tags)

    def _export(self, kind: str, metric_name: str, value: int, tags: Sequence[str]) -> None:
        if kind == GAUGE:
            self._export_gauge(metric_name, float(value), tags)
        else:
            self._export_count(metric_name, value, tags)

    def _export_count(self, metric_name: str, value: int, tags: Sequence[str]) -> None:
        rate = self.options.sample_rate
        if self.options.debug:
            logger.info("exportCount: name=%s value=%d tags=%s rate=%s", metric_name, value, tags, rate)
        try:
            self.client.count(metric_name, value, list(tags), rate)
        except Exception as e:
            logger.error("exportCount: %s error: %s", metric_name, e)

    def _export_gauge(self, metric_name: str, value: float, tags: Sequence[str]) -> None:
        rate = self.options.sample_rate
        if self.options.debug:
            logger.info("exportGauge: name=%s value=%s tags=%s rate=%s", metric_name, value, tags, rate)
        try:
            self.client.gauge(metric_name, value, list(tags), rate)
        except Exception as e:
            logger.error("exportGauge: %s error: %s", metric_name, e)

    def __repr__(self) -> str:
        return f"Exporter(state={self._state.value}, registry={self.registry!r})"


__all__ = [
    "CACHE_TYPE_METRICS",
    "GROUP_METRICS",
    "Exporter",
    "ExporterState",
    "resolve_hostname",
]
