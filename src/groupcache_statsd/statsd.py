"""
StatsD 客户端模块

通过 UDP 发送 DogStatsD 格式的指标，实现 MetricSink 协议。

数据报格式:
    <namespace>.<name>:<value>|<type>[|@<rate>][|#<tag1>,<tag2>]

特性：
- 命名空间前缀
- 常驻静态标签（与每次调用的标签合并）
- 客户端采样（rate < 1 时按概率丢弃）
- 发送失败抛出 SinkSubmissionError，由调用方决定如何处理

使用示例：
    >>> from groupcache_statsd.statsd import new_statsd_client
    >>> client = new_statsd_client(StatsDClientOptions(service="files"))
    >>> client.count("gets", 5, ["group:files"], 1.0)
    >>> client.close()
"""

from __future__ import annotations

import logging
import random
import socket
import threading
from collections.abc import Sequence
from typing import Any

from .config import StatsDClientOptions
from .exceptions import ExporterConfigError, SinkSubmissionError

logger = logging.getLogger(__name__)

# 以太网 MTU 1500 字节，留一些余量
MAX_PACKET_SIZE = 1400


class StatsDClient:
    """
    DogStatsD UDP 客户端

    每次 gauge/count 调用发送一个数据报。UDP 无连接，
    发送成功仅代表数据报已交给内核。

    使用示例:
        >>> client = StatsDClient("localhost", 8125, namespace="groupcache")
        >>> client.gauge("cache_items", 2.0, ["group:files", "type:main"], 1.0)
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8125,
        namespace: str = "",
        tags: Sequence[str] | None = None,
    ) -> None:
        """
        初始化 StatsD 客户端

        Args:
            host: StatsD 代理主机
            port: StatsD 代理端口
            namespace: 指标命名空间（不含结尾的点）
            tags: 附加到每个指标上的静态标签

        Raises:
            ExporterConfigError: 地址无法解析
        """
        self.host = host
        self.port = port
        self.namespace = namespace
        self.tags = list(tags or [])
        self._lock = threading.Lock()
        self._closed = False

        try:
            family, socktype, proto, _, sockaddr = socket.getaddrinfo(
                host, port, type=socket.SOCK_DGRAM
            )[0]
        except (OSError, UnicodeError) as e:
            msg = f"无法解析 StatsD 地址 {host}:{port}: {e}"
            raise ExporterConfigError(msg) from e

        self._address = sockaddr
        self._socket = socket.socket(family, socktype, proto)
        self._socket.setblocking(False)

    def _format_metric_name(self, name: str) -> str:
        """加上命名空间前缀"""
        if self.namespace:
            return f"{self.namespace}.{name}"
        return name

    def format_metric(
        self,
        name: str,
        value: Any,
        metric_type: str,
        tags: Sequence[str],
        rate: float,
    ) -> str:
        """
        生成一行 DogStatsD 指标

        Args:
            name: 指标名称
            value: 指标值
            metric_type: 指标类型 ("g", "c")
            tags: 本次调用的标签
            rate: 采样率

        Returns:
            指标行
        """
        line = f"{self._format_metric_name(name)}:{value}|{metric_type}"
        if rate < 1.0:
            line += f"|@{rate}"
        all_tags = [*self.tags, *tags]
        if all_tags:
            line += "|#" + ",".join(all_tags)
        return line

    def gauge(self, name: str, value: float, tags: Sequence[str], rate: float) -> None:
        """记录某一时刻的瞬时值"""
        self._submit(self.format_metric(name, repr(float(value)), "g", tags, rate), rate)

    def count(self, name: str, value: int, tags: Sequence[str], rate: float) -> None:
        """记录区间内发生的次数"""
        self._submit(self.format_metric(name, int(value), "c", tags, rate), rate)

    def _submit(self, line: str, rate: float) -> None:
        """
        发送单条指标

        Raises:
            SinkSubmissionError: 客户端已关闭、数据报过大或发送失败
        """
        if rate < 1.0 and random.random() >= rate:
            return

        payload = line.encode("utf-8")
        if len(payload) > MAX_PACKET_SIZE:
            msg = f"数据报过大 ({len(payload)} 字节): {line[:80]}"
            raise SinkSubmissionError(msg)

        with self._lock:
            if self._closed:
                msg = f"StatsD 客户端已关闭: {line}"
                raise SinkSubmissionError(msg)
            try:
                self._socket.sendto(payload, self._address)
            except OSError as e:
                msg = f"UDP 发送失败: {e}"
                raise SinkSubmissionError(msg) from e

    def close(self) -> None:
        """关闭套接字，重复调用无副作用"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._socket.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> StatsDClient:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"StatsDClient(host={self.host!r}, port={self.port!r}, "
            f"namespace={self.namespace!r}, tags={self.tags!r})"
        )


def new_statsd_client(options: StatsDClientOptions | None = None) -> StatsDClient:
    """
    根据选项创建 StatsD 客户端

    空值选项从环境变量 DD_AGENT_HOST / DD_AGENT_PORT / DD_SERVICE / DD_TAGS 补全，
    静态标签加上 service:<name> 后排序去重。

    Args:
        options: 客户端选项，None 表示全部使用默认值

    Returns:
        StatsDClient 实例

    Raises:
        ExporterConfigError: 端口不合法或地址无法解析
    """
    resolved = (options or StatsDClientOptions()).resolve()

    try:
        port = int(resolved.port)
    except ValueError as e:
        msg = f"StatsD 端口不合法: {resolved.port!r}"
        raise ExporterConfigError(msg) from e

    if not 0 < port < 65536:
        msg = f"StatsD 端口超出范围: {port}"
        raise ExporterConfigError(msg)

    if resolved.debug:
        logger.info(
            "new_statsd_client: host=%s namespace=%s service=%s tags=%s",
            resolved.address,
            resolved.namespace,
            resolved.service,
            resolved.tags,
        )

    return StatsDClient(
        host=resolved.host,
        port=port,
        namespace=resolved.namespace,
        tags=resolved.tags,
    )


__all__ = ["MAX_PACKET_SIZE", "StatsDClient", "new_statsd_client"]
