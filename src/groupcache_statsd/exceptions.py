"""
异常定义模块

本模块定义了导出器的所有自定义异常类。
所有异常都继承自 ExporterError 基类，便于统一捕获。
"""

from __future__ import annotations


class ExporterError(Exception):
    """
    导出器基础异常

    所有导出相关的异常都继承自此类。

    示例:
        >>> try:
        ...     exporter.close()
        ... except ExporterError as e:
        ...     print(f"导出器错误: {e}")
    """

    pass


class ExporterConfigError(ExporterError):
    """
    导出器配置错误

    当配置验证失败、配置文件解析失败或 StatsD 地址不合法时抛出。
    在构造阶段同步抛出，启动失败，不会重试。

    示例:
        >>> raise ExporterConfigError("StatsD 端口不合法: abc")
    """

    pass


class SinkSubmissionError(ExporterError):
    """
    指标提交错误

    单个指标发送失败时抛出。导出器会记录日志并继续发送其余指标。

    示例:
        >>> raise SinkSubmissionError("UDP 发送失败: gets")
    """

    pass


class HostnameResolutionError(ExporterError):
    """
    主机名解析错误

    构造导出器时无法获取本机主机名。导出器记录日志后不带主机名标签继续运行。
    """

    pass


class ExporterClosedError(ExporterError):
    """导出器已关闭后仍尝试导出"""

    pass


__all__ = [
    "ExporterError",
    "ExporterConfigError",
    "SinkSubmissionError",
    "HostnameResolutionError",
    "ExporterClosedError",
]
