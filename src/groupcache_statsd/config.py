"""
配置管理模块

使用 Pydantic 进行配置验证和管理,支持从配置文件、环境变量、字典自动加载。

- ExporterOptions: 导出器选项（采样率、导出间隔、主机名标签等）
- StatsDClientOptions: StatsD 客户端选项（地址、命名空间、服务名、静态标签）

使用示例:
    >>> # 从字典创建
    >>> options = ExporterOptions(export_interval=20)
    >>>
    >>> # 从 YAML 文件创建
    >>> options = ExporterOptions.from_file("exporter.yaml")
    >>>
    >>> # 从环境变量创建
    >>> options = ExporterOptions.from_env()
"""

from __future__ import annotations

import logging
import os
from itertools import groupby
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ExporterConfigError

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT", bound="_FileConfig")

DEFAULT_SAMPLE_RATE = 1.0
DEFAULT_EXPORT_INTERVAL = 60.0
DEFAULT_HOSTNAME_TAG_KEY = "pod_name"

DEFAULT_AGENT_HOST = "localhost"
DEFAULT_AGENT_PORT = "8125"
DEFAULT_NAMESPACE = "groupcache"
DEFAULT_SERVICE = "service-unknown"


class _FileConfig(BaseModel):
    """支持从文件加载的配置基类"""

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",  # 禁止额外字段
        "str_strip_whitespace": True,
    }

    @classmethod
    def from_dict(cls: type[ConfigT], data: dict[str, Any]) -> ConfigT:
        """
        从字典创建配置

        Raises:
            ExporterConfigError: 字段校验失败
        """
        try:
            return cls(**data)
        except ValidationError as e:
            msg = f"{cls.__name__} 配置不合法: {e}"
            raise ExporterConfigError(msg) from e

    @classmethod
    def from_file(cls: type[ConfigT], file_path: str | Path) -> ConfigT:
        """
        从配置文件创建配置

        支持的格式:
        - YAML (.yaml, .yml)
        - TOML (.toml)
        - JSON (.json)

        Args:
            file_path: 配置文件路径

        Raises:
            ExporterConfigError: 文件读取或解析失败

        示例:
            >>> options = ExporterOptions.from_file("config/exporter.toml")
        """
        file_path = Path(file_path)

        if not file_path.exists():
            msg = f"配置文件不存在: {file_path}"
            raise ExporterConfigError(msg)

        suffix = file_path.suffix.lower()

        try:
            if suffix in {".yaml", ".yml"}:
                data = _load_yaml(file_path)
            elif suffix == ".toml":
                data = _load_toml(file_path)
            elif suffix == ".json":
                data = _load_json(file_path)
            else:
                msg = f"不支持的配置文件格式: {suffix}"
                raise ExporterConfigError(msg)
        except ExporterConfigError:
            raise
        except Exception as e:
            msg = f"读取配置文件失败: {file_path}"
            raise ExporterConfigError(msg) from e

        if not isinstance(data, dict):
            msg = f"配置文件必须是字典格式: {file_path}"
            raise ExporterConfigError(msg)

        return cls.from_dict(data)


def _load_yaml(file_path: Path) -> Any:
    """从 YAML 文件加载"""
    import yaml

    with file_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _load_toml(file_path: Path) -> Any:
    """从 TOML 文件加载"""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # Python < 3.11

    with file_path.open("rb") as f:
        return tomllib.load(f)


def _load_json(file_path: Path) -> Any:
    """从 JSON 文件加载"""
    import json

    with file_path.open("r", encoding="utf-8") as f:
        return json.load(f)


class ExporterOptions(_FileConfig):
    """
    导出器选项

    属性:
        sample_rate: 传给每次 sink 调用的采样率，0 表示使用默认值 1
        export_interval: 两次采集之间的间隔（秒），0 表示使用默认值 60
        hostname_tag_key: 能解析到本机主机名时使用的标签键
        disable_hostname_tag: 完全禁用主机名标签
        debug: 发送前记录每个指标
    """

    sample_rate: float = Field(
        default=DEFAULT_SAMPLE_RATE,
        ge=0.0,
        le=1.0,
        description="采样率 (0.0-1.0]，0 表示默认值",
    )

    export_interval: float = Field(
        default=DEFAULT_EXPORT_INTERVAL,
        ge=0.0,
        description="导出间隔（秒），0 表示默认值",
    )

    hostname_tag_key: str = Field(
        default=DEFAULT_HOSTNAME_TAG_KEY,
        min_length=1,
        description="主机名标签键",
    )

    disable_hostname_tag: bool = Field(default=False, description="禁用主机名标签")

    debug: bool = Field(default=False, description="发送前记录每个指标")

    # ========== 验证器 ==========

    @field_validator("sample_rate")
    @classmethod
    def default_sample_rate(cls, value: float) -> float:
        """零值采样率回退到默认值"""
        return value or DEFAULT_SAMPLE_RATE

    @field_validator("export_interval")
    @classmethod
    def default_export_interval(cls, value: float) -> float:
        """零值间隔回退到默认值"""
        return value or DEFAULT_EXPORT_INTERVAL

    @classmethod
    def from_env(cls, prefix: str = "GROUPCACHE_EXPORTER_") -> ExporterOptions:
        """
        从环境变量创建配置

        环境变量命名规则:
        - GROUPCACHE_EXPORTER_SAMPLE_RATE=0.5
        - GROUPCACHE_EXPORTER_EXPORT_INTERVAL=20
        - GROUPCACHE_EXPORTER_HOSTNAME_TAG_KEY=host
        - GROUPCACHE_EXPORTER_DISABLE_HOSTNAME_TAG=true
        - GROUPCACHE_EXPORTER_DEBUG=true

        Args:
            prefix: 环境变量前缀
        """
        data: dict[str, Any] = {}
        for name in cls.model_fields:
            value = os.environ.get(f"{prefix}{name.upper()}")
            if value is not None:
                data[name] = value
        return cls.from_dict(data)

    def __repr__(self) -> str:
        """字符串表示"""
        return (
            f"ExporterOptions(sample_rate={self.sample_rate!r}, "
            f"export_interval={self.export_interval!r}, "
            f"hostname_tag_key={self.hostname_tag_key!r}, "
            f"disable_hostname_tag={self.disable_hostname_tag!r}, debug={self.debug!r})"
        )


class StatsDClientOptions(_FileConfig):
    """
    StatsD 客户端选项

    空值字段在 resolve() 时从环境变量补全：

    属性:
        host: 代理主机，默认取 DD_AGENT_HOST，未设置时为 localhost
        port: 代理端口，默认取 DD_AGENT_PORT，未设置时为 8125
        namespace: 指标命名空间，默认 groupcache
        service: 服务名，用于生成 service:<name> 标签，默认取 DD_SERVICE
        tags: 静态标签，默认取 DD_TAGS（空白分隔）
        debug: 记录解析后的客户端参数
    """

    host: str = Field(default="", description="StatsD 代理主机")
    port: str = Field(default="", description="StatsD 代理端口")
    namespace: str = Field(default="", description="指标命名空间")
    service: str = Field(default="", description="服务名")
    tags: list[str] = Field(default_factory=list, description="静态标签")
    debug: bool = Field(default=False, description="调试日志")

    @field_validator("port", mode="before")
    @classmethod
    def port_to_str(cls, value: Any) -> Any:
        """允许以整数指定端口"""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def resolve(self) -> StatsDClientOptions:
        """
        补全默认值并合并标签

        Returns:
            新的选项实例，tags 为合并排序去重后的最终静态标签
        """
        host = self.host or env_string("DD_AGENT_HOST", DEFAULT_AGENT_HOST)
        port = self.port or env_string("DD_AGENT_PORT", DEFAULT_AGENT_PORT)
        namespace = self.namespace or DEFAULT_NAMESPACE
        service = self.service or env_string("DD_SERVICE", DEFAULT_SERVICE)
        tags = list(self.tags) or env_string("DD_TAGS", "").split()

        return self.model_copy(
            update={
                "host": host,
                "port": port,
                "namespace": namespace,
                "service": service,
                "tags": merge_tags(tags, service),
            }
        )

    @property
    def address(self) -> str:
        """host:port 形式的代理地址"""
        return f"{self.host}:{self.port}"


def merge_tags(tags: list[str], service: str) -> list[str]:
    """
    合并静态标签与服务标签

    先按字典序排序，再去除相邻重复项。

    示例:
        >>> merge_tags(["b", "a", "a"], "svc")
        ['a', 'b', 'service:svc']
    """
    merged = sorted([*tags, f"service:{service}"])
    return [tag for tag, _ in groupby(merged)]


def env_string(name: str, default_value: str) -> str:
    """
    从环境变量读取字符串

    环境变量为空时返回默认值，最终取值会记录到日志。
    """
    value = os.environ.get(name, "")
    if value:
        logger.info("%s=[%s] using %s=%s default=%s", name, value, name, value, default_value)
        return value
    logger.info("%s=[%s] using %s=%s default=%s", name, value, name, default_value, default_value)
    return default_value


__all__ = [
    "ExporterOptions",
    "StatsDClientOptions",
    "merge_tags",
    "env_string",
]
