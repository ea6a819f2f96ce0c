"""
缓存组注册表模块

每个导出周期开始时解析需要采集的缓存组。

支持两种策略：
- 静态列表: 构造时固定的一组来源
- 动态查找: 每个周期重新调用回调，组可以在进程生命周期内增减

使用示例:
    >>> registry = StaticGroupRegistry([source_a, source_b])
    >>> registry = DynamicGroupRegistry(lambda: workspace.list_groups())
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from typing import Union

from .exceptions import ExporterConfigError
from .types import StatsSource

GroupLister = Callable[[], Iterable[StatsSource]]
"""动态查找回调：返回当前存活的缓存组来源"""


class GroupRegistry(ABC):
    """缓存组注册表基类"""

    @abstractmethod
    def sources(self) -> list[StatsSource]:
        """返回当前需要采集的来源列表"""

    def current_groups(self) -> list[tuple[str, StatsSource]]:
        """
        返回当前的 (组名, 来源) 列表

        顺序与来源顺序一致。空列表合法，表示本周期跳过导出。
        """
        return [(source.name(), source) for source in self.sources()]


class StaticGroupRegistry(GroupRegistry):
    """静态列表：构造时捕获一次"""

    def __init__(self, sources: Iterable[StatsSource]) -> None:
        self._sources = tuple(sources)

    def sources(self) -> list[StatsSource]:
        return list(self._sources)

    def __repr__(self) -> str:
        return f"StaticGroupRegistry(groups={len(self._sources)})"


class DynamicGroupRegistry(GroupRegistry):
    """动态查找：每个周期重新调用回调"""

    def __init__(self, list_groups: GroupLister) -> None:
        if not callable(list_groups):
            msg = f"list_groups 必须是可调用对象: {list_groups!r}"
            raise ExporterConfigError(msg)
        self._list_groups = list_groups

    def sources(self) -> list[StatsSource]:
        return list(self._list_groups())

    def __repr__(self) -> str:
        return f"DynamicGroupRegistry(list_groups={self._list_groups!r})"


GroupsLike = Union[GroupRegistry, Sequence[StatsSource], GroupLister]


def as_registry(
    groups: GroupsLike | None = None,
    list_groups: GroupLister | None = None,
) -> GroupRegistry:
    """
    把各种形式的组配置统一为注册表

    Args:
        groups: 注册表、来源序列或回调
        list_groups: 动态查找回调（与 groups 互斥）

    Returns:
        GroupRegistry 实例

    Raises:
        ExporterConfigError: 同时提供了 groups 和 list_groups
    """
    if groups is not None and list_groups is not None:
        msg = "groups 和 list_groups 不能同时指定"
        raise ExporterConfigError(msg)

    if list_groups is not None:
        return DynamicGroupRegistry(list_groups)

    if groups is None:
        return StaticGroupRegistry(())

    if isinstance(groups, GroupRegistry):
        return groups

    if callable(groups):
        return DynamicGroupRegistry(groups)

    return StaticGroupRegistry(groups)


__all__ = [
    "GroupLister",
    "GroupRegistry",
    "StaticGroupRegistry",
    "DynamicGroupRegistry",
    "as_registry",
]
