"""外部协作方接口定义

目录内容源以最终一致的快照形式提供参考数据；
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Sequence
from typing import Protocol

from .models.catalog import HideoutStation, Task, Trader


class CatalogSource(Protocol):
    """目录内容源接口 -- 尚未加载时返回空序列"""

    def get_tasks(self) -> Sequence[Task]:
        """全部任务定义"""
        ...

    def get_hideout_stations(self) -> Sequence[HideoutStation]:
        """全部 hideout station 定义"""
        ...

    def get_traders(self) -> Sequence[Trader]:
        """全部商人定义"""
        ...
