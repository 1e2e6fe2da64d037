"""CatalogStore -- 显式构造、注入使用的只读目录

持有任务、hideout、商人定义以及加载时一次性建立的索引和依赖图。
load() 全量替换内容，clear() 释放全部索引；两次调用之间内容只读，
可在一次会话内的所有计算间安全共享。
"""

import time
from collections.abc import Iterable
from pathlib import Path

import structlog

from .exceptions import CatalogIntegrityError
from .graph import DependencyGraph, build_hideout_graph, build_task_graph
from .models.catalog import (
    CatalogDocument,
    HideoutItemRequirement,
    HideoutLevel,
    HideoutStation,
    Objective,
    Task,
    Trader,
)
from .protocols import CatalogSource

log = structlog.get_logger()


class CatalogStore:
    """只读目录及其派生索引"""

    def __init__(self, excluded_item_ids: Iterable[str] = ()) -> None:
        """
        Args:
            excluded_item_ids: 额外排除的物品 ID（与目录声明的排除项合并）
        """
        self._configured_exclusions = frozenset(excluded_item_ids)
        self.clear()

    @classmethod
    def from_document(
        cls,
        document: CatalogDocument,
        excluded_item_ids: Iterable[str] = (),
    ) -> "CatalogStore":
        store = cls(excluded_item_ids)
        store.load(
            document.tasks,
            document.hideout_stations,
            document.traders,
            excluded_item_ids=document.excluded_item_ids,
        )
        return store

    @classmethod
    def from_json(
        cls,
        path: str | Path,
        excluded_item_ids: Iterable[str] = (),
    ) -> "CatalogStore":
        """从 JSON 文件加载目录

        Raises:
            OSError: 文件无法读取
            pydantic.ValidationError: 文档结构不合法
        """
        text = Path(path).read_text(encoding="utf-8")
        document = CatalogDocument.model_validate_json(text)
        return cls.from_document(document, excluded_item_ids)

    def load_from_source(self, source: CatalogSource) -> None:
        """从内容源读取当前快照并加载"""
        self.load(
            source.get_tasks(),
            source.get_hideout_stations(),
            source.get_traders(),
        )

    def load(
        self,
        tasks: Iterable[Task],
        hideout_stations: Iterable[HideoutStation],
        traders: Iterable[Trader] = (),
        excluded_item_ids: Iterable[str] = (),
    ) -> None:
        """全量加载目录并重建所有索引

        完整性问题（悬空引用、hideout 环）记录为诊断并继续，不抛出。

        Args:
            tasks: 任务定义
            hideout_stations: hideout station 定义
            traders: 商人定义
            excluded_item_ids: 目录声明的不可追踪容器物品 ID
        """
        start_time = time.monotonic()
        self.clear()

        self._tasks = {task.id: task for task in tasks}
        self._stations = {station.id: station for station in hideout_stations}
        self._traders = {trader.id: trader for trader in traders}
        self._catalog_exclusions = frozenset(excluded_item_ids)

        for task in self._tasks.values():
            for objective in task.objectives:
                self._objectives[objective.id] = objective
                self._objective_task[objective.id] = task.id

        for station in self._stations.values():
            for level in station.levels:
                self._levels[level.id] = level
                self._level_station[level.id] = station.id
                for requirement in level.item_requirements:
                    self._item_requirements[requirement.id] = requirement
                    self._requirement_level[requirement.id] = level.id

        self._build_alternatives()
        self._check_failed_requirements()

        self._task_graph, task_diagnostics = build_task_graph(self._tasks.values())
        self._hideout_graph, hideout_diagnostics = build_hideout_graph(self._stations.values())
        self._diagnostics.extend(task_diagnostics)
        self._diagnostics.extend(hideout_diagnostics)
        self._loaded = True

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        log.info(
            "catalog_loaded",
            task_count=len(self._tasks),
            station_count=len(self._stations),
            trader_count=len(self._traders),
            diagnostic_count=len(self._diagnostics),
            elapsed_ms=elapsed_ms,
        )

    def clear(self) -> None:
        """释放目录内容与全部索引，回到未加载状态"""
        self._tasks: dict[str, Task] = {}
        self._stations: dict[str, HideoutStation] = {}
        self._traders: dict[str, Trader] = {}
        self._objectives: dict[str, Objective] = {}
        self._objective_task: dict[str, str] = {}
        self._levels: dict[str, HideoutLevel] = {}
        self._level_station: dict[str, str] = {}
        self._item_requirements: dict[str, HideoutItemRequirement] = {}
        self._requirement_level: dict[str, str] = {}
        self._alternatives: dict[str, set[str]] = {}
        self._catalog_exclusions: frozenset[str] = frozenset()
        self._diagnostics: list[CatalogIntegrityError] = []
        self._task_graph = DependencyGraph()
        self._hideout_graph = DependencyGraph()
        self._loaded = False

    # ============================================================
    # 只读访问
    # ============================================================

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks.values())

    @property
    def hideout_stations(self) -> list[HideoutStation]:
        return list(self._stations.values())

    @property
    def traders(self) -> list[Trader]:
        return list(self._traders.values())

    @property
    def objectives(self) -> list[Objective]:
        return list(self._objectives.values())

    @property
    def diagnostics(self) -> list[CatalogIntegrityError]:
        return list(self._diagnostics)

    @property
    def task_graph(self) -> DependencyGraph:
        return self._task_graph

    @property
    def hideout_graph(self) -> DependencyGraph:
        return self._hideout_graph

    @property
    def excluded_item_ids(self) -> frozenset[str]:
        return self._catalog_exclusions | self._configured_exclusions

    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def get_objective(self, objective_id: str) -> Objective | None:
        return self._objectives.get(objective_id)

    def task_for_objective(self, objective_id: str) -> str | None:
        return self._objective_task.get(objective_id)

    def get_station(self, station_id: str) -> HideoutStation | None:
        return self._stations.get(station_id)

    def get_level(self, level_id: str) -> HideoutLevel | None:
        return self._levels.get(level_id)

    def station_for_level(self, level_id: str) -> str | None:
        return self._level_station.get(level_id)

    def get_item_requirement(self, requirement_id: str) -> HideoutItemRequirement | None:
        return self._item_requirements.get(requirement_id)

    def level_for_item_requirement(self, requirement_id: str) -> str | None:
        return self._requirement_level.get(requirement_id)

    def alternatives(self, task_id: str) -> frozenset[str]:
        """互斥任务集合（对称）"""
        return frozenset(self._alternatives.get(task_id, ()))

    # ============================================================
    # hideout 查询
    # ============================================================

    def levels_for_station(self, station_id: str) -> list[HideoutLevel]:
        """按等级序号排序的 station 等级列表；未知 station 返回空列表"""
        station = self._stations.get(station_id)
        if station is None:
            return []
        return sorted(station.levels, key=lambda level: level.level)

    def max_station_level(self, station_id: str) -> int:
        station = self._stations.get(station_id)
        return station.max_level if station else 0

    def total_construction_time(self, level_id: str) -> int:
        """自身建造耗时加上所有传递前置等级的耗时（秒）"""
        level = self._levels.get(level_id)
        if level is None:
            return 0
        total = level.construction_time
        for predecessor_id in self._hideout_graph.predecessors(level_id):
            predecessor = self._levels.get(predecessor_id)
            if predecessor is not None:
                total += predecessor.construction_time
        return total

    # ============================================================
    # 任务查询
    # ============================================================

    def is_prerequisite_for(self, prerequisite_id: str, task_id: str) -> bool:
        """prerequisite_id 是否是 task_id 的（传递）前置任务"""
        return prerequisite_id in self._task_graph.predecessors(task_id)

    def _build_alternatives(self) -> None:
        # 目录中的互斥关系可能只由一侧声明，这里统一为对称索引
        def link(a: str, b: str) -> None:
            if a == b:
                return
            self._alternatives.setdefault(a, set()).add(b)
            self._alternatives.setdefault(b, set()).add(a)

        for task in self._tasks.values():
            for alternative_id in task.alternatives:
                if alternative_id in self._tasks:
                    link(task.id, alternative_id)
                else:
                    log.debug(
                        "task_alternative_unresolved",
                        task_id=task.id,
                        reference=alternative_id,
                    )
            for reward in task.finish_rewards:
                failed_id = reward.fails_task_id
                if failed_id and failed_id in self._tasks:
                    link(task.id, failed_id)

    def _check_failed_requirements(self) -> None:
        for task in self._tasks.values():
            for requirement in task.failed_requirements:
                required_id = requirement.task_id
                if required_id is not None and required_id in self._tasks:
                    continue
                reference = required_id or "?"
                log.warning(
                    "task_requirement_unresolved",
                    task_id=task.id,
                    reference=reference,
                    kind="failed_requirement",
                )
                self._diagnostics.append(
                    CatalogIntegrityError(
                        task.id,
                        reference,
                        f"任务 {task.id} 的失败条件引用了不存在的任务 {reference}",
                    )
                )
