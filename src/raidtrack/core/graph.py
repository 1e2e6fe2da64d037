"""依赖图构建 -- hideout 等级图与任务图

边 (A -> B) 表示 A 必须先完成 B 才可达。
无法解析的引用跳过该边并记录 CatalogIntegrityError 诊断；
环不会导致构建卡死，检测后为环上的每个节点记录诊断。
"""

from collections.abc import Iterable
from graphlib import CycleError, TopologicalSorter

import structlog

from .exceptions import CatalogIntegrityError
from .models.catalog import HideoutStation, Task
from .models.enums import ACTIVE_REQUIREMENT_STATUSES

log = structlog.get_logger()


class DependencyGraph:
    """有向依赖图 -- 节点为实体 ID

    parents/children 为直接前驱/后继；predecessors/successors 为传递闭包，
    遍历带 visited 集合，环上节点不会无限递归，结果按节点 ID 缓存。
    """

    def __init__(self) -> None:
        # dict 作为有序集合，保持插入顺序
        self._parents: dict[str, dict[str, None]] = {}
        self._children: dict[str, dict[str, None]] = {}
        self._predecessor_cache: dict[str, frozenset[str]] = {}
        self._successor_cache: dict[str, frozenset[str]] = {}

    def __len__(self) -> int:
        return len(self._parents)

    def __contains__(self, node: object) -> bool:
        return node in self._parents

    def add_node(self, node: str) -> None:
        if node not in self._parents:
            self._parents[node] = {}
            self._children[node] = {}
            self._invalidate()

    def add_edge(self, source: str, target: str) -> None:
        """添加边 source -> target，节点不存在时自动创建，重复边忽略"""
        self.add_node(source)
        self.add_node(target)
        if source in self._parents[target]:
            return
        self._parents[target][source] = None
        self._children[source][target] = None
        self._invalidate()

    def has_edge(self, source: str, target: str) -> bool:
        return source in self._parents.get(target, {})

    def nodes(self) -> list[str]:
        return list(self._parents)

    def edge_count(self) -> int:
        return sum(len(parents) for parents in self._parents.values())

    def parents(self, node: str) -> list[str]:
        """直接前驱"""
        return list(self._parents.get(node, {}))

    def children(self, node: str) -> list[str]:
        """直接后继"""
        return list(self._children.get(node, {}))

    def predecessors(self, node: str) -> frozenset[str]:
        """所有传递前驱（不含自身）"""
        if node not in self._predecessor_cache:
            self._predecessor_cache[node] = self._walk(node, self._parents)
        return self._predecessor_cache[node]

    def successors(self, node: str) -> frozenset[str]:
        """所有传递后继（不含自身）"""
        if node not in self._successor_cache:
            self._successor_cache[node] = self._walk(node, self._children)
        return self._successor_cache[node]

    def find_cycles(self) -> list[list[str]]:
        """检测图中的环

        借助 TopologicalSorter 的 CycleError 定位一个环，删除该环的一条边后重试，
        直到图可拓扑排序。每条边最多删除一次，因此必然终止。

        Returns:
            环列表，每个环为节点序列（首尾节点相同）
        """
        remaining = {node: set(parents) for node, parents in self._parents.items()}
        cycles: list[list[str]] = []
        while True:
            try:
                TopologicalSorter(remaining).prepare()
            except CycleError as e:
                cycle = list(e.args[1])
                cycles.append(cycle)
                # cycle[i] 是 cycle[i + 1] 的直接前驱
                remaining[cycle[1]].discard(cycle[0])
                continue
            return cycles

    def _walk(self, start: str, adjacency: dict[str, dict[str, None]]) -> frozenset[str]:
        visited: set[str] = set()
        stack = list(adjacency.get(start, {}))
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            stack.extend(adjacency.get(current, {}))
        visited.discard(start)
        return frozenset(visited)

    def _invalidate(self) -> None:
        self._predecessor_cache.clear()
        self._successor_cache.clear()


def station_level_key(station_id: str, level: int) -> str:
    """(station, level) 索引键"""
    return f"{station_id}:{level}"


def build_hideout_graph(
    stations: Iterable[HideoutStation],
) -> tuple[DependencyGraph, list[CatalogIntegrityError]]:
    """从 stationLevelRequirements 构建 hideout 等级依赖图

    先一次性建立 (station, level) -> level ID 索引，再逐条解析需求。

    Args:
        stations: 全部 hideout station

    Returns:
        (依赖图, 诊断列表)
    """
    stations = list(stations)
    graph = DependencyGraph()
    diagnostics: list[CatalogIntegrityError] = []

    index: dict[str, str] = {}
    for station in stations:
        for level in station.levels:
            index[station_level_key(station.id, level.level)] = level.id
            graph.add_node(level.id)

    for station in stations:
        for level in station.levels:
            for requirement in level.station_level_requirements:
                if requirement.station is None:
                    reference = f"?:{requirement.level}"
                    required_id = None
                else:
                    reference = station_level_key(requirement.station.id, requirement.level)
                    required_id = index.get(reference)

                if required_id is None:
                    log.warning(
                        "hideout_requirement_unresolved",
                        level_id=level.id,
                        station_id=station.id,
                        reference=reference,
                    )
                    diagnostics.append(
                        CatalogIntegrityError(
                            level.id,
                            reference,
                            f"hideout 等级 {level.id} 引用了不存在的 station 等级 {reference}",
                        )
                    )
                    continue

                graph.add_edge(required_id, level.id)

    for cycle in graph.find_cycles():
        path = " -> ".join(cycle)
        log.warning("hideout_cycle_detected", cycle=cycle)
        for level_id in dict.fromkeys(cycle):
            diagnostics.append(
                CatalogIntegrityError(
                    level_id,
                    path,
                    f"hideout 等级 {level_id} 处于依赖环中: {path}",
                )
            )

    return graph, diagnostics


def build_task_graph(
    tasks: Iterable[Task],
) -> tuple[DependencyGraph, list[CatalogIntegrityError]]:
    """从 taskRequirements 构建任务依赖图

    普通需求添加 前置 -> 任务 的边；status 含 active 类取值的需求只要求前置任务
    进行中，因此改为把前置任务的直接前驱连到该任务。active 类需求在所有普通边
    建立后统一处理。

    Args:
        tasks: 全部任务

    Returns:
        (依赖图, 诊断列表)
    """
    tasks = list(tasks)
    known_ids = {task.id for task in tasks}
    graph = DependencyGraph()
    diagnostics: list[CatalogIntegrityError] = []
    deferred: list[tuple[str, str]] = []

    for task in tasks:
        graph.add_node(task.id)
        for requirement in task.task_requirements:
            required_id = requirement.task_id
            if required_id is None or required_id not in known_ids:
                reference = required_id or "?"
                log.warning(
                    "task_requirement_unresolved",
                    task_id=task.id,
                    reference=reference,
                )
                diagnostics.append(
                    CatalogIntegrityError(
                        task.id,
                        reference,
                        f"任务 {task.id} 引用了不存在的前置任务 {reference}",
                    )
                )
                continue

            if ACTIVE_REQUIREMENT_STATUSES.intersection(requirement.normalized_statuses()):
                deferred.append((required_id, task.id))
            else:
                graph.add_edge(required_id, task.id)

    for required_id, task_id in deferred:
        for parent_id in graph.parents(required_id):
            if parent_id != task_id:
                graph.add_edge(parent_id, task_id)

    return graph, diagnostics
