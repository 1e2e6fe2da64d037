"""任务可用性判定

对每个 (任务, 成员) 独立判定任务当前是否可接取。依赖同一轮计算中
先行构建的任务完成映射与商人等级映射。结果在单个评估器实例内按
(任务, 成员) 记忆化；每轮重算创建新实例，不跨轮复用。
"""

from collections.abc import Iterable, Mapping

from .catalog_store import CatalogStore
from .config import UNKNOWN_FACTION
from .models.catalog import Task, TaskRequirement
from .models.enums import ACTIVE_REQUIREMENT_STATUSES, EOD_EDITIONS, Faction, ObjectiveType
from .models.progress import MemberProgressState
from .models.views import CompletionsMap, FactionMap, TraderLevelsMap, TraderStandingMap
from .traders import clamp_trader_level, member_trader_level, standing_comparator


class TaskAvailabilityEvaluator:
    """任务可用性评估器

    判定顺序（全部为 AND 条件，按开销从低到高短路）：
    1. 已完成 -> 不可用
    2. 互斥任务中任一已完成 -> 不可用
    3. EOD 专属任务且成员版本不符 -> 不可用
    4. failedRequirements 中任一任务失败 -> 不可用
    5. 玩家等级不足 -> 不可用
    6. 商人等级不足 -> 不可用
    7. 非可选的 traderLevel / traderStanding 目标未达成 -> 不可用
    8. 前置任务条件不满足 -> 不可用
    9. 阵营不符 -> 不可用
    """

    def __init__(
        self,
        catalog: CatalogStore,
        members: Mapping[str, MemberProgressState],
        task_completions: CompletionsMap,
        trader_levels: TraderLevelsMap,
        player_factions: FactionMap,
        trader_standings: TraderStandingMap | None = None,
    ) -> None:
        self._catalog = catalog
        self._members = members
        self._completions = task_completions
        self._trader_levels = trader_levels
        self._trader_standings = trader_standings or {}
        self._factions = player_factions
        self._memo: dict[tuple[str, str], bool] = {}

    def evaluate(self, task_id: str, member_id: str) -> bool:
        """判定单个 (任务, 成员)；未知任务或未知成员返回 False"""
        return self._evaluate(task_id, member_id, set())

    def evaluate_all(self, member_ids: Iterable[str]) -> CompletionsMap:
        """构建 TaskAvailabilityMap：任务 ID -> 成员 ID -> bool"""
        member_ids = list(member_ids)
        return {
            task.id: {member_id: self.evaluate(task.id, member_id) for member_id in member_ids}
            for task in self._catalog.tasks
        }

    def _evaluate(self, task_id: str, member_id: str, stack: set[tuple[str, str]]) -> bool:
        key = (task_id, member_id)
        if key in self._memo:
            return self._memo[key]
        # 前置链成环：环内依赖视为不满足
        if key in stack:
            return False

        task = self._catalog.get_task(task_id)
        member = self._members.get(member_id)
        if task is None or member is None:
            self._memo[key] = False
            return False

        stack.add(key)
        result = (
            not self._is_complete(task_id, member_id)
            and not self._alternative_complete(task_id, member_id)
            and self._check_edition(task, member)
            and self._check_failed_requirements(task, member)
            and member.level >= task.min_player_level
            and self._check_trader_requirements(task, member_id, member)
            and self._check_objective_requirements(task, member_id)
            and self._check_task_requirements(task, member_id, member, stack)
            and self._check_faction(task, member_id)
        )
        stack.discard(key)
        self._memo[key] = result
        return result

    def _is_complete(self, task_id: str, member_id: str) -> bool:
        return self._completions.get(task_id, {}).get(member_id, False)

    def _alternative_complete(self, task_id: str, member_id: str) -> bool:
        return any(
            self._is_complete(alternative_id, member_id)
            for alternative_id in self._catalog.alternatives(task_id)
        )

    @staticmethod
    def _check_edition(task: Task, member: MemberProgressState) -> bool:
        return not task.eod_only or member.game_edition in EOD_EDITIONS

    @staticmethod
    def _check_failed_requirements(task: Task, member: MemberProgressState) -> bool:
        return not any(
            requirement.task_id is not None and member.is_task_failed(requirement.task_id)
            for requirement in task.failed_requirements
        )

    def _achieved_trader_level(
        self,
        member_id: str,
        member: MemberProgressState,
        trader_id: str,
    ) -> int:
        level = self._trader_levels.get(member_id, {}).get(trader_id)
        if level is None:
            return member_trader_level(member, trader_id)
        return level

    def _check_trader_requirements(
        self,
        task: Task,
        member_id: str,
        member: MemberProgressState,
    ) -> bool:
        required: list[tuple[str, int]] = [
            (requirement.trader.id, clamp_trader_level(requirement.level))
            for requirement in task.trader_level_requirements
            if requirement.trader is not None
        ]
        # 旧版 traderRequirements 的 value 即等级
        required.extend(
            (requirement.trader.id, clamp_trader_level(requirement.value))
            for requirement in task.trader_requirements
            if requirement.trader is not None
        )
        return all(
            self._achieved_trader_level(member_id, member, trader_id) >= level
            for trader_id, level in required
        )

    def _check_objective_requirements(self, task: Task, member_id: str) -> bool:
        """任务内嵌的商人门槛目标；可选目标与缺少商人的目标不参与判定"""
        levels = self._trader_levels.get(member_id, {})
        standings = self._trader_standings.get(member_id, {})
        for objective in task.objectives:
            if objective.optional or objective.trader is None:
                continue
            trader_id = objective.trader.id
            if objective.type == ObjectiveType.TRADER_LEVEL:
                if levels.get(trader_id, 0) < clamp_trader_level(objective.level):
                    return False
            elif objective.type == ObjectiveType.TRADER_STANDING:
                current = standings.get(trader_id, 0.0)
                if not standing_comparator(current, objective.compare_method, objective.value):
                    return False
        return True

    def _check_task_requirements(
        self,
        task: Task,
        member_id: str,
        member: MemberProgressState,
        stack: set[tuple[str, str]],
    ) -> bool:
        return all(
            self._requirement_satisfied(requirement, member_id, member, stack)
            for requirement in task.task_requirements
        )

    def _requirement_satisfied(
        self,
        requirement: TaskRequirement,
        member_id: str,
        member: MemberProgressState,
        stack: set[tuple[str, str]],
    ) -> bool:
        required_id = requirement.task_id
        # 悬空引用已在目录加载时记录诊断，这里跳过该需求
        if required_id is None or self._catalog.get_task(required_id) is None:
            return True

        if self._is_complete(required_id, member_id):
            return True

        statuses = requirement.normalized_statuses()
        if ACTIVE_REQUIREMENT_STATUSES.intersection(statuses):
            if self._evaluate(required_id, member_id, stack):
                return True
        if "failed" in statuses and member.is_task_failed(required_id):
            return True
        return False

    def _check_faction(self, task: Task, member_id: str) -> bool:
        if task.faction_name == Faction.ANY:
            return True
        return task.faction_name == self._factions.get(member_id, UNKNOWN_FACTION)
