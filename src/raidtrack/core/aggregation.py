"""聚合层 -- 把单成员结果合并为团队视图

包括成员快照、完成/失败/目标/阵营映射、需求物品汇总和成员信息解析。
所有汇总按排序后的成员 ID 迭代，结果与成员输入顺序无关。
缺失或格式错误的成员 feed 视为零贡献，不抛出。
"""

from collections.abc import Iterable, Mapping
from typing import Any, Literal

import structlog

from .catalog_store import CatalogStore
from .config import DISPLAY_NAME_FALLBACK_LENGTH, SELF_MEMBER_ID, UNKNOWN_FACTION
from .exceptions import MissingMemberDataError
from .models.enums import Faction, NeedType, TaskStatusLabel
from .models.progress import MemberProgressState
from .models.views import CompletionsMap, FactionMap, HideoutLevelMap, MemberProfile, NeededItem

log = structlog.get_logger()


def snapshot_members(
    records: Mapping[str, Any],
    member_ids: Iterable[str],
    default_game_mode: str,
) -> tuple[dict[str, MemberProgressState], list[str]]:
    """解析成员 feed 记录为固定 schema 的状态快照

    Args:
        records: 成员 ID -> 原始 feed 记录（或已解析的 MemberProgressState）
        member_ids: 需要解析的成员（通常为可见成员）
        default_game_mode: 记录未声明模式时使用的模式

    Returns:
        (成员 ID -> 状态, 被跳过的成员 ID 列表)
    """
    states: dict[str, MemberProgressState] = {}
    skipped: list[str] = []
    for member_id in sorted(set(member_ids)):
        record = records.get(member_id)
        if isinstance(record, MemberProgressState):
            states[member_id] = (
                record
                if record.member_id == member_id
                else record.model_copy(update={"member_id": member_id})
            )
            continue
        try:
            states[member_id] = MemberProgressState.from_feed(
                member_id, record, default_game_mode
            )
        except MissingMemberDataError as e:
            log.warning(
                "member_feed_missing" if record is None else "member_feed_malformed",
                member_id=member_id,
                reason=e.reason,
            )
            skipped.append(member_id)
    return states, skipped


# ============================================================
# 完成状态映射
# ============================================================


def build_task_completion_map(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
) -> CompletionsMap:
    """任务 ID -> 成员 ID -> 是否完成"""
    return {
        task.id: {
            member_id: member.is_task_complete(task.id) for member_id, member in members.items()
        }
        for task in catalog.tasks
    }


def build_task_failure_map(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
) -> CompletionsMap:
    """任务 ID -> 成员 ID -> 是否失败"""
    return {
        task.id: {
            member_id: member.is_task_failed(task.id) for member_id, member in members.items()
        }
        for task in catalog.tasks
    }


def build_objective_completion_map(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
) -> CompletionsMap:
    """目标 ID -> 成员 ID -> 是否完成"""
    return {
        objective.id: {
            member_id: member.is_objective_complete(objective.id)
            for member_id, member in members.items()
        }
        for objective in catalog.objectives
    }


def build_faction_map(members: Mapping[str, MemberProgressState]) -> FactionMap:
    return {member_id: member.pmc_faction for member_id, member in members.items()}


def build_level_map(members: Mapping[str, MemberProgressState]) -> dict[str, int]:
    return {member_id: member.level for member_id, member in members.items()}


# ============================================================
# 需求物品汇总
# ============================================================


def _faction_matches(task_faction: str, member_faction: str) -> bool:
    return task_faction in (Faction.ANY, member_faction)


def aggregate_task_needs(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
    task_completions: CompletionsMap,
    objective_completions: CompletionsMap,
    player_factions: FactionMap,
) -> list[NeededItem]:
    """汇总任务目标的物品需求

    成员在以下情况下不贡献需求：任务或其互斥任务已完成、目标已完成、
    任务阵营与成员不符、已收集数量达到要求。其余成员贡献 required - collected。
    """
    excluded = catalog.excluded_item_ids
    member_ids = sorted(members)
    needs: list[NeededItem] = []

    for task in catalog.tasks:
        task_done = task_completions.get(task.id, {})
        alternatives = sorted(catalog.alternatives(task.id))
        for objective in task.objectives:
            if not objective.consumes_items:
                continue
            item = objective.tracked_item
            if item is None or item.id in excluded:
                continue

            required = objective.count
            objective_done = objective_completions.get(objective.id, {})
            member_needs: dict[str, int] = {}
            for member_id in member_ids:
                member = members[member_id]
                if task_done.get(member_id, False):
                    continue
                if any(
                    task_completions.get(alt, {}).get(member_id, False) for alt in alternatives
                ):
                    continue
                if objective_done.get(member_id, False):
                    continue
                if not _faction_matches(
                    task.faction_name, player_factions.get(member_id, UNKNOWN_FACTION)
                ):
                    continue
                collected = member.objective_count(objective.id)
                if collected >= required:
                    continue
                member_needs[member_id] = required - collected

            if member_needs:
                needs.append(
                    NeededItem(
                        need_id=objective.id,
                        need_type=NeedType.TASK_OBJECTIVE,
                        item_id=item.id,
                        item_name=item.name,
                        alternative_item_ids=[c.id for c in objective.candidate_items()],
                        task_id=task.id,
                        required_count=required,
                        found_in_raid=objective.found_in_raid,
                        member_needs=member_needs,
                    )
                )
    return needs


def aggregate_hideout_needs(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
    hideout_levels: HideoutLevelMap,
) -> list[NeededItem]:
    """汇总 hideout 等级的物品需求

    成员已建造该等级、已提交该物品，或显示等级已达到该等级（stash 版本下限、
    Cultist Circle 自动满级）时不贡献需求。
    """
    excluded = catalog.excluded_item_ids
    member_ids = sorted(members)
    needs: list[NeededItem] = []

    for station in catalog.hideout_stations:
        displayed = hideout_levels.get(station.id, {})
        for level in station.levels:
            for requirement in level.item_requirements:
                item = requirement.item
                if item is None or item.id in excluded:
                    continue

                member_needs: dict[str, int] = {}
                for member_id in member_ids:
                    member = members[member_id]
                    if member.is_module_complete(level.id) or member.is_part_complete(
                        requirement.id
                    ):
                        continue
                    if displayed.get(member_id, 0) >= level.level:
                        continue
                    collected = member.part_count(requirement.id)
                    if collected >= requirement.count:
                        continue
                    member_needs[member_id] = requirement.count - collected

                if member_needs:
                    needs.append(
                        NeededItem(
                            need_id=requirement.id,
                            need_type=NeedType.HIDEOUT_MODULE,
                            item_id=item.id,
                            item_name=item.name,
                            hideout_module_id=level.id,
                            station_id=station.id,
                            required_count=requirement.count,
                            found_in_raid=requirement.found_in_raid,
                            member_needs=member_needs,
                        )
                    )
    return needs


def item_totals(needs: Iterable[NeededItem]) -> dict[str, int]:
    """物品 ID -> 全队剩余需求总数（按物品 ID 排序）"""
    totals: dict[str, int] = {}
    for need in needs:
        totals[need.item_id] = totals.get(need.item_id, 0) + need.total_remaining
    return dict(sorted(totals.items()))


# ============================================================
# 成员信息解析
# ============================================================


class MemberDirectory:
    """成员显示名 / 等级 / 阵营等信息解析

    self 的显示名回退顺序：自身状态中的 displayName -> 本地缓存的显示名 -> 截断 ID。
    不会回退到任何全局显示名字段。
    """

    def __init__(
        self,
        catalog: CatalogStore,
        members: Mapping[str, MemberProgressState],
        visible_ids: Iterable[str],
        self_id: str = SELF_MEMBER_ID,
        local_display_name: str | None = None,
        own_uid: str | None = None,
    ) -> None:
        """
        Args:
            catalog: 目录
            members: 已解析的成员状态
            visible_ids: 可见成员 ID
            self_id: 本地用户在成员集合中的键
            local_display_name: 本地缓存的 self 显示名
            own_uid: 本地用户的真实 ID（在团队 feed 中出现时映射为 self）
        """
        self._catalog = catalog
        self._members = members
        self._visible = frozenset(visible_ids)
        self._self_id = self_id
        self._local_display_name = local_display_name
        self._own_uid = own_uid

    def team_index(self, member_id: str) -> str:
        if member_id == self._own_uid:
            return self._self_id
        return member_id

    def display_name(self, member_id: str) -> str:
        member = self._members.get(self.team_index(member_id))
        if member is not None and member.display_name:
            return member.display_name
        if self.team_index(member_id) == self._self_id and self._local_display_name:
            return self._local_display_name
        return member_id[:DISPLAY_NAME_FALLBACK_LENGTH]

    def level(self, member_id: str) -> int:
        member = self._members.get(self.team_index(member_id))
        return member.level if member is not None else 0

    def faction(self, member_id: str) -> str:
        key = self.team_index(member_id)
        member = self._members.get(key)
        if member is None or key not in self._visible:
            return UNKNOWN_FACTION
        return member.pmc_faction

    def task_status(self, member_id: str, task_id: str) -> TaskStatusLabel:
        member = self._members.get(self.team_index(member_id))
        if member is None:
            return TaskStatusLabel.INCOMPLETE
        if member.is_task_failed(task_id):
            return TaskStatusLabel.FAILED
        if member.is_task_complete(task_id):
            return TaskStatusLabel.COMPLETED
        return TaskStatusLabel.INCOMPLETE

    def progress_percentage(
        self,
        member_id: str,
        kind: Literal["tasks", "hideout"],
    ) -> float:
        """完成百分比（0-100，保留一位小数）

        tasks: 成员阵营可接的任务中已完成的比例
        hideout: 全部 hideout 等级中已建造的比例

        Raises:
            ValueError: kind 不是 tasks / hideout
        """
        member = self._members.get(self.team_index(member_id))
        if kind == "tasks":
            faction = member.pmc_faction if member else UNKNOWN_FACTION
            ids = [
                task.id
                for task in self._catalog.tasks
                if _faction_matches(task.faction_name, faction)
            ]
            done = sum(1 for task_id in ids if member and member.is_task_complete(task_id))
        elif kind == "hideout":
            ids = [
                level.id for station in self._catalog.hideout_stations for level in station.levels
            ]
            done = sum(1 for level_id in ids if member and member.is_module_complete(level_id))
        else:
            raise ValueError(f"未知的进度类型: {kind}")

        if not ids:
            return 0.0
        return round(done / len(ids) * 100, 1)

    def profile(self, member_id: str) -> MemberProfile:
        member = self._members.get(self.team_index(member_id))
        return MemberProfile(
            member_id=member_id,
            display_name=self.display_name(member_id),
            level=self.level(member_id),
            faction=self.faction(member_id),
            game_edition=member.game_edition if member else 1,
            game_mode=member.game_mode if member else "pvp",
            team_index=self.team_index(member_id),
        )
