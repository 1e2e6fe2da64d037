"""Progress 投影模块 -- 从输入快照计算全部派生视图

compute_progress() 是纯函数：相同的 (目录, 成员记录, 可见性设置) 总是产生相同的视图。
何时重算由调用方决定（见 raidtrack.sync.hub）。

计算按固定顺序进行，每一步只读取前一步的类型化输出：
1. 可见性过滤 + 成员快照
2. 完成 / 失败 / 目标 / 阵营映射
3. 商人等级映射
4. 任务可用性
5. hideout 等级与需求物品汇总
"""

import time
from collections.abc import Mapping
from typing import Any

import structlog

from .aggregation import (
    MemberDirectory,
    aggregate_hideout_needs,
    aggregate_task_needs,
    build_faction_map,
    build_level_map,
    build_objective_completion_map,
    build_task_completion_map,
    build_task_failure_map,
    item_totals,
    snapshot_members,
)
from .availability import TaskAvailabilityEvaluator
from .catalog_store import CatalogStore
from .config import load_engine_config
from .hideout import (
    build_hideout_level_map,
    build_module_completion_map,
    build_part_completion_map,
)
from .models.views import ProgressSnapshot
from .traders import build_trader_levels, build_trader_standings
from .visibility import VisibilitySettings, visible_member_ids

log = structlog.get_logger()


def _normalize_self_key(
    records: Mapping[str, Any],
    self_id: str,
    own_uid: str | None,
) -> dict[str, Any]:
    # 团队 feed 中本地用户以真实 ID 出现时归并到 self；本地会话的记录优先
    normalized = dict(records)
    if own_uid and own_uid != self_id and own_uid in normalized:
        own_record = normalized.pop(own_uid)
        normalized.setdefault(self_id, own_record)
    return normalized


def compute_progress(
    catalog: CatalogStore,
    records: Mapping[str, Any],
    visibility: VisibilitySettings | None = None,
    *,
    self_id: str | None = None,
    local_display_name: str | None = None,
    own_uid: str | None = None,
    default_game_mode: str | None = None,
    generation: int = 0,
) -> ProgressSnapshot:
    """计算一次完整的进度快照

    目录未加载时返回空视图；缺失或格式错误的成员记录按零贡献跳过。

    Args:
        catalog: 只读目录
        records: 成员 ID -> feed 原始记录（或 MemberProgressState）
        visibility: 可见性设置，None 表示全部可见
        self_id: 本地用户键，None 时取 load_engine_config()
        local_display_name: 本地缓存的 self 显示名
        own_uid: 本地用户的真实 ID
        default_game_mode: feed 未声明模式时使用的模式，None 时取 load_engine_config()
        generation: 本次计算的代数，由调用方分配

    Returns:
        ProgressSnapshot 实例
    """
    start_time = time.monotonic()
    if self_id is None or default_game_mode is None:
        config = load_engine_config()
        self_id = self_id or config.self_id
        default_game_mode = default_game_mode or config.default_game_mode

    records = _normalize_self_key(records, self_id, own_uid)
    visible = visible_member_ids(records.keys(), visibility, self_id)
    members, skipped = snapshot_members(records, visible, default_game_mode)

    task_completions = build_task_completion_map(catalog, members)
    task_failures = build_task_failure_map(catalog, members)
    objective_completions = build_objective_completion_map(catalog, members)
    player_factions = build_faction_map(members)

    trader_levels = build_trader_levels(catalog.traders, members)
    trader_standings = build_trader_standings(catalog.traders, members)

    evaluator = TaskAvailabilityEvaluator(
        catalog,
        members,
        task_completions,
        trader_levels,
        player_factions,
        trader_standings,
    )
    task_availability = evaluator.evaluate_all(sorted(members))

    hideout_levels = build_hideout_level_map(catalog, members)
    needed_items = [
        *aggregate_task_needs(
            catalog,
            members,
            task_completions,
            objective_completions,
            player_factions,
        ),
        *aggregate_hideout_needs(catalog, members, hideout_levels),
    ]

    directory = MemberDirectory(
        catalog,
        members,
        visible,
        self_id=self_id,
        local_display_name=local_display_name,
        own_uid=own_uid,
    )

    snapshot = ProgressSnapshot(
        generation=generation,
        self_id=self_id,
        visible_member_ids=visible,
        skipped_member_ids=skipped,
        task_completions=task_completions,
        task_failures=task_failures,
        task_availability=task_availability,
        objective_completions=objective_completions,
        hideout_levels=hideout_levels,
        hideout_module_completions=build_module_completion_map(catalog, members),
        hideout_part_completions=build_part_completion_map(catalog, members),
        trader_levels=trader_levels,
        trader_standings=trader_standings,
        player_levels=build_level_map(members),
        player_factions=player_factions,
        needed_items=needed_items,
        item_totals=item_totals(needed_items),
        profiles={member_id: directory.profile(member_id) for member_id in visible},
    )

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    log.info(
        "progress_recomputed",
        generation=generation,
        member_count=len(members),
        skipped_count=len(skipped),
        task_count=len(task_completions),
        need_count=len(needed_items),
        elapsed_ms=elapsed_ms,
    )
    return snapshot
