"""Derived View Models -- 每次重算生成的只读视图

所有视图都是 (Catalog, 可见成员状态, 可见性设置) 的纯函数结果，
不作为事实来源持久化。展示层按 (实体 ID, 成员 ID) 查询，缺失数据返回安全默认值。
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field
from ulid import ULID

from .enums import NeedType

# 实体 ID -> 成员 ID -> bool（任务完成、任务可用、目标完成、hideout 模块/部件完成）
CompletionsMap = dict[str, dict[str, bool]]

# station ID -> 成员 ID -> 显示等级
HideoutLevelMap = dict[str, dict[str, int]]

# 成员 ID -> 商人 ID -> 等级
TraderLevelsMap = dict[str, dict[str, int]]

# 成员 ID -> 商人 ID -> 声望
TraderStandingMap = dict[str, dict[str, float]]

# 成员 ID -> 阵营
FactionMap = dict[str, str]


class NeededItem(BaseModel):
    """单条需求物品汇总 -- 以目标 ID 或 hideout 物品需求 ID 为键"""

    model_config = ConfigDict(frozen=True)

    need_id: str = Field(description="目标 ID 或 hideout 物品需求 ID")
    need_type: NeedType
    item_id: str
    item_name: str = Field(default="")
    alternative_item_ids: list[str] = Field(
        default_factory=list,
        description="可满足该目标的全部物品 ID（去重，首项即 item_id）",
    )
    task_id: str | None = Field(default=None, description="taskObjective 所属任务")
    hideout_module_id: str | None = Field(default=None, description="hideoutModule 所属等级")
    station_id: str | None = Field(default=None)
    required_count: int = Field(ge=0, description="单个成员需要的数量")
    found_in_raid: bool = Field(default=False)
    member_needs: dict[str, int] = Field(
        default_factory=dict, description="成员 ID -> 剩余数量"
    )

    @computed_field
    @property
    def total_remaining(self) -> int:
        """全队剩余需求总数"""
        return sum(self.member_needs.values())


class MemberProfile(BaseModel):
    """成员展示信息"""

    model_config = ConfigDict(frozen=True)

    member_id: str
    display_name: str
    level: int = Field(default=0)
    faction: str = Field(default="Unknown")
    game_edition: int = Field(default=1)
    game_mode: str = Field(default="pvp")
    team_index: str = Field(description="本地用户为 self，其余为成员 ID")


class ProgressSnapshot(BaseModel):
    """一次完整重算的结果快照

    generation 单调递增，由发起重算的调用方分配；
    同一组输入重复计算，除 snapshot_id 与 computed_at 外结果完全一致。
    """

    model_config = ConfigDict(frozen=True)

    snapshot_id: str = Field(
        default_factory=lambda: str(ULID()), description="唯一标识，ULID 格式"
    )
    generation: int = Field(default=0, ge=0)
    computed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    self_id: str = Field(default="self")
    visible_member_ids: list[str] = Field(default_factory=list)
    skipped_member_ids: list[str] = Field(
        default_factory=list, description="feed 缺失或格式错误而被跳过的成员"
    )

    task_completions: CompletionsMap = Field(default_factory=dict)
    task_failures: CompletionsMap = Field(default_factory=dict)
    task_availability: CompletionsMap = Field(default_factory=dict)
    objective_completions: CompletionsMap = Field(default_factory=dict)
    hideout_levels: HideoutLevelMap = Field(default_factory=dict)
    hideout_module_completions: CompletionsMap = Field(default_factory=dict)
    hideout_part_completions: CompletionsMap = Field(default_factory=dict)
    trader_levels: TraderLevelsMap = Field(default_factory=dict)
    trader_standings: TraderStandingMap = Field(default_factory=dict)
    player_levels: dict[str, int] = Field(default_factory=dict)
    player_factions: FactionMap = Field(default_factory=dict)

    needed_items: list[NeededItem] = Field(default_factory=list)
    item_totals: dict[str, int] = Field(default_factory=dict)
    profiles: dict[str, MemberProfile] = Field(default_factory=dict)

    def fingerprint(self) -> dict:
        """去掉快照标识后的视图内容，用于比较两次计算是否一致"""
        return self.model_dump(exclude={"snapshot_id", "computed_at", "generation"})

    def is_task_complete(self, task_id: str, member_id: str) -> bool:
        return self.task_completions.get(task_id, {}).get(member_id, False)

    def is_task_failed(self, task_id: str, member_id: str) -> bool:
        return self.task_failures.get(task_id, {}).get(member_id, False)

    def is_task_available(self, task_id: str, member_id: str) -> bool:
        return self.task_availability.get(task_id, {}).get(member_id, False)

    def is_objective_complete(self, objective_id: str, member_id: str) -> bool:
        return self.objective_completions.get(objective_id, {}).get(member_id, False)

    def hideout_level(self, station_id: str, member_id: str) -> int:
        return self.hideout_levels.get(station_id, {}).get(member_id, 0)

    def trader_level(self, member_id: str, trader_id: str) -> int:
        return self.trader_levels.get(member_id, {}).get(trader_id, 0)

    def display_name(self, member_id: str) -> str:
        profile = self.profiles.get(member_id)
        if profile is not None:
            return profile.display_name
        return member_id[:6]

    def level(self, member_id: str) -> int:
        return self.player_levels.get(member_id, 0)

    def faction(self, member_id: str) -> str:
        return self.player_factions.get(member_id, "Unknown")

    def needs_for_item(self, item_id: str) -> list[NeededItem]:
        """某个物品的所有需求条目"""
        return [need for need in self.needed_items if need.item_id == item_id]
