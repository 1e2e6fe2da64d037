"""MemberProgressState Domain Model -- 单个成员的进度记录

每个团队成员（含 self）一份，只由该成员自己的更新流写入；
引擎只读不写。缺失字段一律通过显式默认值解析，不在业务逻辑中散落判空。
"""

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..exceptions import MissingMemberDataError
from .enums import Faction, GameMode


def _drop_null_entries(value: Any) -> Any:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {k: v for k, v in value.items() if v is not None}
    return value


NullSafeMap = BeforeValidator(_drop_null_entries)


class ProgressModel(BaseModel):
    """进度记录基类：只读、兼容 feed 的 camelCase 键"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class TaskCompletion(ProgressModel):
    """任务完成状态"""

    complete: bool = Field(default=False)
    failed: bool = Field(default=False)
    timestamp: int | None = Field(default=None)


class ObjectiveProgress(ProgressModel):
    """目标完成状态与已收集数量"""

    complete: bool = Field(default=False)
    count: int = Field(default=0, ge=0)
    timestamp: int | None = Field(default=None)


class HideoutModuleProgress(ProgressModel):
    """hideout 等级建造状态"""

    complete: bool = Field(default=False)
    timestamp: int | None = Field(default=None)


class HideoutPartProgress(ProgressModel):
    """hideout 物品需求的提交状态"""

    complete: bool = Field(default=False)
    count: int = Field(default=0, ge=0)
    timestamp: int | None = Field(default=None)


class TraderProgress(ProgressModel):
    """商人关系；loyalty_level 为 None 表示 feed 中没有显式等级"""

    loyalty_level: int | None = Field(default=None, ge=0)
    standing: float = Field(default=0.0)


class MemberProgressState(ProgressModel):
    """成员进度状态 -- 固定 schema 的只读快照

    由 from_feed() 从实时 feed 记录构建，当前游戏模式的数据已被展开。
    """

    member_id: str = Field(description="成员 ID（self 为本地用户）")
    level: int = Field(default=1, ge=0, description="玩家等级")
    game_edition: int = Field(default=1, description="游戏版本 1-6")
    game_mode: str = Field(default=GameMode.PVP.value, description="当前游戏模式")
    pmc_faction: str = Field(default=Faction.USEC.value, description="PMC 阵营")
    display_name: str | None = Field(default=None, description="成员自己设置的显示名")
    task_completions: Annotated[dict[str, TaskCompletion], NullSafeMap] = Field(
        default_factory=dict
    )
    task_objectives: Annotated[dict[str, ObjectiveProgress], NullSafeMap] = Field(
        default_factory=dict
    )
    hideout_modules: Annotated[dict[str, HideoutModuleProgress], NullSafeMap] = Field(
        default_factory=dict
    )
    hideout_parts: Annotated[dict[str, HideoutPartProgress], NullSafeMap] = Field(
        default_factory=dict
    )
    trader_standings: Annotated[dict[str, TraderProgress], NullSafeMap] = Field(
        default_factory=dict
    )

    @classmethod
    def from_feed(
        cls,
        member_id: str,
        record: Any,
        default_game_mode: str = GameMode.PVP.value,
    ) -> "MemberProgressState":
        """从 feed 记录构建成员状态

        支持两种记录结构：
        1. 按模式嵌套：{currentGameMode, gameEdition, pvp: {...}, pve: {...}}
        2. 旧版扁平结构：进度字段直接位于顶层

        Args:
            member_id: 成员 ID
            record: feed 原始记录
            default_game_mode: 记录未声明模式时使用的模式

        Returns:
            MemberProgressState 实例

        Raises:
            MissingMemberDataError: 记录缺失或无法解析
        """
        if not isinstance(record, Mapping):
            raise MissingMemberDataError(member_id, "记录缺失或不是对象")

        mode = record.get("currentGameMode")
        if not isinstance(mode, str) or not mode:
            mode = default_game_mode

        data = record.get(mode)
        if not isinstance(data, Mapping):
            data = record

        fields = {k: v for k, v in data.items() if v is not None}
        fields.pop("memberId", None)
        edition = record.get("gameEdition", data.get("gameEdition"))
        if edition is not None:
            fields["gameEdition"] = edition

        try:
            return cls.model_validate(
                {**fields, "member_id": member_id, "game_mode": mode}
            )
        except ValidationError as e:
            raise MissingMemberDataError(member_id, f"记录格式错误: {e.error_count()} 处") from e

    def is_task_complete(self, task_id: str) -> bool:
        entry = self.task_completions.get(task_id)
        return entry.complete if entry else False

    def is_task_failed(self, task_id: str) -> bool:
        entry = self.task_completions.get(task_id)
        return entry.failed if entry else False

    def is_objective_complete(self, objective_id: str) -> bool:
        entry = self.task_objectives.get(objective_id)
        return entry.complete if entry else False

    def objective_count(self, objective_id: str) -> int:
        entry = self.task_objectives.get(objective_id)
        return entry.count if entry else 0

    def is_module_complete(self, level_id: str) -> bool:
        entry = self.hideout_modules.get(level_id)
        return entry.complete if entry else False

    def is_part_complete(self, part_id: str) -> bool:
        entry = self.hideout_parts.get(part_id)
        return entry.complete if entry else False

    def part_count(self, part_id: str) -> int:
        entry = self.hideout_parts.get(part_id)
        return entry.count if entry else 0

    def trader_loyalty(self, trader_id: str) -> int | None:
        """显式的商人等级；feed 未提供时返回 None"""
        entry = self.trader_standings.get(trader_id)
        return entry.loyalty_level if entry else None

    def trader_standing(self, trader_id: str) -> float:
        entry = self.trader_standings.get(trader_id)
        return entry.standing if entry else 0.0
