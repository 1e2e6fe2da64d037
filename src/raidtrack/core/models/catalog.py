"""Catalog Domain Model -- 静态参考数据

任务、目标、hideout station/level、商人定义。
由外部内容源加载（camelCase 键），运行期间只读，不做任何修改。
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .enums import ITEM_OBJECTIVE_TYPES, Faction


class CatalogModel(BaseModel):
    """目录实体基类：冻结、接受 camelCase 与 snake_case 两种键"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


def _none_as_empty(value: Any) -> Any:
    # 内容源对空列表经常返回 null
    return [] if value is None else value


EmptyIfNone = BeforeValidator(_none_as_empty)


class EntityRef(CatalogModel):
    """对其他实体（任务、商人、地图、station）的引用"""

    id: str = Field(description="被引用实体 ID")
    name: str = Field(default="", description="名称（仅展示用）")


class ItemRef(CatalogModel):
    """物品引用"""

    id: str = Field(description="物品 ID")
    name: str = Field(default="", description="物品名称")
    short_name: str = Field(default="", description="物品简称")


class Objective(CatalogModel):
    """任务目标 -- 隶属于唯一的 Task"""

    id: str = Field(description="目标 ID")
    type: str = Field(default="", description="目标类型，见 ObjectiveType")
    description: str = Field(default="")
    item: ItemRef | None = Field(default=None, description="旧版单物品字段")
    items: Annotated[list[ItemRef], EmptyIfNone] = Field(
        default_factory=list, description="可满足目标的物品"
    )
    marker_item: ItemRef | None = Field(default=None, description="mark 类目标使用的标记物")
    count: int = Field(default=1, ge=0, description="需要的数量（击杀数、物品数）")
    found_in_raid: bool = Field(default=False, description="是否要求战局内找到")
    optional: bool = Field(default=False)
    maps: Annotated[list[EntityRef], EmptyIfNone] = Field(
        default_factory=list, description="关联地图"
    )
    location: EntityRef | None = Field(default=None, description="主要地点")
    trader: EntityRef | None = Field(
        default=None, description="traderLevel/traderStanding 目标的商人"
    )
    level: int | None = Field(default=None)
    value: float | None = Field(default=None)
    compare_method: str | None = Field(default=None)

    @field_validator("count", mode="before")
    @classmethod
    def _default_count(cls, value: Any) -> Any:
        return 1 if value is None else value

    def candidate_items(self) -> list[ItemRef]:
        """合并 item 与 items 并按 ID 去重，保持原有顺序"""
        seen: set[str] = set()
        result: list[ItemRef] = []
        for candidate in [self.item, *self.items]:
            if candidate is None or candidate.id in seen:
                continue
            seen.add(candidate.id)
            result.append(candidate)
        return result

    @property
    def tracked_item(self) -> ItemRef | None:
        """需求汇总使用的代表物品：首个候选物品，否则为标记物"""
        candidates = self.candidate_items()
        if candidates:
            return candidates[0]
        return self.marker_item

    @property
    def consumes_items(self) -> bool:
        return self.type in ITEM_OBJECTIVE_TYPES and self.tracked_item is not None


class TaskRequirement(CatalogModel):
    """前置任务需求 {task, status[]}"""

    task: EntityRef | None = Field(default=None, description="前置任务")
    status: Annotated[list[str], EmptyIfNone] = Field(
        default_factory=list, description="要求的前置状态"
    )

    @property
    def task_id(self) -> str | None:
        return self.task.id if self.task else None

    def normalized_statuses(self) -> list[str]:
        return [s.lower() for s in self.status if isinstance(s, str) and s]


class TraderLevelRequirement(CatalogModel):
    """商人等级需求"""

    trader: EntityRef | None = Field(default=None)
    level: int = Field(default=0)


class TraderRequirement(CatalogModel):
    """旧版商人需求（value 字段即等级）"""

    trader: EntityRef | None = Field(default=None)
    value: float = Field(default=0)


class FinishReward(CatalogModel):
    """任务完成奖励 -- 仅关心使其他任务失败的 QuestStatusReward"""

    typename: str = Field(default="", alias="__typename")
    status: str = Field(default="")
    quest: EntityRef | None = Field(default=None)

    @property
    def fails_task_id(self) -> str | None:
        if self.typename == "QuestStatusReward" and self.status == "Fail" and self.quest:
            return self.quest.id
        return None


class Task(CatalogModel):
    """Task 数据模型 -- 不可变目录实体"""

    id: str = Field(description="稳定的任务 ID")
    name: str = Field(default="")
    trader: EntityRef | None = Field(default=None)
    min_player_level: int = Field(default=0, ge=0)
    faction_name: str = Field(default=Faction.ANY.value, description="Any / USEC / BEAR")
    eod_only: bool = Field(default=False, description="仅 EOD 版本可接")
    kappa_required: bool = Field(default=False)
    lightkeeper_required: bool = Field(default=False)
    task_requirements: Annotated[list[TaskRequirement], EmptyIfNone] = Field(
        default_factory=list
    )
    failed_requirements: Annotated[list[TaskRequirement], EmptyIfNone] = Field(
        default_factory=list
    )
    trader_level_requirements: Annotated[list[TraderLevelRequirement], EmptyIfNone] = Field(
        default_factory=list
    )
    trader_requirements: Annotated[list[TraderRequirement], EmptyIfNone] = Field(
        default_factory=list
    )
    objectives: Annotated[list[Objective], EmptyIfNone] = Field(default_factory=list)
    alternatives: Annotated[list[str], EmptyIfNone] = Field(
        default_factory=list, description="互斥的兄弟任务 ID"
    )
    finish_rewards: Annotated[list[FinishReward], EmptyIfNone] = Field(
        default_factory=list
    )

    @field_validator("faction_name", mode="before")
    @classmethod
    def _default_faction(cls, value: Any) -> Any:
        return value or Faction.ANY.value

    @field_validator("min_player_level", mode="before")
    @classmethod
    def _default_level(cls, value: Any) -> Any:
        return value or 0


class HideoutItemRequirement(CatalogModel):
    """hideout 等级的物品需求"""

    id: str = Field(description="需求条目 ID（hideoutParts 的键）")
    item: ItemRef | None = Field(default=None)
    count: int = Field(default=1, ge=0)
    found_in_raid: bool = Field(default=False)


class StationLevelRequirement(CatalogModel):
    """对其他 station 等级的前置需求"""

    station: EntityRef | None = Field(default=None)
    level: int = Field(default=0)


class HideoutLevel(CatalogModel):
    """HideoutLevel -- 隶属于唯一的 station"""

    id: str = Field(description="等级 ID（hideoutModules 的键）")
    level: int = Field(description="等级序号，从 1 开始")
    construction_time: int = Field(default=0, ge=0, description="建造耗时（秒）")
    item_requirements: Annotated[list[HideoutItemRequirement], EmptyIfNone] = Field(
        default_factory=list
    )
    station_level_requirements: Annotated[list[StationLevelRequirement], EmptyIfNone] = Field(
        default_factory=list
    )


class HideoutStation(CatalogModel):
    """HideoutStation"""

    id: str
    name: str = Field(default="")
    normalized_name: str | None = Field(default=None)
    levels: Annotated[list[HideoutLevel], EmptyIfNone] = Field(default_factory=list)

    @property
    def max_level(self) -> int:
        """最高等级；与原数据一致，以等级条目数计"""
        return len(self.levels)


class Trader(CatalogModel):
    """商人"""

    id: str
    name: str = Field(default="")
    normalized_name: str | None = Field(default=None)


class CatalogDocument(CatalogModel):
    """目录 JSON 文档的整体结构"""

    tasks: Annotated[list[Task], EmptyIfNone] = Field(default_factory=list)

    hideout_stations: Annotated[list[HideoutStation], EmptyIfNone] = Field(
        default_factory=list
    )
    traders: Annotated[list[Trader], EmptyIfNone] = Field(default_factory=list)

    excluded_item_ids: Annotated[list[str], EmptyIfNone] = Field(
        default_factory=list,
        description="不参与需求汇总的容器类物品 ID",
    )
