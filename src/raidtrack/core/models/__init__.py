"""Raidtrack Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .catalog import (
    CatalogDocument,
    EntityRef,
    FinishReward,
    HideoutItemRequirement,
    HideoutLevel,
    HideoutStation,
    ItemRef,
    Objective,
    StationLevelRequirement,
    Task,
    TaskRequirement,
    Trader,
    TraderLevelRequirement,
    TraderRequirement,
)
from .enums import (
    ACTIVE_REQUIREMENT_STATUSES,
    CULTIST_CIRCLE_STATION_ID,
    EOD_EDITIONS,
    GAME_EDITIONS,
    ITEM_OBJECTIVE_TYPES,
    STASH_STATION_ID,
    UNHEARD_EDITIONS,
    Faction,
    GameEditionInfo,
    GameMode,
    NeedType,
    ObjectiveType,
    TaskStatusLabel,
    edition_info,
)
from .progress import (
    HideoutModuleProgress,
    HideoutPartProgress,
    MemberProgressState,
    ObjectiveProgress,
    TaskCompletion,
    TraderProgress,
)
from .views import (
    CompletionsMap,
    FactionMap,
    HideoutLevelMap,
    MemberProfile,
    NeededItem,
    ProgressSnapshot,
    TraderLevelsMap,
    TraderStandingMap,
)

__all__ = [
    # 枚举与常量
    "Faction",
    "ObjectiveType",
    "GameMode",
    "NeedType",
    "TaskStatusLabel",
    "GameEditionInfo",
    "GAME_EDITIONS",
    "EOD_EDITIONS",
    "UNHEARD_EDITIONS",
    "ITEM_OBJECTIVE_TYPES",
    "ACTIVE_REQUIREMENT_STATUSES",
    "STASH_STATION_ID",
    "CULTIST_CIRCLE_STATION_ID",
    "edition_info",
    # Catalog
    "CatalogDocument",
    "EntityRef",
    "ItemRef",
    "Objective",
    "Task",
    "TaskRequirement",
    "TraderLevelRequirement",
    "TraderRequirement",
    "FinishReward",
    "HideoutStation",
    "HideoutLevel",
    "HideoutItemRequirement",
    "StationLevelRequirement",
    "Trader",
    # 成员进度
    "MemberProgressState",
    "TaskCompletion",
    "ObjectiveProgress",
    "HideoutModuleProgress",
    "HideoutPartProgress",
    "TraderProgress",
    # 派生视图
    "CompletionsMap",
    "HideoutLevelMap",
    "TraderLevelsMap",
    "TraderStandingMap",
    "FactionMap",
    "NeededItem",
    "MemberProfile",
    "ProgressSnapshot",
]
