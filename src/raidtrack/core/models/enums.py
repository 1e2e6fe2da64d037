"""枚举与游戏常量

包含 Faction、ObjectiveType、GameMode、NeedType 枚举，
游戏版本表 GAME_EDITIONS 及其派生集合，以及特殊 hideout station ID。
"""

from enum import StrEnum

from pydantic import BaseModel, Field


class Faction(StrEnum):
    """任务阵营限制 / 玩家 PMC 阵营"""

    ANY = "Any"
    USEC = "USEC"
    BEAR = "BEAR"


class ObjectiveType(StrEnum):
    """任务目标类型"""

    GIVE_ITEM = "giveItem"
    FIND_ITEM = "findItem"
    FIND_QUEST_ITEM = "findQuestItem"
    GIVE_QUEST_ITEM = "giveQuestItem"
    PLANT_ITEM = "plantItem"
    PLANT_QUEST_ITEM = "plantQuestItem"
    MARK = "mark"
    BUILD_WEAPON = "buildWeapon"
    SHOOT = "shoot"
    SKILL = "skill"
    VISIT = "visit"
    EXTRACT = "extract"
    TRADER_LEVEL = "traderLevel"
    TRADER_STANDING = "traderStanding"
    PLAYER_LEVEL = "playerLevel"
    EXPERIENCE = "experience"
    TASK_STATUS = "taskStatus"
    PLACE = "place"
    WARNING = "warning"
    KEY = "key"


# 会消耗/占用物品的目标类型，参与需求物品汇总
ITEM_OBJECTIVE_TYPES: frozenset[str] = frozenset(
    t.value
    for t in (
        ObjectiveType.GIVE_ITEM,
        ObjectiveType.FIND_ITEM,
        ObjectiveType.FIND_QUEST_ITEM,
        ObjectiveType.GIVE_QUEST_ITEM,
        ObjectiveType.PLANT_ITEM,
        ObjectiveType.PLANT_QUEST_ITEM,
        ObjectiveType.MARK,
        ObjectiveType.BUILD_WEAPON,
    )
)


class GameMode(StrEnum):
    """游戏模式，每个模式有独立的进度数据"""

    PVP = "pvp"
    PVE = "pve"


class NeedType(StrEnum):
    """需求物品来源"""

    TASK_OBJECTIVE = "taskObjective"
    HIDEOUT_MODULE = "hideoutModule"


class TaskStatusLabel(StrEnum):
    """成员视角下的任务状态"""

    COMPLETED = "completed"
    FAILED = "failed"
    INCOMPLETE = "incomplete"


class GameEditionInfo(BaseModel):
    """游戏版本信息"""

    version: int = Field(ge=1, description="版本号 1-6")
    name: str = Field(description="版本名称")
    default_stash_level: int = Field(ge=0, description="该版本默认的 stash 等级")


GAME_EDITIONS: dict[int, GameEditionInfo] = {
    1: GameEditionInfo(version=1, name="Standard", default_stash_level=1),
    2: GameEditionInfo(version=2, name="Left Behind", default_stash_level=2),
    3: GameEditionInfo(version=3, name="Prepare for Escape", default_stash_level=3),
    4: GameEditionInfo(version=4, name="Edge of Darkness", default_stash_level=4),
    5: GameEditionInfo(version=5, name="Unheard", default_stash_level=5),
    6: GameEditionInfo(version=6, name="Unheard Trial", default_stash_level=5),
}

# 可接取 EOD 专属任务的版本
EOD_EDITIONS: frozenset[int] = frozenset({4, 6})

# Cultist Circle 自动满级的版本
UNHEARD_EDITIONS: frozenset[int] = frozenset({5, 6})

STASH_STATION_ID = "5d484fc0654e76006657e0ab"
CULTIST_CIRCLE_STATION_ID = "667298e75ea6b4493c08f266"

# 前置任务 status 中表示 "进行中即可" 的取值
ACTIVE_REQUIREMENT_STATUSES: frozenset[str] = frozenset({"active", "accept", "accepted"})


def edition_info(version: int) -> GameEditionInfo | None:
    """按版本号查询游戏版本信息，未知版本返回 None"""
    return GAME_EDITIONS.get(version)
