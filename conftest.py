"""全局 pytest 配置 -- 示例目录与成员记录 fixture"""

from collections.abc import Callable
from typing import Any

import pytest
from raidtrack.core.catalog_store import CatalogStore
from raidtrack.core.models.catalog import CatalogDocument
from raidtrack.core.models.enums import CULTIST_CIRCLE_STATION_ID, STASH_STATION_ID

MemberFactory = Callable[..., dict[str, Any]]


def _stash_levels() -> list[dict[str, Any]]:
    levels = []
    for n in range(1, 6):
        level: dict[str, Any] = {
            "id": f"stash-{n}",
            "level": n,
            "constructionTime": 100 * n,
            "itemRequirements": [],
            "stationLevelRequirements": [],
        }
        if n > 1:
            level["itemRequirements"] = [
                {"id": f"part-stash-{n}", "item": {"id": "item-roubles"}, "count": 10 * n}
            ]
            level["stationLevelRequirements"] = [
                {"station": {"id": STASH_STATION_ID}, "level": n - 1}
            ]
        levels.append(level)
    return levels


@pytest.fixture
def catalog_document() -> dict[str, Any]:
    """示例目录文档（内容源的 camelCase 结构）"""
    return {
        "tasks": [
            {
                "id": "task-level-gate",
                "name": "Debut",
                "trader": {"id": "prapor", "name": "Prapor"},
                "minPlayerLevel": 10,
                "objectives": [{"id": "obj-shoot", "type": "shoot", "count": 5}],
            },
            {
                "id": "task-follow-up",
                "name": "Shootout Picnic",
                "taskRequirements": [
                    {"task": {"id": "task-level-gate"}, "status": ["complete"]}
                ],
            },
            {
                "id": "task-while-active",
                "taskRequirements": [
                    {"task": {"id": "task-level-gate"}, "status": ["active"]}
                ],
            },
            {"id": "task-alt-a", "alternatives": ["task-alt-b"]},
            {"id": "task-alt-b"},
            {
                "id": "task-reward-a",
                "finishRewards": [
                    {
                        "__typename": "QuestStatusReward",
                        "status": "Fail",
                        "quest": {"id": "task-reward-b"},
                    }
                ],
            },
            {"id": "task-reward-b"},
            {"id": "task-fail-source"},
            {
                "id": "task-fail-guarded",
                "failedRequirements": [{"task": {"id": "task-fail-source"}}],
            },
            {
                "id": "task-after-failure",
                "taskRequirements": [
                    {"task": {"id": "task-fail-source"}, "status": ["failed"]}
                ],
            },
            {"id": "task-bear-only", "factionName": "BEAR"},
            {"id": "task-eod", "eodOnly": True},
            {
                "id": "task-trader-gate",
                "traderLevelRequirements": [{"trader": {"id": "prapor"}, "level": 3}],
            },
            {
                "id": "task-delivery",
                "objectives": [
                    {
                        "id": "obj-deliver",
                        "type": "giveItem",
                        "count": 5,
                        "foundInRaid": True,
                        "items": [{"id": "item-x", "name": "Salewa"}],
                    },
                    {
                        "id": "obj-container",
                        "type": "giveItem",
                        "count": 1,
                        "item": {"id": "item-container", "name": "Secure container"},
                    },
                ],
            },
            {
                "id": "task-dangling",
                "taskRequirements": [
                    {"task": {"id": "task-missing"}, "status": ["complete"]}
                ],
            },
        ],
        "hideoutStations": [
            {"id": STASH_STATION_ID, "name": "Stash", "levels": _stash_levels()},
            {
                "id": CULTIST_CIRCLE_STATION_ID,
                "name": "Cultist Circle",
                "levels": [{"id": "cultist-1", "level": 1, "constructionTime": 600}],
            },
            {
                "id": "station-generator",
                "name": "Generator",
                "levels": [
                    {
                        "id": "gen-1",
                        "level": 1,
                        "constructionTime": 50,
                        "itemRequirements": [
                            {"id": "part-gen-1", "item": {"id": "item-fuel"}, "count": 2}
                        ],
                    },
                    {
                        "id": "gen-2",
                        "level": 2,
                        "constructionTime": 70,
                        "stationLevelRequirements": [
                            {"station": {"id": "station-generator"}, "level": 1},
                            {"station": {"id": STASH_STATION_ID}, "level": 2},
                        ],
                    },
                ],
            },
        ],
        "traders": [{"id": "prapor", "name": "Prapor"}],
        "excludedItemIds": ["item-container"],
    }


@pytest.fixture
def catalog(catalog_document: dict[str, Any]) -> CatalogStore:
    """已加载的示例目录"""
    return CatalogStore.from_document(CatalogDocument.model_validate(catalog_document))


@pytest.fixture
def make_member() -> MemberFactory:
    """构造按游戏模式嵌套的成员 feed 记录"""

    def _make(
        *,
        level: int = 1,
        faction: str = "USEC",
        edition: int = 1,
        completed: tuple[str, ...] = (),
        failed: tuple[str, ...] = (),
        objectives: dict[str, tuple[bool, int]] | None = None,
        modules: tuple[str, ...] = (),
        parts: dict[str, tuple[bool, int]] | None = None,
        loyalty: dict[str, int] | None = None,
        display_name: str | None = None,
        mode: str = "pvp",
    ) -> dict[str, Any]:
        completions = {task_id: {"complete": True, "failed": False} for task_id in completed}
        for task_id in failed:
            completions[task_id] = {"complete": False, "failed": True}
        data: dict[str, Any] = {
            "level": level,
            "pmcFaction": faction,
            "displayName": display_name,
            "taskCompletions": completions,
            "taskObjectives": {
                objective_id: {"complete": complete, "count": count}
                for objective_id, (complete, count) in (objectives or {}).items()
            },
            "hideoutModules": {level_id: {"complete": True} for level_id in modules},
            "hideoutParts": {
                part_id: {"complete": complete, "count": count}
                for part_id, (complete, count) in (parts or {}).items()
            },
            "traderStandings": {
                trader_id: {"loyaltyLevel": value, "standing": 0.0}
                for trader_id, value in (loyalty or {}).items()
            },
        }
        return {"currentGameMode": mode, "gameEdition": edition, mode: data}

    return _make
