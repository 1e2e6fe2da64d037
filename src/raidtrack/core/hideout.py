"""Hideout 等级显示与完成映射

显示等级不等于“已完成的最高等级”：stash 有版本下限，
Cultist Circle 对 Unheard 版本直接满级。每轮聚合对每个 (station, 成员)
重新计算一次，不跨轮缓存。
"""

from collections.abc import Mapping

from .catalog_store import CatalogStore
from .models.catalog import HideoutStation
from .models.enums import (
    CULTIST_CIRCLE_STATION_ID,
    STASH_STATION_ID,
    UNHEARD_EDITIONS,
    edition_info,
)
from .models.progress import MemberProgressState
from .models.views import CompletionsMap, HideoutLevelMap


def manual_station_level(station: HideoutStation, member: MemberProgressState) -> int:
    """成员手动标记完成的最高等级，无则为 0"""
    return max(
        (level.level for level in station.levels if member.is_module_complete(level.id)),
        default=0,
    )


def stash_display_level(
    station: HideoutStation,
    member: MemberProgressState,
    manual_level: int,
) -> int:
    info = edition_info(member.game_edition)
    default_level = info.default_stash_level if info else 0
    max_level = station.max_level
    effective = min(default_level, max_level)
    # 版本默认值已达上限时直接显示满级
    if effective == max_level:
        return max_level
    return max(effective, manual_level)


def cultist_display_level(
    station: HideoutStation,
    member: MemberProgressState,
    manual_level: int,
) -> int:
    if member.game_edition in UNHEARD_EDITIONS and station.levels:
        return station.max_level
    return manual_level


def display_station_level(station: HideoutStation, member: MemberProgressState) -> int:
    """成员视角下 station 的显示等级"""
    manual_level = manual_station_level(station, member)
    if station.id == STASH_STATION_ID:
        return stash_display_level(station, member, manual_level)
    if station.id == CULTIST_CIRCLE_STATION_ID:
        return cultist_display_level(station, member, manual_level)
    return manual_level


def build_hideout_level_map(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
) -> HideoutLevelMap:
    """station ID -> 成员 ID -> 显示等级"""
    return {
        station.id: {
            member_id: display_station_level(station, member)
            for member_id, member in members.items()
        }
        for station in catalog.hideout_stations
    }


def build_module_completion_map(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
) -> CompletionsMap:
    """hideout 等级 ID -> 成员 ID -> 是否已建造"""
    result: CompletionsMap = {}
    for station in catalog.hideout_stations:
        for level in station.levels:
            result[level.id] = {
                member_id: member.is_module_complete(level.id)
                for member_id, member in members.items()
            }
    return result


def build_part_completion_map(
    catalog: CatalogStore,
    members: Mapping[str, MemberProgressState],
) -> CompletionsMap:
    """hideout 物品需求 ID -> 成员 ID -> 是否已提交"""
    result: CompletionsMap = {}
    for station in catalog.hideout_stations:
        for level in station.levels:
            for requirement in level.item_requirements:
                result[requirement.id] = {
                    member_id: member.is_part_complete(requirement.id)
                    for member_id, member in members.items()
                }
    return result
