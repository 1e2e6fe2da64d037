"""商人等级 / 声望映射

商人等级目前是近似值：feed 提供了 loyaltyLevel 时使用它，
否则以玩家等级作为占位。这不是真实的商人声望计算。
"""

import math
from collections.abc import Iterable, Mapping

from .config import MAX_TRADER_LEVEL
from .models.catalog import Trader
from .models.progress import MemberProgressState
from .models.views import TraderLevelsMap, TraderStandingMap

_METHOD_ALIASES: dict[str, str] = {
    ">": ">",
    "greaterthan": ">",
    "gt": ">",
    ">=": ">=",
    "greaterorequal": ">=",
    "ge": ">=",
    "gte": ">=",
    "<": "<",
    "lessthan": "<",
    "lt": "<",
    "<=": "<=",
    "lessorequal": "<=",
    "le": "<=",
    "lte": "<=",
    "=": "=",
    "==": "=",
    "eq": "=",
    "equals": "=",
}

_COMPARATORS = {
    ">": lambda current, target: current > target,
    ">=": lambda current, target: current >= target,
    "<": lambda current, target: current < target,
    "<=": lambda current, target: current <= target,
    "=": lambda current, target: current == target,
}


def _normalize_method(method: str | None) -> str:
    if not method:
        return ">="
    return _METHOD_ALIASES.get(method.lower(), ">=")


def _finite(value: float | int | None) -> float:
    if value is None:
        return 0.0
    number = float(value)
    return number if math.isfinite(number) else 0.0


def standing_comparator(
    current: float | None,
    compare_method: str | None,
    target: float | None,
) -> bool:
    """按比较方式比较声望值；未知或缺失的比较方式按 >= 处理"""
    comparator = _COMPARATORS[_normalize_method(compare_method)]
    return comparator(_finite(current), _finite(target))


def clamp_trader_level(value: float | int | None) -> int:
    """商人等级需求取整并限制在 [0, MAX_TRADER_LEVEL]"""
    return max(0, min(MAX_TRADER_LEVEL, math.floor(_finite(value))))


def member_trader_level(member: MemberProgressState, trader_id: str) -> int:
    """成员对某商人的等级：显式 loyaltyLevel，否则退化为玩家等级"""
    explicit = member.trader_loyalty(trader_id)
    if explicit is not None:
        return explicit
    return member.level


def build_trader_levels(
    traders: Iterable[Trader],
    members: Mapping[str, MemberProgressState],
) -> TraderLevelsMap:
    """成员 ID -> 商人 ID -> 等级

    除目录中的商人外，成员 feed 里出现过的商人也会被收录。
    """
    trader_ids = [trader.id for trader in traders]
    result: TraderLevelsMap = {}
    for member_id, member in members.items():
        ids = dict.fromkeys([*trader_ids, *member.trader_standings])
        result[member_id] = {
            trader_id: member_trader_level(member, trader_id) for trader_id in ids
        }
    return result


def build_trader_standings(
    traders: Iterable[Trader],
    members: Mapping[str, MemberProgressState],
) -> TraderStandingMap:
    """成员 ID -> 商人 ID -> 声望（缺失为 0.0）"""
    trader_ids = [trader.id for trader in traders]
    result: TraderStandingMap = {}
    for member_id, member in members.items():
        ids = dict.fromkeys([*trader_ids, *member.trader_standings])
        result[member_id] = {
            trader_id: member.trader_standing(trader_id) for trader_id in ids
        }
    return result
