"""可见性过滤 -- 查看者对队友的隐藏设置

纯函数，不修改底层成员状态，不缓存。self 始终可见。
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field


class VisibilitySettings(BaseModel):
    """查看者的可见性偏好（只读）"""

    model_config = ConfigDict(frozen=True)

    team_hide: dict[str, bool] = Field(
        default_factory=dict, description="成员 ID -> 是否隐藏"
    )
    hide_all: bool = Field(default=False, description="隐藏全部队友")

    def is_hidden(self, member_id: str) -> bool:
        return self.hide_all or self.team_hide.get(member_id, False)


def visible_member_ids(
    member_ids: Iterable[str],
    settings: VisibilitySettings | None,
    self_id: str,
) -> list[str]:
    """计算可见成员集合

    Args:
        member_ids: 全部已知成员 ID
        settings: 可见性设置，None 表示全部可见
        self_id: 本地用户 ID，无论设置如何都包含在结果中

    Returns:
        排序后的可见成员 ID 列表
    """
    settings = settings or VisibilitySettings()
    visible = {
        member_id
        for member_id in member_ids
        if member_id != self_id and not settings.is_hidden(member_id)
    }
    visible.add(self_id)
    return sorted(visible)
