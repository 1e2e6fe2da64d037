"""配置常量模块 -- 可通过环境变量覆盖

环境变量只在 load_engine_config() 中读取；模块常量是不可变的默认值。
EngineConfig 汇总为一次性加载的配置对象，非法值降级为默认值，不阻塞启动。
"""

import os

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

# 本地查看者在成员集合中的默认键
SELF_MEMBER_ID: str = "self"

# feed 未声明 currentGameMode 时使用的模式
DEFAULT_GAME_MODE: str = "pvp"

# 显示名缺失时截断成员 ID 的长度
DISPLAY_NAME_FALLBACK_LENGTH: int = 6

# 商人等级需求的合法范围上限
MAX_TRADER_LEVEL: int = 10

# 未知阵营 / 未知成员的占位值
UNKNOWN_FACTION: str = "Unknown"

LOG_FORMATS: frozenset[str] = frozenset({"dev", "json"})


class EngineConfig(BaseModel):
    """进度引擎配置 -- 从环境变量加载

    环境变量:
        RAIDTRACK_SELF_ID: 本地成员键（默认 self）
        RAIDTRACK_GAME_MODE: 默认游戏模式（默认 pvp）
        RAIDTRACK_EXCLUDED_ITEM_IDS: 额外排除的物品 ID，逗号分隔
        RAIDTRACK_HUB_QUEUE_SIZE: 订阅者队列容量（默认 16）
        RAIDTRACK_LOG_FORMAT: dev / json（默认 dev）
        RAIDTRACK_LOG_LEVEL: raidtrack 日志级别（默认 INFO）
    """

    self_id: str = Field(default=SELF_MEMBER_ID, min_length=1, description="本地成员键")
    default_game_mode: str = Field(default=DEFAULT_GAME_MODE, description="默认游戏模式")
    excluded_item_ids: frozenset[str] = Field(
        default_factory=frozenset,
        description="需求汇总时额外排除的物品 ID",
    )
    hub_queue_size: int = Field(default=16, ge=1, description="订阅者队列容量")
    log_format: str = Field(default="dev", description="日志渲染模式")
    log_level: str = Field(default="INFO", description="raidtrack 日志级别")


def _parse_id_list(raw: str) -> frozenset[str]:
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


def load_engine_config() -> EngineConfig:
    """从环境变量加载引擎配置

    Returns:
        EngineConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("RAIDTRACK_SELF_ID"):
        kwargs["self_id"] = val

    if val := os.environ.get("RAIDTRACK_GAME_MODE"):
        kwargs["default_game_mode"] = val.lower()

    if val := os.environ.get("RAIDTRACK_EXCLUDED_ITEM_IDS"):
        kwargs["excluded_item_ids"] = _parse_id_list(val)

    if val := os.environ.get("RAIDTRACK_HUB_QUEUE_SIZE"):
        try:
            size = int(val)
            if size < 1:
                raise ValueError(val)
            kwargs["hub_queue_size"] = size
        except ValueError:
            log.warning(
                "invalid_config_value",
                env_var="RAIDTRACK_HUB_QUEUE_SIZE",
                value=val,
                fallback=16,
            )
            # 使用默认值，不阻塞启动

    if val := os.environ.get("RAIDTRACK_LOG_FORMAT"):
        if val.lower() in LOG_FORMATS:
            kwargs["log_format"] = val.lower()
        else:
            log.warning(
                "invalid_config_value",
                env_var="RAIDTRACK_LOG_FORMAT",
                value=val,
                fallback="dev",
            )

    if val := os.environ.get("RAIDTRACK_LOG_LEVEL"):
        kwargs["log_level"] = val.upper()

    return EngineConfig(**kwargs)
