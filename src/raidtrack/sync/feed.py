"""成员 feed -- 实时传输层的窄接口

传输层把每个成员的记录变化表示为 FeedChange 异步流；record 为 None 表示成员离队。
pump_feed() 逐条应用变化，不等待任何特定成员。
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .hub import ProgressHub

log = structlog.get_logger()


class FeedChange(BaseModel):
    """单个成员的记录变化"""

    model_config = ConfigDict(frozen=True)

    member_id: str = Field(min_length=1, description="成员 ID")
    record: Any = Field(default=None, description="最新原始记录，None 表示成员离队")

    @property
    def is_removal(self) -> bool:
        return self.record is None


class MemberFeed(Protocol):
    """成员 feed 接口 -- FeedChange 的异步迭代器"""

    def __aiter__(self) -> AsyncIterator[FeedChange]:
        ...


class InMemoryMemberFeed:
    """基于 asyncio.Queue 的内存 feed，close() 后迭代结束"""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[FeedChange | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def push(self, member_id: str, record: Any) -> None:
        """推送成员的最新记录

        Raises:
            RuntimeError: feed 已关闭
        """
        if self._closed:
            raise RuntimeError("feed 已关闭")
        await self._queue.put(FeedChange(member_id=member_id, record=record))

    async def leave(self, member_id: str) -> None:
        """成员离队"""
        await self.push(member_id, None)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(None)

    def __aiter__(self) -> "InMemoryMemberFeed":
        return self

    async def __anext__(self) -> FeedChange:
        change = await self._queue.get()
        if change is None:
            raise StopAsyncIteration
        return change


async def pump_feed(feed: MemberFeed, hub: ProgressHub) -> int:
    """把 feed 中的变化逐条应用到 hub，直到 feed 结束

    Returns:
        应用的变化条数
    """
    applied = 0
    async for change in feed:
        if change.is_removal:
            await hub.remove_member(change.member_id)
        else:
            await hub.update_member(change.member_id, change.record)
        applied += 1
    await log.ainfo("member_feed_closed", applied=applied)
    return applied
