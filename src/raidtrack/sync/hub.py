"""ProgressHub -- 成员更新驱动的重算与快照广播

持有目录引用、每个成员最新的原始 feed 记录、可见性设置和最新发布的快照。
任何输入变化都触发一次基于不可变输入快照的完整重算。

每次重算开始时分配单调递增的 generation；只有比已发布快照更新的结果
才会被发布（以完整重算为粒度的 last-write-wins），旧结果直接丢弃。
订阅者持有有界 asyncio.Queue，队列已满的订阅者被移除。
"""

import asyncio
from types import MappingProxyType
from typing import Any

import structlog

from raidtrack.core.catalog_store import CatalogStore
from raidtrack.core.config import EngineConfig, load_engine_config
from raidtrack.core.models.views import ProgressSnapshot
from raidtrack.core.projection import compute_progress
from raidtrack.core.visibility import VisibilitySettings

log = structlog.get_logger()


class ProgressHub:
    """进度中心 -- 基于 asyncio.Queue 的发布/订阅"""

    def __init__(
        self,
        catalog: CatalogStore,
        *,
        config: EngineConfig | None = None,
        visibility: VisibilitySettings | None = None,
        local_display_name: str | None = None,
        own_uid: str | None = None,
    ) -> None:
        self._catalog = catalog
        self._config = config or load_engine_config()
        self._visibility = visibility or VisibilitySettings()
        self._local_display_name = local_display_name
        self._own_uid = own_uid
        self._records: dict[str, Any] = {}
        self._generation = 0
        self._latest: ProgressSnapshot | None = None
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def latest(self) -> ProgressSnapshot | None:
        """最近一次发布的快照"""
        return self._latest

    @property
    def generation(self) -> int:
        """最近一次分配的 generation"""
        return self._generation

    @property
    def member_ids(self) -> list[str]:
        return sorted(self._records)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ============================================================
    # 输入变化
    # ============================================================

    async def update_member(self, member_id: str, record: Any) -> ProgressSnapshot | None:
        """记录成员的最新 feed 记录并重算"""
        self._records[member_id] = record
        return await self.recompute(reason="member_updated")

    async def remove_member(self, member_id: str) -> ProgressSnapshot | None:
        """成员离队：移除其记录并重算；未知成员不触发重算"""
        if member_id not in self._records:
            log.debug("hub_remove_unknown_member", member_id=member_id)
            return None
        del self._records[member_id]
        return await self.recompute(reason="member_removed")

    async def set_visibility(self, settings: VisibilitySettings) -> ProgressSnapshot | None:
        self._visibility = settings
        return await self.recompute(reason="visibility_changed")

    async def reload_catalog(self, catalog: CatalogStore) -> ProgressSnapshot | None:
        self._catalog = catalog
        return await self.recompute(reason="catalog_reloaded")

    # ============================================================
    # 重算与发布
    # ============================================================

    async def recompute(self, reason: str = "manual") -> ProgressSnapshot | None:
        """基于当前输入的不可变副本执行一次完整重算并尝试发布

        Returns:
            发布成功的快照；被更新的结果取代时返回 None
        """
        self._generation += 1
        generation = self._generation
        records = MappingProxyType(dict(self._records))

        snapshot = compute_progress(
            self._catalog,
            records,
            self._visibility,
            self_id=self._config.self_id,
            local_display_name=self._local_display_name,
            own_uid=self._own_uid,
            default_game_mode=self._config.default_game_mode,
            generation=generation,
        )
        log.debug("hub_recomputed", reason=reason, generation=generation)
        return await self.publish(snapshot)

    async def publish(self, snapshot: ProgressSnapshot) -> ProgressSnapshot | None:
        """发布快照；generation 不新于已发布快照时丢弃

        Args:
            snapshot: 待发布的快照

        Returns:
            已发布的快照，或 None（过期结果被丢弃）
        """
        if self._latest is not None and snapshot.generation <= self._latest.generation:
            await log.ainfo(
                "stale_snapshot_discarded",
                generation=snapshot.generation,
                published_generation=self._latest.generation,
            )
            return None

        self._latest = snapshot
        await self.broadcast(snapshot)
        return snapshot

    # ============================================================
    # 订阅
    # ============================================================

    async def subscribe(self) -> asyncio.Queue:
        """订阅快照流；已有发布快照时立即推送一份

        Returns:
            asyncio.Queue 实例，新快照会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._config.hub_queue_size)
        if self._latest is not None:
            queue.put_nowait(self._latest)
        self._subscribers.add(queue)
        return queue

    async def unsubscribe(self, queue: asyncio.Queue) -> None:
        """取消订阅

        Args:
            queue: 之前订阅时返回的队列
        """
        self._subscribers.discard(queue)

    async def broadcast(self, snapshot: ProgressSnapshot) -> None:
        """向所有订阅者推送快照"""
        dead_queues = []
        for queue in self._subscribers:
            try:
                queue.put_nowait(snapshot)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列
        for q in dead_queues:
            self._subscribers.discard(q)
        if dead_queues:
            await log.awarning("hub_subscriber_dropped", count=len(dead_queues))
