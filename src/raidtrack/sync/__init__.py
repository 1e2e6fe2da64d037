"""Raidtrack Sync -- 成员 feed 驱动的重算中心"""

from .feed import FeedChange, InMemoryMemberFeed, MemberFeed, pump_feed
from .hub import ProgressHub

__all__ = [
    "ProgressHub",
    "FeedChange",
    "MemberFeed",
    "InMemoryMemberFeed",
    "pump_feed",
]
