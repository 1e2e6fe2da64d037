"""团队聚合测试

测试内容：
1. 隐藏成员不参与需求汇总（剩余需求 4 而不是 7）
2. 成员顺序不影响汇总结果
3. 容器类物品、已完成目标、阵营不符的成员被排除
4. hideout 物品需求
5. 缺失 / 格式错误的成员按零贡献跳过
6. 显示名 / 等级 / 阵营解析与回退顺序
"""

import pytest
from raidtrack.core.aggregation import MemberDirectory, snapshot_members
from raidtrack.core.models import MemberProgressState, NeedType, TaskStatusLabel
from raidtrack.core.projection import compute_progress
from raidtrack.core.visibility import VisibilitySettings
from structlog.testing import capture_logs


def _need(snapshot, need_id):
    return next((n for n in snapshot.needed_items if n.need_id == need_id), None)


class TestNeededItems:
    """任务目标物品需求"""

    def test_hidden_member_excluded_from_totals(self, catalog, make_member):
        """M1 被隐藏（已收集 2），M2 可见（已收集 1）-> 剩余 4"""
        records = {
            "self": make_member(completed=("task-delivery",)),
            "m1": make_member(objectives={"obj-deliver": (False, 2)}),
            "m2": make_member(objectives={"obj-deliver": (False, 1)}),
        }
        snapshot = compute_progress(
            catalog, records, VisibilitySettings(team_hide={"m1": True})
        )
        need = _need(snapshot, "obj-deliver")
        assert need.member_needs == {"m2": 4}
        assert need.total_remaining == 4
        assert snapshot.item_totals["item-x"] == 4

    def test_all_visible_members_summed(self, catalog, make_member):
        records = {
            "self": make_member(completed=("task-delivery",)),
            "m1": make_member(objectives={"obj-deliver": (False, 2)}),
            "m2": make_member(objectives={"obj-deliver": (False, 1)}),
        }
        need = _need(compute_progress(catalog, records), "obj-deliver")
        assert need.total_remaining == 7
        assert need.need_type == NeedType.TASK_OBJECTIVE
        assert need.task_id == "task-delivery"
        assert need.found_in_raid

    def test_member_order_does_not_change_totals(self, catalog, make_member):
        """成员输入顺序打乱后汇总结果一致"""
        records = {
            "self": make_member(objectives={"obj-deliver": (False, 3)}),
            "a": make_member(objectives={"obj-deliver": (False, 1)}),
            "b": make_member(modules=("gen-1",)),
            "c": make_member(faction="BEAR", edition=4),
        }
        forward = compute_progress(catalog, records)
        backward = compute_progress(catalog, dict(reversed(list(records.items()))))
        assert forward.item_totals == backward.item_totals
        assert forward.fingerprint() == backward.fingerprint()

    def test_container_items_excluded(self, catalog, make_member):
        """目录声明的容器类物品不出现在汇总中"""
        snapshot = compute_progress(catalog, {"self": make_member()})
        assert _need(snapshot, "obj-container") is None
        assert "item-container" not in snapshot.item_totals

    def test_configured_exclusions_merged(self, catalog_document, make_member):
        from raidtrack.core.catalog_store import CatalogStore
        from raidtrack.core.models import CatalogDocument

        catalog = CatalogStore.from_document(
            CatalogDocument.model_validate(catalog_document), excluded_item_ids={"item-x"}
        )
        snapshot = compute_progress(catalog, {"self": make_member()})
        assert "item-x" not in snapshot.item_totals
        assert catalog.excluded_item_ids == {"item-x", "item-container"}

    def test_completed_objective_or_enough_collected_skipped(self, catalog, make_member):
        records = {
            "self": make_member(objectives={"obj-deliver": (True, 0)}),
            "m1": make_member(objectives={"obj-deliver": (False, 5)}),
            "m2": make_member(objectives={"obj-deliver": (False, 9)}),
        }
        assert _need(compute_progress(catalog, records), "obj-deliver") is None

    def test_alternative_completion_skips_member(self, catalog, make_member, catalog_document):
        from raidtrack.core.catalog_store import CatalogStore
        from raidtrack.core.models import CatalogDocument

        for task in catalog_document["tasks"]:
            if task["id"] == "task-delivery":
                task["alternatives"] = ["task-alt-b"]
        catalog = CatalogStore.from_document(CatalogDocument.model_validate(catalog_document))
        records = {"self": make_member(completed=("task-alt-b",)), "m1": make_member()}
        need = _need(compute_progress(catalog, records), "obj-deliver")
        assert need.member_needs == {"m1": 5}

    def test_faction_mismatch_skips_member(self, catalog_document, make_member):
        from raidtrack.core.catalog_store import CatalogStore
        from raidtrack.core.models import CatalogDocument

        for task in catalog_document["tasks"]:
            if task["id"] == "task-delivery":
                task["factionName"] = "BEAR"
        catalog = CatalogStore.from_document(CatalogDocument.model_validate(catalog_document))
        records = {"self": make_member(faction="USEC"), "m1": make_member(faction="BEAR")}
        need = _need(compute_progress(catalog, records), "obj-deliver")
        assert need.member_needs == {"m1": 5}

    def test_substitute_items_listed(self, catalog_document, make_member):
        """item 与 items 合并去重后作为可替代物品列表"""
        from raidtrack.core.catalog_store import CatalogStore
        from raidtrack.core.models import CatalogDocument

        for task in catalog_document["tasks"]:
            if task["id"] == "task-delivery":
                objective = task["objectives"][0]
                objective["item"] = {"id": "item-x", "name": "Salewa"}
                objective["items"] = [
                    {"id": "item-x", "name": "Salewa"},
                    {"id": "item-y", "name": "IFAK"},
                ]
        catalog = CatalogStore.from_document(CatalogDocument.model_validate(catalog_document))
        snapshot = compute_progress(catalog, {"self": make_member()})
        need = _need(snapshot, "obj-deliver")
        assert need.item_id == "item-x"
        assert need.alternative_item_ids == ["item-x", "item-y"]
        # 汇总仍只按代表物品计数
        assert snapshot.item_totals["item-x"] == 5
        assert "item-y" not in snapshot.item_totals

    def test_single_item_objective_lists_itself(self, catalog, make_member):
        need = _need(compute_progress(catalog, {"self": make_member()}), "obj-deliver")
        assert need.alternative_item_ids == ["item-x"]


class TestHideoutNeeds:
    """hideout 物品需求"""

    def test_unbuilt_module_contributes(self, catalog, make_member):
        records = {
            "self": make_member(parts={"part-gen-1": (False, 1)}),
            "m1": make_member(modules=("gen-1",)),
            "m2": make_member(parts={"part-gen-1": (True, 0)}),
        }
        need = _need(compute_progress(catalog, records), "part-gen-1")
        assert need.need_type == NeedType.HIDEOUT_MODULE
        assert need.hideout_module_id == "gen-1"
        assert need.station_id == "station-generator"
        assert need.member_needs == {"self": 1}

    def test_stash_need_skipped_when_edition_covers_level(self, catalog, make_member):
        """版本默认 stash 等级已达到该等级时不需要物品"""
        records = {"self": make_member(edition=3), "m1": make_member(edition=1)}
        snapshot = compute_progress(catalog, records)
        assert _need(snapshot, "part-stash-3").member_needs == {"m1": 30}
        assert _need(snapshot, "part-stash-4").member_needs == {"self": 40, "m1": 40}


class TestMissingMembers:
    """成员数据缺失"""

    def test_malformed_feed_contributes_zero(self, catalog, make_member):
        records = {"self": make_member(), "broken": ["not", "a", "record"]}
        with capture_logs() as logs:
            snapshot = compute_progress(catalog, records)
        assert snapshot.skipped_member_ids == ["broken"]
        assert "broken" in snapshot.visible_member_ids
        assert not snapshot.is_task_available("task-alt-a", "broken")
        assert snapshot.level("broken") == 0
        assert _need(snapshot, "obj-deliver").member_needs == {"self": 5}
        assert any(e["event"] == "member_feed_malformed" for e in logs)

    def test_missing_self_feed(self, catalog):
        """self 尚未同步时得到空视图而不是异常"""
        snapshot = compute_progress(catalog, {})
        assert snapshot.visible_member_ids == ["self"]
        assert snapshot.skipped_member_ids == ["self"]
        assert snapshot.needed_items == []
        assert snapshot.faction("self") == "Unknown"

    def test_snapshot_members_accepts_parsed_states(self):
        state = MemberProgressState(member_id="other", level=7)
        members, skipped = snapshot_members({"m1": state}, ["m1"], "pvp")
        assert skipped == []
        assert members["m1"].member_id == "m1"
        assert members["m1"].level == 7


class TestMemberDirectory:
    """成员信息解析"""

    def _directory(self, catalog, make_member, **kwargs):
        records = {
            "self": make_member(level=15, display_name=kwargs.pop("self_name", None)),
            "abcdef123456": make_member(level=22, faction="BEAR"),
            "named-mate": make_member(display_name="Mate"),
        }
        members, _ = snapshot_members(records, records, "pvp")
        return MemberDirectory(catalog, members, kwargs.pop("visible", records), **kwargs)

    def test_self_uses_own_display_name_first(self, catalog, make_member):
        directory = self._directory(
            catalog, make_member, self_name="Own", local_display_name="Cached"
        )
        assert directory.display_name("self") == "Own"

    def test_self_falls_back_to_cached_name(self, catalog, make_member):
        directory = self._directory(catalog, make_member, local_display_name="Cached")
        assert directory.display_name("self") == "Cached"

    def test_self_falls_back_to_truncated_id(self, catalog, make_member):
        directory = self._directory(catalog, make_member)
        assert directory.display_name("self") == "self"

    def test_teammate_without_name_truncated(self, catalog, make_member):
        directory = self._directory(catalog, make_member, local_display_name="Cached")
        assert directory.display_name("abcdef123456") == "abcdef"
        assert directory.display_name("named-mate") == "Mate"
        assert directory.display_name("unknown-member") == "unknow"

    def test_level_and_faction(self, catalog, make_member):
        directory = self._directory(catalog, make_member, visible=["self", "named-mate"])
        assert directory.level("abcdef123456") == 22
        assert directory.level("ghost") == 0
        assert directory.faction("self") == "USEC"
        # 被隐藏的成员阵营未知
        assert directory.faction("abcdef123456") == "Unknown"
        assert directory.faction("ghost") == "Unknown"

    def test_own_uid_maps_to_self(self, catalog, make_member):
        directory = self._directory(catalog, make_member, own_uid="uid-1")
        assert directory.team_index("uid-1") == "self"
        assert directory.team_index("abcdef123456") == "abcdef123456"
        assert directory.level("uid-1") == 15

    def test_task_status(self, catalog, make_member):
        records = {
            "self": make_member(completed=("task-alt-a",), failed=("task-fail-source",))
        }
        members, _ = snapshot_members(records, records, "pvp")
        directory = MemberDirectory(catalog, members, records)
        assert directory.task_status("self", "task-alt-a") == TaskStatusLabel.COMPLETED
        assert directory.task_status("self", "task-fail-source") == TaskStatusLabel.FAILED
        assert directory.task_status("self", "task-eod") == TaskStatusLabel.INCOMPLETE
        assert directory.task_status("ghost", "task-eod") == TaskStatusLabel.INCOMPLETE

    def test_progress_percentage(self, catalog, make_member):
        records = {"self": make_member(completed=("task-alt-a", "task-alt-b"), modules=("gen-1",))}
        members, _ = snapshot_members(records, records, "pvp")
        directory = MemberDirectory(catalog, members, records)
        # USEC 可接 14 个任务（排除 BEAR 专属），hideout 共 8 个等级
        assert directory.progress_percentage("self", "tasks") == round(2 / 14 * 100, 1)
        assert directory.progress_percentage("self", "hideout") == round(1 / 8 * 100, 1)
        assert directory.progress_percentage("ghost", "hideout") == 0.0
        with pytest.raises(ValueError):
            directory.progress_percentage("self", "weapons")
