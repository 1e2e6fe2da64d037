"""Progress 投影测试

测试内容：
1. 相同输入重复计算结果一致
2. 目录未加载时返回空视图
3. 输入记录不被修改
4. own_uid 归并为 self
5. 重算日志
6. 未显式传入时 self 键与默认模式按调用时的环境解析
"""

import copy

from raidtrack.core.catalog_store import CatalogStore
from raidtrack.core.projection import compute_progress
from raidtrack.core.visibility import VisibilitySettings
from structlog.testing import capture_logs


class TestComputeProgress:
    """compute_progress"""

    def test_repeated_computation_identical(self, catalog, make_member):
        """固定输入下多次计算结果一致"""
        records = {
            "self": make_member(level=12, completed=("task-level-gate",)),
            "m1": make_member(level=3, faction="BEAR", objectives={"obj-deliver": (False, 2)}),
            "m2": make_member(edition=5, failed=("task-fail-source",)),
        }
        visibility = VisibilitySettings(team_hide={"m2": True})
        first = compute_progress(catalog, records, visibility)
        second = compute_progress(catalog, records, visibility)
        third = compute_progress(catalog, records, visibility)
        assert first.fingerprint() == second.fingerprint() == third.fingerprint()
        assert first.snapshot_id != second.snapshot_id

    def test_inputs_not_mutated(self, catalog, make_member):
        records = {"self": make_member(level=12), "m1": make_member()}
        before = copy.deepcopy(records)
        compute_progress(catalog, records, VisibilitySettings(team_hide={"m1": True}))
        assert records == before

    def test_empty_catalog_returns_empty_views(self, make_member):
        """目录尚未加载时不报错"""
        catalog = CatalogStore()
        assert not catalog.is_loaded
        snapshot = compute_progress(catalog, {"self": make_member()})
        assert snapshot.task_completions == {}
        assert snapshot.task_availability == {}
        assert snapshot.hideout_levels == {}
        assert snapshot.needed_items == []
        assert snapshot.display_name("self") == "self"
        assert snapshot.is_task_available("anything", "self") is False

    def test_cleared_catalog_returns_empty_views(self, catalog, make_member):
        catalog.clear()
        snapshot = compute_progress(catalog, {"self": make_member()})
        assert snapshot.task_completions == {}
        assert catalog.diagnostics == []

    def test_own_uid_record_becomes_self(self, catalog, make_member):
        records = {"uid-1": make_member(level=33), "mate": make_member()}
        snapshot = compute_progress(catalog, records, own_uid="uid-1")
        assert snapshot.visible_member_ids == ["mate", "self"]
        assert snapshot.level("self") == 33
        assert snapshot.profiles["self"].team_index == "self"

    def test_generation_recorded(self, catalog, make_member):
        snapshot = compute_progress(catalog, {"self": make_member()}, generation=7)
        assert snapshot.generation == 7

    def test_recompute_logged(self, catalog, make_member):
        with capture_logs() as logs:
            compute_progress(catalog, {"self": make_member()}, generation=3)
        events = [e for e in logs if e["event"] == "progress_recomputed"]
        assert len(events) == 1
        assert events[0]["generation"] == 3
        assert events[0]["member_count"] == 1


class TestEngineDefaults:
    """未显式传入时 self 键与默认模式来自当前环境的引擎配置"""

    def test_self_id_read_at_call_time(self, catalog, make_member, monkeypatch):
        monkeypatch.setenv("RAIDTRACK_SELF_ID", "me")
        snapshot = compute_progress(catalog, {"me": make_member(level=10)})
        assert snapshot.self_id == "me"
        assert snapshot.visible_member_ids == ["me"]
        assert snapshot.is_task_available("task-level-gate", "me")

    def test_default_game_mode_read_at_call_time(self, catalog, monkeypatch):
        monkeypatch.delenv("RAIDTRACK_SELF_ID", raising=False)
        monkeypatch.setenv("RAIDTRACK_GAME_MODE", "pve")
        record = {"gameEdition": 1, "pvp": {"level": 2}, "pve": {"level": 30}}
        assert compute_progress(catalog, {"self": record}).level("self") == 30

    def test_explicit_arguments_win(self, catalog, make_member, monkeypatch):
        monkeypatch.setenv("RAIDTRACK_SELF_ID", "me")
        snapshot = compute_progress(catalog, {"self": make_member()}, self_id="self")
        assert snapshot.self_id == "self"


class TestCatalogStoreLifecycle:
    """目录加载与清理"""

    def test_from_json(self, tmp_path, catalog_document):
        import json

        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog_document), encoding="utf-8")
        with capture_logs() as logs:
            catalog = CatalogStore.from_json(path)
        assert catalog.is_loaded
        assert len(catalog.tasks) == 15
        assert catalog.task_for_objective("obj-deliver") == "task-delivery"
        assert catalog.level_for_item_requirement("part-gen-1") == "gen-1"
        assert any(e["event"] == "catalog_loaded" for e in logs)

    def test_load_from_source(self, catalog):
        class StaticSource:
            def get_tasks(self):
                return catalog.tasks[:2]

            def get_hideout_stations(self):
                return []

            def get_traders(self):
                return catalog.traders

        store = CatalogStore()
        store.load_from_source(StaticSource())
        assert [t.id for t in store.tasks] == ["task-level-gate", "task-follow-up"]
        assert store.hideout_stations == []

    def test_reload_replaces_content(self, catalog):
        catalog.load([], [])
        assert catalog.tasks == []
        assert catalog.get_task("task-level-gate") is None
        assert catalog.alternatives("task-alt-a") == frozenset()
        assert catalog.is_loaded

    def test_failed_requirement_to_unknown_task_flagged(self):
        from raidtrack.core.models import Task

        store = CatalogStore()
        store.load(
            [Task.model_validate({"id": "t1", "failedRequirements": [{"task": {"id": "nope"}}]})],
            [],
        )
        assert [(d.subject_id, d.reference) for d in store.diagnostics] == [("t1", "nope")]
