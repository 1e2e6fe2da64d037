"""CLI 入口模块 -- python -m raidtrack.core <command>

支持的命令：
  check-catalog <catalog.json>                 检查目录完整性
  summary <catalog.json> <members.json>        计算进度快照并输出摘要
"""

import json
import sys
from pathlib import Path

from pydantic import ValidationError

from .catalog_store import CatalogStore
from .config import load_engine_config
from .logging_config import setup_logging

USAGE = """用法: python -m raidtrack.core <command>
命令:
  check-catalog <catalog.json>            检查目录完整性
  summary <catalog.json> <members.json>   计算进度快照并输出摘要"""


def main(argv: list[str] | None = None) -> int:
    """CLI 主入口

    Returns:
        进程退出码
    """
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(USAGE)
        return 1

    command = args[0]
    setup_logging()

    if command == "check-catalog" and len(args) == 2:
        return check_catalog(Path(args[1]))
    if command == "summary" and len(args) == 3:
        return summary(Path(args[1]), Path(args[2]))

    if command in ("check-catalog", "summary"):
        print(f"参数数量错误: {command}")
    else:
        print(f"未知命令: {command}")
    print(USAGE)
    return 1


def _load_catalog(path: Path) -> CatalogStore | None:
    config = load_engine_config()
    try:
        return CatalogStore.from_json(path, config.excluded_item_ids)
    except OSError as e:
        print(f"无法读取目录文件 {path}: {e}")
    except ValidationError as e:
        print(f"目录文件格式错误 {path}: {e.error_count()} 处")
    return None


def check_catalog(path: Path) -> int:
    """加载目录并输出完整性诊断；存在诊断时返回 2"""
    catalog = _load_catalog(path)
    if catalog is None:
        return 1

    print(f"目录文件: {path}")
    print(
        f"任务 {len(catalog.tasks)} 个，hideout station {len(catalog.hideout_stations)} 个，"
        f"商人 {len(catalog.traders)} 个"
    )

    diagnostics = catalog.diagnostics
    if not diagnostics:
        print("未发现完整性问题")
        return 0

    print(f"发现 {len(diagnostics)} 个完整性问题:")
    for diagnostic in diagnostics:
        print(f"  [{diagnostic.subject_id}] {diagnostic}")
    return 2


def summary(catalog_path: Path, members_path: Path) -> int:
    """计算一次快照并输出每个成员的任务统计与需求物品总数"""
    from .projection import compute_progress
    from .visibility import VisibilitySettings

    catalog = _load_catalog(catalog_path)
    if catalog is None:
        return 1

    try:
        document = json.loads(members_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"无法读取成员文件 {members_path}: {e}")
        return 1

    # 支持 {"members": {...}, "visibility": {...}} 或直接的成员映射
    if isinstance(document, dict) and isinstance(document.get("members"), dict):
        records = document["members"]
        visibility_data = document.get("visibility") or {}
    elif isinstance(document, dict):
        records = document
        visibility_data = {}
    else:
        print(f"成员文件格式错误 {members_path}: 顶层必须是对象")
        return 1

    try:
        visibility = VisibilitySettings.model_validate(visibility_data)
    except ValidationError as e:
        print(f"可见性设置格式错误: {e.error_count()} 处")
        return 1

    config = load_engine_config()
    snapshot = compute_progress(
        catalog,
        records,
        visibility,
        self_id=config.self_id,
        default_game_mode=config.default_game_mode,
    )

    print(f"快照 {snapshot.snapshot_id}")
    print(f"可见成员: {', '.join(snapshot.visible_member_ids)}")
    if snapshot.skipped_member_ids:
        print(f"跳过成员（数据缺失）: {', '.join(snapshot.skipped_member_ids)}")

    for member_id in snapshot.visible_member_ids:
        if member_id in snapshot.skipped_member_ids:
            continue
        available = sum(
            1 for task_id in snapshot.task_availability
            if snapshot.is_task_available(task_id, member_id)
        )
        completed = sum(
            1 for task_id in snapshot.task_completions
            if snapshot.is_task_complete(task_id, member_id)
        )
        print(
            f"  {snapshot.display_name(member_id)} (等级 {snapshot.level(member_id)}, "
            f"{snapshot.faction(member_id)}): 可接 {available}，已完成 {completed}"
        )

    print(f"需求物品 {len(snapshot.item_totals)} 种:")
    for item_id, total in snapshot.item_totals.items():
        print(f"  {item_id}: {total}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
