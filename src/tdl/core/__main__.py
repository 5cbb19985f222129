"""CLI 入口模块 -- tdl <command> / python -m tdl.core <command>

支持的命令：
  list [category]          显示待办（按分类分组）
  add <task...>            新增待办，例如 tdl add "api/auth::fix login"
  complete <index>         完成待办（移入今日历史）
  remove <index>           永久删除待办（不进入历史）
  history                  显示今日已完成
  restore <index>          从历史恢复
  clear                    清空当前范围内的待办
  config [show]            显示配置
  config color <profile>   设置颜色方案
  config scope <scope>     设置显示范围（project / global）
"""

import sys

from .exceptions import InvalidInputError, TdlError
from .project import detect_project_name, safe_resolve
from .render import COLOR_PROFILES, render_history, render_todo_list
from .settings import UserSettings, load_settings, set_color_profile, set_scope
from .store import StoreGroup, create_store_group

USAGE = """用法: tdl <command> [args]
命令:
  list [category]          显示待办
  add <task...>            新增待办（"category/subcategory::task"）
  complete <index>         完成待办
  remove <index>           永久删除待办
  history                  显示今日已完成
  restore <index>          从历史恢复
  clear                    清空当前范围内的待办
  config [show]            显示配置
  config color <profile>   设置颜色方案
  config scope <scope>     设置显示范围（project / global）"""


def parse_index(raw: str | None, what: str = "index") -> int:
    """解析 1-based 序号

    Raises:
        InvalidInputError: 非正整数
    """
    try:
        index = int(raw) if raw is not None else 0
    except ValueError:
        index = 0
    if index < 1:
        raise InvalidInputError(f"Please provide a valid {what}")
    return index


def tag(task) -> str:
    display = task.category_path.display()
    return f" [{display}]" if display else ""


def show_list(stores: StoreGroup, settings: UserSettings, category: str | None = None) -> None:
    view = stores.task_store.display_view(settings.filter_by_project, category=category)
    history = stores.history_store.query(settings.filter_by_project)
    print(
        render_todo_list(
            view,
            history,
            profile=settings.color_profile,
            scope=settings.scope,
            category=category,
        )
    )


def cmd_add(stores: StoreGroup, settings: UserSettings, args: list[str]) -> None:
    text = " ".join(args).strip()
    if not text:
        raise InvalidInputError("Please provide a task")
    added = stores.task_store.add(text).affected_list[0]
    print(f'✓ Added{tag(added)}: "{added.text}"')
    show_list(stores, settings)


def cmd_complete(stores: StoreGroup, settings: UserSettings, args: list[str]) -> None:
    index = parse_index(args[0] if args else None)
    target = stores.task_store.get_by_index(index, settings.filter_by_project)
    done = stores.complete({"id": target.id}).affected_list[0]
    print(f'✓ Completed{tag(done)}: "{done.text}"')
    show_list(stores, settings)


def cmd_remove(stores: StoreGroup, settings: UserSettings, args: list[str]) -> None:
    index = parse_index(args[0] if args else None)
    target = stores.task_store.get_by_index(index, settings.filter_by_project)
    removed = stores.task_store.remove({"id": target.id}).affected_list[0]
    print(f'✓ Removed{tag(removed)}: "{removed.text}"')
    show_list(stores, settings)


def cmd_restore(stores: StoreGroup, settings: UserSettings, args: list[str]) -> None:
    index = parse_index(args[0] if args else None, "history index")
    entry = stores.history_store.get_by_index(index, settings.filter_by_project)
    restored = stores.restore({"id": entry.id}).affected_list[0]
    print(f'✓ Restored{tag(restored)}: "{restored.text}"')
    show_list(stores, settings)


def cmd_clear(stores: StoreGroup, settings: UserSettings) -> None:
    count = stores.task_store.clear(settings.filter_by_project)
    print(f"✓ Todos cleared ({count} items removed)")
    show_list(stores, settings)


def cmd_config(args: list[str]) -> None:
    sub = args[0] if args else "show"
    if sub == "show":
        settings = load_settings()
        project_name = safe_resolve(detect_project_name)
        print(f"Color profile: {settings.color_profile}")
        print(f"Scope: {settings.scope}")
        if settings.scope == "project":
            print(f"Current project: {project_name or '(unknown)'}")
        print(f"Available profiles: {', '.join(COLOR_PROFILES)}")
    elif sub == "color" and len(args) > 1:
        settings = set_color_profile(args[1])
        print(f"✓ Color profile set to: {settings.color_profile}")
    elif sub == "scope" and len(args) > 1:
        settings = set_scope(args[1])
        print(f"✓ Display scope set to: {settings.scope}")
    else:
        raise InvalidInputError("Usage: tdl config [show | color <profile> | scope <scope>]")


def run(command: str, args: list[str]) -> None:
    """执行单条命令；领域错误向上抛出"""
    if command == "config":
        cmd_config(args)
        return

    settings = load_settings()
    stores = create_store_group(resolver=lambda: detect_project_name())

    if command == "list":
        show_list(stores, settings, args[0] if args else None)
    elif command == "add":
        cmd_add(stores, settings, args)
    elif command == "complete":
        cmd_complete(stores, settings, args)
    elif command == "remove":
        cmd_remove(stores, settings, args)
    elif command == "history":
        entries = stores.history_store.query(settings.filter_by_project)
        print(render_history(entries, profile=settings.color_profile))
    elif command == "restore":
        cmd_restore(stores, settings, args)
    elif command == "clear":
        cmd_clear(stores, settings)
    else:
        raise InvalidInputError(f"Unknown command: {command}")


def main(argv: list[str] | None = None) -> None:
    """CLI 主入口"""
    from tdl.server.logging_config import setup_logging

    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(USAGE)
        sys.exit(1)

    try:
        run(args[0], args[1:])
    except TdlError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
