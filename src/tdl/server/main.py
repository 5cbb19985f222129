"""tdl MCP 服务 -- 工具调用入口

通过 FastMCP（stdio 传输）暴露任务与历史操作。
每次工具调用都重新读取配置与集合文件，进程内不缓存任何状态；
领域错误统一转换为 "Error: <message>" 文本结果。
"""

import functools
import json
from collections.abc import Callable
from typing import Any

import structlog
from fastmcp import FastMCP
from pydantic import ValidationError

from tdl.core.config import get_data_dir
from tdl.core.exceptions import TdlError
from tdl.core.models import Task
from tdl.core.project import detect_project_name, safe_resolve
from tdl.core.render import COLOR_PROFILES, render_todo_list
from tdl.core.settings import load_settings, set_color_profile as save_color_profile
from tdl.core.settings import set_scope as save_scope
from tdl.core.store import StoreGroup, create_store_group

from .logging_config import setup_logging

log = structlog.get_logger()

mcp = FastMCP("tdl")


def get_store_group() -> StoreGroup:
    """按当前环境变量创建 StoreGroup"""
    return create_store_group(resolver=lambda: detect_project_name())


def tool_errors(func: Callable[..., str]) -> Callable[..., str]:
    """领域错误 -> 错误文本，其余异常继续抛出由 MCP 层报告"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> str:
        try:
            return func(*args, **kwargs)
        except TdlError as e:
            log.info("tool_failed", tool=func.__name__, error=e.message)
            return f"Error: {e.message}"
        except ValidationError as e:
            log.info("tool_invalid_input", tool=func.__name__, error=str(e))
            return f"Error: {e.errors()[0]['msg']}"

    return wrapper


def label(task: Task) -> str:
    """分类标签，形如 [l1/l2] 后接空格"""
    display = task.category_path.display()
    return f"[{display}] " if display else ""


def numbered(tasks: list[Task]) -> str:
    return "\n".join(f"{i}. {label(t)}{t.text}" for i, t in enumerate(tasks, start=1))


def build_selector(
    id: str | None = None,
    ids: list[str] | None = None,
    filter: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """工具参数 -> 选择器字典（恰好一种形式由 parse_selector 校验）"""
    return {k: v for k, v in (("id", id), ("ids", ids), ("filter", filter)) if v is not None}


def dump_tasks(tasks: list[Task]) -> str:
    return json.dumps([t.to_record() for t in tasks], indent=2, ensure_ascii=False)


# ---- 活动任务 ----


@tool_errors
def add_todo(
    task: str, auto_project: bool = True, project_override: str | None = None
) -> str:
    """Add a to-do. Format: "category/subcategory/subarea::task", "category::task" or "task".

    With auto_project (default true) and at most one category level, the current
    project name is prefixed as the top-level category.
    """
    result = get_store_group().task_store.add(
        task, auto_project=auto_project, project_override=project_override
    )
    added = result.affected_list[0]
    return f'Added to-do {label(added)}"{added.text}"\nTotal items in storage: {len(result.collection)}'


@tool_errors
def bulk_add(tasks: list[str | dict[str, Any]], default_options: dict[str, Any] | None = None) -> str:
    """Add several to-dos at once.

    Each item is a task string or {"task", "autoProject", "projectOverride"};
    per-item options override default_options.
    """
    defaults = default_options or {}
    auto_project = defaults.get("autoProject", defaults.get("auto_project", True))
    project_override = defaults.get("projectOverride", defaults.get("project_override"))
    result = get_store_group().task_store.bulk_add(
        tasks, auto_project=auto_project, project_override=project_override
    )
    noun = "todo" if result.count == 1 else "todos"
    return (
        f"Added {result.count} {noun}:\n{numbered(result.affected_list)}\n\n"
        f"Total items in storage: {len(result.collection)}"
    )


@tool_errors
def get_todos(
    category: str | None = None,
    subcategory: str | None = None,
    untagged: bool | None = None,
    current_project: bool | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    search_text: str | None = None,
) -> str:
    """Return active to-dos as raw JSON, optionally filtered (all criteria AND-ed)."""
    tasks = get_store_group().task_store.filter(
        {
            "category": category,
            "subcategory": subcategory,
            "untagged": untagged,
            "current_project": current_project,
            "date_from": date_from,
            "date_to": date_to,
            "search_text": search_text,
        }
    )
    return dump_tasks(tasks)


@tool_errors
def display_todos(category: str | None = None) -> str:
    """Render the to-do list grouped by category, with today's completions.

    The output ends with an invisible <!-- ID_MAP: [...] --> comment mapping
    the displayed numbers to task ids.
    """
    settings = load_settings()
    stores = get_store_group()
    view = stores.task_store.display_view(settings.filter_by_project, category=category)
    history = stores.history_store.query(settings.filter_by_project)
    return render_todo_list(
        view,
        history,
        profile=settings.color_profile,
        scope=settings.scope,
        category=category,
        include_id_map=True,
    )


@tool_errors
def get_metadata() -> str:
    """Return the current project, all top-level categories and counts as JSON."""
    task_store = get_store_group().task_store
    metadata = {
        "currentProject": safe_resolve(detect_project_name),
        "categories": task_store.categories(),
        "stats": task_store.stats().model_dump(),
    }
    return json.dumps(metadata, indent=2, ensure_ascii=False)


@tool_errors
def update_todo(
    id: str,
    task: str | None = None,
    category: str | None = None,
    subcategory: str | None = None,
    subarea: str | None = None,
    clear: list[str] | None = None,
) -> str:
    """Update one to-do by id.

    Omitted fields stay unchanged. List level names in `clear`
    ("category", "subcategory", "subarea") to remove those levels.
    """
    patch: dict[str, Any] = {
        key: value
        for key, value in (
            ("task", task),
            ("category", category),
            ("subcategory", subcategory),
            ("subarea", subarea),
        )
        if value is not None
    }
    for name in clear or []:
        patch[name] = None
    result = get_store_group().task_store.update({"id": id}, patch)
    updated = result.affected_list[0]
    return f'Updated to-do {label(updated)}"{updated.text}"'


@tool_errors
def bulk_update(
    updates: dict[str, Any],
    ids: list[str] | None = None,
    filter: dict[str, Any] | None = None,
) -> str:
    """Update several to-dos selected by ids or a non-empty filter.

    In `updates`, a level set to null is cleared; absent keys are untouched.
    """
    result = get_store_group().task_store.update(build_selector(ids=ids, filter=filter), updates)
    text = f"Updated {result.count} todo(s)\n\nUpdated items:\n{numbered(result.affected_list)}"
    if result.missing:
        text += f"\n\nNot found: {', '.join(result.missing)}"
    return text


@tool_errors
def bulk_delete(ids: list[str] | None = None, filter: dict[str, Any] | None = None) -> str:
    """Permanently delete to-dos selected by ids or a non-empty filter (no history)."""
    result = get_store_group().task_store.remove(build_selector(ids=ids, filter=filter))
    text = (
        f"Deleted {result.count} todo(s)\n\nDeleted items:\n{numbered(result.affected_list)}"
        f"\n\nRemaining todos: {len(result.collection)}"
    )
    if result.missing:
        text += f"\nNot found: {', '.join(result.missing)}"
    return text


@tool_errors
def remove_todo(id: str) -> str:
    """Permanently delete one to-do by id (no history)."""
    result = get_store_group().task_store.remove({"id": id})
    removed = result.affected_list[0]
    return f'Removed to-do: "{removed.text}"\nRemaining items: {len(result.collection)}'


@tool_errors
def complete_todo(
    id: str | None = None,
    ids: list[str] | None = None,
    filter: dict[str, Any] | None = None,
) -> str:
    """Mark to-dos complete, moving them into today's history."""
    result = get_store_group().complete(build_selector(id, ids, filter))
    lines = [f'✓ Completed {label(t)}"{t.text}"' for t in result.affected_list]
    if result.missing:
        lines.append(f"Not found: {', '.join(result.missing)}")
    lines.append(f"Remaining items: {len(result.collection)}")
    return "\n".join(lines)


@tool_errors
def clear_todos() -> str:
    """Delete all active to-dos in the current display scope."""
    settings = load_settings()
    count = get_store_group().task_store.clear(settings.filter_by_project)
    scope = "project" if settings.filter_by_project else "all"
    return f"Cleared {scope} to-dos ({count} items removed)"


# ---- 完成历史 ----


@tool_errors
def query_history(filter: dict[str, Any] | None = None) -> str:
    """List today's completed to-dos (display scope applies unless a filter is given)."""
    history_store = get_store_group().history_store
    if filter:
        entries = history_store.filter(filter)
    else:
        entries = history_store.query(load_settings().filter_by_project)
    return format_history(entries)


def format_history(entries: list) -> str:
    """历史列表纯文本（附 id，便于后续 restore）"""
    if not entries:
        return "No completed todos today."
    lines = [
        f"{i}. {label(e)}{e.text}\n   Completed: {e.completed_at.astimezone().strftime('%I:%M %p')}\n   id: {e.id}"
        for i, e in enumerate(entries, start=1)
    ]
    return f"✓ Completed Today ({len(entries)}):\n\n" + "\n\n".join(lines)


@tool_errors
def restore_todo(
    id: str | None = None,
    ids: list[str] | None = None,
    filter: dict[str, Any] | None = None,
) -> str:
    """Move completed to-dos back to the active list (same id)."""
    result = get_store_group().restore(build_selector(id, ids, filter))
    lines = [f'Restored {label(t)}"{t.text}"' for t in result.affected_list]
    if result.missing:
        lines.append(f"Not found in history: {', '.join(result.missing)}")
    lines.append(f"Active items: {len(result.collection)}")
    return "\n".join(lines)


@tool_errors
def update_history(
    updates: dict[str, Any],
    id: str | None = None,
    ids: list[str] | None = None,
    filter: dict[str, Any] | None = None,
) -> str:
    """Edit text or categories of completed to-dos (completion time is kept)."""
    result = get_store_group().history_store.update(build_selector(id, ids, filter), updates)
    return f"Updated {result.count} history item(s)\n\n{numbered(result.affected_list)}"


@tool_errors
def remove_from_history(
    id: str | None = None,
    ids: list[str] | None = None,
    filter: dict[str, Any] | None = None,
) -> str:
    """Permanently delete completed to-dos from history."""
    result = get_store_group().history_store.remove(build_selector(id, ids, filter))
    return (
        f"Removed {result.count} history item(s)\n\n{numbered(result.affected_list)}"
        f"\n\nRemaining in history: {len(result.collection)}"
    )


@tool_errors
def clear_history(filter: dict[str, Any] | None = None) -> str:
    """Clear today's history, or only the entries matching a non-empty filter."""
    count = get_store_group().history_store.clear(filter)
    return f"Cleared {count} history item(s)"


# ---- 配置 ----


@tool_errors
def get_config() -> str:
    """Show the color profile, display scope and available profiles as JSON."""
    settings = load_settings()
    project_name = safe_resolve(detect_project_name)
    if settings.scope == "project":
        description = f"Showing todos for current project: {project_name or '(unknown)'}"
    else:
        description = "Showing todos from all projects"
    payload = {
        "colorProfile": settings.color_profile,
        "scope": settings.scope,
        "scopeDescription": description,
        "availableProfiles": [
            {"name": name, "description": colors["name"], "current": name == settings.color_profile}
            for name, colors in COLOR_PROFILES.items()
        ],
        "note": f"All todos are stored globally in {get_data_dir()}. Scope controls which todos are displayed.",
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


@tool_errors
def set_color_profile(profile: str) -> str:
    """Set the display color profile (default, ocean, forest, sunset, purple, monochrome)."""
    settings = save_color_profile(profile)
    return f"✓ Color profile set to: {settings.color_profile}"


@tool_errors
def set_scope(scope: str) -> str:
    """Set the display scope: "project" (or "local") or "global"."""
    settings = save_scope(scope)
    if settings.scope == "global":
        detail = "Now showing todos from all projects"
    else:
        detail = f"Now showing todos for: {safe_resolve(detect_project_name) or '(current project)'}"
    return (
        f"✓ Display scope set to: {settings.scope}\n{detail}\n"
        f"Note: All todos are stored globally in {get_data_dir()} regardless of this setting."
    )


TOOLS: tuple[Callable[..., str], ...] = (
    add_todo,
    bulk_add,
    get_todos,
    display_todos,
    get_metadata,
    update_todo,
    bulk_update,
    bulk_delete,
    remove_todo,
    complete_todo,
    query_history,
    restore_todo,
    update_history,
    remove_from_history,
    clear_history,
    clear_todos,
    get_config,
    set_color_profile,
    set_scope,
)

for _tool in TOOLS:
    mcp.tool(_tool)


def main() -> None:
    """MCP 服务入口（stdio）"""
    setup_logging()
    log.info("mcp_server_starting", tools=len(TOOLS))
    mcp.run()


if __name__ == "__main__":
    main()
