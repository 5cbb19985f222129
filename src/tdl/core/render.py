"""文本渲染 -- 把 DisplayView 与历史条目渲染为带 ANSI 颜色的文本

只消费 core 已分组、已编号的数据，不自行排序或编号。
"""

import json
from collections.abc import Sequence
from datetime import datetime

from .models.results import DisplayItem, DisplayView
from .models.task import HistoryEntry

RESET = "\x1b[0m"

# 颜色方案：name -> 角色 -> ANSI 序列
COLOR_PROFILES: dict[str, dict[str, str]] = {
    "default": {
        "name": "Default",
        "border": "\x1b[38;5;38m",
        "title": "\x1b[95m",
        "index": "\x1b[46m\x1b[97m",
        "category": "\x1b[35m",
        "subcategory": "\x1b[36m",
        "task": "\x1b[97m",
        "timestamp": "\x1b[90m",
        "category_header": "\x1b[1m\x1b[36m",
        "subcategory_header": "\x1b[36m",
        "untagged_header": "\x1b[90m",
        "completed": "\x1b[32m",
        "empty": "\x1b[33m",
    },
    "ocean": {
        "name": "Ocean",
        "border": "\x1b[38;5;24m",
        "title": "\x1b[38;5;39m",
        "index": "\x1b[48;5;24m\x1b[97m",
        "category": "\x1b[38;5;45m",
        "subcategory": "\x1b[38;5;51m",
        "task": "\x1b[38;5;231m",
        "timestamp": "\x1b[38;5;240m",
        "category_header": "\x1b[1m\x1b[38;5;45m",
        "subcategory_header": "\x1b[38;5;51m",
        "untagged_header": "\x1b[38;5;240m",
        "completed": "\x1b[38;5;42m",
        "empty": "\x1b[38;5;215m",
    },
    "forest": {
        "name": "Forest",
        "border": "\x1b[38;5;28m",
        "title": "\x1b[38;5;34m",
        "index": "\x1b[48;5;22m\x1b[97m",
        "category": "\x1b[38;5;76m",
        "subcategory": "\x1b[38;5;114m",
        "task": "\x1b[38;5;231m",
        "timestamp": "\x1b[38;5;240m",
        "category_header": "\x1b[1m\x1b[38;5;76m",
        "subcategory_header": "\x1b[38;5;114m",
        "untagged_header": "\x1b[38;5;240m",
        "completed": "\x1b[38;5;40m",
        "empty": "\x1b[38;5;220m",
    },
    "sunset": {
        "name": "Sunset",
        "border": "\x1b[38;5;166m",
        "title": "\x1b[38;5;208m",
        "index": "\x1b[48;5;130m\x1b[97m",
        "category": "\x1b[38;5;203m",
        "subcategory": "\x1b[38;5;215m",
        "task": "\x1b[38;5;231m",
        "timestamp": "\x1b[38;5;240m",
        "category_header": "\x1b[1m\x1b[38;5;203m",
        "subcategory_header": "\x1b[38;5;215m",
        "untagged_header": "\x1b[38;5;240m",
        "completed": "\x1b[38;5;113m",
        "empty": "\x1b[38;5;226m",
    },
    "purple": {
        "name": "Purple Haze",
        "border": "\x1b[38;5;93m",
        "title": "\x1b[38;5;135m",
        "index": "\x1b[48;5;54m\x1b[97m",
        "category": "\x1b[38;5;141m",
        "subcategory": "\x1b[38;5;183m",
        "task": "\x1b[38;5;231m",
        "timestamp": "\x1b[38;5;240m",
        "category_header": "\x1b[1m\x1b[38;5;141m",
        "subcategory_header": "\x1b[38;5;183m",
        "untagged_header": "\x1b[38;5;240m",
        "completed": "\x1b[38;5;120m",
        "empty": "\x1b[38;5;227m",
    },
    "monochrome": {
        "name": "Monochrome",
        "border": "\x1b[38;5;250m",
        "title": "\x1b[1m\x1b[97m",
        "index": "\x1b[48;5;240m\x1b[97m",
        "category": "\x1b[38;5;255m",
        "subcategory": "\x1b[38;5;250m",
        "task": "\x1b[97m",
        "timestamp": "\x1b[38;5;240m",
        "category_header": "\x1b[1m\x1b[38;5;255m",
        "subcategory_header": "\x1b[38;5;250m",
        "untagged_header": "\x1b[38;5;245m",
        "completed": "\x1b[38;5;250m",
        "empty": "\x1b[38;5;245m",
    },
}

SEPARATOR_WIDTH = 37


def get_colors(profile: str) -> dict[str, str]:
    """未知方案退回 default"""
    return COLOR_PROFILES.get(profile, COLOR_PROFILES["default"])


def _paint(colors: dict[str, str], role: str, text: str) -> str:
    return f"{colors[role]}{text}{RESET}"


def _category_tag(entry, colors: dict[str, str]) -> str:
    level1 = entry.category_path.at(0)
    if level1 is None:
        return ""
    level2 = entry.category_path.at(1)
    if level2 is None:
        return _paint(colors, "category", f"[{entry.category_path.display()}]") + " "
    rest = "/".join(entry.category_path.levels[1:])
    return (
        f"{colors['category']}[{level1}/{colors['subcategory']}{rest}"
        f"{colors['category']}]{RESET} "
    )


def format_timestamp(value: datetime) -> str:
    """例如 "Mar 05, 02:30 PM"（本地时间）"""
    return value.astimezone().strftime("%b %d, %I:%M %p")


def format_time(value: datetime) -> str:
    return value.astimezone().strftime("%I:%M %p")


def format_item(item: DisplayItem, colors: dict[str, str]) -> str:
    task = item.task
    return (
        f"{_paint(colors, 'index', str(item.index) + '.')} "
        f"{_category_tag(task, colors)}{_paint(colors, 'task', task.text)}\n"
        f"   {_paint(colors, 'timestamp', format_timestamp(task.created_at))}"
    )


def format_completed(entry: HistoryEntry, colors: dict[str, str]) -> str:
    return (
        f"{_paint(colors, 'completed', '✓')} "
        f"{_category_tag(entry, colors)}{_paint(colors, 'timestamp', entry.text)}\n"
        f"   {_paint(colors, 'timestamp', format_time(entry.completed_at))}"
    )


def render_todo_list(
    view: DisplayView,
    completed: Sequence[HistoryEntry] | None = None,
    *,
    profile: str = "default",
    scope: str = "project",
    category: str | None = None,
    include_id_map: bool = False,
) -> str:
    """渲染分组后的活动任务列表（可附带今日已完成部分）

    Args:
        view: group_for_display 的结果
        completed: 今日已完成条目
        profile: 颜色方案
        scope: 显示范围，仅影响标题
        category: 正在应用的分类过滤（仅影响标题与空列表提示）
        include_id_map: 末尾追加 <!-- ID_MAP: [...] --> 索引映射
    """
    colors = get_colors(profile)
    scope_label = "All Projects" if scope == "global" else "Current Project"
    sections: list[str] = []

    if not view.ordered:
        message = (
            f"No active todos in category [{category}]" if category else "No active todos!"
        )
        sections.append(_paint(colors, "empty", message))
    else:
        for group_index, group in enumerate(view.groups):
            if group_index > 0:
                sections.append("")
            if group.category is None:
                sections.append(_paint(colors, "untagged_header", "(untagged)"))
            else:
                sections.append(_paint(colors, "category_header", group.category))
            for sub_group in group.subcategories:
                if sub_group.subcategory is not None:
                    sections.append(
                        "  " + _paint(colors, "subcategory_header", sub_group.subcategory)
                    )
                sections.append("\n".join(format_item(i, colors) for i in sub_group.items))

    if completed:
        sections.append("")
        sections.append(_paint(colors, "timestamp", "─" * SEPARATOR_WIDTH))
        sections.append(_paint(colors, "completed", "✓ Completed Today"))
        sections.append("")
        sections.append("\n".join(format_completed(e, colors) for e in completed))

    count = f"({len(view.ordered)})" if view.ordered else ""
    suffix = f" [{category}]" if category else ""
    title = _paint(colors, "title", f"📋 {scope_label} To-Dos {count}{suffix}".rstrip())
    rule = _paint(colors, "border", "─" * SEPARATOR_WIDTH)
    output = "\n".join([title, rule, *sections, rule])

    if include_id_map and view.ordered:
        output += f"\n<!-- ID_MAP: {json.dumps(view.id_map(), separators=(',', ':'))} -->"
    return output


def render_history(entries: Sequence[HistoryEntry], *, profile: str = "default") -> str:
    """渲染今日完成列表，序号即 restore 使用的历史序号"""
    if not entries:
        return "No completed todos today."
    colors = get_colors(profile)
    lines = []
    for index, entry in enumerate(entries, start=1):
        lines.append(
            f"  {index}. {_category_tag(entry, colors)}{entry.text}\n"
            f"     Completed: {format_time(entry.completed_at)}"
        )
    return f"✓ Completed Today ({len(entries)}):\n\n" + "\n\n".join(lines)
