"""Query/Filter 引擎 + Selector 解析

- apply_filter: 按 TaskFilter 过滤集合（所有条件逻辑与）
- scope_filter: 按当前项目限定展示范围
- resolve_selector: 将 Selector 解析为具体 id 列表

活动任务按 created_at 过滤日期，历史条目按 completed_at 过滤。
"""

from collections.abc import Callable, Sequence
from datetime import date, datetime, time, tzinfo
from typing import TypeVar

from .exceptions import InvalidFilterError
from .models.selector import (
    FilterSelector,
    IdSelector,
    IdsSelector,
    Selector,
    TaskFilter,
    validate_selector,
)
from .models.task import HistoryEntry, Task

T = TypeVar("T", bound=Task)

ProjectLookup = Callable[[], str | None]


def created_at_of(task: Task) -> datetime:
    return task.created_at


def completed_at_of(entry: Task) -> datetime:
    if isinstance(entry, HistoryEntry):
        return entry.completed_at
    return entry.created_at


def parse_bound(field: str, value: str, *, end_of_day: bool, tz: tzinfo | None = None) -> datetime:
    """解析日期边界

    支持 YYYY-MM-DD 与 ISO 8601 时间戳；无时区的值按本地时区解释。
    纯日期作为上界时覆盖当天全天。

    Raises:
        InvalidFilterError: 无法解析
    """
    raw = value.strip()
    try:
        if len(raw) == 10:
            day = date.fromisoformat(raw)
            parsed = datetime.combine(day, time.max if end_of_day else time.min)
        else:
            parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidFilterError(field, value) from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz) if tz is not None else parsed.astimezone()
    return parsed


def apply_filter(
    items: Sequence[T],
    task_filter: TaskFilter,
    *,
    project: ProjectLookup,
    timestamp: Callable[[Task], datetime] = created_at_of,
    tz: tzinfo | None = None,
) -> list[T]:
    """按过滤条件筛选集合，保持原有顺序

    Args:
        items: 任务或历史条目
        task_filter: 过滤条件
        project: 惰性获取当前项目名（仅 current_project 条件需要）
        timestamp: 日期条件使用的时间字段
        tz: 无时区日期的解释时区

    Raises:
        InvalidFilterError: 日期边界无法解析（先于任何匹配失败）
    """
    date_from = (
        parse_bound("dateFrom", task_filter.date_from, end_of_day=False, tz=tz)
        if task_filter.date_from
        else None
    )
    date_to = (
        parse_bound("dateTo", task_filter.date_to, end_of_day=True, tz=tz)
        if task_filter.date_to
        else None
    )

    result = list(items)

    if task_filter.current_project:
        project_name = project()
        if project_name is None:
            # 无法确定项目时不匹配任何记录
            return []
        result = [t for t in result if t.category_path.matches(project_name)]

    if task_filter.category and task_filter.subcategory:
        result = [
            t
            for t in result
            if t.category_path.matches_full(task_filter.category, task_filter.subcategory)
        ]
    elif task_filter.category:
        result = [t for t in result if t.category_path.matches(task_filter.category)]
    elif task_filter.subcategory:
        result = [
            t for t in result if t.category_path.matches_subcategory(task_filter.subcategory)
        ]

    if task_filter.untagged:
        result = [t for t in result if t.category_path.is_untagged]

    if date_from is not None:
        result = [t for t in result if timestamp(t) >= date_from]

    if date_to is not None:
        result = [t for t in result if timestamp(t) <= date_to]

    if task_filter.search_text:
        needle = task_filter.search_text.lower()
        result = [t for t in result if needle in t.text.lower()]

    return result


def scope_filter(items: Sequence[T], filter_by_project: bool, project: ProjectLookup) -> list[T]:
    """展示范围过滤

    filter_by_project=True 时只保留 level1 等于当前项目的记录；
    项目无法确定时不做过滤（与 current_project 条件不同）。
    """
    if not filter_by_project:
        return list(items)
    project_name = project()
    if project_name is None:
        return list(items)
    return [t for t in items if t.category_path.matches(project_name)]


def resolve_selector(
    selector: Selector,
    items: Sequence[Task],
    *,
    project: ProjectLookup,
    timestamp: Callable[[Task], datetime] = created_at_of,
    tz: tzinfo | None = None,
) -> list[str]:
    """将 Selector 解析为目标 id 列表（保持顺序、去重）

    - IdSelector: 单元素列表，不检查存在性（由消费方报告 NotFound）
    - IdsSelector: 原样返回（去重）
    - FilterSelector: 在集合上运行过滤条件

    Raises:
        InvalidSelectorError: 空 ids / 空 filter
        InvalidFilterError: 日期边界无法解析
    """
    validate_selector(selector)
    match selector:
        case IdSelector(id=task_id):
            return [task_id]
        case IdsSelector(ids=ids):
            return list(dict.fromkeys(ids))
        case FilterSelector(filter=task_filter):
            matched = apply_filter(
                items, task_filter, project=project, timestamp=timestamp, tz=tz
            )
            return [t.id for t in matched]
    raise AssertionError(f"unhandled selector {selector!r}")
