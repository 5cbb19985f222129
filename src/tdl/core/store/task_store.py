"""TaskStore -- 活动任务集合

独占活动任务集合：add / bulk_add / update / remove / complete / clear，
以及按显示索引定位与各类查询。
每个操作都是：读取整个集合 -> 内存中修改 -> 写回整个集合（一次）。
"""

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from ..config import MAX_CATEGORY_DEPTH
from ..display import group_for_display
from ..exceptions import (
    IndexOutOfRangeError,
    InvalidInputError,
    NotFoundError,
)
from ..models.category import parse_category
from ..models.results import DisplayView, MutationResult, TodoStats
from ..models.selector import (
    IdSelector,
    Selector,
    TaskFilter,
    TaskPatch,
    parse_patch,
    parse_selector,
)
from ..models.task import Task, new_task_id
from ..project import ProjectResolver, detect_project_name, safe_resolve
from ..query import ProjectLookup, apply_filter, resolve_selector, scope_filter
from .protocols import Clock, CollectionFile, system_clock

if TYPE_CHECKING:
    from .history_store import HistoryStore

log = structlog.get_logger()


def backfill_records(records: list[dict[str, Any]], now: datetime) -> int:
    """为缺少 id / added 的旧记录补齐字段（幂等）

    Returns:
        补齐的记录数
    """
    fixed = 0
    for record in records:
        changed = False
        if not record.get("id"):
            record["id"] = new_task_id()
            changed = True
        if not record.get("added"):
            record["added"] = now.isoformat()
            changed = True
        fixed += changed
    return fixed


def select_by_ids(
    items: Sequence[Task], ids: list[str]
) -> tuple[list[Task], list[str]]:
    """按 id 选出记录（集合顺序），并返回不存在的 id"""
    wanted = set(ids)
    matched = [t for t in items if t.id in wanted]
    found = {t.id for t in matched}
    missing = [i for i in ids if i not in found]
    return matched, missing


class ProjectCache:
    """单次操作内缓存项目名，避免重复调用 git"""

    def __init__(self, resolver: ProjectResolver) -> None:
        self._resolver = resolver
        self._resolved = False
        self._value: str | None = None

    def __call__(self) -> str | None:
        if not self._resolved:
            self._value = safe_resolve(self._resolver)
            self._resolved = True
        return self._value


class TaskStore:
    """活动任务存储

    Args:
        file: 活动集合文件
        resolver: 当前项目名探测（外部协作方）
        clock: 当前时间来源
        max_depth: 分类最大层级
    """

    def __init__(
        self,
        file: CollectionFile,
        *,
        resolver: ProjectResolver = detect_project_name,
        clock: Clock = system_clock,
        max_depth: int = MAX_CATEGORY_DEPTH,
    ) -> None:
        self._file = file
        self._resolver = resolver
        self._clock = clock
        self._max_depth = max_depth

    # ---- 持久化 ----

    def load(self) -> list[Task]:
        """读取整个活动集合（必要时补齐旧记录 id 并写回）"""
        records = self._file.read(list)
        fixed = backfill_records(records, self._clock())
        if fixed:
            self._file.write(records)
            log.info("todos_backfilled", count=fixed)
        return [Task.from_record(r) for r in records]

    def save(self, tasks: Sequence[Task]) -> None:
        """写回整个活动集合"""
        self._file.write([t.to_record() for t in tasks])

    def project_lookup(self) -> ProjectLookup:
        """本次操作使用的惰性项目名查询"""
        return ProjectCache(self._resolver)

    def now(self) -> datetime:
        return self._clock()

    # ---- 查询 ----

    def list_tasks(self, filter_by_project: bool = False) -> list[Task]:
        """按展示范围列出活动任务（存储顺序）"""
        return scope_filter(self.load(), filter_by_project, self.project_lookup())

    def filter(self, task_filter: TaskFilter | dict[str, Any]) -> list[Task]:
        """按过滤条件查询（空条件返回全部，查询不受选择器非空约束）"""
        if isinstance(task_filter, dict):
            task_filter = TaskFilter.model_validate(task_filter)
        return apply_filter(
            self.load(),
            task_filter,
            project=self.project_lookup(),
            tz=self._clock().tzinfo,
        )

    def get(self, task_id: str) -> Task:
        """按 id 获取

        Raises:
            NotFoundError: id 不存在
        """
        for task in self.load():
            if task.id == task_id:
                return task
        raise NotFoundError([task_id])

    def display_view(
        self, filter_by_project: bool = False, category: str | None = None
    ) -> DisplayView:
        """分组编号后的展示视图

        category 只影响渲染，不参与显示索引的计算（索引在分类过滤之前确定）。
        """
        view = group_for_display(self.list_tasks(filter_by_project))
        if category:
            view.ordered = [i for i in view.ordered if i.task.category_path.matches(category)]
            view.groups = [g for g in view.groups if g.category == category]
        return view

    def get_by_index(self, index: int, filter_by_project: bool = False) -> Task:
        """将用户看到的 1-based 序号转换为任务

        每次调用都重新解析当前视图，从不缓存顺序。

        Raises:
            IndexOutOfRangeError: 序号超出当前视图
        """
        ordered = group_for_display(self.list_tasks(filter_by_project)).ordered
        if index < 1 or index > len(ordered):
            raise IndexOutOfRangeError(index, len(ordered))
        return ordered[index - 1].task

    def categories(self) -> list[str]:
        """所有 level1 分类（去重、排序）"""
        return sorted({t.category_path.at(0) for t in self.load() if t.category_path.at(0)})

    def stats(self, task_filter: TaskFilter | dict[str, Any] | None = None) -> TodoStats:
        """统计：总数、按 level1 计数、无分类计数"""
        if task_filter is None:
            tasks = self.load()
        else:
            tasks = self.filter(task_filter)
        stats = TodoStats(total=len(tasks))
        for task in tasks:
            category = task.category_path.at(0)
            if category:
                stats.by_category[category] = stats.by_category.get(category, 0) + 1
            else:
                stats.untagged += 1
        return stats

    # ---- 变更 ----

    def build_task(
        self,
        task_string: str,
        *,
        auto_project: bool = True,
        project_override: str | None = None,
    ) -> Task:
        """解析分类并按需加上项目前缀，构造新任务（不落盘）"""
        parsed = parse_category(task_string, self._max_depth)
        category = parsed.category
        if auto_project and category.depth <= 1:
            project_name = project_override or safe_resolve(self._resolver)
            if project_name:
                category = category.with_project(project_name)
        return Task(
            id=new_task_id(),
            text=parsed.text,
            category_path=category,
            created_at=self._clock(),
        )

    def add(
        self,
        task_string: str,
        *,
        auto_project: bool = True,
        project_override: str | None = None,
    ) -> MutationResult:
        """新增任务

        Args:
            task_string: "l1/l2::text"、"l1::text" 或 "text"
            auto_project: 0/1 层分类时自动把当前项目作为 level1
            project_override: 指定项目名，代替自动探测

        Raises:
            CategoryTooDeepError: 分类层级超限
        """
        task = self.build_task(
            task_string, auto_project=auto_project, project_override=project_override
        )
        tasks = self.load()
        tasks.append(task)
        self.save(tasks)
        log.info("task_added", task_id=task.id, category=task.category_path.display())
        return MutationResult(collection=tasks, affected=task)

    def bulk_add(
        self,
        items: Sequence[str | dict[str, Any]],
        *,
        auto_project: bool = True,
        project_override: str | None = None,
    ) -> MutationResult:
        """批量新增；单项选项覆盖调用级默认值

        非原子：中途失败时前面已新增的条目保留。

        Raises:
            InvalidInputError: 空列表或条目格式非法
        """
        if not items:
            raise InvalidInputError("Tasks must be a non-empty array")

        added: list[Task] = []
        for item in items:
            if isinstance(item, str):
                task_string = item
                item_auto, item_override = auto_project, project_override
            elif isinstance(item, dict) and (item.get("task") or item.get("text")):
                task_string = item.get("task") or item["text"]
                item_auto = item.get("autoProject", item.get("auto_project"))
                if item_auto is None:
                    item_auto = auto_project
                item_override = item.get("projectOverride", item.get("project_override"))
                if item_override is None:
                    item_override = project_override
            else:
                raise InvalidInputError(
                    "Each task must be a string or object with 'task' property"
                )
            result = self.add(
                task_string, auto_project=item_auto, project_override=item_override
            )
            added.append(result.affected_list[0])

        return MutationResult(collection=self.load(), affected=added)

    def _resolve(
        self, tasks: list[Task], selector: Selector
    ) -> tuple[list[Task], list[str]]:
        """解析选择器；单 id 不存在时抛 NotFound，多 id 时返回缺失列表"""
        ids = resolve_selector(
            selector,
            tasks,
            project=self.project_lookup(),
            tz=self._clock().tzinfo,
        )
        matched, missing = select_by_ids(tasks, ids)
        if missing and isinstance(selector, IdSelector):
            raise NotFoundError(missing)
        return matched, missing

    @staticmethod
    def _shape(selector: Selector, matched: list[Task]) -> Task | list[Task]:
        if isinstance(selector, IdSelector) and matched:
            return matched[0]
        return matched

    def update(
        self, selector: Selector | dict[str, Any] | str, patch: TaskPatch | dict[str, Any]
    ) -> MutationResult:
        """按选择器更新任务文本/分类层级，全部匹配项更新后只写一次

        Raises:
            EmptyPatchError: 补丁无可识别字段（不触碰存储）
            InvalidSelectorError: 空选择器
            InvalidPatchError: 结果路径稀疏（不写入任何记录）
            NotFoundError: 单 id 不存在
        """
        patch = parse_patch(patch)
        selector = parse_selector(selector)

        tasks = self.load()
        matched, missing = self._resolve(tasks, selector)

        # 先全部校验，再整体替换
        updated = {t.id: patch.apply(t) for t in matched}
        if updated:
            tasks = [updated.get(t.id, t) for t in tasks]
            self.save(tasks)

        affected = [updated[t.id] for t in matched]
        log.info("tasks_updated", count=len(affected), missing=len(missing))
        return MutationResult(
            collection=tasks, affected=self._shape(selector, affected), missing=missing
        )

    def remove(self, selector: Selector | dict[str, Any] | str) -> MutationResult:
        """永久删除匹配任务（不进入历史）"""
        selector = parse_selector(selector)

        tasks = self.load()
        matched, missing = self._resolve(tasks, selector)
        if matched:
            removed_ids = {t.id for t in matched}
            tasks = [t for t in tasks if t.id not in removed_ids]
            self.save(tasks)

        log.info("tasks_removed", count=len(matched), missing=len(missing))
        return MutationResult(
            collection=tasks, affected=self._shape(selector, matched), missing=missing
        )

    def complete(
        self, selector: Selector | dict[str, Any] | str, history: "HistoryStore"
    ) -> MutationResult:
        """完成任务：移入历史（先写历史，再写活动集合）"""
        from .transaction import move_to_history

        selector = parse_selector(selector)
        tasks = self.load()
        matched, missing = self._resolve(tasks, selector)
        remaining, entries = move_to_history(self, history, tasks, matched)

        affected: Any = entries
        if isinstance(selector, IdSelector) and entries:
            affected = entries[0]
        return MutationResult(collection=remaining, affected=affected, missing=missing)

    def clear(self, filter_by_project: bool = False) -> int:
        """清空活动任务（或仅当前项目的任务）

        Returns:
            清除的任务数
        """
        tasks = self.load()
        if filter_by_project:
            project_name = safe_resolve(self._resolver)
            if project_name is None:
                log.warning("clear_skipped_no_project")
                return 0
            remaining = [t for t in tasks if t.category_path.at(0) != project_name]
        else:
            remaining = []

        cleared = len(tasks) - len(remaining)
        if cleared:
            self.save(remaining)
        log.info("todos_cleared", count=cleared, project_only=filter_by_project)
        return cleared
