"""tdl Store 包 -- 活动任务与完成历史的持久化

StoreGroup 把两个 store 绑在同一组文件、同一个 resolver 与时钟上，
complete / restore 这类跨集合操作通过它调用。
"""

from pathlib import Path
from typing import Any

from ..config import get_history_path, get_todo_path
from ..models.results import MutationResult
from ..models.selector import Selector
from ..project import ProjectResolver, detect_project_name
from .history_store import HistoryStore
from .json_store import JsonFileStore
from .protocols import Clock, CollectionFile, system_clock
from .task_store import TaskStore


class StoreGroup:
    """活动任务 + 完成历史"""

    def __init__(self, task_store: TaskStore, history_store: HistoryStore) -> None:
        self.task_store = task_store
        self.history_store = history_store

    def complete(self, selector: Selector | dict[str, Any] | str) -> MutationResult:
        return self.task_store.complete(selector, self.history_store)

    def restore(self, selector: Selector | dict[str, Any] | str) -> MutationResult:
        return self.history_store.restore(selector, self.task_store)


def create_store_group(
    todo_path: str | Path | None = None,
    history_path: str | Path | None = None,
    *,
    resolver: ProjectResolver = detect_project_name,
    clock: Clock = system_clock,
) -> StoreGroup:
    """按配置路径创建 StoreGroup

    Args:
        todo_path: 活动任务文件（默认 TDL_TODO_FILE 或 ~/.tdl/todos.json）
        history_path: 历史文件（默认 TDL_HISTORY_FILE 或 ~/.tdl/todos-history.json）
        resolver: 项目名探测
        clock: 时钟
    """
    todo_file = JsonFileStore(todo_path or get_todo_path())
    history_file = JsonFileStore(history_path or get_history_path())
    return StoreGroup(
        task_store=TaskStore(todo_file, resolver=resolver, clock=clock),
        history_store=HistoryStore(history_file, resolver=resolver, clock=clock),
    )


__all__ = [
    "CollectionFile",
    "HistoryStore",
    "JsonFileStore",
    "StoreGroup",
    "TaskStore",
    "create_store_group",
]
