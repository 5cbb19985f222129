"""HistoryStore -- 完成历史账本

独占历史账本（当天完成的任务）。每个入口都先执行惰性翻日检查：
当前本地日期晚于 last_cleared_at 的本地日期时清空条目并立即落盘。
"""

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from ..exceptions import IndexOutOfRangeError, NotFoundError
from ..models.results import MutationResult
from ..models.selector import (
    IdSelector,
    Selector,
    TaskFilter,
    TaskPatch,
    parse_patch,
    parse_selector,
)
from ..models.task import HistoryEntry, HistoryLedger, Task, new_task_id
from ..project import ProjectResolver, detect_project_name
from ..query import apply_filter, completed_at_of, resolve_selector, scope_filter
from .protocols import Clock, CollectionFile, system_clock
from .task_store import ProjectCache, select_by_ids

if TYPE_CHECKING:
    from .task_store import TaskStore

log = structlog.get_logger()


def needs_rollover(last_cleared_at: datetime, now: datetime) -> bool:
    """判断是否跨入了新的本地日历日

    只在 now 的日期严格晚于上次清空日期时返回 True；
    时钟回拨不会触发清空，保证 last_cleared_at 只前移。
    """
    return now.date() > last_cleared_at.astimezone(now.tzinfo).date()


def backfill_history_records(records: list[dict[str, Any]], now: datetime) -> int:
    """为缺少 id / 时间戳的旧历史条目补齐字段"""
    fixed = 0
    for record in records:
        changed = False
        if not record.get("id"):
            record["id"] = new_task_id()
            changed = True
        if not record.get("completedAt"):
            record["completedAt"] = now.isoformat()
            changed = True
        if not record.get("added"):
            record["added"] = record["completedAt"]
            changed = True
        fixed += changed
    return fixed


class HistoryStore:
    """完成历史存储

    Args:
        file: 历史账本文件
        resolver: 当前项目名探测
        clock: 当前时间来源（翻日判断使用其时区）
    """

    def __init__(
        self,
        file: CollectionFile,
        *,
        resolver: ProjectResolver = detect_project_name,
        clock: Clock = system_clock,
    ) -> None:
        self._file = file
        self._resolver = resolver
        self._clock = clock

    # ---- 持久化 ----

    def load(self) -> HistoryLedger:
        """读取账本并执行惰性翻日

        文件不存在时返回空账本（last_cleared_at=now），不写文件。
        翻日或补齐 id 后立即写回。
        """
        now = self._clock()
        raw = self._file.read(lambda: None)
        if raw is None:
            return HistoryLedger(last_cleared_at=now)

        records = raw.get("completed") or []
        dirty = backfill_history_records(records, now) > 0
        if not raw.get("lastCleared"):
            raw["lastCleared"] = now.isoformat()
            dirty = True
        ledger = HistoryLedger.from_record({"completed": records, "lastCleared": raw["lastCleared"]})

        if needs_rollover(ledger.last_cleared_at, now):
            log.info(
                "history_rolled_over",
                cleared=len(ledger.entries),
                last_cleared=ledger.last_cleared_at.isoformat(),
            )
            ledger = HistoryLedger(last_cleared_at=now)
            dirty = True

        if dirty:
            self.save(ledger)
        return ledger

    def save(self, ledger: HistoryLedger) -> None:
        self._file.write(ledger.to_record())

    def _tz(self):
        return self._clock().tzinfo

    # ---- 查询 ----

    def query(self, filter_by_project: bool = False) -> list[HistoryEntry]:
        """当天完成的条目（完成顺序），按展示范围过滤"""
        entries = self.load().entries
        return scope_filter(entries, filter_by_project, ProjectCache(self._resolver))

    def filter(self, task_filter: TaskFilter | dict[str, Any]) -> list[HistoryEntry]:
        """按过滤条件查询历史，日期条件作用于 completed_at"""
        if isinstance(task_filter, dict):
            task_filter = TaskFilter.model_validate(task_filter)
        return apply_filter(
            self.load().entries,
            task_filter,
            project=ProjectCache(self._resolver),
            timestamp=completed_at_of,
            tz=self._tz(),
        )

    def get_by_index(self, index: int, filter_by_project: bool = False) -> HistoryEntry:
        """历史列表中的 1-based 序号 -> 条目

        Raises:
            IndexOutOfRangeError: 序号超出范围
        """
        entries = self.query(filter_by_project)
        if index < 1 or index > len(entries):
            raise IndexOutOfRangeError(index, len(entries))
        return entries[index - 1]

    # ---- 变更 ----

    def record_completion(
        self, tasks: Sequence[Task], now: datetime | None = None
    ) -> list[HistoryEntry]:
        """追加完成条目；同 id 条目被替换（崩溃后重试不会产生重复）"""
        stamp = now or self._clock()
        ledger = self.load()
        new_entries = [HistoryEntry.from_task(t, stamp) for t in tasks]
        new_ids = {e.id for e in new_entries}
        ledger.entries = [e for e in ledger.entries if e.id not in new_ids] + new_entries
        self.save(ledger)
        return new_entries

    def _resolve(
        self, entries: list[HistoryEntry], selector: Selector
    ) -> tuple[list[HistoryEntry], list[str]]:
        ids = resolve_selector(
            selector,
            entries,
            project=ProjectCache(self._resolver),
            timestamp=completed_at_of,
            tz=self._tz(),
        )
        matched, missing = select_by_ids(entries, ids)
        if missing and isinstance(selector, IdSelector):
            raise NotFoundError(missing, collection="history")
        return matched, missing

    @staticmethod
    def _shape(selector: Selector, matched: list) -> Any:
        if isinstance(selector, IdSelector) and matched:
            return matched[0]
        return matched

    def restore(
        self, selector: Selector | dict[str, Any] | str, active: "TaskStore"
    ) -> MutationResult:
        """将历史条目恢复为活动任务（先写活动集合，再写账本）

        Returns:
            collection 为恢复后的活动集合，affected 为恢复的任务
        """
        from .transaction import move_to_active

        selector = parse_selector(selector)
        ledger = self.load()
        matched, missing = self._resolve(ledger.entries, selector)
        active_tasks, restored = move_to_active(self, active, ledger, matched)
        return MutationResult(
            collection=active_tasks,
            affected=self._shape(selector, restored),
            missing=missing,
        )

    def remove(self, selector: Selector | dict[str, Any] | str) -> MutationResult:
        """从历史中永久删除条目"""
        selector = parse_selector(selector)
        ledger = self.load()
        matched, missing = self._resolve(ledger.entries, selector)
        if matched:
            removed = {e.id for e in matched}
            ledger.entries = [e for e in ledger.entries if e.id not in removed]
            self.save(ledger)
        log.info("history_removed", count=len(matched), missing=len(missing))
        return MutationResult(
            collection=ledger.entries,
            affected=self._shape(selector, matched),
            missing=missing,
        )

    def update(
        self, selector: Selector | dict[str, Any] | str, patch: TaskPatch | dict[str, Any]
    ) -> MutationResult:
        """更新历史条目的文本/分类（completed_at 不变）"""
        patch = parse_patch(patch)
        selector = parse_selector(selector)
        ledger = self.load()
        matched, missing = self._resolve(ledger.entries, selector)

        updated = {e.id: patch.apply(e) for e in matched}
        if updated:
            ledger.entries = [updated.get(e.id, e) for e in ledger.entries]
            self.save(ledger)

        affected = [updated[e.id] for e in matched]
        log.info("history_updated", count=len(affected), missing=len(missing))
        return MutationResult(
            collection=ledger.entries,
            affected=self._shape(selector, affected),
            missing=missing,
        )

    def clear(self, task_filter: TaskFilter | dict[str, Any] | None = None) -> int:
        """清空历史

        不带过滤条件时清空全部，last_cleared_at 前移到 now（时钟回拨时保持不变）；
        带过滤条件时只删除匹配条目（条件不能为空）。

        Returns:
            删除的条目数

        Raises:
            InvalidSelectorError: 过滤条件为空
        """
        ledger = self.load()
        before = len(ledger.entries)

        if task_filter is None:
            now = self._clock()
            ledger = HistoryLedger(last_cleared_at=max(ledger.last_cleared_at, now))
        else:
            selector = parse_selector({"filter": task_filter})
            matched, _ = self._resolve(ledger.entries, selector)
            removed = {e.id for e in matched}
            ledger.entries = [e for e in ledger.entries if e.id not in removed]

        cleared = before - len(ledger.entries)
        if task_filter is None or cleared:
            self.save(ledger)
        log.info("history_cleared", count=cleared, filtered=task_filter is not None)
        return cleared
