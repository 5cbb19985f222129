"""跨集合移动 -- complete（活动 -> 历史）与 restore（历史 -> 活动）

两个文件无法原子地一起提交，因此固定写入顺序：先写目标集合，再写源集合。
两次写入之间崩溃时，记录会同时存在于两边；重试时目标侧按 id 去重吸收，
不会产生重复，也不会丢失记录。
"""

from typing import TYPE_CHECKING

import structlog

from ..models.task import HistoryEntry, HistoryLedger, Task

if TYPE_CHECKING:
    from .history_store import HistoryStore
    from .task_store import TaskStore

log = structlog.get_logger()


def move_to_history(
    tasks: "TaskStore",
    history: "HistoryStore",
    active: list[Task],
    matched: list[Task],
) -> tuple[list[Task], list[HistoryEntry]]:
    """完成任务：写账本，再从活动集合移除

    Args:
        tasks: 活动任务存储
        history: 历史存储
        active: 已读取的活动集合快照
        matched: 要完成的任务（来自 active）

    Returns:
        (剩余活动任务, 新历史条目)
    """
    if not matched:
        return active, []

    entries = history.record_completion(matched, tasks.now())

    done = {t.id for t in matched}
    remaining = [t for t in active if t.id not in done]
    tasks.save(remaining)

    log.info("tasks_completed", count=len(entries), ids=[e.id for e in entries])
    return remaining, entries


def move_to_active(
    history: "HistoryStore",
    tasks: "TaskStore",
    ledger: HistoryLedger,
    matched: list[HistoryEntry],
) -> tuple[list[Task], list[Task]]:
    """恢复任务：写活动集合，再从账本移除

    活动集合中已有同 id 任务时原位替换。

    Returns:
        (恢复后的活动集合, 恢复的任务)
    """
    if not matched:
        return tasks.load(), []

    restored = [entry.to_task() for entry in matched]
    by_id = {t.id: t for t in restored}

    active = tasks.load()
    merged = [by_id.pop(t.id, t) for t in active]
    merged.extend(t for t in restored if t.id in by_id)
    tasks.save(merged)

    ledger.entries = [e for e in ledger.entries if e.id not in {t.id for t in restored}]
    history.save(ledger)

    log.info("tasks_restored", count=len(restored), ids=[t.id for t in restored])
    return merged, restored
