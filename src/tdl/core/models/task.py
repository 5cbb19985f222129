"""Task Domain Model -- 活动任务、完成历史条目与历史账本

持久化格式与旧版 JSON 文件兼容：
- 活动任务: {id, task, category, subcategory, subarea, added}
- 历史账本: {completed: [... + completedAt], lastCleared}
"""

from datetime import datetime
from typing import Annotated, Any
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, Field

from .category import CategoryPath

# 存储字段名 -> 分类层级
LEVEL_FIELDS: tuple[str, str, str] = ("category", "subcategory", "subarea")


def new_task_id() -> str:
    """生成全局唯一的任务 id（UUID4）"""
    return str(uuid4())


def ensure_aware(value: datetime) -> datetime:
    """无时区的时间按本地时区解释"""
    return value if value.tzinfo is not None else value.astimezone()


AwareDatetime = Annotated[datetime, AfterValidator(ensure_aware)]


class Task(BaseModel):
    """活动任务

    id 在整个生命周期内不可变，移入历史再恢复后保持不变。
    """

    id: str = Field(default_factory=new_task_id, description="唯一标识，UUID 格式")
    text: str = Field(description="任务文本")
    category_path: CategoryPath = Field(
        default_factory=CategoryPath, description="0-3 层分类路径"
    )
    created_at: AwareDatetime = Field(description="创建时间")

    @property
    def level1(self) -> str | None:
        return self.category_path.at(0)

    @property
    def level2(self) -> str | None:
        return self.category_path.at(1)

    @property
    def level3(self) -> str | None:
        return self.category_path.at(2)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Task":
        """从存储记录构造（旧数据中的空层级会被压紧）"""
        return cls(
            id=record["id"],
            text=record.get("task", ""),
            category_path=CategoryPath.from_optional(
                *(record.get(name) for name in LEVEL_FIELDS)
            ),
            created_at=record["added"],
        )

    def to_record(self) -> dict[str, Any]:
        """转换为存储记录"""
        record: dict[str, Any] = {"id": self.id}
        for index, name in enumerate(LEVEL_FIELDS):
            record[name] = self.category_path.at(index)
        record["task"] = self.text
        record["added"] = self.created_at.isoformat()
        return record


class HistoryEntry(Task):
    """完成历史条目 = Task + completed_at"""

    completed_at: AwareDatetime = Field(description="完成时间")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "HistoryEntry":
        task = Task.from_record(record)
        return cls(**task.model_dump(), completed_at=record["completedAt"])

    @classmethod
    def from_task(cls, task: Task, completed_at: datetime) -> "HistoryEntry":
        """复制活动任务并打上完成时间戳"""
        return cls(**task.model_dump(), completed_at=completed_at)

    def to_record(self) -> dict[str, Any]:
        record = super().to_record()
        record["completedAt"] = self.completed_at.isoformat()
        return record

    def to_task(self) -> Task:
        """恢复为活动任务（去掉 completed_at，id/created_at 保持不变）"""
        return Task(**self.model_dump(exclude={"completed_at"}))


class HistoryLedger(BaseModel):
    """完成历史账本

    last_cleared_at 只会前移；entries 均完成于最近一次清空边界（本地日历日）之后，
    由访问时的惰性翻日检查保证。
    """

    entries: list[HistoryEntry] = Field(default_factory=list)
    last_cleared_at: AwareDatetime = Field(description="最近一次清空时间")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "HistoryLedger":
        return cls(
            entries=[HistoryEntry.from_record(r) for r in record.get("completed", [])],
            last_cleared_at=record["lastCleared"],
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "completed": [e.to_record() for e in self.entries],
            "lastCleared": self.last_cleared_at.isoformat(),
        }
