"""操作结果模型

所有变更操作返回 MutationResult：变更后的集合 + 受影响记录。
查询类操作直接返回 list[Task] / list[HistoryEntry]。
"""

from pydantic import BaseModel, Field

from .task import Task


class MutationResult(BaseModel):
    """变更操作结果"""

    collection: list[Task] = Field(description="操作后的目标集合")
    affected: Task | list[Task] = Field(description="受影响的记录")
    missing: list[str] = Field(
        default_factory=list,
        description="解析后已不存在的 id（部分结果，不回滚其他记录）",
    )

    @property
    def affected_list(self) -> list[Task]:
        if isinstance(self.affected, list):
            return self.affected
        return [self.affected]

    @property
    def count(self) -> int:
        return len(self.affected_list)


class DisplayItem(BaseModel):
    """带显示索引的任务"""

    index: int = Field(ge=1, description="1-based 显示索引")
    task: Task


class SubcategoryGroup(BaseModel):
    """level2 分组；subcategory 为 None 表示无二级分类"""

    subcategory: str | None = None
    items: list[DisplayItem] = Field(default_factory=list)


class CategoryGroup(BaseModel):
    """level1 分组；category 为 None 表示无分类（untagged）"""

    category: str | None = None
    subcategories: list[SubcategoryGroup] = Field(default_factory=list)


class DisplayView(BaseModel):
    """分组并编号后的展示视图，渲染层与按索引定位共用"""

    groups: list[CategoryGroup] = Field(default_factory=list)
    ordered: list[DisplayItem] = Field(default_factory=list)

    def id_map(self) -> list[dict[str, int | str]]:
        """索引 -> id 映射（供工具层回传）"""
        return [{"index": item.index, "id": item.task.id} for item in self.ordered]


class TodoStats(BaseModel):
    """活动任务统计"""

    total: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    untagged: int = 0

