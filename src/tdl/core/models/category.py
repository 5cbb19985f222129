"""Category 模型 -- 紧凑分类编码 `level1/level2::text` 的解析与序列化

CategoryPath 是不可变值对象：0-3 个非空、已 trim 的层级，不允许稀疏路径。
所有分类匹配（level1 精确匹配、level1+2 组合匹配）都集中在这里，
调用方不再各自做正则匹配。
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import MAX_CATEGORY_DEPTH
from ..exceptions import CategoryTooDeepError

CATEGORY_SEPARATOR = "::"
LEVEL_SEPARATOR = "/"
UNTAGGED_GROUP_KEY = "__untagged__"


class CategoryPath(BaseModel):
    """有序分类层级，例如 ("tdl", "backend")"""

    model_config = ConfigDict(frozen=True)

    levels: tuple[str, ...] = Field(default=(), description="分类层级，level1 在前")

    @field_validator("levels", mode="before")
    @classmethod
    def _normalize(cls, value):
        if value is None:
            return ()
        levels = tuple(str(v).strip() for v in value)
        if any(not level for level in levels):
            raise ValueError("category levels must be non-empty strings")
        if len(levels) > MAX_CATEGORY_DEPTH:
            raise ValueError(
                f"category depth {len(levels)} exceeds maximum {MAX_CATEGORY_DEPTH}"
            )
        return levels

    @classmethod
    def from_optional(cls, *levels: str | None) -> "CategoryPath":
        """从可空层级构造（存储格式），丢弃空值后按顺序压紧"""
        return cls(levels=tuple(v.strip() for v in levels if v and v.strip()))

    @property
    def depth(self) -> int:
        return len(self.levels)

    @property
    def is_untagged(self) -> bool:
        return not self.levels

    def at(self, index: int) -> str | None:
        """获取指定层级（0-based），不存在返回 None"""
        if 0 <= index < len(self.levels):
            return self.levels[index]
        return None

    def display(self) -> str | None:
        """显示字符串，例如 "tdl/backend"；无分类返回 None"""
        return LEVEL_SEPARATOR.join(self.levels) if self.levels else None

    def group_key(self) -> str:
        """分组键，使用 :: 与显示格式区分"""
        return CATEGORY_SEPARATOR.join(self.levels) if self.levels else UNTAGGED_GROUP_KEY

    def with_project(self, project_name: str) -> "CategoryPath":
        """将项目名插入为 level1，原有层级整体右移

        只对 0/1 层的路径使用：2 层及以上视为已显式指定项目。
        """
        return CategoryPath(levels=(project_name, *self.levels))

    def matches(self, category: str | None) -> bool:
        """level1 精确匹配；category 为空时匹配无分类任务"""
        if not category:
            return self.is_untagged
        return self.at(0) == category

    def matches_full(self, category: str | None, subcategory: str | None) -> bool:
        """level1 + level2 组合匹配"""
        if not category:
            return self.is_untagged
        if not subcategory:
            return self.at(0) == category
        return self.at(0) == category and self.at(1) == subcategory

    def matches_subcategory(self, subcategory: str) -> bool:
        """只按 level2 匹配，不限定 level1"""
        return self.at(1) == subcategory


class ParsedTask(BaseModel):
    """解析结果：分类路径 + 任务文本"""

    model_config = ConfigDict(frozen=True)

    category: CategoryPath = Field(default_factory=CategoryPath)
    text: str


def parse_category(task_string: str, max_depth: int = MAX_CATEGORY_DEPTH) -> ParsedTask:
    """解析 "l1/l2::text"、"l1::text" 或 "text"

    Args:
        task_string: 带可选分类前缀的任务字符串
        max_depth: 最大分类层级数

    Returns:
        ParsedTask

    Raises:
        CategoryTooDeepError: 层级数超过 max_depth
    """
    head, sep, tail = task_string.partition(CATEGORY_SEPARATOR)
    text = tail.strip()
    if not sep or not text:
        return ParsedTask(text=task_string.strip())

    parts = [p.strip() for p in head.split(LEVEL_SEPARATOR)]
    parts = [p for p in parts if p]
    # 存储格式最多三层
    limit = min(max_depth, MAX_CATEGORY_DEPTH)
    if len(parts) > limit:
        raise CategoryTooDeepError(len(parts), limit)

    return ParsedTask(category=CategoryPath(levels=tuple(parts)), text=text)


def format_category(category: CategoryPath, text: str) -> str:
    """反向序列化为 "l1/l2::text" 形式"""
    label = category.display()
    return f"{label}{CATEGORY_SEPARATOR}{text}" if label else text
