"""Selector / Filter / Patch 值对象

Selector 是带标签的联合类型：每次调用恰好一种形式
- IdSelector: 单个 id
- IdsSelector: 非空 id 列表
- FilterSelector: 过滤条件（至少一个有效条件）

TaskFilter / TaskPatch 同时接受 snake_case 字段名与工具层的 camelCase 别名。
"""

from typing import Any, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..exceptions import EmptyPatchError, InvalidPatchError, InvalidSelectorError
from .category import CategoryPath
from .task import Task

T = TypeVar("T", bound=Task)


class TaskFilter(BaseModel):
    """过滤条件，所有已提供字段按逻辑与组合"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    category: str | None = Field(default=None, description="level1 精确匹配")
    subcategory: str | None = Field(default=None, description="level2 精确匹配")
    untagged: bool | None = Field(default=None, description="true 表示无分类")
    current_project: bool | None = Field(
        default=None, alias="currentProject", description="level1 等于当前项目"
    )
    date_from: str | None = Field(
        default=None, alias="dateFrom", description="时间下界（含）"
    )
    date_to: str | None = Field(default=None, alias="dateTo", description="时间上界（含）")
    search_text: str | None = Field(
        default=None, alias="searchText", description="大小写不敏感的子串匹配"
    )

    def has_criteria(self) -> bool:
        """是否至少包含一个会约束结果的条件

        空字符串、untagged=False 之类的值不算条件：它们会匹配整个集合。
        """
        return bool(
            self.category
            or self.subcategory
            or self.untagged
            or self.current_project
            or self.date_from
            or self.date_to
            or self.search_text
        )


class IdSelector(BaseModel):
    """按单个 id 选择"""

    kind: Literal["id"] = "id"
    id: str


class IdsSelector(BaseModel):
    """按 id 列表选择"""

    kind: Literal["ids"] = "ids"
    ids: list[str]


class FilterSelector(BaseModel):
    """按过滤条件选择"""

    kind: Literal["filter"] = "filter"
    filter: TaskFilter


Selector = IdSelector | IdsSelector | FilterSelector

_SELECTOR_KEYS = ("id", "ids", "filter")


def parse_selector(raw: Any) -> Selector:
    """将调用方输入规范化为 Selector

    接受 Selector 实例、字符串（单 id）、列表（id 列表）
    或恰好包含 id / ids / filter 之一的 dict。

    Raises:
        InvalidSelectorError: 零种或多种形式、空 ids、空 filter
    """
    if isinstance(raw, IdSelector | IdsSelector | FilterSelector):
        selector = raw
    elif isinstance(raw, str):
        selector = IdSelector(id=raw)
    elif isinstance(raw, list | tuple | set):
        selector = IdsSelector(ids=list(raw))
    elif isinstance(raw, dict):
        present = [key for key in _SELECTOR_KEYS if raw.get(key) is not None]
        if len(present) != 1:
            raise InvalidSelectorError(
                "Selector must provide exactly one of: id, ids, filter "
                f"(got {', '.join(present) or 'none'})"
            )
        key = present[0]
        value = raw[key]
        if key == "id":
            selector = IdSelector(id=str(value))
        elif key == "ids":
            if not isinstance(value, list | tuple | set):
                raise InvalidSelectorError("ids must be a non-empty array")
            selector = IdsSelector(ids=[str(v) for v in value])
        else:
            if isinstance(value, TaskFilter):
                task_filter = value
            elif isinstance(value, dict):
                task_filter = TaskFilter.model_validate(value)
            else:
                raise InvalidSelectorError("filter must be an object")
            selector = FilterSelector(filter=task_filter)
    else:
        raise InvalidSelectorError(
            f"Unsupported selector type: {type(raw).__name__}"
        )

    validate_selector(selector)
    return selector


def validate_selector(selector: Selector) -> None:
    """选择器非空校验，防止误操作整个集合"""
    match selector:
        case IdSelector(id=task_id):
            if not task_id:
                raise InvalidSelectorError("id must be a non-empty string")
        case IdsSelector(ids=ids):
            if not ids:
                raise InvalidSelectorError("ids must be a non-empty array")
        case FilterSelector(filter=task_filter):
            if not task_filter.has_criteria():
                raise InvalidSelectorError(
                    "Empty filter would match every item. "
                    "Provide id, ids array, or filter criteria "
                    "(category, subcategory, untagged, currentProject, "
                    "dateFrom, dateTo, searchText)."
                )
        case _:
            raise InvalidSelectorError(f"Unknown selector: {selector!r}")


class TaskPatch(BaseModel):
    """更新补丁

    显式设为 None 的层级会被清除；未提供的字段保持不变。
    通过 model_fields_set 区分“未提供”与“显式 None”。
    """

    model_config = ConfigDict(extra="ignore")

    text: str | None = Field(
        default=None, validation_alias=AliasChoices("text", "task")
    )
    level1: str | None = Field(
        default=None, validation_alias=AliasChoices("level1", "category")
    )
    level2: str | None = Field(
        default=None, validation_alias=AliasChoices("level2", "subcategory")
    )
    level3: str | None = Field(
        default=None, validation_alias=AliasChoices("level3", "subarea")
    )

    @field_validator("text", "level1", "level2", "level3", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @property
    def level_changes(self) -> dict[int, str | None]:
        """显式提供的层级变更：0-based 层级 -> 新值"""
        return {
            index: getattr(self, name)
            for index, name in enumerate(("level1", "level2", "level3"))
            if name in self.model_fields_set
        }

    def ensure_not_empty(self) -> None:
        """校验补丁，必须在触碰存储之前调用

        Raises:
            EmptyPatchError: 没有任何可识别字段
            InvalidPatchError: text 被清空
        """
        if not self.model_fields_set:
            raise EmptyPatchError()
        if "text" in self.model_fields_set and self.text is None:
            raise InvalidPatchError("Task text cannot be empty")

    def apply_to_levels(self, levels: tuple[str, ...]) -> list[str | None]:
        """将层级变更应用到现有路径，返回可能稀疏的三层列表"""
        result: list[str | None] = [None, None, None]
        for index, value in enumerate(levels):
            result[index] = value
        for index, value in self.level_changes.items():
            result[index] = value
        return result

    def apply(self, task: T) -> T:
        """返回应用补丁后的副本

        清除中间层级会产生稀疏路径，此时拒绝而不是自动上移。

        Raises:
            InvalidPatchError: 结果路径稀疏
        """
        levels = self.apply_to_levels(task.category_path.levels)
        for index in range(1, len(levels)):
            if levels[index] is not None and levels[index - 1] is None:
                raise InvalidPatchError(
                    f"Category level {index + 1} ({levels[index]!r}) requires level {index} "
                    f"for todo {task.id}; clearing a parent level would leave a sparse path. "
                    "Clear or move the deeper levels in the same update."
                )

        update: dict[str, Any] = {}
        if self.level_changes:
            update["category_path"] = CategoryPath(
                levels=tuple(v for v in levels if v is not None)
            )
        if "text" in self.model_fields_set and self.text is not None:
            update["text"] = self.text
        return task.model_copy(update=update)


def parse_patch(raw: TaskPatch | dict[str, Any]) -> TaskPatch:
    """规范化补丁输入并校验非空"""
    patch = raw if isinstance(raw, TaskPatch) else TaskPatch.model_validate(raw)
    patch.ensure_not_empty()
    return patch
