"""tdl Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .category import (
    UNTAGGED_GROUP_KEY,
    CategoryPath,
    ParsedTask,
    format_category,
    parse_category,
)
from .results import (
    CategoryGroup,
    DisplayItem,
    DisplayView,
    MutationResult,
    SubcategoryGroup,
    TodoStats,
)
from .selector import (
    FilterSelector,
    IdSelector,
    IdsSelector,
    Selector,
    TaskFilter,
    TaskPatch,
    parse_patch,
    parse_selector,
    validate_selector,
)
from .task import HistoryEntry, HistoryLedger, Task, new_task_id

__all__ = [
    # Category
    "CategoryPath",
    "ParsedTask",
    "UNTAGGED_GROUP_KEY",
    "parse_category",
    "format_category",
    # Task
    "Task",
    "HistoryEntry",
    "HistoryLedger",
    "new_task_id",
    # Selector
    "Selector",
    "IdSelector",
    "IdsSelector",
    "FilterSelector",
    "TaskFilter",
    "TaskPatch",
    "parse_selector",
    "parse_patch",
    "validate_selector",
    # Results
    "MutationResult",
    "DisplayItem",
    "DisplayView",
    "CategoryGroup",
    "SubcategoryGroup",
    "TodoStats",
]
