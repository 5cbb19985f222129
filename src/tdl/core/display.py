"""展示分组 -- 为渲染层提供已分组、已编号的视图

分组规则：
- level1 分组按字母序，无分类（untagged）排在最后
- 组内 level2 分组：无二级分类在前，其余按字母序
- 同一分组内保持存储顺序

显示索引按分组后的顺序连续编号，get_by_index 使用同一视图，
保证用户看到的序号与实际操作的任务一致。
"""

from collections.abc import Sequence

from .models.results import (
    CategoryGroup,
    DisplayItem,
    DisplayView,
    SubcategoryGroup,
)
from .models.task import Task


def _label_key(label: str) -> tuple[str, str]:
    return (label.casefold(), label)


def group_for_display(tasks: Sequence[Task]) -> DisplayView:
    """按分类分组并分配 1-based 显示索引"""
    buckets: dict[str | None, dict[str | None, list[Task]]] = {}
    for task in tasks:
        category = task.category_path.at(0)
        subcategory = task.category_path.at(1)
        buckets.setdefault(category, {}).setdefault(subcategory, []).append(task)

    tagged = sorted((c for c in buckets if c is not None), key=_label_key)
    category_order: list[str | None] = [*tagged]
    if None in buckets:
        category_order.append(None)

    groups: list[CategoryGroup] = []
    ordered: list[DisplayItem] = []
    next_index = 1

    for category in category_order:
        sub_buckets = buckets[category]
        sub_order: list[str | None] = [None] if None in sub_buckets else []
        sub_order.extend(
            sorted((s for s in sub_buckets if s is not None), key=_label_key)
        )

        group = CategoryGroup(category=category)
        for subcategory in sub_order:
            sub_group = SubcategoryGroup(subcategory=subcategory)
            for task in sub_buckets[subcategory]:
                item = DisplayItem(index=next_index, task=task)
                next_index += 1
                sub_group.items.append(item)
                ordered.append(item)
            group.subcategories.append(sub_group)
        groups.append(group)

    return DisplayView(groups=groups, ordered=ordered)
