"""Domain Models 单元测试

测试内容：
1. 存储记录读写（兼容旧 JSON 格式）
2. Selector 规范化与非空校验
3. TaskPatch 语义（未提供 vs 显式 None、稀疏路径拒绝）
"""

from datetime import datetime, timedelta, timezone

import pytest
from tdl.core.exceptions import EmptyPatchError, InvalidPatchError, InvalidSelectorError
from tdl.core.models import (
    CategoryPath,
    FilterSelector,
    HistoryEntry,
    HistoryLedger,
    IdSelector,
    IdsSelector,
    Task,
    TaskFilter,
    TaskPatch,
    parse_patch,
    parse_selector,
)

TZ = timezone(timedelta(hours=8))
NOW = datetime(2026, 3, 5, 10, 0, tzinfo=TZ)


def make_task(*levels: str, text: str = "task") -> Task:
    return Task(text=text, category_path=CategoryPath(levels=levels), created_at=NOW)


class TestRecords:
    """存储记录转换测试"""

    def test_task_record_layout(self):
        task = make_task("tdl", "core", text="write store")
        record = task.to_record()
        assert record == {
            "id": task.id,
            "category": "tdl",
            "subcategory": "core",
            "subarea": None,
            "task": "write store",
            "added": NOW.isoformat(),
        }

    def test_task_from_record(self):
        task = Task.from_record(
            {
                "id": "abc",
                "category": "tdl",
                "subcategory": None,
                "task": "hello",
                "added": "2026-03-05T02:00:00.000Z",
            }
        )
        assert task.id == "abc"
        assert task.category_path.levels == ("tdl",)
        assert task.created_at.tzinfo is not None

    def test_new_ids_unique(self):
        ids = {make_task().id for _ in range(50)}
        assert len(ids) == 50

    def test_history_entry_keeps_identity(self):
        task = make_task("a")
        entry = HistoryEntry.from_task(task, NOW + timedelta(hours=1))
        assert entry.id == task.id
        assert entry.created_at == task.created_at
        assert entry.to_record()["completedAt"] == (NOW + timedelta(hours=1)).isoformat()

        back = entry.to_task()
        assert type(back) is Task
        assert back == task

    def test_ledger_record(self):
        entry = HistoryEntry.from_task(make_task(), NOW)
        ledger = HistoryLedger(entries=[entry], last_cleared_at=NOW)
        record = ledger.to_record()
        assert record["lastCleared"] == NOW.isoformat()
        assert HistoryLedger.from_record(record) == ledger


class TestSelector:
    """Selector 规范化测试"""

    def test_string_is_id(self):
        assert parse_selector("abc") == IdSelector(id="abc")

    def test_list_is_ids(self):
        assert parse_selector(["a", "b"]) == IdsSelector(ids=["a", "b"])

    def test_dict_forms(self):
        assert isinstance(parse_selector({"id": "a"}), IdSelector)
        assert isinstance(parse_selector({"ids": ["a"]}), IdsSelector)
        selector = parse_selector({"filter": {"searchText": "foo"}})
        assert isinstance(selector, FilterSelector)
        assert selector.filter.search_text == "foo"

    @pytest.mark.parametrize(
        "raw",
        [
            {},
            {"id": "a", "ids": ["b"]},
            {"ids": []},
            {"filter": {}},
            {"filter": {"untagged": False, "searchText": ""}},
            {"id": ""},
            [],
            42,
        ],
    )
    def test_rejected(self, raw):
        with pytest.raises(InvalidSelectorError):
            parse_selector(raw)

    def test_filter_aliases(self):
        task_filter = TaskFilter.model_validate(
            {"currentProject": True, "dateFrom": "2026-03-01", "date_to": "2026-03-05"}
        )
        assert task_filter.current_project is True
        assert task_filter.date_from == "2026-03-01"
        assert task_filter.date_to == "2026-03-05"
        assert task_filter.has_criteria()


class TestPatch:
    """TaskPatch 测试"""

    def test_empty_patch_rejected(self):
        with pytest.raises(EmptyPatchError):
            parse_patch({})

    def test_unknown_keys_only_is_empty(self):
        with pytest.raises(EmptyPatchError):
            parse_patch({"priority": 1})

    def test_text_cannot_be_cleared(self):
        with pytest.raises(InvalidPatchError):
            parse_patch({"task": "  "})

    def test_absent_vs_null(self):
        patch = parse_patch({"subcategory": None})
        assert patch.level_changes == {1: None}

    def test_apply_text_only(self):
        task = make_task("a", "b")
        updated = parse_patch({"text": "new"}).apply(task)
        assert updated.text == "new"
        assert updated.category_path == task.category_path
        assert updated.id == task.id

    def test_apply_clears_level(self):
        task = make_task("a", "b", "c")
        updated = parse_patch({"subarea": None}).apply(task)
        assert updated.category_path.levels == ("a", "b")

    def test_apply_sets_level(self):
        task = make_task()
        updated = parse_patch({"category": "x"}).apply(task)
        assert updated.category_path.levels == ("x",)

    def test_sparse_result_rejected(self):
        """清除 level1 而保留 level2 会形成稀疏路径"""
        task = make_task("a", "b")
        with pytest.raises(InvalidPatchError):
            parse_patch({"level1": None}).apply(task)

    def test_setting_level2_on_untagged_rejected(self):
        with pytest.raises(InvalidPatchError):
            parse_patch({"subcategory": "x"}).apply(make_task())

    def test_apply_preserves_history_type(self):
        entry = HistoryEntry.from_task(make_task("a"), NOW)
        updated = TaskPatch.model_validate({"text": "edited"}).apply(entry)
        assert isinstance(updated, HistoryEntry)
        assert updated.completed_at == NOW
