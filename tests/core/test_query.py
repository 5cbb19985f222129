"""Query/Filter 引擎测试"""

from datetime import datetime, timedelta, timezone

import pytest
from tdl.core.exceptions import InvalidFilterError
from tdl.core.models import CategoryPath, HistoryEntry, IdsSelector, Task, TaskFilter
from tdl.core.models.selector import FilterSelector
from tdl.core.query import (
    apply_filter,
    completed_at_of,
    parse_bound,
    resolve_selector,
    scope_filter,
)

TZ = timezone(timedelta(hours=8))


def make_task(text: str, *levels: str, day: int = 5, hour: int = 10) -> Task:
    return Task(
        text=text,
        category_path=CategoryPath(levels=levels),
        created_at=datetime(2026, 3, day, hour, 0, tzinfo=TZ),
    )


@pytest.fixture
def items() -> list[Task]:
    return [
        make_task("fix login", "tdl", "api", day=1),
        make_task("write docs", "tdl", day=3),
        make_task("Buy milk", day=5),
        make_task("refactor", "other", "core", day=5, hour=23),
    ]


def run(items, project: str | None = "tdl", **criteria):
    return apply_filter(
        items, TaskFilter.model_validate(criteria), project=lambda: project, tz=TZ
    )


class TestApplyFilter:
    """过滤条件测试"""

    def test_category(self, items):
        assert [t.text for t in run(items, category="tdl")] == ["fix login", "write docs"]

    def test_category_and_subcategory(self, items):
        assert [t.text for t in run(items, category="tdl", subcategory="api")] == ["fix login"]

    def test_subcategory_alone_spans_projects(self, items):
        """只给 subcategory 时不限定 level1"""
        items.append(make_task("ship api", "other", "api"))
        assert [t.text for t in run(items, subcategory="api")] == ["fix login", "ship api"]

    def test_category_and_subcategory_mismatch(self, items):
        assert run(items, category="other", subcategory="api") == []

    def test_untagged(self, items):
        assert [t.text for t in run(items, untagged=True)] == ["Buy milk"]

    def test_search_text_case_insensitive(self, items):
        assert [t.text for t in run(items, searchText="MILK")] == ["Buy milk"]

    def test_current_project(self, items):
        assert len(run(items, currentProject=True)) == 2

    def test_current_project_unresolvable_matches_nothing(self, items):
        assert run(items, project=None, currentProject=True) == []

    def test_date_range_inclusive(self, items):
        result = run(items, dateFrom="2026-03-03", dateTo="2026-03-05")
        assert [t.text for t in result] == ["write docs", "Buy milk", "refactor"]

    def test_date_only_upper_bound_covers_whole_day(self, items):
        """23:00 的任务仍在 dateTo 当天之内"""
        result = run(items, dateTo="2026-03-05", dateFrom="2026-03-05")
        assert [t.text for t in result] == ["Buy milk", "refactor"]

    def test_timestamp_bound(self, items):
        result = run(items, dateFrom="2026-03-05T12:00:00+08:00")
        assert [t.text for t in result] == ["refactor"]

    def test_and_semantics(self, items):
        assert run(items, category="tdl", searchText="milk") == []

    def test_invalid_date(self, items):
        with pytest.raises(InvalidFilterError) as exc_info:
            run(items, dateFrom="yesterday")
        assert exc_info.value.field == "dateFrom"
        assert exc_info.value.value == "yesterday"

    def test_empty_filter_returns_everything(self, items):
        assert run(items) == items

    def test_history_filters_on_completed_at(self):
        task = make_task("old task", day=1)
        entry = HistoryEntry.from_task(task, datetime(2026, 3, 5, 9, 0, tzinfo=TZ))
        result = apply_filter(
            [entry],
            TaskFilter(date_from="2026-03-05"),
            project=lambda: None,
            timestamp=completed_at_of,
            tz=TZ,
        )
        assert result == [entry]


class TestParseBound:
    def test_naive_uses_given_tz(self):
        parsed = parse_bound("dateFrom", "2026-03-05T08:00:00", end_of_day=False, tz=TZ)
        assert parsed.tzinfo == TZ
        assert parsed.hour == 8

    def test_date_end_of_day(self):
        parsed = parse_bound("dateTo", "2026-03-05", end_of_day=True, tz=TZ)
        assert (parsed.hour, parsed.minute) == (23, 59)


class TestScopeFilter:
    def test_filters_by_project(self, items):
        assert len(scope_filter(items, True, lambda: "tdl")) == 2

    def test_unresolvable_project_keeps_everything(self, items):
        assert scope_filter(items, True, lambda: None) == items

    def test_disabled(self, items):
        assert scope_filter(items, False, lambda: "nope") == items


class TestResolveSelector:
    def test_ids_deduplicated(self, items):
        ids = resolve_selector(
            IdsSelector(ids=["b", "a", "b"]), items, project=lambda: None
        )
        assert ids == ["b", "a"]

    def test_filter_resolves_in_collection_order(self, items):
        ids = resolve_selector(
            FilterSelector(filter=TaskFilter(category="tdl")), items, project=lambda: None
        )
        assert ids == [items[0].id, items[1].id]
