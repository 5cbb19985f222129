"""MCP 工具函数测试 -- 直接调用工具函数，检查文本结果与持久化效果"""

import json
import re

import pytest
import tdl.server.main as server


@pytest.fixture(autouse=True)
def fixed_project(monkeypatch: pytest.MonkeyPatch, data_dir):
    monkeypatch.setattr(server, "detect_project_name", lambda: "tdl")


def todos() -> list[dict]:
    return json.loads(server.get_todos())


class TestActiveTools:
    """活动任务工具测试"""

    def test_add_todo(self):
        text = server.add_todo("api::fix login")
        assert text == 'Added to-do [tdl/api] "fix login"\nTotal items in storage: 1'
        assert todos()[0]["subcategory"] == "api"

    def test_bulk_add_with_defaults(self):
        text = server.bulk_add(
            ["a", {"task": "b", "autoProject": True}], default_options={"autoProject": False}
        )
        assert text.startswith("Added 2 todos:")
        categories = [t["category"] for t in todos()]
        assert categories == [None, "tdl"]

    def test_bulk_add_empty(self):
        assert server.bulk_add([]).startswith("Error: ")

    def test_get_todos_filter(self):
        server.bulk_add(["buy milk", "code"])
        result = json.loads(server.get_todos(search_text="milk"))
        assert [t["task"] for t in result] == ["buy milk"]

    def test_get_todos_invalid_date(self):
        assert server.get_todos(date_from="soon").startswith('Error: Invalid dateFrom: "soon"')

    def test_display_todos_id_map(self):
        server.bulk_add(["zeta::z", "alpha::a"])
        output = server.display_todos()
        match = re.search(r"<!-- ID_MAP: (.*) -->$", output)
        assert match is not None
        id_map = json.loads(match.group(1))
        by_id = {t["id"]: t["task"] for t in todos()}
        assert [by_id[item["id"]] for item in id_map] == ["a", "z"]

    def test_get_metadata(self):
        server.add_todo("a")
        metadata = json.loads(server.get_metadata())
        assert metadata["currentProject"] == "tdl"
        assert metadata["categories"] == ["tdl"]
        assert metadata["stats"]["total"] == 1

    def test_update_todo(self):
        server.add_todo("api::old")
        task_id = todos()[0]["id"]
        text = server.update_todo(task_id, task="new", clear=["subcategory"])
        assert text == 'Updated to-do [tdl] "new"'

    def test_update_todo_nothing(self):
        server.add_todo("a")
        text = server.update_todo(todos()[0]["id"])
        assert text.startswith("Error: No updates provided")

    def test_update_todo_missing(self):
        assert server.update_todo("nope", task="x").startswith('Error: Todo with id "nope" not found')

    def test_bulk_update_by_filter(self):
        server.bulk_add(["api::a", "api::b", "web::c"])
        text = server.bulk_update({"subcategory": None}, filter={"subcategory": "api"})
        assert text.startswith("Updated 2 todo(s)")
        assert [t["subcategory"] for t in todos()] == [None, None, "web"]

    def test_bulk_update_requires_selector(self):
        assert server.bulk_update({"task": "x"}).startswith("Error: Selector must provide")
        assert server.bulk_update({"task": "x"}, filter={}).startswith("Error: ")

    def test_bulk_delete_by_ids(self):
        server.bulk_add(["a", "b"])
        first = todos()[0]["id"]
        text = server.bulk_delete(ids=[first, "gone"])
        assert "Deleted 1 todo(s)" in text
        assert "Not found: gone" in text
        assert len(todos()) == 1

    def test_remove_todo(self):
        server.add_todo("a")
        text = server.remove_todo(todos()[0]["id"])
        assert text == 'Removed to-do: "a"\nRemaining items: 0'

    def test_clear_todos_respects_scope(self):
        server.add_todo("mine")
        server.add_todo("other::theirs", auto_project=False)
        assert server.clear_todos() == "Cleared project to-dos (1 items removed)"
        assert [t["task"] for t in todos()] == ["theirs"]


class TestHistoryTools:
    """历史工具测试"""

    def test_complete_and_restore(self):
        server.add_todo("a")
        task_id = todos()[0]["id"]

        assert server.complete_todo(id=task_id).startswith('✓ Completed [tdl] "a"')
        assert todos() == []
        assert "1. [tdl] a" in server.query_history()

        assert server.restore_todo(id=task_id).startswith('Restored [tdl] "a"')
        assert todos()[0]["id"] == task_id
        assert server.query_history() == "No completed todos today."

    def test_complete_requires_one_selector(self):
        assert server.complete_todo().startswith("Error: ")
        assert server.complete_todo(id="a", ids=["b"]).startswith("Error: ")

    def test_history_edits(self):
        server.bulk_add(["buy milk", "code"])
        server.complete_todo(filter={"currentProject": True})

        assert server.update_history({"task": "buy oat milk"}, filter={"searchText": "milk"}).startswith(
            "Updated 1 history item(s)"
        )
        assert "buy oat milk" in server.query_history()
        assert "code" in server.query_history(filter={"searchText": "code"})

        text = server.remove_from_history(filter={"searchText": "code"})
        assert text.startswith("Removed 1 history item(s)")
        assert server.clear_history() == "Cleared 1 history item(s)"

    def test_clear_history_empty_filter(self):
        assert server.clear_history(filter={}).startswith("Error: Empty filter")


class TestConfigTools:
    def test_get_config(self):
        config = json.loads(server.get_config())
        assert config["colorProfile"] == "default"
        assert config["scope"] == "project"
        assert "tdl" in config["scopeDescription"]
        assert {p["name"] for p in config["availableProfiles"]} >= {"default", "ocean"}

    def test_set_color_profile(self):
        assert server.set_color_profile("ocean") == "✓ Color profile set to: ocean"
        assert json.loads(server.get_config())["colorProfile"] == "ocean"

    def test_set_color_profile_invalid(self):
        assert server.set_color_profile("neon").startswith("Error: Unknown color profile")

    def test_set_scope(self):
        text = server.set_scope("global")
        assert text.startswith("✓ Display scope set to: global\nNow showing todos from all projects")

    def test_tools_registered(self):
        assert len(server.TOOLS) == 19
