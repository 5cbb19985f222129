"""配置常量模块 -- 可通过环境变量覆盖

包含数据目录、任务/历史/配置文件路径、分类最大深度等可配置常量。
所有待办统一存放在全局目录（默认 ~/.tdl），scope 只影响展示过滤。
"""

import os
from pathlib import Path


def get_data_dir() -> Path:
    """获取数据基础目录"""
    return Path(os.environ.get("TDL_DATA_DIR", str(Path.home() / ".tdl")))


def get_todo_path() -> Path:
    """获取活动任务文件路径"""
    return Path(
        os.environ.get("TDL_TODO_FILE", str(get_data_dir() / "todos.json"))
    )


def get_history_path() -> Path:
    """获取完成历史文件路径"""
    return Path(
        os.environ.get("TDL_HISTORY_FILE", str(get_data_dir() / "todos-history.json"))
    )


def get_config_path() -> Path:
    """获取用户配置文件路径（显示偏好 + scope）"""
    return Path(
        os.environ.get("TDL_CONFIG_FILE", str(get_data_dir() / "config.json"))
    )


# 分类最大深度（project/feature/area），与存储字段 category/subcategory/subarea 对应
MAX_CATEGORY_DEPTH: int = 3

# 不作为项目名使用的通用目录名
GENERIC_DIR_NAMES: frozenset[str] = frozenset(
    {"src", "test", "tests", "dist", "build", "home", "lib", "bin"}
)

# git 项目名探测超时（秒）
PROJECT_DETECT_TIMEOUT_S: float = float(
    os.environ.get("TDL_PROJECT_DETECT_TIMEOUT_S", "2")
)
