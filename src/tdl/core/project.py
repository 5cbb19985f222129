"""当前项目名探测 -- 外部协作方的默认实现

优先使用 git 仓库根目录名，失败时退化为当前目录名（通用目录名除外）。
任何异常都视为“无项目”，绝不向调用方传播。
"""

import subprocess
from collections.abc import Callable
from pathlib import Path

import structlog

from .config import GENERIC_DIR_NAMES, PROJECT_DETECT_TIMEOUT_S

log = structlog.get_logger()

ProjectResolver = Callable[[], str | None]


def detect_project_name(cwd: Path | None = None) -> str | None:
    """探测当前项目名

    Args:
        cwd: 工作目录（默认进程当前目录）

    Returns:
        项目名；不在项目中时返回 None
    """
    workdir = cwd or Path.cwd()
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=workdir,
            capture_output=True,
            text=True,
            timeout=PROJECT_DETECT_TIMEOUT_S,
            check=True,
        )
        toplevel = completed.stdout.strip()
        if toplevel:
            return Path(toplevel).name
    except (OSError, subprocess.SubprocessError):
        # 不是 git 仓库或 git 不可用
        pass

    name = workdir.name
    if not name or name.lower() in GENERIC_DIR_NAMES:
        return None
    return name


def safe_resolve(resolver: ProjectResolver) -> str | None:
    """调用外部 resolver，异常降级为 None"""
    try:
        name = resolver()
    except Exception as e:
        log.warning("project_resolve_failed", error=str(e))
        return None
    if name is None:
        return None
    name = name.strip()
    return name or None
