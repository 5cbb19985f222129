"""用户设置 -- 颜色方案与显示范围（scope）

设置保存在 config.json（与任务数据同目录）。
scope 只控制展示过滤，不影响存储位置：所有任务都在同一个全局集合中。
"""

from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import get_config_path
from .exceptions import InvalidConfigError
from .render import COLOR_PROFILES
from .store.json_store import JsonFileStore

log = structlog.get_logger()

Scope = Literal["project", "global"]

# scope 别名 -> 规范值
SCOPE_ALIASES: dict[str, str] = {"local": "project"}


class UserSettings(BaseModel):
    """用户偏好"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    color_profile: str = Field(default="default", alias="colorProfile")
    scope: Scope = Field(default="project")

    @field_validator("color_profile")
    @classmethod
    def _known_profile(cls, value: str) -> str:
        if value not in COLOR_PROFILES:
            raise ValueError(
                f"Unknown color profile {value!r}. Available: {', '.join(COLOR_PROFILES)}"
            )
        return value

    @field_validator("scope", mode="before")
    @classmethod
    def _scope_alias(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return SCOPE_ALIASES.get(value, value)
        return value

    @property
    def filter_by_project(self) -> bool:
        """core 只消费这个布尔值"""
        return self.scope == "project"

    def to_record(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


def load_settings(path: str | Path | None = None) -> UserSettings:
    """读取设置；文件缺失、JSON 损坏或取值非法时退回默认值"""
    store = JsonFileStore(path or get_config_path())
    try:
        raw = store.read(dict)
    except ValueError as e:
        log.warning("settings_invalid_json", path=str(store.path), error=str(e))
        return UserSettings()

    if not isinstance(raw, dict):
        log.warning("settings_invalid_format", path=str(store.path))
        return UserSettings()

    settings = UserSettings()
    # 逐项接受合法值，非法项单独回退
    for key in ("colorProfile", "scope"):
        if key not in raw:
            continue
        try:
            settings = UserSettings.model_validate({**settings.to_record(), key: raw[key]})
        except ValidationError as e:
            log.warning("settings_value_ignored", key=key, error=e.errors()[0]["msg"])
    return settings


def save_settings(settings: UserSettings, path: str | Path | None = None) -> None:
    """原子写入设置文件"""
    store = JsonFileStore(path or get_config_path())
    store.write(settings.to_record())
    log.info("settings_saved", **settings.to_record())


def _update(path: str | Path | None, **changes: str) -> UserSettings:
    current = load_settings(path)
    try:
        updated = UserSettings.model_validate({**current.to_record(), **changes})
    except ValidationError as e:
        raise InvalidConfigError(e.errors()[0]["msg"].removeprefix("Value error, ")) from None
    save_settings(updated, path)
    return updated


def set_color_profile(name: str, path: str | Path | None = None) -> UserSettings:
    """切换颜色方案

    Raises:
        InvalidConfigError: 未知方案
    """
    return _update(path, colorProfile=name)


def set_scope(scope: str, path: str | Path | None = None) -> UserSettings:
    """切换显示范围（project / global，local 视为 project）

    Raises:
        InvalidConfigError: 未知 scope
    """
    normalized = scope.strip().lower()
    if SCOPE_ALIASES.get(normalized, normalized) not in ("project", "global"):
        raise InvalidConfigError(
            f'Invalid scope "{scope}". Must be "project" (or "local") or "global"'
        )
    return _update(path, scope=scope)
