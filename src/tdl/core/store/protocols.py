"""Store Protocol 接口定义

定义集合文件与时钟的抽象接口，使用 Python Protocol 实现结构化子类型。
测试可注入固定时钟与内存集合。
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

# 返回带时区的“当前时间”；日期翻转按该时区的本地日历日计算
Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """系统本地时间（带时区）"""
    return datetime.now().astimezone()


class CollectionFile(Protocol):
    """整集合读写接口 -- 对应一个持久化 JSON 文件"""

    def read(self, default: Callable[[], Any]) -> Any:
        """读取集合；不存在时返回 default()"""
        ...

    def write(self, value: Any) -> None:
        """原子写入整个集合"""
        ...
