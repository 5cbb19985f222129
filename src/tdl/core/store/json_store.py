"""JSON 文件持久化层 -- 整文件读写 + 原子替换

写入流程：序列化 -> 同目录临时文件 -> fsync -> os.replace 覆盖目标，
读者永远看不到写了一半的文件。

乐观并发：每次读取记录文件内容的 SHA-256 指纹，写入前比对，
若文件已被其他进程改写则抛出 ConflictError，由调用方重试。
"""

import hashlib
import json
import os
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from ..exceptions import ConflictError

log = structlog.get_logger()

# 尚未读取过文件（不做并发检查）
_UNREAD = object()


def compute_fingerprint(content: bytes) -> str:
    """计算内容 SHA-256 指纹"""
    return hashlib.sha256(content).hexdigest()


class JsonFileStore:
    """单个 JSON 集合文件

    不提供进程间锁；并发写入通过指纹比对发现。
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._fingerprint: Any = _UNREAD

    @property
    def path(self) -> Path:
        return self._path

    def _current_fingerprint(self) -> str | None:
        try:
            return compute_fingerprint(self._path.read_bytes())
        except FileNotFoundError:
            return None

    def read(self, default: Callable[[], Any]) -> Any:
        """读取集合；文件不存在时返回 default() 而不是报错"""
        try:
            content = self._path.read_bytes()
        except FileNotFoundError:
            self._fingerprint = None
            return default()

        self._fingerprint = compute_fingerprint(content)
        try:
            return json.loads(content.decode("utf-8"))
        except ValueError:
            log.error("collection_corrupt", path=str(self._path))
            raise

    def write(self, value: Any) -> None:
        """原子写入集合

        Raises:
            ConflictError: 文件在本次读取后被其他写者改写
        """
        if self._fingerprint is not _UNREAD:
            current = self._current_fingerprint()
            if current != self._fingerprint:
                log.warning("write_conflict", path=str(self._path))
                raise ConflictError(str(self._path))

        content = json.dumps(value, indent=2, ensure_ascii=False).encode("utf-8")
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        self._fingerprint = compute_fingerprint(content)
        log.debug("collection_written", path=str(self._path), size=len(content))
