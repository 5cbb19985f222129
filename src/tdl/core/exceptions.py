"""tdl 异常体系

所有领域错误都继承 TdlError，是操作失败的唯一通道（不做静默 no-op）。
每个异常都携带非法输入以及合法范围/格式，便于 CLI 与工具层直接展示。
"""


class TdlError(Exception):
    """tdl 基础异常"""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(TdlError):
    """id 或索引在目标集合中不存在（以调用时刻为准）"""

    def __init__(self, ids: list[str], collection: str = "todos") -> None:
        """
        Args:
            ids: 未找到的 id 列表
            collection: 目标集合（todos / history）
        """
        where = "history" if collection == "history" else "active todos"
        joined = ", ".join(f'"{i}"' for i in ids)
        super().__init__(f"Todo with id {joined} not found in {where}")
        self.ids = ids
        self.collection = collection


class InvalidSelectorError(TdlError):
    """空 filter、空 ids 或未提供任何选择形式"""


class EmptyPatchError(TdlError):
    """update 未提供任何可识别字段"""

    def __init__(self) -> None:
        super().__init__(
            "No updates provided. Specify at least one of: "
            "text, level1 (category), level2 (subcategory), level3 (subarea)."
        )


class InvalidPatchError(TdlError):
    """patch 会产生非法的分类路径（如跳级的稀疏路径）"""


class CategoryTooDeepError(TdlError):
    """分类字符串超出配置的最大深度"""

    FORMATS = {
        1: "category::task",
        2: "category/subcategory::task",
        3: "category/subcategory/subarea::task",
    }

    def __init__(self, depth: int, max_depth: int) -> None:
        """
        Args:
            depth: 实际解析出的层级数
            max_depth: 允许的最大层级数
        """
        example = self.FORMATS.get(max_depth, self.FORMATS[3])
        super().__init__(
            f"Category depth {depth} exceeds maximum {max_depth}. Format: {example}"
        )
        self.depth = depth
        self.max_depth = max_depth


class InvalidFilterError(TdlError):
    """filter 中的日期边界无法解析"""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(
            f'Invalid {field}: "{value}". Expected ISO 8601 date (YYYY-MM-DD) or timestamp'
        )
        self.field = field
        self.value = value


class IndexOutOfRangeError(TdlError):
    """1-based 显示索引超出当前过滤视图长度"""

    def __init__(self, index: int, size: int) -> None:
        if size == 0:
            message = f"Invalid index {index}. The list is empty"
        else:
            message = f"Invalid index {index}. Valid range: 1-{size}"
        super().__init__(message)
        self.index = index
        self.size = size


class ConflictError(TdlError):
    """文件在本次读取后被其他进程改写（乐观并发检测）

    调用方应重新读取后重试。
    """

    def __init__(self, path: str) -> None:
        super().__init__(
            f"{path} was modified by another process since it was read. Retry the operation."
        )
        self.path = path


class InvalidConfigError(TdlError):
    """配置值非法（未知颜色方案、未知 scope 等）"""


class InvalidInputError(TdlError):
    """输入结构非法（如 bulk_add 的空列表或缺少 task 字段的条目）"""
