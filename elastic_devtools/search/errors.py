"""搜索构建错误

传输层错误（elasticsearch.ConnectionError / TransportError / ApiError）
由 elasticsearch 客户端抛出，这里不做包装。
"""

from typing import Any


class ElasticDevToolsError(Exception):
    """所有构建与解析错误的基类"""


class InvalidArgumentError(ElasticDevToolsError, ValueError):
    """参数类型或取值非法（负偏移量、非字符串标识符等）"""


class InvalidClauseError(ElasticDevToolsError, ValueError):
    """查询子句缺少必填字段或取值

    Attributes:
        kind: 子句类型（如 "term"）
    """

    def __init__(self, message: str, kind: str):
        self.message = message
        self.kind = kind
        super().__init__(f"[{kind}] {message}")


class MalformedResponseError(ElasticDevToolsError):
    """Elasticsearch 响应缺少预期结构

    Attributes:
        response: 原始响应（便于排查）
    """

    def __init__(self, message: str, response: Any = None):
        self.message = message
        self.response = response
        super().__init__(message)


__all__ = [
    "ElasticDevToolsError",
    "InvalidArgumentError",
    "InvalidClauseError",
    "MalformedResponseError",
]
