"""Elasticsearch 流式查询构建工具

模块结构:
- client: ElasticDevTools 入口
- search: 查询构建、聚合、执行与分页
- config: 配置管理
- observability: 结构化日志
"""

from elastic_devtools.client import ElasticDevTools, elasticsearch_context
from elastic_devtools.search import (
    AggregationBuilder,
    Connection,
    ElasticDevToolsError,
    FunctionScoreBuilder,
    Hit,
    InvalidArgumentError,
    InvalidClauseError,
    MalformedResponseError,
    Paginator,
    QueryDocument,
    Result,
    SearchBuilder,
)

__version__ = "0.1.0"

__all__ = [
    "ElasticDevTools",
    "elasticsearch_context",
    "SearchBuilder",
    "AggregationBuilder",
    "FunctionScoreBuilder",
    "QueryDocument",
    "Connection",
    "Result",
    "Hit",
    "Paginator",
    "ElasticDevToolsError",
    "InvalidArgumentError",
    "InvalidClauseError",
    "MalformedResponseError",
]
