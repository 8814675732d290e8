"""搜索模块

提供 Elasticsearch 流式查询构建、聚合、执行与分页功能。

模块结构:
- clauses: 查询子句模型
- aggregations: 聚合模型
- document: 查询文档与序列化
- builder: 搜索构建器
- aggregation_builder: 聚合构建器
- function_score: function_score 构建器
- connection: Elasticsearch 连接封装
- result: 搜索结果
- paginator: 分页器
"""

from elastic_devtools.search.aggregation_builder import AggregationBuilder
from elastic_devtools.search.aggregations import (
    AGGREGATION_TYPES,
    Aggregation,
    AggregationKind,
)
from elastic_devtools.search.builder import PageResolver, SearchBuilder, SearchConnection
from elastic_devtools.search.clauses import (
    CLAUSE_TYPES,
    BoolQuery,
    BoolRole,
    Clause,
    ClauseKind,
)
from elastic_devtools.search.connection import Connection
from elastic_devtools.search.document import FieldSort, Highlight, QueryDocument
from elastic_devtools.search.errors import (
    ElasticDevToolsError,
    InvalidArgumentError,
    InvalidClauseError,
    MalformedResponseError,
)
from elastic_devtools.search.function_score import FunctionScoreBuilder
from elastic_devtools.search.paginator import Paginator
from elastic_devtools.search.result import Hit, HitBuffer, Result

__all__ = [
    # 构建器
    "SearchBuilder",
    "SearchConnection",
    "PageResolver",
    "AggregationBuilder",
    "FunctionScoreBuilder",
    # 查询模型
    "BoolRole",
    "ClauseKind",
    "CLAUSE_TYPES",
    "Clause",
    "BoolQuery",
    "AggregationKind",
    "AGGREGATION_TYPES",
    "Aggregation",
    "QueryDocument",
    "FieldSort",
    "Highlight",
    # 执行与结果
    "Connection",
    "Result",
    "Hit",
    "HitBuffer",
    "Paginator",
    # 错误
    "ElasticDevToolsError",
    "InvalidArgumentError",
    "InvalidClauseError",
    "MalformedResponseError",
]
