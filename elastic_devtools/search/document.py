"""查询文档

QueryDocument 累积构建器产生的全部状态，``to_dict()`` 将其序列化为
Elasticsearch ``_search`` 请求体。序列化是纯函数：不修改任何状态，
每次返回全新的字典。
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from elastic_devtools.search.aggregations import Aggregation
from elastic_devtools.search.clauses import BoolQuery, BoolRole, Clause


@dataclass
class FieldSort:
    """字段排序

    Attributes:
        field: 排序字段（可以是 "_score"）
        order: 排序方向（asc/desc），None 表示使用引擎默认
        parameters: 额外排序参数（mode、missing、unmapped_type 等）
    """

    field: str
    order: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        params = dict(self.parameters)
        if self.order:
            params["order"] = self.order
        return {self.field: params}


@dataclass
class Highlight:
    """高亮配置

    Attributes:
        fields: 字段 → 字段级参数
        pre_tags: 前置标签
        post_tags: 后置标签
        parameters: 全局高亮参数（fragment_size 等）
    """

    fields: dict[str, dict[str, Any]] = field(default_factory=dict)
    pre_tags: list[str] = field(default_factory=list)
    post_tags: list[str] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        output: dict[str, Any] = {}
        if self.pre_tags:
            output["pre_tags"] = list(self.pre_tags)
        if self.post_tags:
            output["post_tags"] = list(self.post_tags)
        output["fields"] = {name: dict(params) for name, params in self.fields.items()}
        output.update(self.parameters)
        return output


@dataclass
class QueryDocument:
    """查询文档

    Attributes:
        clauses: 按布尔角色分组的子句（组内保持插入顺序）
        bool_parameters: bool 级参数（minimum_should_match、boost）
        aggregations: 别名 → 聚合（同名后写覆盖）
        sorts: 排序列表
        highlight: 高亮配置
        offset: 偏移量（from）
        size: 返回结果数
        min_score: 最小分数
        source: _source 过滤
    """

    clauses: dict[BoolRole, list[Clause]] = field(
        default_factory=lambda: {role: [] for role in BoolRole}
    )
    bool_parameters: dict[str, Any] = field(default_factory=dict)
    aggregations: dict[str, Aggregation] = field(default_factory=dict)
    sorts: list[FieldSort] = field(default_factory=list)
    highlight: Highlight | None = None
    offset: int | None = None
    size: int | None = None
    min_score: float | None = None
    source: bool | list[str] | dict[str, Any] | None = None

    def add_clause(self, clause: Clause, role: BoolRole) -> None:
        """在指定角色下追加子句"""
        self.clauses.setdefault(role, []).append(clause)

    def add_aggregation(self, aggregation: Aggregation) -> Aggregation | None:
        """添加聚合

        Returns:
            被覆盖的同名聚合（没有则为 None）
        """
        previous = self.aggregations.get(aggregation.alias)
        self.aggregations[aggregation.alias] = aggregation
        return previous

    def add_sort(self, sort: FieldSort) -> None:
        self.sorts.append(sort)

    def clauses_for(self, role: BoolRole) -> list[Clause]:
        """返回某角色下子句的副本"""
        return list(self.clauses.get(role, []))

    @property
    def has_clauses(self) -> bool:
        return any(self.clauses.values())

    def bool_query(self) -> BoolQuery:
        """当前子句的 bool 快照（用于嵌入 nested / function_score）"""
        return BoolQuery(
            clauses={role: self.clauses_for(role) for role in BoolRole if self.clauses.get(role)},
            minimum_should_match=self.bool_parameters.get("minimum_should_match"),
            boost=self.bool_parameters.get("boost"),
        )

    def to_dict(self) -> dict[str, Any]:
        """序列化为请求体

        未设置的部分不输出；没有子句时省略 query（引擎默认 match_all）。
        """
        body: dict[str, Any] = {}

        if self.has_clauses:
            body["query"] = self.bool_query().to_dict()
        if self.aggregations:
            body["aggs"] = {
                alias: aggregation.to_dict() for alias, aggregation in self.aggregations.items()
            }
        if self.sorts:
            body["sort"] = [sort.to_dict() for sort in self.sorts]
        if self.highlight is not None:
            body["highlight"] = self.highlight.to_dict()
        if self.offset is not None:
            body["from"] = self.offset
        if self.size is not None:
            body["size"] = self.size
        if self.min_score is not None:
            body["min_score"] = self.min_score
        if self.source is not None:
            body["_source"] = self.source

        return deepcopy(body)


__all__ = [
    "FieldSort",
    "Highlight",
    "QueryDocument",
]
