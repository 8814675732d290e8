"""查询子句

Elasticsearch 查询 DSL 的子句模型。每种子句是一个 dataclass，
通过 ``kind`` 标记类型，``to_dict()`` 负责序列化为查询 DSL。

类型化参数（如 ``boost``、``operator``）为 None 时不输出，
``options`` 作为引擎扩展参数的兜底映射，最后合并（同名键覆盖类型化参数）。

使用示例:
    ```python
    clause = TermQuery("status", "published", boost=2.0)
    clause.to_dict()
    # {"term": {"status": {"value": "published", "boost": 2.0}}}
    ```
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from elastic_devtools.search.errors import InvalidClauseError


class BoolRole(str, Enum):
    """布尔查询角色"""

    MUST = "must"
    SHOULD = "should"
    MUST_NOT = "must_not"
    FILTER = "filter"


class ClauseKind(str, Enum):
    """子句类型（值即 DSL 中的查询名）"""

    TERM = "term"
    TERMS = "terms"
    MATCH = "match"
    MULTI_MATCH = "multi_match"
    RANGE = "range"
    PREFIX = "prefix"
    WILDCARD = "wildcard"
    REGEXP = "regexp"
    FUZZY = "fuzzy"
    EXISTS = "exists"
    IDS = "ids"
    GEO_BOUNDING_BOX = "geo_bounding_box"
    GEO_DISTANCE = "geo_distance"
    GEO_POLYGON = "geo_polygon"
    GEO_SHAPE = "geo_shape"
    NESTED = "nested"
    FUNCTION_SCORE = "function_score"
    QUERY_STRING = "query_string"
    SIMPLE_QUERY_STRING = "simple_query_string"
    MATCH_ALL = "match_all"
    COMMON = "common"
    BOOL = "bool"


NESTED_SCORE_MODES = frozenset({"avg", "sum", "min", "max", "none"})

# 子句类型注册表，子类定义时自动登记
CLAUSE_TYPES: dict[ClauseKind, type[Clause]] = {}


def _require_field(value: Any, kind: ClauseKind, name: str = "field") -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidClauseError(f"{name} 必须是非空字符串", kind.value)


def _require_value(value: Any, kind: ClauseKind, name: str = "value") -> None:
    if value is None:
        raise InvalidClauseError(f"{name} 不能为空", kind.value)


def _require_text(value: Any, kind: ClauseKind, name: str = "query") -> None:
    if not isinstance(value, str) or not value:
        raise InvalidClauseError(f"{name} 必须是非空字符串", kind.value)


def _as_list(value: Any, kind: ClauseKind, name: str) -> list[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidClauseError(f"{name} 必须是列表", kind.value)
    return list(value)


def merge_params(typed: Mapping[str, Any], options: Mapping[str, Any]) -> dict[str, Any]:
    """合并类型化参数与扩展参数

    Args:
        typed: 类型化参数（None 值会被丢弃）
        options: 扩展参数

    Returns:
        合并后的参数字典
    """
    params = {key: value for key, value in typed.items() if value is not None}
    params.update(options)
    return params


@dataclass
class Clause:
    """查询子句基类"""

    kind: ClassVar[ClauseKind]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        kind = cls.__dict__.get("kind")
        if kind is not None:
            CLAUSE_TYPES[kind] = cls

    def to_dict(self) -> dict[str, Any]:
        """序列化为查询 DSL"""
        raise NotImplementedError(f"{type(self).__name__} 未实现序列化")


# ============== 词项级查询 ==============


@dataclass
class TermQuery(Clause):
    """term 查询（精确匹配）"""

    kind: ClassVar[ClauseKind] = ClauseKind.TERM

    field: str
    value: Any
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        _require_value(self.value, self.kind)

    def to_dict(self) -> dict[str, Any]:
        params = merge_params({"boost": self.boost}, self.options)
        if not params:
            return {"term": {self.field: self.value}}
        return {"term": {self.field: {"value": self.value, **params}}}


@dataclass
class TermsQuery(Clause):
    """terms 查询（多值精确匹配）"""

    kind: ClassVar[ClauseKind] = ClauseKind.TERMS

    field: str
    values: list[Any]
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        self.values = _as_list(self.values, self.kind, "values")

    def to_dict(self) -> dict[str, Any]:
        params = merge_params({"boost": self.boost}, self.options)
        return {"terms": {self.field: list(self.values), **params}}


@dataclass
class RangeQuery(Clause):
    """range 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.RANGE

    field: str
    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None
    format: str | None = None
    time_zone: str | None = None
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)

    def to_dict(self) -> dict[str, Any]:
        params = merge_params(
            {
                "gt": self.gt,
                "gte": self.gte,
                "lt": self.lt,
                "lte": self.lte,
                "format": self.format,
                "time_zone": self.time_zone,
                "boost": self.boost,
            },
            self.options,
        )
        return {"range": {self.field: params}}


@dataclass
class _ValueQuery(Clause):
    """{"<kind>": {field: {"value": ..., ...}}} 形式的子句"""

    field: str
    value: Any
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        _require_value(self.value, self.kind)

    def _typed(self) -> dict[str, Any]:
        return {"boost": self.boost}

    def to_dict(self) -> dict[str, Any]:
        params = merge_params(self._typed(), self.options)
        return {self.kind.value: {self.field: {"value": self.value, **params}}}


@dataclass
class PrefixQuery(_ValueQuery):
    """prefix 查询（前缀匹配）"""

    kind: ClassVar[ClauseKind] = ClauseKind.PREFIX


@dataclass
class WildcardQuery(_ValueQuery):
    """wildcard 查询（通配符匹配，支持 * 和 ?）"""

    kind: ClassVar[ClauseKind] = ClauseKind.WILDCARD


@dataclass
class RegexpQuery(_ValueQuery):
    """regexp 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.REGEXP

    flags: str | None = None

    def _typed(self) -> dict[str, Any]:
        return {"flags": self.flags, "boost": self.boost}


@dataclass
class FuzzyQuery(_ValueQuery):
    """fuzzy 查询（模糊匹配）"""

    kind: ClassVar[ClauseKind] = ClauseKind.FUZZY

    fuzziness: str | int | None = None

    def _typed(self) -> dict[str, Any]:
        return {"fuzziness": self.fuzziness, "boost": self.boost}


@dataclass
class ExistsQuery(Clause):
    """exists 查询（字段存在）"""

    kind: ClassVar[ClauseKind] = ClauseKind.EXISTS

    field: str

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)

    def to_dict(self) -> dict[str, Any]:
        return {"exists": {"field": self.field}}


@dataclass
class IdsQuery(Clause):
    """ids 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.IDS

    values: list[str | int]
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.values = _as_list(self.values, self.kind, "values")
        if not self.values:
            raise InvalidClauseError("至少需要一个文档 ID", self.kind.value)
        for value in self.values:
            if isinstance(value, bool) or not isinstance(value, (str, int)) or value == "":
                raise InvalidClauseError(f"非法的文档 ID: {value!r}", self.kind.value)

    def to_dict(self) -> dict[str, Any]:
        return {"ids": {"values": list(self.values), **self.options}}


# ============== 全文查询 ==============


@dataclass
class MatchQuery(Clause):
    """match 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.MATCH

    field: str
    query: Any
    operator: str | None = None
    analyzer: str | None = None
    fuzziness: str | int | None = None
    minimum_should_match: int | str | None = None
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        _require_value(self.query, self.kind, "query")

    def to_dict(self) -> dict[str, Any]:
        params = merge_params(
            {
                "operator": self.operator,
                "analyzer": self.analyzer,
                "fuzziness": self.fuzziness,
                "minimum_should_match": self.minimum_should_match,
                "boost": self.boost,
            },
            self.options,
        )
        return {"match": {self.field: {"query": self.query, **params}}}


@dataclass
class MultiMatchQuery(Clause):
    """multi_match 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.MULTI_MATCH

    fields: list[str]
    query: Any
    type: str | None = None
    operator: str | None = None
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.fields = _as_list(self.fields, self.kind, "fields")
        for name in self.fields:
            _require_field(name, self.kind)
        _require_value(self.query, self.kind, "query")

    def to_dict(self) -> dict[str, Any]:
        spec: dict[str, Any] = {"query": self.query}
        if self.fields:
            spec["fields"] = list(self.fields)
        spec.update(
            merge_params(
                {"type": self.type, "operator": self.operator, "boost": self.boost},
                self.options,
            )
        )
        return {"multi_match": spec}


@dataclass
class CommonTermsQuery(Clause):
    """common terms 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.COMMON

    field: str
    query: Any
    cutoff_frequency: float | None = None
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        _require_value(self.query, self.kind, "query")

    def to_dict(self) -> dict[str, Any]:
        params = merge_params(
            {"cutoff_frequency": self.cutoff_frequency, "boost": self.boost},
            self.options,
        )
        return {"common": {self.field: {"query": self.query, **params}}}


@dataclass
class QueryStringQuery(Clause):
    """query_string 查询（Lucene 查询语法）"""

    kind: ClassVar[ClauseKind] = ClauseKind.QUERY_STRING

    query: str
    default_field: str | None = None
    default_operator: str | None = None
    fields: list[str] | None = None
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_text(self.query, self.kind)
        if self.fields is not None:
            self.fields = _as_list(self.fields, self.kind, "fields")

    def to_dict(self) -> dict[str, Any]:
        params = merge_params(
            {
                "default_field": self.default_field,
                "default_operator": self.default_operator,
                "fields": list(self.fields) if self.fields else None,
                "boost": self.boost,
            },
            self.options,
        )
        return {self.kind.value: {"query": self.query, **params}}


@dataclass
class SimpleQueryStringQuery(QueryStringQuery):
    """simple_query_string 查询（容错版本）"""

    kind: ClassVar[ClauseKind] = ClauseKind.SIMPLE_QUERY_STRING


@dataclass
class MatchAllQuery(Clause):
    """match_all 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.MATCH_ALL

    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"match_all": merge_params({"boost": self.boost}, self.options)}


# ============== 地理查询 ==============


@dataclass
class GeoBoundingBoxQuery(Clause):
    """geo_bounding_box 查询

    ``points`` 支持三种形式：
    - 2 个点的列表：[top_left, bottom_right]
    - 4 个数值的列表：[top, left, bottom, right]
    - 已命名的映射：{"top_left": ..., "bottom_right": ...} 或 {"top": ..., ...}
    """

    kind: ClassVar[ClauseKind] = ClauseKind.GEO_BOUNDING_BOX

    field: str
    points: Any
    options: dict[str, Any] = field(default_factory=dict)
    bounds: dict[str, Any] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        self.bounds = self._normalize(self.points)

    def _normalize(self, points: Any) -> dict[str, Any]:
        if isinstance(points, Mapping):
            if set(points) in ({"top_left", "bottom_right"}, {"top", "left", "bottom", "right"}):
                return dict(points)
        elif isinstance(points, Sequence) and not isinstance(points, (str, bytes)):
            if len(points) == 2:
                return {"top_left": points[0], "bottom_right": points[1]}
            if len(points) == 4:
                top, left, bottom, right = points
                return {"top": top, "left": left, "bottom": bottom, "right": right}
        raise InvalidClauseError("边界框必须由 2 个或 4 个地理点组成", self.kind.value)

    def to_dict(self) -> dict[str, Any]:
        return {"geo_bounding_box": {self.field: dict(self.bounds), **self.options}}


@dataclass
class GeoDistanceQuery(Clause):
    """geo_distance 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.GEO_DISTANCE

    field: str
    distance: str
    location: Any
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        _require_text(self.distance, self.kind, "distance")
        _require_value(self.location, self.kind, "location")

    def to_dict(self) -> dict[str, Any]:
        return {
            "geo_distance": {
                "distance": self.distance,
                self.field: self.location,
                **self.options,
            }
        }


@dataclass
class GeoPolygonQuery(Clause):
    """geo_polygon 查询（至少 3 个顶点）"""

    kind: ClassVar[ClauseKind] = ClauseKind.GEO_POLYGON

    field: str
    points: list[Any]
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        self.points = _as_list(self.points, self.kind, "points")
        if len(self.points) < 3:
            raise InvalidClauseError("多边形至少需要 3 个顶点", self.kind.value)

    def to_dict(self) -> dict[str, Any]:
        return {"geo_polygon": {self.field: {"points": list(self.points)}, **self.options}}


@dataclass
class GeoShapeQuery(Clause):
    """geo_shape 查询

    ``relation`` 与 ``options`` 输出在字段级别，与 ``shape`` 并列。
    """

    kind: ClassVar[ClauseKind] = ClauseKind.GEO_SHAPE

    field: str
    shape_type: str
    coordinates: list[Any]
    relation: str | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.field, self.kind)
        _require_text(self.shape_type, self.kind, "shape_type")
        self.coordinates = _as_list(self.coordinates, self.kind, "coordinates")

    def to_dict(self) -> dict[str, Any]:
        spec: dict[str, Any] = {
            "shape": {"type": self.shape_type, "coordinates": list(self.coordinates)},
        }
        spec.update(merge_params({"relation": self.relation}, self.options))
        return {"geo_shape": {self.field: spec}}


# ============== 复合查询 ==============


@dataclass
class BoolQuery(Clause):
    """bool 复合查询

    仅含一个 MUST 子句且没有其他参数时，直接输出该子句；
    没有任何子句时输出 match_all。
    """

    kind: ClassVar[ClauseKind] = ClauseKind.BOOL

    clauses: dict[BoolRole, list[Clause]] = field(default_factory=dict)
    minimum_should_match: int | str | None = None
    boost: float | None = None
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not any(self.clauses.values())

    def to_dict(self) -> dict[str, Any]:
        if self.is_empty:
            return {"match_all": {}}

        params = merge_params(
            {"minimum_should_match": self.minimum_should_match, "boost": self.boost},
            self.options,
        )
        populated = {role: items for role, items in self.clauses.items() if items}
        must = populated.get(BoolRole.MUST, [])
        if len(populated) == 1 and len(must) == 1 and not params:
            return must[0].to_dict()

        body: dict[str, Any] = {}
        for role in BoolRole:
            if role in populated:
                body[role.value] = [clause.to_dict() for clause in populated[role]]
        body.update(params)
        return {"bool": body}


@dataclass
class NestedQuery(Clause):
    """nested 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.NESTED

    path: str
    query: BoolQuery
    score_mode: str = "avg"
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_field(self.path, self.kind, "path")
        if self.score_mode not in NESTED_SCORE_MODES:
            raise InvalidClauseError(
                f"score_mode 必须是 {sorted(NESTED_SCORE_MODES)} 之一",
                self.kind.value,
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nested": {
                "path": self.path,
                "query": self.query.to_dict(),
                "score_mode": self.score_mode,
                **self.options,
            }
        }


@dataclass
class ScoreFunction:
    """function_score 中的单个评分函数

    Attributes:
        spec: 函数主体（如 {"field_value_factor": {...}}）
        weight: 函数权重
        filter: 函数生效范围（子构建器产出的 bool 查询）
    """

    spec: dict[str, Any] = field(default_factory=dict)
    weight: float | None = None
    filter: BoolQuery | None = None

    def to_dict(self) -> dict[str, Any]:
        output = deepcopy(self.spec)
        if self.weight is not None:
            output["weight"] = self.weight
        if self.filter is not None:
            output["filter"] = self.filter.to_dict()
        return output


@dataclass
class FunctionScoreQuery(Clause):
    """function_score 查询"""

    kind: ClassVar[ClauseKind] = ClauseKind.FUNCTION_SCORE

    query: BoolQuery
    functions: list[ScoreFunction] = field(default_factory=list)
    options: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "function_score": {
                "query": self.query.to_dict(),
                "functions": [function.to_dict() for function in self.functions],
                **self.options,
            }
        }


__all__ = [
    "BoolRole",
    "ClauseKind",
    "CLAUSE_TYPES",
    "NESTED_SCORE_MODES",
    "merge_params",
    "Clause",
    "TermQuery",
    "TermsQuery",
    "RangeQuery",
    "PrefixQuery",
    "WildcardQuery",
    "RegexpQuery",
    "FuzzyQuery",
    "ExistsQuery",
    "IdsQuery",
    "MatchQuery",
    "MultiMatchQuery",
    "CommonTermsQuery",
    "QueryStringQuery",
    "SimpleQueryStringQuery",
    "MatchAllQuery",
    "GeoBoundingBoxQuery",
    "GeoDistanceQuery",
    "GeoPolygonQuery",
    "GeoShapeQuery",
    "BoolQuery",
    "NestedQuery",
    "ScoreFunction",
    "FunctionScoreQuery",
]
