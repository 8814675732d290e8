"""搜索构建器

提供流式 API 构建 Elasticsearch 查询，并通过连接执行。

构建器维护一个"当前布尔角色"（默认 MUST），``should()`` / ``must()`` /
``must_not()`` / ``filter()`` 只切换后续子句的角色，已追加的子句保持原角色。
nested 与 function_score 在独立的子构建器上构建，子构建器的角色状态不会
影响外层构建器。

使用示例:
    ```python
    from elastic_devtools import ElasticDevTools

    tools = ElasticDevTools()

    # 简单查询
    result = tools.search().index("products").match("title", "laptop").execute()

    # 复杂查询
    paginator = (tools.search()
        .index("products")
        .match("title", "laptop")
        .filter().term("status", "published").range("price", gte=100, lte=2000)
        .should().term("brand", "acme", boost=2.0)
        .nested("variants", lambda q: q.term("variants.color", "black"))
        .aggregate(lambda aggs: aggs.terms("by_brand", "brand"))
        .sort_by("price", "asc")
        .highlight({"title": {}})
        .paginate(limit=20, page=2))
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, Self

from elastic_devtools.observability.logging import get_logger
from elastic_devtools.search.aggregation_builder import AggregationBuilder
from elastic_devtools.search.clauses import (
    BoolRole,
    Clause,
    CommonTermsQuery,
    ExistsQuery,
    FuzzyQuery,
    GeoBoundingBoxQuery,
    GeoDistanceQuery,
    GeoPolygonQuery,
    GeoShapeQuery,
    IdsQuery,
    MatchAllQuery,
    MatchQuery,
    MultiMatchQuery,
    NestedQuery,
    PrefixQuery,
    QueryStringQuery,
    RangeQuery,
    RegexpQuery,
    SimpleQueryStringQuery,
    TermQuery,
    TermsQuery,
    WildcardQuery,
)
from elastic_devtools.search.document import FieldSort, Highlight, QueryDocument
from elastic_devtools.search.errors import InvalidArgumentError, InvalidClauseError
from elastic_devtools.search.function_score import FunctionScoreBuilder
from elastic_devtools.search.paginator import Paginator
from elastic_devtools.search.result import Result

logger = get_logger(__name__)

PageResolver = Callable[[], int]


class SearchConnection(Protocol):
    """构建器依赖的连接接口"""

    def search(
        self,
        index: str | None,
        doc_type: str | None,
        body: Mapping[str, Any],
    ) -> Mapping[str, Any]: ...


def _check_non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(f"{name} 必须是非负整数，实际为 {value!r}")
    return value


def _check_identifier(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{name} 必须是非空字符串，实际为 {value!r}")
    return value


def _check_callback(callback: Any, name: str) -> None:
    if not callable(callback):
        raise InvalidArgumentError(f"{name} 必须是可调用对象")


def _as_list(value: Any, name: str) -> list[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidArgumentError(f"{name} 必须是列表，实际为 {value!r}")
    return list(value)


def _as_field_list(fields: str | Sequence[str]) -> list[str]:
    if isinstance(fields, str):
        return [fields]
    return _as_list(fields, "fields")


class SearchBuilder:
    """Elasticsearch 搜索构建器"""

    def __init__(
        self,
        connection: SearchConnection | None = None,
        document: QueryDocument | None = None,
        page_resolver: PageResolver | None = None,
        default_page_size: int = 25,
    ) -> None:
        """初始化搜索构建器

        Args:
            connection: 执行查询的连接（仅 execute / paginate 需要）
            document: 目标查询文档，None 时创建新文档
            page_resolver: 未显式传入页码时用于解析当前页码
            default_page_size: paginate 未指定 limit 时的每页大小
        """
        self._connection = connection
        self.document = document if document is not None else QueryDocument()
        self._page_resolver = page_resolver
        self._default_page_size = default_page_size
        self._bool_state = BoolRole.MUST
        self._index: str | None = None
        self._type: str | None = None

    def spawn(self) -> SearchBuilder:
        """创建共享连接、但拥有独立文档的子构建器"""
        return SearchBuilder(
            self._connection,
            QueryDocument(),
            self._page_resolver,
            self._default_page_size,
        )

    # ============== 目标与窗口 ==============

    def index(self, index: str) -> Self:
        """设置查询索引"""
        self._index = _check_identifier(index, "index")
        return self

    def type_(self, type_: str) -> Self:
        """设置映射类型（仅旧版本集群使用）"""
        self._type = _check_identifier(type_, "type")
        return self

    def from_(self, offset: int) -> Self:
        """设置偏移量"""
        self.document.offset = _check_non_negative_int(offset, "offset")
        return self

    def size(self, limit: int) -> Self:
        """设置返回结果数"""
        self.document.size = _check_non_negative_int(limit, "limit")
        return self

    def min_score(self, score: float) -> Self:
        """设置最小分数"""
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise InvalidArgumentError(f"min_score 必须是数值，实际为 {score!r}")
        self.document.min_score = score
        return self

    def get_index(self) -> str | None:
        return self._index

    def get_type(self) -> str | None:
        return self._type

    def get_connection(self) -> SearchConnection | None:
        return self._connection

    @property
    def bool_state(self) -> BoolRole:
        """当前布尔角色"""
        return self._bool_state

    # ============== 布尔角色 ==============

    def must(self) -> Self:
        """后续子句切换为 MUST"""
        self._bool_state = BoolRole.MUST
        return self

    def should(self) -> Self:
        """后续子句切换为 SHOULD"""
        self._bool_state = BoolRole.SHOULD
        return self

    def must_not(self) -> Self:
        """后续子句切换为 MUST_NOT"""
        self._bool_state = BoolRole.MUST_NOT
        return self

    def filter(self) -> Self:
        """后续子句切换为 FILTER（不计分）"""
        self._bool_state = BoolRole.FILTER
        return self

    def minimum_should_match(self, value: int | str) -> Self:
        """设置 bool 级 minimum_should_match"""
        self.document.bool_parameters["minimum_should_match"] = value
        return self

    def boost(self, value: float) -> Self:
        """设置 bool 级 boost"""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidArgumentError(f"boost 必须是数值，实际为 {value!r}")
        self.document.bool_parameters["boost"] = value
        return self

    def append(self, clause: Clause) -> Self:
        """在当前布尔角色下追加子句"""
        self.document.add_clause(clause, self._bool_state)
        return self

    # ============== 词项级查询 ==============

    def ids(self, ids: str | int | Sequence[str | int], **attributes) -> Self:
        """添加 ids 查询

        Args:
            ids: 单个 ID 或 ID 列表
            **attributes: 额外参数

        Returns:
            self
        """
        values = [ids] if isinstance(ids, (str, int)) else _as_list(ids, "ids")
        return self.append(IdsQuery(values, options=attributes))

    def term(self, field: str, value: Any, boost: float | None = None, **attributes) -> Self:
        """添加 term 查询（精确匹配）

        Args:
            field: 字段名
            value: 查询值
            boost: 权重
            **attributes: 额外参数

        Returns:
            self
        """
        return self.append(TermQuery(field, value, boost=boost, options=attributes))

    def terms(
        self,
        field: str,
        values: Sequence[Any],
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 terms 查询（多值精确匹配）"""
        return self.append(TermsQuery(field, values, boost=boost, options=attributes))

    def exists(self, fields: str | Sequence[str]) -> Self:
        """添加 exists 查询

        每个字段生成一个独立的 exists 子句，均归入当前布尔角色。

        Args:
            fields: 单个字段或字段列表

        Returns:
            self
        """
        names = _as_field_list(fields)
        if not names:
            raise InvalidClauseError("至少需要一个字段", "exists")

        clauses = [ExistsQuery(name) for name in names]
        for clause in clauses:
            self.append(clause)
        return self

    def range(
        self,
        field: str,
        gt: Any = None,
        gte: Any = None,
        lt: Any = None,
        lte: Any = None,
        format_: str | None = None,
        time_zone: str | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 range 查询

        Args:
            field: 字段名
            gt: 大于
            gte: 大于等于
            lt: 小于
            lte: 小于等于
            format_: 日期格式
            time_zone: 时区
            boost: 权重
            **attributes: 额外参数

        Returns:
            self
        """
        return self.append(
            RangeQuery(
                field,
                gt=gt,
                gte=gte,
                lt=lt,
                lte=lte,
                format=format_,
                time_zone=time_zone,
                boost=boost,
                options=attributes,
            )
        )

    def prefix(self, field: str, value: str, boost: float | None = None, **attributes) -> Self:
        """添加 prefix 查询（前缀匹配）"""
        return self.append(PrefixQuery(field, value, boost=boost, options=attributes))

    def wildcard(self, field: str, value: str, boost: float | None = 1.0, **attributes) -> Self:
        """添加 wildcard 查询（通配符匹配，支持 * 和 ?）"""
        return self.append(WildcardQuery(field, value, boost=boost, options=attributes))

    def regexp(
        self,
        field: str,
        value: str,
        flags: str | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 regexp 查询"""
        return self.append(RegexpQuery(field, value, boost=boost, flags=flags, options=attributes))

    def fuzzy(
        self,
        field: str,
        value: str,
        fuzziness: str | int | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 fuzzy 查询（模糊匹配）"""
        return self.append(
            FuzzyQuery(field, value, boost=boost, fuzziness=fuzziness, options=attributes)
        )

    # ============== 全文查询 ==============

    def match_all(self, boost: float | None = 1.0, **attributes) -> Self:
        """添加 match_all 查询"""
        return self.append(MatchAllQuery(boost=boost, options=attributes))

    def match(
        self,
        field: str,
        query: Any,
        operator: str | None = None,
        analyzer: str | None = None,
        fuzziness: str | int | None = None,
        minimum_should_match: int | str | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 match 查询

        Args:
            field: 字段名
            query: 查询值
            operator: and/or
            analyzer: 分析器
            fuzziness: 模糊度
            minimum_should_match: 最少匹配数
            boost: 权重
            **attributes: 额外参数

        Returns:
            self
        """
        return self.append(
            MatchQuery(
                field,
                query,
                operator=operator,
                analyzer=analyzer,
                fuzziness=fuzziness,
                minimum_should_match=minimum_should_match,
                boost=boost,
                options=attributes,
            )
        )

    def multi_match(
        self,
        fields: Sequence[str],
        query: Any,
        type_: str | None = None,
        operator: str | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 multi_match 查询

        Args:
            fields: 字段列表（支持 "title^3" 形式的权重）
            query: 查询字符串
            type_: 查询类型（best_fields、most_fields 等）
            operator: and/or
            boost: 权重
            **attributes: 额外参数

        Returns:
            self
        """
        return self.append(
            MultiMatchQuery(
                fields,
                query,
                type=type_,
                operator=operator,
                boost=boost,
                options=attributes,
            )
        )

    def common_term(
        self,
        field: str,
        query: Any,
        cutoff_frequency: float | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 common terms 查询"""
        return self.append(
            CommonTermsQuery(
                field,
                query,
                cutoff_frequency=cutoff_frequency,
                boost=boost,
                options=attributes,
            )
        )

    def query_string(
        self,
        query: str,
        default_field: str | None = None,
        default_operator: str | None = None,
        fields: Sequence[str] | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 query_string 查询（Lucene 查询语法）"""
        return self.append(
            QueryStringQuery(
                query,
                default_field=default_field,
                default_operator=default_operator,
                fields=fields,
                boost=boost,
                options=attributes,
            )
        )

    def simple_query_string(
        self,
        query: str,
        fields: Sequence[str] | None = None,
        default_operator: str | None = None,
        boost: float | None = None,
        **attributes,
    ) -> Self:
        """添加 simple_query_string 查询（容错版本）"""
        return self.append(
            SimpleQueryStringQuery(
                query,
                default_operator=default_operator,
                fields=fields,
                boost=boost,
                options=attributes,
            )
        )

    # ============== 地理查询 ==============

    def geo_bounding_box(self, field: str, points: Any, **attributes) -> Self:
        """添加 geo_bounding_box 查询

        Args:
            field: 地理位置字段
            points: [top_left, bottom_right] 或 [top, left, bottom, right]
            **attributes: 额外参数

        Returns:
            self
        """
        return self.append(GeoBoundingBoxQuery(field, points, options=attributes))

    def geo_distance(self, field: str, distance: str, location: Any, **attributes) -> Self:
        """添加 geo_distance 查询

        Args:
            field: 地理位置字段
            distance: 距离（如 "10km"）
            location: 中心点（{"lat": .., "lon": ..}、[lon, lat] 或 geohash）
            **attributes: 额外参数

        Returns:
            self
        """
        return self.append(GeoDistanceQuery(field, distance, location, options=attributes))

    def geo_polygon(self, field: str, points: Sequence[Any], **attributes) -> Self:
        """添加 geo_polygon 查询"""
        return self.append(GeoPolygonQuery(field, points, options=attributes))

    def geo_shape(
        self,
        field: str,
        shape_type: str,
        coordinates: Sequence[Any],
        relation: str | None = None,
        **attributes,
    ) -> Self:
        """添加 geo_shape 查询"""
        return self.append(
            GeoShapeQuery(
                field,
                shape_type,
                coordinates,
                relation=relation,
                options=attributes,
            )
        )

    # ============== 复合查询 ==============

    def nested(
        self,
        field: str,
        callback: Callable[[SearchBuilder], Any],
        score_mode: str = "avg",
    ) -> Self:
        """添加 nested 查询

        回调在独立的子构建器上构建（角色从 MUST 开始），
        结果作为一个 nested 子句归入外层当前角色。

        Args:
            field: 嵌套字段路径
            callback: 接收子构建器的回调
            score_mode: 评分模式（avg/sum/min/max/none）

        Returns:
            self
        """
        _check_callback(callback, "callback")
        sub_builder = self.spawn()
        callback(sub_builder)

        query = NestedQuery(field, sub_builder.document.bool_query(), score_mode=score_mode)
        return self.append(query)

    def functions(
        self,
        query_callback: Callable[[SearchBuilder], Any],
        score_callback: Callable[[FunctionScoreBuilder], Any],
        parameters: Mapping[str, Any] | None = None,
    ) -> Self:
        """添加 function_score 查询

        Args:
            query_callback: 在子构建器上构建内部查询
            score_callback: 配置评分函数
            parameters: function_score 级参数（score_mode、boost_mode 等）

        Returns:
            self
        """
        _check_callback(query_callback, "query_callback")
        _check_callback(score_callback, "score_callback")

        sub_builder = self.spawn()
        query_callback(sub_builder)

        score_builder = FunctionScoreBuilder(sub_builder, parameters)
        score_callback(score_builder)

        return self.append(score_builder.get_query())

    def aggregate(self, callback: Callable[[AggregationBuilder], Any]) -> Self:
        """添加聚合（直接写入当前文档）"""
        _check_callback(callback, "callback")
        callback(AggregationBuilder(self.document))
        return self

    # ============== 排序、高亮、返回字段 ==============

    def sort_by(
        self,
        fields: str | Sequence[str],
        order: str | None = None,
        parameters: Mapping[str, Any] | None = None,
    ) -> Self:
        """添加排序

        Args:
            fields: 单个字段或字段列表（每个字段一条排序）
            order: 排序方向（asc/desc）
            parameters: 额外排序参数

        Returns:
            self
        """
        if order is not None and order not in ("asc", "desc"):
            raise InvalidArgumentError(f"order 必须是 asc 或 desc，实际为 {order!r}")
        if parameters is not None and not isinstance(parameters, Mapping):
            raise InvalidArgumentError(f"parameters 必须是映射，实际为 {parameters!r}")

        names = [_check_identifier(name, "sort field") for name in _as_field_list(fields)]
        for name in names:
            self.document.add_sort(FieldSort(name, order, dict(parameters or {})))
        return self

    def highlight(
        self,
        fields: Mapping[str, Mapping[str, Any]] | Sequence[str] | None = None,
        parameters: Mapping[str, Any] | None = None,
        pre_tag: str = "<mark>",
        post_tag: str = "</mark>",
    ) -> Self:
        """配置高亮（再次调用会替换之前的配置）

        Args:
            fields: 字段 → 字段级参数，或字段名列表；默认 {"*": {}}
            parameters: 全局高亮参数
            pre_tag: 前置标签
            post_tag: 后置标签

        Returns:
            self
        """
        if fields is None:
            fields = {"*": {}}
        if not isinstance(fields, Mapping):
            fields = {_check_identifier(name, "highlight field"): {} for name in _as_field_list(fields)}

        field_options: dict[str, dict[str, Any]] = {}
        for name, options in fields.items():
            _check_identifier(name, "highlight field")
            if options is not None and not isinstance(options, Mapping):
                raise InvalidArgumentError(f"高亮字段 {name} 的参数必须是映射，实际为 {options!r}")
            field_options[name] = dict(options or {})

        if parameters is not None and not isinstance(parameters, Mapping):
            raise InvalidArgumentError(f"parameters 必须是映射，实际为 {parameters!r}")

        self.document.highlight = Highlight(
            fields=field_options,
            pre_tags=[pre_tag],
            post_tags=[post_tag],
            parameters=dict(parameters or {}),
        )
        return self

    def source(
        self,
        includes: Sequence[str] | None = None,
        excludes: Sequence[str] | None = None,
    ) -> Self:
        """配置返回字段

        Args:
            includes: 包含字段
            excludes: 排除字段

        Returns:
            self
        """
        if includes is not None:
            includes = _as_list(includes, "includes")
        if excludes is not None:
            excludes = _as_list(excludes, "excludes")

        if includes is not None and excludes is not None:
            self.document.source = {"includes": includes, "excludes": excludes}
        elif includes:
            self.document.source = includes
        elif excludes:
            self.document.source = {"excludes": excludes}
        else:
            self.document.source = False
        return self

    # ============== 编译与执行 ==============

    def compile(self) -> dict[str, Any]:
        """编译为请求体（纯函数，可重复调用）"""
        return self.document.to_dict()

    def get_raw(self) -> Mapping[str, Any]:
        """执行查询并返回原始响应

        Raises:
            RuntimeError: 未配置连接
        """
        if self._connection is None:
            raise RuntimeError("SearchBuilder has no connection. Pass one to execute queries.")

        return self._connection.search(self._index, self._type, self.compile())

    def execute(self) -> Result:
        """执行查询并返回 Result"""
        result = Result(self.get_raw())
        logger.debug(
            "search_builder_executed",
            index=self._index,
            total_hits=result.total_hits,
            hits=len(result.hits),
        )
        return result

    def _resolve_page(self, page: int | None) -> int:
        if page is None:
            page = self._page_resolver() if self._page_resolver is not None else 1
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidArgumentError(f"page 必须是大于等于 1 的整数，实际为 {page!r}")
        return page

    def paginate(self, limit: int | None = None, page: int | None = None) -> Paginator:
        """分页执行查询

        页码在构建请求前解析，偏移量写入当前构建器后执行；
        重复调用会以新的窗口重新执行，不缓存结果。

        Args:
            limit: 每页大小（None 时使用 default_page_size，默认 25）
            page: 页码（None 时使用 page_resolver，默认 1）

        Returns:
            Paginator 实例
        """
        if limit is None:
            limit = self._default_page_size
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidArgumentError(f"limit 必须是正整数，实际为 {limit!r}")

        current = self._resolve_page(page)
        result = self.from_(limit * (current - 1)).size(limit).execute()

        logger.debug("paginate_executed", page=current, limit=limit, total=result.total_hits)
        return Paginator(result, limit, current)


__all__ = ["SearchBuilder", "SearchConnection", "PageResolver"]
