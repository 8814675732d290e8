"""function_score 构建器

由 ``SearchBuilder.functions()`` 创建，包装内部查询并收集评分函数。
每个函数可以通过回调指定过滤条件，回调收到一个独立的子构建器。

使用示例:
    ```python
    builder.functions(
        lambda query: query.match("title", "laptop"),
        lambda score: (score
            .field_value_factor("popularity", factor=1.2, modifier="log1p")
            .decay("gauss", "price", {"origin": 500, "scale": 100})
            .weight(2, filter_=lambda f: f.term("brand", "acme"))),
        {"score_mode": "sum", "boost_mode": "multiply"},
    )
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Self

from elastic_devtools.observability.logging import get_logger
from elastic_devtools.search.clauses import BoolQuery, FunctionScoreQuery, ScoreFunction
from elastic_devtools.search.errors import InvalidArgumentError

if TYPE_CHECKING:
    from elastic_devtools.search.builder import SearchBuilder

logger = get_logger(__name__)

SCORE_MODES = frozenset({"multiply", "sum", "avg", "first", "max", "min"})
BOOST_MODES = frozenset({"multiply", "replace", "sum", "avg", "max", "min"})
DECAY_TYPES = frozenset({"gauss", "exp", "linear"})
FIELD_VALUE_MODIFIERS = frozenset(
    {"none", "log", "log1p", "log2p", "ln", "ln1p", "ln2p", "square", "sqrt", "reciprocal"}
)

FilterCallback = Callable[["SearchBuilder"], Any]


class FunctionScoreBuilder:
    """function_score 查询构建器"""

    def __init__(
        self,
        builder: SearchBuilder,
        parameters: Mapping[str, Any] | None = None,
    ) -> None:
        """初始化

        Args:
            builder: 已由查询回调填充的子构建器
            parameters: function_score 级参数（score_mode、boost_mode、max_boost 等）
        """
        self._builder = builder
        self._query = builder.document.bool_query()
        self._parameters = self._validate_parameters(parameters or {})
        self._functions: list[ScoreFunction] = []

    @staticmethod
    def _validate_parameters(parameters: Mapping[str, Any]) -> dict[str, Any]:
        score_mode = parameters.get("score_mode")
        if score_mode is not None and score_mode not in SCORE_MODES:
            raise InvalidArgumentError(f"score_mode 必须是 {sorted(SCORE_MODES)} 之一")
        boost_mode = parameters.get("boost_mode")
        if boost_mode is not None and boost_mode not in BOOST_MODES:
            raise InvalidArgumentError(f"boost_mode 必须是 {sorted(BOOST_MODES)} 之一")
        return dict(parameters)

    @property
    def functions(self) -> list[ScoreFunction]:
        return list(self._functions)

    def _build_filter(self, callback: FilterCallback | None) -> BoolQuery | None:
        if callback is None:
            return None
        sub_builder = self._builder.spawn()
        callback(sub_builder)
        return sub_builder.document.bool_query()

    def _append(
        self,
        spec: dict[str, Any],
        weight: float | None,
        filter_: FilterCallback | None,
    ) -> Self:
        self._functions.append(
            ScoreFunction(spec=spec, weight=weight, filter=self._build_filter(filter_))
        )
        return self

    def field_value_factor(
        self,
        field: str,
        factor: float = 1.0,
        modifier: str = "none",
        missing: float | None = None,
        weight: float | None = None,
        filter_: FilterCallback | None = None,
    ) -> Self:
        """按字段值计算分数

        Args:
            field: 数值字段
            factor: 乘数
            modifier: 修饰函数（log1p、sqrt 等）
            missing: 字段缺失时的默认值
            weight: 函数权重
            filter_: 过滤条件回调

        Returns:
            self
        """
        if not isinstance(field, str) or not field:
            raise InvalidArgumentError("field_value_factor 需要非空字段名")
        if modifier not in FIELD_VALUE_MODIFIERS:
            raise InvalidArgumentError(f"modifier 必须是 {sorted(FIELD_VALUE_MODIFIERS)} 之一")

        spec: dict[str, Any] = {"field": field, "factor": factor, "modifier": modifier}
        if missing is not None:
            spec["missing"] = missing
        return self._append({"field_value_factor": spec}, weight, filter_)

    def decay(
        self,
        type_: str,
        field: str,
        function: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
        weight: float | None = None,
        filter_: FilterCallback | None = None,
    ) -> Self:
        """衰减函数（gauss / exp / linear）

        Args:
            type_: 衰减类型
            field: 字段
            function: 衰减参数（origin、scale、offset、decay）
            options: 函数级参数（如 multi_value_mode）
            weight: 函数权重
            filter_: 过滤条件回调

        Returns:
            self
        """
        if type_ not in DECAY_TYPES:
            raise InvalidArgumentError(f"衰减类型必须是 {sorted(DECAY_TYPES)} 之一")
        if not isinstance(field, str) or not field:
            raise InvalidArgumentError("衰减函数需要非空字段名")
        if "scale" not in function:
            raise InvalidArgumentError("衰减函数必须设置 scale")

        body = {field: dict(function), **(options or {})}
        return self._append({type_: body}, weight, filter_)

    def weight(self, weight: float, filter_: FilterCallback | None = None) -> Self:
        """固定权重函数"""
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise InvalidArgumentError("weight 必须是数值")
        return self._append({}, weight, filter_)

    def random_score(
        self,
        seed: int | str | None = None,
        field: str | None = None,
        weight: float | None = None,
        filter_: FilterCallback | None = None,
    ) -> Self:
        """随机分数函数

        Args:
            seed: 随机种子
            field: 种子字段（设置 seed 时必须配合字段，通常为 "_seq_no"）
            weight: 函数权重
            filter_: 过滤条件回调

        Returns:
            self
        """
        if seed is not None and field is None:
            raise InvalidArgumentError("random_score 设置 seed 时必须同时指定 field")

        spec: dict[str, Any] = {}
        if seed is not None:
            spec["seed"] = seed
        if field is not None:
            spec["field"] = field
        return self._append({"random_score": spec}, weight, filter_)

    def script_score(
        self,
        source: str,
        params: Mapping[str, Any] | None = None,
        lang: str = "painless",
        options: Mapping[str, Any] | None = None,
        weight: float | None = None,
        filter_: FilterCallback | None = None,
    ) -> Self:
        """脚本评分函数

        Args:
            source: 脚本内容
            params: 脚本参数
            lang: 脚本语言
            options: 额外 script 参数
            weight: 函数权重
            filter_: 过滤条件回调

        Returns:
            self
        """
        if not isinstance(source, str) or not source:
            raise InvalidArgumentError("script_score 需要非空脚本")

        script: dict[str, Any] = {"lang": lang, "source": source}
        if params:
            script["params"] = dict(params)
        script.update(options or {})
        return self._append({"script_score": {"script": script}}, weight, filter_)

    def add(
        self,
        function: Mapping[str, Any],
        filter_: FilterCallback | None = None,
    ) -> Self:
        """添加原始函数定义（引擎扩展兜底）"""
        return self._append(dict(function), None, filter_)

    def get_query(self) -> FunctionScoreQuery:
        """构建 function_score 子句"""
        if not self._functions:
            logger.debug("function_score_without_functions")
        return FunctionScoreQuery(
            query=self._query,
            functions=list(self._functions),
            options=dict(self._parameters),
        )


__all__ = [
    "FunctionScoreBuilder",
    "SCORE_MODES",
    "BOOST_MODES",
    "DECAY_TYPES",
    "FIELD_VALUE_MODIFIERS",
]
