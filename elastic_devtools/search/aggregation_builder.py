"""聚合构建器

向 QueryDocument 追加聚合，别名由调用方指定。
同一别名再次添加时直接覆盖（后写生效，不报错）。
不支持子聚合嵌套。

使用示例:
    ```python
    builder.aggregate(lambda aggs: (aggs
        .terms("by_brand", "brand", size=20)
        .average("avg_price", "price")
        .histogram("price_buckets", "price", interval=100)))
    ```
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Self

from elastic_devtools.observability.logging import get_logger
from elastic_devtools.search.aggregations import (
    Aggregation,
    AvgAggregation,
    CardinalityAggregation,
    DateRangeAggregation,
    GeoBoundsAggregation,
    GeoDistanceAggregation,
    GeoHashGridAggregation,
    HistogramAggregation,
    Ipv4RangeAggregation,
    MaxAggregation,
    MinAggregation,
    MissingAggregation,
    PercentileRanksAggregation,
    PercentilesAggregation,
    RangeAggregation,
    StatsAggregation,
    SumAggregation,
    TermsAggregation,
    ValueCountAggregation,
)
from elastic_devtools.search.document import QueryDocument

logger = get_logger(__name__)

Script = str | dict[str, Any] | None


class AggregationBuilder:
    """Elasticsearch 聚合构建器"""

    def __init__(self, document: QueryDocument | None = None) -> None:
        """初始化

        Args:
            document: 目标查询文档，None 时创建独立文档
        """
        self.document = document if document is not None else QueryDocument()

    # ============== 指标聚合 ==============

    def average(self, alias: str, field: str | None = None, script: Script = None, **options) -> Self:
        """平均值聚合"""
        return self.append(AvgAggregation(alias, field=field, script=script, options=options))

    def sum(self, alias: str, field: str | None = None, script: Script = None, **options) -> Self:
        """求和聚合"""
        return self.append(SumAggregation(alias, field=field, script=script, options=options))

    def min(self, alias: str, field: str | None = None, script: Script = None, **options) -> Self:
        """最小值聚合"""
        return self.append(MinAggregation(alias, field=field, script=script, options=options))

    def max(self, alias: str, field: str | None = None, script: Script = None, **options) -> Self:
        """最大值聚合"""
        return self.append(MaxAggregation(alias, field=field, script=script, options=options))

    def stats(self, alias: str, field: str | None = None, script: Script = None, **options) -> Self:
        """统计聚合（count/min/max/avg/sum）"""
        return self.append(StatsAggregation(alias, field=field, script=script, options=options))

    def value_count(
        self, alias: str, field: str | None = None, script: Script = None, **options
    ) -> Self:
        """值计数聚合"""
        return self.append(
            ValueCountAggregation(alias, field=field, script=script, options=options)
        )

    def cardinality(
        self,
        alias: str,
        field: str | None = None,
        script: Script = None,
        precision: int | None = None,
        rehash: bool | None = None,
        **options,
    ) -> Self:
        """去重计数聚合

        Args:
            alias: 聚合别名
            field: 字段名
            script: 脚本
            precision: precision_threshold
            rehash: 是否重新哈希

        Returns:
            self
        """
        return self.append(
            CardinalityAggregation(
                alias,
                field=field,
                script=script,
                precision_threshold=precision,
                rehash=rehash,
                options=options,
            )
        )

    def percentile(
        self,
        alias: str,
        field: str,
        percents: Sequence[float] | None = None,
        script: Script = None,
        compression: float | None = None,
        **options,
    ) -> Self:
        """百分位聚合"""
        return self.append(
            PercentilesAggregation(
                alias,
                field=field,
                script=script,
                percents=list(percents) if percents is not None else None,
                compression=compression,
                options=options,
            )
        )

    def percentile_ranks(
        self,
        alias: str,
        field: str,
        values: Sequence[float],
        script: Script = None,
        compression: float | None = None,
        **options,
    ) -> Self:
        """百分位排名聚合"""
        return self.append(
            PercentileRanksAggregation(
                alias,
                field=field,
                script=script,
                values=list(values),
                compression=compression,
                options=options,
            )
        )

    def geo_bounds(self, alias: str, field: str, wrap_longitude: bool = True, **options) -> Self:
        """地理边界聚合"""
        return self.append(
            GeoBoundsAggregation(alias, field=field, wrap_longitude=wrap_longitude, options=options)
        )

    # ============== 桶聚合 ==============

    def terms(
        self,
        alias: str,
        field: str | None = None,
        script: Script = None,
        size: int | None = None,
        order: Mapping[str, str] | None = None,
        min_doc_count: int | None = None,
        **options,
    ) -> Self:
        """terms 聚合

        Args:
            alias: 聚合别名
            field: 字段名
            script: 脚本
            size: 返回桶数量
            order: 排序（如 {"_count": "desc"}）
            min_doc_count: 最小文档数

        Returns:
            self
        """
        return self.append(
            TermsAggregation(
                alias,
                field=field,
                script=script,
                size=size,
                order=dict(order) if order else None,
                min_doc_count=min_doc_count,
                options=options,
            )
        )

    def missing(self, alias: str, field: str, **options) -> Self:
        """缺失字段聚合"""
        return self.append(MissingAggregation(alias, field=field, options=options))

    def histogram(
        self,
        alias: str,
        field: str,
        interval: float,
        min_doc_count: int | None = None,
        order_mode: str | None = None,
        order_direction: str = "asc",
        extended_bounds_min: float | None = None,
        extended_bounds_max: float | None = None,
        keyed: bool | None = None,
        **options,
    ) -> Self:
        """直方图聚合

        Args:
            alias: 聚合别名
            field: 字段名
            interval: 桶间隔
            min_doc_count: 最小文档数
            order_mode: 排序依据（_key / _count）
            order_direction: 排序方向
            extended_bounds_min: 扩展边界下限
            extended_bounds_max: 扩展边界上限
            keyed: 是否以键值对形式返回

        Returns:
            self
        """
        return self.append(
            HistogramAggregation(
                alias,
                field=field,
                interval=interval,
                min_doc_count=min_doc_count,
                order_mode=order_mode,
                order_direction=order_direction,
                extended_bounds_min=extended_bounds_min,
                extended_bounds_max=extended_bounds_max,
                keyed=keyed,
                options=options,
            )
        )

    def range(
        self,
        alias: str,
        field: str,
        ranges: Sequence[Any],
        keyed: bool = False,
        **options,
    ) -> Self:
        """范围聚合

        Args:
            alias: 聚合别名
            field: 字段名
            ranges: 范围列表 [{"key": "名", "from": 值, "to": 值}] 或 [(from, to)]
            keyed: 是否以键值对形式返回

        Returns:
            self
        """
        return self.append(
            RangeAggregation(alias, field=field, ranges=list(ranges), keyed=keyed, options=options)
        )

    def date_range(
        self,
        alias: str,
        field: str,
        format_: str,
        ranges: Sequence[Any],
        **options,
    ) -> Self:
        """日期范围聚合"""
        return self.append(
            DateRangeAggregation(
                alias, field=field, format=format_, ranges=list(ranges), options=options
            )
        )

    def ipv4_range(self, alias: str, field: str, ranges: Sequence[Any], **options) -> Self:
        """IPv4 范围聚合（字符串范围视为 CIDR 掩码）"""
        return self.append(
            Ipv4RangeAggregation(alias, field=field, ranges=list(ranges), options=options)
        )

    def geo_distance(
        self,
        alias: str,
        field: str,
        origin: Any,
        ranges: Sequence[Any],
        unit: str | None = None,
        distance_type: str | None = None,
        **options,
    ) -> Self:
        """地理距离聚合"""
        return self.append(
            GeoDistanceAggregation(
                alias,
                field=field,
                origin=origin,
                ranges=list(ranges),
                unit=unit,
                distance_type=distance_type,
                options=options,
            )
        )

    def geo_hash_grid(
        self,
        alias: str,
        field: str,
        precision: int | float | str | None = None,
        size: int | None = None,
        shard_size: int | None = None,
        **options,
    ) -> Self:
        """geohash 网格聚合"""
        return self.append(
            GeoHashGridAggregation(
                alias,
                field=field,
                precision=precision,
                size=size,
                shard_size=shard_size,
                options=options,
            )
        )

    # ============== 构建 ==============

    def append(self, aggregation: Aggregation) -> Self:
        """追加聚合（同名覆盖）"""
        previous = self.document.add_aggregation(aggregation)
        if previous is not None:
            logger.debug(
                "aggregation_overridden",
                alias=aggregation.alias,
                previous=previous.kind.value,
                current=aggregation.kind.value,
            )
        return self

    def compile(self) -> dict[str, Any]:
        """编译目标文档"""
        return self.document.to_dict()


__all__ = ["AggregationBuilder"]
