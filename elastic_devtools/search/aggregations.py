"""聚合模型

每种聚合是一个 dataclass，``kind`` 为 DSL 中的聚合名，
``to_dict()`` 输出 ``{kind: body}``，别名由 QueryDocument 作为外层键。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, ClassVar

from elastic_devtools.search.clauses import merge_params
from elastic_devtools.search.errors import InvalidArgumentError


class AggregationKind(str, Enum):
    """聚合类型（值即 DSL 中的聚合名）"""

    AVG = "avg"
    SUM = "sum"
    MIN = "min"
    MAX = "max"
    STATS = "stats"
    VALUE_COUNT = "value_count"
    CARDINALITY = "cardinality"
    PERCENTILES = "percentiles"
    PERCENTILE_RANKS = "percentile_ranks"
    HISTOGRAM = "histogram"
    RANGE = "range"
    DATE_RANGE = "date_range"
    IP_RANGE = "ip_range"
    GEO_DISTANCE = "geo_distance"
    GEOHASH_GRID = "geohash_grid"
    GEO_BOUNDS = "geo_bounds"
    MISSING = "missing"
    TERMS = "terms"


AGGREGATION_TYPES: dict[AggregationKind, type[Aggregation]] = {}


def _fail(kind: AggregationKind, alias: str, message: str) -> InvalidArgumentError:
    return InvalidArgumentError(f"[{kind.value}:{alias}] {message}")


def _normalize_ranges(
    kind: AggregationKind,
    alias: str,
    ranges: Any,
    keys: tuple[str, ...] = ("from", "to", "key"),
) -> list[dict[str, Any]]:
    """规范化范围列表

    每个范围可以是映射（from/to/key）或 (from, to) 二元组，
    至少需要 from 或 to 之一。
    """
    if isinstance(ranges, (str, bytes)) or not isinstance(ranges, Sequence) or not ranges:
        raise _fail(kind, alias, "至少需要一个范围")

    normalized = []
    for item in ranges:
        if isinstance(item, Mapping):
            entry = {key: item[key] for key in keys if item.get(key) is not None}
        elif isinstance(item, Sequence) and not isinstance(item, (str, bytes)) and len(item) == 2:
            entry = {key: value for key, value in zip(("from", "to"), item) if value is not None}
        else:
            raise _fail(kind, alias, f"无法识别的范围: {item!r}")

        if "from" not in entry and "to" not in entry and "mask" not in entry:
            raise _fail(kind, alias, f"范围缺少边界: {item!r}")
        normalized.append(entry)

    return normalized


@dataclass
class Aggregation:
    """聚合基类"""

    kind: ClassVar[AggregationKind]

    alias: str

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        kind = cls.__dict__.get("kind")
        if kind is not None:
            AGGREGATION_TYPES[kind] = cls

    def __post_init__(self) -> None:
        if not isinstance(self.alias, str) or not self.alias.strip():
            raise InvalidArgumentError("聚合别名必须是非空字符串")

    def _require_field(self, value: Any) -> None:
        if not isinstance(value, str) or not value.strip():
            raise _fail(self.kind, self.alias, "field 必须是非空字符串")

    def body(self) -> dict[str, Any]:
        raise NotImplementedError(f"{type(self).__name__} 未实现序列化")

    def to_dict(self) -> dict[str, Any]:
        """序列化为 {kind: body}"""
        return {self.kind.value: self.body()}


# ============== 指标聚合 ==============


@dataclass
class _MetricAggregation(Aggregation):
    """基于 field 或 script 的指标聚合"""

    field: str | None = None
    script: str | dict[str, Any] | None = None
    missing: Any = None
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.field is None and self.script is None:
            raise _fail(self.kind, self.alias, "需要 field 或 script")
        if self.field is not None:
            self._require_field(self.field)

    def _typed(self) -> dict[str, Any]:
        return {"field": self.field, "script": self.script, "missing": self.missing}

    def body(self) -> dict[str, Any]:
        return merge_params(self._typed(), self.options)


@dataclass
class AvgAggregation(_MetricAggregation):
    kind: ClassVar[AggregationKind] = AggregationKind.AVG


@dataclass
class SumAggregation(_MetricAggregation):
    kind: ClassVar[AggregationKind] = AggregationKind.SUM


@dataclass
class MinAggregation(_MetricAggregation):
    kind: ClassVar[AggregationKind] = AggregationKind.MIN


@dataclass
class MaxAggregation(_MetricAggregation):
    kind: ClassVar[AggregationKind] = AggregationKind.MAX


@dataclass
class StatsAggregation(_MetricAggregation):
    kind: ClassVar[AggregationKind] = AggregationKind.STATS


@dataclass
class ValueCountAggregation(_MetricAggregation):
    kind: ClassVar[AggregationKind] = AggregationKind.VALUE_COUNT


@dataclass
class CardinalityAggregation(_MetricAggregation):
    """去重计数聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.CARDINALITY

    precision_threshold: int | None = None
    rehash: bool | None = None

    def _typed(self) -> dict[str, Any]:
        return {
            **super()._typed(),
            "precision_threshold": self.precision_threshold,
            "rehash": self.rehash,
        }


@dataclass
class PercentilesAggregation(_MetricAggregation):
    """百分位聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.PERCENTILES

    percents: list[float] | None = None
    compression: float | None = None

    def _typed(self) -> dict[str, Any]:
        return {
            **super()._typed(),
            "percents": list(self.percents) if self.percents is not None else None,
            "tdigest": {"compression": self.compression} if self.compression is not None else None,
        }


@dataclass
class PercentileRanksAggregation(_MetricAggregation):
    """百分位排名聚合（values 必填）"""

    kind: ClassVar[AggregationKind] = AggregationKind.PERCENTILE_RANKS

    values: list[float] = dataclass_field(default_factory=list)
    compression: float | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.values:
            raise _fail(self.kind, self.alias, "values 不能为空")

    def _typed(self) -> dict[str, Any]:
        return {
            **super()._typed(),
            "values": list(self.values),
            "tdigest": {"compression": self.compression} if self.compression is not None else None,
        }


@dataclass
class GeoBoundsAggregation(Aggregation):
    """地理边界聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.GEO_BOUNDS

    field: str = ""
    wrap_longitude: bool = True
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)

    def body(self) -> dict[str, Any]:
        return merge_params(
            {"field": self.field, "wrap_longitude": self.wrap_longitude},
            self.options,
        )


# ============== 桶聚合 ==============


@dataclass
class TermsAggregation(_MetricAggregation):
    """terms 聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.TERMS

    size: int | None = None
    order: dict[str, str] | None = None
    min_doc_count: int | None = None

    def _typed(self) -> dict[str, Any]:
        return {
            **super()._typed(),
            "size": self.size,
            "order": dict(self.order) if self.order else None,
            "min_doc_count": self.min_doc_count,
        }


@dataclass
class MissingAggregation(Aggregation):
    """缺失字段聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.MISSING

    field: str = ""
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)

    def body(self) -> dict[str, Any]:
        return {"field": self.field, **self.options}


@dataclass
class HistogramAggregation(Aggregation):
    """直方图聚合

    order_mode 为排序依据（如 "_key"、"_count"），order_direction 为方向。
    extended_bounds 只要设置了一端就会同时输出 min/max。
    """

    kind: ClassVar[AggregationKind] = AggregationKind.HISTOGRAM

    field: str = ""
    interval: float = 0
    min_doc_count: int | None = None
    order_mode: str | None = None
    order_direction: str = "asc"
    extended_bounds_min: float | None = None
    extended_bounds_max: float | None = None
    keyed: bool | None = None
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)
        if isinstance(self.interval, bool) or not isinstance(self.interval, (int, float)) or self.interval <= 0:
            raise _fail(self.kind, self.alias, "interval 必须是正数")
        if self.order_direction not in ("asc", "desc"):
            raise _fail(self.kind, self.alias, "order_direction 必须是 asc 或 desc")

    def body(self) -> dict[str, Any]:
        extended_bounds = None
        if self.extended_bounds_min is not None or self.extended_bounds_max is not None:
            extended_bounds = {"min": self.extended_bounds_min, "max": self.extended_bounds_max}

        return merge_params(
            {
                "field": self.field,
                "interval": self.interval,
                "min_doc_count": self.min_doc_count,
                "extended_bounds": extended_bounds,
                "keyed": self.keyed,
                "order": {self.order_mode: self.order_direction} if self.order_mode else None,
            },
            self.options,
        )


@dataclass
class RangeAggregation(Aggregation):
    """范围聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.RANGE

    field: str = ""
    ranges: list[Any] = dataclass_field(default_factory=list)
    keyed: bool = False
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)
        self.ranges = _normalize_ranges(self.kind, self.alias, self.ranges)

    def body(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "ranges": [dict(item) for item in self.ranges],
            "keyed": self.keyed,
            **self.options,
        }


@dataclass
class DateRangeAggregation(Aggregation):
    """日期范围聚合（field、format、ranges 必填）"""

    kind: ClassVar[AggregationKind] = AggregationKind.DATE_RANGE

    field: str = ""
    format: str = ""
    ranges: list[Any] = dataclass_field(default_factory=list)
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)
        if not isinstance(self.format, str) or not self.format:
            raise _fail(self.kind, self.alias, "format 不能为空")
        self.ranges = _normalize_ranges(self.kind, self.alias, self.ranges)

    def body(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "format": self.format,
            "ranges": [dict(item) for item in self.ranges],
            **self.options,
        }


@dataclass
class Ipv4RangeAggregation(Aggregation):
    """IPv4 范围聚合

    范围为字符串时视为 CIDR 掩码（{"mask": "10.0.0.0/25"}）。
    """

    kind: ClassVar[AggregationKind] = AggregationKind.IP_RANGE

    field: str = ""
    ranges: list[Any] = dataclass_field(default_factory=list)
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)
        if isinstance(self.ranges, (str, bytes)) or not isinstance(self.ranges, Sequence):
            raise _fail(self.kind, self.alias, "至少需要一个范围")
        masks = [{"mask": item} if isinstance(item, str) else item for item in self.ranges]
        self.ranges = _normalize_ranges(
            self.kind, self.alias, masks, keys=("from", "to", "key", "mask")
        )

    def body(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "ranges": [dict(item) for item in self.ranges],
            **self.options,
        }


@dataclass
class GeoDistanceAggregation(Aggregation):
    """地理距离聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.GEO_DISTANCE

    field: str = ""
    origin: Any = None
    ranges: list[Any] = dataclass_field(default_factory=list)
    unit: str | None = None
    distance_type: str | None = None
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)
        if self.origin is None or self.origin == "":
            raise _fail(self.kind, self.alias, "origin 不能为空")
        self.ranges = _normalize_ranges(self.kind, self.alias, self.ranges)

    def body(self) -> dict[str, Any]:
        return merge_params(
            {
                "field": self.field,
                "origin": self.origin,
                "unit": self.unit,
                "distance_type": self.distance_type,
                "ranges": [dict(item) for item in self.ranges],
            },
            self.options,
        )


@dataclass
class GeoHashGridAggregation(Aggregation):
    """geohash 网格聚合"""

    kind: ClassVar[AggregationKind] = AggregationKind.GEOHASH_GRID

    field: str = ""
    precision: int | float | str | None = None
    size: int | None = None
    shard_size: int | None = None
    options: dict[str, Any] = dataclass_field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        self._require_field(self.field)

    def body(self) -> dict[str, Any]:
        return merge_params(
            {
                "field": self.field,
                "precision": self.precision,
                "size": self.size,
                "shard_size": self.shard_size,
            },
            self.options,
        )


__all__ = [
    "AggregationKind",
    "AGGREGATION_TYPES",
    "Aggregation",
    "AvgAggregation",
    "SumAggregation",
    "MinAggregation",
    "MaxAggregation",
    "StatsAggregation",
    "ValueCountAggregation",
    "CardinalityAggregation",
    "PercentilesAggregation",
    "PercentileRanksAggregation",
    "GeoBoundsAggregation",
    "TermsAggregation",
    "MissingAggregation",
    "HistogramAggregation",
    "RangeAggregation",
    "DateRangeAggregation",
    "Ipv4RangeAggregation",
    "GeoDistanceAggregation",
    "GeoHashGridAggregation",
]
