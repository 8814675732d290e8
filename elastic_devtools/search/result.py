"""搜索结果

将 Elasticsearch 原始响应规范化为总命中数 + 有序命中列表。
命中列表存放在 HitBuffer 中，可被 Paginator 共享（见 paginator 模块）。
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from elastic_devtools.search.errors import MalformedResponseError


@dataclass
class Hit:
    """单条命中

    Attributes:
        id: 文档 ID
        score: 相关度分数（按字段排序时可能为 None）
        source: 文档内容
        highlight: 高亮片段
        index: 索引名称
        sort: 排序值
    """

    id: str | None
    score: float | None
    source: dict[str, Any] = field(default_factory=dict)
    highlight: dict[str, list[str]] | None = None
    index: str | None = None
    sort: list[Any] | None = None

    @classmethod
    def from_es_hit(cls, hit: Mapping[str, Any]) -> Hit:
        """从 Elasticsearch 命中构建

        Args:
            hit: hits.hits 中的单个元素

        Returns:
            Hit 实例
        """
        if not isinstance(hit, Mapping):
            raise MalformedResponseError(f"命中项必须是对象，实际为 {type(hit).__name__}", hit)

        return cls(
            id=hit.get("_id"),
            score=hit.get("_score"),
            source=dict(hit.get("_source") or {}),
            highlight=hit.get("highlight"),
            index=hit.get("_index"),
            sort=hit.get("sort"),
        )


class HitBuffer:
    """命中列表的共享存储单元

    Result 与 Paginator 持有同一个 HitBuffer，整体替换列表时
    两侧看到的始终是同一个对象。
    """

    __slots__ = ("items",)

    def __init__(self, items: list[Any]) -> None:
        self.items = items

    def replace(self, items: Sequence[Any]) -> None:
        self.items = items if isinstance(items, list) else list(items)


def _parse_total(total: Any, response: Any) -> int:
    # ES >= 7: {"value": n, "relation": "eq"}；更早版本为整数
    if isinstance(total, Mapping):
        if "value" not in total:
            raise MalformedResponseError("hits.total 缺少 value 字段", response)
        total = total["value"]

    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise MalformedResponseError(f"hits.total 必须是非负整数，实际为 {total!r}", response)
    return total


class Result:
    """搜索结果

    Attributes:
        total_hits: 总命中数
        max_score: 最高分数
        took: 耗时（毫秒）
        aggregations: 聚合结果（别名 → 原始结果）
        raw: 原始响应
    """

    def __init__(self, response: Mapping[str, Any]) -> None:
        """规范化原始响应

        Args:
            response: Elasticsearch 响应（dict 或 ObjectApiResponse）

        Raises:
            MalformedResponseError: 缺少 hits / hits.total / hits.hits
        """
        raw = getattr(response, "body", response)
        if not isinstance(raw, Mapping):
            raise MalformedResponseError("响应必须是对象", response)

        hits_info = raw.get("hits")
        if not isinstance(hits_info, Mapping):
            raise MalformedResponseError("响应缺少 hits 字段", response)
        if "total" not in hits_info:
            raise MalformedResponseError("响应缺少 hits.total 字段", response)

        hits_raw = hits_info.get("hits")
        if isinstance(hits_raw, (str, bytes)) or not isinstance(hits_raw, Sequence):
            raise MalformedResponseError("响应缺少 hits.hits 列表", response)

        self.total_hits = _parse_total(hits_info["total"], response)
        self.max_score: float | None = hits_info.get("max_score")
        self.took: int | None = raw.get("took")
        self.aggregations: dict[str, Any] = dict(raw.get("aggregations") or {})
        self.raw = raw
        self._buffer = HitBuffer([Hit.from_es_hit(hit) for hit in hits_raw])

    @property
    def buffer(self) -> HitBuffer:
        return self._buffer

    @property
    def hits(self) -> list[Any]:
        """当前命中列表（与 Paginator.items 为同一对象）"""
        return self._buffer.items

    @hits.setter
    def hits(self, hits: Sequence[Any]) -> None:
        self.set_hits(hits)

    def set_hits(self, hits: Sequence[Any]) -> None:
        """整体替换命中列表（例如替换为领域对象）"""
        self._buffer.replace(hits)

    def sources(self) -> list[dict[str, Any]]:
        """所有命中的 _source（跳过已被替换的非 Hit 元素）"""
        return [hit.source for hit in self.hits if isinstance(hit, Hit)]

    def aggregation(self, alias: str) -> dict[str, Any]:
        """获取指定别名的聚合结果

        Raises:
            KeyError: 别名不存在
        """
        return self.aggregations[alias]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.hits)

    def __len__(self) -> int:
        return len(self.hits)

    def __repr__(self) -> str:
        return f"Result(total_hits={self.total_hits}, hits={len(self.hits)})"


__all__ = ["Hit", "HitBuffer", "Result"]
