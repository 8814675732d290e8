"""分页器

包装一次分页查询的 Result。``items`` 与 ``Result.hits`` 共享同一个
HitBuffer：任一侧整体替换列表（如把原始命中替换为领域对象），另一侧
立即可见；对列表本身的原地修改同样可见。
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any

from elastic_devtools.search.errors import InvalidArgumentError
from elastic_devtools.search.result import Result


class Paginator:
    """基于 offset 的分页结果"""

    def __init__(self, result: Result, page_size: int, page: int) -> None:
        """初始化

        Args:
            result: 当前页的查询结果
            page_size: 每页大小
            page: 当前页码（从 1 开始）
        """
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise InvalidArgumentError("page_size 必须是正整数")
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidArgumentError("page 必须是大于等于 1 的整数")

        self._result = result
        self._buffer = result.buffer
        self.page_size = page_size
        self.page = page

    @property
    def result(self) -> Result:
        return self._result

    @property
    def items(self) -> list[Any]:
        return self._buffer.items

    @items.setter
    def items(self, items: Sequence[Any]) -> None:
        self._buffer.replace(items)

    @property
    def total(self) -> int:
        return self._result.total_hits

    @property
    def last_page(self) -> int:
        # 整数向上取整，超大 total 下也保持精确
        return -(-self.total // self.page_size)

    @property
    def has_more_pages(self) -> bool:
        return self.page < self.last_page

    @property
    def on_first_page(self) -> bool:
        return self.page <= 1

    @property
    def previous_page(self) -> int | None:
        return self.page - 1 if self.page > 1 else None

    @property
    def next_page(self) -> int | None:
        return self.page + 1 if self.has_more_pages else None

    @property
    def first_item(self) -> int | None:
        """当前页第一条的序号（从 1 开始），空页为 None"""
        if not self.items:
            return None
        return (self.page - 1) * self.page_size + 1

    @property
    def last_item(self) -> int | None:
        """当前页最后一条的序号，空页为 None"""
        first = self.first_item
        if first is None:
            return None
        return first + len(self.items) - 1

    def to_dict(self) -> dict[str, Any]:
        """分页元数据 + 当前页数据"""
        return {
            "current_page": self.page,
            "per_page": self.page_size,
            "total": self.total,
            "last_page": self.last_page,
            "from": self.first_item,
            "to": self.last_item,
            "has_more_pages": self.has_more_pages,
            "data": list(self.items),
        }

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        return (
            f"Paginator(page={self.page}, page_size={self.page_size}, "
            f"total={self.total}, last_page={self.last_page})"
        )


__all__ = ["Paginator"]
