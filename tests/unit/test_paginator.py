"""
分页器单元测试

测试 elastic_devtools/search/paginator.py 的分页计算与命中共享。
"""

import pytest

from elastic_devtools.search.errors import InvalidArgumentError
from elastic_devtools.search.paginator import Paginator
from elastic_devtools.search.result import Result


@pytest.fixture
def make_paginator(es_response, es_hit):
    def _make(total=97, page=1, page_size=25, count=None):
        count = min(page_size, total) if count is None else count
        hits = [es_hit(str(i)) for i in range(count)]
        return Paginator(Result(es_response(total=total, hits=hits)), page_size, page)

    return _make


class TestPageMath:
    """测试分页计算"""

    def test_last_page(self, make_paginator):
        """97 条、每页 25 条共 4 页"""
        assert make_paginator(total=97).last_page == 4

    def test_exact_multiple(self, make_paginator):
        assert make_paginator(total=100).last_page == 4

    def test_has_more_pages(self, make_paginator):
        assert make_paginator(page=3).has_more_pages is True
        assert make_paginator(page=4, count=22).has_more_pages is False

    def test_last_page_exact_for_large_totals(self, es_response):
        """超大 total 下按整数计算"""
        total = 10**17 + 1
        paginator = Paginator(Result(es_response(total=total)), 10, 1)
        assert paginator.last_page == 10**16 + 1

    def test_empty_result(self, make_paginator):
        paginator = make_paginator(total=0)

        assert paginator.last_page == 0
        assert paginator.has_more_pages is False
        assert paginator.first_item is None
        assert paginator.last_item is None

    def test_neighbours(self, make_paginator):
        first = make_paginator(page=1)
        assert first.on_first_page
        assert first.previous_page is None
        assert first.next_page == 2

        last = make_paginator(page=4, count=22)
        assert last.previous_page == 3
        assert last.next_page is None

    def test_item_positions(self, make_paginator):
        paginator = make_paginator(page=4, count=22)
        assert paginator.first_item == 76
        assert paginator.last_item == 97

    def test_to_dict(self, make_paginator):
        data = make_paginator(total=30, page=2, page_size=10, count=10).to_dict()

        assert data["current_page"] == 2
        assert data["per_page"] == 10
        assert data["total"] == 30
        assert data["last_page"] == 3
        assert data["from"] == 11
        assert data["to"] == 20
        assert data["has_more_pages"] is True
        assert len(data["data"]) == 10

    @pytest.mark.parametrize("page_size, page", [(0, 1), (10, 0), (True, 1)])
    def test_invalid_arguments(self, es_response, page_size, page):
        with pytest.raises(InvalidArgumentError):
            Paginator(Result(es_response()), page_size, page)


class TestSharedHits:
    """测试 items 与 Result.hits 共享同一存储"""

    def test_same_list_object(self, make_paginator):
        paginator = make_paginator()
        assert paginator.items is paginator.result.hits

    def test_replace_through_paginator(self, make_paginator):
        """通过分页器替换，Result 可见"""
        paginator = make_paginator(count=2)
        replacement = ["a", "b"]
        paginator.items = replacement

        assert paginator.result.hits is replacement
        assert list(paginator) == ["a", "b"]

    def test_replace_full_page(self, make_paginator):
        """整页 25 条替换后两侧看到同一序列"""
        paginator = make_paginator(total=97, page=1, page_size=25)
        hydrated = [f"record-{i}" for i in range(25)]

        paginator.result.set_hits(hydrated)

        assert paginator.items is hydrated
        assert paginator.items is paginator.result.hits
        assert len(paginator) == 25
        assert paginator.items[24] == "record-24"

    def test_replace_through_result(self, make_paginator):
        """通过 Result 替换，分页器可见"""
        paginator = make_paginator(count=2)
        paginator.result.set_hits(["x"])

        assert paginator.items == ["x"]
        assert len(paginator) == 1

    def test_in_place_mutation_visible(self, make_paginator):
        paginator = make_paginator(count=2)
        paginator.items.append("extra")
        assert paginator.result.hits[-1] == "extra"
