"""
ElasticDevTools 入口单元测试

测试 elastic_devtools/client.py 的构建器创建与资源释放。
"""

from unittest.mock import patch

from elastic_devtools.client import ElasticDevTools, elasticsearch_context
from elastic_devtools.search.aggregation_builder import AggregationBuilder
from elastic_devtools.search.builder import SearchBuilder
from elastic_devtools.search.connection import Connection


class TestElasticDevTools:
    """测试入口对象"""

    def test_search_returns_fresh_builder(self, settings, fake_connection):
        tools = ElasticDevTools(settings, connection=fake_connection)

        first = tools.search()
        second = tools.search()

        assert isinstance(first, SearchBuilder)
        assert first is not second
        assert first.document is not second.document
        assert first.get_connection() is fake_connection

    def test_end_to_end_paginate(self, settings, fake_connection, es_response, es_hit):
        fake_connection.search.return_value = es_response(
            total=97, hits=[es_hit(str(i)) for i in range(25)]
        )
        tools = ElasticDevTools(settings, connection=fake_connection, page_resolver=lambda: 3)

        paginator = tools.search().index("products").match("title", "laptop").paginate()

        fake_connection.search.assert_called_once_with(
            "products",
            None,
            {
                "query": {"match": {"title": {"query": "laptop"}}},
                "from": 50,
                "size": 25,
            },
        )
        assert paginator.page == 3
        assert paginator.has_more_pages is True

    def test_default_page_size_from_settings(self, settings, fake_connection):
        settings = settings.model_copy(update={"default_page_size": 10})
        tools = ElasticDevTools(settings, connection=fake_connection)

        assert tools.search().paginate().page_size == 10

    def test_aggregation_is_standalone(self, settings, fake_connection):
        tools = ElasticDevTools(settings, connection=fake_connection)
        aggs = tools.aggregation()

        assert isinstance(aggs, AggregationBuilder)
        assert aggs.average("avg_price", "price").compile() == {
            "aggs": {"avg_price": {"avg": {"field": "price"}}}
        }

    def test_default_connection_from_settings(self, settings):
        tools = ElasticDevTools(settings)
        assert isinstance(tools.connection, Connection)
        assert tools.connection.settings is settings

    def test_configures_logging_from_settings(self, settings, fake_connection):
        with patch("elastic_devtools.client.configure_from_settings") as configure:
            ElasticDevTools(settings, connection=fake_connection)
        configure.assert_called_once_with(settings)

    def test_debug_events_silent_at_info_level(self, settings, fake_connection, capsys):
        """INFO 级别下执行查询不向 stdout 输出任何内容"""
        tools = ElasticDevTools(settings, connection=fake_connection)

        tools.search().index("products").term("a", 1).execute()
        tools.search().paginate(limit=5, page=2)

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_context_manager_closes(self, settings, fake_connection):
        with ElasticDevTools(settings, connection=fake_connection):
            pass
        fake_connection.close.assert_called_once()


class TestElasticsearchContext:
    """测试上下文管理器"""

    def test_overrides_and_close(self, settings):
        with patch("elastic_devtools.client.get_settings", return_value=settings):
            with patch.object(Connection, "close") as close:
                with elasticsearch_context(
                    hosts=["http://es1:9200", "http://es2:9200"],
                    index_prefix="tenant",
                ) as tools:
                    assert tools.settings.host_list == ["http://es1:9200", "http://es2:9200"]
                    assert tools.connection.index_prefix == "tenant"

                close.assert_called_once()
