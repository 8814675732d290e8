"""ElasticDevTools 入口

持有一个 Connection，负责创建搜索构建器与独立的聚合构建器。

使用示例:
    ```python
    from elastic_devtools import ElasticDevTools

    with ElasticDevTools() as tools:
        paginator = (tools.search()
            .index("products")
            .match("title", "laptop")
            .paginate(limit=20, page=2))

        for hit in paginator:
            print(hit.id, hit.source["title"])
    ```
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from elastic_devtools.config.settings import Settings, get_settings
from elastic_devtools.observability.logging import configure_from_settings
from elastic_devtools.search.aggregation_builder import AggregationBuilder
from elastic_devtools.search.builder import PageResolver, SearchBuilder, SearchConnection
from elastic_devtools.search.connection import Connection


class ElasticDevTools:
    """Elasticsearch 查询构建入口"""

    def __init__(
        self,
        settings: Settings | None = None,
        connection: SearchConnection | None = None,
        page_resolver: PageResolver | None = None,
    ) -> None:
        """初始化

        Args:
            settings: 配置实例，None 时读取全局配置
            connection: 自定义连接（测试时可注入假连接），None 时按配置创建
            page_resolver: 分页时解析当前页码的回调
        """
        self.settings = settings or get_settings()
        configure_from_settings(self.settings)
        self.connection = connection if connection is not None else Connection(self.settings)
        self.page_resolver = page_resolver

    def search(self) -> SearchBuilder:
        """创建新的搜索构建器"""
        return SearchBuilder(
            self.connection,
            page_resolver=self.page_resolver,
            default_page_size=self.settings.default_page_size,
        )

    def aggregation(self) -> AggregationBuilder:
        """创建独立的聚合构建器"""
        return AggregationBuilder()

    def close(self) -> None:
        """关闭底层连接"""
        close = getattr(self.connection, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> ElasticDevTools:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@contextmanager
def elasticsearch_context(
    hosts: str | list[str] | None = None,
    username: str | None = None,
    password: str | None = None,
    api_key: str | None = None,
    index_prefix: str | None = None,
    page_resolver: PageResolver | None = None,
) -> Iterator[ElasticDevTools]:
    """ElasticDevTools 上下文管理器

    未传入的参数沿用全局配置。

    Args:
        hosts: Elasticsearch 主机地址
        username: 用户名
        password: 密码
        api_key: API Key
        index_prefix: 索引前缀
        page_resolver: 页码解析回调

    Yields:
        ElasticDevTools 实例
    """
    overrides: dict[str, Any] = {
        "hosts": ",".join(hosts) if isinstance(hosts, list) else hosts,
        "username": username,
        "password": password,
        "api_key": api_key,
        "index_prefix": index_prefix,
    }
    settings = get_settings().model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )

    tools = ElasticDevTools(settings=settings, page_resolver=page_resolver)
    try:
        yield tools
    finally:
        tools.close()


__all__ = ["ElasticDevTools", "elasticsearch_context"]
