"""Elasticsearch 连接

同步 Elasticsearch 客户端的薄封装，向构建器提供
``search(index, doc_type, body)`` 接口。

- 懒连接：首次使用时才创建底层客户端
- 多租户隔离：通过索引前缀
- 重试与超时由 elasticsearch 客户端负责（max_retries / request_timeout）
- 传输错误记录日志后原样抛出
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from elasticsearch import ApiError, Elasticsearch, TransportError

from elastic_devtools.config.settings import Settings, get_settings
from elastic_devtools.observability.logging import get_logger
from elastic_devtools.search.errors import InvalidArgumentError

logger = get_logger(__name__)

# 请求体键 → elasticsearch-py 关键字参数
_BODY_PARAMS = {"from": "from_", "_source": "source"}

_JSON_HEADERS = {"accept": "application/json", "content-type": "application/json"}


class Connection:
    """Elasticsearch 同步连接"""

    def __init__(
        self,
        settings: Settings | None = None,
        client: Elasticsearch | None = None,
    ) -> None:
        """初始化

        Args:
            settings: 连接配置，None 时读取全局配置
            client: 已有的 Elasticsearch 客户端（传入时不再自行创建）
        """
        self.settings = settings or get_settings()
        self.index_prefix = self.settings.index_prefix
        self._client = client

    @classmethod
    def from_client(cls, client: Elasticsearch, index_prefix: str = "") -> Connection:
        """包装已有客户端"""
        return cls(settings=Settings(index_prefix=index_prefix), client=client)

    def connect(self) -> Elasticsearch:
        """创建底层客户端（幂等）"""
        if self._client is not None:
            return self._client

        settings = self.settings
        if settings.api_key:
            auth: dict[str, Any] = {"api_key": settings.api_key}
        elif settings.username and settings.password:
            auth = {"basic_auth": (settings.username, settings.password)}
        else:
            auth = {}

        self._client = Elasticsearch(
            hosts=settings.host_list,
            verify_certs=settings.verify_certs,
            request_timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_on_timeout=settings.retry_on_timeout,
            **auth,
        )
        logger.info(
            "elasticsearch_client_created",
            hosts=settings.host_list,
            max_retries=settings.max_retries,
        )
        return self._client

    @property
    def client(self) -> Elasticsearch:
        """获取底层客户端（必要时创建）"""
        return self.connect()

    def _resolve_index(self, index: str | None) -> str | None:
        """解析索引名称（添加前缀）

        Args:
            index: 原始索引名

        Returns:
            带前缀的索引名
        """
        if index and self.index_prefix and not index.startswith(self.index_prefix):
            return f"{self.index_prefix}_{index}"
        return index

    def search(
        self,
        index: str | None,
        doc_type: str | None,
        body: Mapping[str, Any],
    ) -> dict[str, Any]:
        """执行搜索

        Args:
            index: 索引名称（None 表示全部索引）
            doc_type: 映射类型（仅旧版本集群使用）
            body: 编译后的请求体

        Returns:
            原始响应字典

        Raises:
            elasticsearch.ApiError / TransportError: 原样抛出，不做重试
        """
        resolved_index = self._resolve_index(index)

        try:
            if doc_type:
                if not resolved_index:
                    raise InvalidArgumentError("指定 type 时必须同时指定 index")
                response = self.client.perform_request(
                    "POST",
                    f"/{resolved_index}/{doc_type}/_search",
                    headers=_JSON_HEADERS,
                    body=dict(body),
                )
            else:
                params = {_BODY_PARAMS.get(key, key): value for key, value in body.items()}
                response = self.client.search(index=resolved_index, **params)

        except (ApiError, TransportError) as e:
            logger.error(
                "elasticsearch_search_failed",
                index=resolved_index,
                doc_type=doc_type,
                error=str(e),
            )
            raise

        raw = getattr(response, "body", response)
        hits = raw.get("hits") if isinstance(raw, Mapping) else None
        logger.debug(
            "search_executed",
            index=resolved_index,
            hits=len(hits.get("hits") or []) if isinstance(hits, Mapping) else None,
        )
        return raw

    def ping(self) -> bool:
        """检查连接是否正常"""
        try:
            return bool(self.client.ping())
        except (ApiError, TransportError) as e:
            logger.warning("elasticsearch_ping_failed", error=str(e))
            return False

    def close(self) -> None:
        """关闭客户端连接"""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("elasticsearch_closed")

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


__all__ = ["Connection"]
