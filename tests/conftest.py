"""测试配置"""

from unittest.mock import MagicMock

import pytest
import structlog

from elastic_devtools.config import settings as settings_module
from elastic_devtools.config.settings import Settings
from elastic_devtools.search.builder import SearchBuilder


def make_response(total=0, hits=None, aggregations=None, total_as_dict=True):
    """构造 Elasticsearch 响应"""
    hits = hits if hits is not None else []
    response = {
        "took": 3,
        "hits": {
            "total": {"value": total, "relation": "eq"} if total_as_dict else total,
            "max_score": 1.0 if hits else None,
            "hits": hits,
        },
    }
    if aggregations is not None:
        response["aggregations"] = aggregations
    return response


def make_hit(doc_id, source=None, score=1.0):
    """构造单条命中"""
    return {"_index": "products", "_id": doc_id, "_score": score, "_source": source or {}}


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """测试配置（不读取本地 conf.yaml）"""
    monkeypatch.setenv("ELASTIC_DEVTOOLS_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    return Settings(environment="test", hosts="http://localhost:9200")


@pytest.fixture
def fake_connection():
    """假连接，search 默认返回空结果"""
    connection = MagicMock()
    connection.search.return_value = make_response()
    return connection


@pytest.fixture
def builder(fake_connection):
    """绑定假连接的搜索构建器"""
    return SearchBuilder(fake_connection)


@pytest.fixture
def es_response():
    """响应构造函数"""
    return make_response


@pytest.fixture
def es_hit():
    """命中构造函数"""
    return make_hit


@pytest.fixture(autouse=True)
def reset_settings_singleton():
    """每个测试后清空全局配置单例"""
    yield
    settings_module._settings = None


@pytest.fixture(autouse=True)
def reset_logging():
    """每个测试后恢复 structlog 默认配置"""
    yield
    structlog.reset_defaults()
