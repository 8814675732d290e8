"""
日志单元测试

测试 elastic_devtools/observability/logging.py 与各模块的结构化日志事件。
"""

from unittest.mock import patch

from structlog.testing import capture_logs

from elastic_devtools.observability.logging import configure_from_settings
from elastic_devtools.search.aggregation_builder import AggregationBuilder


class TestConfigureLogging:
    """测试日志配置"""

    def test_configure_from_settings(self, settings):
        settings = settings.model_copy(update={"log_level": "DEBUG", "log_format": "json"})

        with patch("elastic_devtools.observability.logging.configure_logging") as configure:
            configure_from_settings(settings)

        configure.assert_called_once_with(
            environment="test",
            log_level="DEBUG",
            log_format="json",
        )


class TestLogEvents:
    """测试日志事件"""

    def test_aggregation_overridden(self):
        with capture_logs() as logs:
            AggregationBuilder().sum("total", "price").max("total", "price")

        events = [log for log in logs if log["event"] == "aggregation_overridden"]
        assert len(events) == 1
        assert events[0]["log_level"] == "debug"
        assert events[0]["alias"] == "total"
        assert events[0]["previous"] == "sum"
        assert events[0]["current"] == "max"

    def test_paginate_executed(self, builder, fake_connection, es_response):
        fake_connection.search.return_value = es_response(total=12)

        with capture_logs() as logs:
            builder.paginate(limit=5, page=2)

        events = [log for log in logs if log["event"] == "paginate_executed"]
        assert len(events) == 1
        assert (events[0]["page"], events[0]["limit"], events[0]["total"]) == (2, 5, 12)
