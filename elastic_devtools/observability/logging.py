"""日志配置

使用 structlog 输出结构化日志，事件经标准库 logging 分发，
由调用方的 logging 处理器决定最终去向。

- 开发环境：彩色控制台输出，附带调用位置
- 生产环境：JSON 输出
- 构建器只记录 debug 级事件，默认 INFO 级别下不会产生输出
"""

import structlog


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_format: str = "console",
) -> None:
    """配置 structlog

    Args:
        environment: 运行环境（development / staging / production / test）
        log_level: 最低日志级别
        log_format: 输出格式（json / console）
    """
    is_production = environment == "production"

    if log_format == "json" or is_production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    callsite = (
        []
        if is_production
        else [
            structlog.processors.CallsiteParameter.FILENAME,
            structlog.processors.CallsiteParameter.LINENO,
            structlog.processors.CallsiteParameter.FUNC_NAME,
        ]
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(callsite),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # 模块级 logger 在首次使用时固化配置，仅生产环境开启
        cache_logger_on_first_use=is_production,
    )


def configure_from_settings(settings=None) -> None:
    """按 Settings 配置日志

    Args:
        settings: 配置实例，None 时读取全局配置
    """
    if settings is None:
        from elastic_devtools.config.settings import get_settings

        settings = get_settings()

    configure_logging(
        environment=settings.environment.value,
        log_level=settings.log_level,
        log_format=settings.log_format,
    )


def get_logger(name: str | None = None, **kwargs) -> structlog.stdlib.BoundLogger:
    """获取日志记录器

    Args:
        name: 日志记录器名称（通常使用 __name__）
        **kwargs: 额外的上下文变量

    Returns:
        BoundLogger 实例

    Examples:
        ```python
        log = get_logger(__name__)
        log.debug("search_builder_executed", index="products", hits=25)
        ```
    """
    if name:
        kwargs["name"] = name
    return structlog.get_logger(**kwargs)
