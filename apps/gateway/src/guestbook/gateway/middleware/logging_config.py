"""网关日志配置

structlog 与标准库 logging（uvicorn、aiosqlite）共用一个渲染器。
渲染模式与级别取自 guestbook.core.config，非法值在那里回退。

每条日志附带 service 字段；Bearer 凭据在渲染前被遮盖。
uvicorn 的访问日志降为 WARNING，请求日志由 LoggingMiddleware 负责。
"""

import logging
from collections.abc import MutableMapping
from typing import Any

import structlog
from fastapi import FastAPI
from guestbook.core.config import get_log_format, get_log_level, get_logfire_enabled

SERVICE_NAME = "guestbook-gateway"

# 值会被整体遮盖的字段
_CREDENTIAL_KEYS = frozenset({"authorization", "token", "jwt_secret"})
_BEARER_PREFIX = "Bearer "


def add_service_name(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def redact_credentials(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """遮盖凭据字段，以及任何以 "Bearer " 开头的字符串值"""
    for key, value in event_dict.items():
        if key in _CREDENTIAL_KEYS:
            event_dict[key] = "***"
        elif isinstance(value, str) and value.startswith(_BEARER_PREFIX):
            event_dict[key] = _BEARER_PREFIX + "***"
    return event_dict


def build_processors() -> list[structlog.types.Processor]:
    """structlog 与标准库日志共享的处理链"""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service_name,
        redact_credentials,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化日志

    Args:
        log_format: "dev" / "json"，None 时读 GUESTBOOK_LOG_FORMAT
        log_level: 标准级别名，None 时读 GUESTBOOK_LOG_LEVEL
    """
    log_format = log_format or get_log_format()
    log_level = log_level or get_log_level()
    shared_processors = build_processors()

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def setup_logfire(app: FastAPI) -> None:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时接入 Logfire（需要 LOGFIRE_TOKEN）"""
    if not get_logfire_enabled():
        return
    try:
        import logfire

        logfire.configure(service_name=SERVICE_NAME)
        logfire.instrument_fastapi(app)
    except Exception as e:
        # Logfire 不可用时只保留本地日志
        structlog.get_logger().warning("logfire_init_failed", error=str(e))
