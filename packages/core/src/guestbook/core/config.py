"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、存储后端、分页默认值、匿名作者与日志设置。
"""

import os
from pathlib import Path

import structlog

log = structlog.get_logger()

# 对象存储单次列举上限（与 S3 ListObjectsV2 一致）
MAX_LIST_KEYS: int = 1000

# 支持的存储后端
STORE_BACKENDS: tuple[str, ...] = ("sqlite", "memory")

_DEFAULT_PAGE_SIZE = 20

# 日志渲染模式与级别
LOG_FORMATS: tuple[str, ...] = ("dev", "json")
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("GUESTBOOK_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "GUESTBOOK_DB_PATH",
        str(_get_base_dir() / "sqlite" / "guestbook.db"),
    )


def get_store_backend() -> str:
    """获取对象存储后端：sqlite（默认）/ memory"""
    backend = os.environ.get("GUESTBOOK_STORE_BACKEND", "sqlite").lower()
    if backend not in STORE_BACKENDS:
        log.warning(
            "invalid_store_backend",
            env_var="GUESTBOOK_STORE_BACKEND",
            value=backend,
            fallback="sqlite",
        )
        return "sqlite"
    return backend


def get_default_page_size() -> int:
    """获取默认分页大小，非法值回退到 20"""
    val = os.environ.get("GUESTBOOK_DEFAULT_PAGE_SIZE")
    if val is None:
        return _DEFAULT_PAGE_SIZE
    try:
        size = int(val)
    except ValueError:
        size = 0
    if size <= 0:
        log.warning(
            "invalid_page_size_config",
            env_var="GUESTBOOK_DEFAULT_PAGE_SIZE",
            value=val,
            fallback=_DEFAULT_PAGE_SIZE,
        )
        return _DEFAULT_PAGE_SIZE
    return size


def get_default_author() -> str:
    """获取匿名作者标识"""
    return os.environ.get("GUESTBOOK_DEFAULT_AUTHOR", "anonymous")


def get_log_format() -> str:
    """获取日志渲染模式：dev（默认）/ json"""
    log_format = os.environ.get("GUESTBOOK_LOG_FORMAT", "dev").lower()
    if log_format not in LOG_FORMATS:
        log.warning(
            "invalid_log_format",
            env_var="GUESTBOOK_LOG_FORMAT",
            value=log_format,
            fallback="dev",
        )
        return "dev"
    return log_format


def get_log_level() -> str:
    """获取日志级别，非法值回退到 INFO"""
    level = os.environ.get("GUESTBOOK_LOG_LEVEL", "INFO").upper()
    if level not in LOG_LEVELS:
        log.warning(
            "invalid_log_level",
            env_var="GUESTBOOK_LOG_LEVEL",
            value=level,
            fallback="INFO",
        )
        return "INFO"
    return level


def get_logfire_enabled() -> bool:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时启用 Logfire"""
    return os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() == "true"
