"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含对象存储连通性与磁盘空间。
"""

import shutil

import structlog
from fastapi import APIRouter, Request
from guestbook.core.message_store import MESSAGE_PREFIX
from guestbook.core.store import SqliteObjectStore
from guestbook.core.store.sqlite_init import verify_wal_mode
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 验证对象存储可用

    检查项：
    1. object_store: 能否完成一次列举
    2. sqlite_wal: SQLite 后端是否处于 WAL 模式（其他后端 skipped）
    3. disk_space_mb: 磁盘剩余空间
    """
    checks = {}
    all_ok = True

    # 1. 对象存储列举
    objects = None
    try:
        objects = request.app.state.message_store.objects
        await objects.list_keys(1, prefix=MESSAGE_PREFIX)
        checks["object_store"] = "ok"
    except Exception as e:
        log.warning("ready_check_failed", check="object_store", error=str(e))
        checks["object_store"] = f"error: {str(e)}"
        all_ok = False

    # 2. SQLite WAL 模式
    if isinstance(objects, SqliteObjectStore):
        try:
            checks["sqlite_wal"] = "ok" if await verify_wal_mode(objects.conn) else "off"
        except Exception as e:
            checks["sqlite_wal"] = f"error: {str(e)}"
            all_ok = False
    else:
        checks["sqlite_wal"] = "skipped"

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={"status": status_text, "checks": checks},
    )
