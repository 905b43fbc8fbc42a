"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含各集合快照文件状态、数据目录、磁盘空间。
"""

import shutil

import structlog
from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse
from taskboard.core.store import StoreGroup

from ..deps import get_store_group, get_update_hub
from ..services.update_hub import UpdateHub

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    store_group: StoreGroup = Depends(get_store_group),
    hub: UpdateHub = Depends(get_update_hub),
):
    """Readiness 检查 -- 验证快照文件可读

    检查项：
    1. tasks / users: ok、missing（首次读取时创建）或 corrupted
    2. disk_space_mb: 数据目录所在磁盘剩余空间
    3. subscribers: 当前 SSE 订阅者数量（仅展示）
    """
    checks = {}
    all_ok = True

    # 1. 快照文件检查
    for store in store_group.all():
        try:
            status = await store.check()
        except Exception as e:
            log.warning("ready_check_error", collection=store.collection.value, error=str(e))
            status = f"error: {str(e)}"
        checks[store.collection.value] = status
        if status not in ("ok", "missing"):
            all_ok = False

    # 2. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage(store_group.task_store.path.parent)
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except Exception:
        checks["disk_space_mb"] = 0
        all_ok = False

    checks["subscribers"] = hub.subscriber_count

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )
