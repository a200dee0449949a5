"""健康检查路由

GET /health: 进程存活即 200
GET /ready:  数据库可用即 ready；profile=llm/full 时附带视觉能力探测结果。
             视觉不可用不影响 ready，对话会走降级回答。
"""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, Query
from starlette.responses import JSONResponse
from vistachat.core.store import StoreGroup
from vistachat.provider import VisionProbe

from ..deps import get_store_group, get_vision_probe

log = structlog.get_logger()

router = APIRouter()

ReadyProfile = Literal["core", "llm", "full"]


async def _check_sqlite(store_group: StoreGroup) -> str:
    try:
        cursor = await store_group.conn.execute("SELECT COUNT(*) FROM messages")
        await cursor.fetchone()
    except Exception as e:
        log.warning("ready_sqlite_failed", error=str(e))
        return f"error: {e}"
    return "ok"


async def _check_vision(probe: VisionProbe | None, profile: ReadyProfile) -> str:
    if profile == "core" or probe is None:
        return "skipped"
    # 走探测缓存，TTL 内不会重复请求模型
    return "supported" if await probe.supports_vision() else "unsupported"


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    profile: ReadyProfile = Query(default="core", description="core 仅检查存储；llm/full 额外探测视觉能力"),
    store_group: StoreGroup = Depends(get_store_group),
    probe: VisionProbe | None = Depends(get_vision_probe),
):
    checks = {
        "sqlite": await _check_sqlite(store_group),
        "vision": await _check_vision(probe, profile),
    }
    is_ready = checks["sqlite"] == "ok"
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "status": "ready" if is_ready else "not_ready",
            "profile": profile,
            "checks": checks,
        },
    )
