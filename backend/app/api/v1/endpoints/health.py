from __future__ import annotations

from fastapi import APIRouter

from app.core.config import settings
from app.services.employee_service import employee_service

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    services: dict[str, str] = {}

    try:
        if employee_service.initialized:
            ok = await employee_service.check_connection()
            services["cosmos_db"] = "ok" if ok else "error"
        else:
            services["cosmos_db"] = "not_configured"
    except Exception:
        services["cosmos_db"] = "error"

    services["attachment_store"] = "ok" if employee_service.attachments.check() else "error"

    all_ok = all(v in ("ok", "not_configured") for v in services.values())

    return {
        "status": "healthy" if all_ok else "degraded",
        "version": settings.APP_VERSION,
        "attachment_mode": employee_service.attachments.mode,
        "services": services,
    }


@router.get("/ready")
async def readiness_probe():
    return {"ready": True}
