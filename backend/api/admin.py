"""Admin endpoints — identity sync from the external identity service, maintenance.

All routes require the X-Admin-Key header matching ADMIN_API_KEY in settings.
"""
from fastapi import APIRouter, Depends, HTTPException
from api.deps import get_services, require_admin_key
from schemas.friends import DirectoryUserResponse
from services.container import Services
from services.scheduler import (
    retention_cutoff, set_scheduler_enabled, is_scheduler_enabled,
)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


# ── Scheduler toggle ──────────────────────────────────────────────────────────

@router.get("/scheduler")
async def get_scheduler_status():
    return {"enabled": is_scheduler_enabled()}


@router.post("/scheduler/enable")
async def enable_scheduler():
    set_scheduler_enabled(True)
    return {"enabled": True}


@router.post("/scheduler/disable")
async def disable_scheduler():
    set_scheduler_enabled(False)
    return {"enabled": False}


# ── Identity sync ─────────────────────────────────────────────────────────────

@router.get("/users", response_model=list[DirectoryUserResponse])
async def list_users(services: Services = Depends(get_services)):
    users = await services.directory.list_usernames()
    return [DirectoryUserResponse(username=u.username, active=u.is_active) for u in users]


@router.put("/users/{username}", response_model=DirectoryUserResponse)
async def sync_user(username: str, services: Services = Depends(get_services)):
    try:
        user = await services.directory.register(username)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DirectoryUserResponse(username=user.username, active=user.is_active)


@router.delete("/users/{username}", response_model=DirectoryUserResponse)
async def deactivate_user(username: str, services: Services = Depends(get_services)):
    user = await services.directory.deactivate(username)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return DirectoryUserResponse(username=user.username, active=user.is_active)


# ── Maintenance ───────────────────────────────────────────────────────────────

@router.post("/maintenance/prune")
async def prune_history(services: Services = Depends(get_services)):
    # Store failures surface as 503/504 here, unlike the scheduled job.
    deleted = await services.store.prune_history(retention_cutoff())
    return {"deleted": deleted}
