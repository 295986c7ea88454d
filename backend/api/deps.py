from functools import lru_cache
from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader
from config import get_settings
from database import AsyncSessionLocal
from services.container import Services, build_services

settings = get_settings()

_api_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=True)


@lru_cache
def get_services() -> Services:
    return build_services(AsyncSessionLocal, settings)


async def require_admin_key(key: str = Security(_api_key_header)) -> None:
    if not settings.ADMIN_API_KEY or key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid or missing admin key")
