from fastapi import APIRouter, Depends
from api.deps import get_services
from schemas.friends import UserExistsResponse
from services.container import Services
from utils.usernames import normalize_username

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=list[str])
async def search_users(
    q: str = "",
    excluding: str | None = None,
    services: Services = Depends(get_services),
):
    """Usernames containing ``q`` (case-insensitive), minus ``excluding``."""
    return await services.directory.suggest(q, excluding=excluding)


@router.get("/{username}/exists", response_model=UserExistsResponse)
async def user_exists(username: str, services: Services = Depends(get_services)):
    name = normalize_username(username)
    return UserExistsResponse(username=name, exists=await services.directory.exists(name))
