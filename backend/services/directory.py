"""Identity directory — the set of usernames this service may relate.

Identities are owned by the external identity service, which pushes them in
through the admin sync routes. Everything here treats inactive users as if
they did not exist.
"""
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from models import User
from services.store_guard import bounded
from utils.usernames import normalize_username

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def known_usernames(db: AsyncSession, *usernames: str) -> set[str]:
    """Return the subset of ``usernames`` that are active in the directory."""
    result = await db.execute(
        select(User.username).where(User.username.in_(set(usernames)), User.is_active == True)  # noqa: E712
    )
    return set(result.scalars().all())


class IdentityDirectory:
    def __init__(self, session_factory: async_sessionmaker, timeout: float = 5.0,
                 search_limit: int = 20, min_query_length: int = 1):
        self._sessions = session_factory
        self._timeout = timeout
        self.search_limit = search_limit
        self.min_query_length = min_query_length

    async def exists(self, username: str) -> bool:
        name = normalize_username(username)
        if not name:
            return False
        async with bounded("directory.exists", self._timeout):
            async with self._sessions() as db:
                return bool(await known_usernames(db, name))

    async def suggest(self, query: str, excluding: str | None = None) -> list[str]:
        """Case-insensitive substring match over active usernames, sorted."""
        needle = query.strip().lower() if query else ""
        if len(needle) < max(self.min_query_length, 1):
            return []
        stmt = (
            select(User.username)
            .where(User.is_active == True, User.username.ilike(f"%{_escape_like(needle)}%", escape="\\"))  # noqa: E712
            .order_by(User.username.asc())
            .limit(self.search_limit)
        )
        excluded = normalize_username(excluding)
        if excluded:
            stmt = stmt.where(User.username != excluded)
        async with bounded("directory.suggest", self._timeout):
            async with self._sessions() as db:
                result = await db.execute(stmt)
                return list(result.scalars().all())

    async def list_usernames(self) -> list[User]:
        async with bounded("directory.list", self._timeout):
            async with self._sessions() as db:
                result = await db.execute(select(User).order_by(User.username.asc()))
                return list(result.scalars().all())

    async def register(self, username: str) -> User:
        """Add or reactivate ``username``. Idempotent."""
        name = normalize_username(username)
        if not name:
            raise ValueError("username must not be blank")
        async with bounded("directory.register", self._timeout):
            async with self._sessions() as db:
                user = await db.get(User, name)
                if user is None:
                    user = User(username=name, is_active=True)
                    db.add(user)
                    logger.info(f"Directory: registered {name}")
                elif not user.is_active:
                    user.is_active = True
                    logger.info(f"Directory: reactivated {name}")
                await db.commit()
                return user

    async def deactivate(self, username: str) -> User | None:
        name = normalize_username(username)
        async with bounded("directory.deactivate", self._timeout):
            async with self._sessions() as db:
                user = await db.get(User, name)
                if user is None:
                    return None
                user.is_active = False
                await db.commit()
                logger.info(f"Directory: deactivated {name}")
                return user
