import uuid
from errors import UserNotFound, RequestNotFound
from services.directory import IdentityDirectory
from services.relationship_store import RelationshipStore, RequestRecord
from utils.usernames import normalize_username


class FriendQueries:
    """Read-only views over the relationship store. No caching."""

    def __init__(self, store: RelationshipStore, directory: IdentityDirectory):
        self.store = store
        self.directory = directory

    async def _require_user(self, username: str) -> str:
        name = normalize_username(username)
        if not await self.directory.exists(name):
            raise UserNotFound(f"User '{name}' not found")
        return name

    async def list_friends(self, username: str) -> set[str]:
        return await self.store.friends_of(await self._require_user(username))

    async def list_pending_incoming(self, username: str) -> list[RequestRecord]:
        return await self.store.pending_incoming(await self._require_user(username))

    async def list_pending_outgoing(self, username: str) -> list[RequestRecord]:
        return await self.store.pending_outgoing(await self._require_user(username))

    async def get_request(self, request_id: uuid.UUID, acting_user: str) -> RequestRecord:
        """A request as seen by its sender or receiver.

        Anyone else gets the same ``RequestNotFound`` as for an unknown id.
        """
        acting_user = normalize_username(acting_user)
        record = await self.store.get_request(request_id)
        if record is None or acting_user not in (record.sender, record.receiver):
            raise RequestNotFound("No friend request with this id")
        return record
