"""Friend request workflow — send, accept, decline.

Thin layer over the relationship store that turns store conflicts into the
caller-facing error kinds in ``errors`` and announces each transition.
"""
import logging
import uuid
from errors import (
    SelfRequest, UserNotFound, AlreadyFriends, RequestAlreadyPending,
    RequestNotFound, NotAuthorized,
)
from models.friendship import REQUEST_ACCEPTED, REQUEST_DECLINED
from services.events import EventHub, FriendEvent, EVENT_REQUEST_SENT, EVENT_REQUEST_ACCEPTED, EVENT_REQUEST_DECLINED
from services.relationship_store import RelationshipStore, RequestRecord, Conflict, ConflictReason
from utils.usernames import normalize_username

logger = logging.getLogger(__name__)


def _translate(conflict: Conflict) -> Exception:
    reason = conflict.reason
    if reason is ConflictReason.SELF_REQUEST:
        return SelfRequest()
    if reason is ConflictReason.UNKNOWN_USER:
        return UserNotFound(f"User '{conflict.missing[0]}' not found") if conflict.missing else UserNotFound()
    if reason is ConflictReason.ALREADY_FRIENDS:
        return AlreadyFriends()
    if reason is ConflictReason.PENDING_EXISTS:
        return RequestAlreadyPending()
    return RequestNotFound()


class FriendWorkflow:
    def __init__(self, store: RelationshipStore, events: EventHub | None = None):
        self.store = store
        self.events = events or EventHub()

    async def send_request(self, sender: str, receiver: str) -> uuid.UUID:
        sender = normalize_username(sender)
        receiver = normalize_username(receiver)
        if sender == receiver:
            raise SelfRequest()
        try:
            record = await self.store.try_create_request(sender, receiver)
        except Conflict as c:
            logger.info(f"send_request {sender} -> {receiver} rejected: {c.reason.value}")
            raise _translate(c) from None
        await self.events.publish(FriendEvent(EVENT_REQUEST_SENT, record.id, record.sender, record.receiver))
        return record.id

    async def accept_request(self, request_id: uuid.UUID, acting_user: str) -> RequestRecord:
        record = await self._resolve(request_id, acting_user, REQUEST_ACCEPTED)
        await self.events.publish(FriendEvent(EVENT_REQUEST_ACCEPTED, record.id, record.sender, record.receiver))
        return record

    async def decline_request(self, request_id: uuid.UUID, acting_user: str) -> RequestRecord:
        record = await self._resolve(request_id, acting_user, REQUEST_DECLINED)
        await self.events.publish(FriendEvent(EVENT_REQUEST_DECLINED, record.id, record.sender, record.receiver))
        return record

    async def _resolve(self, request_id: uuid.UUID, acting_user: str, outcome: str) -> RequestRecord:
        acting_user = normalize_username(acting_user)
        current = await self.store.get_request(request_id)
        if current is None:
            raise RequestNotFound()
        if current.receiver != acting_user:
            logger.info(f"{acting_user} tried to resolve request {request_id} addressed to {current.receiver}")
            raise NotAuthorized()
        try:
            return await self.store.try_resolve(request_id, outcome)
        except Conflict as c:
            logger.info(f"Resolving request {request_id} as {outcome} lost: {c.reason.value}")
            raise _translate(c) from None
