"""Relationship store — the single owner of friendships and friend requests.

All mutation goes through ``try_create_request`` and ``try_resolve``. Each one
takes the per-pair lock and then runs one transaction whose decisive write is
a compare-and-set on the pair's ``friendships`` row:

    none     --send-->     pending
    pending  --accept-->   accepted   (the friend edge)
    pending  --decline-->  none

A CAS that matches no row means another caller got there first, which is
reported as a ``Conflict``. The DB-level CAS keeps separate processes honest;
the in-process lock keeps a single process from racing itself.
"""
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from sqlalchemy import select, update, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from models.friendship import (
    Friendship, FriendRequest,
    PAIR_NONE, PAIR_PENDING, PAIR_ACCEPTED,
    REQUEST_PENDING, REQUEST_ACCEPTED, REQUEST_DECLINED,
)
from models.user import User
from services.directory import known_usernames
from services.pair_locks import PairLocks
from services.store_guard import bounded
from utils.time_utils import utc_now, as_utc
from utils.usernames import normalize_username, ordered_pair

logger = logging.getLogger(__name__)


class ConflictReason(str, Enum):
    SELF_REQUEST = "self_request"
    UNKNOWN_USER = "unknown_user"
    ALREADY_FRIENDS = "already_friends"
    PENDING_EXISTS = "pending_exists"
    NOT_PENDING = "not_pending"


class Conflict(Exception):
    def __init__(self, reason: ConflictReason, missing: tuple[str, ...] = ()):
        self.reason = reason
        self.missing = missing
        super().__init__(reason.value)


@dataclass(frozen=True)
class RequestRecord:
    id: uuid.UUID
    sender: str
    receiver: str
    status: str
    created_at: datetime
    resolved_at: datetime | None = None

    @property
    def pair(self) -> tuple[str, str]:
        return ordered_pair(self.sender, self.receiver)

    @classmethod
    def from_row(cls, row: FriendRequest) -> "RequestRecord":
        return cls(
            id=row.id,
            sender=row.sender,
            receiver=row.receiver,
            status=row.status,
            created_at=as_utc(row.created_at),
            resolved_at=as_utc(row.resolved_at),
        )


class RelationshipStore:
    def __init__(self, session_factory: async_sessionmaker, locks: PairLocks | None = None,
                 timeout: float = 5.0):
        self._sessions = session_factory
        self._locks = locks or PairLocks()
        self._timeout = timeout

    # ── Mutations ─────────────────────────────────────────────────────────────

    async def try_create_request(self, sender: str, receiver: str) -> RequestRecord:
        sender = normalize_username(sender)
        receiver = normalize_username(receiver)
        if sender == receiver:
            raise Conflict(ConflictReason.SELF_REQUEST)
        pair = ordered_pair(sender, receiver)
        async with bounded("store.try_create_request", self._timeout):
            async with self._locks.hold(pair):
                record = await self._retry_once(self._create_request, sender, receiver, pair)
        logger.info(f"Friend request {record.id} created: {sender} -> {receiver}")
        return record

    async def try_resolve(self, request_id: uuid.UUID, outcome: str) -> RequestRecord:
        """Move a pending request to ``outcome``.

        A request whose sender or receiver has been deactivated cannot be
        resolved until both are active again. Once the resolution commits the
        deadline is lifted, so a caller never sees ``Timeout`` for a
        resolution that took effect.
        """
        if outcome not in (REQUEST_ACCEPTED, REQUEST_DECLINED):
            raise ValueError(f"Invalid outcome: {outcome}")
        async with bounded("store.try_resolve", self._timeout) as deadline:
            current = await self._load_request(request_id)
            if current is None or current.status != REQUEST_PENDING:
                raise Conflict(ConflictReason.NOT_PENDING)
            async with self._locks.hold(current.pair):
                record = await self._resolve(current, outcome, deadline)
        logger.info(f"Friend request {request_id} {outcome}: {record.sender} -> {record.receiver}")
        return record

    async def _retry_once(self, operation, *args):
        # A first-insert race on the pair row with another process shows up as
        # an IntegrityError; the second attempt sees the winner's row.
        try:
            return await operation(*args)
        except IntegrityError:
            logger.info("Pair row race lost to another writer, retrying once")
            return await operation(*args)

    async def _create_request(self, sender: str, receiver: str, pair: tuple[str, str]) -> RequestRecord:
        now = utc_now()
        async with self._sessions() as db, db.begin():
            known = await known_usernames(db, sender, receiver)
            missing = tuple(u for u in (sender, receiver) if u not in known)
            if missing:
                raise Conflict(ConflictReason.UNKNOWN_USER, missing=missing)

            if await db.get(Friendship, pair) is None:
                db.add(Friendship(user_low=pair[0], user_high=pair[1], status=PAIR_NONE, updated_at=now))
                await db.flush()

            request_id = uuid.uuid4()
            won = await db.execute(
                update(Friendship)
                .where(
                    Friendship.user_low == pair[0],
                    Friendship.user_high == pair[1],
                    Friendship.status == PAIR_NONE,
                )
                .values(status=PAIR_PENDING, pending_request_id=request_id, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if won.rowcount != 1:
                state = (await db.execute(
                    select(Friendship.status).where(
                        Friendship.user_low == pair[0], Friendship.user_high == pair[1]
                    )
                )).scalar_one()
                if state == PAIR_ACCEPTED:
                    raise Conflict(ConflictReason.ALREADY_FRIENDS)
                raise Conflict(ConflictReason.PENDING_EXISTS)

            row = FriendRequest(
                id=request_id,
                sender=sender,
                receiver=receiver,
                pair_low=pair[0],
                pair_high=pair[1],
                status=REQUEST_PENDING,
                created_at=now,
            )
            db.add(row)
            return RequestRecord(id=request_id, sender=sender, receiver=receiver,
                                 status=REQUEST_PENDING, created_at=now)

    async def _resolve(self, current: RequestRecord, outcome: str, deadline) -> RequestRecord:
        now = utc_now()
        async with self._sessions() as db:
            await self._resolve_in(db, current, outcome, now)
            # Committed. Releasing the connection runs off the deadline.
            if not deadline.expired():
                deadline.reschedule(None)
        return replace(current, status=outcome, resolved_at=now)

    async def _resolve_in(self, db, current: RequestRecord, outcome: str, now: datetime) -> None:
        pair = current.pair
        async with db.begin():
            known = await known_usernames(db, current.sender, current.receiver)
            if len(known) != 2:
                logger.info(f"Request {current.id} has an inactive party, not resolving")
                raise Conflict(ConflictReason.NOT_PENDING)

            flipped = await db.execute(
                update(FriendRequest)
                .where(FriendRequest.id == current.id, FriendRequest.status == REQUEST_PENDING)
                .values(status=outcome, resolved_at=now)
                .execution_options(synchronize_session=False)
            )
            if flipped.rowcount != 1:
                raise Conflict(ConflictReason.NOT_PENDING)

            if outcome == REQUEST_ACCEPTED:
                cell = {"status": PAIR_ACCEPTED, "since": now}
            else:
                cell = {"status": PAIR_NONE, "since": None}
            moved = await db.execute(
                update(Friendship)
                .where(
                    Friendship.user_low == pair[0],
                    Friendship.user_high == pair[1],
                    Friendship.status == PAIR_PENDING,
                    Friendship.pending_request_id == current.id,
                )
                .values(pending_request_id=None, updated_at=now, **cell)
                .execution_options(synchronize_session=False)
            )
            if moved.rowcount != 1:
                # Request said pending but the pair row disagrees; roll both back.
                logger.error(f"Pair {pair} out of step with request {current.id}, resolution rolled back")
                raise Conflict(ConflictReason.NOT_PENDING)

    # ── Reads ─────────────────────────────────────────────────────────────────

    async def _load_request(self, request_id: uuid.UUID) -> RequestRecord | None:
        async with self._sessions() as db:
            row = await db.get(FriendRequest, request_id)
            return RequestRecord.from_row(row) if row else None

    async def get_request(self, request_id: uuid.UUID) -> RequestRecord | None:
        async with bounded("store.get_request", self._timeout):
            return await self._load_request(request_id)

    async def friends_of(self, username: str) -> set[str]:
        name = normalize_username(username)
        async with bounded("store.friends_of", self._timeout):
            async with self._sessions() as db:
                result = await db.execute(
                    select(Friendship.user_low, Friendship.user_high).where(
                        Friendship.status == PAIR_ACCEPTED,
                        or_(Friendship.user_low == name, Friendship.user_high == name),
                    )
                )
                others = {high if low == name else low for low, high in result.all()}
                if not others:
                    return set()
                # Deactivated friends drop out until they are reactivated.
                return await known_usernames(db, *others)

    async def pending_incoming(self, username: str) -> list[RequestRecord]:
        """Pending requests addressed to ``username``, oldest first."""
        return await self._pending(FriendRequest.receiver == normalize_username(username),
                                   counterpart=FriendRequest.sender)

    async def pending_outgoing(self, username: str) -> list[RequestRecord]:
        return await self._pending(FriendRequest.sender == normalize_username(username),
                                   counterpart=FriendRequest.receiver)

    async def _pending(self, criterion, counterpart) -> list[RequestRecord]:
        async with bounded("store.pending", self._timeout):
            async with self._sessions() as db:
                result = await db.execute(
                    select(FriendRequest)
                    .join(User, User.username == counterpart)
                    .where(
                        criterion,
                        FriendRequest.status == REQUEST_PENDING,
                        User.is_active == True,  # noqa: E712
                    )
                    .order_by(FriendRequest.created_at.asc(), FriendRequest.id.asc())
                )
                return [RequestRecord.from_row(r) for r in result.scalars().all()]

    # ── Maintenance ───────────────────────────────────────────────────────────

    async def prune_history(self, older_than: datetime) -> int:
        """Delete resolved requests whose resolution predates ``older_than``."""
        async with bounded("store.prune_history", self._timeout):
            async with self._sessions() as db, db.begin():
                result = await db.execute(
                    delete(FriendRequest)
                    .where(
                        FriendRequest.status != REQUEST_PENDING,
                        FriendRequest.resolved_at < older_than,
                    )
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount
