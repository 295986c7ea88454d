import uuid
from datetime import datetime
from sqlalchemy import String, TIMESTAMP, ForeignKey, Index, Uuid, CheckConstraint, text
from sqlalchemy.orm import Mapped, mapped_column
from database import Base
from utils.time_utils import utc_now

PAIR_NONE = "none"
PAIR_PENDING = "pending"
PAIR_ACCEPTED = "accepted"

REQUEST_PENDING = "pending"
REQUEST_ACCEPTED = "accepted"
REQUEST_DECLINED = "declined"


class Friendship(Base):
    """State cell for one unordered pair of users.

    ``user_low`` < ``user_high`` always. ``status == "accepted"`` is the
    friend edge; ``"pending"`` points at the open request.
    """
    __tablename__ = "friendships"
    __table_args__ = (CheckConstraint("user_low < user_high", name="ck_friendships_ordered_pair"),)

    user_low: Mapped[str] = mapped_column(
        String(150), ForeignKey("users.username", ondelete="CASCADE"), primary_key=True
    )
    user_high: Mapped[str] = mapped_column(
        String(150), ForeignKey("users.username", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(String(20), default=PAIR_NONE, nullable=False)
    pending_request_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    since: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now)


class FriendRequest(Base):
    __tablename__ = "friend_requests"
    __table_args__ = (
        # At most one pending request per unordered pair, whichever direction.
        Index(
            "uq_friend_requests_pending_pair",
            "pair_low", "pair_high",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_friend_requests_receiver_status", "receiver", "status", "created_at"),
        Index("ix_friend_requests_sender_status", "sender", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sender: Mapped[str] = mapped_column(String(150), ForeignKey("users.username", ondelete="CASCADE"), nullable=False)
    receiver: Mapped[str] = mapped_column(String(150), ForeignKey("users.username", ondelete="CASCADE"), nullable=False)
    pair_low: Mapped[str] = mapped_column(String(150), nullable=False)
    pair_high: Mapped[str] = mapped_column(String(150), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=REQUEST_PENDING, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now)
    resolved_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
