from datetime import datetime
from sqlalchemy import String, Boolean, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column
from database import Base
from utils.time_utils import utc_now


class User(Base):
    """A username known to the identity directory.

    Rows are synced in from the external identity service; this service never
    creates identities on its own.
    """
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(150), primary_key=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utc_now)
