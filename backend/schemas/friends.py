import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from services.relationship_store import RequestRecord
from utils.usernames import normalize_username


class CamelModel(BaseModel):
    """JSON uses camelCase; snake_case is accepted on input too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _username(v: str) -> str:
    name = normalize_username(v)
    if not name:
        raise ValueError("username must not be blank")
    if len(name) > 150:
        raise ValueError("username must be at most 150 characters")
    return name


class SendFriendRequestBody(CamelModel):
    sender: str
    receiver: str

    @field_validator("sender", "receiver")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _username(v)


class ResolveFriendRequestBody(CamelModel):
    acting_user: str

    @field_validator("acting_user")
    @classmethod
    def validate_acting_user(cls, v: str) -> str:
        return _username(v)


class FriendRequestCreated(CamelModel):
    request_id: uuid.UUID


class FriendRequestResponse(CamelModel):
    request_id: uuid.UUID
    sender: str
    receiver: str
    status: str
    created_at: datetime
    resolved_at: datetime | None = None

    @classmethod
    def from_record(cls, record: RequestRecord) -> "FriendRequestResponse":
        return cls(
            request_id=record.id,
            sender=record.sender,
            receiver=record.receiver,
            status=record.status,
            created_at=record.created_at,
            resolved_at=record.resolved_at,
        )


class UserExistsResponse(BaseModel):
    username: str
    exists: bool


class DirectoryUserResponse(CamelModel):
    username: str
    active: bool
