from schemas.friends import (
    SendFriendRequestBody, ResolveFriendRequestBody, FriendRequestCreated,
    FriendRequestResponse, UserExistsResponse, DirectoryUserResponse,
)

__all__ = [
    "SendFriendRequestBody", "ResolveFriendRequestBody", "FriendRequestCreated",
    "FriendRequestResponse", "UserExistsResponse", "DirectoryUserResponse",
]
