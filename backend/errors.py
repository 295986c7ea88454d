"""Caller-facing error kinds for the friend relationship service.

Every failure a client can see is one of these. The HTTP layer renders them
as ``{"error": kind, "detail": message}`` with the kind's status code.
"""


class FriendshipError(Exception):
    kind = "FriendshipError"
    status_code = 400
    retryable = False
    default_detail = "Friendship operation failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class SelfRequest(FriendshipError):
    kind = "SelfRequest"
    status_code = 400
    default_detail = "Cannot send a friend request to yourself"


class UserNotFound(FriendshipError):
    kind = "UserNotFound"
    status_code = 404
    default_detail = "User not found"


class AlreadyFriends(FriendshipError):
    kind = "AlreadyFriends"
    status_code = 409
    default_detail = "Users are already friends"


class RequestAlreadyPending(FriendshipError):
    kind = "RequestAlreadyPending"
    status_code = 409
    default_detail = "A friend request between these users is already pending"


class RequestNotFound(FriendshipError):
    # Covers unknown ids and already-resolved requests alike.
    kind = "RequestNotFound"
    status_code = 404
    default_detail = "No pending friend request with this id"


class NotAuthorized(FriendshipError):
    kind = "NotAuthorized"
    status_code = 403
    default_detail = "Only the receiver can resolve this request"


class Unavailable(FriendshipError):
    kind = "Unavailable"
    status_code = 503
    retryable = True
    default_detail = "Relationship store unavailable, retry later"


class Timeout(FriendshipError):
    kind = "Timeout"
    status_code = 504
    retryable = True
    default_detail = "Relationship store did not respond in time, retry later"
