from models.user import User
from models.friendship import Friendship, FriendRequest

__all__ = ["User", "Friendship", "FriendRequest"]
