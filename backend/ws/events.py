import logging
import socketio
from services.events import FriendEvent
from utils.usernames import normalize_username

logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*",
    logger=False,
    engineio_logger=False,
)


def user_room(username: str) -> str:
    return f"user:{username}"


@sio.event
async def connect(sid: str, environ, auth):
    # Identity is vouched for upstream; the socket only says whose room to join.
    username = normalize_username((auth or {}).get("username"))
    if not username:
        logger.warning(f"Socket rejected (no username in auth): {sid}")
        return False
    await sio.enter_room(sid, user_room(username))
    logger.info(f"Socket connected: {sid} user={username}")


@sio.event
async def disconnect(sid: str):
    logger.info(f"Socket disconnected: {sid}")


async def relay_friend_event(event: FriendEvent) -> None:
    payload = event.to_dict()
    for username in (event.sender, event.receiver):
        await sio.emit("friend_event", payload, room=user_room(username))
