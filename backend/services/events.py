"""Change notifications for successful friendship mutations.

The workflow publishes one ``FriendEvent`` per committed transition. Delivery
(Socket.IO rooms, Redis pub/sub) is done by whatever handlers are subscribed;
a failing handler is logged and never undoes the mutation.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable
from utils.time_utils import utc_now

logger = logging.getLogger(__name__)

EVENT_REQUEST_SENT = "request_sent"
EVENT_REQUEST_ACCEPTED = "request_accepted"
EVENT_REQUEST_DECLINED = "request_declined"


@dataclass(frozen=True)
class FriendEvent:
    type: str
    request_id: uuid.UUID
    sender: str
    receiver: str
    at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "requestId": str(self.request_id),
            "sender": self.sender,
            "receiver": self.receiver,
            "at": self.at.isoformat(),
        }


EventHandler = Callable[[FriendEvent], Awaitable[None]]


class EventHub:
    def __init__(self):
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> EventHandler:
        if handler not in self._handlers:
            self._handlers.append(handler)
        return handler

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def publish(self, event: FriendEvent) -> None:
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception as e:
                name = getattr(handler, "__name__", repr(handler))
                logger.error(f"Event handler {name} failed for {event.type} {event.request_id}: {e}",
                             exc_info=True)
