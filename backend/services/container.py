from dataclasses import dataclass
from sqlalchemy.ext.asyncio import async_sessionmaker
from config import Settings
from services.directory import IdentityDirectory
from services.events import EventHub
from services.friend_queries import FriendQueries
from services.friend_workflow import FriendWorkflow
from services.pair_locks import PairLocks
from services.relationship_store import RelationshipStore


@dataclass
class Services:
    directory: IdentityDirectory
    store: RelationshipStore
    events: EventHub
    workflow: FriendWorkflow
    queries: FriendQueries


def build_services(session_factory: async_sessionmaker, settings: Settings) -> Services:
    directory = IdentityDirectory(
        session_factory,
        timeout=settings.STORE_TIMEOUT_SECONDS,
        search_limit=settings.SEARCH_LIMIT,
        min_query_length=settings.SEARCH_MIN_QUERY_LENGTH,
    )
    store = RelationshipStore(session_factory, PairLocks(), timeout=settings.STORE_TIMEOUT_SECONDS)
    events = EventHub()
    return Services(
        directory=directory,
        store=store,
        events=events,
        workflow=FriendWorkflow(store, events),
        queries=FriendQueries(store, directory),
    )
