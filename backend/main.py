import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import socketio

from config import get_settings
from database import engine, Base
from errors import FriendshipError
from redis_client import get_redis, close_redis, publish_friend_event
from api.deps import get_services
from api.friends import router as friends_router
from api.users import router as users_router
from api.admin import router as admin_router
from services.scheduler import start_scheduler, stop_scheduler
from ws.events import sio, relay_friend_event

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup — fail fast on missing secrets
    if not settings.ADMIN_API_KEY:
        raise RuntimeError("ADMIN_API_KEY is not set. Set it in your .env file.")
    logger.info("Starting friends backend...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    events = get_services().events
    events.subscribe(relay_friend_event)
    if settings.REDIS_URL:
        await get_redis()
        events.subscribe(publish_friend_event)
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    logger.info("Friends backend ready")
    yield
    # Shutdown
    stop_scheduler()
    await close_redis()
    await engine.dispose()
    logger.info("Friends backend shut down")


app = FastAPI(
    title="Friends API",
    description="Friend requests and the friendship graph",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FriendshipError)
async def friendship_error_handler(request: Request, exc: FriendshipError):
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.detail},
        headers=headers,
    )


# REST routes
app.include_router(friends_router)
app.include_router(users_router)
app.include_router(admin_router)

# Mount Socket.IO
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)


# Health check
@app.get("/health")
async def health():
    return {"status": "ok", "service": "friends"}


# Export the ASGI app (uvicorn should point to this)
application = socket_app
