"""Friends API — friend requests and friend lists.

The acting user is always named explicitly in the request; authenticating
that claim is the job of whatever sits in front of this service.
"""
import uuid
from fastapi import APIRouter, Depends, Query, status
from api.deps import get_services
from schemas.friends import (
    SendFriendRequestBody, ResolveFriendRequestBody,
    FriendRequestCreated, FriendRequestResponse,
)
from services.container import Services

router = APIRouter(prefix="/friends", tags=["friends"])


# ── Send friend request ───────────────────────────────────────────────────────

@router.post("/requests", response_model=FriendRequestCreated, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    body: SendFriendRequestBody,
    services: Services = Depends(get_services),
):
    request_id = await services.workflow.send_request(body.sender, body.receiver)
    return FriendRequestCreated(request_id=request_id)


# ── Pending requests ──────────────────────────────────────────────────────────
# Declared before /requests/{request_id} so a user literally named "requests"
# still reaches their pending lists.

@router.get("/{username}/pending", response_model=list[FriendRequestResponse])
async def list_pending_incoming(username: str, services: Services = Depends(get_services)):
    """Requests awaiting ``username``'s decision, oldest first."""
    records = await services.queries.list_pending_incoming(username)
    return [FriendRequestResponse.from_record(r) for r in records]


@router.get("/{username}/pending/outgoing", response_model=list[FriendRequestResponse])
async def list_pending_outgoing(username: str, services: Services = Depends(get_services)):
    records = await services.queries.list_pending_outgoing(username)
    return [FriendRequestResponse.from_record(r) for r in records]


# ── Single request ────────────────────────────────────────────────────────────

@router.get("/requests/{request_id}", response_model=FriendRequestResponse)
async def get_friend_request(
    request_id: uuid.UUID,
    acting_user: str = Query(..., alias="actingUser", min_length=1),
    services: Services = Depends(get_services),
):
    """Visible to the request's sender and receiver only."""
    record = await services.queries.get_request(request_id, acting_user)
    return FriendRequestResponse.from_record(record)


# ── Accept / decline ──────────────────────────────────────────────────────────

@router.post("/requests/{request_id}/accept", response_model=FriendRequestResponse)
async def accept_friend_request(
    request_id: uuid.UUID,
    body: ResolveFriendRequestBody,
    services: Services = Depends(get_services),
):
    record = await services.workflow.accept_request(request_id, body.acting_user)
    return FriendRequestResponse.from_record(record)


@router.post("/requests/{request_id}/decline", response_model=FriendRequestResponse)
async def decline_friend_request(
    request_id: uuid.UUID,
    body: ResolveFriendRequestBody,
    services: Services = Depends(get_services),
):
    record = await services.workflow.decline_request(request_id, body.acting_user)
    return FriendRequestResponse.from_record(record)


# ── Friends list ──────────────────────────────────────────────────────────────

@router.get("/{username}", response_model=list[str])
async def list_friends(username: str, services: Services = Depends(get_services)):
    return sorted(await services.queries.list_friends(username))
