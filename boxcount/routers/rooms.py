from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ..coordinator import SessionCoordinator
from ..dependencies import get_coordinator
from ..errors import CoordinatorError, InvalidStateError, NotFoundError, ValidationError
from ..schemas import (
    CreateRoomRequest,
    CreateRoomResponse,
    HealthResponse,
    JoinRoomRequest,
    JoinRoomResponse,
    StartResponse,
    StatusResponse,
)

router = APIRouter(prefix="/api", tags=["rooms"])


def _http_error(exc: CoordinatorError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (InvalidStateError, ValidationError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/rooms", response_model=CreateRoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    req: CreateRoomRequest = Body(default=CreateRoomRequest()),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    try:
        return coordinator.create(req.player_name)
    except CoordinatorError as exc:
        raise _http_error(exc) from exc


@router.post("/rooms/{room_id}/join", response_model=JoinRoomResponse)
async def join_room(
    room_id: str,
    req: JoinRoomRequest = Body(default=JoinRoomRequest()),
    coordinator: SessionCoordinator = Depends(get_coordinator),
):
    try:
        return coordinator.join(room_id, req.player_name)
    except CoordinatorError as exc:
        raise _http_error(exc) from exc


@router.get("/rooms/{room_id}", response_model=StatusResponse)
async def room_status(room_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    try:
        return coordinator.status(room_id)
    except CoordinatorError as exc:
        raise _http_error(exc) from exc


@router.post("/rooms/{room_id}/start", response_model=StartResponse)
async def start_game(room_id: str, coordinator: SessionCoordinator = Depends(get_coordinator)):
    try:
        return await coordinator.start(room_id)
    except CoordinatorError as exc:
        raise _http_error(exc) from exc


@router.get("/health", response_model=HealthResponse)
async def health(coordinator: SessionCoordinator = Depends(get_coordinator)):
    return HealthResponse(status="ok", rooms=len(coordinator.store))
