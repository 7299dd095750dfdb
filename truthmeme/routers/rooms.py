from __future__ import annotations

from fastapi import APIRouter

from ..schemas import CreateRoomRequest, JoinRoomRequest, RoomDetail, RoomOut, RoomPlayerOut, StartGameRequest
from ..state import coordinator

router = APIRouter(prefix="/api", tags=["rooms"])


@router.post("/rooms", response_model=RoomOut)
async def create_room(req: CreateRoomRequest):
    return await coordinator.create_room(req.id, req.max_rounds, req.host_id)


@router.get("/rooms/{room_id}", response_model=RoomDetail)
async def get_room(room_id: str):
    return await coordinator.get_room(room_id)


@router.post("/rooms/{room_id}/join", response_model=RoomPlayerOut)
async def join_room(room_id: str, req: JoinRoomRequest):
    return await coordinator.join_room(room_id, req.user_id)


@router.post("/rooms/{room_id}/start", response_model=RoomOut)
async def start_game(room_id: str, req: StartGameRequest):
    return await coordinator.start_game(room_id, req.host_id)
