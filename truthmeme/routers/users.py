from __future__ import annotations

import logging

from fastapi import APIRouter

from ..errors import UserNotFound, UsernameTaken
from ..schemas import CreateUserRequest, UserOut
from ..state import storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])


@router.post("/users", response_model=UserOut)
async def create_user(req: CreateUserRequest):
    if await storage.get_user_by_username(req.username):
        raise UsernameTaken()
    user = await storage.create_user(req.username, req.display_name)
    logger.info("Created user %s (%s)", user.id, user.username)
    return user


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(user_id: int):
    user = await storage.get_user(user_id)
    if not user:
        raise UserNotFound()
    return user
