"""Pydantic data schemas used across the backend service.

This module centralises all models so that other packages can import
from a single location instead of sprinkling the definitions across
multiple files. Records cross the storage boundary as these models, and
everything on the wire (HTTP bodies and WebSocket events) uses camelCase
aliases while Python code keeps snake_case attribute names.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_MAX_ROUNDS,
    EVENT_GAME_STARTED,
    EVENT_NEW_SUBMISSION,
    EVENT_PLAYER_JOINED,
    EVENT_USER_JOINED,
    MSG_JOIN_ROOM,
    PHRASE_MAX_LENGTH,
    PHRASE_TYPE_ALIASES,
    ROOM_ID_MAX_LENGTH,
    PhraseType,
    RoomStatus,
)


def normalise_phrase_type(value: Any) -> Any:
    """Lower-case a label and resolve synonyms; non-strings pass through."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        return PHRASE_TYPE_ALIASES.get(lowered, lowered)
    return value


PhraseLabel = Annotated[PhraseType, BeforeValidator(normalise_phrase_type)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# -----------------------------
# Stored records
# -----------------------------

class UserOut(CamelModel):
    id: int
    username: str
    display_name: str
    created_at: Optional[datetime] = None


class RoomOut(CamelModel):
    id: str
    host_id: int
    status: RoomStatus = RoomStatus.WAITING
    current_player_id: Optional[int] = None
    current_round: int = 1
    max_rounds: int = DEFAULT_MAX_ROUNDS
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RoomPlayerOut(CamelModel):
    id: int
    room_id: str
    user_id: int
    score: int = 0
    joined_at: Optional[datetime] = None


class RoomPlayerWithUser(RoomPlayerOut):
    user: UserOut


class RoomDetail(RoomOut):
    """Room plus its players in join order."""

    players: List[RoomPlayerWithUser] = []


class SubmissionOut(CamelModel):
    id: int
    room_id: str
    player_id: int
    round: int
    phrase: str
    actual_type: PhraseType
    created_at: Optional[datetime] = None


class PublicSubmission(CamelModel):
    """What voters get to see: the phrase without its label."""

    id: int
    phrase: str
    round: int
    player_id: int


class VoteOut(CamelModel):
    id: int
    submission_id: int
    voter_id: int
    guessed_type: PhraseType
    is_correct: bool
    created_at: Optional[datetime] = None


class VoteWithVoter(VoteOut):
    voter: UserOut


# -----------------------------
# REST request models
# -----------------------------

class CreateUserRequest(CamelModel):
    username: str = Field(min_length=1, max_length=50)
    display_name: str = Field(min_length=1, max_length=100)


class CreateRoomRequest(CamelModel):
    id: str = Field(min_length=1, max_length=ROOM_ID_MAX_LENGTH)
    max_rounds: int = Field(default=DEFAULT_MAX_ROUNDS, ge=1)
    host_id: int


class JoinRoomRequest(CamelModel):
    user_id: int


class StartGameRequest(CamelModel):
    host_id: int


class CreateSubmissionRequest(CamelModel):
    room_id: str = Field(min_length=1, max_length=ROOM_ID_MAX_LENGTH)
    player_id: int
    round: int = Field(ge=1)
    phrase: str = Field(min_length=1, max_length=PHRASE_MAX_LENGTH)
    actual_type: PhraseLabel


class CreateVoteRequest(CamelModel):
    submission_id: int
    voter_id: int
    guessed_type: PhraseLabel


# -----------------------------
# Real-time channel messages
# -----------------------------

class JoinRoomMessage(CamelModel):
    type: Literal["join_room"] = MSG_JOIN_ROOM
    room_id: str
    user_id: int


class UserJoinedEvent(CamelModel):
    type: Literal["user_joined"] = EVENT_USER_JOINED
    user_id: int


class PlayerJoinedEvent(CamelModel):
    type: Literal["player_joined"] = EVENT_PLAYER_JOINED
    player: RoomPlayerOut


class GameStartedEvent(CamelModel):
    type: Literal["game_started"] = EVENT_GAME_STARTED
    current_player_id: int


class NewSubmissionEvent(CamelModel):
    type: Literal["new_submission"] = EVENT_NEW_SUBMISSION
    submission: PublicSubmission


__all__ = [
    "PhraseLabel",
    "normalise_phrase_type",
    "CamelModel",
    # records
    "UserOut",
    "RoomOut",
    "RoomPlayerOut",
    "RoomPlayerWithUser",
    "RoomDetail",
    "SubmissionOut",
    "PublicSubmission",
    "VoteOut",
    "VoteWithVoter",
    # requests
    "CreateUserRequest",
    "CreateRoomRequest",
    "JoinRoomRequest",
    "StartGameRequest",
    "CreateSubmissionRequest",
    "CreateVoteRequest",
    # real-time
    "JoinRoomMessage",
    "UserJoinedEvent",
    "PlayerJoinedEvent",
    "GameStartedEvent",
    "NewSubmissionEvent",
]
