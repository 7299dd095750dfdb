"""Persistence layer backed by Tortoise ORM.

Every method is a coroutine and returns pydantic records from
:mod:`truthmeme.schemas` rather than ORM rows, so the coordinator never
touches the database API directly. Uniqueness violations on insert are
translated into the matching domain conflict.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from tortoise.exceptions import IntegrityError

from .constants import PhraseType, RoomStatus
from .errors import AlreadyJoined, AlreadyVoted, DuplicateRoom, DuplicateSubmission, UsernameTaken
from .models import GameSubmission, GameVote, Room, RoomPlayer, User
from .schemas import (
    RoomOut,
    RoomPlayerOut,
    RoomPlayerWithUser,
    SubmissionOut,
    UserOut,
    VoteOut,
    VoteWithVoter,
)

# Columns ``update_room`` is allowed to touch.
ROOM_UPDATABLE_FIELDS = {"status", "current_player_id", "current_round", "max_rounds"}


class TortoiseStorage:
    """Data operations used by the coordinator and the HTTP routers."""

    # -------------------- Users -------------------- #

    async def get_user(self, user_id: int) -> Optional[UserOut]:
        user = await User.get_or_none(id=user_id)
        return UserOut.model_validate(user) if user else None

    async def get_user_by_username(self, username: str) -> Optional[UserOut]:
        user = await User.filter(username=username).first()
        return UserOut.model_validate(user) if user else None

    async def create_user(self, username: str, display_name: str) -> UserOut:
        try:
            user = await User.create(username=username, display_name=display_name)
        except IntegrityError as exc:
            raise UsernameTaken() from exc
        return UserOut.model_validate(user)

    # -------------------- Rooms -------------------- #

    async def create_room(self, room_id: str, max_rounds: int, host_id: int) -> RoomOut:
        if await Room.exists(id=room_id):
            raise DuplicateRoom()
        try:
            room = await Room.create(
                id=room_id,
                host_id=host_id,
                max_rounds=max_rounds,
                status=RoomStatus.WAITING,
                current_round=1,
            )
        except IntegrityError as exc:
            raise DuplicateRoom() from exc
        return RoomOut.model_validate(room)

    async def get_room(self, room_id: str) -> Optional[RoomOut]:
        room = await Room.get_or_none(id=room_id)
        return RoomOut.model_validate(room) if room else None

    async def update_room(self, room_id: str, updates: Dict[str, Any]) -> Optional[RoomOut]:
        unknown = set(updates) - ROOM_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update room fields: {sorted(unknown)}")
        room = await Room.get_or_none(id=room_id)
        if room is None:
            return None
        for field, value in updates.items():
            setattr(room, field, value)
        await room.save()
        return RoomOut.model_validate(room)

    async def delete_room(self, room_id: str) -> None:
        await Room.filter(id=room_id).delete()

    # -------------------- Room players -------------------- #

    async def join_room(self, room_id: str, user_id: int) -> RoomPlayerOut:
        try:
            player = await RoomPlayer.create(room_id=room_id, user_id=user_id, score=0)
        except IntegrityError as exc:
            raise AlreadyJoined() from exc
        return RoomPlayerOut.model_validate(player)

    async def get_room_player(self, room_id: str, user_id: int) -> Optional[RoomPlayerOut]:
        player = await RoomPlayer.filter(room_id=room_id, user_id=user_id).first()
        return RoomPlayerOut.model_validate(player) if player else None

    async def get_room_players(self, room_id: str) -> List[RoomPlayerWithUser]:
        """Players of *room_id* with their user record, oldest join first."""
        players = (
            await RoomPlayer.filter(room_id=room_id)
            .prefetch_related("user")
            .order_by("joined_at", "id")
        )
        return [RoomPlayerWithUser.model_validate(p) for p in players]

    async def leave_room(self, room_id: str, user_id: int) -> None:
        await RoomPlayer.filter(room_id=room_id, user_id=user_id).delete()

    async def update_player_score(self, room_id: str, user_id: int, score: int) -> None:
        await RoomPlayer.filter(room_id=room_id, user_id=user_id).update(score=score)

    # -------------------- Submissions -------------------- #

    async def create_submission(
        self,
        room_id: str,
        player_id: int,
        round: int,
        phrase: str,
        actual_type: PhraseType,
    ) -> SubmissionOut:
        try:
            submission = await GameSubmission.create(
                room_id=room_id,
                player_id=player_id,
                round=round,
                phrase=phrase,
                actual_type=actual_type,
            )
        except IntegrityError as exc:
            raise DuplicateSubmission() from exc
        return SubmissionOut.model_validate(submission)

    async def get_submission(self, room_id: str, round: int) -> Optional[SubmissionOut]:
        submission = await GameSubmission.filter(room_id=room_id, round=round).first()
        return SubmissionOut.model_validate(submission) if submission else None

    async def get_submission_by_id(self, submission_id: int) -> Optional[SubmissionOut]:
        submission = await GameSubmission.get_or_none(id=submission_id)
        return SubmissionOut.model_validate(submission) if submission else None

    # -------------------- Votes -------------------- #

    async def create_vote(
        self,
        submission_id: int,
        voter_id: int,
        guessed_type: PhraseType,
        is_correct: bool,
    ) -> VoteOut:
        try:
            vote = await GameVote.create(
                submission_id=submission_id,
                voter_id=voter_id,
                guessed_type=guessed_type,
                is_correct=is_correct,
            )
        except IntegrityError as exc:
            raise AlreadyVoted() from exc
        return VoteOut.model_validate(vote)

    async def get_votes(self, submission_id: int) -> List[VoteWithVoter]:
        votes = await GameVote.filter(submission_id=submission_id).prefetch_related("voter").order_by("id")
        return [VoteWithVoter.model_validate(v) for v in votes]

    async def has_user_voted(self, submission_id: int, voter_id: int) -> bool:
        return await GameVote.exists(submission_id=submission_id, voter_id=voter_id)


__all__ = ["TortoiseStorage", "ROOM_UPDATABLE_FIELDS"]
