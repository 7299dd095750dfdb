"""Room lifecycle for Truth or Meme.

This module holds the game rules while remaining framework-agnostic: it
reads and writes through a storage object (see
:class:`truthmeme.storage.TortoiseStorage`) and pushes notifications through
a :class:`truthmeme.registry.ConnectionRegistry`. Routers call into it and
translate the raised :class:`truthmeme.errors.GameError` into responses.

A room moves ``waiting -> playing``; once a phrase is submitted clients show
the voting screen on their own. Scoring and round advance are not part of
the rules yet.

Mutating operations on one room run under that room's lock, so the
check-then-insert sequences below (turn ownership, one submission per round,
one vote per voter) cannot interleave at an ``await``.
"""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Union

from fastapi import WebSocket
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from .constants import MIN_PLAYERS_TO_START, MSG_JOIN_ROOM, PhraseType, RoomStatus
from .errors import (
    AlreadyVoted,
    DuplicateSubmission,
    GameAlreadyStarted,
    InsufficientPlayers,
    NotRoomHost,
    NotYourTurn,
    RoomNotFound,
    SubmissionNotFound,
    UserNotFound,
    ValidationError,
)
from .registry import ConnectionRegistry
from .schemas import (
    GameStartedEvent,
    JoinRoomMessage,
    NewSubmissionEvent,
    PlayerJoinedEvent,
    PublicSubmission,
    RoomDetail,
    RoomOut,
    RoomPlayerOut,
    SubmissionOut,
    UserJoinedEvent,
    VoteOut,
    VoteWithVoter,
    normalise_phrase_type,
)

logger = logging.getLogger(__name__)


def as_phrase_type(value: Union[str, PhraseType]) -> PhraseType:
    """Coerce *value* (including accepted synonyms) into a PhraseType."""
    try:
        return PhraseType(normalise_phrase_type(value))
    except ValueError as exc:
        raise ValidationError(f"Unknown phrase type: {value!r}") from exc


class RoomCoordinator:
    def __init__(self, storage: Any, registry: ConnectionRegistry):
        self.storage = storage
        self.registry = registry
        # room id -> lock, and how many tasks currently hold or wait on it
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def room_lock(self, room_id: str) -> AsyncIterator[None]:
        """Serialise work on one room. The entry is dropped once nobody uses it."""
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        self._lock_users[room_id] = self._lock_users.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[room_id] - 1
            if remaining:
                self._lock_users[room_id] = remaining
            else:
                del self._lock_users[room_id]
                del self._locks[room_id]

    async def _publish(self, room_id: str, event: BaseModel) -> None:
        await self.registry.broadcast(room_id, event.model_dump(mode="json", by_alias=True))

    async def _require_user(self, user_id: int) -> None:
        if await self.storage.get_user(user_id) is None:
            raise UserNotFound()

    # ---------------------------------------------------------------------
    # Room lifecycle
    # ---------------------------------------------------------------------

    async def create_room(self, room_id: str, max_rounds: int, host_id: int) -> RoomOut:
        async with self.room_lock(room_id):
            await self._require_user(host_id)
            room = await self.storage.create_room(room_id, max_rounds, host_id)
            # Nobody can be listening yet, so no broadcast.
            await self.storage.join_room(room.id, host_id)
        logger.info("Room %s created by user %s (%d rounds)", room_id, host_id, max_rounds)
        return room

    async def get_room(self, room_id: str) -> RoomDetail:
        room = await self.storage.get_room(room_id)
        if room is None:
            raise RoomNotFound()
        players = await self.storage.get_room_players(room_id)
        return RoomDetail(**room.model_dump(), players=players)

    async def join_room(self, room_id: str, user_id: int) -> RoomPlayerOut:
        async with self.room_lock(room_id):
            room = await self.storage.get_room(room_id)
            if room is None:
                raise RoomNotFound()
            if room.status != RoomStatus.WAITING:
                raise GameAlreadyStarted()
            await self._require_user(user_id)

            existing = await self.storage.get_room_player(room_id, user_id)
            if existing is not None:
                return existing

            player = await self.storage.join_room(room_id, user_id)
            await self._publish(room_id, PlayerJoinedEvent(player=player))
        logger.info("User %s joined room %s", user_id, room_id)
        return player

    async def start_game(self, room_id: str, host_id: int) -> RoomOut:
        async with self.room_lock(room_id):
            room = await self.storage.get_room(room_id)
            if room is None:
                raise RoomNotFound()
            if room.host_id != host_id:
                raise NotRoomHost()
            if room.status != RoomStatus.WAITING:
                raise GameAlreadyStarted()

            players = await self.storage.get_room_players(room_id)
            if len(players) < MIN_PLAYERS_TO_START:
                raise InsufficientPlayers()

            first_player_id = players[0].user_id
            updated = await self.storage.update_room(
                room_id,
                {"status": RoomStatus.PLAYING, "current_player_id": first_player_id},
            )
            await self._publish(room_id, GameStartedEvent(current_player_id=first_player_id))
        logger.info("Room %s started with %d players, user %s goes first", room_id, len(players), first_player_id)
        return updated

    # ---------------------------------------------------------------------
    # Turns
    # ---------------------------------------------------------------------

    async def submit_phrase(
        self,
        room_id: str,
        player_id: int,
        round: int,
        phrase: str,
        actual_type: Union[str, PhraseType],
    ) -> SubmissionOut:
        actual = as_phrase_type(actual_type)
        async with self.room_lock(room_id):
            room = await self.storage.get_room(room_id)
            if room is None:
                raise RoomNotFound()
            if room.current_player_id is None or room.current_player_id != player_id:
                raise NotYourTurn()
            if await self.storage.get_submission(room_id, round) is not None:
                raise DuplicateSubmission()

            submission = await self.storage.create_submission(room_id, player_id, round, phrase, actual)
            # The label stays server-side until voting is over.
            public = PublicSubmission(
                id=submission.id,
                phrase=submission.phrase,
                round=submission.round,
                player_id=submission.player_id,
            )
            await self._publish(room_id, NewSubmissionEvent(submission=public))
        logger.info("Player %s submitted a phrase in room %s round %s", player_id, room_id, round)
        return submission

    async def cast_vote(
        self,
        submission_id: int,
        voter_id: int,
        guessed_type: Union[str, PhraseType],
    ) -> VoteOut:
        guessed = as_phrase_type(guessed_type)
        submission = await self.storage.get_submission_by_id(submission_id)
        if submission is None:
            raise SubmissionNotFound()
        await self._require_user(voter_id)

        async with self.room_lock(submission.room_id):
            if await self.storage.has_user_voted(submission_id, voter_id):
                raise AlreadyVoted()
            is_correct = guessed == submission.actual_type
            vote = await self.storage.create_vote(submission_id, voter_id, guessed, is_correct)
        # TODO: tally votes and advance current_round/current_player_id once every voter is in.
        logger.debug("User %s voted on submission %s (correct=%s)", voter_id, submission_id, is_correct)
        return vote

    async def list_votes(self, submission_id: int) -> List[VoteWithVoter]:
        return await self.storage.get_votes(submission_id)

    # ---------------------------------------------------------------------
    # Real-time channel
    # ---------------------------------------------------------------------

    async def handle_message(self, ws: WebSocket, raw: str) -> None:
        """Dispatch one inbound text frame. Bad frames are logged and dropped."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring non-JSON websocket frame")
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring websocket frame that is not an object")
            return

        msg_type = data.get("type")
        if msg_type == MSG_JOIN_ROOM:
            try:
                message = JoinRoomMessage.model_validate(data)
            except SchemaValidationError:
                logger.warning("Ignoring malformed %s message", MSG_JOIN_ROOM)
                return
            self.registry.bind(message.room_id, message.user_id, ws)
            await self._publish(message.room_id, UserJoinedEvent(user_id=message.user_id))
        else:
            logger.warning("Ignoring websocket message of unknown type %r", msg_type)

    def disconnect(self, ws: WebSocket) -> None:
        self.registry.unbind(ws)


__all__ = ["RoomCoordinator", "as_phrase_type"]
