"""
Room session coordinator tests
"""

import asyncio

import pytest
from hypothesis import given, settings, strategies as st

from fakes import FakeWebSocket, MemoryStorage, room_status
from truthmeme.constants import PhraseType, RoomStatus
from truthmeme.coordinator import RoomCoordinator, as_phrase_type
from truthmeme.errors import (
    AlreadyVoted,
    DuplicateRoom,
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
from truthmeme.registry import ConnectionRegistry
from truthmeme.schemas import CreateVoteRequest


async def _started_room(coordinator, host_id=1, guest_id=2, room_id="ABC123"):
    await coordinator.create_room(room_id, 5, host_id)
    await coordinator.join_room(room_id, guest_id)
    await coordinator.start_game(room_id, host_id)


def _listen(registry, room_id="ABC123", user_id=99):
    ws = FakeWebSocket()
    registry.bind(room_id, user_id, ws)
    return ws


class TestCreateRoom:

    async def test_host_is_auto_joined(self, coordinator, players):
        room = await coordinator.create_room("ABC123", 5, 1)

        assert room.status == RoomStatus.WAITING
        assert room.current_round == 1
        assert room.current_player_id is None
        detail = await coordinator.get_room("ABC123")
        assert [p.user_id for p in detail.players] == [1]
        assert detail.players[0].score == 0

    async def test_duplicate_room_id(self, coordinator, players):
        await coordinator.create_room("ABC123", 5, 1)
        with pytest.raises(DuplicateRoom):
            await coordinator.create_room("ABC123", 3, 2)

    async def test_unknown_host(self, coordinator, players):
        with pytest.raises(UserNotFound):
            await coordinator.create_room("ABC123", 5, 404)

    async def test_get_missing_room(self, coordinator):
        with pytest.raises(RoomNotFound):
            await coordinator.get_room("nope")


class TestJoinRoom:

    async def test_join_broadcasts_player_joined(self, coordinator, registry, players):
        await coordinator.create_room("ABC123", 5, 1)
        ws = _listen(registry)

        player = await coordinator.join_room("ABC123", 2)

        assert player.user_id == 2
        [event] = ws.events
        assert event["type"] == "player_joined"
        assert event["player"]["userId"] == 2
        assert event["player"]["roomId"] == "ABC123"

    async def test_join_missing_room(self, coordinator, players):
        with pytest.raises(RoomNotFound):
            await coordinator.join_room("nope", 2)

    async def test_join_unknown_user(self, coordinator, players):
        await coordinator.create_room("ABC123", 5, 1)
        with pytest.raises(UserNotFound):
            await coordinator.join_room("ABC123", 404)

    async def test_missing_rooms_leave_no_locks_behind(self, coordinator, players):
        for i in range(500):
            with pytest.raises(RoomNotFound):
                await coordinator.join_room(f"ghost-{i}", 2)

        assert coordinator._locks == {}
        assert coordinator._lock_users == {}

    async def test_join_after_start_is_rejected(self, coordinator, players):
        await _started_room(coordinator)
        with pytest.raises(GameAlreadyStarted):
            await coordinator.join_room("ABC123", 3)

    async def test_rejoin_returns_existing_row_without_broadcast(self, coordinator, registry, memory_storage, players):
        await coordinator.create_room("ABC123", 5, 1)
        first = await coordinator.join_room("ABC123", 2)
        ws = _listen(registry)

        again = await coordinator.join_room("ABC123", 2)

        assert again.id == first.id
        assert ws.sent == []
        assert len([p for p in memory_storage.players if p.user_id == 2]) == 1

    async def test_concurrent_joins_of_same_user_store_one_row(self, coordinator, memory_storage, players):
        await coordinator.create_room("ABC123", 5, 1)

        results = await asyncio.gather(
            coordinator.join_room("ABC123", 2),
            coordinator.join_room("ABC123", 2),
        )

        assert results[0].id == results[1].id
        assert len([p for p in memory_storage.players if p.user_id == 2]) == 1


class TestStartGame:

    async def test_start_sets_first_joiner_as_current_player(self, coordinator, registry, memory_storage, players):
        await coordinator.create_room("ABC123", 5, 1)
        await coordinator.join_room("ABC123", 2)
        ws = _listen(registry)

        room = await coordinator.start_game("ABC123", 1)

        assert room.status == RoomStatus.PLAYING
        assert room.current_player_id == 1
        assert room_status(memory_storage, "ABC123") == RoomStatus.PLAYING
        assert ws.events == [{"type": "game_started", "currentPlayerId": 1}]

    async def test_only_host_can_start(self, coordinator, players):
        await coordinator.create_room("ABC123", 5, 1)
        await coordinator.join_room("ABC123", 2)
        with pytest.raises(NotRoomHost):
            await coordinator.start_game("ABC123", 2)

    async def test_needs_two_players(self, coordinator, registry, players):
        await coordinator.create_room("ABC123", 5, 1)
        ws = _listen(registry)
        with pytest.raises(InsufficientPlayers):
            await coordinator.start_game("ABC123", 1)
        assert ws.sent == []

    async def test_repeated_start_never_restarts(self, coordinator, registry, players):
        await _started_room(coordinator)
        ws = _listen(registry)
        with pytest.raises(GameAlreadyStarted):
            await coordinator.start_game("ABC123", 1)
        with pytest.raises(NotRoomHost):
            await coordinator.start_game("ABC123", 2)
        assert ws.sent == []

    async def test_start_missing_room(self, coordinator, players):
        with pytest.raises(RoomNotFound):
            await coordinator.start_game("nope", 1)


class TestSubmitPhrase:

    async def test_submission_broadcast_hides_actual_type(self, coordinator, registry, players):
        await _started_room(coordinator)
        ws = _listen(registry)

        submission = await coordinator.submit_phrase("ABC123", 1, 1, "I once sang karaoke badly", "truth")

        assert submission.actual_type == PhraseType.TRUTH
        [event] = ws.events
        assert event == {
            "type": "new_submission",
            "submission": {
                "id": submission.id,
                "phrase": "I once sang karaoke badly",
                "round": 1,
                "playerId": 1,
            },
        }
        assert "actualType" not in event["submission"]

    async def test_submission_does_not_change_room_status(self, coordinator, memory_storage, players):
        await _started_room(coordinator)
        await coordinator.submit_phrase("ABC123", 1, 1, "I own forty cacti", "meme")
        assert room_status(memory_storage, "ABC123") == RoomStatus.PLAYING

    async def test_other_player_cannot_submit(self, coordinator, players):
        await _started_room(coordinator)
        with pytest.raises(NotYourTurn):
            await coordinator.submit_phrase("ABC123", 2, 1, "Not me", "truth")

    async def test_cannot_submit_before_start(self, coordinator, players):
        await coordinator.create_room("ABC123", 5, 1)
        with pytest.raises(NotYourTurn):
            await coordinator.submit_phrase("ABC123", 1, 1, "Too early", "truth")

    async def test_submit_to_missing_room(self, coordinator, players):
        with pytest.raises(RoomNotFound):
            await coordinator.submit_phrase("nope", 1, 1, "Hello", "truth")

    async def test_second_submission_in_same_round_is_rejected(self, coordinator, players):
        await _started_room(coordinator)
        await coordinator.submit_phrase("ABC123", 1, 1, "First", "truth")
        with pytest.raises(DuplicateSubmission):
            await coordinator.submit_phrase("ABC123", 1, 1, "Second", "meme")

    async def test_racing_submissions_store_only_one(self, coordinator, memory_storage, players):
        await _started_room(coordinator)

        results = await asyncio.gather(
            coordinator.submit_phrase("ABC123", 1, 1, "First", "truth"),
            coordinator.submit_phrase("ABC123", 1, 1, "Second", "meme"),
            return_exceptions=True,
        )

        assert len(memory_storage.submissions) == 1
        assert sum(isinstance(r, DuplicateSubmission) for r in results) == 1

    async def test_fabrication_is_accepted_as_meme(self, coordinator, players):
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "I met the Queen", "fabrication")
        assert submission.actual_type == PhraseType.MEME

    async def test_unknown_label_is_rejected(self, coordinator, players):
        await _started_room(coordinator)
        with pytest.raises(ValidationError):
            await coordinator.submit_phrase("ABC123", 1, 1, "Hmm", "maybe")


class TestCastVote:

    async def test_vote_is_scored_and_not_broadcast(self, coordinator, registry, players):
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "I once sang karaoke badly", "truth")
        ws = _listen(registry)

        vote = await coordinator.cast_vote(submission.id, 2, "meme")

        assert vote.guessed_type == PhraseType.MEME
        assert vote.is_correct is False
        assert ws.sent == []

    async def test_second_vote_is_rejected(self, coordinator, players):
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "Phrase", "truth")
        await coordinator.cast_vote(submission.id, 2, "truth")
        with pytest.raises(AlreadyVoted):
            await coordinator.cast_vote(submission.id, 2, "meme")

    async def test_racing_votes_store_only_one(self, coordinator, memory_storage, players):
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "Phrase", "truth")

        results = await asyncio.gather(
            coordinator.cast_vote(submission.id, 2, "truth"),
            coordinator.cast_vote(submission.id, 2, "meme"),
            return_exceptions=True,
        )

        assert len(memory_storage.votes) == 1
        assert sum(isinstance(r, AlreadyVoted) for r in results) == 1

    async def test_vote_by_unknown_voter(self, coordinator, memory_storage, players):
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "Phrase", "truth")
        with pytest.raises(UserNotFound):
            await coordinator.cast_vote(submission.id, 404, "truth")
        assert memory_storage.votes == []

    async def test_vote_on_missing_submission(self, coordinator, players):
        with pytest.raises(SubmissionNotFound):
            await coordinator.cast_vote(404, 2, "truth")

    async def test_list_votes_includes_voter(self, coordinator, players):
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "Phrase", "truth")
        await coordinator.cast_vote(submission.id, 2, "truth")
        await coordinator.cast_vote(submission.id, 3, "meme")

        votes = await coordinator.list_votes(submission.id)

        assert [(v.voter.username, v.is_correct) for v in votes] == [("bob", True), ("carol", False)]


class TestRoomLock:

    async def test_entry_survives_until_last_waiter_leaves(self, coordinator):
        async def enter():
            async with coordinator.room_lock("ABC123"):
                pass

        async with coordinator.room_lock("ABC123"):
            waiter = asyncio.create_task(enter())
            await asyncio.sleep(0)
            assert coordinator._lock_users == {"ABC123": 2}

        await waiter
        assert coordinator._locks == {}
        assert coordinator._lock_users == {}

    async def test_released_after_errors_and_races(self, coordinator, players):
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "Phrase", "truth")

        await asyncio.gather(
            coordinator.cast_vote(submission.id, 2, "truth"),
            coordinator.cast_vote(submission.id, 2, "meme"),
            coordinator.join_room("ABC123", 3),
            return_exceptions=True,
        )

        assert coordinator._locks == {}
        assert coordinator._lock_users == {}


@pytest.mark.parametrize("label", ["truth", "MEME", " Fabrication ", PhraseType.MEME, PhraseType.TRUTH])
def test_label_coercion_matches_request_parsing(label):
    parsed = CreateVoteRequest(submission_id=1, voter_id=1, guessed_type=label)
    assert as_phrase_type(label) == parsed.guessed_type


def test_unknown_label_is_a_validation_error():
    with pytest.raises(ValidationError):
        as_phrase_type("lie")


class TestRealtimeMessages:

    async def test_join_room_message_binds_and_announces(self, coordinator, registry):
        ws = FakeWebSocket()

        await coordinator.handle_message(ws, '{"type": "join_room", "roomId": "ABC123", "userId": 7}')

        assert registry.connection_for(7) is ws
        assert ws.events == [{"type": "user_joined", "userId": 7}]

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2, 3]",
            '{"type": "join_room", "roomId": "ABC123"}',
            '{"type": "dance", "roomId": "ABC123", "userId": 1}',
        ],
    )
    async def test_bad_frames_are_ignored(self, coordinator, registry, raw):
        ws = FakeWebSocket()
        await coordinator.handle_message(ws, raw)
        assert registry.rooms() == set()
        assert ws.sent == []

    async def test_disconnect_unbinds(self, coordinator, registry):
        ws = FakeWebSocket()
        await coordinator.handle_message(ws, '{"type": "join_room", "roomId": "ABC123", "userId": 7}')
        coordinator.disconnect(ws)
        assert registry.connection_for(7) is None
        assert registry.rooms() == set()


async def test_full_round_scenario(coordinator, registry, memory_storage, players):
    room = await coordinator.create_room("ABC123", 5, 1)
    assert room.status == RoomStatus.WAITING
    assert [p.user_id for p in (await coordinator.get_room("ABC123")).players] == [1]

    host_ws = FakeWebSocket()
    await coordinator.handle_message(host_ws, '{"type": "join_room", "roomId": "ABC123", "userId": 1}')

    await coordinator.join_room("ABC123", 2)
    assert [p.user_id for p in (await coordinator.get_room("ABC123")).players] == [1, 2]

    started = await coordinator.start_game("ABC123", 1)
    assert started.status == RoomStatus.PLAYING
    assert started.current_player_id == 1

    submission = await coordinator.submit_phrase("ABC123", 1, 1, "I once sang karaoke badly", "truth")
    vote = await coordinator.cast_vote(submission.id, 2, "meme")
    assert vote.is_correct is False

    assert host_ws.types() == ["user_joined", "player_joined", "game_started", "new_submission"]
    assert "actualType" not in host_ws.events[-1]["submission"]


@given(
    actual=st.sampled_from(list(PhraseType)),
    guessed=st.sampled_from(["truth", "meme", "fabrication", "TRUTH", " Meme "]),
)
@settings(max_examples=30, deadline=None)
def test_vote_correctness_matches_label(actual, guessed):
    async def scenario():
        storage = MemoryStorage()
        coordinator = RoomCoordinator(storage, ConnectionRegistry())
        await storage.create_user("alice", "Alice")
        await storage.create_user("bob", "Bob")
        await _started_room(coordinator)
        submission = await coordinator.submit_phrase("ABC123", 1, 1, "Phrase", actual)
        return await coordinator.cast_vote(submission.id, 2, guessed)

    vote = asyncio.run(scenario())
    assert vote.is_correct == (as_phrase_type(guessed) == actual)
