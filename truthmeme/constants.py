from enum import Enum


class RoomStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class PhraseType(str, Enum):
    """Label of a submitted phrase: a true fact or a made-up one."""

    TRUTH = "truth"
    MEME = "meme"


# Accepted spellings on input, normalised to a PhraseType value.
PHRASE_TYPE_ALIASES: dict[str, str] = {
    "fabrication": PhraseType.MEME.value,
}

MIN_PLAYERS_TO_START = 2
DEFAULT_MAX_ROUNDS = 5
PHRASE_MAX_LENGTH = 200
ROOM_ID_MAX_LENGTH = 32

# Outbound real-time event types
EVENT_USER_JOINED = "user_joined"
EVENT_PLAYER_JOINED = "player_joined"
EVENT_GAME_STARTED = "game_started"
EVENT_NEW_SUBMISSION = "new_submission"

# Inbound real-time message types
MSG_JOIN_ROOM = "join_room"

__all__ = [
    "RoomStatus",
    "PhraseType",
    "PHRASE_TYPE_ALIASES",
    "MIN_PLAYERS_TO_START",
    "DEFAULT_MAX_ROUNDS",
    "PHRASE_MAX_LENGTH",
    "ROOM_ID_MAX_LENGTH",
    "EVENT_USER_JOINED",
    "EVENT_PLAYER_JOINED",
    "EVENT_GAME_STARTED",
    "EVENT_NEW_SUBMISSION",
    "MSG_JOIN_ROOM",
]
