"""Domain errors raised by the coordinator and storage layer.

Each error carries the HTTP status it maps to so the FastAPI exception
handler in :mod:`truthmeme.app` can render ``{"error": message}`` without
knowing about individual error types.
"""
from __future__ import annotations

from fastapi import status


class GameError(Exception):
    """Base class for every error reported back to a caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# -----------------------------
# Taxonomy
# -----------------------------

class ValidationError(GameError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request data"


class NotFoundError(GameError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ForbiddenError(GameError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class ConflictError(GameError):
    # Business-rule violations are reported as plain 400s.
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Conflict"


class InternalError(GameError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# -----------------------------
# Concrete errors
# -----------------------------

class UserNotFound(NotFoundError):
    default_message = "User not found"


class RoomNotFound(NotFoundError):
    default_message = "Room not found"


class SubmissionNotFound(NotFoundError):
    default_message = "Submission not found"


class NotRoomHost(ForbiddenError):
    default_message = "Only host can start the game"


class UsernameTaken(ConflictError):
    default_message = "Username already taken"


class DuplicateRoom(ConflictError):
    default_message = "Room already exists"


class AlreadyJoined(ConflictError):
    default_message = "Already joined this room"


class GameAlreadyStarted(ConflictError):
    default_message = "Game already in progress"


class InsufficientPlayers(ConflictError):
    default_message = "Need at least 2 players to start"


class NotYourTurn(ConflictError):
    default_message = "Not your turn"


class DuplicateSubmission(ConflictError):
    default_message = "A phrase was already submitted this round"


class AlreadyVoted(ConflictError):
    default_message = "Already voted"


__all__ = [
    "GameError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "ConflictError",
    "InternalError",
    "UserNotFound",
    "RoomNotFound",
    "SubmissionNotFound",
    "NotRoomHost",
    "UsernameTaken",
    "DuplicateRoom",
    "AlreadyJoined",
    "GameAlreadyStarted",
    "InsufficientPlayers",
    "NotYourTurn",
    "DuplicateSubmission",
    "AlreadyVoted",
]
