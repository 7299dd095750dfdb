from tortoise import fields
from tortoise.models import Model

from .constants import DEFAULT_MAX_ROUNDS, PHRASE_MAX_LENGTH, ROOM_ID_MAX_LENGTH, PhraseType, RoomStatus


class User(Model):
    """Player account stored in the database."""

    id = fields.IntField(pk=True)
    username = fields.CharField(max_length=50, unique=True, index=True)
    display_name = fields.CharField(max_length=100)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"


class Room(Model):
    # Room codes are picked by the creator, not generated.
    id = fields.CharField(pk=True, max_length=ROOM_ID_MAX_LENGTH)
    host = fields.ForeignKeyField("models.User", related_name="hosted_rooms")
    status = fields.CharEnumField(RoomStatus, max_length=16, default=RoomStatus.WAITING)
    current_player = fields.ForeignKeyField("models.User", related_name="turn_rooms", null=True)
    current_round = fields.IntField(default=1)
    max_rounds = fields.IntField(default=DEFAULT_MAX_ROUNDS)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "rooms"


class RoomPlayer(Model):
    id = fields.IntField(pk=True)
    room = fields.ForeignKeyField("models.Room", related_name="players", on_delete=fields.CASCADE)
    user = fields.ForeignKeyField("models.User", related_name="room_memberships")
    score = fields.IntField(default=0)
    joined_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "room_players"
        unique_together = (("room", "user"),)


class GameSubmission(Model):
    id = fields.IntField(pk=True)
    room = fields.ForeignKeyField("models.Room", related_name="submissions", on_delete=fields.CASCADE)
    player = fields.ForeignKeyField("models.User", related_name="submissions")
    round = fields.IntField()
    phrase = fields.CharField(max_length=PHRASE_MAX_LENGTH)
    actual_type = fields.CharEnumField(PhraseType, max_length=16)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "game_submissions"
        # One submission per turn.
        unique_together = (("room", "round"),)


class GameVote(Model):
    id = fields.IntField(pk=True)
    submission = fields.ForeignKeyField("models.GameSubmission", related_name="votes", on_delete=fields.CASCADE)
    voter = fields.ForeignKeyField("models.User", related_name="votes")
    guessed_type = fields.CharEnumField(PhraseType, max_length=16)
    is_correct = fields.BooleanField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "game_votes"
        unique_together = (("submission", "voter"),)
