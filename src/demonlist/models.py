"""Data models for demonlist service."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model speaking camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        """Dump to a JSON-ready dict using wire names."""
        return self.model_dump(mode="json", by_alias=True)


class ListType(str, Enum):
    """Named lists a level can belong to."""

    MAIN = "main"
    UNRATED = "unrated"
    PLATFORMER = "platformer"
    SPEEDHACK = "speedhack"
    CHALLENGE = "challenge"
    FUTURE = "future"

    @property
    def max_length(self) -> int:
        """Maximum number of levels kept on this list."""
        return 150 if self is ListType.MAIN else 75


PRIMARY_LIST = ListType.MAIN


class Role(str, Enum):
    """Caller roles carried in the bearer token."""

    ADMIN = "ADMIN"
    MODERATOR = "MODERATOR"
    USER = "USER"


class ChangeType(str, Enum):
    """Kinds of list change recorded in the audit log."""

    ADD = "ADD"
    REMOVE = "REMOVE"
    MOVE = "MOVE"


Name = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)
]
PlayerName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class LevelRecord(ApiModel):
    """A player's completion entry on a level."""

    username: PlayerName
    percent: int = Field(..., ge=1, le=100)
    video_id: str | None = None


class LevelData(ApiModel):
    """Editable level metadata supplied by admins."""

    name: Name
    creator: Name
    verifier: PlayerName
    video_id: RequiredText
    level_id: int | None = Field(default=None, description="External numeric level ID")
    description: str = ""

    @field_validator("level_id", mode="before")
    @classmethod
    def validate_level_id(cls, v: object) -> object:
        """Treat blank IDs as absent; anything else must be a positive number."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if isinstance(v, str):
            v = v.strip()
            if not v.isdigit():
                raise ValueError("Level ID must be a number")
            return int(v)
        if isinstance(v, bool) or not isinstance(v, int) or v < 1:
            raise ValueError("Level ID must be a positive number")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: object) -> object:
        """Store a missing description as an empty string."""
        return "" if v is None else v


class Level(LevelData):
    """A ranked level as stored and served."""

    id: str
    list_type: ListType = Field(..., alias="list")
    placement: int
    records: list[LevelRecord] = Field(default_factory=list)


class ListChange(ApiModel):
    """Audit entry written with every reorder."""

    id: str
    change_type: ChangeType = Field(..., alias="type")
    description: str
    level_id: str
    list_type: ListType = Field(..., alias="list")
    created_at: datetime


class AddLevelRequest(ApiModel):
    """Body of the add-level operation."""

    level_data: LevelData
    list_type: ListType = Field(..., alias="list")
    placement: int = Field(..., ge=1)


class MoveLevelRequest(ApiModel):
    """Body of the move-level operation."""

    level_id: str = Field(..., min_length=1)
    new_placement: int = Field(..., ge=1)


class RemoveLevelRequest(ApiModel):
    """Body of the remove-level operation."""

    level_id: str = Field(..., min_length=1)


class UpdateLevelRequest(ApiModel):
    """Body of the update-level operation."""

    level_id: str = Field(..., min_length=1)
    level_data: LevelData


class AddRecordRequest(ApiModel):
    """Body of the admin add-record operation."""

    level_id: str = Field(..., min_length=1)
    username: PlayerName
    percent: int = Field(..., ge=1, le=100)
    video_id: RequiredText


class RemoveRecordRequest(ApiModel):
    """Body of the admin remove-record operation."""

    level_id: str = Field(..., min_length=1)
    record_video_id: str = Field(..., min_length=1)


class PlayerStat(ApiModel):
    """Aggregate score and rank of one player on the primary list."""

    name: str
    score: float = 0.0
    rank: int | None = None
    hardest_demon_name: str | None = None
    hardest_demon_placement: int | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> str:
        """Case-insensitive identity of the player."""
        return self.name.lower()


class LeaderboardResponse(ApiModel):
    """Ranked players of the primary list."""

    list_type: ListType = Field(default=PRIMARY_LIST, alias="list")
    leaderboard: list[PlayerStat]


class PlayerProfile(ApiModel):
    """Stats plus the levels a player verified or completed."""

    player_stat: PlayerStat
    verified_levels: list[Level]
    completed_levels: list[Level]


class TokenPayload(ApiModel):
    """Decoded bearer token."""

    user_id: str = Field(..., min_length=1)
    username: str | None = None
    role: Role = Role.USER

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_user_id(cls, v: object) -> object:
        """Accept numeric user IDs."""
        return str(v) if isinstance(v, int) else v

    @field_validator("role", mode="before")
    @classmethod
    def default_unknown_role(cls, v: object) -> object:
        """Unknown or missing roles get default privileges."""
        if v is None:
            return Role.USER
        if isinstance(v, Role):
            return v
        try:
            return Role(str(v).upper())
        except ValueError:
            return Role.USER


class SubmissionStatus(str, Enum):
    """Moderation states of a record submission."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SubmissionCreate(ApiModel):
    """Body of a record submission."""

    level_name: Name
    player: PlayerName
    percent: int = Field(..., ge=1, le=100)
    video_id: RequiredText
    raw_footage_link: RequiredText
    notes: str | None = None


class Submission(SubmissionCreate):
    """A stored record submission."""

    id: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    submitted_by: str
    created_at: datetime


class SubmissionReview(ApiModel):
    """Body of a moderator decision on a submission."""

    submission_id: str = Field(..., min_length=1)
    new_status: SubmissionStatus

    @field_validator("new_status")
    @classmethod
    def final_status(cls, v: SubmissionStatus) -> SubmissionStatus:
        """Reviews must settle the submission."""
        if v is SubmissionStatus.PENDING:
            raise ValueError("newStatus must be APPROVED or REJECTED")
        return v


class PersonalRecordStatus(str, Enum):
    """Which of a user's personal lists a record belongs to."""

    COMPLETED = "COMPLETED"
    IN_PROGRESS = "IN_PROGRESS"


class PersonalRecordInput(ApiModel):
    """Body for creating or editing a personal record."""

    placement: int = Field(..., ge=1)
    level_name: str = Field(..., min_length=1, max_length=200)
    difficulty: str = Field(..., min_length=1)
    attempts: int | None = Field(default=None, ge=0)
    video_url: str = Field(..., min_length=1)
    thumbnail_url: str | None = None
    status: PersonalRecordStatus


class PersonalRecord(PersonalRecordInput):
    """A stored personal record."""

    id: str
    user_id: str
    created_at: datetime


class FriendshipStatus(str, Enum):
    """States of a friendship between two users."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class FriendRequest(ApiModel):
    """Body of a friend request."""

    receiver_id: str = Field(..., min_length=1)


class FriendResponse(ApiModel):
    """Body of an answer to a friend request."""

    friendship_id: str = Field(..., min_length=1)
    response: FriendshipStatus

    @field_validator("response")
    @classmethod
    def answer_only(cls, v: FriendshipStatus) -> FriendshipStatus:
        if v is FriendshipStatus.PENDING:
            raise ValueError("response must be ACCEPTED or DECLINED")
        return v


class Friendship(ApiModel):
    """A friendship or pending request between two users."""

    id: str
    requester_id: str
    receiver_id: str
    status: FriendshipStatus
    updated_at: datetime

    def other(self, user_id: str) -> str:
        """Return the ID of the user on the other side."""
        return self.receiver_id if user_id == self.requester_id else self.requester_id


class LayoutCreate(ApiModel):
    """Body of a layout submission."""

    level_name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    song_name: str | None = None
    song_id: str | None = None
    video_url: str = Field(..., min_length=1)
    difficulty: str = Field(..., min_length=1)
    tags: list[str] = Field(default_factory=list)


class Layout(LayoutCreate):
    """A community-submitted level layout."""

    id: str
    creator_id: str
    created_at: datetime


class LayoutReportStatus(str, Enum):
    """Moderation states of a layout report."""

    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


class LayoutReportCreate(ApiModel):
    """Body of a layout report."""

    layout_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=1000)


class LayoutReport(LayoutReportCreate):
    """A stored layout report."""

    id: str
    reporter_id: str
    status: LayoutReportStatus = LayoutReportStatus.PENDING
    created_at: datetime


class LayoutReportUpdate(ApiModel):
    """Body of a moderator decision on a layout report."""

    report_id: str = Field(..., min_length=1)
    status: LayoutReportStatus
