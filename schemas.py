"""
Database Schemas for the video sharing backend

Each Pydantic model maps to a MongoDB collection. References to other
documents are stored as ObjectIds so the database can join on them.

Collections:
- User -> users
- Video -> videos
- Comment -> comments
- Tweet -> tweets
- Playlist -> playlists
- Subscription -> subscriptions
- Like -> likes
"""

from typing import Annotated, List, Optional

from bson import ObjectId
from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator


class Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)


class User(Document):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=80)
    password: str = Field(..., description="Bcrypt hash")
    avatar: str
    avatar_public_id: Optional[str] = None
    cover_image: Optional[str] = None
    cover_image_public_id: Optional[str] = None
    watch_history: List[ObjectId] = Field(default_factory=list)
    refresh_token: Optional[str] = None


class Video(Document):
    video_file: str
    video_public_id: Optional[str] = None
    thumbnail: str
    thumbnail_public_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=120)
    description: str
    duration: float = 0
    views: int = Field(0, ge=0)
    is_published: bool = True
    owner: ObjectId


class Comment(Document):
    content: str
    video: ObjectId
    owner: ObjectId


class Tweet(Document):
    content: str
    owner: ObjectId


class Playlist(Document):
    name: str
    description: str
    videos: List[ObjectId] = Field(default_factory=list)
    owner: ObjectId


class Subscription(Document):
    subscriber: ObjectId = Field(..., description="The user who subscribes")
    channel: ObjectId = Field(..., description="The user being subscribed to")


class Like(Document):
    liked_by: ObjectId
    video: Optional[ObjectId] = None
    comment: Optional[ObjectId] = None
    tweet: Optional[ObjectId] = None


# -------------------- Request bodies --------------------

def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("content should not be empty")
    return value


NonBlank = Annotated[str, AfterValidator(_not_blank)]


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = Field(None, validation_alias=AliasChoices("refreshToken", "refresh_token"))


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., validation_alias=AliasChoices("oldPassword", "old_password"))
    new_password: str = Field(..., min_length=6, validation_alias=AliasChoices("newPassword", "new_password"))


class UpdateAccountRequest(BaseModel):
    full_name: NonBlank = Field(..., validation_alias=AliasChoices("fullName", "full_name"))
    email: EmailStr


class ContentRequest(BaseModel):
    """Body for creating or editing a comment or tweet."""

    content: NonBlank = Field(..., validation_alias=AliasChoices("content", "editedContent"))


class PlaylistRequest(BaseModel):
    name: str
    description: str

    @field_validator("name", "description")
    @classmethod
    def required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("All fields are required")
        return value


class PlaylistUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None

