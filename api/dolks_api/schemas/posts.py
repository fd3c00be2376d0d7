from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field

InteractionAction = Literal["like", "comment", "share", "favorite"]


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, list):
        return [item for item in value if item is not None]
    return value


# Array columns may hold NULL elements; those are dropped.
TextList = Annotated[list[str], BeforeValidator(_drop_nulls)]


class AuthorOut(BaseModel):
    user_id: str
    full_name: str | None = None
    username: str | None = None
    profile_picture_url: str | None = None
    email: str | None = None


class PostOut(BaseModel):
    id: str
    user_id: str
    description: str | None = None
    image_url: TextList = Field(default_factory=list)
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    mentions: TextList = Field(default_factory=list)
    tag_ids: TextList | None = None
    tags_name: TextList = Field(default_factory=list)
    tag_people_ids: TextList = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None


class PostWithEngagementOut(PostOut):
    total_likes: int = 0
    total_comments: int = 0
    total_shares: int = 0
    is_added_favorite: bool = False


class PostListOut(BaseModel):
    posts: list[PostWithEngagementOut] = Field(default_factory=list)


class PostCreateRequest(BaseModel):
    description: str | None = None
    image_base64: str | None = None
    location: str | None = None
    tagged_user_ids: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    tag_ids: list[str] = Field(default_factory=list)


class PostCreateOut(BaseModel):
    success: bool = True
    post: PostOut


class PostInteractionRequest(BaseModel):
    post_id: str | None = None
    action: str | None = None
    comment_text: str | None = None


class CommentOut(BaseModel):
    id: str
    post_id: str
    user_id: str
    comment_text: str
    created_at: datetime


class PostInteractionOut(BaseModel):
    success: bool = True
    action: str
    liked: bool | None = None
    shared: bool | None = None
    favorited: bool | None = None
    comment: CommentOut | None = None
