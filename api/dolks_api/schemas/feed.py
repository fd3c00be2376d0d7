from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer

from dolks_api.schemas.posts import AuthorOut, TextList
from dolks_api.schemas.job_requests import JobRequestOut


class CompanyFeedRequest(BaseModel):
    user_id: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)


class PostFeedItem(BaseModel):
    type: Literal["post"] = "post"
    id: str
    user_id: str
    description: str | None = None
    image_url: TextList = Field(default_factory=list)
    location: str | None = None
    mentions: TextList = Field(default_factory=list)
    tag_ids: TextList | None = None
    tags_name: TextList = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None
    total_likes: int = 0
    total_comments: int = 0
    total_shares: int = 0
    user: AuthorOut | None = None


class JobRequestFeedItem(JobRequestOut):
    type: Literal["job_request"] = "job_request"
    user: AuthorOut | None = None


FeedItem = Annotated[Union[PostFeedItem, JobRequestFeedItem], Field(discriminator="type")]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CompanyFeedResponse(BaseModel):
    success: bool = True
    data: list[FeedItem] = Field(default_factory=list)
    message: str | None = None
    pagination: Pagination

    @model_serializer(mode="wrap")
    def omit_empty_message(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if data.get("message") is None:
            data.pop("message", None)
        return data
