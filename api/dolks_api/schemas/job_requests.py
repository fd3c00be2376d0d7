from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from dolks_api.schemas.posts import AuthorOut, TextList

JobRequestStatus = Literal["Pending", "Approved", "Rejected"]
ModerationStatus = Literal["Approved", "Rejected"]


class JobRequestOut(BaseModel):
    id: str
    user_id: str
    job_title: str
    job_short_description: str | None = None
    job_full_description: str | None = None
    job_category_names: TextList = Field(default_factory=list)
    job_category_type_ids: TextList = Field(default_factory=list)
    job_urgency: str | None = None
    job_budget: str | None = None
    job_start_date: str | None = None
    job_complete_date: str | None = None
    job_location: str | None = None
    job_latitude: float | None = None
    job_longitude: float | None = None
    job_special_requirements: str | None = None
    job_tags_ids: TextList | None = None
    job_tags_names: TextList = Field(default_factory=list)
    job_documents_images: TextList = Field(default_factory=list)
    status: str
    created_at: datetime
    updated_at: datetime | None = None


class JobRequestDetailOut(JobRequestOut):
    job_consent: bool = False
    rejection_reason: str | None = None


class JobRequestAdminOut(JobRequestDetailOut):
    user: AuthorOut | None = None


class JobRequestCreateRequest(BaseModel):
    job_title: str = Field(min_length=1)
    job_short_description: str = Field(min_length=1)
    job_full_description: str = Field(min_length=1)
    job_category_type_ids: list[str] = Field(min_length=1)
    job_urgency: str = Field(min_length=1)
    job_budget: str | None = None
    job_start_date: date
    job_complete_date: date
    job_location: str = Field(min_length=1)
    job_latitude: float | None = None
    job_longitude: float | None = None
    job_special_requirements: str | None = None
    job_documents_images_base64: list[str] = Field(default_factory=list)
    job_tags_ids: list[str] = Field(default_factory=list)
    job_consent: bool = False


class JobRequestCreateOut(BaseModel):
    success: bool = True
    job_request: JobRequestDetailOut
    message: str = "Job request created successfully"


class JobRequestModerationRequest(BaseModel):
    status: ModerationStatus
    rejection_reason: str | None = None
