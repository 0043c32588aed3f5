from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from models.ai_status import AIReportStatus
from models.votes import VoteType


class ApiModel(BaseModel):
    """Base for response bodies: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# User Schemas
class UserBase(ApiModel):
    name: str
    username: str


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    dob: date
    username: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=30,
        pattern=r"^[a-zA-Z0-9_.]+$",
        description="Generated from the name when omitted",
    )


class UserLogin(BaseModel):
    credential: str = Field(..., min_length=1, description="Email or username")
    password: str = Field(..., min_length=1)


class AuthorSummary(UserBase):
    id: int
    profile_picture: Optional[str] = None
    verified: bool = False


class User(UserBase):
    id: int
    email: EmailStr
    dob: date
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bio: str = ""
    profile_picture: Optional[str] = None
    banner_picture: Optional[str] = None
    badges: List[str] = []
    posts_count: int = 0
    verified: bool = False
    is_admin: bool = False
    is_active: bool = True
    created_at: datetime


class UserProfile(UserBase):
    """Public profile; no email or date of birth."""

    id: int
    location: Optional[str] = None
    bio: str = ""
    profile_picture: Optional[str] = None
    banner_picture: Optional[str] = None
    badges: List[str] = []
    posts_count: int = 0
    verified: bool = False
    created_at: datetime
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False
    is_own_profile: bool = False


class UsernameAvailability(ApiModel):
    username: str
    available: bool


class FollowStatus(ApiModel):
    is_following: bool
    followers_count: int
    following_count: int


class FollowResponse(FollowStatus):
    message: str


class LocationUpdate(BaseModel):
    location: str = Field(..., min_length=1, max_length=200)
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)


class BioUpdate(BaseModel):
    bio: str = Field(..., max_length=300)


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    user_id: Optional[int] = None


# Report Schemas
class ReportCreate(BaseModel):
    """
    Fields of a new report as received from the multipart form.

    Required fields are checked by the service rather than here, so a missing
    field yields the same "Missing required fields" error whatever the client.
    """

    category: Optional[str] = None
    incident_date: Optional[str] = None
    incident_time: Optional[str] = None
    location_text: Optional[str] = None
    incident_description: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    anonymous: bool = False
    agreed: bool = False
    tags: List[str] = []


class ReportUpdate(BaseModel):
    description: str = Field(..., min_length=1, max_length=5000)


class FinalizeRequest(ApiModel):
    edited_summary: Optional[str] = Field(default=None, max_length=2000)


class ReportImage(ApiModel):
    url: str
    position: int = 0


class Evidence(ApiModel):
    weapons: List[str] = []
    vehicle_types: List[str] = []
    license_plates: List[str] = []
    suspects_count: Optional[int] = None
    faces_detected: Optional[int] = None
    ocr_text: Optional[str] = None


class AIReport(ApiModel):
    status: AIReportStatus
    short_summary: Optional[str] = None
    full_report: Optional[str] = None
    extracted: Evidence = Evidence()
    confidence_score: Optional[float] = None
    reviewed_by_user: bool = False
    reviewed_at: Optional[datetime] = None


class Reply(ApiModel):
    id: int
    author: AuthorSummary
    text: str
    upvotes: int = 0
    downvotes: int = 0
    user_vote: Optional[VoteType] = None
    is_owner: bool = False
    created_at: datetime


class Comment(Reply):
    replies: List[Reply] = []


class Report(ApiModel):
    id: int
    author: AuthorSummary
    description: Optional[str] = None
    incident_description: Optional[str] = None
    category: str
    incident_date: str
    incident_time: str
    location_text: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    anonymous: bool = False
    agreed: bool = False
    tags: List[str] = []
    images: List[ReportImage] = []
    likes: int = 0
    upvotes: int = 0
    downvotes: int = 0
    comments: List[Comment] = []
    ai_report: Optional[AIReport] = None
    user_vote: Optional[VoteType] = None
    is_owner: bool = False
    relevance_score: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class FeedPage(ApiModel):
    feed: List[Report]
    next_cursor: Optional[str] = None
    has_more: bool = False


class ReportCreateResponse(ApiModel):
    message: str
    report: Report
    summary: Optional[str] = None
    requires_approval: bool = True


class VoteResponse(ApiModel):
    message: str
    upvotes: int
    downvotes: int
    user_vote: Optional[VoteType] = None


# Comment Schemas
class CommentCreate(BaseModel):
    text: str = Field(..., max_length=1000)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class ReplyCreate(CommentCreate):
    text: str = Field(..., max_length=500)


class CommentVoteRequest(BaseModel):
    type: VoteType


class CommentCreated(ApiModel):
    message: str
    comment: Comment


class ReplyCreated(ApiModel):
    message: str
    reply: Reply


class MessageResponse(ApiModel):
    message: str


# Location Schemas
class LocationResult(ApiModel):
    display_name: str
    lat: float
    lon: float
    type: Optional[str] = None


class ReverseLocation(ApiModel):
    display_name: str
    lat: Optional[float] = None
    lon: Optional[float] = None
    address: dict = {}
