from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field

from ..models.chore import ChoreStatus
from ..models.content import PublishStatus
from ..models.reward import RewardType
from .common import CamelModel


class ActionEnvelope(BaseModel):
    action: str
    payload: Any = None


# -- accounts

class RegisterFamilyIn(CamelModel):
    family_name: str = Field(min_length=1)
    city: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class FamilyCodeIn(CamelModel):
    family_code: str = Field(min_length=1)


class EmailIn(CamelModel):
    email: EmailStr


class IdIn(CamelModel):
    id: str


# -- children

class ChildIn(CamelModel):
    child_id: Optional[str] = None
    name: str = Field(min_length=1)
    pin: str = Field(min_length=1)
    avatar: str = Field(min_length=1)


class UpdateChildIn(CamelModel):
    child_id: str
    name: Optional[str] = Field(default=None, min_length=1)
    pin: Optional[str] = Field(default=None, min_length=1)
    avatar: Optional[str] = Field(default=None, min_length=1)


class ChildRefIn(CamelModel):
    child_id: str


# -- chores

class ChoreIn(CamelModel):
    chore_id: Optional[str] = None
    name: str = Field(min_length=1)
    points: int = Field(ge=0, strict=True)
    assigned_to: List[str] = []


class UpdateChoreIn(CamelModel):
    """Only the fields present in the payload are changed; ``null`` clears a submission field."""

    chore_id: str
    name: Optional[str] = Field(default=None, min_length=1)
    points: Optional[int] = Field(default=None, ge=0, strict=True)
    assigned_to: Optional[List[str]] = None
    status: Optional[ChoreStatus] = None
    submitted_by: Optional[str] = None
    emotion: Optional[str] = None
    photo_url: Optional[str] = None


class ChoreRefIn(CamelModel):
    chore_id: str


class SubmitChoreIn(CamelModel):
    chore_id: str
    child_id: str
    emotion: Optional[str] = None
    photo_url: Optional[str] = None
    submitted_at: Optional[datetime] = None


# -- rewards

class RewardIn(CamelModel):
    reward_id: Optional[str] = None
    name: str = Field(min_length=1)
    points: int = Field(ge=0, strict=True)
    type: RewardType
    assigned_to: List[str] = []


class UpdateRewardIn(CamelModel):
    reward_id: str
    name: Optional[str] = Field(default=None, min_length=1)
    points: Optional[int] = Field(default=None, ge=0, strict=True)
    type: Optional[RewardType] = None
    assigned_to: Optional[List[str]] = None


class RewardRefIn(CamelModel):
    reward_id: str


class RedeemRewardIn(CamelModel):
    child_id: str
    reward_id: str


class PendingRewardIn(CamelModel):
    pending_reward_id: str


# -- admin

class AdminFamilyIn(CamelModel):
    family_name: str = Field(min_length=1)
    city: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    family_code: Optional[str] = Field(default=None, min_length=4, max_length=16)


class AdminFamilyUpdateIn(CamelModel):
    family_id: str
    family_name: Optional[str] = Field(default=None, min_length=1)
    city: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    family_code: Optional[str] = Field(default=None, min_length=4, max_length=16)
    password: Optional[str] = Field(default=None, min_length=6)


class AdminFamilyRefIn(CamelModel):
    family_id: str


# -- content

class GoodCauseIn(CamelModel):
    cause_id: Optional[str] = None
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    start_date: datetime
    end_date: datetime
    logo_url: Optional[str] = None


class BlogPostIn(CamelModel):
    post_id: Optional[str] = None
    title: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    excerpt: str = Field(min_length=1)
    content: str = Field(min_length=1)
    cover_image_url: Optional[str] = None
    tags: List[str] = []
    status: PublishStatus
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    published_at: Optional[datetime] = None


class ReviewIn(CamelModel):
    review_id: Optional[str] = None
    title: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    excerpt: str = Field(min_length=1)
    content: str = Field(min_length=1)
    rating: int = Field(ge=0, le=5, strict=True)
    author: str = Field(min_length=1)
    status: PublishStatus
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    published_at: Optional[datetime] = None
