"""
Pydantic models shared by the services and the API layer.

Three groups:
  - the generated itinerary document stored on a plan (GeneratedContent)
  - the structured response expected from the LLM (AIGeneratedContent)
  - commands (request bodies) and DTOs (response bodies)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ----------------------------------------------------------------------------
# Enums
# ----------------------------------------------------------------------------

class PlanStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"
    ARCHIVED = "archived"


class TravelPace(str, Enum):
    SLOW = "slow"
    MODERATE = "moderate"
    INTENSIVE = "intensive"


class FeedbackRating(str, Enum):
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"


ActivityCategory = Literal[
    "history", "food", "sport", "nature", "culture", "transport", "accommodation", "other"
]
ItemType = Literal["activity", "meal", "transport"]


def category_to_type(category: str) -> str:
    """Timeline item type derived from its category."""
    if category == "food":
        return "meal"
    if category == "transport":
        return "transport"
    return "activity"


# ----------------------------------------------------------------------------
# Generated itinerary document (plans.generated_content)
# ----------------------------------------------------------------------------

class TimelineItem(BaseModel):
    id: str
    type: ItemType
    time: Optional[str] = None
    category: ActivityCategory
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    estimated_price: Optional[str] = None
    estimated_duration: Optional[str] = None


class DayPlan(BaseModel):
    date: str
    items: List[TimelineItem] = Field(default_factory=list)


class GeneratedContent(BaseModel):
    summary: str
    currency: str = Field(min_length=3, max_length=3)
    days: List[DayPlan] = Field(default_factory=list)


# ----------------------------------------------------------------------------
# LLM structured response: tagged union on `status`
# ----------------------------------------------------------------------------

class AITimelineEvent(BaseModel):
    time: str = Field(description="24-hour HH:mm, e.g. 18:00")
    activity: str
    category: ActivityCategory
    description: str
    estimated_price: Optional[str] = Field(
        default=None, description="Numeric string without currency symbol, '0' when free"
    )
    estimated_duration: Optional[str] = None


class AIDayPlan(BaseModel):
    date: str = Field(description="YYYY-MM-DD")
    activities: List[AITimelineEvent]


class AIItineraryDates(BaseModel):
    start: str
    end: str


class AIItinerary(BaseModel):
    destination: str
    dates: AIItineraryDates
    days: List[AIDayPlan]


class AISuccessResponse(BaseModel):
    status: Literal["success"]
    summary: str
    currency: str = Field(min_length=3, max_length=3, description="ISO 4217 code")
    itinerary: AIItinerary


class AIErrorResponse(BaseModel):
    status: Literal["error"]
    error_type: Literal["unrealistic_plan", "invalid_location"]
    error_message: str


AIGeneratedContent = Annotated[
    Union[AISuccessResponse, AIErrorResponse],
    Field(discriminator="status"),
]


# ----------------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------------

class CreatePlanCommand(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    destination: str = Field(min_length=1, max_length=200)
    start_date: datetime
    end_date: datetime
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "CreatePlanCommand":
        if self.end_date < self.start_date:
            raise ValueError("End date must be equal to or after start date.")
        return self


class UpdatePlanCommand(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    notes: Optional[str] = None


class CreateFixedPointCommand(BaseModel):
    location: str = Field(min_length=1, max_length=300)
    event_at: datetime
    event_duration: int = Field(gt=0, description="Duration in minutes")
    description: Optional[str] = None


class UpdateFixedPointCommand(BaseModel):
    location: Optional[str] = Field(default=None, min_length=1, max_length=300)
    event_at: Optional[datetime] = None
    event_duration: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = None


_TIME_24 = r"^([01]\d|2[0-3]):([0-5]\d)$"


class AddActivityCommand(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    category: ActivityCategory
    time: Optional[str] = Field(default=None, pattern=_TIME_24)
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=200)
    estimated_cost: Optional[str] = Field(default=None, max_length=50)
    duration: Optional[int] = Field(default=None, gt=0, description="Minutes")


class UpdateActivityCommand(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[ActivityCategory] = None
    time: Optional[str] = Field(default=None, pattern=_TIME_24)
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=200)
    estimated_cost: Optional[str] = Field(default=None, max_length=50)
    duration: Optional[int] = Field(default=None, gt=0)


class SubmitFeedbackCommand(BaseModel):
    rating: Optional[FeedbackRating] = None
    comment: Optional[str] = Field(default=None, max_length=2000)


class UpdateProfileCommand(BaseModel):
    preferences: Optional[List[str]] = Field(default=None, min_length=2, max_length=5)
    travel_pace: Optional[TravelPace] = None
    onboarding_completed: Optional[bool] = None

    @field_validator("preferences")
    @classmethod
    def _strip_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        tags = [tag.strip() for tag in value]
        if any(not tag for tag in tags):
            raise ValueError("Preferences cannot contain empty values.")
        return tags


# ----------------------------------------------------------------------------
# DTOs
# ----------------------------------------------------------------------------

class ProfileDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    generations_remaining: int
    travel_pace: Optional[TravelPace] = None
    preferences: Optional[List[str]] = None
    onboarding_completed: bool = False
    updated_at: Optional[datetime] = None


class FixedPointDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    plan_id: str
    location: str
    event_at: datetime
    event_duration: int
    description: Optional[str] = None


class PlanListItemDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    destination: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: PlanStatus
    created_at: Optional[datetime] = None


class PlanDetailsDto(PlanListItemDto):
    user_id: str
    notes: Optional[str] = None
    generated_content: Optional[GeneratedContent] = None
    updated_at: Optional[datetime] = None


class PaginationDto(BaseModel):
    total: int
    limit: int
    offset: int


class PaginatedPlansDto(BaseModel):
    data: List[PlanListItemDto]
    pagination: PaginationDto


class FeedbackDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    plan_id: str
    rating: Optional[FeedbackRating] = None
    comment: Optional[str] = None
    updated_at: Optional[datetime] = None
