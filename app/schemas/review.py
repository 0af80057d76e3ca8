"""Pydantic schemas for review endpoints."""

from datetime import datetime, timezone

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema exchanged as camelCase JSON."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "from_attributes": True}


class ReviewSubmitRequest(CamelModel):
    # Presence and range are checked by ReviewService.validate_submission
    # so missing fields produce the same message on every adapter.
    audio_id: int | None = None
    title: str | None = None
    rating: float | None = None
    timestamp: datetime | None = None
    date: str | None = None
    time: str | None = None
    user_agent: str | None = None
    session_id: str | None = None


class ReviewSubmitResponse(CamelModel):
    success: bool = True
    id: int
    message: str = "Review submitted successfully"


class ReviewResponse(CamelModel):
    id: int
    audio_id: int
    title: str
    rating: float
    timestamp: datetime | None
    date: str | None
    time: str | None
    session_id: str
    created_at: datetime

    @field_validator("rating", mode="before")
    @classmethod
    def _numeric_to_float(cls, value):
        return float(value)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_as_utc(cls, value: datetime | None) -> datetime | None:
        # Stored as UTC; backends without time zone support hand it back naive.
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class AdminReviewResponse(ReviewResponse):
    user_agent: str | None
    ip_address: str | None
    updated_at: datetime


class SessionReviewListResponse(CamelModel):
    success: bool = True
    reviews: list[ReviewResponse]


class Pagination(CamelModel):
    limit: int
    offset: int


class AdminReviewListResponse(CamelModel):
    success: bool = True
    reviews: list[AdminReviewResponse]
    total_count: int
    pagination: Pagination


class RatingBucket(CamelModel):
    rating: int
    count: int


class AudioStat(CamelModel):
    audio_id: int
    title: str
    review_count: int
    average_rating: str


class Analytics(CamelModel):
    total_reviews: int
    average_rating: str
    unique_sessions: int
    reviewed_audios: int
    first_review: datetime | None
    latest_review: datetime | None
    rating_distribution: list[RatingBucket] = []
    audio_stats: list[AudioStat] = []


class AnalyticsResponse(CamelModel):
    success: bool = True
    analytics: Analytics
