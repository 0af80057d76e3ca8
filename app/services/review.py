"""Review service: submission, listing, export and analytics."""

import math
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Float, distinct, func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.models.review import Review
from app.schemas.review import (
    AdminReviewListResponse,
    AdminReviewResponse,
    Analytics,
    AnalyticsResponse,
    AudioStat,
    Pagination,
    RatingBucket,
    ReviewResponse,
    ReviewSubmitRequest,
    ReviewSubmitResponse,
    SessionReviewListResponse,
)

MISSING_FIELDS_ERROR = "Missing required fields: audioId, title, rating, sessionId"
RATING_RANGE_ERROR = "Rating must be between 0 and 5"
SESSION_REQUIRED_ERROR = "Session ID is required"
AUDIO_ID_RANGE_ERROR = "audioId is out of range"
INTERNAL_ERROR = "Internal server error"

# Largest value an INTEGER column holds on every supported backend.
MAX_DB_INT = 2**31 - 1

MAX_TITLE_LENGTH = 500
MAX_SESSION_ID_LENGTH = 100
MAX_DISPLAY_LENGTH = 20

CSV_HEADERS = ["ID", "Audio ID", "Title", "Rating", "Date", "Time", "Session ID", "IP Address", "Created At"]

# Columns rewritten when a session resubmits a review for the same audio item.
UPDATABLE_FIELDS = ("title", "rating", "timestamp", "date", "time", "user_agent", "ip_address")

# Dialects with INSERT ... ON CONFLICT DO UPDATE ... RETURNING support.
UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class ReviewService:
    """Handles review upserts, session listing, admin export and analytics."""

    def validate_submission(self, body: ReviewSubmitRequest) -> str | None:
        """Validate a submission. Returns error message or None if valid."""
        if (
            body.audio_id is None
            or not (body.title or "").strip()
            or body.rating is None
            or not (body.session_id or "").strip()
        ):
            return MISSING_FIELDS_ERROR

        if not -MAX_DB_INT - 1 <= body.audio_id <= MAX_DB_INT:
            return AUDIO_ID_RANGE_ERROR

        # NaN fails both comparisons
        if not 0 <= body.rating <= 5:
            return RATING_RANGE_ERROR

        if len(body.title) > MAX_TITLE_LENGTH:
            return f"Title must be at most {MAX_TITLE_LENGTH} characters"
        if len(body.session_id) > MAX_SESSION_ID_LENGTH:
            return f"Session ID must be at most {MAX_SESSION_ID_LENGTH} characters"
        for name, value in (("Date", body.date), ("Time", body.time)):
            if value and len(value) > MAX_DISPLAY_LENGTH:
                return f"{name} must be at most {MAX_DISPLAY_LENGTH} characters"

        return None

    def submit_review(self, db: Session, body: ReviewSubmitRequest, client_ip: str) -> ReviewSubmitResponse:
        """Insert or update the review for (session_id, audio_id) in one statement."""
        now = datetime.utcnow()
        values = {
            "audio_id": body.audio_id,
            "title": body.title,
            "rating": Decimal(str(body.rating)).quantize(Decimal("0.01")),
            "timestamp": to_utc(body.timestamp) if body.timestamp else datetime.now(timezone.utc),
            "date": body.date,
            "time": body.time,
            "user_agent": body.user_agent,
            "session_id": body.session_id,
            "ip_address": client_ip,
        }

        insert = UPSERT_INSERTS.get(db.get_bind().dialect.name)
        if insert is None:
            review_id = self._upsert_with_lock(db, values, now)
        else:
            stmt = insert(Review).values(**values, created_at=now, updated_at=now)
            update_set = {field: stmt.excluded[field] for field in UPDATABLE_FIELDS}
            update_set["updated_at"] = now
            stmt = stmt.on_conflict_do_update(
                index_elements=[Review.session_id, Review.audio_id],
                set_=update_set,
            ).returning(Review.id)
            review_id = db.execute(stmt).scalar_one()

        db.commit()
        return ReviewSubmitResponse(id=review_id)

    def _upsert_with_lock(self, db: Session, values: dict, now: datetime) -> int:
        """Select-then-write under a row lock; the unique constraint rejects a lost race."""
        review = (
            db.query(Review)
            .filter(Review.session_id == values["session_id"], Review.audio_id == values["audio_id"])
            .with_for_update()
            .first()
        )
        if review is None:
            review = Review(**values, created_at=now, updated_at=now)
            db.add(review)
        else:
            for field in UPDATABLE_FIELDS:
                setattr(review, field, values[field])
            review.updated_at = now
        db.flush()
        return review.id

    def list_session_reviews(self, db: Session, session_id: str) -> SessionReviewListResponse:
        """Get all reviews for a session, newest first."""
        reviews = (
            db.query(Review)
            .filter(Review.session_id == session_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )
        return SessionReviewListResponse(reviews=[ReviewResponse.model_validate(r) for r in reviews])

    def list_all_reviews(self, db: Session, limit: int = 1000, offset: int = 0) -> AdminReviewListResponse:
        """Get a page of all reviews with the total row count."""
        total_column = func.count().over().label("total_count")
        rows = (
            db.query(Review, total_column)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

        if rows:
            total = rows[0].total_count
        else:
            # The window count is only available when the page has rows.
            total = db.query(func.count(Review.id)).scalar() or 0

        return AdminReviewListResponse(
            reviews=[AdminReviewResponse.model_validate(row.Review) for row in rows],
            total_count=total,
            pagination=Pagination(limit=limit, offset=offset),
        )

    def get_analytics(self, db: Session) -> AnalyticsResponse:
        """Aggregate counts, averages and distributions over all reviews."""
        total, average, sessions, audios, first_review, latest_review = db.query(
            func.count(Review.id),
            func.avg(Review.rating, type_=Float),
            func.count(distinct(Review.session_id)),
            func.count(distinct(Review.audio_id)),
            func.min(Review.created_at),
            func.max(Review.created_at),
        ).one()

        # Grouped by exact rating and bucketed here so flooring behaves the same on every backend.
        buckets: dict[int, int] = {}
        for rating, count in db.query(Review.rating, func.count(Review.id)).group_by(Review.rating).all():
            bucket = math.floor(rating)
            buckets[bucket] = buckets.get(bucket, 0) + count

        review_count = func.count(Review.id).label("review_count")
        audio_rows = (
            db.query(Review.audio_id, Review.title, review_count, func.avg(Review.rating, type_=Float))
            .group_by(Review.audio_id, Review.title)
            .order_by(review_count.desc(), Review.audio_id)
            .all()
        )

        analytics = Analytics(
            total_reviews=total or 0,
            average_rating=format_average(average),
            unique_sessions=sessions or 0,
            reviewed_audios=audios or 0,
            first_review=first_review,
            latest_review=latest_review,
            rating_distribution=[RatingBucket(rating=k, count=v) for k, v in sorted(buckets.items())],
            audio_stats=[
                AudioStat(
                    audio_id=audio_id,
                    title=title,
                    review_count=count,
                    average_rating=format_average(avg),
                )
                for audio_id, title, count, avg in audio_rows
            ],
        )
        return AnalyticsResponse(analytics=analytics)

    def generate_csv(self, reviews: list[AdminReviewResponse]) -> str:
        """Render reviews as CSV with a fixed column order. Client-supplied text is always quoted."""
        lines = [",".join(CSV_HEADERS)]
        for review in reviews:
            fields = [
                review.id,
                review.audio_id,
                quote_csv(review.title),
                f"{review.rating:g}",
                quote_csv(review.date),
                quote_csv(review.time),
                quote_csv(review.session_id),
                review.ip_address,
                review.created_at.isoformat(),
            ]
            lines.append(",".join("" if value is None else str(value) for value in fields))
        return "\n".join(lines)

    def csv_filename(self, day: date | None = None) -> str:
        """Attachment filename for an export made on the given (UTC) day."""
        day = day or datetime.utcnow().date()
        return f"reviews-{day.isoformat()}.csv"


def to_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def quote_csv(value: str | None) -> str | None:
    """Double-quote a text cell, doubling embedded quotes. None stays empty."""
    if value is None:
        return None
    return '"' + value.replace('"', '""') + '"'


def format_average(value: float | Decimal | None) -> str:
    """Format an average rating to two decimals, treating no data as zero."""
    return f"{float(value or 0):.2f}"


_review_service: ReviewService | None = None


def get_review_service() -> ReviewService:
    """Get singleton review service instance."""
    global _review_service
    if _review_service is None:
        _review_service = ReviewService()
    return _review_service
