"""Review model."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, UniqueConstraint

from app.database import Base


class Review(Base):
    """Rating submitted by a session for one audio item."""

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("session_id", "audio_id", name="uq_reviews_session_audio"),
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    audio_id = Column(Integer, nullable=False, index=True)
    title = Column(String(500), nullable=False)
    rating = Column(Numeric(3, 2), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    date = Column(String(20), nullable=True)
    time = Column(String(20), nullable=True)
    user_agent = Column(Text, nullable=True)
    session_id = Column(String(100), nullable=False, index=True)
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
