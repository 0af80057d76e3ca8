"""Review API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_client_ip
from app.schemas.review import ReviewSubmitRequest, ReviewSubmitResponse, SessionReviewListResponse
from app.services.review import INTERNAL_ERROR, SESSION_REQUIRED_ERROR, get_review_service

logger = logging.getLogger("audio_reviews")

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.get("", response_model=SessionReviewListResponse)
def list_session_reviews(
    session_id: str | None = Query(None, alias="sessionId"),
    db: Session = Depends(get_db),
) -> SessionReviewListResponse:
    """List the reviews submitted by one session, newest first."""
    if not session_id:
        raise HTTPException(status_code=400, detail=SESSION_REQUIRED_ERROR)

    service = get_review_service()
    try:
        return service.list_session_reviews(db, session_id)
    except SQLAlchemyError:
        logger.exception("Error fetching reviews for session %s", session_id)
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR) from None


@router.post("", response_model=ReviewSubmitResponse)
def submit_review(
    body: ReviewSubmitRequest,
    client_ip: str = Depends(get_client_ip),
    db: Session = Depends(get_db),
) -> ReviewSubmitResponse:
    """Create the session's review for an audio item, or update it if one exists."""
    service = get_review_service()

    error = service.validate_submission(body)
    if error:
        raise HTTPException(status_code=400, detail=error)

    try:
        return service.submit_review(db, body, client_ip)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error submitting review for audio %s", body.audio_id)
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR) from None
