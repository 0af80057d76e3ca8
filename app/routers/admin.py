"""Admin export and analytics endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.review import AdminReviewListResponse, AnalyticsResponse
from app.services.review import INTERNAL_ERROR, MAX_DB_INT, get_review_service

logger = logging.getLogger("audio_reviews")

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/reviews", response_model=AdminReviewListResponse)
def list_all_reviews(
    limit: int = Query(1000, ge=0, le=MAX_DB_INT),
    offset: int = Query(0, ge=0, le=MAX_DB_INT),
    export_format: str = Query("json", alias="format"),
    db: Session = Depends(get_db),
):
    """Page through every review. ``format=csv`` downloads the page as a CSV file."""
    service = get_review_service()
    try:
        page = service.list_all_reviews(db, limit=limit, offset=offset)
    except SQLAlchemyError:
        logger.exception("Error fetching all reviews")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR) from None

    if export_format == "csv":
        return Response(
            content=service.generate_csv(page.reviews),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{service.csv_filename()}"'},
        )
    return page


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(db: Session = Depends(get_db)) -> AnalyticsResponse:
    """Aggregate statistics over all reviews."""
    service = get_review_service()
    try:
        return service.get_analytics(db)
    except SQLAlchemyError:
        logger.exception("Error fetching analytics")
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR) from None
