"""Single-invocation function adapter.

Serves the same review operations as the standalone server for hosts that
invoke a function once per request with a proxy-style event::

    {"httpMethod": "POST", "path": "/functions/api/reviews",
     "queryStringParameters": {...}, "headers": {...}, "body": "...",
     "isBase64Encoded": false}

and expect ``{"statusCode", "headers", "body"}`` back.
"""

import base64
import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import SessionLocal
from app.dependencies import CORS_HEADERS, describe_validation_errors, resolve_client_ip
from app.schemas.review import ReviewSubmitRequest
from app.services.review import INTERNAL_ERROR, MAX_DB_INT, SESSION_REQUIRED_ERROR, get_review_service

logger = logging.getLogger("audio_reviews")

# Overridden in tests to share the test database session
_session_factory: Callable[[], Session] | None = None


def _response(status_code: int, body: str, headers: dict | None = None) -> dict:
    return {"statusCode": status_code, "headers": {**CORS_HEADERS, **(headers or {})}, "body": body}


def _json_response(status_code: int, payload: dict) -> dict:
    return _response(status_code, json.dumps(payload), {"Content-Type": "application/json"})


def _query(event: dict) -> dict:
    return event.get("queryStringParameters") or {}


def _headers(event: dict) -> dict:
    return {key.lower(): value for key, value in (event.get("headers") or {}).items()}


def _json_body(event: dict) -> dict:
    raw = event.get("body") or ""
    try:
        if event.get("isBase64Encoded"):
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        payload = json.loads(raw) if raw else {}
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from None
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def _non_negative_int(params: dict, name: str, default: int) -> int:
    value = params.get(name)
    if value in (None, ""):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = -1
    if not 0 <= number <= MAX_DB_INT:
        raise HTTPException(
            status_code=400, detail=f"Invalid request: {name}: must be an integer between 0 and {MAX_DB_INT}"
        )
    return number


def list_session_reviews(event: dict, db: Session) -> dict:
    session_id = _query(event).get("sessionId")
    if not session_id:
        raise HTTPException(status_code=400, detail=SESSION_REQUIRED_ERROR)
    result = get_review_service().list_session_reviews(db, session_id)
    return _response(200, result.model_dump_json(by_alias=True), {"Content-Type": "application/json"})


def submit_review(event: dict, db: Session) -> dict:
    try:
        body = ReviewSubmitRequest.model_validate(_json_body(event))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=describe_validation_errors(e.errors())) from None

    service = get_review_service()
    error = service.validate_submission(body)
    if error:
        raise HTTPException(status_code=400, detail=error)

    source_ip = ((event.get("requestContext") or {}).get("identity") or {}).get("sourceIp")
    client_ip = resolve_client_ip(_headers(event), source_ip)
    result = service.submit_review(db, body, client_ip)
    return _response(200, result.model_dump_json(by_alias=True), {"Content-Type": "application/json"})


def list_all_reviews(event: dict, db: Session) -> dict:
    params = _query(event)
    limit = _non_negative_int(params, "limit", 1000)
    offset = _non_negative_int(params, "offset", 0)

    service = get_review_service()
    page = service.list_all_reviews(db, limit=limit, offset=offset)
    if params.get("format") == "csv":
        return _response(
            200,
            service.generate_csv(page.reviews),
            {
                "Content-Type": "text/csv",
                "Content-Disposition": f'attachment; filename="{service.csv_filename()}"',
            },
        )
    return _response(200, page.model_dump_json(by_alias=True), {"Content-Type": "application/json"})


def get_analytics(event: dict, db: Session) -> dict:
    result = get_review_service().get_analytics(db)
    return _response(200, result.model_dump_json(by_alias=True), {"Content-Type": "application/json"})


def health_check(event: dict, db: Session) -> dict:
    return _json_response(200, {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()})


ROUTES: dict[tuple[str, str], Callable[[dict, Session], dict]] = {
    ("/reviews", "GET"): list_session_reviews,
    ("/reviews", "POST"): submit_review,
    ("/admin/reviews", "GET"): list_all_reviews,
    ("/admin/analytics", "GET"): get_analytics,
    ("/health", "GET"): health_check,
}


def route_path(path: str) -> str:
    """Strip the function base path and any trailing slash."""
    base_path = get_settings().FUNCTION_BASE_PATH.rstrip("/")
    if base_path and path.startswith(base_path):
        path = path[len(base_path) :]
    return path.rstrip("/") or "/"


def handler(event: dict, context=None) -> dict:
    """Entry point invoked once per request."""
    method = (event.get("httpMethod") or "GET").upper()
    if method == "OPTIONS":
        return _response(200, "")

    route = ROUTES.get((route_path(event.get("path") or "/"), method))
    if route is None:
        return _json_response(404, {"error": "Not found"})

    db = (_session_factory or SessionLocal)()
    try:
        return route(event, db)
    except HTTPException as e:
        return _json_response(e.status_code, {"error": e.detail})
    except Exception:
        db.rollback()
        logger.exception("Handler error on %s %s", method, event.get("path"))
        return _json_response(500, {"error": INTERNAL_ERROR})
    finally:
        db.close()
