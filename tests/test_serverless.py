"""Tests for the single-invocation function adapter."""

import base64
import json
from unittest.mock import patch

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models.review import Review
from app.serverless import route_path

REVIEW = {"audioId": 1, "title": "Track A", "rating": 4.5, "sessionId": "s1"}


class TestRouting:
    """Tests for path and method dispatch."""

    def test_route_path_strips_base(self):
        assert route_path("/functions/api/reviews") == "/reviews"
        assert route_path("/functions/api/admin/reviews/") == "/admin/reviews"
        assert route_path("/reviews") == "/reviews"

    def test_preflight(self, invoke):
        result = invoke("OPTIONS", "/reviews")
        assert result["statusCode"] == 200
        assert result["body"] == ""
        assert result["headers"]["Access-Control-Allow-Origin"] == "*"

    def test_unknown_route(self, invoke):
        result = invoke("GET", "/nowhere")
        assert result["statusCode"] == 404
        assert json.loads(result["body"]) == {"error": "Not found"}
        assert result["headers"]["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"

    def test_wrong_method(self, invoke):
        result = invoke("POST", "/admin/analytics")
        assert result["statusCode"] == 404

    def test_health(self, invoke):
        result = invoke("GET", "/health")
        assert result["statusCode"] == 200
        assert json.loads(result["body"])["status"] == "OK"


class TestFunctionReviews:
    """Tests for submit and list through the function adapter."""

    def test_submit_and_list(self, invoke):
        result = invoke("POST", "/reviews", body=REVIEW)
        assert result["statusCode"] == 200
        submitted = json.loads(result["body"])
        assert submitted["success"] is True

        result = invoke("GET", "/reviews", query={"sessionId": "s1"})
        assert result["statusCode"] == 200
        reviews = json.loads(result["body"])["reviews"]
        assert len(reviews) == 1
        assert reviews[0]["id"] == submitted["id"]
        assert reviews[0]["rating"] == 4.5

    def test_resubmit_same_id(self, invoke, db_session: Session):
        first = json.loads(invoke("POST", "/reviews", body=REVIEW)["body"])
        second = json.loads(invoke("POST", "/reviews", body={**REVIEW, "rating": 1.5})["body"])
        assert first["id"] == second["id"]
        assert db_session.query(Review).count() == 1

    def test_base64_body(self, invoke, db_session: Session):
        from app import serverless

        event = {
            "httpMethod": "POST",
            "path": "/functions/api/reviews",
            "headers": {},
            "body": base64.b64encode(json.dumps(REVIEW).encode()).decode(),
            "isBase64Encoded": True,
        }
        assert serverless.handler(event, None)["statusCode"] == 200
        assert db_session.query(Review).count() == 1

    def test_base64_body_not_utf8(self, invoke, db_session: Session):
        from app import serverless

        event = {
            "httpMethod": "POST",
            "path": "/functions/api/reviews",
            "headers": {},
            "body": base64.b64encode(b"\xff\xfe{").decode(),
            "isBase64Encoded": True,
        }
        result = serverless.handler(event, None)
        assert result["statusCode"] == 400
        assert json.loads(result["body"]) == {"error": "Invalid JSON body"}
        assert db_session.query(Review).count() == 0

    def test_base64_body_malformed(self, invoke):
        from app import serverless

        event = {
            "httpMethod": "POST",
            "path": "/functions/api/reviews",
            "headers": {},
            "body": "not base64!",
            "isBase64Encoded": True,
        }
        result = serverless.handler(event, None)
        assert result["statusCode"] == 400
        assert json.loads(result["body"]) == {"error": "Invalid JSON body"}

    def test_audio_id_too_large(self, invoke, db_session: Session):
        result = invoke("POST", "/reviews", body={**REVIEW, "audioId": 2**64})
        assert result["statusCode"] == 400
        assert json.loads(result["body"]) == {"error": "audioId is out of range"}
        assert db_session.query(Review).count() == 0

    def test_client_ip_from_headers(self, invoke, db_session: Session):
        invoke("POST", "/reviews", body=REVIEW, headers={"X-Forwarded-For": "203.0.113.9"})
        assert db_session.query(Review).one().ip_address == "203.0.113.9"

    def test_client_ip_unknown(self, invoke, db_session: Session):
        invoke("POST", "/reviews", body=REVIEW)
        assert db_session.query(Review).one().ip_address == "unknown"

    def test_rating_out_of_range(self, invoke):
        result = invoke("POST", "/reviews", body={**REVIEW, "rating": 5.5})
        assert result["statusCode"] == 400
        assert json.loads(result["body"]) == {"error": "Rating must be between 0 and 5"}

    def test_missing_fields(self, invoke):
        result = invoke("POST", "/reviews", body={"title": "Track A"})
        assert result["statusCode"] == 400
        assert "Missing required fields" in json.loads(result["body"])["error"]

    def test_invalid_json(self, invoke):
        result = invoke("POST", "/reviews", body="{oops")
        assert result["statusCode"] == 400
        assert json.loads(result["body"]) == {"error": "Invalid JSON body"}

    def test_wrong_type(self, invoke):
        result = invoke("POST", "/reviews", body={**REVIEW, "audioId": "abc"})
        assert result["statusCode"] == 400
        assert "audioId" in json.loads(result["body"])["error"]

    def test_missing_session(self, invoke):
        result = invoke("GET", "/reviews")
        assert result["statusCode"] == 400
        assert json.loads(result["body"]) == {"error": "Session ID is required"}

    def test_store_failure(self, invoke):
        with patch(
            "app.services.review.ReviewService.list_session_reviews",
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            result = invoke("GET", "/reviews", query={"sessionId": "s1"})
        assert result["statusCode"] == 500
        assert json.loads(result["body"]) == {"error": "Internal server error"}


class TestFunctionAdmin:
    """Tests for admin export and analytics through the function adapter."""

    def test_json_export(self, invoke):
        invoke("POST", "/reviews", body=REVIEW)
        result = invoke("GET", "/admin/reviews", query={"limit": "5", "offset": "0"})
        data = json.loads(result["body"])
        assert data["totalCount"] == 1
        assert data["pagination"] == {"limit": 5, "offset": 0}
        assert data["reviews"][0]["ipAddress"] == "unknown"

    def test_csv_export(self, invoke):
        invoke("POST", "/reviews", body={**REVIEW, "title": 'He said "hi"'})
        result = invoke("GET", "/admin/reviews", query={"format": "csv"})
        assert result["statusCode"] == 200
        assert result["headers"]["Content-Type"] == "text/csv"
        assert result["headers"]["Content-Disposition"].startswith('attachment; filename="reviews-')
        assert '"He said ""hi"""' in result["body"]

    def test_invalid_limit(self, invoke):
        result = invoke("GET", "/admin/reviews", query={"limit": "-3"})
        assert result["statusCode"] == 400

    def test_limit_too_large(self, invoke):
        result = invoke("GET", "/admin/reviews", query={"limit": str(2**64)})
        assert result["statusCode"] == 400
        assert "limit" in json.loads(result["body"])["error"]

    def test_offset_too_large(self, invoke):
        result = invoke("GET", "/admin/reviews", query={"offset": str(2**63)})
        assert result["statusCode"] == 400

    def test_analytics_empty(self, invoke):
        result = invoke("GET", "/admin/analytics")
        analytics = json.loads(result["body"])["analytics"]
        assert analytics["totalReviews"] == 0
        assert analytics["averageRating"] == "0.00"
        assert analytics["ratingDistribution"] == []
        assert analytics["audioStats"] == []
