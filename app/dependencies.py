"""Request dependencies shared by the HTTP adapters."""

from collections.abc import Mapping

from fastapi import Request

UNKNOWN_CLIENT_IP = "unknown"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


def describe_validation_errors(errors) -> str:
    """Summarize pydantic error entries as ``field: message; ...``."""
    parts = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        field = ".".join(loc)
        parts.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "Invalid request: " + "; ".join(parts)


def resolve_client_ip(headers: Mapping[str, str], remote_addr: str | None = None) -> str:
    """Pick the client address from proxy headers, then the socket peer.

    ``headers`` must use lower-case keys. Only the first hop of
    X-Forwarded-For is kept.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return remote_addr or UNKNOWN_CLIENT_IP


def get_client_ip(request: Request) -> str:
    """FastAPI dependency returning the caller's IP address."""
    # Starlette headers are case-insensitive; lookups with lower-case keys succeed.
    return resolve_client_ip(request.headers, request.client.host if request.client else None)
