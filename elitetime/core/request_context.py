from typing import Optional, Dict
from fastapi import Request

HDR_REQUEST_ID = "X-Request-Id"

# Checked in order; the first non-empty value wins
CLIENT_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "cf-connecting-ip")


def get_client_ip(request: Request) -> str:
    """Best-effort client IP, falling back to the socket peer then 'unknown'."""
    for header in CLIENT_IP_HEADERS:
        value = request.headers.get(header)
        if value:
            return value.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_request_context(request: Request) -> Dict[str, Optional[str]]:
    """
    Extracts endpoint, client IP, user-agent and request_id from the FastAPI Request.
    """
    return {
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("user-agent"),
        "endpoint": f"{request.method} {request.url.path}",
        "request_id": request.headers.get(HDR_REQUEST_ID),
    }
