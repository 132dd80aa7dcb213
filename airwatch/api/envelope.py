"""
Response envelope shared by the API routers.

Success:
    {"success": true, "data": {...}, "meta": {"timestamp": 1700000000000}}

Failure:
    {"success": false, "error": {"message": "...", "type": "validation"},
     "meta": {"timestamp": 1700000000000}}
"""

from typing import Any, Dict

from fastapi import Request
from fastapi.responses import JSONResponse

from airwatch.clock import now_ms

# HTTP status per failure errorType
ERROR_STATUS: Dict[str, int] = {
    "validation": 400,
    "conflict": 409,
    "upstream": 502,
    "internal": 500,
}


def get_service(request: Request) -> Any:
    """FastAPI dependency returning the service attached by ``create_app``."""
    return request.app.state.service


def respond(result: Dict[str, Any]) -> JSONResponse:
    """Wrap a service result in the envelope with a matching status code."""
    meta = {"timestamp": now_ms()}
    body = {key: value for key, value in result.items() if key != "success"}

    if result.get("success"):
        return JSONResponse(status_code=200, content={"success": True, "data": body, "meta": meta})

    error_type = body.pop("errorType", "internal")
    error = {"message": body.pop("error", "Internal server error"), "type": error_type, **body}
    return JSONResponse(
        status_code=ERROR_STATUS.get(error_type, 500),
        content={"success": False, "error": error, "meta": meta},
    )
