import json
from typing import Any, Dict

RESPONSE_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
}


def proxy_response(status_code: int, body: str) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(RESPONSE_HEADERS),
        "body": body,
    }


def error_response(message: str, status_code: int = 500) -> Dict[str, Any]:
    return proxy_response(status_code, json.dumps({"error": message}))


def request_id_from_event(event: Dict[str, Any]) -> str:
    request_context = event.get("requestContext") or {}
    return request_context.get("requestId") or ""
