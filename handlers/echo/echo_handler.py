import base64
import binascii
import json
import math
import time
from typing import Any, Dict

from utils.apigw import error_response, proxy_response, request_id_from_event
from utils.lambda_time import remaining_ms
from utils.observability import elapsed_ms, emit_metric, get_logger, log_json

logger = get_logger(__name__)

GREETING = "Hello again from the pikin Lambda!"
RAW_BODY_KEY = "raw_body"
MARSHAL_ERROR = "Failed to marshal response"


class BodyDecodeError(ValueError):
    pass


def _reject_constant(name: str) -> Any:
    raise ValueError(f"unsupported JSON constant {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range {text}")
    return value


def _decode_body(event: Dict[str, Any]) -> str:
    body = event.get("body") or ""
    if not event.get("isBase64Encoded"):
        return body
    try:
        decoded = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise BodyDecodeError(f"failed to decode base64 body: {exc}") from exc
    return decoded.decode("utf-8", errors="replace")


def resolve_payload(event: Dict[str, Any]) -> Any:
    """Return the value echoed back for ``event``.

    An empty body echoes the whole event. Bodies that are not JSON are
    wrapped as ``{"raw_body": text}`` rather than rejected. Raises
    ``BodyDecodeError`` when a base64 flagged body cannot be decoded.
    """
    if not event.get("body"):
        return event
    body = _decode_body(event)
    try:
        return json.loads(
            body, parse_constant=_reject_constant, parse_float=_finite_float
        )
    except (ValueError, RecursionError):
        return {RAW_BODY_KEY: body}


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    start_time = time.time()
    request_id = request_id_from_event(event)
    log_json(
        logger,
        "info",
        "echo_request_received",
        request_id=request_id,
        remaining_ms=remaining_ms(context),
        event=event,
    )
    emit_metric("EchoRequest", 1)

    try:
        payload = resolve_payload(event)
    except BodyDecodeError as exc:
        log_json(
            logger,
            "warning",
            "echo_body_decode_failed",
            request_id=request_id,
            error_message=str(exc),
        )
        emit_metric("EchoError", 1, dims={"ErrorType": "BodyDecode"})
        return _finish(error_response(str(exc)), request_id, start_time)

    envelope = {"message": GREETING, "event": payload, "statusCode": 200}
    try:
        body = json.dumps(envelope, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        log_json(
            logger,
            "exception",
            "echo_response_marshal_failed",
            request_id=request_id,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        emit_metric("EchoError", 1, dims={"ErrorType": "Marshal"})
        return _finish(error_response(MARSHAL_ERROR), request_id, start_time)

    return _finish(proxy_response(200, body), request_id, start_time)


def _finish(
    response: Dict[str, Any], request_id: str, start_time: float
) -> Dict[str, Any]:
    duration_ms = elapsed_ms(start_time)
    emit_metric("EchoDurationMs", duration_ms, "Milliseconds")
    log_json(
        logger,
        "info",
        "echo_response_sent",
        request_id=request_id,
        status_code=response["statusCode"],
        duration_ms=duration_ms,
    )
    return response
