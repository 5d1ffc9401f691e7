import json
import logging
import os
import time
from typing import Any, Dict, Optional

DEFAULT_METRIC_NAMESPACE = "PikinEcho"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    return logger


def _base_fields() -> Dict[str, Any]:
    fields = {}
    function_name = os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
    if function_name:
        fields["function"] = function_name
    return fields


def format_log_line(msg: str, **fields: Any) -> str:
    """Serialize one structured log line.

    Field values that cannot be encoded (too deeply nested, circular) are
    dropped and named under ``unlogged_fields`` so logging never raises.
    """
    payload = {"msg": msg, **_base_fields(), **fields}
    try:
        return json.dumps(payload, default=str)
    except (ValueError, RecursionError):
        pass
    kept = {"msg": msg, **_base_fields()}
    dropped = []
    for key, value in fields.items():
        try:
            json.dumps(value, default=str)
        except (ValueError, RecursionError):
            dropped.append(key)
            continue
        kept[key] = value
    kept["unlogged_fields"] = dropped
    return json.dumps(kept, default=str)


def log_json(logger: logging.Logger, level: str, msg: str, **fields: Any) -> None:
    line = format_log_line(msg, **fields)
    if level.lower() == "exception":
        logger.exception(line)
        return
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        level_value = logging.INFO
    logger.log(level_value, line)


def emit_metric(
    name: str,
    value: float = 1,
    unit: str = "Count",
    dims: Optional[Dict[str, str]] = None,
) -> None:
    """Print a CloudWatch Embedded Metric Format document to stdout."""
    dimensions = {}
    stage = os.environ.get("STAGE")
    if stage:
        dimensions["Stage"] = stage
    if dims:
        dimensions.update(dims)
    namespace = os.environ.get("METRIC_NAMESPACE", DEFAULT_METRIC_NAMESPACE)
    metric = {
        "_aws": {
            "Timestamp": int(time.time() * 1000),
            "CloudWatchMetrics": [
                {
                    "Namespace": namespace,
                    "Dimensions": [list(dimensions.keys())],
                    "Metrics": [{"Name": name, "Unit": unit}],
                }
            ],
        },
        **dimensions,
        name: value,
    }
    print(json.dumps(metric))


def elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)
