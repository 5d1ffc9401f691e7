import json
import logging
import time

from utils import observability


def test_get_logger_respects_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    logger = observability.get_logger("test-logger")
    assert logger.level == logging.DEBUG


def test_log_json_emits_payload(caplog):
    logger = logging.getLogger("observability-test")
    logger.setLevel(logging.INFO)
    with caplog.at_level(logging.INFO):
        observability.log_json(logger, "warning", "hello", foo="bar", when=time)

    record = caplog.records[-1]
    payload = json.loads(record.message)
    assert record.levelno == logging.WARNING
    assert payload["msg"] == "hello"
    assert payload["foo"] == "bar"
    assert isinstance(payload["when"], str)


def test_log_json_unknown_level_falls_back_to_info(caplog):
    logger = logging.getLogger("observability-fallback")
    logger.setLevel(logging.INFO)
    with caplog.at_level(logging.INFO):
        observability.log_json(logger, "chatty", "hello")

    assert caplog.records[-1].levelno == logging.INFO


def test_log_json_exception_includes_traceback(caplog):
    logger = logging.getLogger("observability-exception")
    logger.setLevel(logging.INFO)
    with caplog.at_level(logging.INFO):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            observability.log_json(logger, "exception", "failed")

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert record.exc_info is not None


def test_emit_metric_prints_emf(capsys, monkeypatch):
    monkeypatch.setenv("STAGE", "dev")
    monkeypatch.delenv("METRIC_NAMESPACE", raising=False)
    observability.emit_metric("TestMetric", 2, unit="Count", dims={"ErrorType": "x"})
    metric = json.loads(capsys.readouterr().out.strip())

    assert metric["TestMetric"] == 2
    assert metric["Stage"] == "dev"
    assert metric["ErrorType"] == "x"
    directive = metric["_aws"]["CloudWatchMetrics"][0]
    assert directive["Namespace"] == "PikinEcho"
    assert directive["Dimensions"] == [["Stage", "ErrorType"]]


def test_emit_metric_namespace_from_env(capsys, monkeypatch):
    monkeypatch.delenv("STAGE", raising=False)
    monkeypatch.setenv("METRIC_NAMESPACE", "Custom")
    observability.emit_metric("TestMetric")
    metric = json.loads(capsys.readouterr().out.strip())

    assert metric["_aws"]["CloudWatchMetrics"][0]["Namespace"] == "Custom"
    assert metric["TestMetric"] == 1


def test_elapsed_ms_returns_int():
    start = time.time()
    time.sleep(0.001)
    elapsed = observability.elapsed_ms(start)
    assert isinstance(elapsed, int)
    assert elapsed >= 0


def test_format_log_line_drops_unencodable_fields():
    nested = []
    for _ in range(100000):
        nested = [nested]

    line = observability.format_log_line("deep", event=nested, request_id="req-1")
    payload = json.loads(line)

    assert payload["msg"] == "deep"
    assert payload["request_id"] == "req-1"
    assert payload["unlogged_fields"] == ["event"]
    assert "event" not in payload


def test_format_log_line_adds_function_name(monkeypatch):
    monkeypatch.setenv("AWS_LAMBDA_FUNCTION_NAME", "echo-fn")

    payload = json.loads(observability.format_log_line("hello"))

    assert payload == {"msg": "hello", "function": "echo-fn"}
