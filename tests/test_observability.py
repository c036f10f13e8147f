import json
import logging

from pythonjsonlogger.json import JsonFormatter

from upvote.observability import SERVICE_NAME, json_log_config


def test_json_records_carry_service_and_env(app, monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    options = dict(json_log_config(app)["formatters"]["json"])
    options.pop("()")
    formatter = JsonFormatter(**options)

    record = logging.LogRecord("upvote", logging.INFO, __file__, 1, "feedback_created", None, None)
    record.company_id = "c1"
    out = json.loads(formatter.format(record))

    assert out["service"] == SERVICE_NAME
    assert out["env"] == "production"
    assert out["level"] == "INFO"
    assert out["message"] == "feedback_created"
    assert out["company_id"] == "c1"
