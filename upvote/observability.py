import os
from logging.config import dictConfig

import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration

SERVICE_NAME = "upvote"

# Event names logged as the message; handlers add ids via `extra=`
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _app_env() -> str:
    return (os.getenv("APP_ENV", "development") or "development").lower()


def json_log_config(app) -> dict:
    """dictConfig for JSON lines; every record carries the service and environment."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": LOG_FORMAT,
                "static_fields": {"service": SERVICE_NAME, "env": _app_env()},
                "rename_fields": {"levelname": "level", "asctime": "ts"},
            },
        },
        "handlers": {"wsgi": {"class": "logging.StreamHandler", "formatter": "json"}},
        "root": {"level": app.config.get("LOG_LEVEL", "INFO"), "handlers": ["wsgi"]},
    }


def init_logging(app):
    """JSON logs in staging/prod; Flask's console handler in dev/tests."""
    if _app_env() in ("staging", "production"):
        dictConfig(json_log_config(app))
    else:
        app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))


def init_sentry(app):
    """Report to Sentry only when SENTRY_DSN is set."""
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return
    try:
        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES", "0.0")),
            environment=_app_env(),
            send_default_pii=False,
        )
        sentry_sdk.set_tag("service", SERVICE_NAME)
    except Exception as exc:
        app.logger.warning("Sentry init skipped: %s", exc)
