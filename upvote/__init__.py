import os
from flask import Flask, jsonify

# Load .env only for local/dev. In prod, env vars come from the platform.
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env")


from .config import get_config
from .extensions import db, migrate, csrf, login_manager, limiter, mail
from .security.headers import init_security
from .observability import init_logging, init_sentry


def create_app(config_object=None):
    app = Flask(__name__, template_folder="templates", static_folder="static")

    # Rate limit storage: Redis in staging/production, memory elsewhere
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()
    use_redis = app_env in ("staging", "production")
    storage_uri = os.environ.get("REDIS_URL") if use_redis else "memory://"
    if use_redis and not storage_uri:
        # Hard fail in stage/prod so we never silently run without RL storage
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")

    app.config["RATELIMIT_STORAGE_URI"] = storage_uri
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)

    app.config.from_object(config_object or get_config())

    def _require(name: str):
        val = os.getenv(name) or app.config.get(name)
        if not val:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return val

    if app_env in ("staging", "production"):
        # Enforce hard requirements at startup (not at import time)
        _require("SECRET_KEY")
        _require("DATABASE_URL")
        _require("STRIPE_SECRET_KEY")
        _require("STRIPE_WEBHOOK_SECRET")

    init_logging(app)
    init_sentry(app)

    # HTTPS, HSTS & CSP only in staging/production
    if app_env in ("staging", "production"):
        init_security(app)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)
    mail.init_app(app)

    from .blueprints.auth import bp as auth_bp
    from .blueprints.dashboard import bp as dashboard_bp
    from .blueprints.widget import bp as widget_bp
    from .blueprints.support import bp as support_bp
    from .blueprints.checkout import bp as checkout_bp
    from .blueprints.webhooks import bp as webhooks_bp

    # Session-authenticated JSON API
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(dashboard_bp, url_prefix="/api/dashboard")
    app.register_blueprint(checkout_bp, url_prefix="/api")

    # Public surfaces: embedded widget, contact form, provider callbacks
    app.register_blueprint(widget_bp)                       # /widget, /api/widget/*
    app.register_blueprint(support_bp, url_prefix="/api/support")
    app.register_blueprint(webhooks_bp, url_prefix="/webhooks")

    # No session cookie backs these writes, so there is no token to check
    csrf.exempt(widget_bp)
    csrf.exempt(support_bp)
    csrf.exempt(webhooks_bp)

    # Exempt Flask's static endpoint (widget.js) from limits
    limiter.exempt(app.view_functions["static"])

    @app.get("/healthz")
    @limiter.exempt
    def healthz():
        return {"status": "ok"}, 200

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Unauthorized"}), 401

    # Error handlers: every API error body is {"error": ...}
    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": e.description}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method Not Allowed"}), 405

    @app.errorhandler(500)
    def server_error(e):
        app.logger.error("unhandled_error", exc_info=getattr(e, "original_exception", None))
        return jsonify({"error": "Internal server error"}), 500

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        return jsonify({"error": f"CSRF validation failed: {e.description}"}), 400

    # 429 Too Many Requests with Retry-After
    @app.errorhandler(429)
    def too_many_requests(e):
        retry_after = getattr(e, "retry_after", None)
        headers = {}
        payload = {"error": "Too many requests"}
        if retry_after is not None:
            headers["Retry-After"] = str(int(retry_after))
            payload["retryAfter"] = int(retry_after)
        return jsonify(payload), 429, headers

    from .cli import register_cli
    register_cli(app)

    if not app.config.get("STRIPE_SECRET_KEY"):
        app.logger.warning("Stripe secret key missing; billing features will not work")

    return app
