from flask import request, jsonify, session, current_app
from flask_login import login_user, logout_user, current_user
from flask_wtf.csrf import generate_csrf

from upvote.extensions import limiter
from upvote.security.principal import current_principal, unauthorized
from upvote.services import accounts
from upvote.utils.helpers import json_object
from . import bp


def _login_email_scope():
    data_json = request.get_json(silent=True)
    email = data_json.get("email") if isinstance(data_json, dict) else None
    email = email.strip().lower() if isinstance(email, str) else ""
    # Keep a stable scope even if email is blank
    return f"login-email:{email or 'missing'}"


@bp.get("/csrf")
def csrf_token():
    """Token for the X-CSRFToken header on dashboard writes."""
    return jsonify({"csrfToken": generate_csrf()})


@bp.post("/signup")
@limiter.limit("5 per minute; 20 per hour")
def signup():
    data = json_object()
    try:
        company = accounts.register_company(data.get("email"), data.get("password"), data.get("name"))
    except accounts.SignupError as e:
        return jsonify({"error": str(e)}), 400

    current_app.logger.info(
        "company_registered",
        extra={"event": "company_registered", "company_id": company.id},
    )
    return jsonify({"company": company.to_dict(), "message": "Company registered successfully"}), 201


@bp.post("/login")
@limiter.limit("10 per minute; 100 per hour")              # per-IP (anon → IP via _rate_limit_key)
@limiter.limit("5 per minute; 20 per hour", key_func=_login_email_scope)  # per-account
def login():
    data = json_object()
    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    company = accounts.authenticate(email, password)
    if company is None:
        return jsonify({"error": "Invalid credentials"}), 401

    session.permanent = True
    login_user(company, remember=True)
    return jsonify({"company": company.to_dict()})


@bp.post("/logout")
def logout():
    if current_user.is_authenticated:
        logout_user()
    return jsonify({"success": True})


@bp.get("/session")
def current_session():
    principal = current_principal()
    if principal is None:
        return unauthorized()
    return jsonify({"user": {"id": principal.company_id, "email": principal.email, "name": principal.name}})
