from flask import request, jsonify, current_app
from sqlalchemy import func

from upvote.extensions import db, limiter
from upvote.models import Application, Feedback
from upvote.security.principal import company_required
from upvote.services import subscriptions
from upvote.services.limits import PlanLimitError, enforce_project_limit, format_limit_error_response
from upvote.utils.helpers import json_object
from upvote.utils.validators import clean_str
from . import bp


def _owned_application(app_id, company_id):
    if not app_id:
        return None
    return Application.query.filter_by(id=str(app_id), company_id=company_id).one_or_none()


def _feedback_counts(app_ids):
    if not app_ids:
        return {}
    rows = (
        db.session.query(Feedback.application_id, func.count(Feedback.id))
        .filter(Feedback.application_id.in_(app_ids))
        .group_by(Feedback.application_id)
        .all()
    )
    return dict(rows)


@bp.get("/applications")
@company_required
def list_applications(principal):
    apps = (
        Application.query.filter_by(company_id=principal.company_id)
        .order_by(Application.created_at.desc())
        .all()
    )
    counts = _feedback_counts([a.id for a in apps])
    return jsonify({"applications": [a.to_dict(feedback_count=counts.get(a.id, 0)) for a in apps]})


@bp.post("/applications")
@limiter.limit("30 per minute")
@company_required
def create_application(principal):
    data = json_object()
    name = clean_str(data.get("name"))
    if not name:
        return jsonify({"error": "Application name is required"}), 400

    # Limit check first; creation only proceeds if the plan allows another project
    try:
        enforce_project_limit(principal.company_id)
    except PlanLimitError as e:
        current_app.logger.info(
            "plan_limit_blocked",
            extra={"event": "plan_limit_blocked", "company_id": principal.company_id, "limit_type": "projects"},
        )
        return jsonify(format_limit_error_response(e)), 403

    application = Application(company_id=principal.company_id, name=name)
    db.session.add(application)
    db.session.commit()

    # Track usage after successful creation
    subscriptions.increment_project_count(principal.company_id)

    current_app.logger.info(
        "application_created",
        extra={"event": "application_created", "company_id": principal.company_id, "application_id": application.id},
    )
    return jsonify({"application": application.to_dict(feedback_count=0)}), 201


@bp.patch("/applications")
@company_required
def rename_application(principal):
    data = json_object()
    app_id = data.get("id")
    if not app_id:
        return jsonify({"error": "Application ID is required"}), 400

    name = clean_str(data.get("name"))
    if not name:
        return jsonify({"error": "Application name is required"}), 400

    application = _owned_application(app_id, principal.company_id)
    if not application:
        return jsonify({"error": "Application not found"}), 404

    application.name = name
    db.session.commit()
    counts = _feedback_counts([application.id])
    return jsonify({"application": application.to_dict(feedback_count=counts.get(application.id, 0))})


@bp.delete("/applications")
@company_required
def delete_application(principal):
    app_id = request.args.get("id")
    if not app_id:
        return jsonify({"error": "Application ID is required"}), 400

    application = _owned_application(app_id, principal.company_id)
    if not application:
        return jsonify({"error": "Application not found"}), 404

    # Cascades to feedback, votes, replies and tags
    db.session.delete(application)
    db.session.commit()

    current_app.logger.info(
        "application_deleted",
        extra={"event": "application_deleted", "company_id": principal.company_id, "application_id": app_id},
    )
    return jsonify({"success": True})
