from flask import request, jsonify

from upvote.extensions import db
from upvote.models import Application, Feedback, Reply, Vote
from upvote.models.feedback import STATUS_CHOICES
from upvote.security.principal import company_required
from upvote.services.feedback import with_vote_counts
from upvote.utils.helpers import json_object
from upvote.utils.validators import clean_text
from . import bp


@bp.get("/feedback")
@company_required
def list_feedback(principal):
    application_id = request.args.get("applicationId")
    status = request.args.get("status")
    sort = request.args.get("sort") or "recent"

    query = (
        db.session.query(Feedback)
        .join(Application, Feedback.application_id == Application.id)
        .filter(Application.company_id == principal.company_id)
    )
    if application_id:
        owned = Application.query.filter_by(id=application_id, company_id=principal.company_id).one_or_none()
        if not owned:
            return jsonify({"error": "Application not found"}), 404
        query = query.filter(Feedback.application_id == application_id)
    if status:
        query = query.filter(Feedback.status == status)

    rows = with_vote_counts(query, sort).all()
    return jsonify({"feedback": [f.to_dict(vote_count=count) for f, count in rows]})


@bp.patch("/feedback")
@company_required
def update_feedback(principal):
    data = json_object()
    feedback_id = data.get("id")
    status = data.get("status")
    has_reply = "reply" in data and data.get("reply") is not None

    if not feedback_id or (not status and not has_reply):
        return jsonify({"error": "id and status or reply are required"}), 400
    if status and status not in STATUS_CHOICES:
        return jsonify({"error": f"status must be one of: {', '.join(STATUS_CHOICES)}"}), 400

    feedback = (
        db.session.query(Feedback)
        .join(Application, Feedback.application_id == Application.id)
        .filter(Feedback.id == str(feedback_id), Application.company_id == principal.company_id)
        .one_or_none()
    )
    if not feedback:
        return jsonify({"error": "Feedback not found"}), 404

    if status:
        feedback.status = status
    if has_reply:
        message = clean_text(data.get("reply"))
        if feedback.reply is None:
            feedback.reply = Reply(message=message)
        else:
            feedback.reply.message = message
    db.session.commit()

    vote_count = Vote.query.filter_by(feedback_id=feedback.id).count()
    return jsonify({"feedback": feedback.to_dict(vote_count=vote_count)})
