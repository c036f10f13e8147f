from flask import abort, request, jsonify, render_template, current_app

from upvote.extensions import db, limiter, talisman
from upvote.models import Application, Feedback, Vote, VoteType
from upvote.security.headers import WIDGET_CSP
from upvote.services import subscriptions, votes
from upvote.services.feedback import create_feedback, with_vote_counts
from upvote.services.limits import PlanLimitError, enforce_feedback_limit, format_limit_error_response
from upvote.utils.helpers import json_object, safe_int
from upvote.utils.validators import MAX_USER_ID_LENGTH, clean_str, clean_tags, opaque_id
from . import bp

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _widget_item(feedback: Feedback, vote_count: int, user_id, own_votes: dict) -> dict:
    item = feedback.to_dict(vote_count=vote_count)
    item.pop("applicationId")
    item.pop("userId")
    own = own_votes.get(feedback.id)
    item["isAuthor"] = bool(user_id) and feedback.user_id == user_id
    item["hasVoted"] = own is not None
    item["userVoteType"] = own
    return item


def _check_user_id_length(user_id):
    if user_id and len(user_id) > MAX_USER_ID_LENGTH:
        abort(400, description=f"userId must be at most {MAX_USER_ID_LENGTH} characters")


@bp.get("/widget")
@talisman(frame_options=None, content_security_policy=WIDGET_CSP)
def widget_page():
    return render_template(
        "widget.html",
        application_id=request.args.get("applicationId", ""),
        user_id=request.args.get("userId", ""),
        theme="dark" if request.args.get("theme") == "dark" else "light",
    )


@bp.get("/api/widget/feedback")
def list_feedback():
    application_id = request.args.get("applicationId")
    if not application_id:
        return jsonify({"error": "applicationId is required"}), 400

    user_id = opaque_id(request.args.get("userId"))
    _check_user_id_length(user_id)

    sort = request.args.get("sort") or "recent"
    page = max(1, safe_int(request.args.get("page"), 1))
    limit = min(MAX_PAGE_SIZE, max(1, safe_int(request.args.get("limit"), DEFAULT_PAGE_SIZE)))

    if db.session.get(Application, application_id) is None:
        return jsonify({"error": "Invalid applicationId"}), 404

    base = db.session.query(Feedback).filter(Feedback.application_id == application_id)
    total = base.count()
    rows = with_vote_counts(base, sort).offset((page - 1) * limit).limit(limit).all()

    own_votes = {}
    if user_id and rows:
        own_votes = dict(
            db.session.query(Vote.feedback_id, Vote.vote_type)
            .filter(
                Vote.application_id == application_id,
                Vote.user_id == user_id,
                Vote.feedback_id.in_([f.id for f, _ in rows]),
            )
            .all()
        )

    return jsonify({
        "feedback": [_widget_item(f, count, user_id, own_votes) for f, count in rows],
        "meta": {
            "total": total,
            "page": page,
            "limit": limit,
            "hasMore": total > page * limit,
        },
    })


@bp.post("/api/widget/feedback")
@limiter.limit("20 per minute")
def submit_feedback():
    data = json_object()
    application_id = data.get("applicationId")
    user_id = opaque_id(data.get("userId"))
    title = clean_str(data.get("title"))
    if not application_id or not user_id or not title:
        return jsonify({"error": "applicationId, userId, and title are required"}), 400
    _check_user_id_length(user_id)

    raw_tags = data.get("tags")
    if raw_tags is not None and not isinstance(raw_tags, list):
        return jsonify({"error": "tags must be a list"}), 400

    application = db.session.get(Application, str(application_id))
    if application is None:
        return jsonify({"error": "Invalid applicationId"}), 404

    # Limits belong to the company that owns the application
    try:
        enforce_feedback_limit(application.company_id)
    except PlanLimitError as e:
        current_app.logger.info(
            "plan_limit_blocked",
            extra={"event": "plan_limit_blocked", "company_id": application.company_id, "limit_type": "feedbacks"},
        )
        return jsonify(format_limit_error_response(e)), 403

    feedback = create_feedback(
        application.id,
        user_id,
        title,
        description=data.get("description"),
        tags=clean_tags(raw_tags),
    )
    subscriptions.increment_feedback_count(application.company_id)

    item = _widget_item(feedback, 0, user_id, {})
    return jsonify({"feedback": item}), 201


def _vote_payload():
    data = json_object()
    application_id = data.get("applicationId")
    feedback_id = data.get("feedbackId")
    user_id = opaque_id(data.get("userId"))
    if not application_id or not feedback_id or not user_id:
        abort(400, description="applicationId, feedbackId, and userId are required")
    _check_user_id_length(user_id)
    return str(application_id), str(feedback_id), user_id, data


@bp.post("/api/widget/vote")
@limiter.limit("60 per minute")
def cast_vote():
    application_id, feedback_id, user_id, data = _vote_payload()
    if data.get("voteType") != VoteType.UPVOTE.value:
        return jsonify({"error": "Valid voteType (UPVOTE) is required"}), 400

    feedback = Feedback.query.filter_by(id=feedback_id, application_id=application_id).one_or_none()
    if feedback is None:
        return jsonify({"error": "Feedback not found"}), 404

    votes.upsert_vote(feedback.application_id, feedback.id, user_id, VoteType.UPVOTE)
    upvotes = votes.count_upvotes(feedback.id)
    return jsonify({"success": True, "upvotes": upvotes, "voteCount": upvotes})


@bp.delete("/api/widget/vote")
@limiter.limit("60 per minute")
def remove_vote():
    application_id, feedback_id, user_id, _ = _vote_payload()

    try:
        votes.delete_vote(application_id, feedback_id, user_id)
    except votes.VoteNotFound:
        return jsonify({"error": "Vote not found"}), 404

    upvotes = votes.count_upvotes(feedback_id)
    return jsonify({"success": True, "upvotes": upvotes, "voteCount": upvotes})
