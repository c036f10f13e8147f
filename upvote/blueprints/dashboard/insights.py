from flask import request, jsonify

from upvote.models import Application
from upvote.security.principal import company_required
from upvote.services import analytics
from . import bp


def _application_scope(principal):
    """Optional ?applicationId filter; returns (id, error_response)."""
    application_id = request.args.get("applicationId") or None
    if application_id is None:
        return None, None
    owned = Application.query.filter_by(id=application_id, company_id=principal.company_id).one_or_none()
    if not owned:
        return None, (jsonify({"error": "Application not found"}), 404)
    return application_id, None


@bp.get("/analytics")
@company_required
def company_analytics(principal):
    application_id, error = _application_scope(principal)
    if error:
        return error
    return jsonify(analytics.company_analytics(principal.company_id, application_id))


@bp.get("/users")
@company_required
def user_activity(principal):
    application_id, error = _application_scope(principal)
    if error:
        return error
    return jsonify({"users": analytics.user_activity(principal.company_id, application_id)})
