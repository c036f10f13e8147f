"""
Plan limit enforcement.

Call the ``enforce_*`` helpers BEFORE creating the counted entity; they raise
``PlanLimitError`` when the plan does not allow another one. Callers then
create the entity and increment usage. The three steps are not atomic, so two
concurrent requests at the boundary can both pass: the limit is a soft cap.
"""
from typing import Optional

from flask import current_app

from upvote.billing.plans import LimitType, get_plan_limits
from upvote.services import subscriptions

DEFAULT_UPGRADE_URL = "/pricing"


class PlanLimitError(Exception):
    """Raised when a plan limit blocks creating a project or feedback."""

    def __init__(self, message: str, limit_type, current_plan, upgrade_url: str = DEFAULT_UPGRADE_URL):
        super().__init__(message)
        self.message = message
        self.limit_type = LimitType(limit_type)
        self.current_plan = current_plan
        self.upgrade_url = upgrade_url


def _upgrade_url() -> str:
    return current_app.config.get("UPGRADE_URL") or DEFAULT_UPGRADE_URL


def enforce_project_limit(company_id: str) -> None:
    if subscriptions.can_create_project(company_id):
        return

    sub = subscriptions.get_or_create_subscription(company_id)
    limit = get_plan_limits(sub.plan)["projects"]
    raise PlanLimitError(
        f"You have reached your project limit of {limit}. Upgrade to Pro for unlimited projects.",
        LimitType.PROJECTS,
        sub.plan,
        _upgrade_url(),
    )


def enforce_feedback_limit(company_id: str, now=None) -> None:
    if subscriptions.can_create_feedback(company_id, now=now):
        return

    sub = subscriptions.get_or_create_subscription(company_id)
    usage = subscriptions.get_current_usage(company_id, now=now)
    limit = get_plan_limits(sub.plan)["feedbacks_per_month"]
    raise PlanLimitError(
        f"You have used {usage['feedbacks']['current']}/{limit} feedbacks this month. "
        "Upgrade to Pro for unlimited feedback.",
        LimitType.FEEDBACKS,
        sub.plan,
        _upgrade_url(),
    )


def is_plan_limit_error(err: Optional[BaseException]) -> bool:
    return isinstance(err, PlanLimitError)


def format_limit_error_response(err: PlanLimitError) -> dict:
    """JSON body for a plan limit error; the route sets the 403 status."""
    return {
        "error": err.message,
        "limitType": err.limit_type.value,
        "currentPlan": err.current_plan,
        "upgradeRequired": True,
        "upgradeUrl": err.upgrade_url,
    }
