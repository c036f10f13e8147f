from datetime import datetime

import pytest

from upvote.billing.plans import LimitType, Plan, SubscriptionStatus
from upvote.extensions import db
from upvote.services import subscriptions
from upvote.services.limits import (
    PlanLimitError,
    enforce_feedback_limit,
    enforce_project_limit,
    format_limit_error_response,
    is_plan_limit_error,
)

from conftest import make_application

NOW = datetime(2024, 3, 15, 12, 0, 0)


def test_project_limit_allows_first_project(app, company_id):
    with app.app_context():
        enforce_project_limit(company_id)


def test_project_limit_blocks_second_project(app, company_id):
    with app.app_context():
        make_application(company_id)
        with pytest.raises(PlanLimitError) as exc:
            enforce_project_limit(company_id)

    err = exc.value
    assert err.limit_type is LimitType.PROJECTS
    assert err.current_plan == "FREE"
    assert err.upgrade_url == "/pricing"
    assert err.message == "You have reached your project limit of 1. Upgrade to Pro for unlimited projects."


def test_feedback_limit_message(app, company_id):
    with app.app_context():
        usage = subscriptions.get_or_create_usage_metrics(company_id, now=NOW)
        usage.feedback_count = 50
        db.session.commit()
        with pytest.raises(PlanLimitError) as exc:
            enforce_feedback_limit(company_id, now=NOW)

    assert exc.value.limit_type is LimitType.FEEDBACKS
    assert exc.value.message == (
        "You have used 50/50 feedbacks this month. Upgrade to Pro for unlimited feedback."
    )


def test_paid_plan_never_blocks(app, company_id):
    with app.app_context():
        subscriptions.update_subscription_plan(company_id, Plan.PRO, SubscriptionStatus.ACTIVE)
        make_application(company_id)
        make_application(company_id, name="Second")
        enforce_project_limit(company_id)
        enforce_feedback_limit(company_id, now=NOW)


def test_format_limit_error_response():
    err = PlanLimitError("nope", "feedbacks", "FREE")
    assert format_limit_error_response(err) == {
        "error": "nope",
        "limitType": "feedbacks",
        "currentPlan": "FREE",
        "upgradeRequired": True,
        "upgradeUrl": "/pricing",
    }


def test_is_plan_limit_error():
    assert is_plan_limit_error(PlanLimitError("x", LimitType.PROJECTS, "FREE"))
    assert not is_plan_limit_error(ValueError("x"))
    assert not is_plan_limit_error(None)
