from datetime import datetime, timedelta

import pytest

from upvote.billing.plans import Plan, SubscriptionStatus
from upvote.extensions import db
from upvote.models import Company, Subscription, UsageMetrics
from upvote.services import subscriptions

from conftest import make_application

NOW = datetime(2024, 3, 15, 12, 0, 0)


def _bare_company(email="bare@corp.test"):
    company = Company(email=email, name="Bare")
    db.session.add(company)
    db.session.commit()
    return company.id


def test_get_or_create_subscription_defaults_to_free(app):
    with app.app_context():
        cid = _bare_company()
        sub = subscriptions.get_or_create_subscription(cid)
        assert sub.plan == Plan.FREE.value
        assert sub.status == SubscriptionStatus.ACTIVE.value

        again = subscriptions.get_or_create_subscription(cid)
        assert again.id == sub.id
        assert Subscription.query.filter_by(company_id=cid).count() == 1


def test_calendar_month_period_for_free_plan(app, company_id):
    with app.app_context():
        sub = subscriptions.get_or_create_subscription(company_id)
        period = subscriptions.get_current_period(sub, now=NOW)
        assert period.start == datetime(2024, 3, 1, 0, 0, 0)
        assert period.end == datetime(2024, 3, 31, 23, 59, 59)


def test_stored_provider_period_used_when_current(app, company_id):
    start = datetime(2024, 3, 10)
    end = datetime(2024, 4, 10)
    with app.app_context():
        subscriptions.update_subscription_plan(
            company_id, Plan.PRO, SubscriptionStatus.ACTIVE,
            current_period_start=start, current_period_end=end,
        )
        sub = subscriptions.get_or_create_subscription(company_id)
        assert subscriptions.get_current_period(sub, now=NOW) == (start, end)
        # Outside the stored period falls back to the calendar month
        assert subscriptions.get_current_period(sub, now=datetime(2024, 5, 2)).start == datetime(2024, 5, 1)


def test_usage_metrics_created_once_per_period(app, company_id):
    with app.app_context():
        first = subscriptions.get_or_create_usage_metrics(company_id, now=NOW)
        second = subscriptions.get_or_create_usage_metrics(company_id, now=NOW + timedelta(days=3))
        assert first.id == second.id
        assert first.feedback_count == 0

        april = subscriptions.get_or_create_usage_metrics(company_id, now=datetime(2024, 4, 2))
        assert april.id != first.id
        assert UsageMetrics.query.filter_by(company_id=company_id).count() == 2


def test_feedback_limit_boundary(app, company_id):
    with app.app_context():
        usage = subscriptions.get_or_create_usage_metrics(company_id, now=NOW)
        usage.feedback_count = 49
        db.session.commit()
        assert subscriptions.can_create_feedback(company_id, now=NOW)

        subscriptions.increment_feedback_count(company_id, now=NOW)
        assert not subscriptions.can_create_feedback(company_id, now=NOW)

        # A new month starts from zero
        assert subscriptions.can_create_feedback(company_id, now=datetime(2024, 4, 1))


def test_project_limit_is_lifetime(app, company_id):
    with app.app_context():
        assert subscriptions.can_create_project(company_id)
        make_application(company_id)
        assert not subscriptions.can_create_project(company_id)

        subscriptions.update_subscription_plan(company_id, Plan.PRO, SubscriptionStatus.ACTIVE)
        assert subscriptions.can_create_project(company_id)


def test_increments_are_additive(app, company_id):
    with app.app_context():
        subscriptions.increment_feedback_count(company_id, now=NOW)
        subscriptions.increment_feedback_count(company_id, now=NOW)
        subscriptions.increment_project_count(company_id, now=NOW)
        usage = subscriptions.get_or_create_usage_metrics(company_id, now=NOW)
        db.session.refresh(usage)
        assert usage.feedback_count == 2
        assert usage.project_count == 1


def test_current_usage_snapshot(app, company_id):
    with app.app_context():
        make_application(company_id)
        usage = subscriptions.get_or_create_usage_metrics(company_id, now=NOW)
        usage.feedback_count = 25
        db.session.commit()

        snap = subscriptions.get_current_usage(company_id, now=NOW)
        assert snap["plan"] == "FREE"
        assert snap["projects"] == {"current": 1, "limit": 1, "isUnlimited": False, "percentage": 100}
        assert snap["feedbacks"]["current"] == 25
        assert snap["feedbacks"]["percentage"] == 50
        assert snap["periodStart"] == datetime(2024, 3, 1)


def test_usage_percentage_zero_when_unlimited(app, company_id):
    with app.app_context():
        subscriptions.update_subscription_plan(company_id, Plan.PRO, SubscriptionStatus.ACTIVE)
        make_application(company_id)
        snap = subscriptions.get_current_usage(company_id, now=NOW)
        assert snap["projects"]["isUnlimited"] is True
        assert snap["projects"]["limit"] == -1
        assert snap["projects"]["percentage"] == 0


def test_trial_helpers(app, company_id):
    with app.app_context():
        sub = subscriptions.update_subscription_plan(
            company_id, Plan.PRO, SubscriptionStatus.TRIALING,
            trial_end=NOW + timedelta(days=2, hours=1),
        )
        assert subscriptions.is_in_trial(sub, now=NOW)
        assert subscriptions.get_trial_days_remaining(sub, now=NOW) == 3
        assert not subscriptions.is_in_trial(sub, now=NOW + timedelta(days=3))
        assert subscriptions.get_trial_days_remaining(sub, now=NOW + timedelta(days=10)) == 0


def test_update_subscription_plan_rejects_unknown_fields(app, company_id):
    with app.app_context():
        with pytest.raises(TypeError):
            subscriptions.update_subscription_plan(company_id, Plan.PRO, SubscriptionStatus.ACTIVE, org_id=1)


def test_cancel_and_reactivate(app, company_id):
    with app.app_context():
        sub = subscriptions.cancel_subscription(company_id)
        assert sub.cancel_at_period_end is True
        sub = subscriptions.reactivate_subscription(company_id)
        assert sub.cancel_at_period_end is False
        assert sub.status == SubscriptionStatus.ACTIVE.value


def test_reset_usage_for_period_is_rerunnable(app, company_id):
    start, end = datetime(2024, 3, 1), datetime(2024, 3, 31, 23, 59, 59)
    with app.app_context():
        subscriptions.increment_feedback_count(company_id, now=NOW)
        row = subscriptions.reset_usage_for_period(company_id, start, end)
        assert row.feedback_count == 0
        again = subscriptions.reset_usage_for_period(company_id, start, end)
        assert again.id == row.id
        assert UsageMetrics.query.filter_by(company_id=company_id).count() == 1


def test_has_feature(app, company_id):
    with app.app_context():
        assert not subscriptions.has_feature(company_id, "advanced_analytics")
        subscriptions.update_subscription_plan(company_id, Plan.PRO, SubscriptionStatus.ACTIVE)
        assert subscriptions.has_feature(company_id, "advanced_analytics")
