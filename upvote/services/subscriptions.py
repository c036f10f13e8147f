"""
Subscription service: a company's plan and current usage.

- Plan limit checks (``can_create_project`` / ``can_create_feedback``)
- Usage tracking per billing period
- Feature access
- Subscription lifecycle updates (provider webhooks, cancel/reactivate)

Usage counters are incremented *after* the counted entity is persisted and
are not transactional with its creation.
"""
import calendar
import math
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from sqlalchemy.exc import IntegrityError

from upvote.billing.plans import (
    Plan,
    SubscriptionStatus,
    get_plan_limits,
    is_unlimited,
    plan_has_feature,
)
from upvote.extensions import db
from upvote.models import Application, Subscription, UsageMetrics
from upvote.utils.helpers import utcnow


class Period(NamedTuple):
    start: datetime
    end: datetime


# Fields a provider webhook may set on a subscription
_PROVIDER_FIELDS = (
    "stripe_customer_id",
    "stripe_subscription_id",
    "stripe_product_id",
    "current_period_start",
    "current_period_end",
    "trial_end",
    "cancel_at_period_end",
)


def get_or_create_subscription(company_id: str) -> Subscription:
    """Return the company's subscription, creating a FREE/ACTIVE one if missing."""
    sub = Subscription.query.filter_by(company_id=company_id).first()
    if sub:
        return sub

    sub = Subscription(
        company_id=company_id,
        plan=Plan.FREE.value,
        status=SubscriptionStatus.ACTIVE.value,
    )
    db.session.add(sub)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent request; the unique constraint kept one row
        db.session.rollback()
        sub = Subscription.query.filter_by(company_id=company_id).one()
    return sub


def calendar_month(now: datetime) -> Period:
    last_day = calendar.monthrange(now.year, now.month)[1]
    return Period(
        start=datetime(now.year, now.month, 1),
        end=datetime(now.year, now.month, last_day, 23, 59, 59),
    )


def get_current_period(subscription, now: Optional[datetime] = None) -> Period:
    """
    The stored provider period when ``now`` falls inside it; otherwise the
    calendar month containing ``now`` (FREE plans never have a stored period).
    """
    now = now or utcnow()
    start = subscription.current_period_start
    end = subscription.current_period_end
    if start and end and start <= now <= end:
        return Period(start=start, end=end)
    return calendar_month(now)


def get_or_create_usage_metrics(company_id: str, now: Optional[datetime] = None) -> UsageMetrics:
    sub = get_or_create_subscription(company_id)
    period = get_current_period(sub, now=now)

    usage = UsageMetrics.query.filter_by(company_id=company_id, period_start=period.start).first()
    if usage:
        return usage

    usage = UsageMetrics(
        company_id=company_id,
        period_start=period.start,
        period_end=period.end,
        project_count=0,
        feedback_count=0,
    )
    db.session.add(usage)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        usage = UsageMetrics.query.filter_by(company_id=company_id, period_start=period.start).one()
    return usage


def count_projects(company_id: str) -> int:
    return Application.query.filter_by(company_id=company_id).count()


def can_create_project(company_id: str) -> bool:
    """Project limits are lifetime: compare against every Application owned."""
    sub = get_or_create_subscription(company_id)
    limit = get_plan_limits(sub.plan)["projects"]
    if is_unlimited(limit):
        return True
    return count_projects(company_id) < limit


def can_create_feedback(company_id: str, now: Optional[datetime] = None) -> bool:
    """Feedback limits are monthly: compare against the current period's counter."""
    sub = get_or_create_subscription(company_id)
    limit = get_plan_limits(sub.plan)["feedbacks_per_month"]
    if is_unlimited(limit):
        return True
    usage = get_or_create_usage_metrics(company_id, now=now)
    return usage.feedback_count < limit


def _increment(company_id: str, column, now: Optional[datetime] = None) -> None:
    usage = get_or_create_usage_metrics(company_id, now=now)
    # SQL-side increment so concurrent writers don't lose updates
    UsageMetrics.query.filter_by(id=usage.id).update({column: column + 1})
    db.session.commit()


def increment_project_count(company_id: str, now: Optional[datetime] = None) -> None:
    """Call only after the Application was committed."""
    _increment(company_id, UsageMetrics.project_count, now=now)


def increment_feedback_count(company_id: str, now: Optional[datetime] = None) -> None:
    """Call only after the Feedback was committed."""
    _increment(company_id, UsageMetrics.feedback_count, now=now)


def _usage_entry(current: int, limit: int) -> dict:
    unlimited = is_unlimited(limit)
    return {
        "current": current,
        "limit": limit,
        "isUnlimited": unlimited,
        "percentage": 0 if unlimited else min(100, (current / limit) * 100),
    }


def get_current_usage(company_id: str, now: Optional[datetime] = None) -> dict:
    sub = get_or_create_subscription(company_id)
    usage = get_or_create_usage_metrics(company_id, now=now)
    limits = get_plan_limits(sub.plan)

    return {
        "plan": sub.plan,
        "projects": _usage_entry(count_projects(company_id), limits["projects"]),
        "feedbacks": _usage_entry(usage.feedback_count, limits["feedbacks_per_month"]),
        "periodStart": usage.period_start,
        "periodEnd": usage.period_end,
    }


def has_feature(company_id: str, feature: str) -> bool:
    sub = get_or_create_subscription(company_id)
    return plan_has_feature(sub.plan, feature)


def is_in_trial(subscription, now: Optional[datetime] = None) -> bool:
    if subscription.status != SubscriptionStatus.TRIALING.value:
        return False
    if not subscription.trial_end:
        return False
    return (now or utcnow()) < subscription.trial_end


def get_trial_days_remaining(subscription, now: Optional[datetime] = None) -> int:
    if not subscription.trial_end:
        return 0
    diff = subscription.trial_end - (now or utcnow())
    days = math.ceil(diff / timedelta(days=1))
    return max(0, days)


def update_subscription_plan(company_id: str, plan, status, **data) -> Subscription:
    """
    Upsert plan/status and provider fields. Used by the payment webhook handler.
    Unknown keyword arguments are rejected.
    """
    unknown = set(data) - set(_PROVIDER_FIELDS)
    if unknown:
        raise TypeError(f"Unexpected subscription fields: {sorted(unknown)}")

    sub = Subscription.query.filter_by(company_id=company_id).first()
    if not sub:
        sub = Subscription(company_id=company_id)
        db.session.add(sub)

    sub.plan = Plan(plan).value
    sub.status = SubscriptionStatus(status).value
    for key, value in data.items():
        setattr(sub, key, value)

    db.session.commit()
    return sub


def cancel_subscription(company_id: str) -> Subscription:
    """Cancel at period end; the plan stays in effect until the provider ends it."""
    sub = get_or_create_subscription(company_id)
    sub.cancel_at_period_end = True
    db.session.commit()
    return sub


def reactivate_subscription(company_id: str) -> Subscription:
    sub = get_or_create_subscription(company_id)
    sub.cancel_at_period_end = False
    sub.status = SubscriptionStatus.ACTIVE.value
    db.session.commit()
    return sub


def reset_usage_for_period(company_id: str, period_start: datetime, period_end: datetime) -> UsageMetrics:
    """
    Open a zeroed usage row for a new period. Re-running for the same
    period_start zeroes the existing row instead of failing.
    """
    usage = UsageMetrics.query.filter_by(company_id=company_id, period_start=period_start).first()
    if not usage:
        usage = UsageMetrics(company_id=company_id, period_start=period_start)
        db.session.add(usage)
    usage.period_end = period_end
    usage.project_count = 0
    usage.feedback_count = 0
    db.session.commit()
    return usage
