"""
Plan catalog: limits, features and display prices per plan.

Limits use -1 for "unlimited". Project limits are lifetime counts of
Applications; feedback limits apply per usage period.
"""
from enum import Enum
from typing import Dict, List, Optional

from flask import current_app


class Plan(str, Enum):
    FREE = "FREE"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    TRIALING = "TRIALING"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"
    INCOMPLETE = "INCOMPLETE"
    ON_HOLD = "ON_HOLD"


class LimitType(str, Enum):
    PROJECTS = "projects"
    FEEDBACKS = "feedbacks"


class BillingInterval(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


UNLIMITED = -1

# Canonical feature keys
BASIC_ANALYTICS = "basic_analytics"
ADVANCED_ANALYTICS = "advanced_analytics"
CUSTOM_BRANDING = "custom_branding"
PRIORITY_SUPPORT = "priority_support"
API_ACCESS = "api_access"
SSO = "sso"
DEDICATED_SUPPORT = "dedicated_support"
SLA = "sla"
CUSTOM_CONTRACTS = "custom_contracts"

FREE_FEATURES: List[str] = [
    BASIC_ANALYTICS,
    "email_support",
]

PRO_FEATURES: List[str] = [
    BASIC_ANALYTICS,
    ADVANCED_ANALYTICS,
    CUSTOM_BRANDING,
    PRIORITY_SUPPORT,
    API_ACCESS,
]

ENTERPRISE_FEATURES: List[str] = PRO_FEATURES + [
    SSO,
    DEDICATED_SUPPORT,
    SLA,
    CUSTOM_CONTRACTS,
]

PLAN_CONFIG: Dict[Plan, dict] = {
    Plan.FREE: {
        "name": "Hobby",
        "description": "For personal projects",
        "price": {"monthly": 0, "annual": 0, "display": "$0"},
        "limits": {"projects": 1, "feedbacks_per_month": 50},
        "features": FREE_FEATURES,
        "display_features": ["1 Project", "50 Feedbacks / mo", "Basic Analytics"],
        "trial_days": 0,
    },
    Plan.PRO: {
        "name": "Pro",
        "description": "For growing startups",
        "price": {
            "monthly": 39,
            "annual": 29,
            "display": {"monthly": "$39/mo", "annual": "$29/mo"},
        },
        "limits": {"projects": UNLIMITED, "feedbacks_per_month": UNLIMITED},
        "features": PRO_FEATURES,
        "display_features": [
            "Unlimited Projects",
            "Unlimited Feedback",
            "Advanced Analytics",
            "Custom Branding",
        ],
        "trial_days": 14,
    },
    Plan.ENTERPRISE: {
        "name": "Enterprise",
        "description": "For large teams",
        "price": {"monthly": "custom", "annual": "custom", "display": "Custom"},
        "limits": {"projects": UNLIMITED, "feedbacks_per_month": UNLIMITED},
        "features": ENTERPRISE_FEATURES,
        "display_features": [
            "SSO & Advanced Security",
            "Dedicated Support",
            "SLA Guarantee",
        ],
        "trial_days": 0,
    },
}


def is_unlimited(limit: int) -> bool:
    return limit == UNLIMITED


def get_plan_limits(plan) -> dict:
    return PLAN_CONFIG[Plan(plan)]["limits"]


def plan_has_feature(plan, feature: str) -> bool:
    return feature in PLAN_CONFIG[Plan(plan)]["features"]


def get_display_price(plan, interval: Optional[str] = None) -> str:
    plan = Plan(plan)
    config = PLAN_CONFIG[plan]
    if plan in (Plan.FREE, Plan.ENTERPRISE):
        return config["price"]["display"]
    if interval:
        return config["price"]["display"][BillingInterval(interval).value]
    return config["name"]


def resolve_plan(price_id: Optional[str]) -> Plan:
    """
    Plan bought with a Stripe price id. Checkout's productId and webhook
    subscription items both carry the price, matched against the per-env
    STRIPE_PRICE_* settings. Anything unrecognized falls back to FREE.
    """
    cfg = current_app.config

    pro_prices = {
        cfg.get("STRIPE_PRICE_PRO_MONTHLY"),
        cfg.get("STRIPE_PRICE_PRO_ANNUAL"),
    }
    enterprise_prices = {cfg.get("STRIPE_PRICE_ENTERPRISE")}

    if price_id and price_id in enterprise_prices:
        return Plan.ENTERPRISE
    if price_id and price_id in pro_prices:
        return Plan.PRO
    return Plan.FREE


_PROVIDER_STATUS = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete": SubscriptionStatus.INCOMPLETE,
    "incomplete_expired": SubscriptionStatus.CANCELED,
    "paused": SubscriptionStatus.ON_HOLD,
}


def status_from_provider(value: Optional[str]) -> SubscriptionStatus:
    return _PROVIDER_STATUS.get((value or "").lower(), SubscriptionStatus.INCOMPLETE)
