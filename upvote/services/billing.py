from typing import Dict, Any, Optional
from urllib.parse import urljoin
from flask import current_app
from stripe import StripeClient
import hashlib, json

from upvote.billing.plans import PLAN_CONFIG, Plan, SubscriptionStatus, resolve_plan, status_from_provider
from upvote.extensions import db
from upvote.models import Company
from upvote.services import subscriptions
from upvote.utils.helpers import from_timestamp


def _client() -> StripeClient:
    key = current_app.config.get("STRIPE_SECRET_KEY")
    if not key:
        raise RuntimeError("STRIPE_SECRET_KEY is not configured")
    return StripeClient(key)


def _absolute_url(path: str) -> str:
    base = (current_app.config.get("APP_BASE_URL") or "").rstrip("/") + "/"
    return urljoin(base, path.lstrip("/"))


def make_idempotency_key(*parts: Any) -> str:
    raw = "|".join(str(p) for p in parts)
    return "checkout:" + hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


def _params_hash(d: Dict[str, Any]) -> str:
    # Stable across runs if params identical; changes when fields change
    return hashlib.sha256(json.dumps(d, sort_keys=True, separators=(",", ":")).encode("utf-8")).hexdigest()[:16]


def _subscription_data(price_id: str, company_id: str) -> Dict[str, Any]:
    data: Dict[str, Any] = {"metadata": {"company_id": company_id}}
    trial_days = PLAN_CONFIG[resolve_plan(price_id)].get("trial_days") or 0
    if trial_days:
        data["trial_period_days"] = trial_days
    return data


def create_checkout_session(*, price_id: str, company_id: str, email: str) -> Dict[str, Any]:
    """
    Create a Stripe Checkout Session for a subscription to the given Price.
    Returns: {"id": <session_id>, "url": <redirect_url or None>}
    """
    client = _client()
    params: Dict[str, Any] = {
        "mode": "subscription",
        "line_items": [{"price": price_id, "quantity": 1}],
        "customer_email": email,
        "success_url": _absolute_url("dashboard?checkout=success&session_id={CHECKOUT_SESSION_ID}"),
        "cancel_url": _absolute_url("pricing"),
        # Webhook context
        "metadata": {"company_id": company_id},
        "subscription_data": _subscription_data(price_id, company_id),
    }
    idem = make_idempotency_key("checkout", "v1", company_id, price_id, _params_hash(params))
    session = client.checkout.sessions.create(params=params, options={"idempotency_key": idem})
    return {"id": session.id, "url": getattr(session, "url", None)}


def create_payment_link(*, price_id: str, company_id: str) -> Dict[str, Any]:
    """Create a reusable hosted payment link that returns to the dashboard."""
    client = _client()
    params: Dict[str, Any] = {
        "line_items": [{"price": price_id, "quantity": 1}],
        "metadata": {"company_id": company_id},
        "subscription_data": _subscription_data(price_id, company_id),
        "after_completion": {
            "type": "redirect",
            "redirect": {"url": _absolute_url("dashboard")},
        },
    }
    link = client.payment_links.create(params=params)
    return {"id": link.id, "url": getattr(link, "url", None)}


def retrieve_subscription(subscription_id: str) -> Dict[str, Any]:
    sub = _client().subscriptions.retrieve(subscription_id)
    # Stripe objects may need converting to dicts
    if hasattr(sub, "to_dict"):
        return sub.to_dict()
    return dict(sub)


def _first_item(sub_obj: Dict[str, Any]) -> Dict[str, Any]:
    items = (sub_obj.get("items") or {}).get("data") or []
    return items[0] if items else {}


def sync_subscription(sub_obj: Dict[str, Any], company_id: Optional[str] = None, deleted: bool = False):
    """
    Reconcile our Subscription row from a Stripe subscription object.
    The company comes from metadata set at checkout. Returns None when the
    object carries no company context.
    """
    meta = sub_obj.get("metadata") or {}
    company_id = company_id or meta.get("company_id")
    if not company_id or db.session.get(Company, str(company_id)) is None:
        return None

    # First item drives price/period for simple one-price subs
    item = _first_item(sub_obj)
    price = item.get("price") or {}
    price_id = price.get("id") if isinstance(price, dict) else price
    customer = sub_obj.get("customer")
    customer_id = customer.get("id") if isinstance(customer, dict) else customer

    if deleted:
        plan, status = Plan.FREE, SubscriptionStatus.CANCELED
    else:
        plan, status = resolve_plan(price_id), status_from_provider(sub_obj.get("status"))

    # Newer API versions report the period on the item instead of the subscription
    period_start = sub_obj.get("current_period_start") or item.get("current_period_start")
    period_end = sub_obj.get("current_period_end") or item.get("current_period_end")

    return subscriptions.update_subscription_plan(
        company_id,
        plan,
        status,
        stripe_customer_id=customer_id,
        stripe_subscription_id=sub_obj.get("id"),
        stripe_product_id=price_id,
        current_period_start=from_timestamp(period_start),
        current_period_end=from_timestamp(period_end),
        trial_end=from_timestamp(sub_obj.get("trial_end")),
        cancel_at_period_end=bool(sub_obj.get("cancel_at_period_end")),
    )
