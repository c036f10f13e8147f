import hashlib
import json

import stripe
from flask import request, jsonify, abort, current_app

from upvote.extensions import db
from upvote.models import BillingEventLog
from upvote.services import billing as billing_service
from upvote.utils.helpers import utcnow
from . import bp

SUBSCRIPTION_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
)
INVOICE_EVENTS = ("invoice.paid", "invoice.payment_failed")


def _invoice_subscription_id(invoice: dict):
    sub_id = invoice.get("subscription")
    if sub_id:
        return sub_id.get("id") if isinstance(sub_id, dict) else sub_id
    # Newer API versions nest it under parent.subscription_details
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


def _handle(ev_type: str, obj: dict) -> None:
    if ev_type == "checkout.session.completed":
        sub_id = obj.get("subscription")
        company_id = (obj.get("metadata") or {}).get("company_id")
        if sub_id:
            billing_service.sync_subscription(billing_service.retrieve_subscription(sub_id), company_id=company_id)

    elif ev_type in SUBSCRIPTION_EVENTS:
        # Event carries the full subscription object
        billing_service.sync_subscription(obj, deleted=ev_type == "customer.subscription.deleted")

    elif ev_type in INVOICE_EVENTS:
        sub_id = _invoice_subscription_id(obj)
        if sub_id:
            billing_service.sync_subscription(billing_service.retrieve_subscription(sub_id))

    # Other events: ignored


@bp.post("/stripe")
def stripe_webhook():
    """
    Stripe → /webhooks/stripe
    Verifies signature, logs event, idempotently reconciles the company's Subscription.
    """
    # 1) Verify signature
    secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        abort(500, description="Stripe webhook secret not configured")

    raw_bytes = request.get_data(cache=False, as_text=False)
    sig_header = request.headers.get("Stripe-Signature", "")

    try:
        stripe.Webhook.construct_event(
            payload=raw_bytes.decode("utf-8"),
            sig_header=sig_header,
            secret=secret,
        )
    except (ValueError, stripe.SignatureVerificationError):
        # Log invalid attempts with a deterministic synthetic id (no payload trust)
        digest = hashlib.sha256(raw_bytes).hexdigest()[:32]
        synthetic_id = f"invalid:{digest}"
        if not BillingEventLog.query.filter_by(stripe_event_id=synthetic_id).first():
            db.session.add(BillingEventLog(
                stripe_event_id=synthetic_id,
                type="signature_invalid",
                signature_valid=False,
                payload={},
            ))
            db.session.commit()
        current_app.logger.warning("stripe_webhook_invalid_signature", extra={"event": "stripe_webhook_invalid_signature"})
        return jsonify({"error": "invalid_signature"}), 400

    # Signature verified; work on the plain JSON body
    event = json.loads(raw_bytes.decode("utf-8"))

    # 2) Idempotency guard (short-circuit if already processed)
    ev_id = event.get("id")
    ev_type = event.get("type")
    if not ev_id or not ev_type:
        return jsonify({"error": "malformed_event"}), 400

    if BillingEventLog.query.filter_by(stripe_event_id=ev_id).first():
        return jsonify({"ok": True, "duplicate": True}), 200

    # 3) Persist raw payload to log (for audit/forensics)
    log = BillingEventLog(
        stripe_event_id=ev_id,
        type=ev_type,
        signature_valid=True,
        payload=event,
    )
    db.session.add(log)
    db.session.commit()

    # 4) Reconcile
    obj = (event.get("data") or {}).get("object") or {}
    try:
        _handle(ev_type, obj)
    except Exception as e:
        # Attach note and surface 200 to prevent endless Stripe retries; ops can review logs
        db.session.rollback()
        log.notes = f"handler_error:{type(e).__name__}"
        current_app.logger.exception("stripe_webhook_handler_error", extra={"stripe_event_id": ev_id})

    log.processed_at = utcnow()
    db.session.commit()

    current_app.logger.info(
        "stripe_webhook_processed",
        extra={"event": "stripe_webhook_processed", "stripe_event_id": ev_id, "type": ev_type},
    )
    return jsonify({"ok": True}), 200
