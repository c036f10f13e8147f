from flask import jsonify, current_app
import stripe

from upvote.extensions import limiter
from upvote.security.principal import company_required
from upvote.services import billing as billing_service
from upvote.utils.helpers import json_object
from . import bp


def _product_id():
    value = json_object().get("productId")
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _provider_error(e: stripe.StripeError, principal, product_id):
    current_app.logger.exception(
        "checkout.provider_error",
        extra={"company_id": principal.company_id, "product_id": product_id},
    )
    status = getattr(e, "http_status", None) or 502
    details = getattr(e, "user_message", None) or str(e)
    return jsonify({"error": "Payment provider error", "details": details}), status


def _start_checkout(principal, create):
    product_id = _product_id()
    if not product_id:
        return jsonify({"error": "Product ID is required"}), 400

    try:
        payload = create(product_id)
    except stripe.StripeError as e:
        return _provider_error(e, principal, product_id)

    url = payload.get("url")
    if not url:
        current_app.logger.error(
            "checkout.missing_url",
            extra={"company_id": principal.company_id, "product_id": product_id},
        )
        return jsonify({"error": "No checkout URL received from payment provider"}), 500

    current_app.logger.info(
        "checkout_started",
        extra={"event": "checkout_started", "company_id": principal.company_id, "product_id": product_id},
    )
    return jsonify({"checkout_url": url})


@bp.get("/checkout")
@bp.get("/payments")
def status():
    return jsonify({"status": "API is working"})


@bp.post("/checkout")
@bp.post("/payments")
@limiter.limit("10/minute")
@company_required
def payment_link(principal):
    return _start_checkout(
        principal,
        lambda product_id: billing_service.create_payment_link(
            price_id=product_id, company_id=principal.company_id
        ),
    )


@bp.post("/checkout/session")
@limiter.limit("10/minute")
@company_required
def checkout_session(principal):
    return _start_checkout(
        principal,
        lambda product_id: billing_service.create_checkout_session(
            price_id=product_id, company_id=principal.company_id, email=principal.email
        ),
    )
