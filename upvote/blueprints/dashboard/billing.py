from flask import jsonify, current_app

from upvote.security.principal import company_required
from upvote.services import subscriptions
from upvote.utils.helpers import iso
from . import bp


@bp.get("/usage")
@company_required
def usage(principal):
    snapshot = subscriptions.get_current_usage(principal.company_id)
    sub = subscriptions.get_or_create_subscription(principal.company_id)

    snapshot["periodStart"] = iso(snapshot["periodStart"])
    snapshot["periodEnd"] = iso(snapshot["periodEnd"])
    snapshot["subscription"] = sub.to_dict()
    snapshot["inTrial"] = subscriptions.is_in_trial(sub)
    snapshot["trialDaysRemaining"] = subscriptions.get_trial_days_remaining(sub)
    snapshot["upgradeUrl"] = current_app.config.get("UPGRADE_URL")
    return jsonify(snapshot)


@bp.post("/subscription/cancel")
@company_required
def cancel(principal):
    sub = subscriptions.cancel_subscription(principal.company_id)
    current_app.logger.info(
        "subscription_cancel_requested",
        extra={"event": "subscription_cancel_requested", "company_id": principal.company_id},
    )
    return jsonify({"subscription": sub.to_dict()})


@bp.post("/subscription/reactivate")
@company_required
def reactivate(principal):
    sub = subscriptions.reactivate_subscription(principal.company_id)
    current_app.logger.info(
        "subscription_reactivated",
        extra={"event": "subscription_reactivated", "company_id": principal.company_id},
    )
    return jsonify({"subscription": sub.to_dict()})
