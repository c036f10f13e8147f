from flask import jsonify, current_app

from upvote.extensions import db, limiter
from upvote.models import SupportTicket
from upvote.services.email import notify_support_ticket
from upvote.utils.helpers import json_object
from upvote.utils.validators import clean_str, clean_text
from . import bp


@bp.post("")
@limiter.limit("5 per minute; 30 per hour")
def submit_ticket():
    data = json_object()
    email = clean_str(data.get("email"), max_len=320)
    message = clean_text(data.get("message"))
    if not email or not message:
        return jsonify({"error": "Email and message are required"}), 400

    ticket = SupportTicket(email=email, message=message)
    db.session.add(ticket)
    db.session.commit()

    current_app.logger.info("support_ticket_created", extra={"event": "support_ticket_created", "ticket_id": ticket.id})
    notify_support_ticket(ticket)

    return jsonify({"message": "Support ticket submitted successfully", "data": ticket.to_dict()}), 201
