import json

from flask import current_app
from flask_mail import Message

from upvote.extensions import mail


def _log_structured(event: str, **fields):
    """One JSON object per line; no message bodies."""
    current_app.logger.info(json.dumps({"event": event, **fields}))


def notify_support_ticket(ticket) -> bool:
    """
    Forward a support ticket to the support inbox. Best effort: a mail failure
    is logged and reported as False, the ticket itself is already stored.
    """
    inbox = current_app.config.get("SUPPORT_INBOX")
    if not inbox:
        _log_structured("support_notify_skipped", ticket_id=ticket.id, reason="no_inbox")
        return False

    msg = Message(
        subject=f"[UpVote support] Ticket #{ticket.id}",
        recipients=[inbox],
        reply_to=ticket.email,
        body=f"From: {ticket.email}\n\n{ticket.message}\n",
    )
    try:
        mail.send(msg)
    except Exception:
        current_app.logger.exception("support_notify_failed", extra={"ticket_id": ticket.id})
        return False

    _log_structured("support_notify_sent", ticket_id=ticket.id)
    return True
