from upvote.extensions import db
from upvote.utils.helpers import utcnow


class BillingEventLog(db.Model):
    __tablename__ = "billing_event_logs"

    id = db.Column(db.Integer, primary_key=True)
    stripe_event_id = db.Column(db.String(255), nullable=False, unique=True, index=True)
    type = db.Column(db.String(80), nullable=False, index=True)
    signature_valid = db.Column(db.Boolean, nullable=False, default=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    notes = db.Column(db.String(255), nullable=True)

    processed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
