from upvote.extensions import db
from upvote.utils.helpers import utcnow, iso


class SupportTicket(db.Model):
    # Anonymous contact form; deliberately not tied to a company
    __tablename__ = "support_tickets"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(320), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return dict(id=self.id, email=self.email, message=self.message, createdAt=iso(self.created_at))
