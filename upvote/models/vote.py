from enum import Enum

from sqlalchemy import CheckConstraint, UniqueConstraint

from upvote.extensions import db
from upvote.utils.helpers import utcnow


class VoteType(str, Enum):
    UPVOTE = "UPVOTE"
    # Defined for the schema; no endpoint accepts it.
    DOWNVOTE = "DOWNVOTE"


class Vote(db.Model):
    __tablename__ = "votes"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.String(32),
        db.ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feedback_id = db.Column(
        db.String(32),
        db.ForeignKey("feedback.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.String(255), nullable=False, index=True)
    vote_type = db.Column(db.String(16), nullable=False, default=VoteType.UPVOTE.value)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    application = db.relationship("Application", back_populates="votes")
    feedback = db.relationship("Feedback", back_populates="votes")

    __table_args__ = (
        # One vote per end user per feedback item
        UniqueConstraint("application_id", "feedback_id", "user_id", name="uq_votes_app_feedback_user"),
        CheckConstraint("vote_type IN ('UPVOTE','DOWNVOTE')", name="ck_votes_vote_type_valid"),
    )

    def __repr__(self) -> str:
        return f"<Vote id={self.id} feedback_id={self.feedback_id} user_id={self.user_id!r} type={self.vote_type}>"
