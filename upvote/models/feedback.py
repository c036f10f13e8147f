from upvote.extensions import db
from upvote.utils.helpers import new_public_id, utcnow, iso

# Open set: the dashboard may grow new columns, so this is text, not a DB enum.
STATUS_OPEN = "Open"
STATUS_PLANNED = "Planned"
STATUS_IN_PROGRESS = "In Progress"
STATUS_COMPLETED = "Completed"
STATUS_CHOICES = (STATUS_OPEN, STATUS_PLANNED, STATUS_IN_PROGRESS, STATUS_COMPLETED)


class Feedback(db.Model):
    __tablename__ = "feedback"

    id = db.Column(db.String(32), primary_key=True, default=new_public_id)
    application_id = db.Column(
        db.String(32),
        db.ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # End-user id supplied by the embedding site; not authenticated here
    user_id = db.Column(db.String(255), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(32), nullable=False, default=STATUS_OPEN, server_default=STATUS_OPEN)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    application = db.relationship("Application", back_populates="feedback")
    tags = db.relationship(
        "Tag",
        back_populates="feedback",
        cascade="all, delete-orphan",
        order_by="Tag.id",
        lazy="select",
    )
    reply = db.relationship(
        "Reply",
        back_populates="feedback",
        uselist=False,
        cascade="all, delete-orphan",
    )
    votes = db.relationship(
        "Vote",
        back_populates="feedback",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        db.Index("ix_feedback_application_created_at", "application_id", "created_at"),
    )

    def to_dict(self, vote_count: int = 0) -> dict:
        return dict(
            id=self.id,
            applicationId=self.application_id,
            userId=self.user_id,
            title=self.title,
            description=self.description,
            status=self.status,
            createdAt=iso(self.created_at),
            voteCount=vote_count,
            tags=[t.name for t in self.tags],
            reply=self.reply.message if self.reply else None,
        )

    def __repr__(self) -> str:
        return f"<Feedback id={self.id} title={self.title[:40]!r} status={self.status!r}>"


class Tag(db.Model):
    """Free-text label; owned by a single feedback item (not shared)."""
    __tablename__ = "tags"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, index=True)
    feedback_id = db.Column(
        db.String(32),
        db.ForeignKey("feedback.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    feedback = db.relationship("Feedback", back_populates="tags")


class Reply(db.Model):
    __tablename__ = "replies"

    id = db.Column(db.Integer, primary_key=True)
    feedback_id = db.Column(
        db.String(32),
        db.ForeignKey("feedback.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    feedback = db.relationship("Feedback", back_populates="reply")
