from upvote.extensions import db
from upvote.utils.helpers import new_public_id, utcnow, iso


class Application(db.Model):
    """A company's product; collects its own feedback stream."""
    __tablename__ = "applications"

    id = db.Column(db.String(32), primary_key=True, default=new_public_id)
    company_id = db.Column(
        db.String(32),
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    company = db.relationship("Company", back_populates="applications")
    # Deleting an application removes its feedback (and through it tags, replies, votes)
    feedback = db.relationship(
        "Feedback",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="select",
    )
    votes = db.relationship(
        "Vote",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def to_dict(self, feedback_count: int | None = None) -> dict:
        return dict(
            id=self.id,
            companyId=self.company_id,
            name=self.name,
            createdAt=iso(self.created_at),
            feedbackCount=feedback_count if feedback_count is not None else len(self.feedback),
        )

    def __repr__(self) -> str:
        return f"<Application id={self.id} name={self.name!r}>"
