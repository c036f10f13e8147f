from sqlalchemy import UniqueConstraint

from upvote.extensions import db
from upvote.utils.helpers import utcnow


class UsageMetrics(db.Model):
    """
    Per-period usage counters. One row per (company, period_start); a new
    period starts from zero. project_count is informational only: project
    limits are checked against the lifetime Application count.
    """
    __tablename__ = "usage_metrics"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.String(32),
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period_start = db.Column(db.DateTime, nullable=False)
    period_end = db.Column(db.DateTime, nullable=False)
    project_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    feedback_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("company_id", "period_start", name="uq_usage_metrics_company_period"),
    )

    def __repr__(self) -> str:
        return (
            f"<UsageMetrics company_id={self.company_id} start={self.period_start:%Y-%m-%d} "
            f"projects={self.project_count} feedback={self.feedback_count}>"
        )
