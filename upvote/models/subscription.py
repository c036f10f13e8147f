from sqlalchemy import UniqueConstraint, CheckConstraint

from upvote.billing.plans import Plan, SubscriptionStatus
from upvote.extensions import db
from upvote.utils.helpers import utcnow, iso


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(
        db.String(32),
        db.ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    plan = db.Column(db.String(16), nullable=False, default=Plan.FREE.value, server_default=Plan.FREE.value)
    status = db.Column(
        db.String(16),
        nullable=False,
        default=SubscriptionStatus.ACTIVE.value,
        server_default=SubscriptionStatus.ACTIVE.value,
        index=True,
    )

    # Payment provider references (Stripe)
    stripe_customer_id = db.Column(db.String(64), nullable=True, index=True)
    stripe_subscription_id = db.Column(db.String(64), nullable=True, unique=True)
    stripe_product_id = db.Column(db.String(64), nullable=True)

    current_period_start = db.Column(db.DateTime, nullable=True)
    current_period_end = db.Column(db.DateTime, nullable=True)
    trial_end = db.Column(db.DateTime, nullable=True)
    cancel_at_period_end = db.Column(db.Boolean, nullable=False, default=False, server_default=db.false())

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    company = db.relationship("Company", back_populates="subscription")

    __table_args__ = (
        UniqueConstraint("company_id", name="uq_subscriptions_company_id"),
        CheckConstraint("plan IN ('FREE','PRO','ENTERPRISE')", name="ck_subscriptions_plan_valid"),
    )

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            companyId=self.company_id,
            plan=self.plan,
            status=self.status,
            currentPeriodStart=iso(self.current_period_start),
            currentPeriodEnd=iso(self.current_period_end),
            trialEnd=iso(self.trial_end),
            cancelAtPeriodEnd=bool(self.cancel_at_period_end),
        )

    def __repr__(self) -> str:
        return f"<Subscription id={self.id} company_id={self.company_id} plan={self.plan} status={self.status}>"
