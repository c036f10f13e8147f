from .company import Company
from .application import Application
from .feedback import Feedback, Tag, Reply
from .vote import Vote, VoteType
from .subscription import Subscription
from .usage_metrics import UsageMetrics
from .support_ticket import SupportTicket
from .billing_event import BillingEventLog

__all__ = [
    "Company",
    "Application",
    "Feedback",
    "Tag",
    "Reply",
    "Vote",
    "VoteType",
    "Subscription",
    "UsageMetrics",
    "SupportTicket",
    "BillingEventLog",
]
