from sqlalchemy import func

from upvote.extensions import db
from upvote.models import Feedback, Tag, Vote
from upvote.utils.validators import clean_text

SORT_RECENT = "recent"
SORT_UPVOTES = "upvotes"


def with_vote_counts(query, sort: str = SORT_RECENT):
    """Attach a total vote count column and order by recency or votes."""
    vote_count = func.count(Vote.id).label("vote_count")
    query = (
        query.add_columns(vote_count)
        .outerjoin(Vote, Vote.feedback_id == Feedback.id)
        .group_by(Feedback.id)
    )
    if sort == SORT_UPVOTES:
        return query.order_by(vote_count.desc(), Feedback.created_at.desc(), Feedback.id.asc())
    return query.order_by(Feedback.created_at.desc(), Feedback.id.asc())


def create_feedback(application_id: str, user_id: str, title: str, description=None, tags=()) -> Feedback:
    feedback = Feedback(
        application_id=application_id,
        user_id=user_id,
        title=title,
        description=clean_text(description),
    )
    feedback.tags = [Tag(name=name) for name in tags]
    db.session.add(feedback)
    db.session.commit()
    return feedback
