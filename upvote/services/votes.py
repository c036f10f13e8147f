from sqlalchemy.exc import IntegrityError

from upvote.extensions import db
from upvote.models import Vote, VoteType


class VoteNotFound(LookupError):
    pass


def count_upvotes(feedback_id: str) -> int:
    return Vote.query.filter_by(feedback_id=feedback_id, vote_type=VoteType.UPVOTE.value).count()


def _find_vote(application_id: str, feedback_id: str, user_id: str):
    return Vote.query.filter_by(
        application_id=application_id, feedback_id=feedback_id, user_id=user_id
    ).one_or_none()


def upsert_vote(application_id: str, feedback_id: str, user_id: str, vote_type=VoteType.UPVOTE) -> Vote:
    """
    At most one vote per (application, feedback, user): voting again updates
    the existing row instead of adding a second one.
    """
    vote_type = VoteType(vote_type).value
    vote = _find_vote(application_id, feedback_id, user_id)
    if vote is not None:
        vote.vote_type = vote_type
        db.session.commit()
        return vote

    vote = Vote(application_id=application_id, feedback_id=feedback_id, user_id=user_id, vote_type=vote_type)
    db.session.add(vote)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request inserted the same vote first; update that row
        db.session.rollback()
        vote = _find_vote(application_id, feedback_id, user_id)
        vote.vote_type = vote_type
        db.session.commit()
    return vote


def delete_vote(application_id: str, feedback_id: str, user_id: str) -> None:
    vote = _find_vote(application_id, feedback_id, user_id)
    if vote is None:
        raise VoteNotFound(f"No vote by {user_id!r} on feedback {feedback_id}")
    db.session.delete(vote)
    db.session.commit()
