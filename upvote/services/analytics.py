"""
Dashboard read-side aggregation over feedback and votes.

Everything is computed at query time and scoped to a company, optionally
narrowed to one of its applications.
"""
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy import and_, func

from upvote.extensions import db
from upvote.models import Application, Feedback, Tag, Vote, VoteType
from upvote.utils.helpers import utcnow, iso

TREND_DAYS = 30
TOP_FEEDBACK_LIMIT = 5


def _scope(company_id: str, application_id: Optional[str]):
    filters = [Application.company_id == company_id]
    if application_id:
        filters.append(Application.id == application_id)
    return filters


def _feedback_query(company_id, application_id, *columns):
    return (
        db.session.query(*columns)
        .select_from(Feedback)
        .join(Application, Feedback.application_id == Application.id)
        .filter(*_scope(company_id, application_id))
    )


def _vote_query(company_id, application_id, *columns):
    return (
        db.session.query(*columns)
        .select_from(Vote)
        .join(Application, Vote.application_id == Application.id)
        .filter(*_scope(company_id, application_id))
    )


def total_feedback(company_id: str, application_id: Optional[str] = None) -> int:
    return _feedback_query(company_id, application_id, func.count(Feedback.id)).scalar() or 0


def votes_by_type(company_id: str, application_id: Optional[str] = None) -> dict:
    rows = (
        _vote_query(company_id, application_id, Vote.vote_type, func.count(Vote.id))
        .group_by(Vote.vote_type)
        .all()
    )
    return {vote_type: count for vote_type, count in rows}


def unique_users(company_id: str, application_id: Optional[str] = None) -> int:
    """Distinct end users across feedback authors and voters."""
    authors = _feedback_query(company_id, application_id, Feedback.user_id).distinct().all()
    voters = _vote_query(company_id, application_id, Vote.user_id).distinct().all()
    return len({row[0] for row in authors} | {row[0] for row in voters})


def feedback_trend(company_id: str, application_id: Optional[str] = None, now: Optional[datetime] = None) -> list[dict]:
    """
    Dense daily counts for the trailing 30 days (today included), oldest first.
    Days without feedback report 0.
    """
    today = (now or utcnow()).date()
    days = [today - timedelta(days=offset) for offset in range(TREND_DAYS - 1, -1, -1)]
    window_start = datetime.combine(days[0], time.min)
    window_end = datetime.combine(today, time.max)

    rows = (
        _feedback_query(company_id, application_id, Feedback.created_at)
        .filter(Feedback.created_at >= window_start, Feedback.created_at <= window_end)
        .all()
    )
    counts: dict = {}
    for (created_at,) in rows:
        day = created_at.date()
        counts[day] = counts.get(day, 0) + 1

    return [{"date": day.isoformat(), "count": counts.get(day, 0)} for day in days]


def top_feedback(company_id: str, application_id: Optional[str] = None, limit: int = TOP_FEEDBACK_LIMIT) -> list[dict]:
    """Most upvoted feedback; ties go to the earliest created item."""
    upvotes = func.count(Vote.id).label("upvotes")
    rows = (
        _feedback_query(company_id, application_id, Feedback.id, Feedback.title, upvotes)
        .outerjoin(
            Vote,
            and_(Vote.feedback_id == Feedback.id, Vote.vote_type == VoteType.UPVOTE.value),
        )
        .group_by(Feedback.id, Feedback.title, Feedback.created_at)
        .order_by(upvotes.desc(), Feedback.created_at.asc(), Feedback.id.asc())
        .limit(limit)
        .all()
    )
    return [{"id": fid, "title": title, "upvotes": count} for fid, title, count in rows]


def tag_distribution(company_id: str, application_id: Optional[str] = None) -> list[dict]:
    count = func.count(Tag.id)
    rows = (
        db.session.query(Tag.name, count)
        .select_from(Tag)
        .join(Feedback, Tag.feedback_id == Feedback.id)
        .join(Application, Feedback.application_id == Application.id)
        .filter(*_scope(company_id, application_id))
        .group_by(Tag.name)
        .order_by(count.desc(), Tag.name.asc())
        .all()
    )
    return [{"name": name, "count": n} for name, n in rows]


def company_analytics(company_id: str, application_id: Optional[str] = None, now: Optional[datetime] = None) -> dict:
    by_type = votes_by_type(company_id, application_id)
    return {
        "totalFeedback": total_feedback(company_id, application_id),
        "upvotes": by_type.get(VoteType.UPVOTE.value, 0),
        "votesByType": by_type,
        "uniqueUsers": unique_users(company_id, application_id),
        "feedbackTrend": feedback_trend(company_id, application_id, now=now),
        "topFeedback": top_feedback(company_id, application_id),
        "tagDistribution": tag_distribution(company_id, application_id),
    }


def user_activity(company_id: str, application_id: Optional[str] = None) -> list[dict]:
    """
    One entry per end-user id seen in feedback or votes, most recently active
    first; users with no timestamp sort last.
    """
    feedback_rows = (
        _feedback_query(
            company_id, application_id,
            Feedback.user_id, func.count(Feedback.id), func.max(Feedback.created_at),
        )
        .group_by(Feedback.user_id)
        .all()
    )
    vote_rows = (
        _vote_query(
            company_id, application_id,
            Vote.user_id, func.count(Vote.id), func.max(Vote.created_at),
        )
        .group_by(Vote.user_id)
        .all()
    )

    users: dict = {}
    for user_id, count, last in feedback_rows:
        users[user_id] = {"userId": user_id, "feedbackCount": count, "voteCount": 0, "lastActive": last}

    for user_id, count, last in vote_rows:
        entry = users.get(user_id)
        if entry is None:
            users[user_id] = {"userId": user_id, "feedbackCount": 0, "voteCount": count, "lastActive": last}
            continue
        entry["voteCount"] = count
        if last and (entry["lastActive"] is None or last > entry["lastActive"]):
            entry["lastActive"] = last

    ordered = sorted(
        users.values(),
        key=lambda u: (u["lastActive"] is not None, u["lastActive"] or datetime.min),
        reverse=True,
    )
    for entry in ordered:
        entry["lastActive"] = iso(entry["lastActive"])
    return ordered
