"""Company accounts: credential signup and credential check."""
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from upvote.billing.plans import Plan, SubscriptionStatus
from upvote.extensions import db
from upvote.models import Company, Subscription
from upvote.utils.validators import MIN_PASSWORD_LENGTH, clean_str, is_valid_email


class SignupError(ValueError):
    pass


def find_by_email(email: str) -> Optional[Company]:
    return db.session.execute(
        db.select(Company).where(func.lower(Company.email) == func.lower(email))
    ).scalar_one_or_none()


def _new_company(email: str, name: str, password: str) -> Company:
    company = Company(email=email, name=name)
    company.set_password(password)
    db.session.add(company)
    db.session.flush()  # get company.id
    # Every company starts on the free plan
    db.session.add(Subscription(
        company_id=company.id,
        plan=Plan.FREE.value,
        status=SubscriptionStatus.ACTIVE.value,
    ))
    return company


def register_company(email, password, name) -> Company:
    email = (clean_str(email, max_len=255) or "").lower()
    name = clean_str(name)
    if not email or not password or not name:
        raise SignupError("Email, password, and name are required")
    if not is_valid_email(email):
        raise SignupError("A valid email is required")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise SignupError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if find_by_email(email):
        raise SignupError("Email already registered")

    company = _new_company(email, name, password)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise SignupError("Email already registered")
    return company


def authenticate(email, password) -> Optional[Company]:
    if not email or not password:
        return None
    company = find_by_email(str(email).strip())
    if not company or not company.check_password(password):
        return None
    return company
