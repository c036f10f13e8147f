from dataclasses import dataclass
from functools import wraps
from typing import Callable

from flask import jsonify
from flask_login import current_user


@dataclass(frozen=True)
class Principal:
    """The authenticated company a request acts on behalf of."""
    company_id: str
    email: str
    name: str

    @classmethod
    def from_company(cls, company) -> "Principal":
        return cls(company_id=company.id, email=company.email, name=company.name)


def current_principal():
    if not getattr(current_user, "is_authenticated", False):
        return None
    return Principal.from_company(current_user)


def unauthorized():
    return jsonify({"error": "Unauthorized"}), 401


def company_required(fn: Callable) -> Callable:
    """
    Require a logged-in company and hand it to the view as ``principal``.
    Views never read the session directly.
    """
    @wraps(fn)
    def _wrap(*args, **kwargs):
        principal = current_principal()
        if principal is None:
            return unauthorized()
        return fn(*args, principal=principal, **kwargs)
    return _wrap
