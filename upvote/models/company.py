from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from upvote.extensions import db, login_manager
from upvote.utils.helpers import new_public_id, utcnow, iso


class Company(db.Model, UserMixin):
    __tablename__ = "companies"

    id = db.Column(db.String(32), primary_key=True, default=new_public_id)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    # OAuth-only accounts have no password
    password_hash = db.Column(db.String(255), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    oauth_id = db.Column(db.String(255), nullable=True, unique=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    applications = db.relationship(
        "Application",
        back_populates="company",
        cascade="all, delete-orphan",
        lazy="select",
    )
    subscription = db.relationship("Subscription", back_populates="company", uselist=False)

    # helpers
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def get_id(self) -> str:
        return str(self.id)

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            email=self.email,
            name=self.name,
            createdAt=iso(self.created_at),
        )

    def __repr__(self) -> str:
        return f"<Company id={self.id} email={self.email!r}>"


@login_manager.user_loader
def load_company(company_id: str):
    return db.session.get(Company, company_id)
