import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import pytest
from upvote import create_app
from upvote.extensions import db
from upvote.models import Application, Company
from upvote.services import accounts


@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        MAIL_SUPPRESS_SEND=True,
        WTF_CSRF_ENABLED=False,
        STRIPE_PRICE_PRO_MONTHLY="price_pro_monthly",
        STRIPE_PRICE_PRO_ANNUAL="price_pro_annual",
        STRIPE_PRICE_ENTERPRISE="price_enterprise",
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


@pytest.fixture()
def company_id(app):
    """A registered company on the FREE plan."""
    with app.app_context():
        company = accounts.register_company("owner@acme.test", "s3cret-pass", "Acme")
        return company.id


@pytest.fixture()
def auth_client(client, company_id):
    resp = client.post("/api/auth/login", json={"email": "owner@acme.test", "password": "s3cret-pass"})
    assert resp.status_code == 200
    return client


def make_company(email="other@corp.test", name="Other Corp"):
    """Call inside an app context."""
    return accounts.register_company(email, "s3cret-pass", name).id


def make_application(company_id, name="Web App"):
    """Call inside an app context. Bypasses the plan guard."""
    application = Application(company_id=company_id, name=name)
    db.session.add(application)
    db.session.commit()
    return application.id


def get_company(company_id):
    return db.session.get(Company, company_id)
