from upvote.models import Company, Subscription


def _signup(client, **overrides):
    payload = {"email": "new@startup.test", "password": "longenough", "name": "Startup"}
    payload.update(overrides)
    return client.post("/api/auth/signup", json=payload)


def test_signup_creates_company_on_free_plan(app, client):
    resp = _signup(client)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["message"] == "Company registered successfully"
    assert body["company"]["email"] == "new@startup.test"
    assert "password_hash" not in body["company"]

    with app.app_context():
        company = Company.query.filter_by(email="new@startup.test").one()
        sub = Subscription.query.filter_by(company_id=company.id).one()
        assert (sub.plan, sub.status) == ("FREE", "ACTIVE")


def test_signup_validation(client):
    assert _signup(client, name="").status_code == 400
    assert _signup(client, password="short").get_json()["error"] == "Password must be at least 8 characters"
    assert _signup(client, email="not-an-email").status_code == 400


def test_signup_duplicate_email(client):
    assert _signup(client).status_code == 201
    resp = _signup(client, email="NEW@startup.test")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Email already registered"


def test_login_session_logout(client, company_id):
    assert client.get("/api/auth/session").status_code == 401

    bad = client.post("/api/auth/login", json={"email": "owner@acme.test", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.get_json() == {"error": "Invalid credentials"}

    ok = client.post("/api/auth/login", json={"email": "owner@acme.test", "password": "s3cret-pass"})
    assert ok.status_code == 200

    session = client.get("/api/auth/session").get_json()
    assert session["user"] == {"id": company_id, "email": "owner@acme.test", "name": "Acme"}

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/session").status_code == 401


def test_login_requires_fields(client):
    assert client.post("/api/auth/login", json={"email": "owner@acme.test"}).status_code == 400


def test_csrf_token_endpoint(client):
    body = client.get("/api/auth/csrf").get_json()
    assert body["csrfToken"]


def test_healthz_and_json_404(client):
    assert client.get("/healthz").get_json() == {"status": "ok"}
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Not Found"}
