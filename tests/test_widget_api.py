from datetime import timedelta

from upvote.extensions import db
from upvote.models import Feedback, Tag, Vote
from upvote.services import subscriptions
from upvote.utils.helpers import utcnow

from conftest import make_application


def _fill_usage(company_id, count):
    usage = subscriptions.get_or_create_usage_metrics(company_id)
    usage.feedback_count = count
    db.session.commit()


def test_list_requires_application_id(client):
    resp = client.get("/api/widget/feedback")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "applicationId is required"}


def test_list_unknown_application(client):
    assert client.get("/api/widget/feedback?applicationId=nope").status_code == 404


def test_submit_feedback_at_limit_boundary(app, client, company_id):
    with app.app_context():
        app_id = make_application(company_id)
        _fill_usage(company_id, 49)

    payload = {
        "applicationId": app_id,
        "userId": "end-user-1",
        "title": "Add dark mode",
        "description": "Please",
        "tags": ["UI"],
    }
    resp = client.post("/api/widget/feedback", json=payload)
    assert resp.status_code == 201
    item = resp.get_json()["feedback"]
    assert item["title"] == "Add dark mode"
    assert item["tags"] == ["UI"]
    assert item["voteCount"] == 0
    assert item["isAuthor"] is True
    assert item["hasVoted"] is False
    assert item["userVoteType"] is None
    assert item["status"] == "Open"

    with app.app_context():
        assert subscriptions.get_current_usage(company_id)["feedbacks"]["current"] == 50

    # The 51st submission this month is refused
    resp = client.post("/api/widget/feedback", json={**payload, "title": "Another"})
    assert resp.status_code == 403
    body = resp.get_json()
    assert body["limitType"] == "feedbacks"
    assert body["error"] == "You have used 50/50 feedbacks this month. Upgrade to Pro for unlimited feedback."

    with app.app_context():
        assert Feedback.query.filter_by(application_id=app_id).count() == 1


def test_submit_validation(app, client, company_id):
    with app.app_context():
        app_id = make_application(company_id)

    assert client.post("/api/widget/feedback", json={"applicationId": app_id, "userId": "u"}).status_code == 400
    resp = client.post(
        "/api/widget/feedback",
        json={"applicationId": app_id, "userId": "u", "title": "T", "tags": "UI"},
    )
    assert resp.status_code == 400
    resp = client.post("/api/widget/feedback", json={"applicationId": "nope", "userId": "u", "title": "T"})
    assert resp.status_code == 404


def test_list_pagination_and_viewer_flags(app, client, company_id):
    now = utcnow()
    with app.app_context():
        app_id = make_application(company_id)
        ids = []
        for i in range(3):
            fb = Feedback(application_id=app_id, user_id="author", title=f"Idea {i}", created_at=now - timedelta(minutes=i))
            fb.tags = [Tag(name="UI")]
            db.session.add(fb)
            db.session.commit()
            ids.append(fb.id)
        db.session.add(Vote(application_id=app_id, feedback_id=ids[1], user_id="viewer"))
        db.session.commit()

    resp = client.get(f"/api/widget/feedback?applicationId={app_id}&userId=viewer&limit=2")
    body = resp.get_json()
    assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "hasMore": True}
    assert [f["id"] for f in body["feedback"]] == ids[:2]
    assert body["feedback"][0]["hasVoted"] is False
    assert body["feedback"][1]["hasVoted"] is True
    assert body["feedback"][1]["userVoteType"] == "UPVOTE"
    assert body["feedback"][0]["isAuthor"] is False

    page2 = client.get(f"/api/widget/feedback?applicationId={app_id}&userId=author&limit=2&page=2").get_json()
    assert page2["meta"]["hasMore"] is False
    assert [f["id"] for f in page2["feedback"]] == ids[2:]
    assert page2["feedback"][0]["isAuthor"] is True

    top = client.get(f"/api/widget/feedback?applicationId={app_id}&sort=upvotes").get_json()
    assert top["feedback"][0]["id"] == ids[1]


def test_list_clamps_paging(app, client, company_id):
    with app.app_context():
        app_id = make_application(company_id)
    meta = client.get(f"/api/widget/feedback?applicationId={app_id}&page=0&limit=1000").get_json()["meta"]
    assert meta["page"] == 1
    assert meta["limit"] == 100


def test_widget_page_renders(client):
    resp = client.get("/widget?applicationId=abc&userId=u1&theme=dark")
    assert resp.status_code == 200
    html = resp.get_data(as_text=True)
    assert 'data-application-id="abc"' in html
    assert 'data-theme="dark"' in html
    assert "widget-frame.js" in html


def test_user_id_kept_exactly_as_sent(app, client, company_id):
    with app.app_context():
        app_id = make_application(company_id)

    user_id = "  user  42 "
    resp = client.post("/api/widget/feedback", json={"applicationId": app_id, "userId": user_id, "title": "Export"})
    assert resp.status_code == 201
    fid = resp.get_json()["feedback"]["id"]
    vote = client.post(
        "/api/widget/vote",
        json={"applicationId": app_id, "feedbackId": fid, "userId": user_id, "voteType": "UPVOTE"},
    )
    assert vote.status_code == 200

    with app.app_context():
        assert db.session.get(Feedback, fid).user_id == user_id
        assert Vote.query.filter_by(feedback_id=fid).one().user_id == user_id

    item = client.get("/api/widget/feedback", query_string={"applicationId": app_id, "userId": user_id}).get_json()["feedback"][0]
    assert item["isAuthor"] is True
    assert item["hasVoted"] is True
    assert item["userVoteType"] == "UPVOTE"

    # A differently spaced id is a different end user
    other = client.get("/api/widget/feedback", query_string={"applicationId": app_id, "userId": "user 42"}).get_json()["feedback"][0]
    assert other["isAuthor"] is False
    assert other["hasVoted"] is False


def test_overlong_user_id_rejected(app, client, company_id):
    with app.app_context():
        app_id = make_application(company_id)

    long_id = "u" * 256
    expected = {"error": "userId must be at most 255 characters"}

    resp = client.post("/api/widget/feedback", json={"applicationId": app_id, "userId": long_id, "title": "T"})
    assert resp.status_code == 400
    assert resp.get_json() == expected

    resp = client.get("/api/widget/feedback", query_string={"applicationId": app_id, "userId": long_id})
    assert resp.status_code == 400
    assert resp.get_json() == expected

    resp = client.post("/api/widget/vote", json={"applicationId": app_id, "feedbackId": "x", "userId": long_id, "voteType": "UPVOTE"})
    assert resp.status_code == 400
    assert resp.get_json() == expected

    with app.app_context():
        assert Feedback.query.count() == 0

    ok = client.post("/api/widget/feedback", json={"applicationId": app_id, "userId": "u" * 255, "title": "T"})
    assert ok.status_code == 201
