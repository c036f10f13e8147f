from upvote.extensions import db
from upvote.models import Application, Company, Feedback, Subscription, UsageMetrics


def test_subscriptions_backfill(app):
    with app.app_context():
        db.session.add(Company(email="legacy@corp.test", name="Legacy"))
        db.session.commit()

    result = app.test_cli_runner().invoke(args=["subscriptions", "backfill"])
    assert result.exit_code == 0
    assert "created=1" in result.output

    with app.app_context():
        assert Subscription.query.count() == 1


def test_usage_reset(app, company_id):
    runner = app.test_cli_runner()
    args = ["usage", "reset", "--company-id", company_id, "--start", "2024-03-01", "--end", "2024-03-31T23:59:59"]
    result = runner.invoke(args=args)
    assert result.exit_code == 0, result.output

    with app.app_context():
        row = UsageMetrics.query.filter_by(company_id=company_id).one()
        assert row.feedback_count == 0

    bad = runner.invoke(args=["usage", "reset", "--company-id", "missing", "--start", "2024-03-01", "--end", "2024-03-31"])
    assert bad.exit_code != 0


def test_seed_demo_is_idempotent(app):
    runner = app.test_cli_runner()
    assert runner.invoke(args=["seed", "demo"]).exit_code == 0
    assert runner.invoke(args=["seed", "demo"]).exit_code == 0

    with app.app_context():
        assert Company.query.count() == 1
        assert Application.query.count() == 1
        assert Feedback.query.count() == 3
