from datetime import datetime

import click
from flask.cli import with_appcontext

from upvote.billing.plans import Plan, SubscriptionStatus
from upvote.extensions import db
from upvote.models import Application, Company, Feedback, Subscription
from upvote.services import accounts, subscriptions
from upvote.services.feedback import create_feedback

DEMO_EMAIL = "demo@upvote.test"
DEMO_FEEDBACK = (
    ("Add dark mode", "A dark theme for the dashboard and the widget.", ["UI", "Design"]),
    ("Slack integration", "Post new feedback to a Slack channel.", ["Integrations"]),
    ("Export to CSV", "Download all feedback with votes as CSV.", ["Data"]),
)


@click.group()
def subscriptions_cli():
    """Subscription maintenance."""


@subscriptions_cli.command("backfill")
@with_appcontext
def subscriptions_backfill():
    """Give every company without a subscription a FREE/ACTIVE one."""
    missing = (
        db.session.query(Company)
        .outerjoin(Subscription, Subscription.company_id == Company.id)
        .filter(Subscription.id.is_(None))
        .all()
    )
    for company in missing:
        db.session.add(Subscription(
            company_id=company.id,
            plan=Plan.FREE.value,
            status=SubscriptionStatus.ACTIVE.value,
        ))
        click.echo(f"Created FREE subscription for {company.email}")
    db.session.commit()

    total = db.session.query(Company).count()
    click.echo(f"Backfill complete: created={len(missing)} companies={total}")


@click.group()
def usage():
    """Usage counters."""


@usage.command("reset")
@click.option("--company-id", required=True)
@click.option("--start", "start", type=click.DateTime(formats=["%Y-%m-%d"]), required=True)
@click.option("--end", "end", type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]), required=True)
@with_appcontext
def usage_reset(company_id, start: datetime, end: datetime):
    if db.session.get(Company, company_id) is None:
        raise click.ClickException(f"Company id {company_id} not found")
    if end <= start:
        raise click.ClickException("--end must be after --start")

    row = subscriptions.reset_usage_for_period(company_id, start, end)
    click.echo(f"Usage reset company_id={company_id} period_start={row.period_start.isoformat()}")


@click.group()
def seed():
    """Sample data for local development."""


@seed.command("demo")
@click.option("--password", default="password123", show_default=True)
@with_appcontext
def seed_demo(password):
    company = accounts.find_by_email(DEMO_EMAIL)
    if company is None:
        company = accounts.register_company(DEMO_EMAIL, password, "Demo Company")

    application = Application.query.filter_by(company_id=company.id).first()
    if application is None:
        application = Application(company_id=company.id, name="Demo App")
        db.session.add(application)
        db.session.commit()
        subscriptions.increment_project_count(company.id)

    if not Feedback.query.filter_by(application_id=application.id).count():
        for title, description, tags in DEMO_FEEDBACK:
            create_feedback(application.id, "demo-user", title, description=description, tags=tags)
            subscriptions.increment_feedback_count(company.id)

    click.echo(f"Seeded company_id={company.id} application_id={application.id} email={DEMO_EMAIL}")


def register_cli(app):
    app.cli.add_command(subscriptions_cli, name="subscriptions")
    app.cli.add_command(usage)
    app.cli.add_command(seed)
