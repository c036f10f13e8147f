from flask_login import login_user

from upvote.security.principal import Principal, company_required, current_principal

from conftest import get_company


@company_required
def _view(principal):
    return principal


def test_anonymous_request_is_unauthorized(app):
    with app.test_request_context("/"):
        assert current_principal() is None
        resp, status = _view()
        assert status == 401
        assert resp.get_json() == {"error": "Unauthorized"}


def test_principal_passed_to_view(app, company_id):
    with app.test_request_context("/"):
        login_user(get_company(company_id))
        principal = _view()
        assert principal == Principal(company_id=company_id, email="owner@acme.test", name="Acme")
