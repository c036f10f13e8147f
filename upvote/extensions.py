from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf import CSRFProtect
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_mail import Mail
from flask_talisman import Talisman

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
login_manager = LoginManager()
mail = Mail()

# Initialized only in staging/production (see security.headers.init_security);
# per-view overrides via @talisman(...) are inert until then.
talisman = Talisman()


def _rate_limit_key():
    # Key: logged-in company id; otherwise client IP
    try:
        from flask_login import current_user
        if getattr(current_user, "is_authenticated", False) and getattr(current_user, "id", None):
            return f"company:{current_user.id}"
    except Exception:
        pass
    return get_remote_address()

# Storage is configured in create_app() via limiter.init_app(...).
limiter = Limiter(key_func=_rate_limit_key)
