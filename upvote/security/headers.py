from upvote.extensions import talisman

# Base policy for the dashboard and API
CSP = {
    "default-src": ["'self'"],
    "script-src":  ["'self'", "https://js.stripe.com"],
    "style-src":   ["'self'", "'unsafe-inline'"],
    "img-src":     ["'self'", "data:", "blob:"],
    "font-src":    ["'self'", "data:"],
    "connect-src": ["'self'", "https://api.stripe.com"],
    "frame-src":   ["'self'", "https://js.stripe.com", "https://checkout.stripe.com"],
    "frame-ancestors": ["'self'"],
    "base-uri":    ["'self'"],
    "form-action": ["'self'"],
}

# The hosted widget page is framed by customer sites
WIDGET_CSP = {
    **CSP,
    "frame-ancestors": ["*"],
}


def init_security(app):
    """
    Production/staging security headers with a conservative CSP.
    Keep inline JS out of templates to avoid 'unsafe-inline'.
    """
    talisman.init_app(
        app,
        content_security_policy=CSP,
        force_https=True,
        strict_transport_security=True,
        session_cookie_secure=True,
        frame_options="SAMEORIGIN",
        referrer_policy="strict-origin-when-cross-origin",
    )
