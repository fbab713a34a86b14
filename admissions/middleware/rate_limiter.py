"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter instance
is created in admissions/__init__.py with no default limits; this module
applies limits per route category once the blueprints are registered.

Usage:
    from admissions.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

AUTH_LIMIT = "10/minute"
APPLICATION_LIMIT = "120/minute"
ADMIN_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Auth endpoints:         10/minute  (credential guessing)
        - Application endpoints:  120/minute (autosave from the form)
        - Admin endpoints:        200/minute
        - Health check:           exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("auth_bp")
    if bp:
        limiter.limit(AUTH_LIMIT)(bp)

    bp = app.blueprints.get("application_bp")
    if bp:
        limiter.limit(APPLICATION_LIMIT)(bp)

    bp = app.blueprints.get("admin_bp")
    if bp:
        limiter.limit(ADMIN_LIMIT)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: auth: %s, applications: %s, admin: %s",
        AUTH_LIMIT, APPLICATION_LIMIT, ADMIN_LIMIT,
    )
