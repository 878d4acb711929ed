"""
Per-blueprint rate limits (Flask-Limiter).

The Limiter in app/__init__.py has no default limit; each API blueprint
gets its own limit here, keyed by remote address. Health probes are exempt.
"""

import logging

logger = logging.getLogger(__name__)

# blueprint name -> config key holding its limit string
BLUEPRINT_LIMITS = {
    "project": "RATELIMIT_PROJECT",
    "coverage": "RATELIMIT_COVERAGE",
}
EXEMPT_BLUEPRINTS = ("health_bp",)


def init_rate_limits(app, limiter):
    """Apply limits; must run after blueprints are registered. No-op when disabled."""
    if not app.config.get("RATELIMIT_ENABLED", True):
        logger.debug("Rate limiting disabled")
        return

    applied = {}
    for bp_name, config_key in BLUEPRINT_LIMITS.items():
        bp = app.blueprints.get(bp_name)
        limit = app.config.get(config_key)
        if bp is not None and limit:
            limiter.limit(limit)(bp)
            applied[bp_name] = limit

    for bp_name in EXEMPT_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp is not None:
            limiter.exempt(bp)

    logger.info("Rate limits applied: %s", applied)
