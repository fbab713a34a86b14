"""
JWT Auth Middleware — parses the Bearer token, sets g.jwt_*.

Never rejects a request by itself: an absent, expired or invalid token just
leaves ``g.jwt_user_id`` as None and the ``require_auth`` decorator decides.
"""

import logging

import jwt as pyjwt
from flask import g, request

from admissions.services.jwt_service import decode_token, user_id_from_payload

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/auth/register",
    "/api/v1/admin/auth/login",
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_role = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]

        try:
            payload = decode_token(token)
            g.jwt_user_id = user_id_from_payload(payload)
            g.jwt_role = payload.get("role")
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token expired"
        except pyjwt.InvalidTokenError:
            g.jwt_error = "Invalid token"
            logger.debug("Invalid bearer token on %s", path)
