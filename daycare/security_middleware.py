"""
Row-level security context and security response headers.

Request-scoped sessions acting for a signed-in user carry the user's id in the
``app.current_user_id`` setting, which the policies in
migrations/001_row_level_security.sql read to filter rows.
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"


def set_rls_context(db: Session, user_id: str) -> None:
    """
    Set the RLS context for a database session.

    Only Postgres understands ``set_config``; other dialects (SQLite in tests)
    have no row-level security and are left untouched.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    try:
        db.execute(
            text("SELECT set_config('app.current_user_id', :user_id, false)"),
            {"user_id": str(user_id)},
        )
        logger.debug(f"RLS context set for user_id={user_id}")
    except Exception as e:
        logger.error(f"❌ Failed to set RLS context for user_id={user_id}: {e}")
        raise


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to every API response.

    - X-Frame-Options: DENY
    - X-Content-Type-Options: nosniff
    - Referrer-Policy: strict-origin-when-cross-origin
    - Strict-Transport-Security (production only)
    - Cache-Control: no-store unless the route set its own
    """

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Responses carry per-user data
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"

        return response
