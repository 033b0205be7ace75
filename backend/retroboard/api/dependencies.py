"""Request Dependencies — identity resolution, admin secret and event publisher.

Invariants:
    - The user hash is SHA-256 of the session cookie; the raw cookie is never stored
    - A caller without a cookie gets a fresh random one on the same response
    - X-Admin-Secret is compared in constant time

Design Decisions:
    - Identity is resolved per request and handed to services as a frozen value,
      services never look at the HTTP request
"""

import hashlib
import hmac
import secrets

from fastapi import Depends, Header, Request, Response

from retroboard.config import Settings, get_settings
from retroboard.core.boundary_protocols import EventPublisher
from retroboard.core.domain_types import Identity, UserHash
from retroboard.core.errors import UnauthorizedError
from retroboard.infrastructure.event_publisher import event_publisher


def hash_session_id(session_id: str) -> UserHash:
    return UserHash(hashlib.sha256(session_id.encode()).hexdigest())


def admin_secret_matches(provided: str | None, settings: Settings) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode(), settings.admin_secret_key.encode())


async def get_identity(
    request: Request,
    response: Response,
    x_admin_secret: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> Identity:
    """Resolve the caller, issuing a session cookie on first contact."""
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
        response.set_cookie(
            settings.session_cookie_name,
            session_id,
            max_age=settings.session_cookie_max_age_days * 24 * 3600,
            httponly=True,
            secure=settings.session_cookie_secure,
            samesite="lax",
        )
    return Identity(
        user_hash=hash_session_id(session_id),
        is_admin_override=admin_secret_matches(x_admin_secret, settings),
    )


async def require_admin_secret(
    x_admin_secret: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not admin_secret_matches(x_admin_secret, settings):
        raise UnauthorizedError()


def get_publisher() -> EventPublisher:
    return event_publisher
