"""Request-scoped dependencies: caller identity and settings."""

from fastapi import Header, Request

from bakery.access import Actor
from bakery.errors import AuthenticationError
from bakery.settings import BakerySettings


def current_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    """Identity verified upstream and forwarded as ``X-User-Id`` / ``X-User-Role``."""
    if not x_user_id or not x_user_role:
        raise AuthenticationError("Missing identity headers")
    return Actor.of(x_user_id, x_user_role)


def get_settings(request: Request) -> BakerySettings:
    return getattr(request.app.state, "settings", None) or BakerySettings()
