"""Request dependencies shared by the routers."""

from uuid import UUID

from fastapi import Depends, Header, Request

from diet_tracker.containers import AppContainer
from diet_tracker.errors import UnauthenticatedError

_BEARER_PREFIX = "bearer "


def get_container(request: Request) -> AppContainer:
    """Return the container attached to the running app."""
    return request.app.state.container


async def require_owner(
    authorization: str | None = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> UUID:
    """Resolve the caller's owner id from a bearer token."""
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        raise UnauthenticatedError()
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return container.identity_verifier.verify(token)
