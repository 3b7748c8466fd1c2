"""Bearer token verification backed by Supabase Auth."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

import httpx
from supabase import AuthError, Client

from diet_tracker.errors import UnauthenticatedError, UpstreamUnavailableError

_logger = logging.getLogger(__name__)


class IdentityVerifier(Protocol):
    """Interface that turns an access token into an owner id."""

    def verify(self, token: str) -> UUID:
        """Return the owner id for a valid token or raise UnauthenticatedError."""


@dataclass
class SupabaseIdentityVerifier(IdentityVerifier):
    """Verify Supabase-issued JWTs through the Auth API."""

    client: Client

    def verify(self, token: str) -> UUID:
        """Resolve the user behind an access token."""
        if not token:
            raise UnauthenticatedError()
        try:
            response = self.client.auth.get_user(token)
        except AuthError as exc:
            _logger.info("Rejected access token: %s", exc)
            raise UnauthenticatedError() from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError("Identity service unavailable") from exc
        if response is None or response.user is None:
            raise UnauthenticatedError()
        return UUID(str(response.user.id))
