"""
Caller identity for Admit.

Resolves a bearer access token to the verified user id and email through
the Supabase auth API. Invitation redemption trusts only these values,
never an email supplied in a request body.

Wraps: supabase_auth._async.gotrue_client.AsyncGoTrueClient.get_user
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel
from supabase_auth.errors import AuthError

from ..exceptions import DatabaseError, UnauthorizedError
from ..utils.tokens import normalize_email

if TYPE_CHECKING:
    from ..utils.supabase import AdmitSupabaseClient

logger = logging.getLogger(__name__)


class Identity(BaseModel):
    """Verified caller: user id and email from the identity provider."""

    user_id: UUID
    email: Optional[str] = None


class IdentityProvider:
    """
    Verifies access tokens against Supabase auth.

    Example:
        ```python
        identity = await admit.identity.verify(access_token)
        print(identity.user_id, identity.email)
        ```
    """

    def __init__(self, client: "AdmitSupabaseClient") -> None:
        self.client = client

    async def verify(self, token: Optional[str]) -> Identity:
        """
        Resolve an access token to the caller's identity.

        Args:
            token: JWT access token

        Returns:
            Identity with the normalized email

        Raises:
            UnauthorizedError: If the token is missing, invalid or expired
            DatabaseError: If the auth API does not answer in time (retryable)
        """
        if not token:
            raise UnauthorizedError("Not authenticated")

        timeout = self.client.config.request_timeout_seconds
        try:
            response = await asyncio.wait_for(self.client.auth.get_user(token), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Auth API call exceeded %.1fs", timeout)
            raise DatabaseError("Identity provider timed out", code="timeout")
        except AuthError as e:
            logger.debug("Access token rejected: %s", e)
            raise UnauthorizedError("Invalid or expired token")

        if response is None or response.user is None:
            raise UnauthorizedError("Invalid or expired token")

        user = response.user
        return Identity(user_id=UUID(str(user.id)), email=normalize_email(user.email) or None)
