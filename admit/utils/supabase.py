"""
Supabase client wrapper for Admit.

Provides a thin wrapper around the Supabase AsyncClient with Admit-specific
configuration, plus a single ``execute`` entry point that bounds every
datastore round-trip and translates PostgREST errors into Admit errors.

Source references:
- supabase._async.client.AsyncClient: supabase/_async/client.py
- postgrest.exceptions.APIError: postgrest/exceptions.py
"""

import asyncio
import logging
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions
from supabase_auth import AsyncMemoryStorage

from ..config import AdmitConfig
from ..exceptions import ConflictError, DatabaseError

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class AdmitSupabaseClient:
    """
    Wrapper around Supabase AsyncClient with Admit-specific configuration.

    This class provides:
    1. Configured client with service role key
    2. Access to the auth API (identity provider)
    3. Query builders for the invitation and membership tables
    4. Bounded, error-translating execution of queries and RPC calls

    Example:
        ```python
        from admit.utils.supabase import AdmitSupabaseClient
        from admit.config import AdmitConfig

        config = AdmitConfig()
        client = await AdmitSupabaseClient.create(config)

        query = client.table("organization_invitations").select("*").eq("token", token)
        result = await client.execute(query)
        ```
    """

    def __init__(self, config: AdmitConfig, client: AsyncClient) -> None:
        """
        Initialize the Admit Supabase client.

        Args:
            config: Admit configuration
            client: Initialized Supabase AsyncClient

        Note:
            Use AdmitSupabaseClient.create() instead of direct instantiation.
        """
        self.config = config
        self._client = client

    @classmethod
    async def create(cls, config: AdmitConfig) -> "AdmitSupabaseClient":
        """
        Create and initialize an AdmitSupabaseClient.

        Wraps: supabase._async.client.acreate_client

        Args:
            config: Admit configuration with Supabase credentials

        Returns:
            Initialized AdmitSupabaseClient
        """
        options = AsyncClientOptions(
            schema=config.db_schema,
            storage=AsyncMemoryStorage(),
        )

        client = await acreate_client(
            supabase_url=config.supabase_url,
            supabase_key=config.supabase_key,
            options=options,
        )

        return cls(config=config, client=client)

    @property
    def auth(self):
        """
        Access Supabase Auth client.

        Used only to verify bearer tokens (``auth.get_user``).
        """
        return self._client.auth

    def table(self, table_name: str):
        """
        Create a query builder for a specific table or view.

        Wraps: supabase._async.client.AsyncClient.table

        Args:
            table_name: Name of the table (e.g., "organization_invitations")

        Returns:
            AsyncRequestBuilder for chaining queries
        """
        return self._client.table(table_name)

    def rpc(self, fn: str, params: Optional[dict] = None):
        """
        Create a call to a PostgreSQL function.

        Each call runs inside a single database transaction.

        Args:
            fn: Function name (e.g., "admit_accept_invitation")
            params: Named function arguments

        Returns:
            Request builder; pass it to ``execute``
        """
        return self._client.rpc(fn, params or {})

    async def execute(self, query: Any) -> Any:
        """
        Execute a query builder with the configured timeout.

        Args:
            query: A PostgREST request builder

        Returns:
            The PostgREST APIResponse (``.data`` and ``.count``)

        Raises:
            ConflictError: On a unique constraint violation
            DatabaseError: On any other datastore failure or a timeout
        """
        try:
            return await asyncio.wait_for(
                query.execute(),
                timeout=self.config.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Datastore call exceeded %.1fs", self.config.request_timeout_seconds
            )
            raise DatabaseError("Datastore request timed out", code="timeout")
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError(e.message or "Unique constraint violated", code="unique_violation")
            logger.error("Datastore error %s: %s", e.code, e.message)
            raise DatabaseError(e.message or "Datastore request failed", pg_code=e.code)

    async def close(self) -> None:
        """
        Close the client and cleanup resources.

        Supabase's AsyncClient holds no pooled connection to release.
        """
