"""
Main Admit client.

This is the primary interface users interact with.
"""

from typing import Optional

from .auth import IdentityProvider
from .config import AdmitConfig, load_config
from .invitations import InvitationManager
from .organizations import MembershipStore, OrganizationStore
from .utils.logs import configure_logging
from .utils.supabase import AdmitSupabaseClient


class Admit:
    """
    Main Admit client for organization invitations.

    Gives access to organizations, memberships, invitations and caller
    identity, all backed by one Supabase client.

    Example:
        ```python
        from admit import Admit

        # Initialize from environment variables
        admit = await Admit.create()

        # Or with explicit config
        admit = await Admit.create(
            supabase_url="https://xxx.supabase.co",
            supabase_key="your-service-key",
            invitation_ttl_days=3,
        )

        invite = await admit.invites.invite(org_id, admin_id, "new@example.com")
        ```
    """

    def __init__(self, config: AdmitConfig, client: AdmitSupabaseClient) -> None:
        """
        Initialize Admit client.

        Args:
            config: Admit configuration
            client: Supabase client wrapper

        Note:
            Use Admit.create() instead of direct instantiation.
        """
        self.config = config
        self.client = client

        self.identity = IdentityProvider(client)
        self.orgs = OrganizationStore(client)
        self.memberships = MembershipStore(client)
        self.invites = InvitationManager(self)

    @classmethod
    async def create(
        cls,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        **kwargs,
    ) -> "Admit":
        """
        Create and initialize an Admit client.

        Args:
            supabase_url: Supabase project URL (optional, loads from env)
            supabase_key: Supabase service role key (optional, loads from env)
            **kwargs: Additional configuration options

        Returns:
            Initialized Admit client

        Raises:
            pydantic.ValidationError: If required configuration is missing or invalid
        """
        config_kwargs = kwargs.copy()
        if supabase_url:
            config_kwargs["supabase_url"] = supabase_url
        if supabase_key:
            config_kwargs["supabase_key"] = supabase_key

        config = load_config(**config_kwargs)
        configure_logging(config)

        client = await AdmitSupabaseClient.create(config)

        return cls(config=config, client=client)

    async def close(self) -> None:
        """
        Close the Admit client and cleanup resources.

        Example:
            ```python
            admit = await Admit.create()
            try:
                ...
            finally:
                await admit.close()
            ```
        """
        await self.client.close()

    async def __aenter__(self) -> "Admit":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
