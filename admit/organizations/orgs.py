"""
Organization lookup for Admit.

Organizations are created and deleted by the host application; Admit only
reads the summary shown on invitation pages.
"""

from typing import TYPE_CHECKING, Dict, Iterable, Optional
from uuid import UUID

from .models import Organization

if TYPE_CHECKING:
    from ..utils.supabase import AdmitSupabaseClient

ORGANIZATIONS_TABLE = "organizations"

ORGANIZATION_COLUMNS = "id, name, description, created_by"


class OrganizationStore:
    """
    Read-only repository for the organizations table.

    Example:
        ```python
        org = await admit.orgs.get(org_id)
        if org:
            print(f"Found: {org.name}")
        ```
    """

    def __init__(self, client: "AdmitSupabaseClient") -> None:
        """
        Initialize OrganizationStore.

        Args:
            client: Admit Supabase client
        """
        self.client = client

    async def get(self, organization_id: UUID) -> Optional[Organization]:
        """
        Get an organization by ID.

        Args:
            organization_id: Organization UUID

        Returns:
            Organization if found, None otherwise
        """
        result = await self.client.execute(
            self.client.table(ORGANIZATIONS_TABLE)
            .select(ORGANIZATION_COLUMNS)
            .eq("id", str(organization_id))
            .limit(1)
        )

        if not result.data:
            return None

        return Organization(**result.data[0])

    async def get_many(self, organization_ids: Iterable[UUID]) -> Dict[UUID, Organization]:
        """
        Get several organizations in one round-trip.

        Args:
            organization_ids: Organization UUIDs

        Returns:
            Mapping of id to Organization; unknown ids are omitted
        """
        ids = sorted({str(org_id) for org_id in organization_ids})
        if not ids:
            return {}

        result = await self.client.execute(
            self.client.table(ORGANIZATIONS_TABLE)
            .select(ORGANIZATION_COLUMNS)
            .in_("id", ids)
        )
        orgs = [Organization(**row) for row in result.data or []]
        return {org.id: org for org in orgs}
