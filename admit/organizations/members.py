"""
Membership store for Admit.

Read access to organization_members. Rows are inserted only by the
admit_accept_invitation database function, inside the same transaction
that closes the invitation.
"""

from typing import TYPE_CHECKING, Iterable, Optional, Set
from uuid import UUID

from ..exceptions import ForbiddenError
from ..utils.tokens import normalize_email
from .models import MemberRole, Membership

if TYPE_CHECKING:
    from ..utils.supabase import AdmitSupabaseClient

MEMBERS_TABLE = "organization_members"
MEMBER_EMAILS_VIEW = "organization_member_emails"

MEMBER_COLUMNS = "organization_id, user_id, role, joined_at"


class MembershipStore:
    """
    Repository for organization memberships.

    Works directly with the organization_members table via PostgREST. The
    (organization_id, user_id) pair is unique, so every lookup returns at
    most one row.

    Example:
        ```python
        membership = await admit.memberships.get(org_id, user_id)
        if membership and membership.can_manage_invitations:
            ...
        ```
    """

    def __init__(self, client: "AdmitSupabaseClient") -> None:
        """
        Initialize MembershipStore.

        Args:
            client: Admit Supabase client
        """
        self.client = client

    async def get(
        self,
        organization_id: UUID,
        user_id: UUID,
    ) -> Optional[Membership]:
        """
        Get a user's membership in a specific organization.

        Args:
            organization_id: Organization UUID
            user_id: User UUID

        Returns:
            Membership if found, None otherwise
        """
        result = await self.client.execute(
            self.client.table(MEMBERS_TABLE)
            .select(MEMBER_COLUMNS)
            .eq("organization_id", str(organization_id))
            .eq("user_id", str(user_id))
            .limit(1)
        )

        if not result.data:
            return None

        return Membership(**result.data[0])

    async def exists(self, organization_id: UUID, user_id: UUID) -> bool:
        """Check whether the user belongs to the organization."""
        return await self.get(organization_id, user_id) is not None

    async def exists_by_email(self, organization_id: UUID, email: str) -> bool:
        """
        Check whether any member of the organization has the given email.

        Memberships store user ids only; the organization_member_emails view
        joins them with the identity provider's user table.

        Args:
            organization_id: Organization UUID
            email: Email address (normalized before comparison)

        Returns:
            True if a member with that email exists
        """
        result = await self.client.execute(
            self.client.table(MEMBER_EMAILS_VIEW)
            .select("user_id")
            .eq("organization_id", str(organization_id))
            .eq("email", normalize_email(email))
            .limit(1)
        )
        return bool(result.data)

    async def organization_ids_for_user(self, user_id: UUID) -> Set[UUID]:
        """
        List the organizations a user belongs to.

        Args:
            user_id: User UUID

        Returns:
            Set of organization UUIDs
        """
        result = await self.client.execute(
            self.client.table(MEMBERS_TABLE)
            .select("organization_id")
            .eq("user_id", str(user_id))
        )
        return {UUID(row["organization_id"]) for row in result.data or []}

    async def require(
        self,
        organization_id: UUID,
        user_id: UUID,
        roles: Optional[Iterable[MemberRole]] = None,
    ) -> Membership:
        """
        Fetch the caller's membership and check its role.

        Args:
            organization_id: Organization UUID
            user_id: Caller's user UUID
            roles: Accepted roles; any role when omitted

        Returns:
            The caller's Membership

        Raises:
            ForbiddenError: If the caller is not a member or holds another role
        """
        membership = await self.get(organization_id, user_id)

        if membership is None:
            raise ForbiddenError(
                "Not a member of this organization", code="not_a_member"
            )

        if roles is not None and membership.role not in set(roles):
            raise ForbiddenError(
                "Insufficient permissions for this organization",
                code="insufficient_role",
            )

        return membership
