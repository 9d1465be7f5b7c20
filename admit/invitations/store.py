"""
Invitation store for Admit.

Repository over the organization_invitations table. Every status change is
a conditional update guarded by ``status = 'pending'``, so two writers
racing on the same invitation can never both succeed.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from ..exceptions import ConflictError, DatabaseError
from ..organizations.models import MemberRole
from .models import Invitation, InvitationStatus

if TYPE_CHECKING:
    from ..utils.supabase import AdmitSupabaseClient

logger = logging.getLogger(__name__)

INVITATIONS_TABLE = "organization_invitations"
ACCEPT_FUNCTION = "admit_accept_invitation"

# Raised by admit_accept_invitation when the row is no longer pending
NOT_PENDING_SQLSTATE = "AD001"


class InvitationStore:
    """
    Repository for organization invitations.

    Example:
        ```python
        invitation = await store.get_by_token(token)
        closed = await store.transition(
            invitation.id, InvitationStatus.CANCELLED
        )
        if closed is None:
            # Someone else moved it out of pending first
            ...
        ```
    """

    def __init__(self, client: "AdmitSupabaseClient") -> None:
        """
        Initialize InvitationStore.

        Args:
            client: Admit Supabase client
        """
        self.client = client

    def _query(self):
        return self.client.table(INVITATIONS_TABLE)

    async def _one(self, query) -> Optional[Invitation]:
        result = await self.client.execute(query.limit(1))
        if not result.data:
            return None
        return Invitation(**result.data[0])

    async def get(self, invitation_id: UUID) -> Optional[Invitation]:
        """
        Get an invitation by ID.

        Args:
            invitation_id: Invitation UUID

        Returns:
            Invitation or None if not found
        """
        return await self._one(self._query().select("*").eq("id", str(invitation_id)))

    async def get_by_token(self, token: str) -> Optional[Invitation]:
        """
        Get an invitation by its token.

        Args:
            token: Invitation token

        Returns:
            Invitation or None if not found
        """
        if not token:
            return None
        return await self._one(self._query().select("*").eq("token", token))

    async def get_in_organization(
        self,
        organization_id: UUID,
        invitation_id: UUID,
    ) -> Optional[Invitation]:
        """Get an invitation only if it belongs to the organization."""
        return await self._one(
            self._query()
            .select("*")
            .eq("id", str(invitation_id))
            .eq("organization_id", str(organization_id))
        )

    async def get_pending(self, organization_id: UUID, email: str) -> Optional[Invitation]:
        """
        Get the pending invitation for an (organization, email) pair.

        Args:
            organization_id: Organization UUID
            email: Normalized email address

        Returns:
            The pending Invitation or None
        """
        return await self._one(
            self._query()
            .select("*")
            .eq("organization_id", str(organization_id))
            .eq("email", email)
            .eq("status", InvitationStatus.PENDING.value)
        )

    async def insert(
        self,
        organization_id: UUID,
        email: str,
        role: MemberRole,
        token: str,
        expires_at: datetime,
        created_at: datetime,
        invited_by: Optional[UUID] = None,
    ) -> Invitation:
        """
        Insert a new pending invitation.

        Args:
            organization_id: Organization UUID
            email: Normalized email address
            role: Role granted on acceptance
            token: Freshly generated token
            expires_at: Expiry timestamp
            created_at: Creation timestamp
            invited_by: User ID of the inviter

        Returns:
            The stored Invitation

        Raises:
            ConflictError: If a pending invitation for the same
                organization and email was inserted concurrently
        """
        data: Dict[str, Any] = {
            "organization_id": str(organization_id),
            "email": email,
            "role": role.value,
            "token": token,
            "status": InvitationStatus.PENDING.value,
            "expires_at": expires_at.isoformat(),
            "created_at": created_at.isoformat(),
            "invited_by": str(invited_by) if invited_by else None,
        }

        try:
            result = await self.client.execute(self._query().insert(data))
        except ConflictError:
            raise ConflictError(
                "Invitation already sent",
                code="invitation_already_sent",
                status=InvitationStatus.PENDING.value,
            )

        if not result.data:
            raise DatabaseError("Failed to create invitation")

        return Invitation(**result.data[0])

    async def transition(
        self,
        invitation_id: UUID,
        status: InvitationStatus,
        accepted_at: Optional[datetime] = None,
        accepted_by: Optional[UUID] = None,
    ) -> Optional[Invitation]:
        """
        Move a pending invitation to a terminal status.

        The update only matches while the row is still pending.

        Args:
            invitation_id: Invitation UUID
            status: Target terminal status
            accepted_at: Processing timestamp for accept/reject
            accepted_by: Processing user for accept/reject

        Returns:
            The updated Invitation, or None if it was no longer pending
        """
        data: Dict[str, Any] = {"status": status.value}
        if accepted_at is not None:
            data["accepted_at"] = accepted_at.isoformat()
        if accepted_by is not None:
            data["accepted_by"] = str(accepted_by)

        result = await self.client.execute(
            self._query()
            .update(data)
            .eq("id", str(invitation_id))
            .eq("status", InvitationStatus.PENDING.value)
        )

        if not result.data:
            return None

        return Invitation(**result.data[0])

    async def accept_with_membership(
        self,
        invitation_id: UUID,
        user_id: UUID,
        now: datetime,
    ) -> Optional[Invitation]:
        """
        Insert the membership and mark the invitation accepted in one transaction.

        Args:
            invitation_id: Invitation UUID
            user_id: User accepting the invitation
            now: Timestamp for joined_at and accepted_at

        Returns:
            The accepted Invitation, or None if it was no longer pending
            (nothing was written)

        Raises:
            DatabaseError: If the transaction failed and was rolled back
        """
        try:
            result = await self.client.execute(
                self.client.rpc(
                    ACCEPT_FUNCTION,
                    {
                        "p_invitation_id": str(invitation_id),
                        "p_user_id": str(user_id),
                        "p_now": now.isoformat(),
                    },
                )
            )
        except DatabaseError as e:
            if e.pg_code == NOT_PENDING_SQLSTATE:
                return None
            raise

        rows = result.data or []
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            return None

        return Invitation(**rows[0])

    async def expire_overdue(self, now: datetime) -> int:
        """
        Expire every pending invitation whose expires_at has passed.

        Args:
            now: Current time

        Returns:
            Number of invitations transitioned
        """
        result = await self.client.execute(
            self._query()
            .update({"status": InvitationStatus.EXPIRED.value}, count="exact", returning="minimal")
            .eq("status", InvitationStatus.PENDING.value)
            .lt("expires_at", now.isoformat())
        )
        return result.count or 0

    async def list_by_organization(
        self,
        organization_id: UUID,
        status: Optional[InvitationStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Invitation]:
        """
        List invitations for an organization, newest first.

        Args:
            organization_id: Organization UUID
            status: Only return invitations in this status
            limit: Maximum number of invitations to return
            offset: Number of invitations to skip

        Returns:
            List of Invitation instances
        """
        query = self._query().select("*").eq("organization_id", str(organization_id))

        if status is not None:
            query = query.eq("status", status.value)

        result = await self.client.execute(
            query.order("created_at", desc=True).range(offset, offset + limit - 1)
        )

        return [Invitation(**row) for row in result.data or []]

    async def list_pending_for_email(self, email: str, now: datetime) -> List[Invitation]:
        """
        List unexpired pending invitations addressed to an email, newest first.

        Args:
            email: Normalized email address
            now: Current time

        Returns:
            List of Invitation instances
        """
        result = await self.client.execute(
            self._query()
            .select("*")
            .eq("email", email)
            .eq("status", InvitationStatus.PENDING.value)
            .gt("expires_at", now.isoformat())
            .order("created_at", desc=True)
        )
        return [Invitation(**row) for row in result.data or []]
