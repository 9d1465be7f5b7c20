"""
Invitation management for Admit.

Entry point for every invitation operation: issuing, lookup, redemption,
cancellation, listing and expiry. The work is split across the issuer,
resolver and sweeper; this manager wires them to one datastore client.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional, Union
from uuid import UUID

from ..exceptions import ValidationError
from ..organizations.models import MemberRole
from ..utils.tokens import normalize_email, utcnow
from .issuer import InvitationIssuer
from .models import (
    Invitation,
    InvitationStatus,
    InvitationView,
    ReceivedInvitation,
    ResolveAction,
    ResolveResult,
)
from .resolver import InvitationResolver
from .store import InvitationStore
from .sweeper import ExpirationSweeper

if TYPE_CHECKING:
    from ..client import Admit


class InvitationManager:
    """
    Manages organization invitation operations.

    The invitation flow:
    1. An owner or admin invites an email address at a role
    2. A unique token is generated and stored with a pending invitation
    3. The link carrying the token is delivered out of band
    4. The invitee looks the invitation up and accepts or rejects it
    5. Acceptance creates the membership and closes the invitation together
    """

    def __init__(
        self,
        admit: "Admit",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Initialize InvitationManager.

        Args:
            admit: Main Admit client instance
            clock: Source of the current time (UTC)
        """
        self.admit = admit
        self.clock = clock

        self.store = InvitationStore(admit.client)
        self.sweeper = ExpirationSweeper(self.store, clock=clock)
        self.issuer = InvitationIssuer(
            config=admit.config,
            store=self.store,
            memberships=admit.memberships,
            orgs=admit.orgs,
            sweeper=self.sweeper,
            clock=clock,
        )
        self.resolver = InvitationResolver(
            store=self.store,
            memberships=admit.memberships,
            orgs=admit.orgs,
            sweeper=self.sweeper,
            clock=clock,
        )

    async def invite(
        self,
        organization_id: UUID,
        inviter_user_id: UUID,
        email: str,
        role: Union[str, MemberRole] = MemberRole.MEMBER,
    ) -> Invitation:
        """Issue an invitation. See InvitationIssuer.invite."""
        return await self.issuer.invite(organization_id, inviter_user_id, email, role)

    async def cancel(
        self,
        organization_id: UUID,
        invitation_id: UUID,
        caller_user_id: UUID,
    ) -> None:
        """Cancel a pending invitation. See InvitationIssuer.cancel."""
        await self.issuer.cancel(organization_id, invitation_id, caller_user_id)

    async def lookup(self, token: str) -> InvitationView:
        """Look up a pending invitation. See InvitationResolver.lookup."""
        return await self.resolver.lookup(token)

    async def resolve(
        self,
        token: str,
        caller_user_id: UUID,
        caller_email: Optional[str],
        action: Union[str, ResolveAction],
    ) -> ResolveResult:
        """Accept or reject an invitation. See InvitationResolver.resolve."""
        return await self.resolver.resolve(token, caller_user_id, caller_email, action)

    async def accept(
        self,
        token: str,
        caller_user_id: UUID,
        caller_email: Optional[str],
    ) -> ResolveResult:
        """Shorthand for resolve(..., action="accept")."""
        return await self.resolve(token, caller_user_id, caller_email, ResolveAction.ACCEPT)

    async def reject(
        self,
        token: str,
        caller_user_id: UUID,
        caller_email: Optional[str],
    ) -> ResolveResult:
        """Shorthand for resolve(..., action="reject")."""
        return await self.resolve(token, caller_user_id, caller_email, ResolveAction.REJECT)

    async def sweep_expired(self) -> int:
        """Expire all overdue pending invitations; returns how many changed."""
        return await self.sweeper.sweep_expired()

    async def get(self, invitation_id: UUID) -> Optional[Invitation]:
        """
        Get an invitation by ID.

        Args:
            invitation_id: Invitation UUID

        Returns:
            Invitation instance or None if not found
        """
        return await self.store.get(invitation_id)

    async def list_by_organization(
        self,
        organization_id: UUID,
        caller_user_id: UUID,
        status: Optional[Union[str, InvitationStatus]] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Invitation]:
        """
        List invitations for an organization, newest first.

        Overdue invitations are expired first so the listed statuses are
        current.

        Args:
            organization_id: Organization UUID
            caller_user_id: Caller; must be a member of the organization
            status: Only return invitations in this status
            limit: Maximum number of invitations to return
            offset: Number of invitations to skip

        Returns:
            List of Invitation instances

        Raises:
            ForbiddenError: If the caller is not a member
        """
        await self.admit.memberships.require(organization_id, caller_user_id)

        wanted: Optional[InvitationStatus] = None
        if status is not None:
            try:
                wanted = InvitationStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid status: {status}", code="invalid_status")

        await self.sweeper.sweep_opportunistically()

        return await self.store.list_by_organization(
            organization_id,
            status=wanted,
            limit=limit,
            offset=offset,
        )

    async def list_received(
        self,
        caller_user_id: UUID,
        caller_email: Optional[str],
    ) -> List[ReceivedInvitation]:
        """
        List pending invitations addressed to the caller.

        Invitations to organizations the caller already belongs to are
        left out.

        Args:
            caller_user_id: Verified user ID of the caller
            caller_email: Verified email of the caller

        Returns:
            List of ReceivedInvitation, newest first
        """
        email = normalize_email(caller_email)
        if not email:
            return []

        invitations = await self.store.list_pending_for_email(email, self.clock())
        if not invitations:
            return []

        joined = await self.admit.memberships.organization_ids_for_user(caller_user_id)
        invitations = [inv for inv in invitations if inv.organization_id not in joined]

        orgs = await self.admit.orgs.get_many(inv.organization_id for inv in invitations)

        return [
            ReceivedInvitation(
                id=inv.id,
                organization=orgs[inv.organization_id],
                email=inv.email,
                role=inv.role,
                token=inv.token,
                expires_at=inv.expires_at,
                created_at=inv.created_at,
            )
            for inv in invitations
            if inv.organization_id in orgs
        ]
