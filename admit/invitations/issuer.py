"""
Invitation issuing and cancellation for Admit.
"""

import logging
from datetime import datetime
from typing import Callable, Union
from uuid import UUID

from ..config import AdmitConfig
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..organizations.members import MembershipStore
from ..organizations.models import INVITABLE_ROLES, MANAGER_ROLES, MemberRole
from ..organizations.orgs import OrganizationStore
from ..utils.tokens import generate_token, utcnow, validate_email
from .models import Invitation, InvitationStatus
from .store import InvitationStore
from .sweeper import ExpirationSweeper

logger = logging.getLogger(__name__)


def parse_role(role: Union[str, MemberRole, None]) -> MemberRole:
    """
    Parse the role an invitation should grant.

    Raises:
        ValidationError: If the role is unknown or is ``owner``
    """
    value = role.value if isinstance(role, MemberRole) else str(role or "").strip().lower()
    try:
        parsed = MemberRole(value)
    except ValueError:
        raise ValidationError(f"Invalid role: {value or '<empty>'}", code="invalid_role")

    if parsed not in INVITABLE_ROLES:
        raise ValidationError(
            "Ownership cannot be granted by invitation", code="role_not_invitable"
        )
    return parsed


class InvitationIssuer:
    """
    Issues new invitations and cancels outstanding ones.

    The invitation flow:
    1. An owner or admin invites an email address at a role
    2. A random token is generated and a pending row is stored
    3. The link carrying the token is delivered out of band
    4. The invitee redeems it through the InvitationResolver
    """

    def __init__(
        self,
        config: AdmitConfig,
        store: InvitationStore,
        memberships: MembershipStore,
        orgs: OrganizationStore,
        sweeper: ExpirationSweeper,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.store = store
        self.memberships = memberships
        self.orgs = orgs
        self.sweeper = sweeper
        self.clock = clock

    async def invite(
        self,
        organization_id: UUID,
        inviter_user_id: UUID,
        email: str,
        role: Union[str, MemberRole] = MemberRole.MEMBER,
    ) -> Invitation:
        """
        Create an invitation to join an organization.

        Args:
            organization_id: Organization to invite the user to
            inviter_user_id: User sending the invitation (owner or admin)
            email: Email address to invite
            role: Role granted on acceptance (admin or member)

        Returns:
            The new pending Invitation, including its token

        Raises:
            NotFoundError: If the organization doesn't exist
            ForbiddenError: If the inviter is not an owner or admin
            ValidationError: If the email or role is invalid
            ConflictError: If the email already belongs to a member, or a
                pending invitation already exists for it

        Example:
            ```python
            invite = await admit.invites.invite(
                organization_id=org.id,
                inviter_user_id=admin.id,
                email="newuser@example.com",
                role="member",
            )
            print(f"Invitation token: {invite.token}")
            ```
        """
        if await self.orgs.get(organization_id) is None:
            raise NotFoundError(
                f"Organization {organization_id} not found", code="organization_not_found"
            )

        await self.memberships.require(organization_id, inviter_user_id, MANAGER_ROLES)

        normalized = validate_email(email, allow_test_domains=self.config.allow_test_domains)
        granted_role = parse_role(role)

        if await self.memberships.exists_by_email(organization_id, normalized):
            raise ConflictError(
                "User is already a member of this organization", code="already_member"
            )

        # Expired invitations must not block a new one
        await self.sweeper.sweep_opportunistically()

        now = self.clock()
        pending = await self.store.get_pending(organization_id, normalized)
        if pending is not None and pending.is_expired(now):
            await self.sweeper.expire(pending)
        elif pending is not None:
            raise ConflictError(
                "Invitation already sent",
                code="invitation_already_sent",
                status=InvitationStatus.PENDING.value,
            )

        invitation = await self.store.insert(
            organization_id=organization_id,
            email=normalized,
            role=granted_role,
            token=generate_token(),
            expires_at=now + self.config.invitation_ttl,
            created_at=now,
            invited_by=inviter_user_id,
        )

        logger.info(
            "Invitation %s issued for organization %s as %s",
            invitation.id,
            organization_id,
            granted_role.value,
        )
        return invitation

    async def cancel(
        self,
        organization_id: UUID,
        invitation_id: UUID,
        caller_user_id: UUID,
    ) -> None:
        """
        Cancel a pending invitation.

        Cancelling an invitation that already reached another terminal status
        is a no-op: whichever transition lands first wins.

        Args:
            organization_id: Organization the invitation belongs to
            invitation_id: Invitation UUID
            caller_user_id: User cancelling (owner or admin)

        Raises:
            ForbiddenError: If the caller is not an owner or admin
            NotFoundError: If the invitation doesn't exist in the organization
        """
        await self.memberships.require(organization_id, caller_user_id, MANAGER_ROLES)

        invitation = await self.store.get_in_organization(organization_id, invitation_id)
        if invitation is None:
            raise NotFoundError(
                f"Invitation {invitation_id} not found", code="invitation_not_found"
            )

        if not invitation.is_pending:
            logger.debug(
                "Cancel of invitation %s ignored, already %s",
                invitation_id,
                invitation.status.value,
            )
            return

        cancelled = await self.store.transition(invitation_id, InvitationStatus.CANCELLED)
        if cancelled is None:
            logger.debug("Cancel of invitation %s lost the race", invitation_id)
            return

        logger.info("Invitation %s cancelled by %s", invitation_id, caller_user_id)
