"""
Invitation lookup and redemption for Admit.

The resolver is the only place an invitation leaves ``pending`` because of
its invitee. Acceptance inserts the membership and closes the invitation in
a single database transaction; every other transition is a conditional
update, so concurrent or repeated redemptions settle on one outcome.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Union
from uuid import UUID

from ..exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    GoneError,
    NotFoundError,
    ValidationError,
)
from ..organizations.members import MembershipStore
from ..organizations.orgs import OrganizationStore
from ..utils.tokens import mask_token, utcnow
from .models import (
    Invitation,
    InvitationStatus,
    InvitationView,
    ResolveAction,
    ResolveResult,
)
from .store import InvitationStore
from .sweeper import ExpirationSweeper

logger = logging.getLogger(__name__)

MESSAGE_ACCEPTED = "Invitation accepted"
MESSAGE_ALREADY_MEMBER = "You are already a member of this organization"
MESSAGE_REJECTED = "Invitation rejected"


def parse_action(action: Union[str, ResolveAction, None]) -> ResolveAction:
    """
    Parse an accept/reject action.

    Raises:
        ValidationError: If the action is neither accept nor reject
    """
    value = action.value if isinstance(action, ResolveAction) else str(action or "").strip().lower()
    try:
        return ResolveAction(value)
    except ValueError:
        raise ValidationError("Invalid action", code="invalid_action")


def expired_error() -> GoneError:
    return GoneError("Invitation has expired")


def terminal_conflict(status: InvitationStatus) -> ConflictError:
    """Conflict naming the status the invitation already reached."""
    return ConflictError(
        f"Invitation has already been {status.value}",
        code=f"invitation_{status.value}",
        status=status.value,
    )


class InvitationResolver:
    """
    Validates invitation tokens and processes accept/reject.

    Example:
        ```python
        view = await admit.invites.lookup(token)

        result = await admit.invites.resolve(
            token,
            caller_user_id=user.id,
            caller_email=user.email,
            action="accept",
        )
        ```
    """

    def __init__(
        self,
        store: InvitationStore,
        memberships: MembershipStore,
        orgs: OrganizationStore,
        sweeper: ExpirationSweeper,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.memberships = memberships
        self.orgs = orgs
        self.sweeper = sweeper
        self.clock = clock

    async def _get(self, token: str) -> Invitation:
        invitation = await self.store.get_by_token(token)
        if invitation is None:
            logger.debug("No invitation for token %s", mask_token(token or ""))
            raise NotFoundError("Invitation not found", code="invitation_not_found")
        return invitation

    async def _check_live(self, invitation: Invitation, now: datetime) -> None:
        """Raise GoneError for an expired invitation, persisting the expiry if needed."""
        if invitation.status is InvitationStatus.EXPIRED:
            raise expired_error()

        if invitation.is_pending and invitation.is_expired(now):
            await self.sweeper.expire(invitation)
            raise expired_error()

    async def lookup(self, token: str) -> InvitationView:
        """
        Look up a pending invitation by token.

        Safe to call repeatedly; the only side effect is persisting an
        expiry that has already happened.

        Args:
            token: Invitation token

        Returns:
            Read-only InvitationView (the token is not included)

        Raises:
            NotFoundError: If no invitation matches the token
            GoneError: If the invitation has expired
            ConflictError: If the invitation was already accepted, rejected
                or cancelled; ``status`` names which
        """
        invitation = await self._get(token)
        await self._check_live(invitation, self.clock())

        if not invitation.is_pending:
            raise terminal_conflict(invitation.status)

        organization = await self.orgs.get(invitation.organization_id)
        if organization is None:
            raise NotFoundError("Organization not found", code="organization_not_found")

        return InvitationView(
            id=invitation.id,
            organization=organization,
            email=invitation.email,
            role=invitation.role,
            status=invitation.status,
            expires_at=invitation.expires_at,
            created_at=invitation.created_at,
        )

    async def resolve(
        self,
        token: str,
        caller_user_id: UUID,
        caller_email: Optional[str],
        action: Union[str, ResolveAction],
    ) -> ResolveResult:
        """
        Accept or reject an invitation.

        Redemption rights are bound to the invited email, not to whoever
        holds the token. Accepting twice, or accepting while already a
        member, succeeds without creating a second membership.

        Args:
            token: Invitation token
            caller_user_id: Verified user ID of the caller
            caller_email: Verified email of the caller
            action: "accept" or "reject"

        Returns:
            ResolveResult describing the final state

        Raises:
            ValidationError: If the action is unknown
            NotFoundError: If no invitation matches the token
            ForbiddenError: If the caller's email is not the invited one
            GoneError: If the invitation has expired
            ConflictError: If the invitation already reached another
                terminal status
            DatabaseError: If the acceptance transaction failed; the whole
                call is safe to retry
        """
        resolved_action = parse_action(action)
        invitation = await self._get(token)

        if not invitation.is_addressed_to(caller_email):
            raise ForbiddenError("Email mismatch", code="email_mismatch")

        now = self.clock()
        await self._check_live(invitation, now)

        if not invitation.is_pending:
            return await self._settled(invitation, caller_user_id, resolved_action)

        if resolved_action is ResolveAction.REJECT:
            return await self._reject(invitation, caller_user_id, now)

        return await self._accept(invitation, caller_user_id, now)

    async def _reject(
        self,
        invitation: Invitation,
        caller_user_id: UUID,
        now: datetime,
    ) -> ResolveResult:
        # accepted_at/accepted_by record who processed the invitation
        rejected = await self.store.transition(
            invitation.id,
            InvitationStatus.REJECTED,
            accepted_at=now,
            accepted_by=caller_user_id,
        )
        if rejected is None:
            return await self._after_lost_race(invitation, caller_user_id, ResolveAction.REJECT)

        logger.info("Invitation %s rejected by %s", invitation.id, caller_user_id)
        return ResolveResult(
            invitation_id=rejected.id,
            organization_id=rejected.organization_id,
            action=ResolveAction.REJECT,
            status=rejected.status,
            message=MESSAGE_REJECTED,
        )

    async def _accept(
        self,
        invitation: Invitation,
        caller_user_id: UUID,
        now: datetime,
    ) -> ResolveResult:
        # Re-read on every attempt; a retry after a failed commit may find
        # the membership already in place.
        already_member = await self.memberships.exists(
            invitation.organization_id, caller_user_id
        )

        if already_member:
            accepted = await self.store.transition(
                invitation.id,
                InvitationStatus.ACCEPTED,
                accepted_at=now,
                accepted_by=caller_user_id,
            )
        else:
            try:
                accepted = await self.store.accept_with_membership(
                    invitation.id, caller_user_id, now
                )
            except DatabaseError:
                logger.exception(
                    "Accepting invitation %s for %s failed; rolled back",
                    invitation.id,
                    caller_user_id,
                )
                raise

        if accepted is None:
            return await self._after_lost_race(invitation, caller_user_id, ResolveAction.ACCEPT)

        logger.info(
            "Invitation %s accepted by %s (existing member: %s)",
            invitation.id,
            caller_user_id,
            already_member,
        )
        return ResolveResult(
            invitation_id=accepted.id,
            organization_id=accepted.organization_id,
            action=ResolveAction.ACCEPT,
            status=accepted.status,
            already_member=already_member,
            message=MESSAGE_ALREADY_MEMBER if already_member else MESSAGE_ACCEPTED,
        )

    async def _after_lost_race(
        self,
        invitation: Invitation,
        caller_user_id: UUID,
        action: ResolveAction,
    ) -> ResolveResult:
        """Another writer moved the invitation out of pending first; report its outcome."""
        current = await self.store.get(invitation.id)
        if current is None:
            raise NotFoundError("Invitation not found", code="invitation_not_found")

        if current.is_pending:
            # The guarded write matched nothing yet the row is pending: retryable
            raise DatabaseError("Invitation state changed during update", code="retry")

        if current.status is InvitationStatus.EXPIRED:
            raise expired_error()

        return await self._settled(current, caller_user_id, action)

    async def _settled(
        self,
        invitation: Invitation,
        caller_user_id: UUID,
        action: ResolveAction,
    ) -> ResolveResult:
        """Handle a request against an invitation that is already terminal."""
        if (
            action is ResolveAction.ACCEPT
            and invitation.status is InvitationStatus.ACCEPTED
            and await self.memberships.exists(invitation.organization_id, caller_user_id)
        ):
            return ResolveResult(
                invitation_id=invitation.id,
                organization_id=invitation.organization_id,
                action=ResolveAction.ACCEPT,
                status=InvitationStatus.ACCEPTED,
                already_member=True,
                message=MESSAGE_ALREADY_MEMBER,
            )

        raise terminal_conflict(invitation.status)
