"""
Admit invitation models.

Pydantic models for organization invitations and the response schema of
each invitation operation.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..organizations.models import MemberRole, Organization
from ..utils.tokens import normalize_email


class InvitationStatus(str, Enum):
    """Invitation lifecycle status."""

    PENDING = "pending"  # Awaiting response
    ACCEPTED = "accepted"  # Membership created or already present
    REJECTED = "rejected"  # Declined by the invitee
    EXPIRED = "expired"  # Past expires_at
    CANCELLED = "cancelled"  # Revoked by an organization admin or owner

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.PENDING


TERMINAL_STATUSES = frozenset(s for s in InvitationStatus if s.is_terminal)


class ResolveAction(str, Enum):
    """What the invitee does with an invitation."""

    ACCEPT = "accept"
    REJECT = "reject"


class Invitation(BaseModel):
    """
    Invitation model - one row of organization_invitations.

    Invitations are never deleted; they only move from pending to one of
    the terminal statuses.
    """

    id: UUID
    organization_id: UUID
    email: str
    role: MemberRole

    # Who sent the invite
    invited_by: Optional[UUID] = None

    # Token for lookup and redemption
    token: str
    status: InvitationStatus = InvitationStatus.PENDING
    expires_at: datetime

    # Set when the invitee accepts or rejects
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[UUID] = None

    # Timestamps
    created_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "organization_id": "456e7890-e89b-12d3-a456-426614174000",
                "email": "newuser@example.com",
                "role": "member",
                "invited_by": "012e3456-e89b-12d3-a456-426614174000",
                "token": "Qm9vdHN0cmFwLXRva2VuLWV4YW1wbGU",
                "status": "pending",
                "expires_at": "2024-01-08T00:00:00Z",
                "accepted_at": None,
                "accepted_by": None,
                "created_at": "2024-01-01T00:00:00Z",
            }
        },
    }

    @property
    def is_pending(self) -> bool:
        return self.status is InvitationStatus.PENDING

    def is_expired(self, now: datetime) -> bool:
        """True once expires_at has passed."""
        return self.expires_at < now

    def is_addressed_to(self, email: Optional[str]) -> bool:
        """Compare against a caller's email, ignoring case and surrounding whitespace."""
        return normalize_email(self.email) == normalize_email(email)


class InvitationSummary(BaseModel):
    """Returned to the inviter after issuing an invitation."""

    id: UUID
    organization_id: UUID
    email: str
    role: MemberRole
    status: InvitationStatus
    token: str
    expires_at: datetime
    created_at: datetime

    @classmethod
    def from_invitation(cls, invitation: Invitation) -> "InvitationSummary":
        return cls(**invitation.model_dump(include=set(cls.model_fields)))


class InvitationListItem(BaseModel):
    """One row of an organization's invitation list; the token is not exposed."""

    id: UUID
    email: str
    role: MemberRole
    status: InvitationStatus
    invited_by: Optional[UUID] = None
    expires_at: datetime
    created_at: datetime
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[UUID] = None

    @classmethod
    def from_invitation(cls, invitation: Invitation) -> "InvitationListItem":
        return cls(**invitation.model_dump(include=set(cls.model_fields)))


class InvitationView(BaseModel):
    """
    Read-only view of a pending invitation, shown on the redemption page.

    The token is deliberately absent; the caller already holds it.
    """

    id: UUID
    organization: Organization
    email: str
    role: MemberRole
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime


class ReceivedInvitation(BaseModel):
    """A pending invitation addressed to the current user."""

    id: UUID
    organization: Organization
    email: str
    role: MemberRole
    token: str
    expires_at: datetime
    created_at: datetime


class ResolveResult(BaseModel):
    """Outcome of accepting or rejecting an invitation."""

    invitation_id: UUID
    organization_id: UUID
    action: ResolveAction
    status: InvitationStatus
    already_member: bool = False
    message: str


class CreateInvitationRequest(BaseModel):
    """Request model for issuing a new invitation."""

    email: str = Field(default="", max_length=255, description="Email address to invite")
    # Checked by the issuer so a disallowed role is a domain validation error
    role: str = Field(
        default=MemberRole.MEMBER.value,
        description="Role granted on acceptance (admin or member)",
    )


class ResolveInvitationRequest(BaseModel):
    """Request model for accepting or rejecting an invitation."""

    # Parsed by the resolver so an unknown action is a domain validation error
    action: str = Field(..., description="accept or reject")
