"""
Admit invitations module.

Invitation issuing, redemption, cancellation and expiry for organizations.
"""

from .invites import InvitationManager
from .issuer import InvitationIssuer
from .models import (
    TERMINAL_STATUSES,
    CreateInvitationRequest,
    Invitation,
    InvitationListItem,
    InvitationStatus,
    InvitationSummary,
    InvitationView,
    ReceivedInvitation,
    ResolveAction,
    ResolveInvitationRequest,
    ResolveResult,
)
from .resolver import InvitationResolver
from .store import InvitationStore
from .sweeper import ExpirationSweeper

__all__ = [
    "InvitationManager",
    "InvitationIssuer",
    "InvitationResolver",
    "InvitationStore",
    "ExpirationSweeper",
    "Invitation",
    "InvitationStatus",
    "TERMINAL_STATUSES",
    "InvitationSummary",
    "InvitationListItem",
    "InvitationView",
    "ReceivedInvitation",
    "ResolveAction",
    "ResolveResult",
    "CreateInvitationRequest",
    "ResolveInvitationRequest",
]
