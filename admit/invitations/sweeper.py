"""
Expiration sweeper for Admit invitations.

Moves pending invitations past their expiry to ``expired``, either in bulk
or one row at a time when a read discovers the expiry.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from ..exceptions import AdmitError
from ..utils.tokens import utcnow
from .models import Invitation, InvitationStatus
from .store import InvitationStore

logger = logging.getLogger(__name__)


class ExpirationSweeper:
    """
    Transitions overdue pending invitations to expired.

    Both the bulk sweep and the single-row expiry are conditional on the
    row still being pending, so they can run concurrently with each other
    and with accept/reject/cancel without conflict.

    Example:
        ```python
        expired = await admit.invites.sweeper.sweep_expired()
        print(f"Expired {expired} invitations")
        ```
    """

    def __init__(
        self,
        store: InvitationStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    async def sweep_expired(self) -> int:
        """
        Expire all overdue pending invitations.

        Returns:
            Number of invitations transitioned by this call
        """
        count = await self.store.expire_overdue(self.clock())
        if count:
            logger.info("Expired %d overdue invitations", count)
        return count

    async def sweep_opportunistically(self) -> int:
        """
        Sweep ahead of another operation, best effort.

        A failed sweep is logged and reported as zero transitions so the
        surrounding invite or listing still goes through.
        """
        try:
            return await self.sweep_expired()
        except AdmitError as e:
            logger.warning("Opportunistic invitation sweep failed: %s", e)
            return 0

    async def expire(self, invitation: Invitation) -> None:
        """
        Persist the expired status of one invitation, best effort.

        The caller has already decided the invitation is expired; a failure
        here is logged and does not change that outcome.
        """
        try:
            updated = await self.store.transition(invitation.id, InvitationStatus.EXPIRED)
        except AdmitError as e:
            logger.warning("Could not persist expiry of invitation %s: %s", invitation.id, e)
            return

        if updated is not None:
            logger.info("Invitation %s expired", invitation.id)

    async def run_periodically(
        self,
        interval_seconds: float,
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        """
        Sweep on a fixed interval until cancelled or ``stop`` is set.

        Failed sweeps are logged and retried on the next tick.

        Args:
            interval_seconds: Delay between sweeps
            stop: Optional event that ends the loop
        """
        stop = stop or asyncio.Event()
        while not stop.is_set():
            try:
                await self.sweep_expired()
            except AdmitError as e:
                logger.error("Invitation sweep failed: %s", e)

            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue
