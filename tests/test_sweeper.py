"""
Tests for admit.invitations.sweeper module.
"""

import asyncio

import pytest

from tests.conftest import api_error


class TestExpirationSweeper:
    """Tests for ExpirationSweeper class."""

    @pytest.mark.asyncio
    async def test_sweep_nothing_due(self, admit, invitation):
        assert await admit.invites.sweep_expired() == 0

    @pytest.mark.asyncio
    async def test_sweep_expires_only_overdue_pending(self, admit, db, clock, org_id, owner_id, invitee_id):
        old = await admit.invites.invite(org_id, owner_id, "old@example.com")
        accepted = await admit.invites.invite(org_id, owner_id, "invitee@example.com")
        await admit.invites.accept(accepted.token, invitee_id, "invitee@example.com")

        clock.advance(days=5)
        fresh = await admit.invites.invite(org_id, owner_id, "fresh@example.com")

        clock.advance(days=3)
        count = await admit.invites.sweep_expired()

        assert count == 1
        assert db.invitation(old.id)["status"] == "expired"
        assert db.invitation(accepted.id)["status"] == "accepted"
        assert db.invitation(fresh.id)["status"] == "pending"

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, admit, db, clock, invitation):
        clock.advance(days=8)

        assert await admit.invites.sweep_expired() == 1
        assert await admit.invites.sweep_expired() == 0
        assert db.invitation(invitation.id)["status"] == "expired"

    @pytest.mark.asyncio
    async def test_concurrent_sweeps_and_lazy_expiry(self, admit, db, clock, invitation):
        clock.advance(days=8)

        results = await asyncio.gather(
            admit.invites.sweep_expired(),
            admit.invites.sweep_expired(),
            admit.invites.sweeper.expire(invitation),
        )

        assert sum(results[:2]) <= 1
        assert db.invitation(invitation.id)["status"] == "expired"

    @pytest.mark.asyncio
    async def test_expire_already_expired_is_noop(self, admit, db, clock, invitation):
        clock.advance(days=8)
        await admit.invites.sweep_expired()

        await admit.invites.sweeper.expire(invitation)

        assert db.invitation(invitation.id)["status"] == "expired"

    @pytest.mark.asyncio
    async def test_expire_swallows_datastore_errors(self, admit, db, invitation):
        db.fail_next("organization_invitations", api_error("boom", "XX000"), operation="update")

        await admit.invites.sweeper.expire(invitation)

        assert db.invitation(invitation.id)["status"] == "pending"

    @pytest.mark.asyncio
    async def test_run_periodically_until_stopped(self, admit, db, clock, invitation):
        clock.advance(days=8)
        stop = asyncio.Event()

        task = asyncio.create_task(admit.invites.sweeper.run_periodically(0.01, stop))
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert db.invitation(invitation.id)["status"] == "expired"

    @pytest.mark.asyncio
    async def test_run_periodically_survives_failures(self, admit, db, clock, invitation):
        clock.advance(days=8)
        db.fail_next("organization_invitations", api_error("boom", "XX000"), operation="update")
        stop = asyncio.Event()

        task = asyncio.create_task(admit.invites.sweeper.run_periodically(0.01, stop))
        await asyncio.sleep(0.1)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert db.invitation(invitation.id)["status"] == "expired"
