"""
Tests for expiry sweeping

Verifies:
- Boundary is inclusive: created_at == now - W expires, now - W + 1us does not
- Paired and completed records never expire
- Expired records are gone (pair -> NotFound)
- Sweeper task lifecycle
"""

import asyncio
from datetime import timedelta

import pytest

from hyve_relay.errors import NotFoundError
from hyve_relay.models import HandshakeStatus
from hyve_relay.sweeper import ExpirySweeper

WINDOW = timedelta(hours=24)


class TestSweepExpired:
    def test_record_exactly_at_window_expires(self, handshakes, clock):
        handshakes.init("alice", "bob", "kx", "sig")
        clock.advance(hours=24)
        assert handshakes.sweep_expired(WINDOW) == 1
        assert handshakes.get("alice", "bob") is None

    def test_record_just_inside_window_survives(self, handshakes, clock):
        handshakes.init("alice", "bob", "kx", "sig")
        clock.advance(hours=24, microseconds=-1)
        assert handshakes.sweep_expired(WINDOW) == 0
        assert handshakes.get("alice", "bob").status == HandshakeStatus.INITIATED

    def test_paired_and_complete_never_expire(self, handshakes, clock):
        handshakes.init("alice", "bob", "kx", "sig")
        handshakes.pair("alice", "bob", "secret", "sig-bob")
        handshakes.init("carol", "bob", "kx", "sig")
        handshakes.pair("carol", "bob", "secret", "sig-bob")
        handshakes.complete("carol", "bob")

        clock.advance(days=365)
        assert handshakes.sweep_expired(WINDOW) == 0
        assert handshakes.get("alice", "bob").status == HandshakeStatus.PAIRED
        assert handshakes.get("carol", "bob").status == HandshakeStatus.COMPLETE

    def test_pair_after_expiry_is_not_found(self, handshakes, clock):
        handshakes.init("alice", "bob", "kx", "sig")
        clock.advance(days=2)
        handshakes.sweep_expired(WINDOW)
        with pytest.raises(NotFoundError):
            handshakes.pair("alice", "bob", "secret", "sig-bob")

    def test_only_stale_records_removed(self, handshakes, clock):
        handshakes.init("alice", "bob", "kx", "sig")
        clock.advance(hours=20)
        handshakes.init("carol", "bob", "kx", "sig")
        clock.advance(hours=5)

        assert handshakes.sweep_expired(WINDOW) == 1
        remaining = handshakes.list_by_responder_and_status("bob", HandshakeStatus.INITIATED)
        assert {e.pair_key for e in remaining} == {("carol", "bob")}

    def test_reinit_after_expiry_starts_fresh(self, handshakes, clock):
        handshakes.init("alice", "bob", "kx-old", "sig")
        clock.advance(days=2)
        handshakes.sweep_expired(WINDOW)
        rec = handshakes.init("alice", "bob", "kx-new", "sig")
        assert rec.created_at == clock.now
        assert rec.initiator_kx_pubkey == "kx-new"


class TestExpirySweeper:
    def test_run_once_updates_health(self, handshakes, clock):
        sweeper = ExpirySweeper(handshakes, WINDOW, interval=60)
        handshakes.init("alice", "bob", "kx", "sig")
        clock.advance(days=1)

        assert sweeper.run_once() == 1
        health = sweeper.get_health()
        assert health["total_runs"] == 1
        assert health["total_expired"] == 1
        assert health["window_seconds"] == 86400
        assert health["last_run_at"] is not None
        assert health["running"] is False

    def test_start_runs_pass_and_stop_cancels(self, handshakes, clock):
        handshakes.init("alice", "bob", "kx", "sig")
        clock.advance(days=1)
        sweeper = ExpirySweeper(handshakes, WINDOW, interval=3600)

        async def scenario():
            await sweeper.start()
            assert sweeper.is_running
            await sweeper.start()  # second start is a no-op
            await asyncio.sleep(0.05)
            await sweeper.stop()

        asyncio.run(scenario())
        assert not sweeper.is_running
        assert handshakes.get("alice", "bob") is None
        assert sweeper.get_health()["total_runs"] == 1

    def test_failing_pass_does_not_kill_loop(self, clock):
        calls = []

        class FlakyStore:
            def sweep_expired(self, window):
                calls.append(window)
                if len(calls) == 1:
                    raise RuntimeError("boom")
                return 0

        sweeper = ExpirySweeper(FlakyStore(), WINDOW, interval=0.01)

        async def scenario():
            await sweeper.start()
            await asyncio.sleep(0.2)
            await sweeper.stop()

        asyncio.run(scenario())
        assert len(calls) >= 2
