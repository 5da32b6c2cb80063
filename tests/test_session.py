"""Tests for the session gate, idle timeout and logout broadcast.

**Feature: weekly-journal**
"""

import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from weekjournal.db.cache import KeyValueCache
from weekjournal.db.store import CACHE_KEY
from weekjournal.errors import NetworkError
from weekjournal.remote.base import BaseRemote, Identity, Subscription
from weekjournal.remote.local import SqliteRemote
from weekjournal.session import (
    FORCE_LOGOUT,
    ChannelBus,
    IdleMonitor,
    SessionGate,
    SessionState,
    StorageBus,
    open_bus,
)
from weekjournal.sync import ManualClock

EMAIL = "trader@example.com"
PASSWORD = "secret123"
TIMEOUT = 30 * 60


class Workspace:
    """Shared directory standing in for one browser profile."""

    def __init__(self, root: Path):
        self.root = root
        self.cache = KeyValueCache(root / "cache")
        self.clock = ManualClock(datetime(2024, 3, 6, 9, 0))
        self.channel = f"auth-{uuid.uuid4().hex}"

    def remote(self) -> SqliteRemote:
        """A new remote instance over the shared database (one per tab)."""
        return SqliteRemote(self.root / "journal.db", session_path=self.root / "session.json")

    def gate(self, remote=None, bus=None, **kwargs) -> SessionGate:
        return SessionGate(
            remote or self.remote(),
            self.cache,
            clock=self.clock,
            bus=bus if bus is not None else ChannelBus(self.channel),
            idle_timeout=TIMEOUT,
            **kwargs,
        )


@pytest.fixture
def workspace():
    with tempfile.TemporaryDirectory() as tmpdir:
        ws = Workspace(Path(tmpdir))
        ws.remote().sign_up(EMAIL, PASSWORD)
        yield ws


def _signed_in_gate(ws: Workspace, **kwargs) -> SessionGate:
    gate = ws.gate(**kwargs)
    gate.mount()
    gate.sign_in(EMAIL, PASSWORD)
    return gate


class TestSessionStates:
    """
    **Feature: weekly-journal, Property 14: Session Resolution**

    *For any* gate, state is UNRESOLVED until mounted, then follows the
    identity reported by the remote.
    """

    def test_unresolved_before_mount(self, workspace: Workspace):
        assert workspace.gate().state == SessionState.UNRESOLVED

    def test_no_session(self, workspace: Workspace):
        gate = workspace.gate()
        changes = []
        gate.on_change(lambda state, user: changes.append(state))

        assert gate.mount() == SessionState.NO_SESSION
        assert changes == [SessionState.NO_SESSION]

    def test_sign_in(self, workspace: Workspace):
        gate = _signed_in_gate(workspace)

        assert gate.state == SessionState.HAS_SESSION
        assert gate.user.email == EMAIL

    def test_session_shared_with_new_instance(self, workspace: Workspace):
        _signed_in_gate(workspace)
        other = workspace.gate()

        assert other.mount() == SessionState.HAS_SESSION
        assert other.user.email == EMAIL

    def test_explicit_sign_out(self, workspace: Workspace):
        workspace.cache.set(CACHE_KEY, {"entries": {}, "customChecks": []})
        gate = _signed_in_gate(workspace)
        other = _signed_in_gate(workspace)

        gate.sign_out()

        assert gate.state == SessionState.NO_SESSION
        assert gate.logout_reason is None
        assert workspace.cache.get(CACHE_KEY) is None
        # not broadcast
        assert other.state == SessionState.HAS_SESSION

    def test_lookup_failure_means_no_session(self):
        remote = MagicMock(spec=BaseRemote)
        remote.get_user.side_effect = NetworkError("offline")
        remote.on_auth_state_change.return_value = Subscription(lambda: None)
        with tempfile.TemporaryDirectory() as tmpdir:
            gate = SessionGate(remote, KeyValueCache(Path(tmpdir)), clock=ManualClock(0.0))

            assert gate.mount() == SessionState.NO_SESSION

    def test_no_transitions_after_unmount(self):
        captured = []
        remote = MagicMock(spec=BaseRemote)
        remote.get_user.return_value = None
        remote.on_auth_state_change.side_effect = lambda cb: (
            captured.append(cb) or Subscription(lambda: None)
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            gate = SessionGate(remote, KeyValueCache(Path(tmpdir)), clock=ManualClock(0.0))
            gate.mount()
            gate.unmount()

            captured[0]("SIGNED_IN", Identity(id="u1", email=EMAIL))

            assert gate.state == SessionState.NO_SESSION
            assert gate.user is None


class TestIdleLogout:
    """
    **Feature: weekly-journal, Property 15: Idle Logout**

    *For any* signed-in session with no activity for the timeout, the
    session ends, the local cache is cleared and every other session of
    the same user ends too.
    """

    def test_idle_logout_broadcasts(self, workspace: Workspace):
        workspace.cache.set(CACHE_KEY, {"entries": {}, "customChecks": []})
        first = _signed_in_gate(workspace)
        second = _signed_in_gate(workspace)

        workspace.clock.advance(1000)
        second.record_activity("keydown")
        workspace.clock.advance(801)

        assert first.state == SessionState.NO_SESSION
        assert first.logout_reason == "idle"
        assert second.state == SessionState.NO_SESSION
        assert second.logout_reason == "remote"
        assert workspace.cache.get(CACHE_KEY) is None

    def test_not_logged_out_before_timeout(self, workspace: Workspace):
        gate = _signed_in_gate(workspace)

        workspace.clock.advance(TIMEOUT - 1)

        assert gate.state == SessionState.HAS_SESSION

    def test_activity_resets_timer(self, workspace: Workspace):
        gate = _signed_in_gate(workspace)

        workspace.clock.advance(1500)
        assert gate.record_activity("pointermove") is True
        workspace.clock.advance(1500)
        assert gate.state == SessionState.HAS_SESSION

        workspace.clock.advance(301)
        assert gate.state == SessionState.NO_SESSION

    def test_unknown_signal_ignored(self, workspace: Workspace):
        gate = _signed_in_gate(workspace)

        workspace.clock.advance(1500)
        assert gate.record_activity("resize") is False
        workspace.clock.advance(301)

        assert gate.state == SessionState.NO_SESSION

    def test_storage_fallback(self, workspace: Workspace):
        first = _signed_in_gate(
            workspace, bus=StorageBus(workspace.cache, workspace.clock)
        )
        second = _signed_in_gate(
            workspace, bus=StorageBus(workspace.cache, workspace.clock)
        )

        workspace.clock.advance(1000)
        second.record_activity("keydown")
        workspace.clock.advance(801)
        assert first.state == SessionState.NO_SESSION

        workspace.clock.advance(1.5)
        assert second.state == SessionState.NO_SESSION
        assert second.logout_reason == "remote"

    def test_carried_activity_expires_on_mount(self, workspace: Workspace):
        _signed_in_gate(workspace)
        stale = workspace.clock.time() - TIMEOUT - 5
        gate = workspace.gate(last_activity=stale)

        assert gate.mount() == SessionState.NO_SESSION
        assert gate.logout_reason == "idle"

    def test_force_logout_without_session_is_noop(self, workspace: Workspace):
        bus = MagicMock()
        gate = workspace.gate(bus=bus)
        gate.mount()

        gate.force_logout()

        bus.publish.assert_not_called()

    def test_sign_in_after_idle_clears_reason(self, workspace: Workspace):
        gate = _signed_in_gate(workspace)
        workspace.clock.advance(TIMEOUT + 1)
        assert gate.logout_reason == "idle"

        gate.sign_in(EMAIL, PASSWORD)

        assert gate.state == SessionState.HAS_SESSION
        assert gate.logout_reason is None


class TestIdleMonitor:
    """Idle monitor timing."""

    @given(timeout=st.integers(min_value=1, max_value=7200))
    @settings(max_examples=50)
    def test_fires_once_after_timeout(self, timeout: int):
        clock = ManualClock(0.0)
        fired = []
        monitor = IdleMonitor(clock, timeout, lambda: fired.append(clock.time()))
        monitor.start()

        clock.advance(timeout - 0.5)
        assert fired == []

        clock.advance(10 * timeout)
        assert len(fired) == 1
        assert timeout <= fired[0] <= timeout + 1
        assert not monitor.running

    def test_visibility_regained_after_long_absence(self):
        clock = ManualClock(0.0)
        fired = []
        monitor = IdleMonitor(clock, 60, lambda: fired.append(True), last_activity=-120)

        monitor.start()

        assert fired == [True]

    def test_visibility_regained_within_timeout_resets(self):
        clock = ManualClock(100.0)
        fired = []
        monitor = IdleMonitor(clock, 60, lambda: fired.append(True), last_activity=90)

        monitor.start()

        assert fired == []
        assert monitor.last_activity == 100.0

    def test_stop_prevents_firing(self):
        clock = ManualClock(0.0)
        fired = []
        monitor = IdleMonitor(clock, 60, lambda: fired.append(True))
        monitor.start()
        monitor.stop()

        clock.advance(120)

        assert fired == []


class TestBuses:
    """Broadcast delivery."""

    def test_channel_skips_sender(self):
        name = f"test-{uuid.uuid4().hex}"
        a, b = ChannelBus(name), ChannelBus(name)
        got_a, got_b = [], []
        a.subscribe(got_a.append)
        b.subscribe(got_b.append)

        a.publish(FORCE_LOGOUT)

        assert got_a == []
        assert got_b == [FORCE_LOGOUT]

    def test_channel_close(self):
        name = f"test-{uuid.uuid4().hex}"
        a, b = ChannelBus(name), ChannelBus(name)
        got = []
        b.subscribe(got.append)
        b.close()

        a.publish(FORCE_LOGOUT)

        assert got == []

    def test_storage_bus_ignores_stale_signal(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = KeyValueCache(Path(tmpdir))
            clock = ManualClock(0.0)
            StorageBus(cache, clock).publish(FORCE_LOGOUT)

            late = StorageBus(cache, clock)
            got = []
            late.subscribe(got.append)
            clock.advance(5)

            assert got == []

    def test_storage_bus_stops_polling_without_listeners(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            clock = ManualClock(0.0)
            bus = StorageBus(KeyValueCache(Path(tmpdir)), clock)
            unsubscribe = bus.subscribe(lambda message: None)
            assert clock.pending == 1

            unsubscribe()

            assert clock.pending == 0

    def test_open_bus_fallback(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            cache = KeyValueCache(Path(tmpdir))
            clock = ManualClock(0.0)

            assert isinstance(open_bus(cache, clock, channel_available=False), StorageBus)
            channel = open_bus(cache, clock, name=f"test-{uuid.uuid4().hex}")
            assert isinstance(channel, ChannelBus)
            channel.close()
