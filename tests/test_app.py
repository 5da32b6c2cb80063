"""Workflow tests for the journal application service.

**Feature: weekly-journal**
"""

import json
import tempfile
import uuid
from datetime import datetime
from pathlib import Path

import pytest

from weekjournal.app import JournalApp
from weekjournal.db.cache import KeyValueCache
from weekjournal.db.store import CACHE_KEY
from weekjournal.models import JournalEntry
from weekjournal.remote.local import SqliteRemote
from weekjournal.session import ChannelBus, SessionState
from weekjournal.sync import ManualClock

EMAIL = "trader@example.com"
PASSWORD = "secret123"
WEEK = "2024-03-04_2024-03-10"
TIMEOUT = 30 * 60

TRADE_LOG = (
    "Time,Symbol,Type,Volume,Profit\n"
    "2024.03.05 10:00:00,EURUSD,buy,0.10,12.50\n"
    "2024.03.08 16:30:00,GBPUSD,sell,0.20,-2.25\n"
    "2023.03.07 10:00:00,EURUSD,buy,0.10,99.00\n"
)


class Env:
    """Temporary home shared by every app instance in a test."""

    def __init__(self, root: Path):
        self.root = root
        self.clock = ManualClock(datetime(2024, 3, 6, 9, 0))
        self.channel = f"auth-{uuid.uuid4().hex}"
        self.cache = KeyValueCache(root / "cache")

    def remote(self) -> SqliteRemote:
        return SqliteRemote(self.root / "journal.db", session_path=self.root / "session.json")

    def app(self, **kwargs) -> JournalApp:
        return JournalApp(
            self.remote(),
            self.cache,
            clock=self.clock,
            bus=ChannelBus(self.channel),
            idle_timeout=TIMEOUT,
            debounce=0.8,
            **kwargs,
        )


@pytest.fixture
def env():
    with tempfile.TemporaryDirectory() as tmpdir:
        e = Env(Path(tmpdir))
        e.remote().sign_up(EMAIL, PASSWORD)
        yield e


@pytest.fixture
def app(env: Env):
    app = env.app()
    app.open()
    app.gate.sign_in(EMAIL, PASSWORD)
    yield app
    app.close()


def _remote_weeks(env: Env, app: JournalApp) -> dict:
    return {
        row.week_start.isoformat(): JournalEntry.model_validate(row.payload)
        for row in env.remote().fetch_weeks(app.user.id)
    }


class TestLifecycle:
    """Opening, signing in and hydration."""

    def test_open_without_session(self, env: Env):
        app = env.app()

        assert app.open() == SessionState.NO_SESSION
        assert not app.signed_in
        assert app.sync is None

    def test_current_week_from_clock(self, app: JournalApp):
        assert app.current_week == WEEK

    def test_sign_in_hydrates(self, env: Env):
        first = env.app()
        first.open()
        first.gate.sign_in(EMAIL, PASSWORD)
        first.set_context("written elsewhere")
        first.close()
        env.cache.remove(CACHE_KEY)

        second = env.app()
        second.open()

        assert second.signed_in
        assert second.entry.context == "written elsewhere"
        second.close()

    def test_close_flushes_pending(self, env: Env, app: JournalApp):
        app.set_context("unsaved")
        app.close()

        assert _remote_weeks(env, app)["2024-03-04"].context == "unsaved"

    def test_edits_pushed_after_quiet_period(self, env: Env, app: JournalApp):
        app.set_context("a")
        app.set_context("ab")
        assert _remote_weeks(env, app) == {}

        env.clock.advance(1)

        assert _remote_weeks(env, app)["2024-03-04"].context == "ab"

    def test_sign_out_clears_state(self, env: Env, app: JournalApp):
        app.set_context("private")

        app.gate.sign_out()

        assert not app.signed_in
        assert app.store.week_keys() == []
        assert env.cache.get(CACHE_KEY) is None


class TestWeekNavigation:
    """Selecting weeks."""

    def test_set_week(self, app: JournalApp):
        assert app.set_week("2024-01-03") == "2024-01-01_2024-01-07"

    def test_shift_week(self, app: JournalApp):
        assert app.shift_week(-1) == "2024-02-26_2024-03-03"
        assert app.shift_week(2) == "2024-03-11_2024-03-17"


class TestEditing:
    """Notes, checklist and tags."""

    def test_answers_and_score(self, app: JournalApp):
        app.set_answer("stopLossPlaced", True)
        app.set_answer("followedPlan", True)

        assert app.score() == 67

        check = app.add_custom_check("No revenge trades")
        app.set_answer(check.id, True)

        assert app.score() == 75
        assert app.entry.answers["riskWithinLimit"] is False

    def test_unknown_check(self, app: JournalApp):
        with pytest.raises(ValueError):
            app.set_answer("nope", True)

    def test_tags(self, app: JournalApp):
        app.add_tag("breakout")
        app.add_tag("breakout")
        app.add_tag(" news ")
        app.remove_tag("breakout")
        app.remove_tag("missing")

        assert app.entry.tags == ["news"]

    def test_context_preserves_other_fields(self, app: JournalApp):
        app.add_tag("patience")
        app.set_context("Good week")

        assert app.entry.tags == ["patience"]


class TestTradeImport:
    """
    **Feature: weekly-journal, Property 18: Trade Import**

    *For any* successful import, the week's trades and stats are replaced
    by the in-week rows; a failed import leaves the week untouched.
    """

    def test_import_text(self, app: JournalApp):
        app.set_context("keep me")

        notice = app.import_trades_text(TRADE_LOG)

        assert notice.level == "success"
        assert notice.message == "Imported 2 trades for this week. PnL: 10.25"
        assert app.entry.stats.number_of_trades == 2
        assert app.entry.stats.pnl == 10.25
        assert len(app.entry.trades) == 2
        assert app.entry.context == "keep me"

    def test_reimport_replaces(self, app: JournalApp):
        app.import_trades_text(TRADE_LOG)
        app.import_trades_text("Time,Profit\n2024.03.06 09:00,1\n")

        assert app.entry.stats.number_of_trades == 1
        assert app.entry.stats.pnl == 1.0

    def test_import_error_leaves_state(self, app: JournalApp):
        app.import_trades_text(TRADE_LOG)

        notice = app.import_trades_text("Symbol,Profit\nEURUSD,5\n")

        assert notice.level == "error"
        assert notice.message == "Import failed: Trade log is missing Time column"
        assert app.entry.stats.number_of_trades == 2

    def test_import_long_comment(self, app: JournalApp):
        text = "Time,Symbol,Profit,Comment\n2024.03.05 10:00,EURUSD,5," + "x" * 200_000

        notice = app.import_trades_text(text)

        assert notice.level == "success"
        assert app.entry.stats.pnl == 5.0

    def test_import_file(self, env: Env, app: JournalApp):
        path = env.root / "history.csv"
        path.write_text(TRADE_LOG)

        assert app.import_trades(path).level == "success"

    def test_import_missing_file(self, env: Env, app: JournalApp):
        notice = app.import_trades(env.root / "missing.csv")

        assert notice.level == "error"
        assert notice.message.startswith("Import failed:")


class TestScreenshots:
    """Attaching and removing screenshots."""

    def test_add_and_remove(self, env: Env, app: JournalApp):
        image = env.root / "chart.png"
        image.write_bytes(b"\x89PNG\r\n\x1a\n")
        text = env.root / "notes.txt"
        text.write_text("x")

        notices = app.add_screenshots([image, text])

        assert [n.level for n in notices] == ["warning", "success"]
        shot = app.entry.screenshots[0]
        assert app.remove_screenshot(shot.id) is True
        assert app.remove_screenshot(shot.id) is False
        assert app.entry.screenshots == []


class TestBackup:
    """Exporting and importing the whole journal."""

    def test_export_and_import(self, env: Env, app: JournalApp):
        app.set_context("backed up")
        app.add_custom_check("A")
        path = app.export_backup(env.root / "backup.json")

        document = json.loads(path.read_text())
        assert set(document) == {"entries", "customChecks", "exportedAt", "version"}

        app.set_context("changed")
        notice = app.import_backup(path)

        assert notice.level == "success"
        assert app.entry.context == "backed up"

    def test_import_pushes_every_week(self, env: Env, app: JournalApp):
        path = env.root / "backup.json"
        path.write_text(json.dumps({
            "entries": {
                "2024-02-26_2024-03-03": {"context": "one"},
                WEEK: {"context": "two"},
            },
            "customChecks": [],
        }))

        app.import_backup(path)
        env.clock.advance(1)

        remote = _remote_weeks(env, app)
        assert remote["2024-02-26"].context == "one"
        assert remote["2024-03-04"].context == "two"

    def test_invalid_backup(self, env: Env, app: JournalApp):
        path = env.root / "backup.json"
        path.write_text(json.dumps({"entries": {}}))
        app.set_context("unchanged")

        notice = app.import_backup(path)

        assert notice.level == "error"
        assert app.entry.context == "unchanged"


class TestHistory:
    """Week summaries."""

    def test_history_newest_first(self, app: JournalApp):
        app.import_trades_text(TRADE_LOG)
        app.set_answer("followedPlan", True)
        app.shift_week(-1)
        app.set_context("earlier")

        rows = app.history()

        assert [r.key for r in rows] == [WEEK, "2024-02-26_2024-03-03"]
        assert rows[0].pnl == 10.25
        assert rows[0].score == 33
        assert rows[1].has_notes is True


class TestIdleAcrossInstances:
    """
    **Feature: weekly-journal, Property 19: Logout Everywhere**

    *For any* two open instances of the same user, an idle logout in one
    ends both and clears their journals.
    """

    def test_idle_logout_everywhere(self, env: Env, app: JournalApp):
        other = env.app()
        other.open()
        app.set_context("secret")

        env.clock.advance(1000)
        other.gate.record_activity("scroll")
        env.clock.advance(801)

        assert not app.signed_in
        assert not other.signed_in
        assert other.gate.logout_reason == "remote"
        assert app.store.week_keys() == []
        assert other.store.week_keys() == []
        assert env.cache.get(CACHE_KEY) is None
        other.close()
