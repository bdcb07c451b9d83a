"""
Tests for the temporal trackers, duplicate suppression and state sweeps.
"""

import pytest

from shipwatch.config import IssueKind, IssueSource, StalenessMode
from shipwatch.tracking.application import (
    AmbiguousStatusStore,
    AmbiguousStatusTracker,
    DuplicateSuppressor,
    MonitorState,
    RecentAlertStore,
    StalenessTracker,
    StateSweeper,
    UpdateHistoryStore,
)
from shipwatch.tracking.infrastructure import SweepScheduler

STUCK_TEXT = "UPS: Arrived at Facility - Leipzig"


class TestStalenessTracker:

    @pytest.fixture
    def tracker(self, clock):
        return StalenessTracker(UpdateHistoryStore(), threshold_hours=36, clock=clock)

    def test_first_observation_never_alerts(self, tracker):
        assert tracker.observe("item-1", STUCK_TEXT) is None

    def test_alerts_only_after_threshold(self, tracker, clock):
        tracker.observe("item-1", STUCK_TEXT)

        clock.advance(hours=35)
        assert tracker.observe("item-1", STUCK_TEXT) is None

        clock.advance(hours=2)
        issue = tracker.observe("item-1", STUCK_TEXT)

        assert issue is not None
        assert issue.kind == IssueKind.STALE_TRACKING
        assert issue.source == IssueSource.STALENESS
        assert "37 hours" in issue.reason
        assert "3 times" in issue.reason

    def test_exactly_at_threshold_is_quiet(self, tracker, clock):
        tracker.observe("item-1", STUCK_TEXT)
        clock.advance(hours=36)

        assert tracker.observe("item-1", STUCK_TEXT) is None

    def test_one_shot_alerts_once_per_run(self, tracker, clock):
        tracker.observe("item-1", STUCK_TEXT)
        clock.advance(hours=37)
        assert tracker.observe("item-1", STUCK_TEXT) is not None

        clock.advance(hours=3)
        assert tracker.observe("item-1", STUCK_TEXT) is None

    def test_changed_text_resets_the_timer(self, tracker, clock):
        tracker.observe("item-1", STUCK_TEXT)
        clock.advance(hours=30)
        tracker.observe("item-1", "UPS: Departed from Facility")

        clock.advance(hours=30)
        assert tracker.observe("item-1", "UPS: Departed from Facility") is None

    def test_repeat_mode_alerts_every_time(self, clock):
        tracker = StalenessTracker(
            UpdateHistoryStore(), threshold_hours=36, mode=StalenessMode.REPEAT, clock=clock
        )
        tracker.observe("item-1", STUCK_TEXT)

        clock.advance(hours=37)
        assert tracker.observe("item-1", STUCK_TEXT) is not None
        clock.advance(hours=1)
        assert tracker.observe("item-1", STUCK_TEXT) is not None

    def test_entities_are_tracked_independently(self, tracker, clock):
        tracker.observe("item-1", STUCK_TEXT)
        clock.advance(hours=37)
        tracker.observe("item-2", STUCK_TEXT)

        assert tracker.observe("item-2", STUCK_TEXT) is None
        assert tracker.observe("item-1", STUCK_TEXT) is not None


class TestAmbiguousStatusTracker:

    @pytest.fixture
    def store(self):
        return AmbiguousStatusStore()

    @pytest.fixture
    def tracker(self, store, clock):
        return AmbiguousStatusTracker(store, clock=clock)

    def test_on_hold_times_out_after_six_hours(self, tracker, clock):
        text = "DHL: Shipment on hold"
        assert tracker.observe("item-1", text) is None

        clock.advance(hours=7)
        issue = tracker.observe("item-1", text)

        assert issue is not None
        assert issue.kind == IssueKind.AMBIGUOUS_TIMEOUT
        assert issue.source == IssueSource.AMBIGUOUS
        assert '"on hold"' in issue.reason
        assert issue.route == "China-UK"

    def test_alerts_once_then_starts_over(self, tracker, clock):
        text = "DHL: Shipment on hold"
        tracker.observe("item-1", text)
        clock.advance(hours=7)
        assert tracker.observe("item-1", text) is not None

        clock.advance(hours=1)
        assert tracker.observe("item-1", text) is None

    def test_customs_clearance_timeout(self, tracker, clock):
        text = "Customs clearance in progress"
        tracker.observe("item-1", text)

        clock.advance(hours=17)
        assert tracker.observe("item-1", text) is None

        clock.advance(hours=1)
        assert tracker.observe("item-1", text) is not None

    def test_phrase_disappearing_clears_record(self, tracker, store, clock):
        tracker.observe("item-1", "Shipment on hold")
        assert store.get("item-1") is not None

        clock.advance(hours=2)
        tracker.observe("item-1", "Out for delivery")

        assert store.get("item-1") is None

    def test_specific_phrase_wins_over_generic(self, tracker, store):
        tracker.observe("item-1", "Clearance processing ongoing")

        record = store.get("item-1")
        assert record.phrase == "clearance processing"
        assert record.timeout_hours == 18

    def test_custom_status_table(self, store, clock):
        tracker = AmbiguousStatusTracker(store, statuses=lambda: {"awaiting pickup": 2}, clock=clock)
        tracker.observe("item-1", "Awaiting pickup at depot")

        clock.advance(hours=2)
        assert tracker.observe("item-1", "Awaiting pickup at depot") is not None


class TestDuplicateSuppressor:

    @pytest.fixture
    def suppressor(self, clock):
        return DuplicateSuppressor(RecentAlertStore(), window_seconds=300, clock=clock)

    def test_first_alert_passes(self, suppressor):
        assert not suppressor.should_suppress("item-1", "held by customs", IssueKind.HELD_IN_CUSTOMS)

    def test_repeat_inside_window_is_suppressed(self, suppressor, clock):
        suppressor.should_suppress("item-1", "held by customs", IssueKind.HELD_IN_CUSTOMS)
        clock.advance(minutes=4)

        assert suppressor.should_suppress("item-1", "held by customs", IssueKind.HELD_IN_CUSTOMS)

    def test_repeat_after_window_passes(self, suppressor, clock):
        suppressor.should_suppress("item-1", "held by customs", IssueKind.HELD_IN_CUSTOMS)
        clock.advance(minutes=6)

        assert not suppressor.should_suppress("item-1", "held by customs", IssueKind.HELD_IN_CUSTOMS)

    def test_different_kind_is_not_a_duplicate(self, suppressor):
        suppressor.should_suppress("item-1", "held by customs", IssueKind.HELD_IN_CUSTOMS)

        assert not suppressor.should_suppress("item-1", "held by customs", IssueKind.STALE_TRACKING)


def test_sweeper_evicts_idle_entities(clock):
    state = MonitorState()
    staleness = StalenessTracker(state.history, clock=clock)
    ambiguous = AmbiguousStatusTracker(state.ambiguous, clock=clock)
    suppressor = DuplicateSuppressor(state.recent_alerts, clock=clock)

    staleness.observe("old", "On hold")
    ambiguous.observe("old", "On hold")
    suppressor.should_suppress("old", "On hold", IssueKind.TRANSIT_DELAY)

    clock.advance(days=15)
    staleness.observe("fresh", "In transit")

    removed = StateSweeper(state, idle_ttl_hours=24 * 14, clock=clock).sweep()

    assert removed == {"update_history": 1, "ambiguous_statuses": 1, "recent_alerts": 1}
    assert state.sizes() == {"update_history": 1, "ambiguous_statuses": 0, "recent_alerts": 0}


@pytest.mark.asyncio
async def test_sweep_scheduler_lifecycle():
    async def job():
        pass

    disabled = SweepScheduler(interval_seconds=0)
    await disabled.start(job)
    assert not disabled.is_running

    scheduler = SweepScheduler(interval_seconds=3600)
    await scheduler.start(job)
    assert scheduler.is_running

    await scheduler.stop()
    assert not scheduler.is_running
