"""Tests for target tracking, smoothing and report throttling."""

import pytest

from opentrack.config import RadarConfig, TrackingMode
from opentrack.protocol import ParserStatistics, TargetSample
from opentrack.tracking import (
    ReportEmitter,
    SampleRing,
    TargetTracker,
    TrackingCycle,
)


def sample(index=0, x=0, y=1500, speed=0, gate=1, t=0.0, empty=False):
    return TargetSample(
        index=index, x_mm=x, y_mm=y, speed_cms=speed, gate=gate,
        timestamp=t, is_empty=empty,
    )


def empty_sample(index):
    return sample(index=index, x=-512, y=-32768, speed=0, gate=0, empty=True)


# =============================================================================
# SampleRing
# =============================================================================

class TestSampleRing:
    """Tests for the fixed-capacity smoothing buffer."""

    def test_empty_mean_is_none(self):
        assert SampleRing(3).mean() is None

    def test_partial_mean_uses_valid_entries_only(self):
        ring = SampleRing(5)
        ring.push(10, 100, 1)
        ring.push(20, 200, 3)

        assert len(ring) == 2
        assert ring.mean() == pytest.approx((15.0, 150.0, 2.0))

    def test_wraparound_keeps_latest(self):
        """Once full, the oldest sample is overwritten."""
        ring = SampleRing(3)
        for value in (1, 2, 3, 4, 5):
            ring.push(value, value, value)

        assert len(ring) == 3
        assert ring.is_full
        assert ring.mean() == pytest.approx((4.0, 4.0, 4.0))

    def test_clear(self):
        ring = SampleRing(3)
        ring.push(1, 2, 3)
        ring.clear()

        assert len(ring) == 0
        assert ring.mean() is None

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            SampleRing(0)


# =============================================================================
# TargetTracker
# =============================================================================

class TestActivity:
    """Tests for the activity thresholds."""

    def setup_method(self):
        self.tracker = TargetTracker(RadarConfig())

    def test_far_target_is_active(self):
        assert self.tracker.is_active(sample(x=0, y=500))

    def test_near_still_target_is_inactive(self):
        assert not self.tracker.is_active(sample(x=0, y=50, speed=0))

    def test_near_moving_target_is_active(self):
        assert self.tracker.is_active(sample(x=0, y=50, speed=-20))

    def test_empty_slot_is_inactive(self):
        """Zero-filled slots decode far away but are never targets."""
        assert not self.tracker.is_active(empty_sample(1))


class TestSingleTargetMode:
    """Tests for single-target attribution."""

    def setup_method(self):
        self.tracker = TargetTracker(RadarConfig())

    def test_first_active_sample_only(self):
        """Only one target is reported even when several are active."""
        cycle = self.tracker.update(
            [sample(0, y=50), sample(1, y=1200), sample(2, y=2500)],
            TrackingMode.SINGLE, now=0.0,
        )

        assert len(cycle.targets) == 1
        assert cycle.targets[0].index == 1
        assert cycle.targets[0].y_mm == 1200

    def test_other_slots_untouched(self):
        self.tracker.update(
            [sample(0, y=1200), sample(1, y=2500), sample(2, y=3000)],
            TrackingMode.SINGLE, now=0.0,
        )
        slots = self.tracker.slots

        assert slots[0].active
        assert not slots[1].active
        assert not slots[2].active
        assert slots[2].last_sample is None

    def test_lost_target_reported_once(self):
        """Disappearance yields one empty cycle, then nothing."""
        self.tracker.update([sample(0, y=1200)], TrackingMode.SINGLE, now=0.0)

        lost = self.tracker.update([empty_sample(0)], TrackingMode.SINGLE, now=0.1)
        assert lost is not None
        assert lost.targets == ()

        assert self.tracker.update([empty_sample(0)], TrackingMode.SINGLE, now=0.2) is None

    def test_idle_before_any_target(self):
        assert self.tracker.update([empty_sample(0)], TrackingMode.SINGLE, now=0.0) is None


class TestMultiTargetMode:
    """Tests for multi-target attribution."""

    def setup_method(self):
        self.tracker = TargetTracker(RadarConfig(multi_target=True))

    def test_all_active_targets_in_slot_order(self):
        cycle = self.tracker.update(
            [sample(0, y=1000), empty_sample(1), sample(2, y=3000)],
            TrackingMode.MULTI, now=0.0,
        )

        assert [t.index for t in cycle.targets] == [0, 2]
        assert cycle.mode == TrackingMode.MULTI

    def test_cycle_every_update(self):
        """Multi mode reports even when nothing is active."""
        cycle = self.tracker.update([empty_sample(0)], TrackingMode.MULTI, now=0.0)
        assert cycle is not None
        assert cycle.targets == ()

    def test_max_targets_limit(self):
        tracker = TargetTracker(RadarConfig(multi_target=True, max_targets=2))
        cycle = tracker.update(
            [sample(0, y=1000), sample(1, y=2000), sample(2, y=3000)],
            TrackingMode.MULTI, now=0.0,
        )

        assert [t.index for t in cycle.targets] == [0, 1]
        assert not tracker.slots[2].active


class TestSmoothing:
    """Tests for the moving-average filter."""

    def test_raw_values_without_filtering(self):
        tracker = TargetTracker(RadarConfig(enable_filtering=False))
        tracker.update([sample(0, y=1000)], TrackingMode.SINGLE, now=0.0)
        cycle = tracker.update([sample(0, y=2000)], TrackingMode.SINGLE, now=0.1)

        target = cycle.targets[0]
        assert target.y_mm == 2000
        assert not target.smoothed
        assert target.sample_count == 1

    def test_alternating_values_average(self):
        tracker = TargetTracker(RadarConfig(enable_filtering=True, smoothing_window=4))
        for i, y in enumerate((1000, 2000, 1000, 2000)):
            cycle = tracker.update([sample(0, y=y, speed=y // 100)], TrackingMode.SINGLE, now=i * 0.1)

        target = cycle.targets[0]
        assert target.smoothed
        assert target.sample_count == 4
        assert target.y_mm == pytest.approx(1500.0)
        assert target.speed_cms == pytest.approx(15.0)

    def test_converges_to_constant_input(self):
        tracker = TargetTracker(RadarConfig(enable_filtering=True, smoothing_window=3))
        tracker.update([sample(0, y=5000)], TrackingMode.SINGLE, now=0.0)
        for i in range(1, 4):
            cycle = tracker.update([sample(0, y=1000)], TrackingMode.SINGLE, now=i * 0.1)

        assert cycle.targets[0].y_mm == pytest.approx(1000.0)
        assert cycle.targets[0].sample_count == 3

    def test_distance_from_smoothed_position(self):
        tracker = TargetTracker(RadarConfig(enable_filtering=True, smoothing_window=2))
        tracker.update([sample(0, x=0, y=1000)], TrackingMode.SINGLE, now=0.0)
        cycle = tracker.update([sample(0, x=0, y=3000)], TrackingMode.SINGLE, now=0.1)

        assert cycle.targets[0].distance_m == pytest.approx(2.0)

    def test_slots_smoothed_independently(self):
        tracker = TargetTracker(RadarConfig(multi_target=True, enable_filtering=True))
        tracker.update([sample(0, y=1000), sample(1, y=4000)], TrackingMode.MULTI, now=0.0)
        cycle = tracker.update([sample(0, y=2000), sample(1, y=4000)], TrackingMode.MULTI, now=0.1)

        first, second = cycle.targets
        assert first.y_mm == pytest.approx(1500.0)
        assert second.y_mm == pytest.approx(4000.0)


class TestAngle:
    """Tests for bearing calculation."""

    def test_forty_five_degrees(self):
        tracker = TargetTracker(RadarConfig())
        cycle = tracker.update([sample(0, x=1000, y=1000)], TrackingMode.SINGLE, now=0.0)

        target = cycle.targets[0]
        assert target.angle_deg == pytest.approx(45.0)
        assert target.distance_m == pytest.approx(1.41421, rel=1e-4)

    def test_left_of_axis_is_negative(self):
        tracker = TargetTracker(RadarConfig())
        cycle = tracker.update([sample(0, x=-1000, y=1000)], TrackingMode.SINGLE, now=0.0)
        assert cycle.targets[0].angle_deg == pytest.approx(-45.0)

    def test_angle_disabled(self):
        tracker = TargetTracker(RadarConfig(enable_angle=False))
        cycle = tracker.update([sample(0, x=1000, y=1000)], TrackingMode.SINGLE, now=0.0)
        assert cycle.targets[0].angle_deg == 0.0


class TestExpiry:
    """Tests for idle slot expiry."""

    def setup_method(self):
        self.tracker = TargetTracker(RadarConfig(multi_target=True))

    def test_idle_slot_cleared(self):
        self.tracker.update([sample(0, y=1000)], TrackingMode.MULTI, now=0.0)

        assert self.tracker.expire(now=1.5) == [0]
        assert not self.tracker.slots[0].active
        assert self.tracker.slots[0].last_sample is None

    def test_exact_timeout_does_not_expire(self):
        self.tracker.update([sample(0, y=1000)], TrackingMode.MULTI, now=0.0)
        assert self.tracker.expire(now=1.0) == []
        assert self.tracker.slots[0].active

    def test_slots_expire_independently(self):
        self.tracker.update([sample(0, y=1000), sample(1, y=2000)], TrackingMode.MULTI, now=0.0)
        self.tracker.update([sample(1, y=2000)], TrackingMode.MULTI, now=0.8)

        assert self.tracker.expire(now=1.5) == [0]
        assert [s.index for s in self.tracker.active_slots] == [1]
        assert self.tracker.pop_lost_cycle() is None

    def test_lost_cycle_after_last_target_expires(self):
        """A quiet radar produces one empty cycle via expiry."""
        self.tracker.update([sample(0, y=1000)], TrackingMode.MULTI, now=0.0)
        self.tracker.expire(now=2.0)

        lost = self.tracker.pop_lost_cycle()
        assert isinstance(lost, TrackingCycle)
        assert lost.targets == ()
        assert lost.mode == TrackingMode.MULTI
        assert self.tracker.pop_lost_cycle() is None

    def test_expired_slot_smoothing_restarts(self):
        tracker = TargetTracker(RadarConfig(enable_filtering=True))
        tracker.update([sample(0, y=5000)], TrackingMode.SINGLE, now=0.0)
        tracker.expire(now=2.0)
        cycle = tracker.update([sample(0, y=1000)], TrackingMode.SINGLE, now=2.1)

        assert cycle.targets[0].y_mm == pytest.approx(1000.0)
        assert cycle.targets[0].sample_count == 1


class TestModeChanges:
    """Tests for switching between single and multi mode."""

    def test_mode_change_clears_slots(self):
        tracker = TargetTracker(RadarConfig())
        tracker.update([sample(0, y=1000)], TrackingMode.SINGLE, now=0.0)
        tracker.update([empty_sample(0), sample(1, y=2000)], TrackingMode.MULTI, now=0.1)

        assert tracker.mode == TrackingMode.MULTI
        assert not tracker.slots[0].active
        assert tracker.slots[1].active

    def test_unknown_mode_rejected(self):
        tracker = TargetTracker(RadarConfig())
        with pytest.raises(ValueError):
            tracker.update([sample(0)], "single", now=0.0)


# =============================================================================
# ReportEmitter
# =============================================================================

def cycle_with(y_mm, now):
    tracker = TargetTracker(RadarConfig())
    return tracker.update([sample(0, y=y_mm)], TrackingMode.SINGLE, now=now)


class TestReportEmitter:
    """Tests for report throttling."""

    def setup_method(self):
        self.config = RadarConfig(output_interval_s=0.1)
        self.stats = ParserStatistics()
        self.emitter = ReportEmitter(self.config, now=0.0)

    def test_throttles_to_latest_cycle(self):
        """Cycles inside the window coalesce; the newest one is emitted."""
        for i, t in enumerate((0.01, 0.02, 0.03), start=1):
            assert self.emitter.offer(cycle_with(1000 * i, t), self.stats, now=t) is None

        report = self.emitter.poll(self.stats, now=0.1)
        assert report is not None
        assert report.primary.y_mm == 3000
        assert self.emitter.reports_emitted == 1
        assert not self.emitter.has_pending

    def test_window_restarts_after_emit(self):
        self.emitter.offer(cycle_with(1000, 0.1), self.stats, now=0.1)
        assert self.emitter.offer(cycle_with(2000, 0.15), self.stats, now=0.15) is None
        assert self.emitter.poll(self.stats, now=0.25) is not None

    def test_nothing_pending_nothing_emitted(self):
        assert self.emitter.poll(self.stats, now=5.0) is None
        assert self.emitter.offer(None, self.stats, now=5.0) is None

    def test_report_carries_statistics(self):
        self.stats.record_valid(0.0)
        self.stats.record_valid(0.0)
        self.stats.record_dropped()

        report = self.emitter.offer(cycle_with(1000, 0.2), self.stats, now=0.2)
        assert report.valid_frames == 2
        assert report.dropped_frames == 1
        assert report.success_rate == pytest.approx(66.667, rel=1e-3)
        assert report.timestamp == 0.2

    def test_listeners_called(self):
        received = []
        self.emitter.add_listener(received.append)

        report = self.emitter.offer(cycle_with(1000, 0.2), self.stats, now=0.2)
        assert received == [report]

        self.emitter.remove_listener(received.append)
        self.emitter.offer(cycle_with(1000, 0.4), self.stats, now=0.4)
        assert len(received) == 1

    def test_empty_cycle_is_reported(self):
        empty = TrackingCycle((), TrackingMode.SINGLE, 0.2)
        report = self.emitter.offer(empty, self.stats, now=0.2)

        assert report is not None
        assert not report.has_targets
        assert report.primary is None

    def test_reset_drops_pending(self):
        self.emitter.offer(cycle_with(1000, 0.05), self.stats, now=0.05)
        self.emitter.reset(now=0.05)

        assert not self.emitter.has_pending
        assert self.emitter.poll(self.stats, now=1.0) is None
