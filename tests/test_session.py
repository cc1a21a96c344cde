"""
Tests for Tracking Session
===========================
"""

import sys
import threading
import time
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from conftest import BlockingDetector, FakeCamera, FakeDetector, make_frame, make_hand, wait_until
from gesture_arcade.core.events import Events
from gesture_arcade.core.session import SessionConfig, TrackingSession
from gesture_arcade.core.types import SessionState
from gesture_arcade.errors import CameraUnavailable, ModelUnavailable


def build_session(camera, detector, **overrides):
    config = SessionConfig(threaded=False)
    for key, value in overrides.items():
        setattr(config, key, value)
    return TrackingSession(
        "default",
        config,
        camera_factory=lambda device_id, camera_config: camera,
        detector_provider=lambda detector_config: detector,
    )


class TestSessionLifecycle:
    """Test suite for session start, failure and stop."""

    def test_start_success(self):
        camera = FakeCamera()
        session = build_session(camera, FakeDetector())
        ready = []
        session.events.subscribe(Events.SESSION_READY, lambda device_id: ready.append(device_id))

        snapshot = session.start()

        assert snapshot.ready
        assert snapshot.error is None
        assert not snapshot.has_point
        assert session.state is SessionState.READY
        assert ready == ["default"]

    def test_camera_failure_is_terminal(self):
        camera = FakeCamera(fail_open=True)
        provider_calls = []
        session = TrackingSession(
            "default", SessionConfig(threaded=False),
            camera_factory=lambda device_id, config: camera,
            detector_provider=lambda config: provider_calls.append(config),
        )

        snapshot = session.start()

        assert not snapshot.ready
        assert snapshot.error == "Unable to access the selected camera."
        assert session.state is SessionState.FAILED
        assert provider_calls == []
        # No automatic recovery
        assert session.step() == snapshot

    def test_model_failure_releases_camera(self):
        camera = FakeCamera()

        def provider(config):
            raise ModelUnavailable("Could not load hand landmark model")

        session = TrackingSession(
            "default", SessionConfig(threaded=False),
            camera_factory=lambda device_id, config: camera,
            detector_provider=provider,
        )
        failures = []
        session.events.subscribe(Events.SESSION_FAILED, lambda device_id, error: failures.append(error))

        snapshot = session.start()

        assert not snapshot.ready
        assert "model" in snapshot.error
        assert camera.close_calls == 1
        assert failures == [snapshot.error]

    def test_unexpected_model_error_fails_session(self):
        camera = FakeCamera()

        def provider(config):
            raise ValueError("unknown url type: 'not-a-url'")

        session = TrackingSession(
            "default", SessionConfig(threaded=False),
            camera_factory=lambda device_id, config: camera,
            detector_provider=provider,
        )

        snapshot = session.start()

        assert session.state is SessionState.FAILED
        assert not snapshot.ready
        assert "not-a-url" in snapshot.error
        assert camera.close_calls == 1

    def test_stream_death_after_ready(self):
        camera = FakeCamera(frames=[make_frame(0.0)])
        session = build_session(camera, FakeDetector([make_hand()]))
        received = []
        session.subscribe(received.append)

        session.start()
        assert session.step().has_point
        snapshot = session.step()

        assert session.state is SessionState.FAILED
        assert not snapshot.ready
        assert not snapshot.has_point
        assert snapshot.error
        assert camera.close_calls == 1
        assert received[-1] == snapshot

    def test_stop_releases_camera(self):
        camera = FakeCamera(frames=[make_frame(0.0)])
        session = build_session(camera, FakeDetector([make_hand()]))
        stopped = []
        session.events.subscribe(Events.SESSION_STOPPED, lambda device_id: stopped.append(device_id))
        session.start()
        session.step()

        session.stop()
        session.stop()

        assert camera.close_calls == 1
        assert session.state is SessionState.STOPPED
        assert not session.snapshot.ready
        assert not session.snapshot.has_point
        assert stopped == ["default"]

    def test_cannot_restart(self):
        session = build_session(FakeCamera(), FakeDetector())
        session.start()
        session.stop()

        with pytest.raises(RuntimeError):
            session.start()

    def test_step_requires_unthreaded_session(self):
        session = build_session(FakeCamera(), FakeDetector(), threaded=True)
        with pytest.raises(RuntimeError):
            session.step()

    def test_stop_from_listener(self):
        camera = FakeCamera(frames=[make_frame(0.0)])
        session = build_session(camera, FakeDetector([make_hand()]))
        session.start()
        session.subscribe(lambda snapshot: snapshot.has_point and session.stop())

        session.step()

        assert session.state is SessionState.STOPPED
        assert camera.close_calls == 1


class TestSessionFramePath:
    """Test suite for per-frame processing in inline mode."""

    def test_fingertip_snapshot(self):
        camera = FakeCamera(frames=[make_frame(0.0)])
        session = build_session(camera, FakeDetector([make_hand(tip=(0.25, 0.4))]))
        session.start()

        snapshot = session.step()

        assert snapshot.ready
        assert snapshot.gesture == "point"
        assert snapshot.x == pytest.approx(0.75)
        assert snapshot.y == pytest.approx(0.4)
        assert snapshot.frame is not None

    def test_palm_snapshot(self):
        camera = FakeCamera(frames=[make_frame(0.0)])
        session = build_session(camera, FakeDetector([make_hand(tip=None)]))
        session.start()

        assert session.step().gesture == "palm"

    def test_short_dropout_holds_point(self):
        frames = [make_frame(0.0, 1), make_frame(50.0, 2), make_frame(200.0, 3)]
        session = build_session(FakeCamera(frames), FakeDetector([make_hand(), None, None]))
        acquired, lost = [], []
        session.events.subscribe(Events.HAND_ACQUIRED, lambda device_id: acquired.append(device_id))
        session.events.subscribe(Events.HAND_LOST, lambda device_id: lost.append(device_id))
        session.start()

        first = session.step()
        held = session.step()
        dropped = session.step()

        assert (held.x, held.y, held.gesture) == (first.x, first.y, first.gesture)
        assert not dropped.has_point
        assert dropped.gesture is None
        assert dropped.ready
        assert len(acquired) == 1
        assert len(lost) == 1

    def test_gesture_held_with_point_during_dropout(self):
        """A held point keeps the tag of the last detection, not None."""
        frames = [make_frame(0.0, 1), make_frame(40.0, 2), make_frame(80.0, 3)]
        detector = FakeDetector([make_hand(tip=None), None, None])
        session = build_session(FakeCamera(frames), detector)
        session.start()

        assert session.step().gesture == "palm"
        for _ in range(2):
            held = session.step()
            assert held.has_point
            assert held.gesture == "palm"

    def test_detector_exception_counts_as_miss(self):
        frames = [make_frame(0.0, 1), make_frame(16.0, 2)]
        detector = FakeDetector([RuntimeError("inference crashed"), make_hand()])
        session = build_session(FakeCamera(frames), detector)
        session.start()

        snapshot = session.step()
        assert session.state is SessionState.READY
        assert snapshot.ready
        assert not snapshot.has_point
        assert session.stats.detection_failures == 1

        assert session.step().has_point

    def test_malformed_detector_output_counts_as_miss(self):
        session = build_session(FakeCamera([make_frame(0.0)]), FakeDetector(["not landmarks"]))
        session.start()

        assert not session.step().has_point
        assert session.stats.detection_failures == 1

    def test_unsubscribe(self):
        frames = [make_frame(0.0, 1), make_frame(16.0, 2)]
        session = build_session(FakeCamera(frames), FakeDetector())
        received = []
        unsubscribe = session.subscribe(received.append)
        session.start()

        session.step()
        count = len(received)
        unsubscribe()
        session.step()

        assert count > 0
        assert len(received) == count


class TestThreadedSession:
    """Test suite for background frame delivery."""

    def test_frames_dropped_while_detecting(self):
        camera = FakeCamera()
        detector = BlockingDetector()
        session = build_session(camera, detector, threaded=True)
        session.start()

        camera.on_frame(make_frame(0.0, 1))
        assert detector.entered.wait(timeout=2.0)
        assert session.is_detecting

        camera.on_frame(make_frame(16.0, 2))
        camera.on_frame(make_frame(33.0, 3))

        detector.release.set()
        assert wait_until(lambda: not session.is_detecting)
        assert wait_until(lambda: session.snapshot.has_point)

        assert detector.calls == 1
        assert session.stats.dropped_frames == 2
        assert session.stats.total_frames == 3
        session.stop()
        assert camera.close_calls == 1

    def test_camera_error_from_capture_thread(self):
        camera = FakeCamera()
        session = build_session(camera, FakeDetector(), threaded=True)
        session.start()

        camera.on_error(CameraUnavailable("Camera stopped delivering frames"))

        assert session.state is SessionState.FAILED
        assert session.snapshot.error == "Camera stopped delivering frames"
        assert camera.close_calls == 1
        session.stop()

    def test_no_recovered_snapshot_after_camera_error(self):
        camera = FakeCamera()
        detector = FakeDetector([make_hand()])
        session = build_session(camera, detector, threaded=True)
        session.start()
        received = []
        session.subscribe(received.append)

        time.sleep(0.2)
        camera.on_error(CameraUnavailable("Camera stopped delivering frames"))
        camera.on_frame(make_frame(250.0))

        assert detector.calls == 0
        assert received
        assert all(not snapshot.ready for snapshot in received)
        assert all(snapshot.error for snapshot in received)

    def test_frames_ignored_after_stop(self):
        camera = FakeCamera()
        detector = FakeDetector([make_hand()])
        session = build_session(camera, detector, threaded=True)
        session.start()
        session.stop()

        camera.on_frame(make_frame(0.0))

        assert detector.calls == 0
        assert not session.snapshot.has_point

    def test_timer_delivery(self):
        frames = [make_frame(i * 16.0, i + 1) for i in range(3)]
        camera = FakeCamera(frames)
        session = build_session(camera, FakeDetector([make_hand()] * 3),
                                threaded=True, frame_delivery="timer", timer_interval_ms=1.0)
        failed = threading.Event()
        session.events.subscribe(Events.SESSION_FAILED, lambda device_id, error: failed.set())

        session.start()

        # The scripted camera runs out of frames, which ends the stream
        assert failed.wait(timeout=2.0)
        assert session.state is SessionState.FAILED
        assert camera.close_calls == 1
        session.stop()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
