"""
Tests for camera/hysteresis.py and the frame detectors built on it.
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).parent.parent))

from camera.hysteresis import HysteresisTracker, ScoreWindow, threshold_from_setting
from camera.phone_detector import PhoneDetector
from camera.sleep_detector import SleepDetector
from camera.capture import CameraFailureType
from core.settings import DetectionSettings


class TestThresholdFromSetting(unittest.TestCase):

    def test_default_settings(self):
        self.assertEqual(threshold_from_setting(0.7), 7)
        self.assertEqual(threshold_from_setting(0.6), 6)

    def test_rounds_half_up(self):
        self.assertEqual(threshold_from_setting(0.25), 3)
        self.assertEqual(threshold_from_setting(0.05), 1)

    def test_bounds(self):
        self.assertEqual(threshold_from_setting(0.0), 0)
        self.assertEqual(threshold_from_setting(1.0), 10)


class TestHysteresisTracker(unittest.TestCase):

    def test_counter_never_negative(self):
        tracker = HysteresisTracker(3)
        for _ in range(5):
            tracker.update(False)
        self.assertEqual(tracker.count, 0)

    def test_stable_after_threshold_hits(self):
        tracker = HysteresisTracker(3)
        self.assertFalse(tracker.update(True))
        self.assertFalse(tracker.update(True))
        self.assertTrue(tracker.update(True))

    def test_isolated_miss_decays_by_one(self):
        """A single miss does not wipe out a building detection."""
        tracker = HysteresisTracker(3)
        tracker.update(True)
        tracker.update(True)
        tracker.update(False)
        self.assertEqual(tracker.count, 1)
        tracker.update(True)
        self.assertFalse(tracker.stable)
        tracker.update(True)
        self.assertTrue(tracker.stable)

    def test_stable_clears_when_counter_drops(self):
        tracker = HysteresisTracker(2)
        tracker.update(True)
        tracker.update(True)
        self.assertFalse(tracker.update(False))

    def test_zero_threshold_is_always_stable(self):
        tracker = HysteresisTracker(0)
        self.assertTrue(tracker.update(False))

    def test_negative_threshold_rejected(self):
        with self.assertRaises(ValueError):
            HysteresisTracker(-1)

    def test_reset(self):
        tracker = HysteresisTracker(1)
        tracker.update(True)
        tracker.reset()
        self.assertEqual(tracker.count, 0)
        self.assertFalse(tracker.stable)


class TestScoreWindow(unittest.TestCase):

    def test_evicts_oldest(self):
        window = ScoreWindow(3)
        for score in (1.0, 1.0, 1.0, 0.0):
            window.push(score)
        self.assertEqual(len(window), 3)
        self.assertAlmostEqual(window.average(), 2 / 3)

    def test_empty_average(self):
        self.assertEqual(ScoreWindow(5).average(), 0.0)


class TestPhoneDetector(unittest.TestCase):
    """Phone detection debounce with an injected scoring oracle."""

    def setUp(self):
        self.settings = DetectionSettings(phone_detection_threshold=0.7)
        self.scores = []
        self.detector = PhoneDetector(self.settings, oracle=lambda: self.scores.pop(0))
        self.assertTrue(self.detector.activate())

    def test_five_hits_not_enough(self):
        self.scores = [0.9] * 5
        results = [self.detector.check() for _ in range(5)]
        self.assertFalse(any(r.phone_detected for r in results))

    def test_seven_hits_detect(self):
        self.scores = [0.9] * 7
        results = [self.detector.check() for _ in range(7)]
        self.assertTrue(results[-1].phone_detected)
        self.assertFalse(results[-2].phone_detected)

    def test_only_sets_own_field(self):
        self.scores = [0.9] * 7
        for _ in range(7):
            result = self.detector.check()
        self.assertFalse(result.sleep_detected)
        self.assertFalse(result.inactive)
        self.assertFalse(result.suspicious_processes)

    def test_score_at_cutoff_is_miss(self):
        self.scores = [0.5] * 10
        for _ in range(10):
            self.detector.check()
        self.assertEqual(self.detector.tracker.count, 0)

    def test_oracle_failure_keeps_last_stable_value(self):
        self.scores = [0.9] * 7
        for _ in range(7):
            self.detector.check()

        def failing():
            raise RuntimeError("camera gone")

        self.detector._oracle = failing
        self.assertTrue(self.detector.check().phone_detected)
        self.assertEqual(self.detector.tracker.count, 7)

    def test_inactive_detector_returns_all_false(self):
        self.detector.deactivate()
        self.scores = [0.9] * 10
        self.assertFalse(self.detector.check().phone_detected)
        self.assertEqual(len(self.scores), 10)

    def test_dispose_clears_and_is_idempotent(self):
        self.scores = [0.9] * 3
        for _ in range(3):
            self.detector.check()
        self.detector.dispose()
        self.detector.dispose()
        self.assertEqual(self.detector.tracker.count, 0)
        self.assertFalse(self.detector.is_active)


class TestSleepDetector(unittest.TestCase):

    def setUp(self):
        self.settings = DetectionSettings(sleep_detection_threshold=0.3)
        self.scores = []
        self.detector = SleepDetector(self.settings, oracle=lambda: self.scores.pop(0))
        self.detector.activate()

    def test_closed_eyes_detected_after_threshold(self):
        self.scores = [0.0] * 3
        results = [self.detector.check() for _ in range(3)]
        self.assertEqual([r.sleep_detected for r in results], [False, False, True])

    def test_window_average_smooths_blink(self):
        """A closed-eye sample after open ones keeps the average above the cutoff."""
        self.scores = [1.0] * 5 + [0.0]
        for _ in range(6):
            result = self.detector.check()
        self.assertFalse(result.sleep_detected)
        self.assertEqual(self.detector.tracker.count, 0)

    def test_history_capacity(self):
        self.scores = [1.0] * 40
        for _ in range(40):
            self.detector.check()
        self.assertEqual(len(self.detector.history), 30)

    def test_dispose_clears_history(self):
        self.scores = [0.0] * 2
        self.detector.check()
        self.detector.check()
        self.detector.dispose()
        self.assertEqual(len(self.detector.history), 0)
        self.assertEqual(self.detector.tracker.count, 0)


class TestFrameDetectorCapture(unittest.TestCase):
    """Camera acquisition failure leaves the detector disabled."""

    def test_failed_acquire_disables_detector(self):
        capture = MagicMock()
        capture.acquire.return_value = False
        capture.failure_type = CameraFailureType.IN_USE
        capture.error_message = "busy"
        detector = PhoneDetector(DetectionSettings(), capture=capture)

        self.assertFalse(detector.activate())
        self.assertFalse(detector.is_active)
        self.assertEqual(detector.failure_type, CameraFailureType.IN_USE)
        self.assertFalse(detector.check().phone_detected)

    def test_frames_scored_from_capture(self):
        capture = MagicMock()
        capture.acquire.return_value = True
        capture.grab_frame.return_value = "frame"
        detector = PhoneDetector(DetectionSettings(phone_detection_threshold=0.1), capture=capture)
        detector.score_frame = MagicMock(return_value=0.9)

        detector.activate()
        self.assertTrue(detector.check().phone_detected)
        detector.score_frame.assert_called_once_with("frame")

        detector.dispose()
        capture.release.assert_called_once()


if __name__ == "__main__":
    unittest.main()
