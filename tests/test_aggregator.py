"""
Tests for core/aggregator.py.
"""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from core.aggregator import DetectionAggregator
from core.detector import DetectorKind
from core.models import DetectionResult
from core.settings import DetectionSettings
from helpers import FakeDetector


class TestDetectionAggregator(unittest.TestCase):

    def setUp(self):
        self.settings = DetectionSettings()

    def test_merges_fields(self):
        detectors = [
            FakeDetector(self.settings, DetectorKind.PHONE, DetectionResult(phone_detected=True)),
            FakeDetector(self.settings, DetectorKind.PROCESS, DetectionResult(suspicious_processes=True)),
            FakeDetector(self.settings, DetectorKind.ACTIVITY),
        ]
        aggregator = DetectionAggregator(detectors)
        aggregator.activate_all()
        result = aggregator.run_checks()
        self.assertEqual(
            result,
            DetectionResult(phone_detected=True, suspicious_processes=True),
        )
        self.assertTrue(result.is_distracted)
        self.assertEqual([d.check_calls for d in detectors], [1, 1, 1])

    def test_process_only_is_not_distracted(self):
        aggregator = DetectionAggregator([
            FakeDetector(self.settings, DetectorKind.PROCESS, DetectionResult(suspicious_processes=True)),
        ])
        aggregator.activate_all()
        self.assertFalse(aggregator.run_checks().is_distracted)

    def test_skips_inactive(self):
        inactive = FakeDetector(self.settings, DetectorKind.SLEEP, DetectionResult(sleep_detected=True),
                                can_activate=False)
        aggregator = DetectionAggregator([inactive])
        failed = aggregator.activate_all()
        self.assertEqual(failed, [inactive])
        self.assertEqual(aggregator.run_checks(), DetectionResult())
        self.assertEqual(inactive.check_calls, 0)

    def test_failing_check_keeps_last_result_and_continues(self):
        flaky = FakeDetector(self.settings, DetectorKind.SLEEP, DetectionResult(sleep_detected=True))
        phone = FakeDetector(self.settings, DetectorKind.PHONE, DetectionResult(phone_detected=True))
        aggregator = DetectionAggregator([flaky, phone])
        aggregator.activate_all()
        aggregator.run_checks()

        def boom():
            raise RuntimeError("camera unplugged")

        flaky._check = boom
        result = aggregator.run_checks()
        self.assertEqual(result, DetectionResult(phone_detected=True, sleep_detected=True))
        self.assertEqual(phone.check_calls, 2)

    def test_failing_first_check_merges_empty_result(self):
        flaky = FakeDetector(self.settings, DetectorKind.SLEEP)

        def boom():
            raise RuntimeError("model not loaded")

        flaky._check = boom
        phone = FakeDetector(self.settings, DetectorKind.PHONE, DetectionResult(phone_detected=True))
        aggregator = DetectionAggregator([flaky, phone])
        aggregator.activate_all()
        self.assertEqual(aggregator.run_checks(), DetectionResult(phone_detected=True))
        self.assertEqual(phone.check_calls, 1)

    def test_activation_exception_treated_as_failure(self):
        detector = FakeDetector(self.settings, DetectorKind.PHONE)

        def boom():
            raise RuntimeError("driver crashed")

        detector.activate = boom
        other = FakeDetector(self.settings, DetectorKind.ACTIVITY)
        aggregator = DetectionAggregator([detector, other])
        self.assertEqual(aggregator.activate_all(), [detector])
        self.assertTrue(other.is_active)

    def test_get_by_kind(self):
        phone = FakeDetector(self.settings, DetectorKind.PHONE)
        aggregator = DetectionAggregator([phone])
        self.assertIs(aggregator.get(DetectorKind.PHONE), phone)
        self.assertIsNone(aggregator.get(DetectorKind.SLEEP))

    def test_dispose_all(self):
        detectors = [FakeDetector(self.settings, DetectorKind.PHONE), FakeDetector(self.settings, DetectorKind.SLEEP)]
        aggregator = DetectionAggregator(detectors)
        aggregator.activate_all()
        aggregator.dispose_all()
        self.assertTrue(all(d.dispose_calls == 1 for d in detectors))
        self.assertFalse(any(d.is_active for d in detectors))


if __name__ == "__main__":
    unittest.main()
