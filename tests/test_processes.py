"""
Tests for screen/processes.py: pattern matching and the process detector.
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, PropertyMock, patch

import psutil

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from core.settings import DetectionSettings
from helpers import ManualClock, ManualDispatcher
from screen.processes import (
    ProcessDetector,
    classify_processes,
    is_suspicious_name,
    list_running_processes,
)


class TestPatternMatching(unittest.TestCase):

    def test_obs_studio_suspicious(self):
        self.assertTrue(is_suspicious_name("OBS Studio"))

    def test_spotify_not_suspicious(self):
        self.assertFalse(is_suspicious_name("Spotify"))

    def test_case_insensitive_substring(self):
        self.assertTrue(is_suspicious_name("ManyCam Virtual Camera Service"))
        self.assertTrue(is_suspicious_name("Bandicam.exe"))

    def test_empty_name(self):
        self.assertFalse(is_suspicious_name(""))
        self.assertFalse(is_suspicious_name(None))

    def test_classify_preserves_order(self):
        processes = classify_processes([
            {"name": "Spotify", "pid": 10},
            {"name": "obs64.exe", "pid": 11},
        ])
        self.assertEqual([p.pid for p in processes], [10, 11])
        self.assertEqual([p.suspicious for p in processes], [False, True])

    def test_custom_patterns(self):
        self.assertTrue(is_suspicious_name("Zoom", patterns=["zoom"]))
        self.assertFalse(is_suspicious_name("OBS", patterns=["zoom"]))


class TestListRunningProcesses(unittest.TestCase):

    @patch("screen.processes.psutil.process_iter")
    def test_skips_vanished_processes(self, mock_iter):
        good = MagicMock()
        good.info = {"pid": 1, "name": "python"}
        gone = MagicMock()
        type(gone).info = PropertyMock(side_effect=psutil.NoSuchProcess(2))
        mock_iter.return_value = [good, gone]

        self.assertEqual(list_running_processes(), [{"name": "python", "pid": 1}])


class TestProcessDetector(unittest.TestCase):

    def setUp(self):
        self.clock = ManualClock()
        self.dispatcher = ManualDispatcher(self.clock)
        self.source = MagicMock(return_value=[{"name": "Spotify", "pid": 1}])
        self.detector = ProcessDetector(DetectionSettings(), self.dispatcher, process_source=self.source)

    def test_suspicious_flag(self):
        self.detector.activate()
        self.assertFalse(self.detector.check().suspicious_processes)

        self.source.return_value = [{"name": "OBS Studio", "pid": 2}]
        result = self.detector.check()
        self.assertTrue(result.suspicious_processes)
        self.assertFalse(result.is_distracted)

    def test_list_replaced_wholesale(self):
        self.detector.activate()
        self.detector.check()
        self.source.return_value = [{"name": "OBS Studio", "pid": 2}]
        self.detector.check()
        self.assertEqual([p.name for p in self.detector.get_processes()], ["OBS Studio"])
        self.assertEqual([p.pid for p in self.detector.get_suspicious_processes()], [2])

    def test_polls_every_five_seconds(self):
        self.detector.activate()
        self.dispatcher.advance(15000)
        self.assertEqual(self.source.call_count, 3)

    def test_source_failure_yields_empty_list(self):
        self.source.side_effect = OSError("denied")
        self.detector.activate()
        self.assertFalse(self.detector.check().suspicious_processes)
        self.assertEqual(self.detector.get_processes(), [])

    def test_dispose_cancels_poll(self):
        self.detector.activate()
        self.detector.dispose()
        self.dispatcher.advance(20000)
        self.source.assert_not_called()
        self.assertEqual(self.detector.get_processes(), [])


if __name__ == "__main__":
    unittest.main()
