"""
Running-process scan for screen recorders, virtual cameras and similar tools.

A process is suspicious when its lowercased name contains any of the
configured substrings. Classification happens once, when the list is
acquired; each poll replaces the list wholesale.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import psutil

import config
from core.detector import BaseDetector, DetectorKind
from core.models import DetectionResult, ProcessInfo
from core.scheduler import Dispatcher, TimerHandle
from core.settings import DetectionSettings

logger = logging.getLogger(__name__)


def is_suspicious_name(name: str, patterns: Sequence[str] = None) -> bool:
    """
    Check a process name against the suspicious substring patterns.

    Args:
        name: Process name as reported by the OS.
        patterns: Lowercase substrings (default from config).

    Returns:
        True if any pattern occurs in the lowercased name.
    """
    patterns = config.SUSPICIOUS_PROCESS_PATTERNS if patterns is None else patterns
    name_lower = (name or "").lower()
    return any(pattern in name_lower for pattern in patterns)


def classify_processes(
    raw_processes: Iterable[Dict[str, Any]],
    patterns: Sequence[str] = None,
) -> List[ProcessInfo]:
    """
    Classify a freshly acquired process list.

    Args:
        raw_processes: Iterable of {"name": str, "pid": int} mappings.
        patterns: Lowercase substrings (default from config).

    Returns:
        One ProcessInfo per input entry, in the same order.
    """
    return [
        ProcessInfo(
            name=proc.get("name") or "",
            pid=int(proc.get("pid") or 0),
            suspicious=is_suspicious_name(proc.get("name") or "", patterns),
        )
        for proc in raw_processes
    ]


def list_running_processes() -> List[Dict[str, Any]]:
    """
    Snapshot the running processes via psutil.

    Processes that exit or deny access mid-scan are skipped.

    Returns:
        List of {"name": str, "pid": int}.
    """
    processes = []
    for proc in psutil.process_iter(["pid", "name"]):
        try:
            info = proc.info
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        processes.append({"name": info.get("name") or "", "pid": info.get("pid") or 0})
    return processes


class ProcessDetector(BaseDetector):
    """
    Reports suspicious_processes when any running process matches a pattern.

    Suspicion is informational: it never makes a cycle count as distracted.
    While active the list is also refreshed on a 5 s poll so status displays
    stay current between cycles.
    """

    kind = DetectorKind.PROCESS

    def __init__(
        self,
        settings: DetectionSettings,
        dispatcher: Dispatcher,
        process_source: Callable[[], Iterable[Dict[str, Any]]] = list_running_processes,
        patterns: Optional[Sequence[str]] = None,
        poll_interval_ms: int = None,
    ):
        super().__init__(settings)
        self.dispatcher = dispatcher
        self.process_source = process_source
        self.patterns = tuple(patterns) if patterns is not None else config.SUSPICIOUS_PROCESS_PATTERNS
        self.poll_interval_ms = poll_interval_ms or config.PROCESS_POLL_INTERVAL_MS
        self.processes: List[ProcessInfo] = []
        self._poll_handle: Optional[TimerHandle] = None

    def activate(self) -> bool:
        if self._active:
            return True
        self._poll_handle = self.dispatcher.call_every(self.poll_interval_ms, self._poll)
        self._active = True
        logger.info("Process monitoring started")
        return True

    def _poll(self) -> None:
        if self._active:
            self.check()

    def refresh(self) -> List[ProcessInfo]:
        """Acquire and classify a fresh process list, replacing the old one."""
        try:
            raw = list(self.process_source())
        except Exception as e:
            logger.warning(f"Process list unavailable: {e}")
            raw = []
        self.processes = classify_processes(raw, self.patterns)
        return self.processes

    def _check(self) -> DetectionResult:
        processes = self.refresh()
        suspicious = [p for p in processes if p.suspicious]
        if suspicious:
            logger.info(f"Suspicious processes: {', '.join(p.name for p in suspicious)}")
        return DetectionResult(suspicious_processes=bool(suspicious))

    def get_processes(self) -> List[ProcessInfo]:
        return list(self.processes)

    def get_suspicious_processes(self) -> List[ProcessInfo]:
        return [p for p in self.processes if p.suspicious]

    def dispose(self) -> None:
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None
        self.processes = []
        super().dispose()
