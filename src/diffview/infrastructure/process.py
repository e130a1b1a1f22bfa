"""Registry of running git processes, so callers can list and cancel them"""

import itertools
import logging
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass
class Process:
    """A registered subprocess"""

    pid: int  # Registry id, not the OS pid
    description: str
    popen: subprocess.Popen
    start: datetime = field(default_factory=datetime.now)


class ProcessRegistry:
    """Thread-safe registry of running subprocesses"""

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._processes: Dict[int, Process] = {}

    def add(self, description: str, popen: subprocess.Popen) -> int:
        with self._lock:
            pid = next(self._ids)
            self._processes[pid] = Process(pid=pid, description=description, popen=popen)
        return pid

    def remove(self, pid: int) -> None:
        with self._lock:
            self._processes.pop(pid, None)

    def list(self) -> List[Process]:
        with self._lock:
            return sorted(self._processes.values(), key=lambda p: p.pid)

    def kill(self, pid: int) -> bool:
        """Kill a registered process

        Returns:
            True if the process was found and signalled
        """
        with self._lock:
            process = self._processes.get(pid)
        if process is None:
            return False

        if process.popen.poll() is None:
            logger.info(f"Killing process {pid}: {process.description}")
            try:
                process.popen.kill()
            except ProcessLookupError:
                # Exited between poll() and kill()
                pass
        return True

    def kill_all(self) -> int:
        """Kill every registered process; returns how many were signalled"""
        return sum(1 for process in self.list() if self.kill(process.pid))
