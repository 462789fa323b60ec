import time
from typing import Optional

import psutil

from src.entities.process_health import ProcessHealth
from src.shared.health_checker import HealthChecker
from src.shared.logger import Logger

logger = Logger.get(__name__)


class ProcessHealthMonitor:
    """
    Read-only sampling of the supervised server process. Never raises and
    never touches the supervisor's readiness state.
    """

    def __init__(self):
        self._process = None
        self._started_at: Optional[float] = None

    def attach(self, process, started_at: Optional[float] = None) -> None:
        self._process = process
        self._started_at = started_at if started_at is not None else time.time()

    def detach(self) -> None:
        self._process = None
        self._started_at = None

    def health(self) -> ProcessHealth:
        process = self._process
        if not HealthChecker.check_process_running(process):
            return ProcessHealth(is_running=False)

        try:
            ps_process = psutil.Process(process.pid)
            if not ps_process.is_running() or ps_process.status() == psutil.STATUS_ZOMBIE:
                return ProcessHealth(is_running=False, pid=process.pid)
            memory_mb = ps_process.memory_info().rss / (1024 * 1024)
        except (psutil.Error, OSError) as e:
            logger.debug(f"Could not sample process {getattr(process, 'pid', None)}: {e}")
            return ProcessHealth(is_running=False)

        uptime = time.time() - self._started_at if self._started_at else 0.0
        return ProcessHealth(
            is_running=True,
            pid=process.pid,
            memory_mb=round(memory_mb, 1),
            uptime_seconds=round(max(uptime, 0.0), 1),
        )
