from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

OUTPUT_BUFFER_LINES = 1000


@dataclass
class ServerProcess:
    """Represents the single llama-server subprocess owned by a supervisor."""

    process: asyncio.subprocess.Process
    started_at: float = field(default_factory=time.time)
    stdout_lines: deque = field(default_factory=lambda: deque(maxlen=OUTPUT_BUFFER_LINES))
    stderr_lines: deque = field(default_factory=lambda: deque(maxlen=OUTPUT_BUFFER_LINES))
    tasks: list[asyncio.Task] = field(default_factory=list)
    listening: bool = True

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def exit_code(self) -> Optional[int]:
        return self.process.returncode

    @property
    def is_alive(self) -> bool:
        return self.process.returncode is None

    @property
    def uptime(self) -> float:
        return time.time() - self.started_at

    def recent_output(self, limit: int = 50) -> str:
        lines = list(self.stderr_lines)[-limit:] + list(self.stdout_lines)[-limit:]
        return "\n".join(lines)
