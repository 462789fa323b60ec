from typing import Optional

from pydantic import BaseModel, Field


class ProcessHealth(BaseModel):
    """Point-in-time sample of the server process."""

    is_running: bool = False
    pid: Optional[int] = None
    memory_mb: float = Field(0.0, ge=0)
    uptime_seconds: float = Field(0.0, ge=0)

    @property
    def status(self) -> str:
        return "running" if self.is_running else "stopped"
