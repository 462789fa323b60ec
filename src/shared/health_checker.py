import asyncio
from typing import Any, Optional

import requests

from src.entities.server import ServerProbe
from src.shared.logger import Logger

logger = Logger.get(__name__)


class HealthChecker:
    """Out-of-band liveness checks for the supervised llama-server."""

    @staticmethod
    async def probe_server(base_url: str, timeout: float = 1.0) -> ServerProbe:
        """
        Query `{base_url}/health` on a llama-server.

        llama-server answers 503 while the model is still loading and 200 once
        it accepts completions. Connection failures and any other status are
        reported as UNREACHABLE; the probe never raises.
        """
        url = f"{base_url.rstrip('/')}/health"
        try:
            response = await asyncio.to_thread(requests.get, url, timeout=timeout)
        except requests.RequestException as e:
            logger.debug(f"Health probe failed for {url}: {e}")
            return ServerProbe.UNREACHABLE

        if response.status_code == 200:
            return ServerProbe.OK
        if response.status_code == 503:
            logger.debug(f"llama-server at {url} is still loading")
            return ServerProbe.LOADING
        logger.warning(f"Unexpected health status from {url}: {response.status_code}")
        return ServerProbe.UNREACHABLE

    @staticmethod
    def check_process_running(process: Optional[Any]) -> bool:
        """True while an asyncio subprocess has not reported a return code."""
        if process is None:
            return False
        if process.returncode is not None:
            logger.debug(f"Process {process.pid} exited with code {process.returncode}")
            return False
        return True
