import asyncio
import time
from typing import Optional

import httpx

from src.shared.errors import InferenceTimeoutError, NetworkError
from src.shared.logger import Logger

logger = Logger.get(__name__)


class BaseLLMService:
    name = "base"

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    def _status_message(self, response: httpx.Response) -> str:
        return f"HTTP {response.status_code}: {response.text[:200]}"

    async def _post_json(self, url: str, payload: dict, headers: Optional[dict] = None,
                         timeout: Optional[float] = None) -> dict:
        """
        POST a JSON body and return the decoded JSON response.

        The whole exchange runs under a deadline; on expiry the request is
        cancelled and the client closed before InferenceTimeoutError is raised.
        """
        timeout = timeout if timeout is not None else self.timeout
        start_time = time.time()
        logger.debug(f"Sending request to {self.name}: URL={url}")
        try:
            async with httpx.AsyncClient() as client:
                response = await asyncio.wait_for(
                    client.post(url, json=payload, headers=headers, timeout=timeout),
                    timeout=timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            elapsed = time.time() - start_time
            logger.error(f"Request to {url} timed out after {elapsed:.2f}s")
            raise InferenceTimeoutError(f"Request to {self.name} timed out after {timeout:.0f}s") from e
        except httpx.HTTPError as e:
            elapsed = time.time() - start_time
            logger.error(f"Request to {url} failed after {elapsed:.2f}s: {e}")
            raise NetworkError(f"Request to {self.name} failed: {e}") from e

        elapsed = time.time() - start_time
        logger.debug(f"{self.name} response status: {response.status_code}, elapsed: {elapsed:.2f}s")
        if not response.is_success:
            raise NetworkError(self._status_message(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON in response from {self.name}: {response.text[:200]}") from e
