"""
Test configuration and fixtures for the inference supervisor tests.
"""
import asyncio
import json
import shutil
import signal
import tempfile
from pathlib import Path

import pytest

from src.entities.model import ModelDescriptor
from src.frameworks_drivers.config import Config, LlamaConfig


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process with real stream readers.

    Must be created inside a running event loop.
    """

    def __init__(self, pid: int = 4242, exit_on_terminate: bool = True):
        self.pid = pid
        self.returncode = None
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.exit_on_terminate = exit_on_terminate
        self.signals = []
        self.killed = False
        self._exited = asyncio.Event()

    def emit(self, line: str, stream: str = "stderr") -> None:
        getattr(self, stream).feed_data((line + "\n").encode())

    def exit(self, code: int = 0) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def send_signal(self, sig: int) -> None:
        if self.returncode is not None:
            raise ProcessLookupError()
        self.signals.append(sig)
        if self.exit_on_terminate:
            self.exit(-sig)

    def terminate(self) -> None:
        self.send_signal(signal.SIGTERM)

    def kill(self) -> None:
        if self.returncode is not None:
            raise ProcessLookupError()
        self.killed = True
        self.exit(-signal.SIGKILL)


READY_LINE = "main: server is listening on http://127.0.0.1:8080 - starting the main loop"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def descriptor():
    return ModelDescriptor(
        binary_path="/opt/llama/llama-server",
        model_path="/models/Phi-3.5-mini-instruct-Q4_K_M.gguf",
        port=8080,
        size_mb=4200,
    )


@pytest.fixture
def llama_config():
    """Local server settings with short timings for tests."""
    return LlamaConfig(
        binary_path="/opt/llama/llama-server",
        model_path="/models/Phi-3.5-mini-instruct-Q4_K_M.gguf",
        request_timeout=1.0,
        idle_timeout=0.05,
        startup_grace=0.05,
        stop_timeout=0.05,
        ready_poll_interval=0.01,
        ready_poll_attempts=5,
    )


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "provider": "cloud",
        "prefer_cloud": True,
        "llama": {
            "model_key": "qwen-2.5-7b",
            "port": 9090,
            "parallel": 2,
            "idle_timeout": 600,
        },
        "cloud": {
            "name": "groq",
            "api_key": "test-key",
            "model": "llama-3.1-8b-instant",
        },
        "server": {
            "host": "127.0.0.1",
            "port": 8000,
        },
    }


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Create a temporary config file."""
    config_path = temp_dir / "config.json"
    with open(config_path, "w") as f:
        json.dump(sample_config_data, f, indent=2)
    return str(config_path)


@pytest.fixture
def sample_config(sample_config_data):
    return Config(**sample_config_data)


@pytest.fixture
def make_process():
    """Factory for FakeProcess; call it from inside the test's event loop."""
    return FakeProcess


@pytest.fixture
def ready_line():
    return READY_LINE
