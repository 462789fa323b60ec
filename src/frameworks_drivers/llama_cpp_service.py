import asyncio
import math
from typing import Optional

from src.entities.completion import CompletionOptions, PendingRequest
from src.entities.idea import CLASSIFICATION_CONFIDENCE, ClassificationResult
from src.entities.model import ModelDescriptor
from src.entities.process_health import ProcessHealth
from src.entities.server import ReadinessState
from src.frameworks_drivers.base_llm_service import BaseLLMService
from src.frameworks_drivers.config import LlamaConfig
from src.frameworks_drivers.model_repository import ModelRepository
from src.frameworks_drivers.path_resolver import PathResolver
from src.frameworks_drivers.process_health_monitor import ProcessHealthMonitor
from src.frameworks_drivers.process_supervisor import ProcessSupervisor
from src.frameworks_drivers.readiness_matcher import get_readiness_matcher
from src.shared import grammars, prompts
from src.shared.errors import ConfigurationError, NetworkError, ProcessStartupError
from src.shared.json_repair import parse_structured
from src.shared.logger import Logger
from src.shared.protocols import LLMServiceProtocol, NotifierProtocol

logger = Logger.get(__name__)

INSTALL_HINT = (
    "Install llama.cpp (macOS: `brew install llama.cpp`, other platforms: "
    "https://github.com/ggml-org/llama.cpp/releases) or set llama.binary_path."
)


def classification_options() -> CompletionOptions:
    return CompletionOptions(temperature=0.1, n_predict=128, stop=["}"], grammar=grammars.CLASSIFICATION)


class LocalInferenceClient(BaseLLMService, LLMServiceProtocol):
    """
    Runs completions against a supervised llama-server.

    The server is started on demand, polled until ready and unloaded after
    `idle_timeout` seconds without requests unless `keep_loaded` is set.
    """

    name = "local"

    def __init__(
        self,
        config: LlamaConfig,
        enabled: bool = True,
        supervisor: Optional[ProcessSupervisor] = None,
        resolver: Optional[PathResolver] = None,
        repository: Optional[ModelRepository] = None,
        health_monitor: Optional[ProcessHealthMonitor] = None,
        notifier: Optional[NotifierProtocol] = None,
    ):
        super().__init__(timeout=config.request_timeout)
        self.config = config
        self.enabled = enabled
        self.notifier = notifier
        self.supervisor = supervisor or ProcessSupervisor(
            matcher=get_readiness_matcher(config.server_kind),
            notifier=notifier,
            startup_grace=config.startup_grace,
            stop_timeout=config.stop_timeout,
        )
        self.repository = repository or ModelRepository()
        self.model_info = self.repository.get_model(config.model_key)
        self.resolver = resolver or PathResolver.from_config(config, self.model_info)
        self.health_monitor = health_monitor or ProcessHealthMonitor()
        self.descriptor: Optional[ModelDescriptor] = None
        self._pending: list[PendingRequest] = []
        self._idle_task: Optional[asyncio.Task] = None
        self._closed = False
        self._compatibility_checked = False

    @property
    def state(self) -> ReadinessState:
        return self.supervisor.state

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def health(self) -> ProcessHealth:
        return self.health_monitor.health()

    def is_available(self) -> bool:
        if not self.enabled or self._closed:
            return False
        return bool(self.resolver.resolve_binary() and self.resolver.resolve_model())

    def _configuration_error(self) -> ConfigurationError:
        if not self.enabled:
            return ConfigurationError(
                "Local inference is disabled. Set provider to 'local' or 'cloud' to enable it.",
                ConfigurationError.PROVIDER_DISABLED,
            )
        binary = self.resolver.resolve_binary()
        model = self.resolver.resolve_model()
        if not binary and not model:
            return ConfigurationError(
                f"llama-server binary and model file not found. {INSTALL_HINT} "
                f"Then download a model into {self.config.models_dir} or set llama.model_path.",
                ConfigurationError.PATHS_NOT_FOUND,
            )
        if not binary:
            return ConfigurationError(f"llama-server binary not found. {INSTALL_HINT}", ConfigurationError.BINARY_NOT_FOUND)
        return ConfigurationError(
            f"Model file not found. Download a model into {self.config.models_dir} or set llama.model_path "
            f"to an existing .gguf file.",
            ConfigurationError.MODEL_NOT_FOUND,
        )

    def _check_compatibility(self, model_path: str) -> None:
        if self._compatibility_checked:
            return
        self._compatibility_checked = True
        info = self.repository.find_by_path(model_path) or self.model_info
        if info is None:
            return
        warning = self.repository.check_compatibility(info)
        if warning:
            logger.warning(warning)
            if self.notifier is not None:
                self.notifier.notify(warning)

    def _attempts_for(self, seconds: float) -> int:
        return max(1, math.ceil(seconds / self.config.ready_poll_interval))

    async def _poll_ready(self, attempts: int) -> bool:
        supervisor = self.supervisor
        for _ in range(attempts):
            if supervisor.state == ReadinessState.READY:
                return True
            if supervisor.failed:
                raise ProcessStartupError(
                    f"llama-server failed to start: {supervisor.last_error}",
                    supervisor.recent_output() or supervisor.last_error,
                )
            if not supervisor.is_running:
                return False
            await asyncio.sleep(self.config.ready_poll_interval)
        return supervisor.state == ReadinessState.READY

    async def ensure_ready(self) -> bool:
        """
        Make sure a ready llama-server is running.

        Returns:
            False when local inference is disabled or the binary or model cannot
            be found, True once the server reports it is listening.

        Raises:
            ProcessStartupError: The server failed to start or did not become
                ready within its startup timeout.
        """
        if not self.enabled:
            return False
        if self._closed:
            raise ProcessStartupError("Local inference client is shutting down")

        binary_path = self.resolver.resolve_binary()
        model_path = self.resolver.resolve_model()
        if not binary_path or not model_path:
            logger.debug(f"Local inference not configured (binary={binary_path}, model={model_path})")
            return False

        supervisor = self.supervisor
        if supervisor.is_running:
            if supervisor.state == ReadinessState.READY:
                return True
            if await self._poll_ready(self.config.ready_poll_attempts):
                return True
            server = supervisor.server
            if server is not None and self.descriptor is not None and server.uptime < self.descriptor.startup_timeout:
                remaining = self.descriptor.startup_timeout - server.uptime
                if await self._poll_ready(self._attempts_for(remaining)):
                    return True
            if supervisor.is_running:
                logger.warning("llama-server never became ready, restarting it")
                await supervisor.stop()

        self._check_compatibility(model_path)
        self.descriptor = self.repository.build_descriptor(binary_path, model_path, self.config)
        await supervisor.start(self.descriptor)
        if supervisor.server is not None:
            self.health_monitor.attach(supervisor.server.process, supervisor.server.started_at)

        if not await self._poll_ready(self._attempts_for(self.descriptor.startup_timeout)):
            diagnostic = supervisor.recent_output()
            await supervisor.stop()
            self.health_monitor.detach()
            raise ProcessStartupError(
                f"llama-server did not become ready within {self.descriptor.startup_timeout:.0f}s", diagnostic
            )
        return True

    async def _request(self, prompt: str, options: CompletionOptions) -> dict:
        self._cancel_idle_timer()
        try:
            if not await self.ensure_ready():
                raise self._configuration_error()

            url = f"{self.descriptor.server_url}/completion"
            loop = asyncio.get_running_loop()
            pending = PendingRequest(prompt=prompt, options=options, deadline=loop.time() + self.timeout)
            pending.task = asyncio.create_task(self._post_json(url, options.to_payload(prompt)))
            self._pending.append(pending)
            try:
                return await pending.task
            except asyncio.CancelledError:
                if self._closed:
                    raise NetworkError("Request cancelled: local inference client is shutting down") from None
                raise
            finally:
                self._pending.remove(pending)
        finally:
            self._reset_idle_timer()

    async def classify(self, text: str) -> ClassificationResult:
        data = await self._request(prompts.classification(text, open_brace=False), classification_options())
        content = data.get("content") or ""
        result = parse_structured(content)
        if not result.ok:
            logger.warning(f"Could not parse classification ({result.failure.value}): {content[:200]!r}")
            return ClassificationResult.empty()
        return ClassificationResult.from_payload(result.value, CLASSIFICATION_CONFIDENCE)

    async def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        data = await self._request(prompt, options or CompletionOptions())
        return data.get("content") or ""

    def _cancel_idle_timer(self) -> None:
        if self._idle_task is not None and not self._idle_task.done():
            self._idle_task.cancel()
        self._idle_task = None

    def _reset_idle_timer(self) -> None:
        self._cancel_idle_timer()
        if self.config.keep_loaded or self._closed or not self.supervisor.is_running:
            return
        self._idle_task = asyncio.create_task(self._idle_unload(self.config.idle_timeout))

    async def _idle_unload(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self.config.keep_loaded or self._pending:
            return
        logger.info(f"Unloading model after {delay:.0f}s of inactivity")
        self._idle_task = None
        await self.supervisor.stop(final_state=ReadinessState.IDLE)
        # A request may have started a new server while the old one was stopping.
        if self.supervisor.server is None:
            self.health_monitor.detach()

    async def unload(self) -> ReadinessState:
        self._cancel_idle_timer()
        await self.supervisor.stop()
        self.health_monitor.detach()
        return self.supervisor.state

    async def close(self) -> None:
        """Cancel the idle timer and in-flight requests and stop the server."""
        self._closed = True
        self._cancel_idle_timer()
        for pending in list(self._pending):
            pending.cancel()
        await self.supervisor.stop()
        self.health_monitor.detach()
