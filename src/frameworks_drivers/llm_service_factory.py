from typing import Optional

from src.frameworks_drivers.cloud_service import CloudLLMService
from src.frameworks_drivers.config import Config
from src.frameworks_drivers.llama_cpp_service import LocalInferenceClient
from src.shared.protocols import LLMServiceProtocol, NotifierProtocol


class LLMServiceFactory:
    def __init__(self, config: Config, notifier: Optional[NotifierProtocol] = None):
        self.config = config
        self.notifier = notifier

    def create_local_service(self) -> LocalInferenceClient:
        return LocalInferenceClient(
            config=self.config.llama,
            enabled=self.config.local_enabled,
            notifier=self.notifier,
        )

    def create_cloud_service(self) -> Optional[LLMServiceProtocol]:
        if not self.config.cloud_enabled:
            return None
        return CloudLLMService(self.config.cloud)
