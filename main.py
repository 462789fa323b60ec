import os
import uvicorn

from src.frameworks_drivers.config import Config
from src.frameworks_drivers.llm_service_factory import LLMServiceFactory
from src.frameworks_drivers.notifier import LoggingNotifier
from src.interface_adapters.api import API
from src.interface_adapters.health_controller import HealthController
from src.interface_adapters.idea_controller import IdeaController
from src.shared.logger import Logger
from src.use_cases.get_health import GetHealth
from src.use_cases.hybrid_router import HybridRouter

CONFIG_PATH_ENV_VAR = "IDEATR_CONFIG"


def apply_env_overrides(config: Config) -> Config:
    updates = {}
    if "IDEATR_PROVIDER" in os.environ:
        updates["provider"] = os.environ["IDEATR_PROVIDER"]
    if "IDEATR_PREFER_CLOUD" in os.environ:
        updates["prefer_cloud"] = os.environ["IDEATR_PREFER_CLOUD"].strip().lower() in ("1", "true", "yes", "on")
    if not updates:
        return config
    return Config.model_validate({**config.model_dump(), **updates})


def build_api(config: Config) -> API:
    factory = LLMServiceFactory(config, notifier=LoggingNotifier())
    local_service = factory.create_local_service()
    router = HybridRouter(local_service, factory.create_cloud_service(), prefer_cloud=config.prefer_cloud)

    idea_controller = IdeaController(router)
    health_controller = HealthController(GetHealth(router, local_service), local_service)
    return API(idea_controller, health_controller, preload=config.preload_on_startup)


if __name__ == "__main__":
    logger = Logger.get(__name__)

    try:
        config = apply_env_overrides(Config.load(os.environ.get(CONFIG_PATH_ENV_VAR, "config.json")))
        api = build_api(config)

        logger.info(f"Starting Ideatr inference API (provider: {config.provider})...")
        # The API lifespan stops the llama-server on shutdown
        uvicorn.run(api.app, host=config.server.host, port=config.server.port)
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise
