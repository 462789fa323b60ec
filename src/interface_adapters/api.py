from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from src.interface_adapters.health_controller import HealthController
from src.interface_adapters.idea_controller import IdeaController
from src.shared.logger import Logger

logger = Logger.get(__name__)


class API:
    def __init__(self, idea_controller: IdeaController, health_controller: HealthController, preload: bool = False):
        self.idea_controller = idea_controller
        self.health_controller = health_controller
        self.preload = preload
        self.app = FastAPI(title="Ideatr Inference", version="0.1.0", lifespan=self._lifespan)

        self.get_idea_controller = lambda: self.idea_controller
        self.get_health_controller = lambda: self.health_controller

        self._register_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        if self.preload:
            try:
                ready = await self.idea_controller.router.ensure_ready()
                logger.info(f"Preload finished, ready: {ready}")
            except Exception as e:
                logger.warning(f"Preload failed: {e}")
        yield
        logger.info("Shutting down inference backends")
        await self.idea_controller.router.close()

    def _register_routes(self):
        async def classify_handler(request: dict, controller=Depends(self.get_idea_controller)):
            return await controller.classify(request)

        async def complete_handler(request: dict, controller=Depends(self.get_idea_controller)):
            return await controller.complete(request)

        async def mutations_handler(request: dict, controller=Depends(self.get_idea_controller)):
            return await controller.mutations(request)

        async def expand_handler(request: dict, controller=Depends(self.get_idea_controller)):
            return await controller.expand(request)

        async def reorganize_handler(request: dict, controller=Depends(self.get_idea_controller)):
            return await controller.reorganize(request)

        async def warmup_handler(controller=Depends(self.get_idea_controller)):
            return await controller.warmup()

        async def unload_handler(controller=Depends(self.get_health_controller)):
            return await controller.unload()

        async def health_handler(controller=Depends(self.get_health_controller)):
            return await controller.health()

        self.app.post("/classify")(classify_handler)
        self.app.post("/complete")(complete_handler)
        self.app.post("/mutations")(mutations_handler)
        self.app.post("/expand")(expand_handler)
        self.app.post("/reorganize")(reorganize_handler)
        self.app.post("/warmup")(warmup_handler)
        self.app.post("/unload")(unload_handler)
        self.app.get("/health")(health_handler)
