from typing import Any

from src.entities.server import ReadinessState, ServerProbe
from src.frameworks_drivers.llama_cpp_service import LocalInferenceClient
from src.shared.health_checker import HealthChecker
from src.use_cases.hybrid_router import HybridRouter


class GetHealth:
    """Status report of the local server and the router."""

    def __init__(self, router: HybridRouter, local_service: LocalInferenceClient, probe_timeout: float = 1.0):
        self.router = router
        self.local_service = local_service
        self.probe_timeout = probe_timeout

    async def execute(self) -> dict[str, Any]:
        state = self.local_service.state
        descriptor = self.local_service.descriptor
        process = self.local_service.health()

        probe = ServerProbe.UNREACHABLE
        if descriptor is not None and state.is_loaded and process.is_running:
            probe = await HealthChecker.probe_server(descriptor.server_url, self.probe_timeout)

        cloud = self.router.cloud_service
        return {
            "status": "ok" if self.router.is_available() else "unavailable",
            "local": {
                "enabled": self.local_service.enabled,
                "state": state.value,
                "model_path": descriptor.model_path if descriptor else None,
                "port": descriptor.port if descriptor else self.local_service.config.port,
                "size_band": descriptor.size_band.value if descriptor else None,
                "server_probe": probe.value,
                "server_responding": probe == ServerProbe.OK,
                "pending_requests": self.local_service.pending_count,
                "process": {**process.model_dump(), "status": process.status},
            },
            "cloud": {
                "configured": cloud is not None,
                "available": bool(cloud and cloud.is_available()),
                "preferred": self.router.prefer_cloud,
            },
            "last_provider": self.router.get_last_provider().value,
        }
