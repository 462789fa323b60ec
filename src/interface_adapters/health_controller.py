from fastapi.responses import JSONResponse

from src.frameworks_drivers.llama_cpp_service import LocalInferenceClient
from src.shared.error_utils import ErrorUtils
from src.use_cases.get_health import GetHealth


class HealthController:
    def __init__(self, get_health_use_case: GetHealth, local_service: LocalInferenceClient):
        self.get_health_use_case = get_health_use_case
        self.local_service = local_service

    async def health(self):
        try:
            return await self.get_health_use_case.execute()
        except Exception as e:
            return JSONResponse(
                status_code=500,
                content=ErrorUtils.format_error_response(f"Health check failed: {str(e)}", "health_check_error"),
            )

    async def unload(self):
        state = await self.local_service.unload()
        return {"state": state.value}
