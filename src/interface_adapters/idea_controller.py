from typing import Any, Optional

from fastapi import HTTPException
from fastapi.responses import JSONResponse

from src.entities.completion import CompletionOptions
from src.entities.idea import ExpansionOptions, MutationOptions, ReorganizationOptions
from src.shared.error_utils import ErrorUtils
from src.shared.errors import InferenceError
from src.shared.logger import Logger
from src.use_cases.hybrid_router import HybridRouter

logger = Logger.get(__name__)


class IdeaController:
    def __init__(self, router: HybridRouter):
        self.router = router

    async def classify(self, request: dict) -> Any:
        text = self._require_text(request, "text")
        return await self._run(self._classify(text))

    async def _classify(self, text: str) -> dict:
        result = await self.router.classify(text)
        return {**result.model_dump(), "provider": self.router.get_last_provider().value}

    async def complete(self, request: dict) -> Any:
        prompt = self._require_text(request, "prompt")
        overrides = {key: request[key] for key in ("temperature", "n_predict", "stop") if request.get(key) is not None}
        options = self._build(CompletionOptions, overrides)
        return await self._run(self._complete(prompt, options))

    async def _complete(self, prompt: str, options: CompletionOptions) -> dict:
        content = await self.router.complete(prompt, options)
        return {"content": content, "provider": self.router.get_last_provider().value}

    async def mutations(self, request: dict) -> Any:
        text = self._require_text(request, "text")
        options = self._build(MutationOptions, self._pick(request, "count", "focus", "category", "tags"))
        return await self._run(self._mutations(text, options))

    async def _mutations(self, text: str, options: MutationOptions) -> dict:
        mutations = await self.router.generate_mutations(text, options)
        return {
            "mutations": [mutation.model_dump() for mutation in mutations],
            "provider": self.router.get_last_provider().value,
        }

    async def expand(self, request: dict) -> Any:
        text = self._require_text(request, "text")
        options = self._build(ExpansionOptions, self._pick(request, "detail_level", "category", "tags"))
        return await self._run(self._expand(text, options))

    async def _expand(self, text: str, options: ExpansionOptions) -> dict:
        result = await self.router.expand_idea(text, options)
        return result.model_dump()

    async def reorganize(self, request: dict) -> Any:
        text = self._require_text(request, "text")
        fields = self._pick(request, "preserve_sections", "target_structure", "category", "tags")
        options = self._build(ReorganizationOptions, fields)
        return await self._run(self._reorganize(text, options))

    async def _reorganize(self, text: str, options: ReorganizationOptions) -> dict:
        result = await self.router.reorganize_idea(text, options)
        return result.model_dump()

    async def warmup(self) -> Any:
        return await self._run(self._warmup())

    async def _warmup(self) -> dict:
        return {"ready": await self.router.ensure_ready()}

    async def _run(self, coroutine) -> Any:
        try:
            return await coroutine
        except InferenceError as e:
            logger.warning(f"Request failed: {e}")
            body, status = ErrorUtils.from_exception(e)
            return JSONResponse(status_code=status, content=body)
        except Exception as e:
            logger.error(f"Unexpected error: {e}")
            return JSONResponse(
                status_code=500,
                content=ErrorUtils.format_error_response(f"Internal server error: {str(e)}", "internal_error"),
            )

    @staticmethod
    def _require_text(request: dict, field: str) -> str:
        if not isinstance(request, dict):
            raise HTTPException(status_code=400, detail="Request must be a JSON object")
        value = request.get(field)
        if not isinstance(value, str) or not value.strip():
            raise HTTPException(status_code=400, detail=f"'{field}' must be a non-empty string")
        return value.strip()

    @staticmethod
    def _pick(request: dict, *fields: str) -> dict:
        return {field: request[field] for field in fields if request.get(field) is not None}

    @staticmethod
    def _build(model_class, fields: Optional[dict]):
        try:
            return model_class(**(fields or {}))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
