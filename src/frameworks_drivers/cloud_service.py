from typing import Optional

import httpx

from src.entities.completion import CompletionOptions
from src.entities.idea import CLASSIFICATION_CONFIDENCE, ClassificationResult
from src.frameworks_drivers.base_llm_service import BaseLLMService
from src.frameworks_drivers.config import CloudConfig
from src.shared import prompts
from src.shared.errors import NetworkError
from src.shared.json_repair import parse_structured
from src.shared.logger import Logger
from src.shared.protocols import LLMServiceProtocol

logger = Logger.get(__name__)

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "groq": "https://api.groq.com/openai/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}

PROVIDER_LABELS = {
    "openai": "OpenAI",
    "groq": "Groq",
    "openrouter": "OpenRouter",
    "custom": "Custom endpoint",
}


class CloudLLMService(BaseLLMService, LLMServiceProtocol):
    """
    Chat-completion client for OpenAI-compatible APIs and the Ollama chat format.

    Grammars are a llama.cpp feature and are not sent to cloud backends.
    """

    name = "cloud"

    def __init__(self, config: CloudConfig):
        super().__init__(timeout=config.timeout)
        self.config = config
        self.label = PROVIDER_LABELS[config.name]

    @property
    def base_url(self) -> Optional[str]:
        return self.config.base_url or DEFAULT_BASE_URLS.get(self.config.name)

    @property
    def endpoint(self) -> str:
        base = (self.base_url or "").rstrip("/")
        if self.config.format == "ollama":
            return base if base.endswith("/api/chat") else f"{base}/api/chat"
        return base if base.endswith("/chat/completions") else f"{base}/chat/completions"

    def is_available(self) -> bool:
        if not self.base_url:
            return False
        # Self-hosted endpoints may not require a key.
        return bool(self.config.api_key) or self.config.name == "custom"

    async def ensure_ready(self) -> bool:
        return self.is_available()

    def _status_message(self, response: httpx.Response) -> str:
        if response.status_code == 401:
            return f"Invalid API key. Please check your {self.label} API key."
        if response.status_code == 429:
            return "Rate limit exceeded. Please try again later."
        return f"{self.label} API error: HTTP {response.status_code}: {response.text[:200]}"

    def _build_payload(self, prompt: str, options: CompletionOptions) -> dict:
        messages = [{"role": "user", "content": prompt}]
        if self.config.format == "ollama":
            return {
                "model": self.config.model,
                "messages": messages,
                "stream": False,
                "options": {
                    "temperature": options.temperature,
                    "num_predict": options.n_predict,
                    **({"stop": options.stop} if options.stop else {}),
                },
            }
        payload = {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": options.n_predict,
            "temperature": options.temperature,
        }
        if options.stop:
            # OpenAI-compatible APIs accept at most four stop sequences.
            payload["stop"] = options.stop[:4]
        return payload

    @staticmethod
    def _extract_content(data: dict, response_format: str) -> str:
        if response_format == "ollama":
            message = data.get("message") or {}
            content = message.get("content")
        else:
            choices = data.get("choices") or [{}]
            content = (choices[0].get("message") or {}).get("content")
        return content if isinstance(content, str) else ""

    async def complete(self, prompt: str, options: Optional[CompletionOptions] = None) -> str:
        if not self.is_available():
            raise NetworkError(f"{self.label} provider is not available")
        options = options or CompletionOptions()
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        data = await self._post_json(self.endpoint, self._build_payload(prompt, options), headers=headers)
        content = self._extract_content(data, self.config.format)
        if not content:
            raise NetworkError(f"No content in {self.label} response")
        return content

    async def classify(self, text: str) -> ClassificationResult:
        content = await self.complete(
            prompts.classification(text, open_brace=False),
            CompletionOptions(temperature=0.1, n_predict=256),
        )
        return ClassificationResult.from_payload(parse_structured(content).unwrap(content), CLASSIFICATION_CONFIDENCE)

    async def close(self) -> None:
        return None
