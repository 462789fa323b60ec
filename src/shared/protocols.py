from typing import Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from src.entities.completion import CompletionOptions
    from src.entities.idea import ClassificationResult


class LLMServiceProtocol(Protocol):
    """Contract shared by the local inference client and every cloud client."""

    name: str

    def is_available(self) -> bool: ...

    async def ensure_ready(self) -> bool: ...

    async def classify(self, text: str) -> 'ClassificationResult': ...

    async def complete(self, prompt: str, options: Optional['CompletionOptions'] = None) -> str: ...

    async def close(self) -> None: ...


class ReadinessMatcherProtocol(Protocol):
    """Recognizes readiness banners and fatal lines in a server's output streams."""

    def is_ready_line(self, line: str) -> bool: ...

    def is_fatal_line(self, line: str) -> bool: ...


class NotifierProtocol(Protocol):
    """Fire-and-forget user-visible message provided by the host application."""

    def notify(self, message: str) -> None: ...
