"""
Readiness and fatal-error detection from server output lines.

Server diagnostics are free text, so each supported server implementation
registers a matcher holding the banner substrings it emits.
"""
from typing import Callable, Iterable

from src.shared.protocols import ReadinessMatcherProtocol


class SubstringReadinessMatcher(ReadinessMatcherProtocol):
    """Case-insensitive substring matcher for ready and fatal lines."""

    def __init__(
        self,
        ready_patterns: Iterable[str],
        fatal_triggers: Iterable[str] = ("error", "failed", "fatal"),
        informational: Iterable[str] = (),
        always_fatal: Iterable[str] = (),
    ):
        self.ready_patterns = tuple(p.lower() for p in ready_patterns)
        self.fatal_triggers = tuple(p.lower() for p in fatal_triggers)
        self.informational = tuple(p.lower() for p in informational)
        self.always_fatal = tuple(p.lower() for p in always_fatal)

    def is_ready_line(self, line: str) -> bool:
        lowered = line.lower()
        return any(pattern in lowered for pattern in self.ready_patterns)

    def is_fatal_line(self, line: str) -> bool:
        lowered = line.lower()
        if any(pattern in lowered for pattern in self.always_fatal):
            return True
        if any(pattern in lowered for pattern in self.informational):
            return False
        return any(trigger in lowered for trigger in self.fatal_triggers)


def llama_cpp_matcher() -> SubstringReadinessMatcher:
    return SubstringReadinessMatcher(
        ready_patterns=(
            "http server listening",
            "server is listening",
            "listening on http",
            "main: server is listening",
        ),
        informational=(
            "ggml_metal",
            "system info",
            "llama_model_loader",
            "print_info",
            "load:",
            "llama_context",
            "main:",
        ),
        # Memory exhaustion is fatal even from backends whose output is otherwise informational.
        always_fatal=(
            "insufficient memory",
            "out of memory",
            "outofmemory",
            "command buffer",
        ),
    )


_MATCHERS: dict[str, Callable[[], ReadinessMatcherProtocol]] = {
    "llama.cpp": llama_cpp_matcher,
}


def register_readiness_matcher(kind: str, factory: Callable[[], ReadinessMatcherProtocol]) -> None:
    _MATCHERS[kind] = factory


def get_readiness_matcher(kind: str = "llama.cpp") -> ReadinessMatcherProtocol:
    try:
        return _MATCHERS[kind]()
    except KeyError:
        raise ValueError(f"Unsupported server kind: {kind}") from None
