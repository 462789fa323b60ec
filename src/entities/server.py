from enum import Enum


class ReadinessState(str, Enum):
    NOT_LOADED = "not-loaded"
    LOADING = "loading"
    READY = "ready"
    IDLE = "idle"

    @property
    def is_loaded(self) -> bool:
        return self in (ReadinessState.LOADING, ReadinessState.READY)


class ServerProbe(str, Enum):
    """Answer of llama-server's own GET /health."""

    OK = "ok"
    LOADING = "loading"
    UNREACHABLE = "unreachable"
