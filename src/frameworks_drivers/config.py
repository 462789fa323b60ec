import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field


class LlamaConfig(BaseModel):
    """Configuration for the local llama.cpp server.

    Attributes:
        binary_path: Explicit path to the llama-server binary.
        model_path: Explicit path to a GGUF model file.
        model_key: Catalog key of the model to run when no explicit path is set.
        models_dir: Directory holding downloaded models.
        plugin_dir: Root of the bundled binaries directory.
        host: Host the server binds to.
        port: Port the server listens on.
        ctx_size: Context size passed to the server.
        parallel: Number of parallel request slots.
        n_gpu_layers: Override for the size-band derived GPU layer count.
        request_timeout: Timeout for completion requests in seconds.
        idle_timeout: Seconds of inactivity before the model is unloaded.
        keep_loaded: Never unload the model due to inactivity.
        startup_grace: Seconds to wait for an early exit or readiness after spawning.
        stop_timeout: Seconds to wait after SIGTERM before killing the server.
        ready_poll_interval: Interval between readiness polls in seconds.
        ready_poll_attempts: Polls before a loading server is considered hung.
        server_kind: Server implementation, selects the readiness patterns.
    """

    binary_path: Optional[str] = Field(None, description="Explicit path to the llama-server binary")
    model_path: Optional[str] = Field(None, description="Explicit path to a GGUF model file")
    model_key: str = Field("phi-3.5-mini", description="Catalog key of the model to run")
    models_dir: str = Field("~/.ideatr/models", description="Directory holding downloaded models")
    plugin_dir: Optional[str] = Field(None, description="Root of the bundled binaries directory")
    host: str = Field("127.0.0.1", description="Host the server binds to")
    port: int = Field(8080, ge=1, le=65535, description="Port the server listens on")
    ctx_size: int = Field(2048, gt=0, description="Context size passed to the server")
    parallel: int = Field(1, gt=0, description="Number of parallel request slots")
    n_gpu_layers: Optional[int] = Field(None, ge=0, description="Override for the GPU layer count")
    request_timeout: float = Field(30.0, gt=0, description="Timeout for completion requests in seconds")
    idle_timeout: float = Field(900.0, gt=0, description="Seconds of inactivity before unloading")
    keep_loaded: bool = Field(False, description="Never unload the model due to inactivity")
    startup_grace: float = Field(2.0, ge=0, description="Seconds to wait for early exit or readiness")
    stop_timeout: float = Field(2.0, gt=0, description="Seconds to wait after SIGTERM before killing")
    ready_poll_interval: float = Field(0.1, gt=0, description="Interval between readiness polls")
    ready_poll_attempts: int = Field(50, gt=0, description="Polls before a loading server is considered hung")
    server_kind: str = Field("llama.cpp", description="Server implementation, selects readiness patterns")


class CloudConfig(BaseModel):
    """Configuration for a cloud chat backend.

    Attributes:
        name: Provider name.
        api_key: API key sent as a bearer token.
        model: Model identifier.
        base_url: Base URL of the API, derived from the provider name when unset.
        format: Request format, OpenAI-compatible or Ollama chat.
        timeout: Timeout for cloud requests in seconds.
    """

    name: Literal["openai", "groq", "openrouter", "custom"] = Field("openai", description="Provider name")
    api_key: Optional[str] = Field(None, description="API key sent as a bearer token")
    model: str = Field(..., description="Model identifier")
    base_url: Optional[str] = Field(None, description="Base URL of the API")
    format: Literal["openai", "ollama"] = Field("openai", description="Request format")
    timeout: float = Field(30.0, gt=0, description="Timeout for cloud requests in seconds")


class ServerConfig(BaseModel):
    """Configuration for the HTTP API.

    Attributes:
        host: Host for the API server.
        port: Port for the API server.
    """

    host: str = Field("127.0.0.1", description="Host for the API server")
    port: int = Field(8000, description="Port for the API server")


class Config(BaseModel):
    """Main configuration class.

    Attributes:
        provider: Backend selection ('none', 'local' or 'cloud').
        prefer_cloud: Try the cloud backend before the local server.
        preload_on_startup: Warm up the preferred backend when the API starts.
        llama: Local server configuration.
        cloud: Cloud backend configuration.
        server: HTTP API configuration.
    """

    provider: Literal["none", "local", "cloud"] = Field("local", description="Backend selection")
    prefer_cloud: bool = Field(True, description="Try the cloud backend before the local server")
    preload_on_startup: bool = Field(False, description="Warm up the preferred backend on startup")
    llama: LlamaConfig = Field(default_factory=LlamaConfig, description="Local server configuration")
    cloud: CloudConfig | None = Field(default=None, description="Cloud backend configuration")
    server: ServerConfig = Field(default_factory=ServerConfig, description="HTTP API configuration")

    @property
    def local_enabled(self) -> bool:
        return self.provider != "none"

    @property
    def cloud_enabled(self) -> bool:
        return self.provider == "cloud" and self.cloud is not None

    @classmethod
    def load(cls, config_path: str = "config.json") -> "Config":
        """Load and validate configuration from JSON file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path) as f:
            data = json.load(f)

        return cls(**data)
