from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SizeBand(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    HUGE = "huge"


# Upper bound (exclusive, MB), GPU layers, startup timeout ceiling (s)
_SIZE_BANDS: list[tuple[SizeBand, float, int, float]] = [
    (SizeBand.SMALL, 5000, 99, 120.0),
    (SizeBand.MEDIUM, 10000, 75, 180.0),
    (SizeBand.LARGE, 20000, 60, 240.0),
    (SizeBand.HUGE, float("inf"), 25, 300.0),
]


def classify_size_band(size_mb: Optional[float]) -> SizeBand:
    """Map a model file size to its band. Unknown sizes are treated as small."""
    if not size_mb or size_mb <= 0:
        return SizeBand.SMALL
    for band, upper, _, _ in _SIZE_BANDS:
        if size_mb < upper:
            return band
    return SizeBand.HUGE


def gpu_layers_for(band: SizeBand) -> int:
    return next(layers for b, _, layers, _ in _SIZE_BANDS if b == band)


def startup_timeout_for(band: SizeBand) -> float:
    return next(timeout for b, _, _, timeout in _SIZE_BANDS if b == band)


class ModelInfo(BaseModel):
    """A catalog entry for a known local model.

    Attributes:
        key: Catalog key, e.g. 'phi-3.5-mini'.
        name: Human readable name.
        filename: GGUF file name at the default install location.
        scan_token: Lowercase substring identifying the model's GGUF files.
        size_mb: Download size in megabytes.
        min_ram_gb: Minimum system RAM needed to run the model.
    """

    key: str = Field(min_length=1)
    name: str
    filename: str
    scan_token: str
    size_mb: float = Field(gt=0)
    min_ram_gb: float = Field(gt=0)


class ModelDescriptor(BaseModel):
    """Static launch configuration for a llama-server process."""

    binary_path: str = Field(min_length=1)
    model_path: str = Field(min_length=1)
    host: str = "127.0.0.1"
    port: int = Field(8080, ge=1, le=65535)
    ctx_size: int = Field(2048, gt=0)
    parallel: int = Field(1, gt=0)
    size_mb: Optional[float] = None
    n_gpu_layers: Optional[int] = Field(None, ge=0)

    @property
    def size_band(self) -> SizeBand:
        return classify_size_band(self.size_mb)

    @property
    def gpu_layers(self) -> int:
        if self.n_gpu_layers is not None:
            return self.n_gpu_layers
        return gpu_layers_for(self.size_band)

    @property
    def startup_timeout(self) -> float:
        return startup_timeout_for(self.size_band)

    @property
    def server_url(self) -> str:
        return f"http://{self.host}:{self.port}"
