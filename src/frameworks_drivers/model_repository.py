from pathlib import Path
from typing import Optional

import psutil

from src.entities.model import ModelDescriptor, ModelInfo
from src.shared.logger import Logger

logger = Logger.get(__name__)

TIGHT_RAM_RATIO = 0.8

MODEL_CATALOG: dict[str, ModelInfo] = {
    info.key: info
    for info in (
        ModelInfo(
            key="phi-3.5-mini",
            name="Phi-3.5 Mini",
            filename="Phi-3.5-mini-instruct-Q4_K_M.gguf",
            scan_token="phi-3.5",
            size_mb=4200,
            min_ram_gb=6,
        ),
        ModelInfo(
            key="qwen-2.5-7b",
            name="Qwen 2.5 7B",
            filename="Qwen2.5-7B-Instruct-Q4_K_M.gguf",
            scan_token="qwen2.5-7b",
            size_mb=7800,
            min_ram_gb=10,
        ),
        ModelInfo(
            key="llama-3.1-8b",
            name="Llama 3.1 8B",
            filename="Meta-Llama-3.1-8B-Instruct-Q4_K_M.gguf",
            scan_token="llama-3.1-8b",
            size_mb=8500,
            min_ram_gb=10,
        ),
        ModelInfo(
            key="llama-3.3-70b",
            name="Llama 3.3 70B",
            filename="Llama-3.3-70B-Instruct-Q4_K_M.gguf",
            scan_token="llama-3.3-70b",
            size_mb=42500,
            min_ram_gb=48,
        ),
    )
}


class ModelRepository:
    def __init__(self, catalog: Optional[dict[str, ModelInfo]] = None):
        self.catalog = catalog if catalog is not None else MODEL_CATALOG

    def get_model(self, key: str) -> Optional[ModelInfo]:
        return self.catalog.get(key)

    def get_all_models(self) -> list[ModelInfo]:
        return list(self.catalog.values())

    def find_by_path(self, model_path: str) -> Optional[ModelInfo]:
        name = Path(model_path).name.lower()
        for info in self.catalog.values():
            if name == info.filename.lower() or info.scan_token in name:
                return info
        return None

    @staticmethod
    def file_size_mb(model_path: str) -> Optional[float]:
        try:
            return Path(model_path).stat().st_size / (1024 * 1024)
        except OSError:
            return None

    def size_mb_for(self, model_path: str) -> Optional[float]:
        """Catalog size when the file is a known model, else its size on disk."""
        info = self.find_by_path(model_path)
        if info is not None:
            return info.size_mb
        return self.file_size_mb(model_path)

    def build_descriptor(self, binary_path: str, model_path: str, llama_config) -> ModelDescriptor:
        return ModelDescriptor(
            binary_path=binary_path,
            model_path=model_path,
            host=llama_config.host,
            port=llama_config.port,
            ctx_size=llama_config.ctx_size,
            parallel=llama_config.parallel,
            size_mb=self.size_mb_for(model_path),
            n_gpu_layers=llama_config.n_gpu_layers,
        )

    @staticmethod
    def check_compatibility(info: ModelInfo) -> Optional[str]:
        """
        Compare the model's RAM requirement with installed memory.

        Returns:
            A warning message when the model does not fit or fits tightly, None otherwise.
        """
        total_ram_gb = psutil.virtual_memory().total / (1024 ** 3)
        if info.min_ram_gb > total_ram_gb:
            return (
                f"{info.name} needs at least {info.min_ram_gb:.0f}GB of RAM but this system has "
                f"{total_ram_gb:.1f}GB. Consider a smaller model."
            )
        if info.min_ram_gb > total_ram_gb * TIGHT_RAM_RATIO:
            return (
                f"{info.name} needs {info.min_ram_gb:.0f}GB of RAM out of {total_ram_gb:.1f}GB available. "
                f"Performance may suffer."
            )
        return None
